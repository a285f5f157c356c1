from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from pathfinder.config import coerce_flag
from pathfinder.normalize.schema import OpportunityRecord

logger = logging.getLogger(__name__)

TYPE_FILTERS = ("all", "scholarship", "bursary", "grant")


@dataclass(frozen=True, slots=True)
class FetchOptions:
    limit: int | None = None
    type: str = "all"
    county: str | None = None
    constituency: str | None = None
    kenyan_only: bool = False

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit <= 0:
            raise ValueError("limit must be positive when provided.")
        if self.type not in TYPE_FILTERS:
            raise ValueError(f"type must be one of {', '.join(TYPE_FILTERS)}.")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "FetchOptions":
        values = dict(payload or {})
        limit = values.get("limit")
        return cls(
            limit=int(limit) if limit not in (None, "") else None,
            type=str(values.get("type") or "all").strip().lower(),
            county=(str(values["county"]).strip() or None) if values.get("county") else None,
            constituency=(str(values["constituency"]).strip() or None) if values.get("constituency") else None,
            kenyan_only=coerce_flag(values.get("kenyan_only", values.get("kenyanOnly", False))),
        )


class BaseSource(ABC):
    name: str
    timeout_seconds: float = 10.0

    def applies_to(self, options: FetchOptions) -> bool:
        return True

    def fetch(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        """Fetch and parse listings; every failure degrades to an empty list."""

        try:
            records = self.fetch_records(http_client, options)
        except requests.RequestException as exc:
            logger.warning("Source %s fetch failed: %s", self.name, exc)
            return []
        except Exception:
            logger.warning("Source %s parse failed", self.name, exc_info=True)
            return []
        if not records:
            logger.warning("Source %s returned no usable records", self.name)
        return records

    @abstractmethod
    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        """Fetch listings for ``options``; may raise on network or parse errors."""
