from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping

DEFAULT_USER_AGENT = "PathfinderBot/0.1 (+https://localhost; contact=local)"
ENV_PREFIX = "PATHFINDER_"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    """Runtime knobs for aggregation; scoring weights live in ``rank.weights``.

    ``verify_tls`` defaults to False because legacy government portals serve
    self-signed certificates.
    """

    cache_ttl_seconds: float = 300.0
    global_budget_seconds: float = 15.0
    ministry_timeout_seconds: float = 10.0
    portal_timeout_seconds: float = 8.0
    max_pages: int = 10
    min_description_length: int = 50
    home_region: str = "Kenya"
    verify_tls: bool = False
    requests_per_second: float = 0.0
    max_retries: int = 2
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        for field_name in (
            "cache_ttl_seconds",
            "global_budget_seconds",
            "ministry_timeout_seconds",
            "portal_timeout_seconds",
            "requests_per_second",
        ):
            value = float(getattr(self, field_name))
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"Setting '{field_name}' must be a finite value >= 0.")
        if self.global_budget_seconds <= 0.0:
            raise ValueError("Setting 'global_budget_seconds' must be > 0.")
        if self.max_pages < 1:
            raise ValueError("Setting 'max_pages' must be >= 1.")
        if self.min_description_length < 0:
            raise ValueError("Setting 'min_description_length' must be >= 0.")
        if self.max_retries < 0:
            raise ValueError("Setting 'max_retries' must be >= 0.")
        if not self.home_region.strip():
            raise ValueError("Setting 'home_region' must not be empty.")

    @classmethod
    def baseline(cls) -> PipelineSettings:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> PipelineSettings:
        values = payload or {}
        baseline = cls.baseline()
        kwargs: dict[str, Any] = {}
        for item in fields(cls):
            raw = values.get(item.name)
            if raw is None:
                kwargs[item.name] = getattr(baseline, item.name)
            else:
                kwargs[item.name] = _coerce_setting(getattr(baseline, item.name), raw)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PipelineSettings:
        source = os.environ if environ is None else environ
        values = {
            item.name: source[f"{ENV_PREFIX}{item.name.upper()}"]
            for item in fields(cls)
            if f"{ENV_PREFIX}{item.name.upper()}" in source
        }
        return cls.from_mapping(values)

    def to_dict(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


def coerce_flag(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in _TRUE_VALUES
    return bool(raw)


def _coerce_setting(default: Any, raw: Any) -> Any:
    if isinstance(default, bool):
        return coerce_flag(raw)
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)
