from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, fields
from typing import Callable

from pathfinder.normalize.schema import OpportunityRecord

from .base import FetchOptions

logger = logging.getLogger(__name__)

CACHE_KEY_VERSION = "v1"
DEFAULT_TTL_SECONDS = 300.0


def build_cache_key(options: FetchOptions) -> str:
    """Versioned key over the non-empty option fields in sorted field order."""

    parts: list[str] = []
    for item in sorted(fields(options), key=lambda entry: entry.name):
        value = getattr(options, item.name)
        if value is None or value is False or value == "":
            continue
        text = "true" if value is True else str(value).strip().lower()
        if text:
            parts.append(f"{item.name}={text}")
    return f"{CACHE_KEY_VERSION}|" + "&".join(parts)


@dataclass(slots=True)
class CacheEntry:
    key: str
    data: list[OpportunityRecord]
    by_source: dict[str, list[OpportunityRecord]] = field(default_factory=dict)
    created_at: float = 0.0


class ResultCache:
    """Key-based store of aggregated record sets; expired entries are dropped on read and on write."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0.")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl_seconds:
                del self._entries[key]
                logger.debug("Cache entry expired: %s", key)
                return None
            return entry

    def set(
        self,
        key: str,
        data: list[OpportunityRecord],
        by_source: dict[str, list[OpportunityRecord]] | None = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            key=key,
            data=list(data),
            by_source={name: list(records) for name, records in (by_source or {}).items()},
            created_at=self._clock(),
        )
        with self._lock:
            self._evict_expired(entry.created_at)
            self._entries[key] = entry
        return entry

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now - entry.created_at > self.ttl_seconds]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
