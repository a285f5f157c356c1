from __future__ import annotations

from .base import BaseSource, FetchOptions
from .cache import CacheEntry, ResultCache, build_cache_key
from .http import PageResponse, PoliteHttpClient
from .orchestrator import AggregateResult, AggregateStats, FetchOrchestrator, SourceReport
from .registry import register_sources

__all__ = [
    "AggregateResult",
    "AggregateStats",
    "BaseSource",
    "CacheEntry",
    "FetchOptions",
    "FetchOrchestrator",
    "PageResponse",
    "PoliteHttpClient",
    "ResultCache",
    "SourceReport",
    "build_cache_key",
    "register_sources",
]
