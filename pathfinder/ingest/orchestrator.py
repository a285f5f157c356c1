from __future__ import annotations

import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable

from pathfinder.config import PipelineSettings
from pathfinder.normalize.clean import normalize_records
from pathfinder.normalize.dedupe import deduplicate
from pathfinder.normalize.schema import OpportunityRecord
from pathfinder.rank.filters import RelevanceFilters, apply_filters, is_in_region

from .base import BaseSource, FetchOptions
from .cache import ResultCache, build_cache_key
from .http import PoliteHttpClient
from .registry import register_sources

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceReport:
    source: str
    status: str = "failed"
    records: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"source": self.source, "status": self.status, "records": self.records}
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class AggregateStats:
    total: int = 0
    kenyan: int = 0
    international: int = 0
    duplicates: int = 0
    by_source: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "kenyan": self.kenyan,
            "international": self.international,
            "duplicates": self.duplicates,
            "by_source": dict(self.by_source),
        }


@dataclass(slots=True)
class AggregateResult:
    by_source: dict[str, list[OpportunityRecord]]
    merged: list[OpportunityRecord]
    stats: AggregateStats
    reports: list[SourceReport] = field(default_factory=list)
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "bySource": {name: [record.to_dict() for record in records] for name, records in self.by_source.items()},
            "merged": [record.to_dict() for record in self.merged],
            "stats": self.stats.to_dict(),
            "sources": [report.to_dict() for report in self.reports],
            "fromCache": self.from_cache,
        }


def _run_detached(source: BaseSource, http_client: Any, options: FetchOptions) -> concurrent.futures.Future:
    """Run ``source.fetch`` on a daemon thread so an abandoned fetch never delays interpreter exit."""

    future: concurrent.futures.Future = concurrent.futures.Future()

    def worker() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(source.fetch(http_client, options))
        except Exception as exc:
            future.set_exception(exc)

    threading.Thread(target=worker, name=f"pathfinder-source-{source.name}", daemon=True).start()
    return future


class FetchOrchestrator:
    """Runs every applicable source concurrently under one global time budget.

    A source that raises, or is still running when the budget runs out,
    contributes an empty list; the remaining sources are unaffected.
    """

    def __init__(
        self,
        sources: Iterable[BaseSource] | None = None,
        *,
        settings: PipelineSettings | None = None,
        http_client: Any | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings.baseline()
        self.sources = list(sources) if sources is not None else register_sources(self.settings)
        self._owns_client = http_client is None
        self.http_client = http_client or PoliteHttpClient(
            requests_per_second=self.settings.requests_per_second,
            timeout_seconds=self.settings.ministry_timeout_seconds,
            user_agent=self.settings.user_agent,
            max_retries=self.settings.max_retries,
            verify_tls=self.settings.verify_tls,
        )
        self.cache = cache if cache is not None else ResultCache(self.settings.cache_ttl_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> FetchOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def aggregate(self, options: FetchOptions | None = None) -> AggregateResult:
        resolved = options or FetchOptions()
        key = build_cache_key(resolved)
        entry = self.cache.get(key)
        if entry is not None:
            logger.info("Cache hit for %s", key)
            return self._finalize(entry.data, entry.by_source, resolved, reports=[], from_cache=True)

        raw_by_source, reports = self._fetch_all(resolved)
        by_source = {
            name: normalize_records(records, min_description_length=self.settings.min_description_length)
            for name, records in raw_by_source.items()
        }
        merged = deduplicate(record for records in by_source.values() for record in records)
        self.cache.set(key, merged, by_source)
        return self._finalize(merged, by_source, resolved, reports=reports, from_cache=False)

    def search(
        self,
        options: FetchOptions | None = None,
        filters: RelevanceFilters | None = None,
    ) -> list[OpportunityRecord]:
        result = self.aggregate(options)
        resolved_filters = filters or RelevanceFilters(home_region=self.settings.home_region)
        return apply_filters(result.merged, resolved_filters)

    def get_by_name(self, name: str, options: FetchOptions | None = None) -> OpportunityRecord | None:
        needle = name.strip().lower()
        if not needle:
            return None
        records = self.aggregate(options).merged
        for record in records:
            if record.name.lower() == needle:
                return record
        for record in records:
            if needle in record.name.lower():
                return record
        return None

    def _fetch_all(
        self,
        options: FetchOptions,
    ) -> tuple[dict[str, list[OpportunityRecord]], list[SourceReport]]:
        applicable = [source for source in self.sources if source.applies_to(options)]
        by_source: dict[str, list[OpportunityRecord]] = {source.name: [] for source in applicable}
        reports = {source.name: SourceReport(source=source.name) for source in applicable}
        if not applicable:
            return by_source, []

        futures = {_run_detached(source, self.http_client, options): source for source in applicable}
        done, not_done = concurrent.futures.wait(futures, timeout=self.settings.global_budget_seconds)
        for future in not_done:
            source = futures[future]
            reports[source.name].status = "timed_out"
            reports[source.name].error = "global_budget_exceeded"
            logger.warning(
                "Source %s still running after %.1fs; treating as empty",
                source.name,
                self.settings.global_budget_seconds,
            )
        for future in done:
            source = futures[future]
            report = reports[source.name]
            try:
                records = list(future.result())
            except Exception as exc:
                report.error = f"fetch_failed:{type(exc).__name__}"
                logger.warning("Source %s failed. Continuing with remaining sources.", source.name, exc_info=True)
                continue
            by_source[source.name] = records
            report.records = len(records)
            report.status = "succeeded" if records else "empty"

        for report in reports.values():
            logger.info("Source=%s status=%s records=%d", report.source, report.status, report.records)
        return by_source, list(reports.values())

    def _finalize(
        self,
        merged: list[OpportunityRecord],
        by_source: dict[str, list[OpportunityRecord]],
        options: FetchOptions,
        *,
        reports: list[SourceReport],
        from_cache: bool,
    ) -> AggregateResult:
        home_region = self.settings.home_region
        if options.kenyan_only:
            selected = [record for record in merged if is_in_region(record, home_region)]
        else:
            selected = list(merged)
        if options.limit is not None:
            selected = selected[: options.limit]

        raw_count = sum(len(records) for records in by_source.values())
        kenyan = sum(1 for record in selected if is_in_region(record, home_region))
        stats = AggregateStats(
            total=len(selected),
            kenyan=kenyan,
            international=len(selected) - kenyan,
            duplicates=raw_count - len(merged),
            by_source={name: len(records) for name, records in by_source.items()},
        )
        logger.info(
            "Aggregated total=%d duplicates=%d cached=%s",
            stats.total,
            stats.duplicates,
            from_cache,
        )
        return AggregateResult(
            by_source={name: list(records) for name, records in by_source.items()},
            merged=selected,
            stats=stats,
            reports=reports,
            from_cache=from_cache,
        )
