from __future__ import annotations

import os
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import Any

import requests

from pathfinder.config import PipelineSettings
from pathfinder.ingest.base import BaseSource, FetchOptions
from pathfinder.ingest.cache import ResultCache
from pathfinder.ingest.orchestrator import FetchOrchestrator
from pathfinder.ingest.registry import register_sources
from pathfinder.ingest.sources.ngcdf import NgcdfSource
from pathfinder.normalize.schema import Eligibility, OpportunityRecord
from pathfinder.rank.filters import RelevanceFilters

ROOT_DIR = Path(__file__).resolve().parents[1]
_LONG_DESCRIPTION = "A fully funded award covering tuition, accommodation and a monthly living stipend."


def _record(name: str, *, countries: list[str] | None = None, link: str | None = None) -> OpportunityRecord:
    return OpportunityRecord(
        name=name,
        description=_LONG_DESCRIPTION,
        application_link=link,
        eligibility=Eligibility(countries=countries),
    )


class _StaticSource(BaseSource):
    def __init__(self, name: str, records: list[OpportunityRecord], *, county_only: bool = False) -> None:
        self.name = name
        self.records = records
        self.county_only = county_only
        self.calls = 0

    def applies_to(self, options: FetchOptions) -> bool:
        return bool(options.county) or not self.county_only

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        self.calls += 1
        return list(self.records)


class _CrashingSource(BaseSource):
    name = "crashing"

    def fetch(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        raise RuntimeError("worker died")

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        raise RuntimeError("worker died")


class _BrokenMarkupSource(BaseSource):
    name = "broken_markup"

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        raise ValueError("unexpected markup")


class _BlockingSource(BaseSource):
    name = "blocking"

    def __init__(self, release: threading.Event) -> None:
        self.release = release

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        self.release.wait(5.0)
        return [_record("Too Late Scholarship")]


def _orchestrator(sources: list[BaseSource], **kwargs: Any) -> FetchOrchestrator:
    return FetchOrchestrator(sources, http_client=object(), **kwargs)


def test_failing_sources_do_not_affect_the_others() -> None:
    healthy = _StaticSource(
        "ministry_of_education",
        [_record("Japan MEXT Scholarship"), _record("Morocco AMCI Scholarship")],
    )

    result = _orchestrator([healthy, _CrashingSource(), _BrokenMarkupSource()]).aggregate(FetchOptions())

    assert sorted(record.name for record in result.merged) == [
        "Japan MEXT Scholarship",
        "Morocco AMCI Scholarship",
    ]
    reports = {report.source: report for report in result.reports}
    assert reports["ministry_of_education"].status == "succeeded"
    assert reports["ministry_of_education"].records == 2
    assert reports["crashing"].status == "failed"
    assert reports["crashing"].error == "fetch_failed:RuntimeError"
    assert reports["broken_markup"].status == "empty"
    assert result.by_source["crashing"] == []


def test_slow_source_is_cut_off_by_the_global_budget() -> None:
    release = threading.Event()
    fast = _StaticSource("ministry_of_education", [_record("Japan MEXT Scholarship")])
    orchestrator = _orchestrator(
        [fast, _BlockingSource(release)],
        settings=PipelineSettings(global_budget_seconds=0.2),
    )

    try:
        result = orchestrator.aggregate(FetchOptions())
    finally:
        release.set()

    reports = {report.source: report for report in result.reports}
    assert reports["blocking"].status == "timed_out"
    assert reports["blocking"].error == "global_budget_exceeded"
    assert [record.name for record in result.merged] == ["Japan MEXT Scholarship"]


def test_repeat_call_within_ttl_is_served_from_cache() -> None:
    now = [0.0]
    source = _StaticSource("ministry_of_education", [_record("Japan MEXT Scholarship")])
    orchestrator = _orchestrator([source], cache=ResultCache(300.0, clock=lambda: now[0]))

    first = orchestrator.aggregate(FetchOptions())
    now[0] = 120.0
    second = orchestrator.aggregate(FetchOptions())

    assert source.calls == 1
    assert not first.from_cache
    assert second.from_cache
    assert second.merged == first.merged
    assert second.stats == first.stats

    now[0] = 301.0
    third = orchestrator.aggregate(FetchOptions())
    assert source.calls == 2
    assert not third.from_cache


def test_different_options_use_separate_cache_entries() -> None:
    source = _StaticSource("ministry_of_education", [_record("Japan MEXT Scholarship")])
    orchestrator = _orchestrator([source])

    orchestrator.aggregate(FetchOptions())
    orchestrator.aggregate(FetchOptions(type="scholarship"))
    orchestrator.aggregate(FetchOptions())

    assert source.calls == 2


def test_county_only_sources_are_skipped_without_a_county() -> None:
    national = _StaticSource("ministry_of_education", [_record("Japan MEXT Scholarship")])
    county = _StaticSource("county_bursaries", [_record("Nairobi County Bursary")], county_only=True)
    orchestrator = _orchestrator([national, county])

    without_county = orchestrator.aggregate(FetchOptions())
    with_county = orchestrator.aggregate(FetchOptions(county="Nairobi"))

    assert [report.source for report in without_county.reports] == ["ministry_of_education"]
    assert county.calls == 1
    assert len(with_county.merged) == 2


def test_duplicates_across_sources_are_merged_and_counted() -> None:
    link = "https://www.nairobi.go.ke/bursaries/apply"
    county = _StaticSource("county_bursaries", [_record("Nairobi County Education Bursary", link=link)])
    ngcdf = _StaticSource("ngcdf", [_record("Nairobi Education Bursary", link=link), _record("Westlands Bursary")])

    result = _orchestrator([county, ngcdf]).aggregate(FetchOptions())

    assert len(result.merged) == 2
    assert result.stats.duplicates == 1
    assert result.stats.by_source == {"county_bursaries": 1, "ngcdf": 2}


def test_kenyan_only_filter_applies_before_stats_and_limit() -> None:
    source = _StaticSource(
        "ministry_of_education",
        [
            _record("Kenya Teachers Training Grant", countries=["KENYA"]),
            _record("China Government Scholarship", countries=["CHINA"]),
            _record("Open Regional Award", countries=["All"]),
            _record("Unspecified Region Award"),
        ],
    )
    orchestrator = _orchestrator([source])

    everything = orchestrator.aggregate(FetchOptions())
    kenyan = orchestrator.aggregate(FetchOptions(kenyan_only=True))
    limited = orchestrator.aggregate(FetchOptions(kenyan_only=True, limit=2))

    assert (everything.stats.total, everything.stats.kenyan, everything.stats.international) == (4, 3, 1)
    assert (kenyan.stats.total, kenyan.stats.kenyan, kenyan.stats.international) == (3, 3, 0)
    assert "China Government Scholarship" not in [record.name for record in kenyan.merged]
    assert limited.stats.total == 2
    assert len(limited.merged) == 2


def test_aggregate_normalizes_records_before_merging() -> None:
    source = _StaticSource(
        "ministry_of_education",
        [
            OpportunityRecord(name="SCHOLARSHIP NAME"),
            OpportunityRecord(
                name="Japan MEXT ScholarshipJapan MEXT Scholarship",
                eligibility=Eligibility(countries=["JAPAN"]),
            ),
        ],
    )

    result = _orchestrator([source]).aggregate(FetchOptions())

    assert [record.name for record in result.merged] == ["Japan MEXT Scholarship"]
    assert result.merged[0].eligibility.countries == ["Japan"]
    assert result.merged[0].description == "Scholarship opportunity in Japan"


def test_search_and_get_by_name() -> None:
    source = _StaticSource(
        "ministry_of_education",
        [
            _record("Japan MEXT Scholarship", countries=["Japan"]),
            _record("Japan MEXT Scholarship Extension", countries=["Japan"]),
            _record("Kenya Teachers Training Grant", countries=["Kenya"]),
        ],
    )
    orchestrator = _orchestrator([source])

    hits = orchestrator.search(FetchOptions(), RelevanceFilters(query="japan"))
    kenyan = orchestrator.search(FetchOptions(), RelevanceFilters(kenyan_only=True))

    assert len(hits) == 2
    assert [record.name for record in kenyan] == ["Kenya Teachers Training Grant"]
    assert orchestrator.get_by_name("japan mext scholarship").name == "Japan MEXT Scholarship"
    assert orchestrator.get_by_name("Teachers").name == "Kenya Teachers Training Grant"
    assert orchestrator.get_by_name("Atlantis Award") is None
    assert orchestrator.get_by_name("  ") is None
    assert source.calls == 1


def test_aggregate_result_to_dict_shape() -> None:
    source = _StaticSource("ngcdf", [_record("Westlands Bursary")])

    payload = _orchestrator([source]).aggregate(FetchOptions()).to_dict()

    assert set(payload) == {"bySource", "merged", "stats", "sources", "fromCache"}
    assert payload["stats"]["total"] == 1
    assert payload["sources"] == [{"source": "ngcdf", "status": "succeeded", "records": 1}]
    assert payload["merged"][0]["name"] == "Westlands Bursary"


def test_register_sources_uses_settings_timeouts() -> None:
    settings = PipelineSettings(ministry_timeout_seconds=12.0, portal_timeout_seconds=4.0, max_pages=3)

    sources = register_sources(settings)

    assert [source.name for source in sources] == ["ministry_of_education", "county_bursaries", "ngcdf"]
    assert sources[0].timeout_seconds == 12.0
    assert sources[0].policy.max_pages == 3
    assert sources[1].timeout_seconds == 4.0
    assert sources[2].timeout_seconds == 4.0


class _UnreachableHttpClient:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def get_page(self, url: str, **kwargs: Any) -> Any:
        self.calls.append(url)
        raise requests.ConnectionError(f"connection refused: {url}")


def test_network_failure_in_a_real_source_leaves_the_others_intact() -> None:
    client = _UnreachableHttpClient()
    healthy = _StaticSource("ministry_of_education", [_record("Japan MEXT Scholarship")])
    orchestrator = FetchOrchestrator([healthy, NgcdfSource()], http_client=client)

    result = orchestrator.aggregate(FetchOptions(county="Nairobi"))

    assert [record.name for record in result.merged] == ["Japan MEXT Scholarship"]
    assert result.by_source["ngcdf"] == []
    reports = {report.source: report for report in result.reports}
    assert reports["ngcdf"].status == "empty"
    assert reports["ngcdf"].error is None
    assert len(client.calls) == 3


_SLOW_AGGREGATE_SCRIPT = """
import time

from pathfinder.config import PipelineSettings
from pathfinder.ingest.base import BaseSource, FetchOptions
from pathfinder.ingest.orchestrator import FetchOrchestrator


class SlowSource(BaseSource):
    name = "slow"

    def fetch_records(self, http_client, options):
        time.sleep(30)
        return []


orchestrator = FetchOrchestrator(
    [SlowSource()],
    http_client=object(),
    settings=PipelineSettings(global_budget_seconds=0.2),
)
print(orchestrator.aggregate(FetchOptions()).reports[0].status)
"""


def test_process_exits_without_waiting_for_abandoned_sources(tmp_path: Path) -> None:
    script = tmp_path / "slow_aggregate.py"
    script.write_text(_SLOW_AGGREGATE_SCRIPT, encoding="utf-8")
    env = dict(os.environ, PYTHONPATH=str(ROOT_DIR))

    started = time.monotonic()
    completed = subprocess.run(
        [sys.executable, str(script)],
        cwd=ROOT_DIR,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    elapsed = time.monotonic() - started

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.strip() == "timed_out"
    assert elapsed < 20.0
