from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from pathfinder.config import PipelineSettings
from pathfinder.ingest.base import TYPE_FILTERS, FetchOptions
from pathfinder.ingest.orchestrator import FetchOrchestrator
from pathfinder.io.store import JsonFileOpportunityStore, sync_to_store, write_json_atomic

logger = logging.getLogger("run_aggregate")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Aggregate opportunity listings from all applicable sources.")
    parser.add_argument("--county", type=str, default=None)
    parser.add_argument("--constituency", type=str, default=None)
    parser.add_argument("--type", type=str, choices=TYPE_FILTERS, default="all")
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument("--kenyan-only", action="store_true")
    parser.add_argument("--global-budget-seconds", type=float, default=None)
    parser.add_argument("--max-pages", type=int, default=None)
    parser.add_argument("--output", type=Path, default=None)
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Optional JSON store file; aggregated records are synced as pending.",
    )
    return parser.parse_args(argv)


def _resolve_repo_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return ROOT_DIR / path


def _build_settings(args: argparse.Namespace) -> PipelineSettings:
    overrides: dict[str, Any] = PipelineSettings.from_env().to_dict()
    if args.global_budget_seconds is not None:
        overrides["global_budget_seconds"] = args.global_budget_seconds
    if args.max_pages is not None:
        overrides["max_pages"] = args.max_pages
    return PipelineSettings.from_mapping(overrides)


def run_aggregate(
    options: FetchOptions,
    *,
    settings: PipelineSettings | None = None,
    output_path: Path | None = None,
    store_path: Path | None = None,
    orchestrator: FetchOrchestrator | None = None,
) -> dict[str, Any]:
    started_at = datetime.now(tz=UTC)
    active = orchestrator or FetchOrchestrator(settings=settings)
    try:
        result = active.aggregate(options)
    finally:
        if orchestrator is None:
            active.close()

    report: dict[str, Any] = {
        "started_at": started_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "options": {
            "county": options.county,
            "constituency": options.constituency,
            "type": options.type,
            "limit": options.limit,
            "kenyan_only": options.kenyan_only,
        },
        **result.to_dict(),
    }
    if store_path is not None:
        sync_report = sync_to_store(result.merged, JsonFileOpportunityStore(_resolve_repo_path(store_path)))
        report["sync"] = sync_report.to_dict()

    resolved_output = _resolve_repo_path(
        output_path or (ROOT_DIR / "reports" / "aggregate_runs" / f"aggregate_{started_at:%Y%m%dT%H%M%SZ}.json")
    )
    write_json_atomic(report, resolved_output)
    report["report_path"] = str(resolved_output)
    return report


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    options = FetchOptions(
        limit=args.limit,
        type=args.type,
        county=args.county,
        constituency=args.constituency,
        kenyan_only=args.kenyan_only,
    )
    report = run_aggregate(
        options,
        settings=_build_settings(args),
        output_path=args.output,
        store_path=args.store,
    )

    stats = report["stats"]
    print(
        "Aggregated: "
        f"total={stats['total']}, kenyan={stats['kenyan']}, "
        f"international={stats['international']}, duplicates={stats['duplicates']}"
    )
    for source in report["sources"]:
        print(f"Source {source['source']}: {source['status']} ({source['records']} records)")
    print(f"Wrote aggregate report: {report['report_path']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
