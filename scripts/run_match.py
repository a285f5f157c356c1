from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from pathfinder.io.store import write_json_atomic
from pathfinder.rank.explain import explain_matches
from pathfinder.rank.pipeline import match
from pathfinder.rank.profile import MatchProfile
from pathfinder.rank.weights import WeightTables

logger = logging.getLogger("run_match")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rank candidate opportunities against a requester profile.")
    parser.add_argument("--profile", type=Path, required=True, help="JSON file with the requester profile.")
    parser.add_argument(
        "--candidates",
        type=Path,
        required=True,
        help="JSON list of opportunities, an aggregate report or a JSON store file.",
    )
    parser.add_argument("--top-n", type=int, default=10)
    parser.add_argument("--weights", type=Path, default=None, help="Optional JSON weight tables by type.")
    parser.add_argument("--output", type=Path, default=None)
    return parser.parse_args(argv)


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def load_candidates(path: Path) -> list[dict[str, Any]]:
    payload = _read_json(path)
    if isinstance(payload, dict):
        payload = payload.get("merged") or payload.get("opportunities") or []
    if isinstance(payload, dict):
        # JSON store files key records by opportunity id.
        payload = [payload[key] for key in sorted(payload)]
    if not isinstance(payload, list):
        raise ValueError(f"Candidates file '{path}' must contain a list of opportunities.")
    return [item for item in payload if isinstance(item, dict)]


def run_match(
    profile_path: Path,
    candidates_path: Path,
    *,
    top_n: int | None = 10,
    weights_path: Path | None = None,
) -> list[dict[str, Any]]:
    profile = MatchProfile.from_mapping(_read_json(profile_path))
    weights = WeightTables.from_mapping(_read_json(weights_path)) if weights_path is not None else None
    candidates = load_candidates(candidates_path)
    ranked = match(profile, candidates, top_n=top_n, weights=weights)
    logger.info("Ranked %d of %d candidates", len(ranked), len(candidates))
    return [explained.to_dict() for explained in explain_matches(profile, ranked, explainer=None)]


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    results = run_match(
        args.profile,
        args.candidates,
        top_n=args.top_n,
        weights_path=args.weights,
    )

    for rank, result in enumerate(results, start=1):
        opportunity = result["opportunity"]
        print(f"{rank:>2}. [{result['score']:>3}] {opportunity.get('name')} ({result['estimatedChance']})")
        for reason in result["reasons"]:
            print(f"      - {reason}")
    if args.output is not None:
        write_json_atomic({"matches": results}, args.output)
        print(f"Wrote matches: {args.output}")
    return 0 if results else 1


if __name__ == "__main__":
    raise SystemExit(main())
