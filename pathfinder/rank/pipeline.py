from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import pandas as pd

from pathfinder.normalize.schema import OpportunityRecord

from .profile import MatchProfile
from .scoring import score_opportunity
from .weights import WeightTables

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MatchResult:
    opportunity: OpportunityRecord
    score: int
    reasons: list[str] = field(default_factory=list)
    application_steps: list[str] = field(default_factory=list)
    estimated_chance: str = "low"

    def to_dict(self) -> dict[str, Any]:
        return {
            "opportunity": self.opportunity.to_dict(),
            "score": self.score,
            "reasons": list(self.reasons),
            "applicationSteps": list(self.application_steps),
            "estimatedChance": self.estimated_chance,
        }


def _coerce_profile(profile: MatchProfile | Mapping[str, Any] | None) -> MatchProfile:
    if isinstance(profile, MatchProfile):
        return profile
    return MatchProfile.from_mapping(profile)


def _coerce_record(candidate: OpportunityRecord | Mapping[str, Any]) -> OpportunityRecord:
    if isinstance(candidate, OpportunityRecord):
        return candidate
    return OpportunityRecord.from_mapping(candidate)


def match(
    profile: MatchProfile | Mapping[str, Any] | None,
    candidates: Iterable[OpportunityRecord | Mapping[str, Any]],
    *,
    top_n: int | None = None,
    weights: WeightTables | None = None,
) -> list[MatchResult]:
    """Score every candidate, drop zero scores and rank by score.

    Ties keep their input order. No I/O happens here.
    """

    if top_n is not None and top_n < 0:
        raise ValueError("top_n must be >= 0.")

    resolved_profile = _coerce_profile(profile)
    tables = weights or WeightTables.baseline()
    results: list[MatchResult] = []
    for candidate in candidates:
        record = _coerce_record(candidate)
        breakdown = score_opportunity(resolved_profile, record, tables)
        results.append(
            MatchResult(
                opportunity=record,
                score=breakdown.score,
                reasons=breakdown.reasons,
                application_steps=breakdown.steps,
                estimated_chance=breakdown.chance,
            )
        )

    if not results:
        return []

    ranking_df = pd.DataFrame(
        {
            "position": range(len(results)),
            "score": [result.score for result in results],
        }
    )
    ranking_df = ranking_df[ranking_df["score"] > 0]
    ranking_df = ranking_df.sort_values(["score", "position"], ascending=[False, True], kind="mergesort")
    if top_n is not None:
        ranking_df = ranking_df.head(top_n)

    ranked = [results[int(position)] for position in ranking_df["position"]]
    logger.debug("Ranked %d of %d candidates", len(ranked), len(results))
    return ranked
