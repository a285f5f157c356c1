from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from .pipeline import MatchResult
from .profile import MatchProfile

logger = logging.getLogger(__name__)

DEFAULT_EXPLAIN_TOP_N = 5
_TIER_BY_CHANCE = {"high": "strong", "medium": "moderate", "low": "weak"}


class MatchExplainer(Protocol):
    def explain(self, profile: MatchProfile, match: MatchResult) -> Mapping[str, Any]:
        """Return ``explanation``, ``recommendationTier`` and ``suggestions``."""


@dataclass(slots=True)
class ExplainedMatch:
    match: MatchResult
    explanation: str | None = None
    recommendation_tier: str = "weak"
    suggestions: list[str] = field(default_factory=list)
    explained_by: str = "fallback"

    def to_dict(self) -> dict[str, Any]:
        payload = self.match.to_dict()
        payload.update(
            {
                "explanation": self.explanation,
                "recommendationTier": self.recommendation_tier,
                "suggestions": list(self.suggestions),
                "explainedBy": self.explained_by,
            }
        )
        return payload


def fallback_tier(match: MatchResult) -> str:
    return _TIER_BY_CHANCE.get(match.estimated_chance, "weak")


def _fallback(match: MatchResult, *, with_explanation: bool) -> ExplainedMatch:
    return ExplainedMatch(
        match=match,
        explanation="; ".join(match.reasons) if with_explanation else None,
        recommendation_tier=fallback_tier(match),
    )


def explain_matches(
    profile: MatchProfile,
    matches: Sequence[MatchResult],
    explainer: MatchExplainer | None,
    *,
    top_n: int = DEFAULT_EXPLAIN_TOP_N,
) -> list[ExplainedMatch]:
    """Decorate already-ranked matches; never drops or reorders them."""

    decorated: list[ExplainedMatch] = []
    for index, match in enumerate(matches):
        if explainer is None or index >= top_n:
            decorated.append(_fallback(match, with_explanation=index < top_n))
            continue
        try:
            payload = explainer.explain(profile, match)
            explanation = str(payload.get("explanation") or "").strip()
            tier = str(payload.get("recommendationTier") or fallback_tier(match))
            suggestions = [str(item) for item in payload.get("suggestions") or []]
        except Exception:
            logger.warning("Explainer failed for %s; using fallback", match.opportunity.name, exc_info=True)
            decorated.append(_fallback(match, with_explanation=True))
            continue

        if not explanation:
            decorated.append(_fallback(match, with_explanation=True))
            continue
        decorated.append(
            ExplainedMatch(
                match=match,
                explanation=explanation,
                recommendation_tier=tier,
                suggestions=suggestions,
                explained_by="explainer",
            )
        )
    return decorated
