"""Relevance filtering and profile-to-opportunity scoring."""

from pathfinder.rank.explain import ExplainedMatch, MatchExplainer, explain_matches
from pathfinder.rank.filters import RelevanceFilters, apply_filters
from pathfinder.rank.pipeline import MatchResult, match
from pathfinder.rank.profile import MatchProfile
from pathfinder.rank.scoring import estimate_chance, score_opportunity
from pathfinder.rank.weights import WeightTables

__all__ = [
    "ExplainedMatch",
    "MatchExplainer",
    "MatchProfile",
    "MatchResult",
    "RelevanceFilters",
    "WeightTables",
    "apply_filters",
    "estimate_chance",
    "explain_matches",
    "match",
    "score_opportunity",
]
