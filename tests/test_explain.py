from __future__ import annotations

from typing import Any, Mapping

from pathfinder.normalize.schema import OpportunityRecord
from pathfinder.rank.explain import explain_matches, fallback_tier
from pathfinder.rank.pipeline import MatchResult
from pathfinder.rank.profile import MatchProfile

PROFILE = MatchProfile(county="Nairobi")


def _matches(count: int) -> list[MatchResult]:
    return [
        MatchResult(
            opportunity=OpportunityRecord(name=f"Opportunity {index}"),
            score=90 - index * 20,
            reasons=[f"Reason {index}a", f"Reason {index}b"],
            estimated_chance=("high", "medium", "low", "low")[index],
        )
        for index in range(count)
    ]


class _FakeExplainer:
    def __init__(self, *, fail_on: set[str] | None = None, empty_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.empty_on = empty_on or set()
        self.calls: list[str] = []

    def explain(self, profile: MatchProfile, match: MatchResult) -> Mapping[str, Any]:
        name = match.opportunity.name
        self.calls.append(name)
        if name in self.fail_on:
            raise TimeoutError("explainer timed out")
        if name in self.empty_on:
            return {"explanation": "  "}
        return {
            "explanation": f"{name} suits a student in {profile.county}.",
            "recommendationTier": "strong",
            "suggestions": ["Apply early"],
        }


def test_explainer_output_decorates_matches_in_order() -> None:
    explainer = _FakeExplainer()
    matches = _matches(2)

    explained = explain_matches(PROFILE, matches, explainer)

    assert [item.match for item in explained] == matches
    assert explained[0].explanation == "Opportunity 0 suits a student in Nairobi."
    assert explained[0].recommendation_tier == "strong"
    assert explained[0].suggestions == ["Apply early"]
    assert explained[0].explained_by == "explainer"


def test_explainer_failure_and_empty_output_fall_back_to_reasons() -> None:
    explainer = _FakeExplainer(fail_on={"Opportunity 0"}, empty_on={"Opportunity 1"})

    explained = explain_matches(PROFILE, _matches(3), explainer)

    assert explained[0].explanation == "Reason 0a; Reason 0b"
    assert explained[0].recommendation_tier == "strong"
    assert explained[0].explained_by == "fallback"
    assert explained[1].explanation == "Reason 1a; Reason 1b"
    assert explained[1].recommendation_tier == "moderate"
    assert explained[2].explained_by == "explainer"


def test_matches_beyond_top_n_are_not_explained() -> None:
    explainer = _FakeExplainer()

    explained = explain_matches(PROFILE, _matches(4), explainer, top_n=2)

    assert explainer.calls == ["Opportunity 0", "Opportunity 1"]
    assert len(explained) == 4
    assert explained[2].explanation is None
    assert explained[3].explanation is None
    assert explained[3].recommendation_tier == "weak"


def test_no_explainer_uses_reasons_for_top_matches() -> None:
    explained = explain_matches(PROFILE, _matches(3), None, top_n=1)

    assert explained[0].explanation == "Reason 0a; Reason 0b"
    assert explained[1].explanation is None
    assert explained[0].to_dict()["recommendationTier"] == "strong"
    assert explained[0].to_dict()["explainedBy"] == "fallback"


def test_fallback_tier() -> None:
    high, medium, low = _matches(3)

    assert fallback_tier(high) == "strong"
    assert fallback_tier(medium) == "moderate"
    assert fallback_tier(low) == "weak"
