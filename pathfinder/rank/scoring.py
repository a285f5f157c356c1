"""Type-aware scoring of one opportunity against one requester profile.

Every criterion yields a credit in [0, 1]: full credit on a match, partial
credit when either side leaves the criterion unspecified, zero otherwise.
A criterion contributes ``weight * credit`` points and, only when it matched,
a human-readable reason.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from pathfinder.normalize.schema import Eligibility, OpportunityRecord

from .profile import MatchProfile
from .weights import (
    ACADEMIC_CURRICULUM_SHARE,
    ACADEMIC_EXAM_SHARE,
    ACADEMIC_GRADE_SHARE,
    CERTIFICATION_BONUS,
    FORMAT_BONUS,
    FREE_COST_BONUS,
    PARTIAL_COST_BONUS,
    PARTIAL_CREDIT,
    PRIORITY_BONUS,
    PRIORITY_BONUS_THRESHOLD,
    STIPEND_BONUS,
    WeightTables,
)

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100
CHANCE_HIGH_THRESHOLD = 70
CHANCE_MEDIUM_THRESHOLD = 40
KCSE_GRADE_ORDER = ("E", "D-", "D", "D+", "C-", "C", "C+", "B-", "B", "B+", "A-", "A")
FALLBACK_REASON = "General eligibility criteria met"

FIELD_FALLBACK_CREDIT = 0.8
WANTED_SKILLS_CREDIT = 0.7
INTERNSHIP_WANTED_CREDIT = 0.6
FLEXIBLE_SCHEDULE_CREDIT = 0.7
REMOTE_LOCATION_CREDIT = 0.5
ADVANCED_SKILL_COUNT = 3

_UNIVERSAL_MARKER = "all"
_OPEN_EXPERIENCE_LEVELS = frozenset({"", "any", "beginner", "none"})
_CONDITION_REASONS = {
    "orphan": "Supports orphaned students",
    "single_parent": "Supports single-parent families",
    "disability": "Supports students with disabilities",
}

Credit = tuple[float, "str | None"]


@dataclass(slots=True)
class ScoreBreakdown:
    score: int
    reasons: list[str]
    steps: list[str]
    chance: str


@dataclass(slots=True)
class _Tally:
    points: float = 0.0
    reasons: list[str] = field(default_factory=list)

    def add(self, weight: float, credit: Credit) -> None:
        value, reason = credit
        self.points += weight * value
        if reason:
            self.reasons.append(reason)

    def bonus(self, points: float, reason: str | None = None) -> None:
        self.points += points
        if reason:
            self.reasons.append(reason)


def estimate_chance(score: int) -> str:
    if score >= CHANCE_HIGH_THRESHOLD:
        return "high"
    if score >= CHANCE_MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def clamp_score(points: float) -> int:
    rounded = math.floor(points + 0.5)
    return max(MIN_SCORE, min(MAX_SCORE, rounded))


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def _overlaps(left: str, right: str) -> bool:
    a, b = _norm(left), _norm(right)
    return bool(a and b) and (a in b or b in a)


def _any_overlap(lefts: Iterable[str], rights: Iterable[str]) -> bool:
    right_values = list(rights)
    return any(_overlaps(left, right) for left in lefts for right in right_values)


def _mentioned_in(terms: Iterable[str], text: str) -> bool:
    return any(_norm(term) and _norm(term) in text for term in terms)


def _location_credit(eligibility: Eligibility, profile: MatchProfile, *, remote: bool = False) -> Credit:
    counties = eligibility.counties or []
    if not counties or not profile.county:
        return PARTIAL_CREDIT, None
    county = _norm(profile.county)
    if any(_norm(item) in (county, _UNIVERSAL_MARKER) for item in counties):
        return 1.0, f"Available in {profile.county} County"
    if remote:
        return REMOTE_LOCATION_CREDIT, None
    return 0.0, None


def _career_credit(eligibility: Eligibility, profile: MatchProfile) -> Credit:
    if not eligibility.career_interests or not profile.career_interest:
        return PARTIAL_CREDIT, None
    if _any_overlap(eligibility.career_interests, [profile.career_interest]):
        return 1.0, f"Matches your career interest: {profile.career_interest}"
    return 0.0, None


def _field_credit(eligibility: Eligibility, profile: MatchProfile) -> Credit:
    if not eligibility.field_of_study or not profile.field_of_study:
        return PARTIAL_CREDIT, None
    if _any_overlap(eligibility.field_of_study, [profile.field_of_study]):
        return 1.0, f"Matches your field of study: {profile.field_of_study}"
    return 0.0, None


def _grade_credit(eligibility: Eligibility, profile: MatchProfile) -> Credit:
    if profile.grade is None or (eligibility.min_grade is None and eligibility.max_grade is None):
        return PARTIAL_CREDIT, None
    if eligibility.min_grade is not None and profile.grade < eligibility.min_grade:
        return 0.0, None
    if eligibility.max_grade is not None and profile.grade > eligibility.max_grade:
        return 0.0, None
    return 1.0, f"Suitable for Grade {profile.grade} students"


def _curriculum_credit(eligibility: Eligibility, profile: MatchProfile) -> Credit:
    if not eligibility.curriculum or not profile.curriculum:
        return PARTIAL_CREDIT, None
    if any(_norm(item) == _norm(profile.curriculum) for item in eligibility.curriculum):
        return 1.0, f"Follows the {profile.curriculum} curriculum"
    return 0.0, None


def _kcse_rank(grade: str | None) -> int | None:
    cleaned = (grade or "").strip().upper()
    if cleaned not in KCSE_GRADE_ORDER:
        return None
    return KCSE_GRADE_ORDER.index(cleaned)


def _exam_credit(eligibility: Eligibility, profile: MatchProfile) -> Credit:
    checks: list[bool] = []
    if eligibility.min_kcpe is not None and profile.kcpe_score is not None:
        checks.append(profile.kcpe_score >= eligibility.min_kcpe)
    required_rank = _kcse_rank(eligibility.min_kcse)
    profile_rank = _kcse_rank(profile.kcse_grade)
    if required_rank is not None and profile_rank is not None:
        checks.append(profile_rank >= required_rank)
    if not checks:
        return PARTIAL_CREDIT, None
    if all(checks):
        return 1.0, "Meets the minimum exam requirements"
    return 0.0, None


def _score_default(profile: MatchProfile, record: OpportunityRecord, weights: WeightTables) -> _Tally:
    table = weights.default
    eligibility = record.eligibility
    tally = _Tally()

    tally.add(table.location, _location_credit(eligibility, profile))

    tally.add(table.academic * ACADEMIC_GRADE_SHARE, _grade_credit(eligibility, profile))
    tally.add(table.academic * ACADEMIC_CURRICULUM_SHARE, _curriculum_credit(eligibility, profile))
    tally.add(table.academic * ACADEMIC_EXAM_SHARE, _exam_credit(eligibility, profile))

    if eligibility.career_interests and profile.career_interest:
        tally.add(table.career, _career_credit(eligibility, profile))
    elif eligibility.field_of_study and profile.field_of_study:
        credit, _ = _field_credit(eligibility, profile)
        tally.add(table.career, (credit * FIELD_FALLBACK_CREDIT, None))
    else:
        tally.add(table.career, (PARTIAL_CREDIT, None))

    required = eligibility.skills_required or []
    if required and _any_overlap(required, profile.current_skills):
        tally.add(table.skills, (1.0, "Matches your current skills"))
    elif required and _any_overlap(required, profile.skills_wanted):
        tally.add(table.skills, (WANTED_SKILLS_CREDIT, "Builds skills you want to learn"))
    elif required and (profile.current_skills or profile.skills_wanted):
        tally.add(table.skills, (0.0, None))
    else:
        tally.add(table.skills, (PARTIAL_CREDIT, None))

    tally.add(table.field, _field_credit(eligibility, profile))

    conditions = {_norm(item) for item in eligibility.special_conditions or []}
    for condition in profile.special_conditions:
        reason = _CONDITION_REASONS.get(_norm(condition))
        if reason and _norm(condition) in conditions:
            tally.reasons.append(reason)
    if profile.income_level and any(
        _norm(level) == _norm(profile.income_level) for level in eligibility.income_level or []
    ):
        tally.reasons.append(f"Targets {profile.income_level}-income households")

    if record.priority is not None and record.priority >= PRIORITY_BONUS_THRESHOLD:
        tally.bonus(PRIORITY_BONUS)
    return tally


def _experience_credit(eligibility: Eligibility, profile: MatchProfile) -> Credit:
    level = _norm(eligibility.experience_level)
    if level in _OPEN_EXPERIENCE_LEVELS:
        return 1.0, None
    if not profile.current_skills:
        return PARTIAL_CREDIT, None
    if level == "intermediate":
        return 1.0, "Fits your experience level"
    if level == "advanced" and len(profile.current_skills) >= ADVANCED_SKILL_COUNT:
        return 1.0, "Fits your experience level"
    return 0.0, None


def _format_matches(offered: str | None, preferred: str | None) -> bool:
    if not offered or not preferred:
        return False
    return _norm(preferred) == "any" or _norm(offered) == _norm(preferred)


def _score_bootcamp(profile: MatchProfile, record: OpportunityRecord, weights: WeightTables) -> _Tally:
    table = weights.bootcamp
    eligibility = record.eligibility
    details = record.bootcamp_details
    tally = _Tally()

    tally.add(table.career, _career_credit(eligibility, profile))

    taught = (details.skills_taught if details else None) or []
    if taught and (profile.skills_wanted or profile.learning_goals):
        if _any_overlap(taught, profile.skills_wanted):
            tally.add(table.skills, (1.0, "Teaches skills you want to learn"))
        elif _any_overlap(taught, profile.learning_goals):
            tally.add(table.skills, (WANTED_SKILLS_CREDIT, "Supports your learning goals"))
        else:
            tally.add(table.skills, (0.0, None))
    else:
        tally.add(table.skills, (PARTIAL_CREDIT, None))

    tally.add(table.location, _location_credit(eligibility, profile))

    schedule = details.schedule if details else None
    if schedule and profile.preferred_schedule:
        if _norm(schedule) == _norm(profile.preferred_schedule):
            tally.add(table.schedule, (1.0, f"Fits your {profile.preferred_schedule} schedule"))
        elif "flexible" in (_norm(schedule), _norm(profile.preferred_schedule)):
            tally.add(table.schedule, (FLEXIBLE_SCHEDULE_CREDIT, None))
        else:
            tally.add(table.schedule, (0.0, None))
    else:
        tally.add(table.schedule, (PARTIAL_CREDIT, None))

    tally.add(table.experience, _experience_credit(eligibility, profile))

    cost = _norm(details.cost if details else None)
    if cost == "free":
        tally.bonus(FREE_COST_BONUS, "Free to attend")
    elif "partial" in cost or "scholarship" in cost:
        tally.bonus(PARTIAL_COST_BONUS)
    if details and _format_matches(details.format, profile.preferred_format):
        tally.bonus(FORMAT_BONUS, f"Offered {details.format}")
    return tally


def _score_learning(profile: MatchProfile, record: OpportunityRecord, weights: WeightTables) -> _Tally:
    table = weights.learning
    eligibility = record.eligibility
    details = record.learning_details
    tally = _Tally()

    tally.add(table.career, _career_credit(eligibility, profile))

    text = " ".join(
        _norm(part)
        for part in (
            record.name,
            record.description,
            details.platform if details else None,
            details.course_type if details else None,
        )
    )
    gap = [wanted for wanted in profile.skills_wanted if not _any_overlap([wanted], profile.current_skills)]
    if not gap and not profile.learning_goals:
        tally.add(table.skills_gap, (PARTIAL_CREDIT, None))
    elif gap and _mentioned_in(gap, text):
        tally.add(table.skills_gap, (1.0, "Covers skills you are missing"))
    elif _mentioned_in(profile.learning_goals, text):
        tally.add(table.skills_gap, (WANTED_SKILLS_CREDIT, "Supports your learning goals"))
    else:
        tally.add(table.skills_gap, (0.0, None))

    offered_format = details.format if details else None
    if offered_format and profile.preferred_format:
        if _format_matches(offered_format, profile.preferred_format):
            tally.add(table.format, (1.0, f"Offered {offered_format}"))
        else:
            tally.add(table.format, (0.0, None))
    else:
        tally.add(table.format, (PARTIAL_CREDIT, None))

    cost = _norm(details.cost if details else None)
    if cost == "free":
        tally.add(table.cost, (1.0, "Free to attend"))
    elif cost in ("partial", "affordable"):
        tally.add(table.cost, (PARTIAL_CREDIT, None))
    elif cost:
        tally.add(table.cost, (0.0, None))
    else:
        tally.add(table.cost, (PARTIAL_CREDIT, None))

    if details and details.certification:
        tally.bonus(CERTIFICATION_BONUS, "Offers a certificate")
    return tally


def _score_mentorship(profile: MatchProfile, record: OpportunityRecord, weights: WeightTables) -> _Tally:
    table = weights.mentorship
    eligibility = record.eligibility
    details = record.mentorship_details
    tally = _Tally()

    tally.add(table.career, _career_credit(eligibility, profile))

    focus = (details.focus if details else None) or []
    if focus and _any_overlap(focus, profile.current_skills):
        tally.add(table.focus, (1.0, "Mentorship focus matches your skills"))
    elif focus and _any_overlap(focus, profile.skills_wanted):
        tally.add(table.focus, (WANTED_SKILLS_CREDIT, "Mentorship focus covers skills you want"))
    elif focus and (profile.current_skills or profile.skills_wanted):
        tally.add(table.focus, (0.0, None))
    else:
        tally.add(table.focus, (PARTIAL_CREDIT, None))

    tally.add(table.field, _field_credit(eligibility, profile))

    remote = bool(details and _norm(details.format) == "online")
    tally.add(table.location, _location_credit(eligibility, profile, remote=remote))

    if details and _format_matches(details.format, profile.preferred_format):
        tally.bonus(FORMAT_BONUS, f"Offered {details.format}")
    return tally


def _score_internship(profile: MatchProfile, record: OpportunityRecord, weights: WeightTables) -> _Tally:
    table = weights.internship
    eligibility = record.eligibility
    details = record.internship_details
    tally = _Tally()

    tally.add(table.career, _career_credit(eligibility, profile))

    requirements = (details.requirements if details else None) or []
    met = [item for item in requirements if _any_overlap([item], profile.current_skills)]
    if met:
        tally.add(
            table.requirements,
            (len(met) / len(requirements), f"You meet {len(met)} of {len(requirements)} requirements"),
        )
    elif requirements and _any_overlap(requirements, profile.skills_wanted):
        tally.add(table.requirements, (INTERNSHIP_WANTED_CREDIT, "Builds skills you want to learn"))
    elif requirements and (profile.current_skills or profile.skills_wanted):
        tally.add(table.requirements, (0.0, None))
    else:
        tally.add(table.requirements, (PARTIAL_CREDIT, None))

    tally.add(table.field, _field_credit(eligibility, profile))

    remote = bool(details and _norm(details.format) == "remote")
    tally.add(table.location, _location_credit(eligibility, profile, remote=remote))

    if details and details.format and profile.preferred_format:
        remote_for_online = _norm(details.format) == "remote" and _norm(profile.preferred_format) == "online"
        if remote_for_online or _format_matches(details.format, profile.preferred_format):
            tally.bonus(FORMAT_BONUS, f"Offered {details.format}")
    if details and details.stipend:
        tally.bonus(STIPEND_BONUS, "Pays a stipend")
    return tally


_SCORERS = {
    "bootcamp": _score_bootcamp,
    "learning": _score_learning,
    "mentorship": _score_mentorship,
    "internship": _score_internship,
}


def application_steps(record: OpportunityRecord) -> list[str]:
    """Next steps derived only from the opportunity's own fields."""

    steps = [f"Review the requirements for {record.name}"]
    if record.documents:
        steps.append(f"Gather required documents: {', '.join(record.documents)}")
    if record.application_link:
        steps.append(f"Apply online at: {record.application_link}")
    else:
        steps.append(f"Contact {record.provider or 'the provider'} for application details")
    if record.contact_info and record.contact_info.email:
        steps.append(f"Email: {record.contact_info.email}")
    if record.contact_info and record.contact_info.phone:
        steps.append(f"Phone: {record.contact_info.phone}")
    if record.application_deadline:
        steps.append(f"Submit before: {record.application_deadline}")
    return steps


def score_opportunity(
    profile: MatchProfile,
    record: OpportunityRecord,
    weights: WeightTables | None = None,
) -> ScoreBreakdown:
    tables = weights or WeightTables.baseline()
    scorer = _SCORERS.get(record.type, _score_default)
    tally = scorer(profile, record, tables)
    score = clamp_score(tally.points)
    reasons = tally.reasons or [FALLBACK_REASON]
    logger.debug("Scored %s (%s) at %d", record.name, record.type, score)
    return ScoreBreakdown(
        score=score,
        reasons=reasons,
        steps=application_steps(record),
        chance=estimate_chance(score),
    )
