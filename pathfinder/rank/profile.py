from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

_GRADE_PATTERN = re.compile(r"(\d{1,2})")
# Secondary "Form N" maps onto the 1-12 grade scale.
_FORM_OFFSET = 8
_CONDITION_FLAGS = {
    "orphan_status": "orphan",
    "orphanStatus": "orphan",
    "single_parent": "single_parent",
    "singleParent": "single_parent",
    "disability": "disability",
}


def _first_present(values: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = values.get(key)
        if value not in (None, "", []):
            return value
    return None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def parse_grade(value: Any) -> int | None:
    """Numeric grade from ints or labels such as ``"Grade 9"`` and ``"Form 3"``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip().lower()
    match = _GRADE_PATTERN.search(text)
    if match is None:
        return None
    number = int(match.group(1))
    if text.startswith("form"):
        return number + _FORM_OFFSET
    return number


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class MatchProfile:
    county: str | None = None
    constituency: str | None = None
    grade: int | None = None
    curriculum: str | None = None
    kcpe_score: int | None = None
    kcse_grade: str | None = None
    career_interest: str | None = None
    field_of_study: str | None = None
    current_skills: tuple[str, ...] = ()
    skills_wanted: tuple[str, ...] = ()
    learning_goals: tuple[str, ...] = ()
    preferred_schedule: str | None = None
    preferred_format: str | None = None
    special_conditions: tuple[str, ...] = ()
    income_level: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> MatchProfile:
        values = payload or {}
        conditions = _as_list(_first_present(values, "special_conditions", "specialConditions"))
        for key, condition in _CONDITION_FLAGS.items():
            if values.get(key) is True and condition not in conditions:
                conditions.append(condition)
        return cls(
            county=_as_text(values.get("county")),
            constituency=_as_text(values.get("constituency")),
            grade=parse_grade(values.get("grade")),
            curriculum=_as_text(values.get("curriculum")),
            kcpe_score=_as_int(_first_present(values, "kcpe_score", "kcpeScore")),
            kcse_grade=_as_text(_first_present(values, "kcse_grade", "kcseGrade")),
            career_interest=_as_text(_first_present(values, "career_interest", "careerInterest")),
            field_of_study=_as_text(_first_present(values, "field_of_study", "preferredField", "fieldOfStudy")),
            current_skills=tuple(_as_list(_first_present(values, "current_skills", "currentSkills"))),
            skills_wanted=tuple(_as_list(_first_present(values, "skills_wanted", "skillsWanted"))),
            learning_goals=tuple(_as_list(_first_present(values, "learning_goals", "learningGoals"))),
            preferred_schedule=_as_text(
                _first_present(values, "preferred_schedule", "timeAvailability", "preferredSchedule")
            ),
            preferred_format=_as_text(_first_present(values, "preferred_format", "preferredFormat")),
            special_conditions=tuple(conditions),
            income_level=_as_text(_first_present(values, "income_level", "incomeLevel")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "county": self.county,
            "constituency": self.constituency,
            "grade": self.grade,
            "curriculum": self.curriculum,
            "kcpe_score": self.kcpe_score,
            "kcse_grade": self.kcse_grade,
            "career_interest": self.career_interest,
            "field_of_study": self.field_of_study,
            "current_skills": list(self.current_skills),
            "skills_wanted": list(self.skills_wanted),
            "learning_goals": list(self.learning_goals),
            "preferred_schedule": self.preferred_schedule,
            "preferred_format": self.preferred_format,
            "special_conditions": list(self.special_conditions),
            "income_level": self.income_level,
        }
