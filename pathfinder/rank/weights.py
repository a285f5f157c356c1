from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping

WEIGHT_TOTAL = 100.0
WEIGHT_TOLERANCE = 1e-6

# Credit for a criterion left unspecified on either side.
PARTIAL_CREDIT = 0.5

# Academic fit is split between grade range, curriculum and exam thresholds.
ACADEMIC_GRADE_SHARE = 0.5
ACADEMIC_CURRICULUM_SHARE = 0.3
ACADEMIC_EXAM_SHARE = 0.2

PRIORITY_BONUS = 5.0
PRIORITY_BONUS_THRESHOLD = 10
FREE_COST_BONUS = 5.0
PARTIAL_COST_BONUS = 2.0
FORMAT_BONUS = 3.0
CERTIFICATION_BONUS = 3.0
STIPEND_BONUS = 2.0


class _WeightTable:
    __slots__ = ()

    label = "weights"

    def _validate(self) -> None:
        total = 0.0
        for item in fields(self):
            value = float(getattr(self, item.name))
            if not math.isfinite(value):
                raise ValueError(f"{self.label} weight '{item.name}' must be finite.")
            if value < 0.0:
                raise ValueError(f"{self.label} weight '{item.name}' must be >= 0.")
            total += value
        if not math.isclose(total, WEIGHT_TOTAL, abs_tol=WEIGHT_TOLERANCE):
            raise ValueError(
                f"{self.label} weights must sum to {WEIGHT_TOTAL:.0f} "
                f"(received {total:.6f}, tolerance={WEIGHT_TOLERANCE})."
            )

    @classmethod
    def baseline(cls):
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None):
        values = payload or {}
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown {cls.label} weight(s): {', '.join(unknown)}.")
        baseline = cls.baseline()
        return cls(**{name: float(values.get(name, getattr(baseline, name))) for name in sorted(known)})

    def to_dict(self) -> dict[str, float]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


@dataclass(frozen=True, slots=True)
class DefaultWeights(_WeightTable):
    """Scholarship, bursary, grant and loan listings."""

    label = "Default"

    location: float = 20.0
    academic: float = 35.0
    career: float = 20.0
    skills: float = 15.0
    field: float = 10.0

    def __post_init__(self) -> None:
        self._validate()


@dataclass(frozen=True, slots=True)
class BootcampWeights(_WeightTable):
    label = "Bootcamp"

    career: float = 40.0
    skills: float = 30.0
    location: float = 15.0
    schedule: float = 10.0
    experience: float = 5.0

    def __post_init__(self) -> None:
        self._validate()


@dataclass(frozen=True, slots=True)
class LearningWeights(_WeightTable):
    label = "Learning"

    career: float = 35.0
    skills_gap: float = 35.0
    format: float = 20.0
    cost: float = 10.0

    def __post_init__(self) -> None:
        self._validate()


@dataclass(frozen=True, slots=True)
class MentorshipWeights(_WeightTable):
    label = "Mentorship"

    career: float = 40.0
    focus: float = 30.0
    field: float = 20.0
    location: float = 10.0

    def __post_init__(self) -> None:
        self._validate()


@dataclass(frozen=True, slots=True)
class InternshipWeights(_WeightTable):
    label = "Internship"

    career: float = 35.0
    requirements: float = 35.0
    field: float = 20.0
    location: float = 10.0

    def __post_init__(self) -> None:
        self._validate()


_TABLE_KEYS = ("default", "bootcamp", "learning", "mentorship", "internship")


@dataclass(frozen=True, slots=True)
class WeightTables:
    default: DefaultWeights = DefaultWeights()
    bootcamp: BootcampWeights = BootcampWeights()
    learning: LearningWeights = LearningWeights()
    mentorship: MentorshipWeights = MentorshipWeights()
    internship: InternshipWeights = InternshipWeights()

    @classmethod
    def baseline(cls) -> WeightTables:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> WeightTables:
        values = payload or {}
        unknown = sorted(set(values) - set(_TABLE_KEYS))
        if unknown:
            raise ValueError(f"Unknown opportunity type(s) in weights: {', '.join(unknown)}.")
        return cls(
            default=DefaultWeights.from_mapping(values.get("default")),
            bootcamp=BootcampWeights.from_mapping(values.get("bootcamp")),
            learning=LearningWeights.from_mapping(values.get("learning")),
            mentorship=MentorshipWeights.from_mapping(values.get("mentorship")),
            internship=InternshipWeights.from_mapping(values.get("internship")),
        )

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {key: getattr(self, key).to_dict() for key in _TABLE_KEYS}
