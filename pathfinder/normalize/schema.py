from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Mapping

OPPORTUNITY_TYPES = (
    "scholarship",
    "bursary",
    "loan",
    "grant",
    "bootcamp",
    "learning",
    "mentorship",
    "internship",
)
DEFAULT_OPPORTUNITY_TYPE = "scholarship"

_CAMEL_PATTERN = re.compile(r"_([a-z0-9])")
# Boundary payloads spell a few acronyms in upper case.
_KEY_ALIASES = {
    "min_kcpe": "minKCPE",
    "min_kcse": "minKCSE",
}


def to_camel(name: str) -> str:
    return _CAMEL_PATTERN.sub(lambda match: match.group(1).upper(), name)


def _json_key(name: str) -> str:
    return _KEY_ALIASES.get(name, to_camel(name))


def is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    if is_dataclass(value):
        return all(is_absent(getattr(value, item.name)) for item in fields(value))
    return False


def _as_str_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip()
        return [cleaned] if cleaned else None
    if isinstance(value, (list, tuple, set)):
        items = [str(item).strip() for item in value if item is not None and str(item).strip()]
        return items or None
    return None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
        return None
    return bool(value)


def _coerce(kind: str, value: Any) -> Any:
    if value is None:
        return None
    base_kind = kind.split("|")[0].strip()
    if base_kind == "list[str]":
        return _as_str_list(value)
    if base_kind == "int":
        return _as_int(value)
    if base_kind == "bool":
        return _as_bool(value)
    if base_kind == "str":
        text = str(value).strip()
        return text or None
    nested = _NESTED_TYPES.get(base_kind)
    if nested is not None:
        if isinstance(value, nested):
            return value
        if isinstance(value, Mapping):
            return nested.from_mapping(value)
        return None
    return value


def _lookup(payload: Mapping[str, Any], name: str) -> Any:
    for key in (name, to_camel(name), _KEY_ALIASES.get(name)):
        if key and key in payload:
            return payload[key]
    return None


def _build(cls: type, payload: Mapping[str, Any] | None) -> Any:
    values = payload or {}
    kwargs: dict[str, Any] = {}
    for item in fields(cls):
        coerced = _coerce(str(item.type), _lookup(values, item.name))
        if coerced is not None:
            kwargs[item.name] = coerced
    return cls(**kwargs)


def _dump(obj: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for item in fields(obj):
        value = getattr(obj, item.name)
        if value is None:
            continue
        if is_dataclass(value):
            nested = _dump(value)
            if nested:
                payload[_json_key(item.name)] = nested
            continue
        if isinstance(value, list):
            payload[_json_key(item.name)] = list(value)
            continue
        payload[_json_key(item.name)] = value
    return payload


class _MappingMixin:
    __slots__ = ()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None):
        return _build(cls, payload)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


@dataclass(slots=True)
class Eligibility(_MappingMixin):
    counties: list[str] | None = None
    constituencies: list[str] | None = None
    countries: list[str] | None = None
    min_grade: int | None = None
    max_grade: int | None = None
    curriculum: list[str] | None = None
    min_kcpe: int | None = None
    min_kcse: str | None = None
    income_level: list[str] | None = None
    special_conditions: list[str] | None = None
    field_of_study: list[str] | None = None
    career_interests: list[str] | None = None
    skills_required: list[str] | None = None
    experience_level: str | None = None


@dataclass(slots=True)
class BootcampDetails(_MappingMixin):
    duration: str | None = None
    format: str | None = None
    schedule: str | None = None
    skills_taught: list[str] | None = None
    certification: bool | None = None
    certification_type: str | None = None
    prerequisites: list[str] | None = None
    cost: str | None = None
    cost_amount: str | None = None


@dataclass(slots=True)
class LearningDetails(_MappingMixin):
    course_type: str | None = None
    platform: str | None = None
    duration: str | None = None
    format: str | None = None
    certification: bool | None = None
    cost: str | None = None
    cost_amount: str | None = None
    language: list[str] | None = None


@dataclass(slots=True)
class MentorshipDetails(_MappingMixin):
    duration: str | None = None
    format: str | None = None
    frequency: str | None = None
    mentor_type: str | None = None
    focus: list[str] | None = None


@dataclass(slots=True)
class InternshipDetails(_MappingMixin):
    duration: str | None = None
    format: str | None = None
    stipend: bool | None = None
    stipend_amount: str | None = None
    application_method: str | None = None
    requirements: list[str] | None = None


@dataclass(slots=True)
class ContactInfo(_MappingMixin):
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    website: str | None = None
    source: str | None = None


@dataclass(slots=True)
class OpportunityRecord(_MappingMixin):
    """A single listing as produced by a source adapter.

    Every field except ``name`` may be absent; adapters fill what the markup
    exposes and the normalizer repairs the rest.
    """

    name: str = ""
    provider: str | None = None
    type: str = DEFAULT_OPPORTUNITY_TYPE
    description: str | None = None
    amount: str | None = None
    duration: str | None = None
    application_deadline: str | None = None
    application_link: str | None = None
    eligibility: Eligibility = field(default_factory=Eligibility)
    bootcamp_details: BootcampDetails | None = None
    learning_details: LearningDetails | None = None
    mentorship_details: MentorshipDetails | None = None
    internship_details: InternshipDetails | None = None
    contact_info: ContactInfo | None = None
    requirements: list[str] = field(default_factory=list)
    documents: list[str] = field(default_factory=list)
    notes: str | None = None
    priority: int | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        normalized_type = (self.type or "").strip().lower()
        self.type = normalized_type if normalized_type in OPPORTUNITY_TYPES else DEFAULT_OPPORTUNITY_TYPE


_NESTED_TYPES: dict[str, type] = {
    "Eligibility": Eligibility,
    "BootcampDetails": BootcampDetails,
    "LearningDetails": LearningDetails,
    "MentorshipDetails": MentorshipDetails,
    "InternshipDetails": InternshipDetails,
    "ContactInfo": ContactInfo,
}
