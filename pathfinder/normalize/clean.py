from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable

from .schema import OpportunityRecord

logger = logging.getLogger(__name__)

DEFAULT_MIN_DESCRIPTION_LENGTH = 50
_MIN_NAME_LENGTH = 3
_HEADER_NAME_MAX_LENGTH = 50
_HEADER_TOKENS = frozenset(
    {"SCHOLARSHIP", "SCHOLARSHIPS", "COUNTRY", "DEADLINE", "NAME", "DURATION", "TYPE", "LINK"}
)

_WS_PATTERN = re.compile(r"\s+")
_WORD_PATTERN = re.compile(r"[A-Za-z]+")

KNOWN_COUNTRIES = (
    "Kenya",
    "China",
    "Japan",
    "Korea",
    "India",
    "Germany",
    "France",
    "Italy",
    "Spain",
    "Netherlands",
    "Sweden",
    "Norway",
    "Denmark",
    "Finland",
    "Ireland",
    "Canada",
    "Australia",
    "Russia",
    "Turkey",
    "Egypt",
    "Morocco",
    "Algeria",
    "Tunisia",
    "Hungary",
    "Poland",
    "Belgium",
    "Austria",
    "Switzerland",
    "Singapore",
    "Malaysia",
    "Mauritius",
    "Uganda",
    "Tanzania",
    "Rwanda",
)
_COUNTRY_PATTERN = re.compile(
    r"\b(" + "|".join(country.upper() for country in KNOWN_COUNTRIES) + r")\b"
)
_COUNTRY_BY_UPPER = {country.upper(): country for country in KNOWN_COUNTRIES}


def collapse_whitespace(value: str | None) -> str:
    if not value:
        return ""
    return _WS_PATTERN.sub(" ", value).strip()


def is_usable_name(name: str | None) -> bool:
    cleaned = collapse_whitespace(name)
    if len(cleaned) < _MIN_NAME_LENGTH:
        return False
    if cleaned.isupper() and len(cleaned) < _HEADER_NAME_MAX_LENGTH:
        tokens = {token.upper() for token in _WORD_PATTERN.findall(cleaned)}
        if tokens & _HEADER_TOKENS:
            return False
    return True


def remove_repeated_tokens(value: str) -> str:
    """Undo doubling left behind by naive text extraction.

    Handles a whole string repeated twice ("Foo BarFoo Bar", "Foo Bar Foo Bar")
    and adjacent duplicate words ("Kenya Kenya").
    """

    text = collapse_whitespace(value)
    if not text:
        return ""

    length = len(text)
    if length % 2 == 0 and text[: length // 2] == text[length // 2 :]:
        text = text[: length // 2].strip()
    words = text.split(" ")
    if len(words) % 2 == 0:
        half = len(words) // 2
        if [word.lower() for word in words[:half]] == [word.lower() for word in words[half:]]:
            words = words[:half]

    deduped: list[str] = []
    for word in words:
        if deduped and deduped[-1].lower() == word.lower():
            continue
        deduped.append(word)
    return " ".join(deduped)


def titlecase_countries(value: str) -> str:
    return _COUNTRY_PATTERN.sub(lambda match: _COUNTRY_BY_UPPER[match.group(1)], value)


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = titlecase_countries(remove_repeated_tokens(value))
    return cleaned or None


def _clean_list(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    cleaned = [item for item in (_clean_text(value) for value in values) if item]
    return cleaned or None


def synthesize_description(record: OpportunityRecord) -> str:
    parts: list[str] = []
    region = record.eligibility.countries or record.eligibility.counties
    type_label = record.type.capitalize()
    if region:
        parts.append(f"{type_label} opportunity in {', '.join(region)}")
    else:
        parts.append(f"{type_label} opportunity")
    if record.duration:
        parts.append(f"Duration: {record.duration}")
    if record.amount:
        parts.append(f"Amount: {record.amount}")
    return ". ".join(parts)


def normalize_record(
    record: OpportunityRecord,
    *,
    min_description_length: int = DEFAULT_MIN_DESCRIPTION_LENGTH,
) -> OpportunityRecord | None:
    name = _clean_text(record.name)
    if not is_usable_name(name):
        return None

    eligibility = replace(
        record.eligibility,
        countries=_clean_list(record.eligibility.countries),
        counties=_clean_list(record.eligibility.counties),
    )
    cleaned = replace(
        record,
        name=name,
        provider=_clean_text(record.provider),
        duration=_clean_text(record.duration),
        amount=_clean_text(record.amount),
        application_link=collapse_whitespace(record.application_link) or None,
        eligibility=eligibility,
    )

    description = collapse_whitespace(record.description)
    if len(description) < min_description_length:
        synthesized = synthesize_description(cleaned)
        description = synthesized if len(synthesized) > len(description) else description
    return replace(cleaned, description=description or None)


def normalize_records(
    records: Iterable[OpportunityRecord],
    *,
    min_description_length: int = DEFAULT_MIN_DESCRIPTION_LENGTH,
) -> list[OpportunityRecord]:
    normalized: list[OpportunityRecord] = []
    dropped = 0
    for record in records:
        cleaned = normalize_record(record, min_description_length=min_description_length)
        if cleaned is None:
            dropped += 1
            continue
        normalized.append(cleaned)
    if dropped:
        logger.info("Dropped %d records without a usable name", dropped)
    return normalized
