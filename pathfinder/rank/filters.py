from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping

import pandas as pd

from pathfinder.config import coerce_flag
from pathfinder.normalize.schema import OpportunityRecord

DEFAULT_HOME_REGION = "Kenya"
_UNIVERSAL_MARKER = "all"
_AMOUNT_PATTERN = re.compile(r"[\d,]+")


@dataclass(frozen=True, slots=True)
class RelevanceFilters:
    query: str | None = None
    kenyan_only: bool = False
    min_amount: float | None = None
    upcoming_only: bool = False
    home_region: str = DEFAULT_HOME_REGION

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> RelevanceFilters:
        values = payload or {}
        min_amount = values.get("min_amount", values.get("minAmount"))
        query = values.get("query")
        return cls(
            query=(str(query).strip() or None) if query is not None else None,
            kenyan_only=coerce_flag(values.get("kenyan_only", values.get("kenyanOnly", False))),
            min_amount=float(min_amount) if min_amount not in (None, "") else None,
            upcoming_only=coerce_flag(values.get("upcoming_only", values.get("upcomingOnly", False))),
            home_region=str(values.get("home_region") or DEFAULT_HOME_REGION),
        )


def matches_query(record: OpportunityRecord, query: str | None) -> bool:
    if not query or not query.strip():
        return True
    needle = query.strip().lower()
    haystacks = [record.name, record.provider or "", record.description or ""]
    haystacks.extend(record.eligibility.countries or [])
    return any(needle in value.lower() for value in haystacks)


def is_in_region(record: OpportunityRecord, home_region: str = DEFAULT_HOME_REGION) -> bool:
    """False only when the record lists regions and none of them is home or universal."""

    countries = record.eligibility.countries or []
    if not countries:
        return True
    region = home_region.strip().lower()
    for country in countries:
        lowered = country.strip().lower()
        if lowered == _UNIVERSAL_MARKER or region in lowered:
            return True
    return False


def parse_amount(amount: str | None) -> float:
    """First digit run of a free-text amount, thousands separators removed; 0 when absent."""

    if not amount:
        return 0.0
    for match in _AMOUNT_PATTERN.finditer(amount):
        digits = match.group(0).replace(",", "")
        if digits:
            return float(digits)
    return 0.0


def has_upcoming_deadline(record: OpportunityRecord, *, today: date | None = None) -> bool:
    if not record.application_deadline:
        return False
    deadline = pd.to_datetime(record.application_deadline, errors="coerce", utc=True)
    if pd.isna(deadline):
        return False
    reference = today or date.today()
    return deadline.date() > reference


def apply_filters(
    records: Iterable[OpportunityRecord],
    filters: RelevanceFilters,
    *,
    today: date | None = None,
) -> list[OpportunityRecord]:
    filtered: list[OpportunityRecord] = []
    for record in records:
        if not matches_query(record, filters.query):
            continue
        if filters.kenyan_only and not is_in_region(record, filters.home_region):
            continue
        if filters.min_amount is not None and parse_amount(record.amount) < filters.min_amount:
            continue
        if filters.upcoming_only and not has_upcoming_deadline(record, today=today):
            continue
        filtered.append(record)
    return filtered
