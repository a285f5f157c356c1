from __future__ import annotations

import json
import logging
from dataclasses import fields, replace
from typing import Any, Iterable

from .canonical_id import dedup_key
from .schema import OpportunityRecord, is_absent

logger = logging.getLogger(__name__)

# Nested blocks merged sub-field by sub-field instead of as a whole.
_FIELDWISE_BLOCKS = ("eligibility", "contact_info")


def completeness(record: OpportunityRecord) -> int:
    filled = 0
    for item in fields(record):
        value = getattr(record, item.name)
        if item.name in _FIELDWISE_BLOCKS and value is not None:
            filled += sum(1 for sub in fields(value) if not is_absent(getattr(value, sub.name)))
        elif not is_absent(value):
            filled += 1
    return filled


def _canonical_order(record: OpportunityRecord) -> tuple[int, str]:
    return -completeness(record), json.dumps(record.to_dict(), sort_keys=True)


def _fill_block(base: Any, other: Any) -> Any:
    if base is None:
        return other
    if other is None:
        return base
    updates = {
        item.name: getattr(other, item.name)
        for item in fields(base)
        if is_absent(getattr(base, item.name)) and not is_absent(getattr(other, item.name))
    }
    return replace(base, **updates) if updates else base


def merge_group(records: list[OpportunityRecord]) -> OpportunityRecord:
    """Merge records sharing a dedup key into one record.

    Members are put in a canonical order first (most complete, then by their
    serialized form), so the outcome does not depend on arrival order. The
    longest description wins; every other absent field is filled from the
    next member that has it.
    """

    ordered = sorted(records, key=_canonical_order)
    merged = ordered[0]
    for other in ordered[1:]:
        updates: dict[str, Any] = {}
        for item in fields(merged):
            if item.name == "description":
                continue
            current = getattr(merged, item.name)
            incoming = getattr(other, item.name)
            if item.name in _FIELDWISE_BLOCKS:
                combined = _fill_block(current, incoming)
                if combined is not current:
                    updates[item.name] = combined
            elif is_absent(current) and not is_absent(incoming):
                updates[item.name] = incoming
        if updates:
            merged = replace(merged, **updates)

    descriptions = [record.description for record in ordered if not is_absent(record.description)]
    if descriptions:
        merged = replace(merged, description=max(descriptions, key=len))
    return merged


def deduplicate(records: Iterable[OpportunityRecord]) -> list[OpportunityRecord]:
    groups: dict[str, list[OpportunityRecord]] = {}
    for record in records:
        groups.setdefault(dedup_key(record), []).append(record)

    merged = [merge_group(groups[key]) for key in sorted(groups)]
    logger.debug("Deduplicated into %d records from %d keys", len(merged), len(groups))
    return merged
