from __future__ import annotations

import hashlib
from typing import Optional
from urllib.parse import urlparse

from .schema import OpportunityRecord

_NAME_KEY_LENGTH = 100


def _normalize_text(value: Optional[str]) -> str:
    if value is None:
        return ""
    return " ".join(value.strip().lower().split())


def _normalize_link_domain(link: Optional[str]) -> str:
    if not link:
        return ""

    parsed = urlparse(link.strip())
    host = parsed.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def dedup_key(record: OpportunityRecord) -> str:
    """Key identifying the same real-world opportunity within one aggregation run."""

    link = (record.application_link or "").strip().lower()
    if link:
        return link
    return (record.name or "").strip().lower()[:_NAME_KEY_LENGTH]


def generate_opportunity_id(record: OpportunityRecord) -> str:
    """Build a deterministic opportunity_id from canonical identity fields."""

    payload = "|".join(
        [
            _normalize_text(record.name),
            _normalize_text(record.provider),
            record.type,
            _normalize_text(record.application_deadline),
            _normalize_link_domain(record.application_link),
        ]
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
