from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol
from uuid import uuid4

from pathfinder.normalize.canonical_id import generate_opportunity_id
from pathfinder.normalize.schema import OpportunityRecord

logger = logging.getLogger(__name__)

PENDING_STATUS = "pending"
_UNKNOWN_SOURCE = "unknown"


class OpportunityStore(Protocol):
    def save(self, payload: Mapping[str, Any]) -> str:
        """Persist one record and return its id; raise on failure."""

    def query(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return stored records whose fields equal every filter value."""


def write_json_atomic(payload: dict[str, Any], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.parent / f"{output_path.name}.{uuid4().hex}.tmp"
    try:
        temp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        temp_path.replace(output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


class JsonFileOpportunityStore:
    """Single-file JSON store keyed by opportunity id."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        return dict(payload.get("opportunities") or {})

    def save(self, payload: Mapping[str, Any]) -> str:
        record_id = str(payload.get("id") or generate_opportunity_id(OpportunityRecord.from_mapping(payload)))
        with self._lock:
            stored = self._load()
            stored[record_id] = {**dict(payload), "id": record_id}
            write_json_atomic({"opportunities": stored}, self.path)
        return record_id

    def query(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        with self._lock:
            stored = self._load()
        criteria = dict(filters or {})
        return [
            record
            for _, record in sorted(stored.items())
            if all(record.get(key) == value for key, value in criteria.items())
        ]


@dataclass(slots=True)
class SyncReport:
    saved_by_source: dict[str, int] = field(default_factory=dict)
    failed_by_source: dict[str, int] = field(default_factory=dict)
    ids: list[str] = field(default_factory=list)

    @property
    def saved(self) -> int:
        return sum(self.saved_by_source.values())

    @property
    def failed(self) -> int:
        return sum(self.failed_by_source.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "saved": self.saved,
            "failed": self.failed,
            "saved_by_source": dict(self.saved_by_source),
            "failed_by_source": dict(self.failed_by_source),
        }


def sync_to_store(records: Iterable[OpportunityRecord], store: OpportunityStore) -> SyncReport:
    """Save aggregated records as unverified, pending entries.

    A failed save is logged and counted; it never aborts the sync.
    """

    report = SyncReport()
    for record in records:
        source = record.source or _UNKNOWN_SOURCE
        payload = {**record.to_dict(), "verified": False, "status": PENDING_STATUS}
        try:
            record_id = store.save(payload)
        except Exception:
            logger.warning("Failed to save %s from %s", record.name, source, exc_info=True)
            report.failed_by_source[source] = report.failed_by_source.get(source, 0) + 1
            continue
        report.saved_by_source[source] = report.saved_by_source.get(source, 0) + 1
        report.ids.append(record_id)
    logger.info("Synced %d records (%d failed)", report.saved, report.failed)
    return report
