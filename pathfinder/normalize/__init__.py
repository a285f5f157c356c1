"""Record schema, cleanup and within-run deduplication."""

from pathfinder.normalize.clean import is_usable_name, normalize_records
from pathfinder.normalize.dedupe import deduplicate
from pathfinder.normalize.schema import OPPORTUNITY_TYPES, OpportunityRecord

__all__ = ["OPPORTUNITY_TYPES", "OpportunityRecord", "deduplicate", "is_usable_name", "normalize_records"]
