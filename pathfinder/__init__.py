"""Opportunity aggregation and profile matching."""

from pathfinder.config import PipelineSettings
from pathfinder.ingest import AggregateResult, FetchOptions, FetchOrchestrator
from pathfinder.normalize.schema import OpportunityRecord
from pathfinder.rank import MatchProfile, MatchResult, match

__all__ = [
    "AggregateResult",
    "FetchOptions",
    "FetchOrchestrator",
    "MatchProfile",
    "MatchResult",
    "OpportunityRecord",
    "PipelineSettings",
    "match",
]
