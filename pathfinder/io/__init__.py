"""Persistence helpers for syncing aggregated records."""

from pathfinder.io.store import JsonFileOpportunityStore, OpportunityStore, SyncReport, sync_to_store

__all__ = ["JsonFileOpportunityStore", "OpportunityStore", "SyncReport", "sync_to_store"]
