"""Services that orchestrate ingestion and persistence."""

from archv.services.sync_service import SyncReport, SyncService

__all__ = ["SyncReport", "SyncService"]
