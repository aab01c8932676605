"""Service layer with business logic."""

from .sync import SyncResult, SyncService

__all__ = [
    "SyncService",
    "SyncResult",
]
