"""Repository layer for data access."""

from .base import BaseRepository
from .board import BoardColumnRepository, BoardRepository, CardRepository
from .sync import ConflictAuditRepository, SyncMappingRepository, TaskListMappingRepository

__all__ = [
    "BaseRepository",
    "BoardRepository",
    "BoardColumnRepository",
    "CardRepository",
    "SyncMappingRepository",
    "TaskListMappingRepository",
    "ConflictAuditRepository",
]
