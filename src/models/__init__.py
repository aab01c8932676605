"""SQLAlchemy models for the kanban sync service."""

from .base import Base, TimestampMixin
from .board import Board, BoardColumn
from .card import Card, CardPriority, CardStatus
from .conflict_audit import AuditEventType, ConflictAuditEntry, ConflictWinner
from .sync_mapping import MappingSyncStatus, SyncMapping
from .task_list_mapping import TaskListMapping

__all__ = [
    "Base",
    "TimestampMixin",
    "Board",
    "BoardColumn",
    "Card",
    "CardStatus",
    "CardPriority",
    "SyncMapping",
    "MappingSyncStatus",
    "TaskListMapping",
    "ConflictAuditEntry",
    "AuditEventType",
    "ConflictWinner",
]
