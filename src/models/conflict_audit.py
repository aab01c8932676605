"""Append-only audit trail of sync conflicts."""

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utc_now


class AuditEventType(str, enum.Enum):
    """Kind of audited sync event."""

    SYNC_CONFLICT = "sync_conflict"


class ConflictWinner(str, enum.Enum):
    """Side whose data overwrote the other."""

    REMOTE = "remote"
    LOCAL = "local"


class ConflictAuditEntry(Base):
    """Snapshot of both sides of a conflicting pair, taken before the overwrite.

    Never updated after insert.
    """

    __tablename__ = "sync_audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("cards.id"), nullable=False, index=True)
    mapping_id: Mapped[int] = mapped_column(
        ForeignKey("card_sync_mappings.id"), nullable=False, index=True
    )
    event_type: Mapped[AuditEventType] = mapped_column(
        SQLEnum(AuditEventType, native_enum=False), nullable=False
    )
    remote_task_id: Mapped[str] = mapped_column(String(200), nullable=False)

    local_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    remote_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    winner: Mapped[ConflictWinner] = mapped_column(
        SQLEnum(ConflictWinner, native_enum=False), nullable=False
    )
    resolution: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ConflictAuditEntry(id={self.id}, card_id={self.card_id}, "
            f"winner={self.winner.value})>"
        )
