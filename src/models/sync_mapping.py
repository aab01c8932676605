"""Sync mapping model: the durable card ⇄ remote task join."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, utc_now


class MappingSyncStatus(str, enum.Enum):
    """Outcome of the last pass that touched a mapped pair."""

    SYNCED = "synced"
    CONFLICT = "conflict"
    ERROR = "error"


class SyncMapping(Base, TimestampMixin):
    """Associates one card with one Google task inside one task list.

    Rows are created the first time a pair is mirrored and are never deleted by
    the sync engine; `sync_enabled` switches a pair off while keeping history.
    """

    __tablename__ = "card_sync_mappings"
    __table_args__ = (
        UniqueConstraint("card_id", "remote_list_id", name="uq_card_sync_mappings_card_list"),
        UniqueConstraint(
            "remote_task_id", "remote_list_id", name="uq_card_sync_mappings_task_list"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("cards.id"), nullable=False, index=True)
    remote_task_id: Mapped[str] = mapped_column(String(200), nullable=False)
    remote_list_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    last_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    last_remote_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_local_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    sync_status: Mapped[MappingSyncStatus] = mapped_column(
        SQLEnum(MappingSyncStatus, native_enum=False),
        default=MappingSyncStatus.SYNCED,
        nullable=False,
    )
    sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    card: Mapped["Card"] = relationship("Card")

    def __repr__(self) -> str:
        return (
            f"<SyncMapping(id={self.id}, card_id={self.card_id}, "
            f"remote_task_id='{self.remote_task_id}', status={self.sync_status.value})>"
        )
