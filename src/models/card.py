"""Card model."""

import enum
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class CardStatus(str, enum.Enum):
    """Card completion state."""

    PENDING = "pending"
    COMPLETED = "completed"


class CardPriority(str, enum.Enum):
    """Card priority enum."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Card(Base, TimestampMixin):
    """A unit of work on a board column."""

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True)
    board_id: Mapped[int] = mapped_column(ForeignKey("boards.id"), nullable=False)
    column_id: Mapped[int] = mapped_column(ForeignKey("board_columns.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[CardStatus] = mapped_column(
        SQLEnum(CardStatus, native_enum=False), default=CardStatus.PENDING, nullable=False
    )
    priority: Mapped[CardPriority | None] = mapped_column(
        SQLEnum(CardPriority, native_enum=False), nullable=True
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    board: Mapped["Board"] = relationship("Board", back_populates="cards")
    column: Mapped["BoardColumn"] = relationship("BoardColumn")

    @property
    def is_completed(self) -> bool:
        return self.status == CardStatus.COMPLETED

    def __repr__(self) -> str:
        return f"<Card(id={self.id}, title='{self.title}', status={self.status.value})>"
