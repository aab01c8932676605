"""Board ⇄ Google task list subscription model."""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class TaskListMapping(Base, TimestampMixin):
    """Which remote task list a principal syncs a board with.

    One list per board per principal, so fan-out results can be keyed by board.
    """

    __tablename__ = "task_list_mappings"
    __table_args__ = (
        UniqueConstraint("principal_id", "board_id", name="uq_task_list_mappings_principal_board"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    principal_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    board_id: Mapped[int] = mapped_column(ForeignKey("boards.id"), nullable=False)
    remote_list_id: Mapped[str] = mapped_column(String(200), nullable=False)
    remote_list_title: Mapped[str] = mapped_column(String(500), nullable=False)
    sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    board: Mapped["Board"] = relationship("Board")

    def __repr__(self) -> str:
        return (
            f"<TaskListMapping(id={self.id}, board_id={self.board_id}, "
            f"remote_list_id='{self.remote_list_id}')>"
        )
