"""Sync repositories: card mappings, task-list mappings and the conflict audit log."""

from typing import Any

from sqlalchemy import and_, delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.logging import get_logger
from ..models import Card, ConflictAuditEntry, SyncMapping, TaskListMapping
from .base import BaseRepository

logger = get_logger(__name__)


def _owned_by(principal_id: str):
    """EXISTS clause: the pair lies inside one of the principal's board subscriptions.

    The enclosing query must select from SyncMapping joined to Card.
    """
    return (
        select(TaskListMapping.id)
        .where(
            TaskListMapping.principal_id == principal_id,
            TaskListMapping.board_id == Card.board_id,
            TaskListMapping.remote_list_id == SyncMapping.remote_list_id,
        )
        .exists()
    )


class SyncMappingRepository(BaseRepository[SyncMapping]):
    """Repository for card ⇄ remote task mappings."""

    def __init__(self, db: AsyncSession):
        super().__init__(SyncMapping, db)

    async def get_by_list(self, remote_list_id: str) -> list[SyncMapping]:
        """Get every mapping that points into a remote task list."""
        result = await self.db.execute(
            select(SyncMapping)
            .where(SyncMapping.remote_list_id == remote_list_id)
            .order_by(SyncMapping.id)
        )
        return list(result.scalars().all())

    async def get_by_card_ids(self, card_ids: list[int]) -> list[SyncMapping]:
        """Get the mappings of the given cards, in any task list."""
        if not card_ids:
            return []

        result = await self.db.execute(
            select(SyncMapping).where(SyncMapping.card_id.in_(card_ids)).order_by(SyncMapping.id)
        )
        return list(result.scalars().all())

    async def get_by_board(
        self, board_id: int, principal_id: str | None = None
    ) -> list[SyncMapping]:
        """Get all mappings of the cards on a board, optionally only the principal's."""
        query = (
            select(SyncMapping)
            .join(Card, Card.id == SyncMapping.card_id)
            .where(Card.board_id == board_id)
        )
        if principal_id is not None:
            query = query.where(_owned_by(principal_id))

        result = await self.db.execute(query.order_by(SyncMapping.id))
        return list(result.scalars().all())

    async def get_for_principal(self, mapping_id: int, principal_id: str) -> SyncMapping | None:
        """Get a mapping by ID if it belongs to the principal."""
        result = await self.db.execute(
            select(SyncMapping)
            .join(Card, Card.id == SyncMapping.card_id)
            .where(SyncMapping.id == mapping_id, _owned_by(principal_id))
        )
        return result.scalar_one_or_none()

    async def get_by_card_and_list(self, card_id: int, remote_list_id: str) -> SyncMapping | None:
        """Get the single mapping of a card inside a list."""
        result = await self.db.execute(
            select(SyncMapping).where(
                and_(
                    SyncMapping.card_id == card_id,
                    SyncMapping.remote_list_id == remote_list_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_by_task_and_list(
        self, remote_task_id: str, remote_list_id: str
    ) -> SyncMapping | None:
        """Get the single mapping of a remote task inside a list."""
        result = await self.db.execute(
            select(SyncMapping).where(
                and_(
                    SyncMapping.remote_task_id == remote_task_id,
                    SyncMapping.remote_list_id == remote_list_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def create_or_get(self, mapping: SyncMapping) -> tuple[SyncMapping, bool]:
        """Insert a mapping, or return the row a concurrent pass already inserted.

        The insert runs in a SAVEPOINT so a unique-constraint violation leaves
        the surrounding transaction usable.

        Returns:
            (mapping, created) where created is False if an existing row was returned
        """
        try:
            async with self.db.begin_nested():
                self.db.add(mapping)
                await self.db.flush()
        except IntegrityError:
            existing = await self.get_by_card_and_list(
                mapping.card_id, mapping.remote_list_id
            ) or await self.get_by_task_and_list(mapping.remote_task_id, mapping.remote_list_id)
            if existing is None:
                raise
            logger.warning(
                "Sync mapping already exists, reusing it",
                extra={
                    "mapping_id": existing.id,
                    "card_id": mapping.card_id,
                    "remote_task_id": mapping.remote_task_id,
                },
            )
            return existing, False

        await self.db.refresh(mapping)
        return mapping, True


class TaskListMappingRepository(BaseRepository[TaskListMapping]):
    """Repository for board ⇄ task list subscriptions."""

    def __init__(self, db: AsyncSession):
        super().__init__(TaskListMapping, db)

    async def get_by_principal(
        self, principal_id: str, enabled_only: bool = False
    ) -> list[TaskListMapping]:
        """Get the task list mappings owned by a principal."""
        query = select(TaskListMapping).where(TaskListMapping.principal_id == principal_id)
        if enabled_only:
            query = query.where(TaskListMapping.sync_enabled.is_(True))

        result = await self.db.execute(query.order_by(TaskListMapping.id))
        return list(result.scalars().all())

    async def get_for_board(self, principal_id: str, board_id: int) -> TaskListMapping | None:
        """Get the principal's mapping for one board."""
        result = await self.db.execute(
            select(TaskListMapping).where(
                and_(
                    TaskListMapping.principal_id == principal_id,
                    TaskListMapping.board_id == board_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def delete_for_principal(self, mapping_id: int, principal_id: str) -> bool:
        """Delete a mapping only if it belongs to the principal."""
        result = await self.db.execute(
            delete(TaskListMapping).where(
                and_(
                    TaskListMapping.id == mapping_id,
                    TaskListMapping.principal_id == principal_id,
                )
            )
        )
        return result.rowcount > 0


class ConflictAuditRepository(BaseRepository[ConflictAuditEntry]):
    """Append-only access to the conflict audit log.

    Entries are only ever inserted and read.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(ConflictAuditEntry, db)

    async def update(self, id: int, **kwargs: Any) -> ConflictAuditEntry | None:
        raise NotImplementedError("Conflict audit entries are append-only")

    async def get_recent(
        self,
        card_id: int | None = None,
        limit: int = 50,
        principal_id: str | None = None,
    ) -> list[ConflictAuditEntry]:
        """Get the newest audit entries, optionally for one card or one principal."""
        query = select(ConflictAuditEntry)
        if card_id is not None:
            query = query.where(ConflictAuditEntry.card_id == card_id)
        if principal_id is not None:
            query = (
                query.join(SyncMapping, SyncMapping.id == ConflictAuditEntry.mapping_id)
                .join(Card, Card.id == SyncMapping.card_id)
                .where(_owned_by(principal_id))
            )

        result = await self.db.execute(
            query.order_by(desc(ConflictAuditEntry.created_at), desc(ConflictAuditEntry.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_mapping(self, mapping_id: int) -> int:
        """Count audit entries recorded for a mapping."""
        result = await self.db.execute(
            select(func.count())
            .select_from(ConflictAuditEntry)
            .where(ConflictAuditEntry.mapping_id == mapping_id)
        )
        return result.scalar_one()
