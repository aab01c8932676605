"""Board, column and card repositories read and written by the sync engine."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Board, BoardColumn, Card
from .base import BaseRepository


class BoardRepository(BaseRepository[Board]):
    """Repository for boards."""

    def __init__(self, db: AsyncSession):
        super().__init__(Board, db)


class BoardColumnRepository(BaseRepository[BoardColumn]):
    """Repository for board columns."""

    def __init__(self, db: AsyncSession):
        super().__init__(BoardColumn, db)

    async def get_by_board(self, board_id: int) -> list[BoardColumn]:
        """
        Получить колонки доски по порядку (первая - сюда попадают импортированные задачи).

        SQL эквивалент:
            SELECT * FROM board_columns WHERE board_id = {board_id}
            ORDER BY position, id;
        """
        result = await self.db.execute(
            select(BoardColumn)
            .where(BoardColumn.board_id == board_id)
            .order_by(BoardColumn.position, BoardColumn.id)
        )
        return list(result.scalars().all())


class CardRepository(BaseRepository[Card]):
    """Repository for cards."""

    def __init__(self, db: AsyncSession):
        super().__init__(Card, db)

    async def get_by_board(self, board_id: int) -> list[Card]:
        """
        Получить все карточки доски, включая архивные и завершённые.

        Завершённые карточки тоже нужны синхронизации: они сопоставляются
        с выполненными задачами Google.
        """
        result = await self.db.execute(
            select(Card).where(Card.board_id == board_id).order_by(Card.column_id, Card.position)
        )
        return list(result.scalars().all())
