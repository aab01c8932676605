"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import Base

# TypeVar для Generic класса - позволяет работать с любой моделью
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Базовый репозиторий с CRUD операциями.

    Репозитории только делают flush(), commit остаётся за вызывающей стороной
    (FastAPI dependency get_db или фоновая задача).

    Пример использования:
        card_repo = BaseRepository[Card](Card, db_session)
        card = await card_repo.get_by_id(1)
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        """
        Args:
            model: Класс модели SQLAlchemy (например, Card, SyncMapping)
            db: Асинхронная сессия базы данных
        """
        self.model = model
        self.db = db

    async def create(self, obj: ModelType) -> ModelType:
        """
        Создать новую запись в БД.

        Returns:
            Созданный объект с заполненным ID и timestamps
        """
        self.db.add(obj)
        await self.db.flush()  # отправляет INSERT, но не commit
        await self.db.refresh(obj)  # подтягивает ID и значения по умолчанию
        return obj

    async def get_by_id(self, id: int) -> ModelType | None:
        """
        Получить объект по ID.

        SQL эквивалент:
            SELECT * FROM table WHERE id = {id} LIMIT 1;
        """
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update(self, id: int, **kwargs: Any) -> ModelType | None:
        """
        Обновить запись по ID (частичное обновление).

        Args:
            id: Первичный ключ записи
            **kwargs: Поля для обновления (title="...", sync_enabled=False)

        Returns:
            Обновлённый объект или None, если не найден

        Пример:
            card = await repo.update(1, title="Новое название", priority=CardPriority.HIGH)
        """
        obj = await self.get_by_id(id)
        if not obj:
            return None

        for key, value in kwargs.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

        await self.db.flush()
        await self.db.refresh(obj)
        return obj
