"""
Скрипт для инициализации базы данных.

Создаёт все таблицы напрямую через SQLAlchemy.
Используется для разработки и тестов вместо Alembic миграций.

Запуск:
    python init_db.py           # только таблицы
    python init_db.py --seed    # таблицы + демо доски с колонками и карточками
    python init_db.py --reset   # удалить все таблицы и создать заново
"""

import asyncio
import sys

from sqlalchemy import func, select

from src.core.database import AsyncSessionLocal, drop_db, init_db
from src.models import Board, BoardColumn, Card, CardPriority

# Доска → колонки (по порядку) → карточки первой колонки
DEMO_BOARDS = {
    "Личное": {
        "columns": ["Входящие", "В работе", "Готово"],
        "cards": [
            {"title": "Записаться к стоматологу", "priority": CardPriority.HIGH},
            {"title": "Купить подарок на день рождения", "priority": CardPriority.MEDIUM},
        ],
    },
    "Работа": {
        "columns": ["Backlog", "Doing", "Review", "Done"],
        "cards": [
            {
                "title": "Подготовить отчёт за квартал",
                "description": "Собрать метрики по всем проектам",
                "priority": CardPriority.CRITICAL,
            },
            {"title": "Обновить зависимости сервиса"},
        ],
    },
}


async def seed() -> None:
    """Создать демо доски, если их ещё нет."""
    async with AsyncSessionLocal() as db:
        existing = await db.scalar(select(func.count()).select_from(Board))
        if existing:
            print(f"  Досок уже {existing}, пропускаем")
            return

        for board_name, data in DEMO_BOARDS.items():
            board = Board(name=board_name)
            db.add(board)
            await db.flush()

            columns = [
                BoardColumn(
                    board_id=board.id,
                    name=name,
                    position=position,
                    is_done_column=position == len(data["columns"]) - 1,
                )
                for position, name in enumerate(data["columns"])
            ]
            db.add_all(columns)
            await db.flush()

            for position, card_data in enumerate(data["cards"]):
                db.add(
                    Card(board_id=board.id, column_id=columns[0].id, position=position, **card_data)
                )

            print(f"  ✅ {board_name} (id={board.id}, колонок: {len(columns)})")

        await db.commit()


async def main():
    """Создать все таблицы."""
    if "--reset" in sys.argv:
        print("Удаление таблиц...")
        await drop_db()

    print("Создание таблиц...")
    await init_db()
    print("✓ Таблицы созданы успешно!")

    if "--seed" in sys.argv:
        print("Создание демо досок...")
        await seed()


if __name__ == "__main__":
    asyncio.run(main())
