"""
Тесты для репозиториев доски и синхронизации.

Покрывает:
- BoardColumnRepository.get_by_board, CardRepository.get_by_board
- SyncMappingRepository: выборки, create_or_get (повторная вставка), видимость по principal
- TaskListMappingRepository: выборки по principal, удаление только своих
- ConflictAuditRepository: порядок, фильтры, запрет изменения записей
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from src.models import (
    AuditEventType,
    Board,
    BoardColumn,
    Card,
    CardStatus,
    ConflictAuditEntry,
    ConflictWinner,
    SyncMapping,
    TaskListMapping,
)
from src.models.base import utc_now
from src.repositories import (
    BoardColumnRepository,
    CardRepository,
    ConflictAuditRepository,
    SyncMappingRepository,
    TaskListMappingRepository,
)

# =============================================================================
# FIXTURES
# =============================================================================


@pytest_asyncio.fixture
async def cards(test_db, sample_board):
    """Три карточки в первой колонке, одна из них завершена."""
    column = sample_board.columns[0]
    items = [
        Card(board_id=sample_board.id, column_id=column.id, title="A", position=0),
        Card(board_id=sample_board.id, column_id=column.id, title="B", position=1),
        Card(
            board_id=sample_board.id,
            column_id=column.id,
            title="C",
            position=2,
            status=CardStatus.COMPLETED,
            is_archived=True,
        ),
    ]
    test_db.add_all(items)
    await test_db.flush()
    return items


@pytest_asyncio.fixture
async def mapping_repo(test_db):
    return SyncMappingRepository(test_db)


def make_mapping(card: Card, task_id: str, list_id: str = "list-1") -> SyncMapping:
    return SyncMapping(card_id=card.id, remote_task_id=task_id, remote_list_id=list_id)


# =============================================================================
# ТЕСТЫ: доска и карточки
# =============================================================================


class TestBoardRepositories:
    """Колонки и карточки."""

    @pytest.mark.asyncio
    async def test_columns_by_position(self, test_db, sample_board):
        columns = await BoardColumnRepository(test_db).get_by_board(sample_board.id)

        assert [c.name for c in columns] == ["To Do", "Doing", "Done"]

    @pytest.mark.asyncio
    async def test_board_without_columns(self, test_db):
        board = Board(name="Empty")
        test_db.add(board)
        await test_db.flush()

        assert await BoardColumnRepository(test_db).get_by_board(board.id) == []

    @pytest.mark.asyncio
    async def test_cards_include_completed_and_archived(self, test_db, sample_board, cards):
        result = await CardRepository(test_db).get_by_board(sample_board.id)

        assert [c.title for c in result] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_cards_of_other_board_excluded(self, test_db, sample_board, cards):
        other = Board(name="Other")
        test_db.add(other)
        await test_db.flush()
        column = BoardColumn(board_id=other.id, name="Inbox", position=0)
        test_db.add(column)
        await test_db.flush()
        test_db.add(Card(board_id=other.id, column_id=column.id, title="Z"))
        await test_db.flush()

        result = await CardRepository(test_db).get_by_board(sample_board.id)

        assert "Z" not in [c.title for c in result]


# =============================================================================
# ТЕСТЫ: SyncMappingRepository
# =============================================================================


class TestSyncMappingRepository:
    """Связи карточка ⇄ Google task."""

    @pytest.mark.asyncio
    async def test_create_or_get_inserts(self, mapping_repo, cards):
        mapping, created = await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))

        assert created is True
        assert mapping.id is not None
        assert mapping.sync_enabled is True
        assert mapping.last_synced_at is not None

    @pytest.mark.asyncio
    async def test_create_or_get_same_card_returns_existing(self, mapping_repo, cards):
        first, _ = await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))

        second, created = await mapping_repo.create_or_get(make_mapping(cards[0], "t-other"))

        assert created is False
        assert second.id == first.id
        assert second.remote_task_id == "t1"

    @pytest.mark.asyncio
    async def test_create_or_get_same_task_returns_existing(self, mapping_repo, cards):
        first, _ = await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))

        second, created = await mapping_repo.create_or_get(make_mapping(cards[1], "t1"))

        assert created is False
        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_duplicate_keeps_session_usable(self, test_db, mapping_repo, cards):
        await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))
        await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))

        mapping, created = await mapping_repo.create_or_get(make_mapping(cards[1], "t2"))

        assert created is True
        assert len(await mapping_repo.get_by_list("list-1")) == 2

    @pytest.mark.asyncio
    async def test_same_card_in_two_lists(self, mapping_repo, cards):
        await mapping_repo.create_or_get(make_mapping(cards[0], "t1", "list-1"))
        _, created = await mapping_repo.create_or_get(make_mapping(cards[0], "t1", "list-2"))

        assert created is True

    @pytest.mark.asyncio
    async def test_get_by_list_and_board(self, mapping_repo, sample_board, cards):
        await mapping_repo.create_or_get(make_mapping(cards[0], "t1", "list-1"))
        await mapping_repo.create_or_get(make_mapping(cards[1], "t2", "list-2"))

        by_list = await mapping_repo.get_by_list("list-1")
        by_board = await mapping_repo.get_by_board(sample_board.id)

        assert [m.remote_task_id for m in by_list] == ["t1"]
        assert [m.remote_task_id for m in by_board] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_get_by_card_ids(self, mapping_repo, cards):
        await mapping_repo.create_or_get(make_mapping(cards[0], "t1", "list-1"))
        await mapping_repo.create_or_get(make_mapping(cards[0], "t9", "list-2"))
        await mapping_repo.create_or_get(make_mapping(cards[1], "t2", "list-1"))

        result = await mapping_repo.get_by_card_ids([cards[0].id])

        assert [m.remote_task_id for m in result] == ["t1", "t9"]
        assert await mapping_repo.get_by_card_ids([]) == []

    @pytest.mark.asyncio
    async def test_scoped_to_principal(self, test_db, mapping_repo, sample_board, cards):
        test_db.add(
            TaskListMapping(
                principal_id="user-1",
                board_id=sample_board.id,
                remote_list_id="list-1",
                remote_list_title="My Tasks",
            )
        )
        own, _ = await mapping_repo.create_or_get(make_mapping(cards[0], "t1", "list-1"))
        other, _ = await mapping_repo.create_or_get(make_mapping(cards[1], "t2", "list-2"))

        scoped = await mapping_repo.get_by_board(sample_board.id, principal_id="user-1")

        assert [m.id for m in scoped] == [own.id]
        assert await mapping_repo.get_by_board(sample_board.id, principal_id="user-2") == []
        assert (await mapping_repo.get_for_principal(own.id, "user-1")).id == own.id
        assert await mapping_repo.get_for_principal(own.id, "user-2") is None
        assert await mapping_repo.get_for_principal(other.id, "user-1") is None

    @pytest.mark.asyncio
    async def test_subscription_of_other_board_grants_nothing(
        self, test_db, mapping_repo, sample_board, cards
    ):
        """Подписка другой доски на тот же список не открывает доступ к связям."""
        other = Board(name="Work")
        test_db.add(other)
        await test_db.flush()
        test_db.add(
            TaskListMapping(
                principal_id="user-2",
                board_id=other.id,
                remote_list_id="list-1",
                remote_list_title="Shared",
            )
        )
        mapping, _ = await mapping_repo.create_or_get(make_mapping(cards[0], "t1", "list-1"))

        assert await mapping_repo.get_for_principal(mapping.id, "user-2") is None

    @pytest.mark.asyncio
    async def test_lookup_by_card_and_task(self, mapping_repo, cards):
        await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))

        assert (await mapping_repo.get_by_card_and_list(cards[0].id, "list-1")).remote_task_id == "t1"
        assert (await mapping_repo.get_by_task_and_list("t1", "list-1")).card_id == cards[0].id
        assert await mapping_repo.get_by_task_and_list("t1", "list-2") is None


# =============================================================================
# ТЕСТЫ: TaskListMappingRepository
# =============================================================================


class TestTaskListMappingRepository:
    """Подписки доска ⇄ task list."""

    @pytest_asyncio.fixture
    async def subscriptions(self, test_db, sample_board):
        other = Board(name="Work")
        test_db.add(other)
        await test_db.flush()

        items = [
            TaskListMapping(
                principal_id="user-1",
                board_id=sample_board.id,
                remote_list_id="list-1",
                remote_list_title="My Tasks",
            ),
            TaskListMapping(
                principal_id="user-1",
                board_id=other.id,
                remote_list_id="list-2",
                remote_list_title="Work",
                sync_enabled=False,
            ),
            TaskListMapping(
                principal_id="user-2",
                board_id=sample_board.id,
                remote_list_id="list-9",
                remote_list_title="Theirs",
            ),
        ]
        test_db.add_all(items)
        await test_db.flush()
        return items

    @pytest.mark.asyncio
    async def test_get_by_principal(self, test_db, subscriptions):
        repo = TaskListMappingRepository(test_db)

        assert len(await repo.get_by_principal("user-1")) == 2
        enabled = await repo.get_by_principal("user-1", enabled_only=True)
        assert [m.remote_list_id for m in enabled] == ["list-1"]

    @pytest.mark.asyncio
    async def test_get_for_board(self, test_db, sample_board, subscriptions):
        repo = TaskListMappingRepository(test_db)

        mapping = await repo.get_for_board("user-2", sample_board.id)

        assert mapping.remote_list_id == "list-9"

    @pytest.mark.asyncio
    async def test_delete_only_own(self, test_db, subscriptions):
        repo = TaskListMappingRepository(test_db)
        foreign = subscriptions[2]

        assert await repo.delete_for_principal(foreign.id, "user-1") is False
        assert await repo.delete_for_principal(foreign.id, "user-2") is True


# =============================================================================
# ТЕСТЫ: ConflictAuditRepository
# =============================================================================


class TestConflictAuditRepository:
    """Журнал конфликтов."""

    @pytest.mark.asyncio
    async def test_recent_first_and_filter(self, test_db, mapping_repo, cards):
        mapping_a, _ = await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))
        mapping_b, _ = await mapping_repo.create_or_get(make_mapping(cards[1], "t2"))
        now = utc_now()

        repo = ConflictAuditRepository(test_db)
        for minutes, (card, mapping) in enumerate(
            [(cards[0], mapping_a), (cards[1], mapping_b), (cards[0], mapping_a)]
        ):
            await repo.create(
                ConflictAuditEntry(
                    card_id=card.id,
                    mapping_id=mapping.id,
                    event_type=AuditEventType.SYNC_CONFLICT,
                    remote_task_id=mapping.remote_task_id,
                    local_snapshot={"title": card.title},
                    remote_snapshot={"title": "remote"},
                    winner=ConflictWinner.REMOTE,
                    resolution="Last-write-wins: remote",
                    created_at=now + timedelta(minutes=minutes),
                )
            )

        recent = await repo.get_recent()
        for_card = await repo.get_recent(card_id=cards[0].id)

        assert [e.card_id for e in recent] == [cards[0].id, cards[1].id, cards[0].id]
        assert recent[0].created_at > recent[-1].created_at
        assert len(for_card) == 2
        assert len(await repo.get_recent(limit=1)) == 1
        assert await repo.count_for_mapping(mapping_a.id) == 2

    @pytest.mark.asyncio
    async def test_recent_scoped_to_principal(self, test_db, mapping_repo, sample_board, cards):
        test_db.add(
            TaskListMapping(
                principal_id="user-1",
                board_id=sample_board.id,
                remote_list_id="list-1",
                remote_list_title="My Tasks",
            )
        )
        mapping, _ = await mapping_repo.create_or_get(make_mapping(cards[0], "t1"))
        repo = ConflictAuditRepository(test_db)
        entry = await repo.create(
            ConflictAuditEntry(
                card_id=cards[0].id,
                mapping_id=mapping.id,
                event_type=AuditEventType.SYNC_CONFLICT,
                remote_task_id="t1",
                local_snapshot={"title": "A"},
                remote_snapshot={"title": "remote"},
                winner=ConflictWinner.LOCAL,
                resolution="Last-write-wins: local",
            )
        )

        assert [e.id for e in await repo.get_recent(principal_id="user-1")] == [entry.id]
        assert await repo.get_recent(principal_id="user-2") == []

    @pytest.mark.asyncio
    async def test_entries_cannot_be_updated(self, test_db):
        repo = ConflictAuditRepository(test_db)

        with pytest.raises(NotImplementedError, match="append-only"):
            await repo.update(1, resolution="rewritten")
