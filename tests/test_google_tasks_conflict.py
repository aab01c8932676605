"""
Тесты для определения конфликтов и last-write-wins.

Покрывает:
- Изменилась одна сторона / обе / ни одна
- Победитель по времени
- Равные отметки времени (tie-break)
- Сравнение с отметками сторон при прошлой синхронизации
"""

from datetime import datetime, timedelta

from src.integrations.google_tasks import SyncAction, decide
from src.integrations.google_tasks.conflict import resolve_winner
from src.models import ConflictWinner

T0 = datetime(2026, 3, 1, 12, 0, 0)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


class TestDecide:
    """decide(last_synced_at, remote_updated, local_updated)."""

    def test_nothing_changed(self):
        decision = decide(T0, at(-5), at(-1))

        assert decision.action == SyncAction.NOOP
        assert not decision.is_conflict
        assert decision.winner is None

    def test_equal_to_last_sync_is_not_a_change(self):
        decision = decide(T0, T0, T0)

        assert decision.action == SyncAction.NOOP

    def test_only_remote_changed(self):
        decision = decide(T0, at(3), at(-1))

        assert decision.action == SyncAction.PULL
        assert decision.remote_changed
        assert not decision.local_changed
        assert not decision.is_conflict

    def test_only_local_changed(self):
        decision = decide(T0, at(-1), at(3))

        assert decision.action == SyncAction.PUSH
        assert not decision.is_conflict

    def test_conflict_remote_later(self):
        decision = decide(T0, at(10), at(5))

        assert decision.is_conflict
        assert decision.winner == ConflictWinner.REMOTE
        assert decision.action == SyncAction.PULL

    def test_conflict_local_later(self):
        decision = decide(T0, at(5), at(10))

        assert decision.is_conflict
        assert decision.winner == ConflictWinner.LOCAL
        assert decision.action == SyncAction.PUSH

    def test_conflict_tie_defaults_to_remote(self):
        decision = decide(T0, at(5), at(5))

        assert decision.is_conflict
        assert decision.winner == ConflictWinner.REMOTE
        assert decision.action == SyncAction.PULL

    def test_conflict_tie_configurable(self):
        decision = decide(T0, at(5), at(5), tie_winner=ConflictWinner.LOCAL)

        assert decision.winner == ConflictWinner.LOCAL
        assert decision.action == SyncAction.PUSH


class TestResolveWinner:
    """Сравнение только двух отметок времени."""

    def test_microsecond_difference_counts(self):
        local = at(1)
        remote = local + timedelta(microseconds=1)

        assert resolve_winner(remote, local) == ConflictWinner.REMOTE

    def test_tie_uses_given_winner(self):
        assert resolve_winner(T0, T0, ConflictWinner.LOCAL) == ConflictWinner.LOCAL
        assert resolve_winner(T0, T0) == ConflictWinner.REMOTE


class TestDecideWithRecordedTimestamps:
    """Отметки сторон, записанные при прошлой синхронизации."""

    def test_unchanged_sides_ignore_skew(self):
        # Google спешит на 10 минут: его отметка позже last_synced_at, но не сдвинулась
        decision = decide(T0, at(10), at(-1), last_remote_seen=at(10), last_local_seen=at(-1))

        assert decision.action == SyncAction.NOOP

    def test_local_edit_before_remote_stamp_is_pushed(self):
        decision = decide(T0, at(10), at(2), last_remote_seen=at(10), last_local_seen=at(-1))

        assert decision.action == SyncAction.PUSH
        assert not decision.is_conflict

    def test_remote_edit_behind_last_sync_is_pulled(self):
        # Google отстаёт: новая отметка всё ещё раньше last_synced_at
        decision = decide(T0, at(-3), at(-1), last_remote_seen=at(-8), last_local_seen=at(-1))

        assert decision.action == SyncAction.PULL

    def test_both_moved_is_conflict(self):
        decision = decide(T0, at(4), at(6), last_remote_seen=at(-8), last_local_seen=at(-1))

        assert decision.is_conflict
        assert decision.winner == ConflictWinner.LOCAL
