"""Sync service: bi-directional reconciliation of board cards with Google Tasks."""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.logging import get_logger, sync_pass_id_var
from ..integrations.google_tasks import (
    GoogleTasksClient,
    RemoteTask,
    RemoteTaskList,
    SyncAction,
    SyncDecision,
    decide,
    to_local,
    to_remote,
)
from ..integrations.google_tasks.transform import (
    card_snapshot,
    changed_fields,
    parse_rfc3339,
)
from ..models import (
    AuditEventType,
    Card,
    CardStatus,
    ConflictAuditEntry,
    ConflictWinner,
    MappingSyncStatus,
    SyncMapping,
    TaskListMapping,
)
from ..models.base import utc_now
from ..repositories import (
    BoardColumnRepository,
    BoardRepository,
    CardRepository,
    ConflictAuditRepository,
    SyncMappingRepository,
    TaskListMappingRepository,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Builds a client from a bearer token; tests swap in an in-memory fake
ClientFactory = Callable[[str], GoogleTasksClient]


@dataclass
class SyncResult:
    """Result of one sync pass.

    Item-level failures land in `errors` and leave `success` True;
    `success` is False only when the pass could not start (initial loads failed).
    """

    success: bool = True
    cards_created: int = 0
    cards_updated: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    conflicts: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class _ItemOutcome:
    ok: bool
    value: Any = None


class SyncService:
    """Service for syncing board cards with Google task lists."""

    def __init__(
        self,
        db: AsyncSession,
        client_factory: ClientFactory | None = None,
        tie_winner: ConflictWinner | str | None = None,
    ):
        """Initialize sync service.

        Args:
            db: Async database session
            client_factory: Callable turning a bearer token into a Google Tasks client
            tie_winner: Side that wins a conflict with equal timestamps
                (defaults to settings.SYNC_TIE_BREAK_WINNER)
        """
        self.db = db
        self.client_factory = client_factory or GoogleTasksClient
        self.tie_winner = ConflictWinner(tie_winner or settings.SYNC_TIE_BREAK_WINNER)

        # Repositories
        self.board_repo = BoardRepository(db)
        self.column_repo = BoardColumnRepository(db)
        self.card_repo = CardRepository(db)
        self.mapping_repo = SyncMappingRepository(db)
        self.list_mapping_repo = TaskListMappingRepository(db)
        self.audit_repo = ConflictAuditRepository(db)

    # =========================================================================
    # Sync passes
    # =========================================================================

    async def sync_pair(
        self, board_id: int, remote_list_id: str, bearer_token: str
    ) -> SyncResult:
        """Run one reconciliation pass between a board and a Google task list.

        Order within a pass: unmatched Google tasks, then unmatched cards, then
        mapped pairs. Never raises; see SyncResult for how failures are reported.

        Args:
            board_id: Local board
            remote_list_id: Google task list ID
            bearer_token: Valid OAuth access token for Google Tasks

        Returns:
            SyncResult with counts and per-item errors
        """
        result = SyncResult()
        pass_token = sync_pass_id_var.set(str(uuid.uuid4()))
        log_extra = {"board_id": board_id, "remote_list_id": remote_list_id}
        logger.info("Sync pass started", extra=log_extra)

        try:
            async with self.client_factory(bearer_token) as client:
                await self._run_pass(client, board_id, remote_list_id, result)
        except Exception as e:
            result.success = False
            result.errors.append(f"Sync failed: {e}")
            logger.error(
                "Sync pass aborted", extra={**log_extra, "error": str(e)}, exc_info=True
            )
        else:
            logger.info(
                "Sync pass completed",
                extra={
                    **log_extra,
                    "cards_created": result.cards_created,
                    "cards_updated": result.cards_updated,
                    "tasks_created": result.tasks_created,
                    "tasks_updated": result.tasks_updated,
                    "conflicts": result.conflicts,
                    "errors": len(result.errors),
                },
            )
        finally:
            sync_pass_id_var.reset(pass_token)

        return result

    async def sync_all_mapped_boards(
        self, principal_id: str, bearer_token: str
    ) -> dict[int, SyncResult]:
        """Sync every board the principal has mapped to a task list.

        Boards are processed one after another; a failed board does not stop
        the rest.

        Returns:
            Results keyed by board ID
        """
        mappings = await self.list_mapping_repo.get_by_principal(principal_id, enabled_only=True)

        pairs: dict[tuple[int, str], None] = {}
        for mapping in mappings:
            pairs.setdefault((mapping.board_id, mapping.remote_list_id))

        results: dict[int, SyncResult] = {}
        for board_id, remote_list_id in pairs:
            results[board_id] = await self.sync_pair(board_id, remote_list_id, bearer_token)

        logger.info(
            "Synced all mapped boards",
            extra={
                "principal_id": principal_id,
                "boards": len(results),
                "failed_boards": sum(1 for r in results.values() if not r.success),
            },
        )
        return results

    async def sync_board(self, principal_id: str, board_id: int, bearer_token: str) -> SyncResult:
        """Sync one board with the task list the principal mapped it to.

        Raises:
            ValueError: If the board has no enabled task list mapping
        """
        mapping = await self.list_mapping_repo.get_for_board(principal_id, board_id)
        if mapping is None or not mapping.sync_enabled:
            raise ValueError(f"No Google Tasks mapping found for board {board_id}")

        return await self.sync_pair(board_id, mapping.remote_list_id, bearer_token)

    # =========================================================================
    # Task lists and mappings
    # =========================================================================

    async def list_remote_task_lists(self, bearer_token: str) -> list[RemoteTaskList]:
        """Get the principal's Google task lists."""
        async with self.client_factory(bearer_token) as client:
            return await client.list_task_lists()

    async def list_list_mappings(self, principal_id: str) -> list[TaskListMapping]:
        return await self.list_mapping_repo.get_by_principal(principal_id)

    async def create_list_mapping(
        self,
        principal_id: str,
        board_id: int,
        remote_list_id: str,
        remote_list_title: str,
    ) -> TaskListMapping:
        """Subscribe a board to a Google task list.

        Raises:
            ValueError: If the board does not exist or is already mapped
        """
        board = await self.board_repo.get_by_id(board_id)
        if not board:
            raise ValueError(f"Board with id {board_id} not found")

        existing = await self.list_mapping_repo.get_for_board(principal_id, board_id)
        if existing:
            raise ValueError(
                f"Board {board_id} is already mapped to task list {existing.remote_list_id}"
            )

        mapping = TaskListMapping(
            principal_id=principal_id,
            board_id=board_id,
            remote_list_id=remote_list_id,
            remote_list_title=remote_list_title,
            sync_enabled=True,
        )
        return await self.list_mapping_repo.create(mapping)

    async def delete_list_mapping(self, principal_id: str, mapping_id: int) -> None:
        """Remove a board subscription. Card mappings and audit history stay.

        Raises:
            ValueError: If the mapping does not exist for this principal
        """
        deleted = await self.list_mapping_repo.delete_for_principal(mapping_id, principal_id)
        if not deleted:
            raise ValueError(f"Task list mapping with id {mapping_id} not found")

    async def list_card_mappings(self, principal_id: str, board_id: int) -> list[SyncMapping]:
        return await self.mapping_repo.get_by_board(board_id, principal_id=principal_id)

    async def set_pair_sync_enabled(
        self, principal_id: str, mapping_id: int, enabled: bool
    ) -> SyncMapping:
        """Switch sync on or off for one card ⇄ task pair.

        Only pairs inside one of the principal's board subscriptions are visible.

        Raises:
            ValueError: If the mapping does not exist for this principal
        """
        mapping = await self.mapping_repo.get_for_principal(mapping_id, principal_id)
        if not mapping:
            raise ValueError(f"Sync mapping with id {mapping_id} not found")
        return await self.mapping_repo.update(mapping.id, sync_enabled=enabled)

    async def get_audit_entries(
        self, principal_id: str, card_id: int | None = None, limit: int = 50
    ) -> list[ConflictAuditEntry]:
        return await self.audit_repo.get_recent(
            card_id=card_id, limit=limit, principal_id=principal_id
        )

    # =========================================================================
    # Pass internals
    # =========================================================================

    async def _run_pass(
        self,
        client: GoogleTasksClient,
        board_id: int,
        remote_list_id: str,
        result: SyncResult,
    ) -> None:
        # 1. Initial loads; any failure here aborts the pass
        cards = await self.card_repo.get_by_board(board_id)
        remote_tasks = [
            task
            for task in await client.list_tasks(remote_list_id, include_completed=True)
            if task.is_top_level and not task.deleted
        ]

        # 2. Mapping indices. Mappings of this list come last so they win the
        # card index; they also cover cards that no longer exist, which keeps
        # their tasks from being imported again.
        mappings = await self._load_mappings([card.id for card in cards], remote_list_id)
        mapping_by_card = {m.card_id: m for m in mappings}
        mapping_by_task = {m.remote_task_id: m for m in mappings}
        cards_by_id = {card.id: card for card in cards}
        tasks_by_id = {task.id: task for task in remote_tasks}

        # 3. Google tasks without a mapping become cards
        unmatched_tasks = [t for t in remote_tasks if t.id not in mapping_by_task]
        if unmatched_tasks:
            await self._import_tasks(unmatched_tasks, cards, board_id, remote_list_id, result)

        # 4. Cards without a mapping become Google tasks
        for card in cards:
            if card.id in mapping_by_card:
                continue
            card_id = card.id
            outcome = await self._run_item(
                result,
                f"Failed to create task from card {card_id}",
                partial(self._export_card, client, card, remote_list_id),
            )
            if outcome.ok:
                result.tasks_created += 1

        # 5. Mapped pairs
        for mapping in mappings:
            card = cards_by_id.get(mapping.card_id)
            task = tasks_by_id.get(mapping.remote_task_id)
            if not mapping.sync_enabled:
                continue
            if card is None or task is None:
                # Deletions are not propagated; the mapping stays as it is
                logger.debug(
                    "Skipping mapping with a missing side",
                    extra={
                        "mapping_id": mapping.id,
                        "card_present": card is not None,
                        "task_present": task is not None,
                    },
                )
                continue
            await self._sync_mapped_pair(client, mapping, card, task, remote_list_id, result)

    async def _load_mappings(self, card_ids: list[int], remote_list_id: str) -> list[SyncMapping]:
        by_id = {m.id: m for m in await self.mapping_repo.get_by_card_ids(card_ids)}
        in_list = await self.mapping_repo.get_by_list(remote_list_id)

        other_lists = [m for m in by_id.values() if m.remote_list_id != remote_list_id]
        return other_lists + in_list

    async def _import_tasks(
        self,
        tasks: list[RemoteTask],
        cards: list[Card],
        board_id: int,
        remote_list_id: str,
        result: SyncResult,
    ) -> None:
        columns = await self.column_repo.get_by_board(board_id)
        if not columns:
            for _ in tasks:
                result.errors.append(f"No columns found for board {board_id}")
            return

        landing_column = columns[0]
        next_position = (
            max((c.position for c in cards if c.column_id == landing_column.id), default=-1) + 1
        )
        for task in tasks:
            outcome = await self._run_item(
                result,
                f"Failed to create card from task {task.id}",
                partial(
                    self._import_task,
                    task,
                    board_id,
                    remote_list_id,
                    landing_column.id,
                    next_position,
                ),
            )
            if outcome.ok:
                result.cards_created += 1
                next_position += 1

    async def _import_task(
        self,
        task: RemoteTask,
        board_id: int,
        remote_list_id: str,
        column_id: int,
        position: int,
    ) -> SyncMapping:
        fields = to_local(task, column_id, position)
        remote_updated = parse_rfc3339(task.updated)

        card = Card(board_id=board_id, **fields.as_dict())
        if fields.status == CardStatus.COMPLETED:
            card.completed_at = utc_now()
        card = await self.card_repo.create(card)

        mapping, _ = await self.mapping_repo.create_or_get(
            SyncMapping(
                card_id=card.id,
                remote_task_id=task.id,
                remote_list_id=remote_list_id,
                last_synced_at=utc_now(),
                last_remote_updated_at=remote_updated,
                last_local_updated_at=card.updated_at,
                sync_status=MappingSyncStatus.SYNCED,
                sync_enabled=True,
            )
        )
        logger.debug("Imported Google task", extra={"task_id": task.id, "card_id": card.id})
        return mapping

    async def _export_card(
        self, client: GoogleTasksClient, card: Card, remote_list_id: str
    ) -> SyncMapping:
        fields = to_remote(card)
        task = await client.create_task(remote_list_id, fields.to_payload())
        remote_updated = parse_rfc3339(task.updated)

        mapping, _ = await self.mapping_repo.create_or_get(
            SyncMapping(
                card_id=card.id,
                remote_task_id=task.id,
                remote_list_id=remote_list_id,
                last_synced_at=utc_now(),
                last_remote_updated_at=remote_updated,
                last_local_updated_at=card.updated_at,
                sync_status=MappingSyncStatus.SYNCED,
                sync_enabled=True,
            )
        )
        logger.debug("Exported card", extra={"card_id": card.id, "task_id": task.id})
        return mapping

    async def _sync_mapped_pair(
        self,
        client: GoogleTasksClient,
        mapping: SyncMapping,
        card: Card,
        task: RemoteTask,
        remote_list_id: str,
        result: SyncResult,
    ) -> None:
        # Plain values: ORM attributes may be expired after a failed savepoint
        mapping_id, card_id = mapping.id, card.id
        error_prefix = f"Failed to sync card {card_id}"

        try:
            decision = decide(
                mapping.last_synced_at,
                parse_rfc3339(task.updated),
                card.updated_at,
                self.tie_winner,
                last_remote_seen=mapping.last_remote_updated_at,
                last_local_seen=mapping.last_local_updated_at,
            )
        except ValueError as e:
            result.errors.append(f"{error_prefix}: {e}")
            return

        if decision.action == SyncAction.NOOP:
            return

        if decision.is_conflict:
            result.conflicts += 1
            # Recorded in its own savepoint so it survives a failed overwrite
            audited = await self._run_item(
                result, error_prefix, partial(self._record_conflict, mapping, card, task, decision)
            )
            if not audited.ok:
                await self._mark_pair_failed(mapping_id, MappingSyncStatus.CONFLICT)
                return

        outcome = await self._run_item(
            result,
            error_prefix,
            partial(self._apply_decision, client, mapping, card, task, remote_list_id, decision),
        )
        if outcome.ok:
            if decision.action == SyncAction.PULL:
                result.cards_updated += 1
            else:
                result.tasks_updated += 1
        else:
            await self._mark_pair_failed(
                mapping_id,
                MappingSyncStatus.CONFLICT if decision.is_conflict else MappingSyncStatus.ERROR,
            )

    async def _record_conflict(
        self,
        mapping: SyncMapping,
        card: Card,
        task: RemoteTask,
        decision: SyncDecision,
    ) -> ConflictAuditEntry:
        winner = decision.winner
        entry = ConflictAuditEntry(
            card_id=card.id,
            mapping_id=mapping.id,
            event_type=AuditEventType.SYNC_CONFLICT,
            remote_task_id=task.id,
            local_snapshot=card_snapshot(card),
            remote_snapshot=task.snapshot(),
            winner=winner,
            resolution=f"Last-write-wins: {winner.value}",
        )
        entry = await self.audit_repo.create(entry)

        logger.info(
            "Sync conflict resolved by last-write-wins",
            extra={
                "card_id": card.id,
                "task_id": task.id,
                "winner": winner.value,
                "changed_fields": changed_fields(task, card),
            },
        )
        return entry

    async def _apply_decision(
        self,
        client: GoogleTasksClient,
        mapping: SyncMapping,
        card: Card,
        task: RemoteTask,
        remote_list_id: str,
        decision: SyncDecision,
    ) -> None:
        if decision.action == SyncAction.PULL:
            await self._apply_remote_to_card(card, task)
            remote_updated = parse_rfc3339(task.updated)
        else:
            payload = to_remote(card).to_payload(include_empty=True)
            task = await client.update_task(remote_list_id, task.id, payload)
            remote_updated = parse_rfc3339(task.updated)

        mapping.last_synced_at = utc_now()
        mapping.last_remote_updated_at = remote_updated
        mapping.last_local_updated_at = card.updated_at
        mapping.sync_status = MappingSyncStatus.SYNCED
        await self.db.flush()

    async def _apply_remote_to_card(self, card: Card, task: RemoteTask) -> Card:
        """Overwrite a card with a Google task's data, keeping its column and position."""
        fields = to_local(task, card.column_id, card.position)
        for key, value in fields.as_dict().items():
            setattr(card, key, value)

        if fields.status == CardStatus.COMPLETED:
            card.completed_at = card.completed_at or utc_now()
        else:
            card.completed_at = None

        await self.db.flush()
        await self.db.refresh(card)
        return card

    async def _mark_pair_failed(self, mapping_id: int, status: MappingSyncStatus) -> None:
        """Best-effort status update after a pair failed; the failure is already reported."""
        outcome = await self._run_item(
            SyncResult(),
            f"Failed to mark mapping {mapping_id}",
            partial(self.mapping_repo.update, mapping_id, sync_status=status),
        )
        if not outcome.ok:
            logger.warning("Could not record failed sync status", extra={"mapping_id": mapping_id})

    async def _run_item(
        self,
        result: SyncResult,
        error_prefix: str,
        operation: Callable[[], Awaitable[T]],
    ) -> _ItemOutcome:
        """Run one item inside a SAVEPOINT; a failure is recorded and rolled back alone."""
        try:
            async with self.db.begin_nested():
                value = await operation()
        except Exception as e:
            result.errors.append(f"{error_prefix}: {e}")
            logger.warning(error_prefix, extra={"error": str(e)}, exc_info=True)
            return _ItemOutcome(ok=False)
        return _ItemOutcome(ok=True, value=value)
