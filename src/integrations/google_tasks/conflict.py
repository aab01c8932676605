"""Conflict detection and last-write-wins resolution for a mapped pair.

A pair carries when it was last synced and the timestamp each side had right
after that sync. Change detection compares each side against its own recorded
timestamp; a pair without recorded timestamps falls back to last_synced_at.
Only last-write-wins compares the two systems' clocks; equal timestamps
there are settled by a fixed tie-break rule.
"""

import enum
from dataclasses import dataclass
from datetime import datetime

from ...models import ConflictWinner


class SyncAction(str, enum.Enum):
    """What a pass must do for a mapped pair."""

    NOOP = "noop"
    PULL = "pull"  # overwrite the card from Google
    PUSH = "push"  # overwrite the Google task from the card


@dataclass(frozen=True)
class SyncDecision:
    """Outcome of comparing one pair's timestamps."""

    action: SyncAction
    remote_changed: bool
    local_changed: bool
    winner: ConflictWinner | None = None

    @property
    def is_conflict(self) -> bool:
        return self.remote_changed and self.local_changed


def resolve_winner(
    remote_updated: datetime,
    local_updated: datetime,
    tie_winner: ConflictWinner = ConflictWinner.REMOTE,
) -> ConflictWinner:
    """Last-write-wins: the strictly later timestamp wins, ties go to `tie_winner`."""
    if remote_updated > local_updated:
        return ConflictWinner.REMOTE
    if local_updated > remote_updated:
        return ConflictWinner.LOCAL
    return tie_winner


def _side_changed(
    updated: datetime, last_synced_at: datetime, last_seen: datetime | None
) -> bool:
    # A side still carrying the timestamp recorded at the last sync is unchanged,
    # whatever its clock says relative to ours
    if last_seen is not None:
        return updated != last_seen
    return updated > last_synced_at


def decide(
    last_synced_at: datetime,
    remote_updated: datetime,
    local_updated: datetime,
    tie_winner: ConflictWinner = ConflictWinner.REMOTE,
    *,
    last_remote_seen: datetime | None = None,
    last_local_seen: datetime | None = None,
) -> SyncDecision:
    """Decide the action for a mapped pair.

    All datetimes must be naive UTC. `last_remote_seen` and `last_local_seen`
    are the timestamps each side carried right after the last sync; when
    given, a side counts as changed only if its timestamp moved off that value.
    Without them the side is compared against `last_synced_at`.

    - only Google changed since the last sync → pull
    - only the card changed → push
    - neither → no-op
    - both → conflict, resolved by last-write-wins
    """
    remote_changed = _side_changed(remote_updated, last_synced_at, last_remote_seen)
    local_changed = _side_changed(local_updated, last_synced_at, last_local_seen)

    if remote_changed and local_changed:
        winner = resolve_winner(remote_updated, local_updated, tie_winner)
        action = SyncAction.PULL if winner == ConflictWinner.REMOTE else SyncAction.PUSH
        return SyncDecision(action, remote_changed, local_changed, winner)

    if remote_changed:
        return SyncDecision(SyncAction.PULL, remote_changed, local_changed)
    if local_changed:
        return SyncDecision(SyncAction.PUSH, remote_changed, local_changed)
    return SyncDecision(SyncAction.NOOP, remote_changed, local_changed)
