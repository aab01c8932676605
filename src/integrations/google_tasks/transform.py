"""Field mapping between kanban cards and Google tasks.

Mapping:
- card.title       ⇄ task.title
- card.description ⇄ task.notes (with the priority tag on the first line)
- card.priority    ⇄ "[Priority: High]" tag, or a #high style hashtag on import
- card.status      ⇄ task.status ("pending" ⇄ "needsAction")
- card.due_date    ⇄ task.due (RFC3339, midnight UTC)

Column and position are never derived from Google data; the caller passes them.
Priority round-trips only through notes written by `build_notes` or notes that
carry a recognisable tag.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from ...models import Card, CardPriority, CardStatus
from ...models.base import as_naive_utc
from .schemas import TASK_STATUS_COMPLETED, TASK_STATUS_NEEDS_ACTION, RemoteTask

# [Priority: High] anywhere in the notes, case-insensitive
PRIORITY_TAG_PATTERN = re.compile(r"\[priority:\s*(low|medium|high|critical)\]", re.IGNORECASE)

# Hashtag fallback, checked in this order
HASHTAG_PRIORITIES: list[tuple[re.Pattern[str], CardPriority]] = [
    (re.compile(rf"#{priority.value}\b", re.IGNORECASE), priority)
    for priority in (
        CardPriority.CRITICAL,
        CardPriority.HIGH,
        CardPriority.MEDIUM,
        CardPriority.LOW,
    )
]


class TransformError(ValueError):
    """A Google or card record could not be converted (e.g. unparseable date)."""

    pass


@dataclass
class CardFields:
    """Card attributes produced from a Google task."""

    title: str
    description: str | None
    status: CardStatus
    priority: CardPriority | None
    due_date: date | None
    column_id: int
    position: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "due_date": self.due_date,
            "column_id": self.column_id,
            "position": self.position,
        }


@dataclass
class RemoteTaskFields:
    """Google task attributes produced from a card."""

    title: str
    status: str
    notes: str | None = None
    due: str | None = None

    def to_payload(self, include_empty: bool = False) -> dict[str, Any]:
        """Build the JSON body for the Google API.

        Args:
            include_empty: Send absent notes/due as null so a PATCH clears them
        """
        payload: dict[str, Any] = {"title": self.title, "status": self.status}
        for key in ("notes", "due"):
            value = getattr(self, key)
            if value is not None or include_empty:
                payload[key] = value
        if self.status == TASK_STATUS_NEEDS_ACTION and include_empty:
            # Google keeps the completion date unless it is cleared explicitly
            payload["completed"] = None
        return payload


# =============================================================================
# Conversions
# =============================================================================


def to_local(task: RemoteTask, column_id: int, position: int = 0) -> CardFields:
    """Convert a Google task into card fields.

    Raises:
        TransformError: If the task's due date cannot be parsed
    """
    priority, description = parse_notes(task.notes)

    return CardFields(
        title=task.title,
        description=description,
        status=CardStatus.COMPLETED
        if task.status == TASK_STATUS_COMPLETED
        else CardStatus.PENDING,
        priority=priority,
        due_date=parse_due(task.due) if task.due else None,
        column_id=column_id,
        position=position,
    )


def to_remote(card: Card) -> RemoteTaskFields:
    """Convert a card into Google task fields."""
    return RemoteTaskFields(
        title=card.title or "",
        notes=build_notes(card.description, card.priority),
        status=TASK_STATUS_COMPLETED
        if card.status == CardStatus.COMPLETED
        else TASK_STATUS_NEEDS_ACTION,
        due=format_due(card.due_date) if card.due_date else None,
    )


# =============================================================================
# Notes encoding
# =============================================================================


def build_notes(description: str | None, priority: CardPriority | str | None) -> str | None:
    """Encode description and priority as `[Priority: X]`, blank line, description."""
    parts: list[str] = []

    if priority:
        value = priority.value if isinstance(priority, CardPriority) else priority
        parts.append(f"[Priority: {value.capitalize()}]")

    if description:
        parts.append(description)

    return "\n\n".join(parts) or None


def extract_priority(notes: str | None) -> CardPriority | None:
    """Find the priority in notes: bracket tag first, then hashtags."""
    priority, _ = parse_notes(notes)
    return priority


def parse_notes(notes: str | None) -> tuple[CardPriority | None, str | None]:
    """Split Google notes into (priority, description).

    The bracket tag is removed from the description; hashtags are left in place.
    """
    if not notes:
        return None, None

    match = PRIORITY_TAG_PATTERN.search(notes)
    if match:
        before = notes[: match.start()].rstrip(" \t")
        after = notes[match.end() :].lstrip(" \t\r\n")
        # Words on both sides of a mid-line tag stay one space apart
        separator = " " if before and after and not before.endswith("\n") else ""
        description = (before + separator + after).strip()
        return CardPriority(match.group(1).lower()), description or None

    for pattern, priority in HASHTAG_PRIORITIES:
        if pattern.search(notes):
            return priority, notes

    return None, notes


# =============================================================================
# Dates
# =============================================================================


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp into naive UTC.

    Raises:
        TransformError: If the value is not a valid timestamp
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError) as e:
        raise TransformError(f"Invalid RFC3339 timestamp: {value!r}") from e
    return as_naive_utc(parsed)


def format_rfc3339(value: datetime) -> str:
    """Format a naive UTC (or aware) datetime the way Google writes timestamps."""
    value = as_naive_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_due(value: str) -> date:
    """Google stores due dates as midnight UTC; only the date part is meaningful."""
    return parse_rfc3339(value).date()


def format_due(value: date) -> str:
    return f"{value.isoformat()}T00:00:00.000Z"


# =============================================================================
# Diffing and snapshots
# =============================================================================


def changed_fields(task: RemoteTask, card: Card) -> list[str]:
    """List the card attributes that differ from what the Google task would produce."""
    priority, description = parse_notes(task.notes)
    changes: list[str] = []

    if task.title != card.title:
        changes.append("title")
    if (description or "") != (card.description or ""):
        changes.append("description")
    if priority != card.priority:
        changes.append("priority")

    remote_status = (
        CardStatus.COMPLETED if task.status == TASK_STATUS_COMPLETED else CardStatus.PENDING
    )
    if remote_status != card.status:
        changes.append("status")

    try:
        remote_due = parse_due(task.due) if task.due else None
    except TransformError:
        remote_due = None
    if remote_due != card.due_date:
        changes.append("due_date")

    return changes


def card_snapshot(card: Card) -> dict[str, Any]:
    """JSON-serialisable copy of a card for the audit log."""
    return {
        "id": card.id,
        "title": card.title,
        "description": card.description,
        "status": card.status.value if card.status else None,
        "priority": card.priority.value if card.priority else None,
        "due_date": card.due_date.isoformat() if card.due_date else None,
        "column_id": card.column_id,
        "position": card.position,
        "updated_at": card.updated_at.isoformat() if card.updated_at else None,
    }
