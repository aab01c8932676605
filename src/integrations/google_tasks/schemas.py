"""Value objects for Google Tasks API resources.

Field names follow the Google Tasks REST API v1 JSON payloads.
"""

from dataclasses import dataclass
from typing import Any

TASK_STATUS_NEEDS_ACTION = "needsAction"
TASK_STATUS_COMPLETED = "completed"


@dataclass
class RemoteTaskList:
    """A Google task list (tasks#taskList)."""

    id: str
    title: str
    updated: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteTaskList":
        return cls(id=data["id"], title=data.get("title", ""), updated=data.get("updated"))


@dataclass
class RemoteTask:
    """A Google task (tasks#task).

    `updated` and `due` are kept as the RFC3339 strings the API returns;
    the transform module owns their parsing.
    """

    id: str
    title: str
    updated: str
    status: str = TASK_STATUS_NEEDS_ACTION
    notes: str | None = None
    due: str | None = None
    parent: str | None = None
    position: str | None = None
    deleted: bool = False
    hidden: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteTask":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            updated=data["updated"],
            status=data.get("status", TASK_STATUS_NEEDS_ACTION),
            notes=data.get("notes"),
            due=data.get("due"),
            parent=data.get("parent"),
            position=data.get("position"),
            deleted=bool(data.get("deleted", False)),
            hidden=bool(data.get("hidden", False)),
        )

    @property
    def is_top_level(self) -> bool:
        return self.parent is None

    @property
    def is_completed(self) -> bool:
        return self.status == TASK_STATUS_COMPLETED

    def snapshot(self) -> dict[str, Any]:
        """JSON-serialisable copy for the audit log."""
        return {
            "id": self.id,
            "title": self.title,
            "notes": self.notes,
            "status": self.status,
            "due": self.due,
            "updated": self.updated,
        }
