"""Google Tasks integration: API client, field mapping and conflict rules."""

from src.integrations.google_tasks.client import (
    GoogleTasksAuthError,
    GoogleTasksClient,
    GoogleTasksError,
    GoogleTasksForbiddenError,
    GoogleTasksNotFoundError,
    GoogleTasksRateLimitError,
)
from src.integrations.google_tasks.conflict import SyncAction, SyncDecision, decide
from src.integrations.google_tasks.schemas import RemoteTask, RemoteTaskList
from src.integrations.google_tasks.transform import (
    CardFields,
    RemoteTaskFields,
    TransformError,
    to_local,
    to_remote,
)

__all__ = [
    "GoogleTasksClient",
    "GoogleTasksError",
    "GoogleTasksAuthError",
    "GoogleTasksForbiddenError",
    "GoogleTasksNotFoundError",
    "GoogleTasksRateLimitError",
    "RemoteTask",
    "RemoteTaskList",
    "CardFields",
    "RemoteTaskFields",
    "TransformError",
    "to_local",
    "to_remote",
    "SyncAction",
    "SyncDecision",
    "decide",
]
