"""Google Tasks REST API client.

API reference: https://developers.google.com/tasks/reference/rest/v1

The client only consumes a bearer token; obtaining and refreshing it is the
caller's job.
"""

from __future__ import annotations

import time
from typing import Any

import httpx

from ...core.config import settings
from ...core.logging import get_logger
from .schemas import (
    TASK_STATUS_COMPLETED,
    TASK_STATUS_NEEDS_ACTION,
    RemoteTask,
    RemoteTaskList,
)

logger = get_logger(__name__)


class GoogleTasksError(Exception):
    """Base exception for Google Tasks transport errors (network or non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class GoogleTasksAuthError(GoogleTasksError):
    """Bearer token missing, expired or revoked (401)."""

    pass


class GoogleTasksForbiddenError(GoogleTasksError):
    """Token lacks the tasks scope (403)."""

    pass


class GoogleTasksNotFoundError(GoogleTasksError):
    """Task list or task does not exist (404)."""

    pass


class GoogleTasksRateLimitError(GoogleTasksError):
    """Quota exceeded (429)."""

    pass


class GoogleTasksClient:
    """Thin async wrapper around the Google Tasks API.

    Usage:
        async with GoogleTasksClient(token) as client:
            lists = await client.list_task_lists()
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            access_token: OAuth bearer token with the tasks scope
            base_url: API root (defaults to settings.GOOGLE_TASKS_BASE_URL)
            timeout: Per-request timeout in seconds
            page_size: maxResults used when paging through tasks
            transport: Custom httpx transport (tests pass httpx.MockTransport)
        """
        self.base_url = (base_url or settings.GOOGLE_TASKS_BASE_URL).rstrip("/")
        self.page_size = page_size or settings.GOOGLE_TASKS_PAGE_SIZE
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout or settings.GOOGLE_TASKS_TIMEOUT,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> GoogleTasksClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # =========================================================================
    # Task lists
    # =========================================================================

    async def list_task_lists(self) -> list[RemoteTaskList]:
        """Get all task lists of the authenticated user."""
        items = await self._get_all_pages("/users/@me/lists", {})
        return [RemoteTaskList.from_api(item) for item in items]

    async def get_task_list(self, task_list_id: str) -> RemoteTaskList:
        """Get a single task list."""
        data = await self._request("GET", f"/users/@me/lists/{task_list_id}")
        return RemoteTaskList.from_api(data)

    # =========================================================================
    # Tasks
    # =========================================================================

    async def list_tasks(
        self,
        task_list_id: str,
        include_completed: bool = False,
        updated_min: str | None = None,
    ) -> list[RemoteTask]:
        """Get all tasks of a list, following pagination.

        Args:
            task_list_id: Task list ID
            include_completed: Also return completed tasks
            updated_min: RFC3339 lower bound on the task's `updated` field
        """
        params: dict[str, Any] = {
            "showCompleted": "true" if include_completed else "false",
            "showHidden": "true" if include_completed else "false",
        }
        if updated_min:
            params["updatedMin"] = updated_min

        items = await self._get_all_pages(f"/lists/{task_list_id}/tasks", params)
        return [RemoteTask.from_api(item) for item in items]

    async def get_task(self, task_list_id: str, task_id: str) -> RemoteTask:
        """Get a single task."""
        data = await self._request("GET", f"/lists/{task_list_id}/tasks/{task_id}")
        return RemoteTask.from_api(data)

    async def create_task(self, task_list_id: str, fields: dict[str, Any]) -> RemoteTask:
        """Create a task; Google assigns id and updated."""
        data = await self._request("POST", f"/lists/{task_list_id}/tasks", json=fields)
        return RemoteTask.from_api(data)

    async def update_task(
        self, task_list_id: str, task_id: str, fields: dict[str, Any]
    ) -> RemoteTask:
        """Patch a task. A None value clears the field on the Google side."""
        data = await self._request(
            "PATCH", f"/lists/{task_list_id}/tasks/{task_id}", json=fields
        )
        return RemoteTask.from_api(data)

    async def delete_task(self, task_list_id: str, task_id: str) -> None:
        """Delete a task."""
        await self._request("DELETE", f"/lists/{task_list_id}/tasks/{task_id}")

    async def complete_task(self, task_list_id: str, task_id: str) -> RemoteTask:
        return await self.update_task(task_list_id, task_id, {"status": TASK_STATUS_COMPLETED})

    async def uncomplete_task(self, task_list_id: str, task_id: str) -> RemoteTask:
        return await self.update_task(
            task_list_id, task_id, {"status": TASK_STATUS_NEEDS_ACTION, "completed": None}
        )

    async def move_task(
        self,
        task_list_id: str,
        task_id: str,
        parent: str | None = None,
        previous: str | None = None,
    ) -> RemoteTask:
        """Move a task under another parent and/or after a sibling."""
        params = {}
        if parent:
            params["parent"] = parent
        if previous:
            params["previous"] = previous

        data = await self._request(
            "POST", f"/lists/{task_list_id}/tasks/{task_id}/move", params=params
        )
        return RemoteTask.from_api(data)

    # =========================================================================
    # Transport
    # =========================================================================

    async def _get_all_pages(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page_token: str | None = None

        while True:
            page_params = {**params, "maxResults": self.page_size}
            if page_token:
                page_params["pageToken"] = page_token

            data = await self._request("GET", path, params=page_params)
            items.extend(data.get("items", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                return items

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and map failures onto GoogleTasksError subclasses.

        Returns:
            Decoded JSON body ({} for empty responses)
        """
        start_time = time.monotonic()
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("Google Tasks %s %s failed after %.0fms: %s", method, path, elapsed_ms, e)
            raise GoogleTasksError(f"Request failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            "Google Tasks %s %s -> %d (%.0fms)", method, path, response.status_code, elapsed_ms
        )

        status_code = response.status_code
        if status_code == 401:
            raise GoogleTasksAuthError(
                "Google rejected the access token. Reconnect the Google account.", status_code
            )
        if status_code == 403:
            if "rate" in response.text.lower():
                raise GoogleTasksRateLimitError("Google Tasks quota exceeded", status_code)
            raise GoogleTasksForbiddenError(
                "Access denied. The token needs the https://www.googleapis.com/auth/tasks scope.",
                status_code,
            )
        if status_code == 404:
            raise GoogleTasksNotFoundError(f"Not found: {method} {path}", status_code)
        if status_code == 429:
            raise GoogleTasksRateLimitError("Google Tasks quota exceeded", status_code)
        if status_code >= 400:
            logger.error(
                "Google Tasks %s %s: HTTP %d",
                method,
                path,
                status_code,
                extra={"response_body": response.text[:500]},
            )
            raise GoogleTasksError(
                f"HTTP {status_code} on {method} {path}: {response.reason_phrase}", status_code
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise GoogleTasksError(f"Invalid JSON response: {e}", status_code) from e
