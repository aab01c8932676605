"""
API endpoints for Google Tasks connections.

REST API structure:
- GET    /google/task-lists       - Google task lists of the principal
- GET    /google/mappings         - Board ⇄ task list subscriptions
- POST   /google/mappings         - Subscribe a board to a task list
- DELETE /google/mappings/{id}    - Remove a subscription
- POST   /google/sync             - Sync every subscribed board

Every endpoint acts for the principal in X-Principal-Id; endpoints that
talk to Google also need `Authorization: Bearer <google access token>`.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from ..services import SyncService
from .dependencies import get_bearer_token, get_principal_id, get_sync_service
from .errors import AlreadyExistsError, NotFoundError
from .schemas import (
    BoardSyncResult,
    ErrorResponse,
    RemoteTaskListResponse,
    SyncAllResponse,
    TaskListMappingCreate,
    TaskListMappingResponse,
)

router = APIRouter(prefix="/google", tags=["google"])


# ============================================================================
# TASK LISTS
# ============================================================================


@router.get(
    "/task-lists",
    response_model=list[RemoteTaskListResponse],
    summary="List Google task lists",
    description="Fetch the task lists of the Google account the bearer token belongs to.",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or rejected Google token"},
        502: {"model": ErrorResponse, "description": "Google Tasks API error"},
    },
)
async def list_task_lists(
    bearer_token: str = Depends(get_bearer_token),
    service: SyncService = Depends(get_sync_service),
) -> list[RemoteTaskListResponse]:
    """Get the principal's Google task lists."""
    task_lists = await service.list_remote_task_lists(bearer_token)
    return [RemoteTaskListResponse.model_validate(task_list) for task_list in task_lists]


# ============================================================================
# MAPPINGS
# ============================================================================


@router.get(
    "/mappings",
    response_model=list[TaskListMappingResponse],
    summary="List board subscriptions",
)
async def list_mappings(
    principal_id: str = Depends(get_principal_id),
    service: SyncService = Depends(get_sync_service),
) -> list[TaskListMappingResponse]:
    """Get the principal's board ⇄ task list subscriptions."""
    mappings = await service.list_list_mappings(principal_id)
    return [TaskListMappingResponse.model_validate(m) for m in mappings]


@router.post(
    "/mappings",
    response_model=TaskListMappingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Subscribe a board to a task list",
    description="""
    Subscribe a board to a Google task list.

    Rules:
    - The board must exist
    - A board can be subscribed to one task list per principal
    """,
    responses={
        201: {"description": "Subscription created"},
        404: {"model": ErrorResponse, "description": "Board not found"},
        409: {"model": ErrorResponse, "description": "Board already subscribed"},
    },
)
async def create_mapping(
    data: TaskListMappingCreate,
    principal_id: str = Depends(get_principal_id),
    service: SyncService = Depends(get_sync_service),
) -> TaskListMappingResponse:
    """
    Subscribe a board to a task list.

    Example request:
    ```json
    {
        "board_id": 1,
        "remote_list_id": "MTIzNDU2Nzg5",
        "remote_list_title": "My Tasks"
    }
    ```
    """
    try:
        mapping = await service.create_list_mapping(
            principal_id=principal_id,
            board_id=data.board_id,
            remote_list_id=data.remote_list_id,
            remote_list_title=data.remote_list_title,
        )
    except ValueError as e:
        if "not found" in str(e).lower():
            raise NotFoundError("Board", data.board_id)
        raise AlreadyExistsError("TaskListMapping", "board_id", str(data.board_id))

    return TaskListMappingResponse.model_validate(mapping)


@router.delete(
    "/mappings/{mapping_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a board subscription",
    description="Card ⇄ task pairings and the conflict audit trail are kept.",
    responses={
        204: {"description": "Subscription removed"},
        404: {"model": ErrorResponse, "description": "Subscription not found"},
    },
)
async def delete_mapping(
    mapping_id: int,
    principal_id: str = Depends(get_principal_id),
    service: SyncService = Depends(get_sync_service),
) -> None:
    """Remove a subscription owned by the principal."""
    try:
        await service.delete_list_mapping(principal_id, mapping_id)
    except ValueError:
        raise NotFoundError("TaskListMapping", mapping_id)


# ============================================================================
# SYNC ALL
# ============================================================================


@router.post(
    "/sync",
    response_model=SyncAllResponse,
    summary="Sync all subscribed boards",
    description="""
    Run one sync pass for every enabled subscription of the principal.

    Boards are synced one after another. A failed board is reported in its
    own result and does not stop the others.
    """,
    responses={401: {"model": ErrorResponse, "description": "Missing Google token"}},
)
async def sync_all(
    principal_id: str = Depends(get_principal_id),
    bearer_token: str = Depends(get_bearer_token),
    service: SyncService = Depends(get_sync_service),
) -> SyncAllResponse:
    """Sync every board the principal subscribed to a task list."""
    results = await service.sync_all_mapped_boards(principal_id, bearer_token)

    board_results = [
        BoardSyncResult(board_id=board_id, **asdict(result))
        for board_id, result in results.items()
    ]
    return SyncAllResponse(
        results=board_results,
        boards_synced=sum(1 for r in board_results if r.success),
        boards_failed=sum(1 for r in board_results if not r.success),
    )
