"""
API endpoints for board sync and its bookkeeping.

REST API structure:
- POST   /boards/{board_id}/sync-google-tasks  - Sync one board now
- GET    /boards/{board_id}/sync/mappings      - Card ⇄ task pairings of a board
- PATCH  /sync/mappings/{id}                   - Enable/disable one pairing
- GET    /sync/audit                           - Conflict audit trail
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..services import SyncService
from .dependencies import get_bearer_token, get_principal_id, get_sync_service
from .errors import NotFoundError
from .schemas import (
    ConflictAuditResponse,
    ErrorResponse,
    SyncMappingResponse,
    SyncMappingUpdate,
    SyncResultResponse,
)

router = APIRouter(tags=["sync"])


# ============================================================================
# SYNC ONE BOARD
# ============================================================================


@router.post(
    "/boards/{board_id}/sync-google-tasks",
    response_model=SyncResultResponse,
    summary="Sync a board with Google Tasks",
    description="""
    Run one sync pass between the board and the task list it is subscribed to.

    Per-item failures are listed in `errors` and the pass still succeeds.
    If the pass could not start at all (Google unreachable, token rejected)
    the result is returned with status 502.
    """,
    responses={
        200: {"description": "Pass completed"},
        404: {"model": ErrorResponse, "description": "Board is not subscribed"},
        502: {"model": SyncResultResponse, "description": "Pass could not start"},
    },
)
async def sync_board(
    board_id: int,
    principal_id: str = Depends(get_principal_id),
    bearer_token: str = Depends(get_bearer_token),
    service: SyncService = Depends(get_sync_service),
):
    """Sync one board now."""
    try:
        result = await service.sync_board(principal_id, board_id, bearer_token)
    except ValueError:
        raise NotFoundError("TaskListMapping for board", board_id)

    response = SyncResultResponse(**asdict(result))
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY, content=response.model_dump()
        )
    return response


# ============================================================================
# PAIRINGS
# ============================================================================


@router.get(
    "/boards/{board_id}/sync/mappings",
    response_model=list[SyncMappingResponse],
    summary="List card ⇄ task pairings of a board",
)
async def list_board_mappings(
    board_id: int,
    principal_id: str = Depends(get_principal_id),
    service: SyncService = Depends(get_sync_service),
) -> list[SyncMappingResponse]:
    """Get the principal's pairings whose card belongs to the board."""
    mappings = await service.list_card_mappings(principal_id, board_id)
    return [SyncMappingResponse.model_validate(m) for m in mappings]


@router.patch(
    "/sync/mappings/{mapping_id}",
    response_model=SyncMappingResponse,
    summary="Enable or disable sync of one pairing",
    description="A disabled pairing is skipped by sync passes but keeps its history.",
    responses={404: {"model": ErrorResponse, "description": "Pairing not found"}},
)
async def update_mapping(
    mapping_id: int,
    data: SyncMappingUpdate,
    principal_id: str = Depends(get_principal_id),
    service: SyncService = Depends(get_sync_service),
) -> SyncMappingResponse:
    """Switch sync on or off for one pairing."""
    try:
        mapping = await service.set_pair_sync_enabled(
            principal_id, mapping_id, data.sync_enabled
        )
    except ValueError:
        raise NotFoundError("SyncMapping", mapping_id)
    return SyncMappingResponse.model_validate(mapping)


# ============================================================================
# AUDIT
# ============================================================================


@router.get(
    "/sync/audit",
    response_model=list[ConflictAuditResponse],
    summary="Conflict audit trail",
    description="""
    Most recent conflicts first, with both sides as they were before the overwrite.

    Only conflicts of pairings inside the principal's board subscriptions are listed.
    """,
)
async def get_audit_entries(
    card_id: int | None = Query(None, gt=0, description="Only conflicts of this card"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of entries"),
    principal_id: str = Depends(get_principal_id),
    service: SyncService = Depends(get_sync_service),
) -> list[ConflictAuditResponse]:
    """Get the conflict audit trail."""
    entries = await service.get_audit_entries(principal_id, card_id=card_id, limit=limit)
    return [ConflictAuditResponse.model_validate(entry) for entry in entries]
