"""
Pydantic схемы для API.

DTOs (Data Transfer Objects) - объекты для передачи данных через HTTP.

Схемы отделены от моделей SQLAlchemy:
1. Контроль над тем, что видит клиент
2. Валидация входящих данных
3. API ≠ Database
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models import AuditEventType, ConflictWinner, MappingSyncStatus

# ============================================================================
# ERROR SCHEMAS
# ============================================================================


class ErrorDetail(BaseModel):
    """
    Детали ошибки для конкретного поля.

    Пример:
    {
        "field": "remote_list_id",
        "message": "Field required"
    }
    """

    field: str = Field(..., description="Название поля с ошибкой")
    message: str = Field(..., description="Описание ошибки")


class ErrorBody(BaseModel):
    """
    Тело ошибки с кодом и деталями.

    Примеры кодов:
    - VALIDATION_ERROR: ошибка валидации полей
    - NOT_FOUND: ресурс не найден
    - ALREADY_EXISTS: ресурс уже существует
    - UNAUTHORIZED: нет bearer токена
    - UPSTREAM_ERROR: Google Tasks вернул ошибку
    """

    code: str = Field(..., description="Код ошибки (VALIDATION_ERROR, NOT_FOUND, etc.)")
    message: str = Field(..., description="Человекочитаемое сообщение")
    details: list[ErrorDetail] | None = Field(
        default=None, description="Список ошибок по полям (для валидации)"
    )


class ErrorResponse(BaseModel):
    """
    Единый формат ответа для всех ошибок API.

    Пример ошибки "не найдено":
    {
        "error": {
            "code": "NOT_FOUND",
            "message": "Board с id=999 не найден",
            "details": null
        }
    }
    """

    error: ErrorBody


# ============================================================================
# GOOGLE TASK LISTS
# ============================================================================


class RemoteTaskListResponse(BaseModel):
    """Google task list as returned by the Tasks API."""

    id: str
    title: str
    updated: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TaskListMappingCreate(BaseModel):
    """
    Request schema for subscribing a board to a Google task list.

    Example:
    {
        "board_id": 1,
        "remote_list_id": "MTIzNDU2Nzg5",
        "remote_list_title": "My Tasks"
    }
    """

    board_id: int = Field(..., gt=0, description="Local board ID")
    remote_list_id: str = Field(
        ..., min_length=1, max_length=255, description="Google task list ID"
    )
    remote_list_title: str = Field(..., min_length=1, max_length=255)


class TaskListMappingResponse(BaseModel):
    """Response schema for a board ⇄ task list subscription."""

    id: int
    principal_id: str
    board_id: int
    remote_list_id: str
    remote_list_title: str
    sync_enabled: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# SYNC
# ============================================================================


class SyncResultResponse(BaseModel):
    """Response schema for one sync pass."""

    success: bool
    cards_created: int = 0
    cards_updated: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    conflicts: int = 0
    errors: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class BoardSyncResult(SyncResultResponse):
    """Sync pass result for one board of a fan-out."""

    board_id: int


class SyncAllResponse(BaseModel):
    """Response schema for syncing every mapped board of a principal."""

    results: list[BoardSyncResult]
    boards_synced: int
    boards_failed: int


class SyncMappingResponse(BaseModel):
    """Response schema for a card ⇄ Google task pairing."""

    id: int
    card_id: int
    remote_task_id: str
    remote_list_id: str
    last_synced_at: datetime
    last_remote_updated_at: datetime | None
    last_local_updated_at: datetime | None
    sync_status: MappingSyncStatus
    sync_enabled: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SyncMappingUpdate(BaseModel):
    """Request schema for enabling or disabling sync of one pair."""

    sync_enabled: bool


class ConflictAuditResponse(BaseModel):
    """Response schema for a conflict audit entry."""

    id: int
    card_id: int
    mapping_id: int
    event_type: AuditEventType
    remote_task_id: str
    local_snapshot: dict[str, Any]
    remote_snapshot: dict[str, Any]
    winner: ConflictWinner
    resolution: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
