"""
Обработчики ошибок (Exception Handlers) для API.

Зачем нужны exception handlers?
1. Единый формат ошибок для всего API
2. Перехват ошибок Pydantic (422) и преобразование в наш формат
3. Ошибки Google Tasks превращаются в понятные HTTP коды
4. Логирование ошибок

Как это работает:
1. Где-то в коде возникает исключение (Exception)
2. FastAPI ищет подходящий handler для этого типа исключения
3. Handler преобразует исключение в HTTP ответ
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..integrations.google_tasks import (
    GoogleTasksAuthError,
    GoogleTasksError,
    GoogleTasksForbiddenError,
    GoogleTasksNotFoundError,
    GoogleTasksRateLimitError,
)
from .schemas import ErrorBody, ErrorDetail, ErrorResponse

# Настраиваем логгер для отслеживания ошибок
logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS (Наши собственные исключения)
# =============================================================================


class APIError(Exception):
    """
    Базовый класс для всех API ошибок.

    Использование:
        raise APIError(
            code="NOT_FOUND",
            message="Доска не найдена",
            status_code=404
        )
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: list[dict] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """
    Ресурс не найден (404).

    Использование:
        raise NotFoundError("Board", 123)
        # Сообщение: "Board с id=123 не найден"
    """

    def __init__(self, resource: str, resource_id: int | str):
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource} с id={resource_id} не найден",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class AlreadyExistsError(APIError):
    """
    Ресурс уже существует (409).

    Использование:
        raise AlreadyExistsError("TaskListMapping", "board_id", "1")
        # Сообщение: "TaskListMapping с board_id='1' уже существует"
    """

    def __init__(self, resource: str, field: str, value: str):
        super().__init__(
            code="ALREADY_EXISTS",
            message=f"{resource} с {field}='{value}' уже существует",
            status_code=status.HTTP_409_CONFLICT,
            details=[{"field": field, "message": f"Значение '{value}' уже используется"}],
        )


# =============================================================================
# EXCEPTION HANDLERS (Обработчики исключений)
# =============================================================================


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: list[ErrorDetail] | None = None,
) -> JSONResponse:
    error_response = ErrorResponse(error=ErrorBody(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=error_response.model_dump())


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """
    Обработчик для наших кастомных ошибок (APIError).

    Преобразует APIError в единый формат ErrorResponse.
    """
    logger.warning(f"API Error: {exc.code} - {exc.message}")

    details = None
    if exc.details:
        details = [ErrorDetail(field=d["field"], message=d["message"]) for d in exc.details]

    return _error_response(exc.status_code, exc.code, exc.message, details)


async def google_tasks_error_handler(request: Request, exc: GoogleTasksError) -> JSONResponse:
    """
    Обработчик ошибок Google Tasks вне sync прохода (например, список task lists).

    Сам sync проход ошибки не выбрасывает, а возвращает их в SyncResult.

    Соответствие:
    - GoogleTasksAuthError      → 401 (токен истёк, нужно переподключить аккаунт)
    - GoogleTasksForbiddenError → 403
    - GoogleTasksNotFoundError  → 404
    - GoogleTasksRateLimitError → 429
    - остальные                 → 502 (проблема на стороне Google)
    """
    if isinstance(exc, GoogleTasksAuthError):
        status_code, code = status.HTTP_401_UNAUTHORIZED, "GOOGLE_AUTH_ERROR"
    elif isinstance(exc, GoogleTasksForbiddenError):
        status_code, code = status.HTTP_403_FORBIDDEN, "GOOGLE_FORBIDDEN"
    elif isinstance(exc, GoogleTasksNotFoundError):
        status_code, code = status.HTTP_404_NOT_FOUND, "GOOGLE_NOT_FOUND"
    elif isinstance(exc, GoogleTasksRateLimitError):
        status_code, code = status.HTTP_429_TOO_MANY_REQUESTS, "GOOGLE_RATE_LIMIT"
    else:
        status_code, code = status.HTTP_502_BAD_GATEWAY, "UPSTREAM_ERROR"

    logger.warning(f"Google Tasks Error: {code} - {exc} (upstream status {exc.status_code})")
    return _error_response(status_code, code, str(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Обработчик для ошибок валидации Pydantic (422).

    Pydantic возвращает ошибки в своём формате:
    {
        "detail": [
            {"type": "missing", "loc": ["body", "board_id"], "msg": "..."}
        ]
    }

    Мы преобразуем это в наш формат:
    {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Ошибка валидации входных данных",
            "details": [{"field": "board_id", "message": "..."}]
        }
    }
    """
    logger.warning(f"Validation Error: {exc.errors()}")

    details = []
    for error in exc.errors():
        # loc - путь к полю, например ["body", "board_id"] или ["query", "limit"]
        field_path = error.get("loc", [])
        field_name = field_path[-1] if field_path else "unknown"

        # Если поле в body, убираем "body" из пути
        if len(field_path) > 1 and field_path[0] == "body":
            field_name = ".".join(str(p) for p in field_path[1:])

        details.append(
            ErrorDetail(field=str(field_name), message=error.get("msg", "Ошибка валидации"))
        )

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Ошибка валидации входных данных",
        details,
    )


# =============================================================================
# РЕГИСТРАЦИЯ HANDLERS
# =============================================================================


def register_error_handlers(app: FastAPI) -> None:
    """
    Регистрирует все error handlers в приложении FastAPI.

    Вызывается из main.py:
        from src.api.errors import register_error_handlers
        register_error_handlers(app)
    """
    # Наши кастомные ошибки
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]

    # Ошибки Google Tasks API
    app.add_exception_handler(GoogleTasksError, google_tasks_error_handler)  # type: ignore[arg-type]

    # Ошибки валидации Pydantic
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]

    logger.info("Error handlers registered")
