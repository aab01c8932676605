"""
Главный файл FastAPI приложения.

Точка входа в Kanban Task Sync: двусторонняя синхронизация карточек
kanban досок с Google Tasks.

Запуск:
    uvicorn src.main:app --reload

API документация:
    http://localhost:8000/docs       - Swagger UI
    http://localhost:8000/redoc      - ReDoc

Версионирование:
    API доступно по путям /api/v1/...
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy import text

from .api import google_router, sync_router
from .api.dependencies import verify_api_key
from .api.errors import register_error_handlers
from .api.middleware import RequestLoggingMiddleware
from .core.config import settings
from .core.database import AsyncSessionLocal
from .core.logging import get_logger, setup_logging

# Инициализируем логирование при импорте модуля
# LOG_LEVEL: DEBUG/INFO/WARNING/ERROR - что логировать
# LOG_FORMAT: json (production) / simple (development)
setup_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)

logger = get_logger(__name__)

# ============================================================================
# APPLICATION METADATA
# ============================================================================

APP_VERSION = "1.0.0"
APP_START_TIME: float = 0.0  # Выставляется при старте

# ============================================================================
# RATE LIMITER SETUP
# ============================================================================

# key_func определяет по какому ключу группировать запросы (по IP адресу)
limiter = Limiter(key_func=get_remote_address)


def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Кастомный обработчик превышения лимита запросов.

    Возвращает ошибку в едином формате ErrorResponse.
    """
    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": f"Слишком много запросов. Лимит: {exc.detail}",
                "details": [{"field": "rate_limit", "message": str(exc.detail)}],
            }
        },
    )


# ============================================================================
# LIFESPAN EVENT HANDLER
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup/shutdown events.

    Схема БД создаётся миграциями Alembic (alembic upgrade head),
    приложение её не трогает.
    """
    global APP_START_TIME

    APP_START_TIME = time.time()

    logger.info(
        "Application started",
        extra={
            "app_name": settings.APP_NAME,
            "version": APP_VERSION,
            "debug": settings.DEBUG,
            "log_level": settings.LOG_LEVEL,
            "tie_break_winner": settings.SYNC_TIE_BREAK_WINNER,
        },
    )

    yield

    uptime = int(time.time() - APP_START_TIME)
    logger.info("Application stopped", extra={"uptime_seconds": uptime})


# ============================================================================
# CREATE APPLICATION
# ============================================================================

app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="""
    Двусторонняя синхронизация kanban досок с Google Tasks.

    ## Возможности

    * **Task lists** - список task lists аккаунта Google
    * **Подписки** - доска ⇄ task list для пользователя
    * **Sync** - проход синхронизации по одной доске или по всем подпискам
    * **Конфликты** - last-write-wins с журналом аудита

    ## 3-Layer Architecture

    ```
    API Layer (FastAPI) → Service Layer (SyncService) → Repository Layer (Database)
                                  ↓
                         Google Tasks API (httpx)
    ```

    ## Авторизация

    - `X-API-Key` - ключ сервиса (все endpoints /api/v1)
    - `X-Principal-Id` - пользователь, от имени которого идёт синхронизация
    - `Authorization: Bearer <token>` - Google OAuth access token

    ## Rate Limiting

    - **100 запросов/минуту** для служебных endpoints
    - При превышении лимита вернётся ошибка 429 Too Many Requests
    """,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Подключаем rate limiter к приложению
app.state.limiter = limiter
# slowapi handler имеет специфичный тип, но работает корректно
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)  # type: ignore[arg-type]


# ============================================================================
# MIDDLEWARE
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене указать конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Каждый запрос логируется с методом, путём, статусом и временем
app.add_middleware(RequestLoggingMiddleware)


# ============================================================================
# API VERSIONING
# ============================================================================

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(google_router)
api_v1_router.include_router(sync_router)

# dependencies=[Depends(verify_api_key)] - все endpoints роутера требуют авторизации
app.include_router(api_v1_router, dependencies=[Depends(verify_api_key)])

# Регистрируем обработчики ошибок для единого формата
register_error_handlers(app)


# ============================================================================
# ROOT ENDPOINT
# ============================================================================


@app.get("/", tags=["root"], summary="Root endpoint", description="Информация о API")
@limiter.limit("100/minute")
async def root(request: Request):
    """Возвращает информацию о API и полезные ссылки."""
    return {
        "name": settings.APP_NAME,
        "version": APP_VERSION,
        "api_version": "v1",
        "docs": "/docs",
        "redoc": "/redoc",
        "openapi": "/openapi.json",
        "endpoints": {
            "task_lists": "/api/v1/google/task-lists",
            "mappings": "/api/v1/google/mappings",
            "sync_all": "/api/v1/google/sync",
            "sync_board": "/api/v1/boards/{board_id}/sync-google-tasks",
            "audit": "/api/v1/sync/audit",
        },
        "rate_limit": "100 requests/minute",
        "description": "Kanban ⇄ Google Tasks sync",
    }


# ============================================================================
# HEALTH CHECK
# ============================================================================


@app.get(
    "/health", tags=["health"], summary="Health check", description="Проверка работоспособности API"
)
@limiter.limit("100/minute")
async def health_check(request: Request):
    """
    Health check endpoint.

    Проверяет подключение к базе данных. Google Tasks не проверяется:
    без токена пользователя обращаться к нему нечем.

    Пример ответа (200 OK):
    ```json
    {
        "status": "ok",
        "checks": {
            "database": "connected",
            "version": "1.0.0",
            "uptime_seconds": 3600
        },
        "timestamp": "2026-01-22T12:00:00Z"
    }
    ```
    """
    uptime_seconds = int(time.time() - APP_START_TIME) if APP_START_TIME > 0 else 0

    db_status = "disconnected"
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            db_status = "connected"
    except Exception as e:
        logger.warning("Health check: database unavailable", extra={"error": str(e)})

    checks = {
        "database": db_status,
        "version": APP_VERSION,
        "uptime_seconds": uptime_seconds,
    }

    overall_status = "ok" if db_status == "connected" else "error"
    status_code = 200 if overall_status == "ok" else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall_status,
            "checks": checks,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
