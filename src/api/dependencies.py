"""
Dependencies для FastAPI endpoints.

Dependency Injection (DI) - паттерн для автоматического предоставления зависимостей.

Вместо того чтобы создавать сервис вручную в каждом endpoint:
    async def sync_board(...):
        async with AsyncSessionLocal() as db:
            service = SyncService(db)
            ...

Мы используем FastAPI Depends():
    async def sync_board(
        service: SyncService = Depends(get_sync_service)
    ):
        # service уже создан и готов к использованию!
        ...

Преимущества:
1. Меньше boilerplate кода
2. Автоматическое управление жизненным циклом (создание/закрытие БД)
3. Легко тестировать (app.dependency_overrides подменяет клиент Google)
"""

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..integrations.google_tasks import GoogleTasksClient
from ..services import SyncService
from ..services.sync import ClientFactory

# ============================================================================
# API KEY AUTHENTICATION
# ============================================================================

# Определяем схему авторизации для Swagger UI
# name="X-API-Key" - название заголовка, который клиент должен отправить
api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,  # Не выбрасывать ошибку автоматически, мы сами обработаем
    description="API ключ для авторизации. Передавайте в заголовке X-API-Key",
)

# OAuth access token Google передаётся как есть: Authorization: Bearer <token>
google_bearer = HTTPBearer(
    auto_error=False,
    description="Google OAuth access token со scope https://www.googleapis.com/auth/tasks",
)


async def verify_api_key(api_key: str | None = Depends(api_key_header)) -> str:
    """
    Dependency для проверки API ключа.

    Как работает:
    1. Клиент отправляет запрос с заголовком X-API-Key
    2. FastAPI извлекает значение через api_key_header
    3. Мы сравниваем с ключом из настроек
    4. Если не совпадает - возвращаем 401 Unauthorized

    Пример запроса:
        curl -H "X-API-Key: your-secret-key" http://localhost:8000/api/v1/google/mappings
    """
    # Если ключ не передан
    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is missing. Add header: X-API-Key: your-key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    # Если ключ неверный
    if api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


# ============================================================================
# PRINCIPAL AND GOOGLE TOKEN
# ============================================================================


async def get_principal_id(
    principal_id: str = Header(
        ...,
        alias="X-Principal-Id",
        min_length=1,
        max_length=200,
        description="Пользователь, от имени которого выполняется синхронизация",
    ),
) -> str:
    """
    Dependency для текущего пользователя (principal).

    Сервис не управляет сессиями пользователей: вызывающая сторона
    передаёт идентификатор явно в заголовке X-Principal-Id.
    """
    return principal_id


async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(google_bearer),
) -> str:
    """
    Dependency для Google access token.

    Получение и обновление токена (OAuth refresh) - задача вызывающей стороны.
    Если токена нет - 401, sync без него невозможен.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google access token is missing. Add header: Authorization: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


# ============================================================================
# SERVICE DEPENDENCIES
# ============================================================================


async def get_tasks_client_factory() -> ClientFactory:
    """
    Dependency для фабрики клиента Google Tasks.

    В тестах подменяется через app.dependency_overrides на фейковый клиент.
    """
    return GoogleTasksClient


async def get_sync_service(
    db: AsyncSession = Depends(get_db),
    client_factory: ClientFactory = Depends(get_tasks_client_factory),
) -> SyncService:
    """
    Dependency для SyncService.

    Цепочка зависимостей:
        get_sync_service зависит от get_db и get_tasks_client_factory
        → FastAPI вызовет обе
        → Вернёт SyncService в endpoint
    """
    return SyncService(db, client_factory=client_factory)
