"""
Pytest fixtures для тестов.

Предоставляет:
- test_db: изолированная SQLite in-memory БД для каждого теста
- fake_tasks: in-memory замена Google Tasks API
- sample_board: доска с тремя колонками
- test_client: HTTP клиент для тестирования API endpoints
"""

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.dependencies import get_db, get_tasks_client_factory
from src.core.config import settings
from src.integrations.google_tasks import GoogleTasksNotFoundError, RemoteTask, RemoteTaskList
from src.integrations.google_tasks.transform import format_rfc3339
from src.main import app
from src.models import Base, Board, BoardColumn
from src.models.base import utc_now

# Test database URL (SQLite in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PRINCIPAL_ID = "user-1"
GOOGLE_TOKEN = "test-google-token"
LIST_ID = "list-1"


# =============================================================================
# FAKE GOOGLE TASKS
# =============================================================================


class FakeTasksClient:
    """
    In-memory замена GoogleTasksClient с тем же async интерфейсом.

    Каждая запись выставляет `updated` в текущее время, как это делает Google.
    `fail_on` позволяет уронить конкретный вызов: {"create_task": Exception(...)}.
    """

    def __init__(self):
        self.task_lists: dict[str, RemoteTaskList] = {}
        self.tasks: dict[str, dict[str, RemoteTask]] = {}
        self.fail_on: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.tokens: list[str] = []
        self._next_id = 1

    def __call__(self, access_token: str) -> "FakeTasksClient":
        # Используется как client_factory
        self.tokens.append(access_token)
        return self

    async def __aenter__(self) -> "FakeTasksClient":
        return self

    async def __aexit__(self, *args) -> None:
        return None

    # -- helpers для тестов ---------------------------------------------------

    def add_list(self, list_id: str, title: str) -> RemoteTaskList:
        task_list = RemoteTaskList(id=list_id, title=title, updated=format_rfc3339(utc_now()))
        self.task_lists[list_id] = task_list
        self.tasks.setdefault(list_id, {})
        return task_list

    def add_task(
        self,
        list_id: str,
        title: str,
        updated: datetime | None = None,
        **fields,
    ) -> RemoteTask:
        task = RemoteTask(
            id=self._new_id(),
            title=title,
            updated=format_rfc3339(updated or utc_now()),
            **fields,
        )
        self.tasks.setdefault(list_id, {})[task.id] = task
        return task

    def edit_task(self, list_id: str, task_id: str, updated: datetime, **fields) -> RemoteTask:
        """Изменить задачу "на стороне Google" с заданным временем."""
        task = self.tasks[list_id][task_id]
        for key, value in fields.items():
            setattr(task, key, value)
        task.updated = format_rfc3339(updated)
        return task

    def _new_id(self) -> str:
        task_id = f"task-{self._next_id}"
        self._next_id += 1
        return task_id

    def _check_failure(self, method: str) -> None:
        self.calls.append(method)
        if method in self.fail_on:
            raise self.fail_on[method]

    # -- интерфейс клиента -----------------------------------------------------

    async def list_task_lists(self) -> list[RemoteTaskList]:
        self._check_failure("list_task_lists")
        return list(self.task_lists.values())

    async def list_tasks(self, task_list_id: str, include_completed: bool = False, **kwargs):
        self._check_failure("list_tasks")
        tasks = list(self.tasks.get(task_list_id, {}).values())
        if not include_completed:
            tasks = [t for t in tasks if not t.is_completed]
        return [RemoteTask(**vars(t)) for t in tasks]

    async def create_task(self, task_list_id: str, fields: dict) -> RemoteTask:
        self._check_failure("create_task")
        task = self.add_task(
            task_list_id,
            fields["title"],
            notes=fields.get("notes"),
            status=fields.get("status", "needsAction"),
            due=fields.get("due"),
        )
        return RemoteTask(**vars(task))

    async def update_task(self, task_list_id: str, task_id: str, fields: dict) -> RemoteTask:
        self._check_failure("update_task")
        task = self.tasks.get(task_list_id, {}).get(task_id)
        if task is None:
            raise GoogleTasksNotFoundError(f"Not found: {task_id}", 404)
        for key in ("title", "notes", "status", "due"):
            if key in fields:
                setattr(task, key, fields[key])
        task.updated = format_rfc3339(utc_now())
        return RemoteTask(**vars(task))


# =============================================================================
# DATABASE
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """
    Создаёт async engine для тестовой БД (SQLite in-memory).

    StaticPool обеспечивает что используется одно и то же соединение,
    что критично для in-memory БД (иначе данные теряются).
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine):
    """
    Предоставляет async session для работы с тестовой БД.

    Каждый тест получает чистую БД.
    """
    TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================


@pytest.fixture
def fake_tasks() -> FakeTasksClient:
    """Google Tasks с одним пустым списком LIST_ID."""
    client = FakeTasksClient()
    client.add_list(LIST_ID, "My Tasks")
    return client


@pytest_asyncio.fixture
async def sample_board(test_db) -> Board:
    """Доска с колонками To Do / Doing / Done."""
    board = Board(name="Personal")
    test_db.add(board)
    await test_db.flush()

    # Позиции намеренно не по порядку вставки
    test_db.add_all(
        [
            BoardColumn(board_id=board.id, name="Doing", position=1),
            BoardColumn(board_id=board.id, name="To Do", position=0),
            BoardColumn(board_id=board.id, name="Done", position=2, is_done_column=True),
        ]
    )
    await test_db.flush()
    await test_db.refresh(board, attribute_names=["columns"])
    return board


# =============================================================================
# API
# =============================================================================


@pytest_asyncio.fixture
async def test_client(test_engine, fake_tasks):
    """
    Предоставляет HTTP клиент для тестирования API endpoints.

    Использует тестовую БД и FakeTasksClient вместо Google.
    Заголовки авторизации выставлены по умолчанию.
    """

    async def override_get_db():
        TestSessionLocal = async_sessionmaker(
            test_engine, class_=AsyncSession, expire_on_commit=False
        )

        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def override_client_factory():
        return fake_tasks

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tasks_client_factory] = override_client_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={
            "X-API-Key": settings.API_KEY,
            "X-Principal-Id": PRINCIPAL_ID,
            "Authorization": f"Bearer {GOOGLE_TOKEN}",
        },
    ) as client:
        yield client

    app.dependency_overrides.clear()
