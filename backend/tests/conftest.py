from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db import enable_sqlite_savepoints, get_session
from app.main import app
from app.models import SQLModel
from app.models.leave_type import LeaveType
from app.schemas.employee import EmployeeInfo
from app.services.cache import LeaveCache
from app.services.compliance import ensure_default_nes_policies
from app.services.employee import InMemoryEmployeeService, set_employee_service
from app.services.notification import InMemoryNotificationService, set_notification_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

LEAVE_TYPE_DEFINITIONS = (
    ("ANNUAL", "Annual Leave", "annual", True),
    ("PERSONAL", "Personal Leave", "personal", True),
    ("CARER", "Carer's Leave", "personal", False),
    ("LSL", "Long Service Leave", "long_service", True),
)


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A fresh in-memory SQLite database per test."""
    _engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(_engine)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a session on the per-test database."""
    session = AsyncSession(engine, expire_on_commit=False)
    yield session
    await session.close()


@pytest.fixture
def leave_cache() -> Iterator[LeaveCache]:
    """A fresh leave cache, also installed on the app."""
    cache = LeaveCache()
    previous = app.state.leave_cache
    app.state.leave_cache = cache
    yield cache
    app.state.leave_cache = previous


@pytest.fixture(autouse=True)
def employee_service() -> Iterator[InMemoryEmployeeService]:
    """Fresh in-memory directory for every test."""
    svc = InMemoryEmployeeService()
    set_employee_service(svc)
    yield svc
    set_employee_service(InMemoryEmployeeService())


@pytest.fixture(autouse=True)
def notifications() -> Iterator[InMemoryNotificationService]:
    """Fresh in-memory notification recorder for every test."""
    svc = InMemoryNotificationService()
    set_notification_service(svc)
    yield svc
    set_notification_service(InMemoryNotificationService())


@pytest.fixture
def make_employee(employee_service: InMemoryEmployeeService) -> Callable[..., EmployeeInfo]:
    """Factory that builds an employee and seeds the directory with it."""

    def _make(**overrides: Any) -> EmployeeInfo:
        fields: dict[str, Any] = {
            "id": uuid.uuid4(),
            "user_id": uuid.uuid4(),
            "first_name": "Test",
            "last_name": "Employee",
            "email": "test@example.com",
            "hours_per_week": 38.0,
            "service_start_date": date(2024, 1, 1),
        }
        fields.update(overrides)
        employee = EmployeeInfo(**fields)
        employee_service.seed(employee)
        return employee

    return _make


@pytest.fixture
async def leave_types(db_session: AsyncSession) -> dict[str, uuid.UUID]:
    """Register the standard leave types. Returns code -> id."""
    ids: dict[str, uuid.UUID] = {}
    for code, name, category, is_paid in LEAVE_TYPE_DEFINITIONS:
        leave_type = LeaveType(code=code, name=name, category=category, is_paid=is_paid)
        db_session.add(leave_type)
        ids[code] = leave_type.id
    await db_session.commit()
    return ids


@pytest.fixture
async def nes_policies(db_session: AsyncSession) -> None:
    """Install the AU NES default policies."""
    await ensure_default_nes_policies(db_session)


@pytest.fixture
async def async_client(db_session: AsyncSession, leave_cache: LeaveCache) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
