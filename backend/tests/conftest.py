"""Pytest configuration and fixtures for KPIBoard tests.

Tests run against an in-memory SQLite database (aiosqlite) with the Redis
cache switched off and a fixed clock that individual tests can advance.
"""

import os

# Must be set before kpiboard.config is imported
os.environ["CACHE_ENABLED"] = "false"
os.environ["SHARE_LINK_CLEANUP_INTERVAL_SECONDS"] = "0"

from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import kpiboard.models  # noqa: F401  (register mappers)
from kpiboard.auth.jwt import create_access_token
from kpiboard.container import ServiceFactory, Services
from kpiboard.database import Base, get_db
from kpiboard.main import app
from kpiboard.models.dashboard import Dashboard
from kpiboard.models.kpi import Kpi
from kpiboard.models.user import User, UserRole
from kpiboard.repositories import UserDirectory

START = datetime(2024, 1, 1, 12, 0, 0)


class FixedClock:
    """Clock that only moves when a test says so."""

    def __init__(self, now: datetime = START):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current += timedelta(**delta)


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test; StaticPool keeps one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def service_factory(clock: FixedClock) -> ServiceFactory:
    return ServiceFactory(clock=clock)


@pytest.fixture
def services(service_factory: ServiceFactory, db_session: AsyncSession) -> Services:
    return service_factory.build(db_session)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, service_factory: ServiceFactory
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client sharing the test session and clock with the app."""

    async def override_get_db():
        yield db_session

    original_factory = app.state.service_factory
    app.dependency_overrides[get_db] = override_get_db
    app.state.service_factory = service_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.service_factory = original_factory


# ── Test Data Fixtures ───────────────────────────────────────────

async def _user(db: AsyncSession, email: str, role: UserRole) -> User:
    user = await UserDirectory(db).create(email, role)
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await _user(db_session, "admin@example.com", UserRole.ADMIN)


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    """Editor who owns the `kpi` and `dashboard` fixtures."""
    return await _user(db_session, "owner@example.com", UserRole.EDITOR)


@pytest_asyncio.fixture
async def other_editor(db_session: AsyncSession) -> User:
    return await _user(db_session, "editor@example.com", UserRole.EDITOR)


@pytest_asyncio.fixture
async def viewer(db_session: AsyncSession) -> User:
    return await _user(db_session, "viewer@example.com", UserRole.VIEWER)


@pytest_asyncio.fixture
async def kpi(services: Services, owner: User) -> Kpi:
    return await services.kpis.create(owner, {
        "name": "Monthly revenue",
        "direction": "higher_is_better",
        "target": 200,
        "rag_red": 50,
        "rag_amber": 75,
        "format_prefix": "$",
    })


@pytest_asyncio.fixture
async def dashboard(services: Services, owner: User, kpi: Kpi) -> Dashboard:
    return await services.dashboards.create(
        owner,
        "Sales",
        [{"kpi_id": kpi.id, "x": 0, "y": 0, "w": 4, "h": 2}],
        description="Revenue overview",
    )


def auth_headers(user: User) -> dict:
    """Authorization header carrying a fresh access token for `user`."""
    token = create_access_token(user_id=user.id, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "cache: Redis cache tests")
    config.addinivalue_line("markers", "auth: Authentication tests")
    config.addinivalue_line("markers", "share_links: Share link lifecycle tests")
