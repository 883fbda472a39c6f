from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leave_quota.db import get_session
from leave_quota.main import app
from leave_quota.models import SQLModel
from leave_quota.services.balance_store import BalanceStore, InMemoryBalanceStore, SqlBalanceStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create a fresh schema for each test.

    Uses ``TEST_DATABASE_URL`` (e.g. a PostgreSQL asyncpg URL) when set,
    otherwise a throwaway SQLite file.
    """
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'leave_quota.db'}"
    _engine = create_async_engine(url)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Yield a database session for direct service calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest, db_session: AsyncSession) -> BalanceStore:
    """Run a test against both balance store implementations."""
    if request.param == "memory":
        return InMemoryBalanceStore()
    return SqlBalanceStore(db_session)


@pytest.fixture
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """Async HTTP client whose requests each get their own session on the test database."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
