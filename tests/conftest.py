import os
import sys

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import slotbook.models  # noqa: F401  registers all tables on Base.metadata
from slotbook.core.database import (
    Base,
    build_engine,
    build_session_factory,
    get_session_factory,
)
from slotbook.core.redis import redis_client
from slotbook.main import app


@pytest.fixture
async def session_factory(tmp_path) -> async_sessionmaker:
    """Session factory over a fresh SQLite database file per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'slotbook_test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest.fixture
async def db(session_factory: async_sessionmaker):
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory: async_sessionmaker, monkeypatch):
    """HTTP client against the app, wired to the test database without Redis."""
    monkeypatch.setattr(redis_client, "url", None)
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# Import all scheduling fixtures to make them available
pytest_plugins = ["tests.fixtures.scheduling_fixtures"]
