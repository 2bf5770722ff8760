"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from buildqueue.api.main import create_app
from buildqueue.constants import ChangeKind
from buildqueue.db import Base, QueueEntry, create_session_factory, get_async_session
from buildqueue.db.connection import get_test_engine
from buildqueue.observability.metrics import MetricsCollector
from buildqueue.types.events import ChangeEvent
from tests.fakes import change

# Test database URL - in-memory SQLite unless a real database is provided
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)


@pytest.fixture(scope="session")
def database_url() -> str:
    """Get the test database URL."""
    return TEST_DATABASE_URL


@pytest_asyncio.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async database engine with a fresh schema for each test."""
    engine = get_test_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a database session for tests."""
    session_factory = create_session_factory(async_engine)

    async with session_factory() as session:
        yield session

        # Rollback any uncommitted changes
        await session.rollback()


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def add_entry(db_session: AsyncSession):
    """Insert a queue row directly, with an arbitrary attempt counter."""

    async def _add(name: str, version: str, attempt: int = 0) -> QueueEntry:
        entry = QueueEntry(name=name, version=version, attempt=attempt)
        db_session.add(entry)
        await db_session.commit()
        return entry

    return _add


@pytest_asyncio.fixture
async def app(async_engine: AsyncEngine) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app whose sessions use the test database."""
    session_factory = create_session_factory(async_engine)

    async def override_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session
            await session.commit()

    app = create_app()
    app.dependency_overrides[get_async_session] = override_session
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_changes() -> list[ChangeEvent]:
    """A newest-first feed batch with one yanked release."""
    return [
        change("serde", "1.0.3"),
        change("rand", "0.8.5", ChangeKind.YANKED),
        change("log", "0.4.20", ChangeKind.UNYANKED),
        change("libc", "0.2.150"),
    ]
