"""Pytest configuration and shared fixtures."""

import os

# Set environment variables for testing BEFORE importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./data/test-timetravel.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from typing import Annotated

import pytest
import pytest_asyncio
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.api.v2.endpoints.resources import get_record_service
from timetravel.core.config import DatabaseSettings, Settings
from timetravel.core.database import DatabaseClient, get_async_session
from timetravel.main import create_app
from timetravel.services.record_service import RecordService

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: int = 1) -> int:
        self.current += timedelta(seconds=seconds)
        return self.epoch

    @property
    def epoch(self) -> int:
        return int(self.current.timestamp())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of a fresh SQLite database file for one test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'timetravel.db'}"


@pytest_asyncio.fixture
async def db_client(database_url: str):
    """Database client with all tables created.

    Yields:
        DatabaseClient: Connected client
    """
    client = DatabaseClient.from_settings(DatabaseSettings(DATABASE_URL=database_url))
    await client.connect()
    await client.create_tables()
    yield client
    await client.disconnect()


@pytest_asyncio.fixture
async def session(db_client: DatabaseClient):
    async with db_client.session_maker() as session:
        yield session


@pytest.fixture
def service(session: AsyncSession, clock: FakeClock) -> RecordService:
    return RecordService(session, clock=clock, timeout_seconds=5.0)


@pytest.fixture
def app(database_url: str, clock: FakeClock):
    """Application bound to the per-test database, with the fake clock injected."""
    app_settings = Settings(database=DatabaseSettings(DATABASE_URL=database_url))
    application = create_app(app_settings)

    async def record_service_with_clock(
        db_session: Annotated[AsyncSession, Depends(get_async_session)],
    ) -> RecordService:
        return RecordService(db_session, clock=clock)

    application.dependency_overrides[get_record_service] = record_service_with_clock
    yield application
    application.dependency_overrides = {}


@pytest.fixture
def test_client(app) -> TestClient:
    """Create FastAPI test client with the application lifespan running.

    Yields:
        TestClient: FastAPI test client instance
    """
    with TestClient(app) as client:
        yield client
