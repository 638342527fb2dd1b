"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The Redis client is an ``AsyncMock`` whose
``SET NX`` always succeeds unless a test says otherwise.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from shipment_tracker.domain.entities import Coordinate, Place
from shipment_tracker.infrastructure.database import Database

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

NEW_YORK = Place("New York", Coordinate(40.7128, -74.0060))
LOS_ANGELES = Place("LA", Coordinate(34.0522, -118.2437))
CHICAGO = Place("Chicago", Coordinate(41.8781, -87.6298))
DENVER = Place("Denver", Coordinate(39.7392, -104.9903))


class FakeClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def t0() -> datetime:
    return datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(t0) -> FakeClock:
    return FakeClock(t0)


@pytest.fixture
def fake_redis() -> AsyncMock:
    client = AsyncMock()
    client.set = AsyncMock(return_value=True)
    client.eval = AsyncMock(return_value=1)
    return client


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database with all tables, disposed afterwards."""
    db = Database(TEST_DB_URL)
    await db.connect()
    await db.create_all()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: Database, fake_redis: AsyncMock):
    """AsyncClient backed by SQLite and a mocked Redis."""
    from shipment_tracker.api.app import create_app
    from shipment_tracker.api.dependencies import get_redis
    from shipment_tracker.api.middleware import limiter

    limiter.reset()
    app = create_app(database=database)
    app.dependency_overrides[get_redis] = lambda: fake_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
