"""
Pytest fixtures for the booking core, the SQL store and the HTTP client.

The SQL store runs on an in-memory SQLite database (aiosqlite) that is
created and dropped per test. The HTTP client talks to the real FastAPI
app with the orchestrator dependency pointed at that database.
"""

from typing import AsyncGenerator

from fakeredis import aioredis as fake_aioredis
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ticket_booking.main import app
from ticket_booking.api.dependencies import get_orchestrator
from ticket_booking.db.base import Base
from ticket_booking.db.session import make_session_factory
from ticket_booking.models import Event, Booking  # noqa: F401 - register tables on Base.metadata
from ticket_booking.services.booking_service import BookingOrchestrator
from ticket_booking.services.inventory import InventoryLedger
from ticket_booking.services.memory_store import InMemoryStore
from ticket_booking.services.redis_waitlist import RedisWaitingList
from ticket_booking.services.sql_store import SqlAlchemyStore
from ticket_booking.services.waiting_list import InMemoryWaitingList

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def waiting_list() -> InMemoryWaitingList:
    return InMemoryWaitingList()


@pytest.fixture
def ledger() -> InventoryLedger:
    return InventoryLedger()


@pytest.fixture
def orchestrator(memory_store, waiting_list, ledger) -> BookingOrchestrator:
    """Booking core over the in-memory store."""
    return BookingOrchestrator(store=memory_store, waiting_list=waiting_list, ledger=ledger)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create tables, yield engine, then drop tables for isolation."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def sql_store(engine: AsyncEngine) -> SqlAlchemyStore:
    return SqlAlchemyStore(make_session_factory(engine))


@pytest.fixture
def sql_orchestrator(sql_store: SqlAlchemyStore) -> BookingOrchestrator:
    """Booking core over the SQLite-backed store."""
    return BookingOrchestrator(store=sql_store, waiting_list=InMemoryWaitingList())


@pytest_asyncio.fixture
async def client(sql_orchestrator: BookingOrchestrator) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the orchestrator dependency with the test one."""
    app.dependency_overrides[get_orchestrator] = lambda: sql_orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def fake_redis():
    client = fake_aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def redis_waiting_list(fake_redis) -> RedisWaitingList:
    return RedisWaitingList(fake_redis, prefix="test-waitlist")


@pytest_asyncio.fixture
async def single_ticket_event(orchestrator: BookingOrchestrator) -> Event:
    """An event with exactly one ticket, on the in-memory orchestrator."""
    return await orchestrator.create_event(1)


@pytest_asyncio.fixture
async def sold_out_event(orchestrator: BookingOrchestrator) -> Event:
    """An event with no tickets at all: every booking waitlists."""
    return await orchestrator.create_event(0)
