"""
Shared test fixtures.

These replace real infrastructure with lightweight in-memory alternatives:
- PostgreSQL → SQLite in memory (via aiosqlite)
- Redis (rate limits) → fakeredis asyncio client
- Redis (broker) → fakeredis sync client, injected through BrokerConnection
- HTTP server → httpx.AsyncClient with ASGI transport (no network)

This means tests:
- Run without Docker
- Run in milliseconds (no network, no disk)
- Are fully isolated (each test gets a fresh database and empty queues)
"""

import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from fakeredis.aioredis import FakeRedis

from api.dependencies import get_db, get_job_queue, get_publisher, get_redis
from api.main import create_app
from broker.connection import BrokerConnection, Topology
from broker.publisher import JobPublisher
from broker.queue import JobQueue
from config.settings import settings
from models.base import Base

# SQLite in-memory database, created fresh for each test
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_KEY = "test-admin-key"

TEST_TOPOLOGY = Topology(
    exchange="test_exchange",
    queue="test_queue",
    routing_key="test.generate",
)


@pytest_asyncio.fixture
async def async_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine):
    """Create a database session bound to the test engine."""
    factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def fake_redis():
    """Create a fake Redis instance (in-memory, no real Redis needed)."""
    r = FakeRedis()
    await r.flushall()
    yield r
    await r.flushall()


@pytest.fixture
def broker_redis():
    """Sync fake Redis for the broker, decoding responses like the real client."""
    r = fakeredis.FakeRedis(decode_responses=True)
    r.flushall()
    yield r
    r.flushall()


@pytest.fixture
def broker_connection(broker_redis):
    connection = BrokerConnection("redis://fake", TEST_TOPOLOGY, client_factory=lambda: broker_redis)
    connection.connect()
    return connection


@pytest.fixture
def job_queue(broker_connection):
    return JobQueue(broker_connection, consumer_name="test", max_length=100)


@pytest.fixture
def publisher(job_queue):
    return JobPublisher(job_queue)


@pytest.fixture
def admin_headers(monkeypatch):
    """Configure an admin key for the test and return the header that carries it."""
    monkeypatch.setattr(settings, "ADMIN_API_KEY", ADMIN_KEY)
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def app(async_session, fake_redis, job_queue, publisher):
    """
    The FastAPI app with every infrastructure dependency swapped out.

    dependency_overrides tells FastAPI: "instead of using the real get_db,
    get_redis and broker handles, use these test versions." ASGITransport
    never runs the lifespan, so nothing here touches Postgres or Redis.
    """
    app = create_app()

    async def override_get_db():
        yield async_session

    async def override_get_redis():
        return fake_redis

    async def override_get_job_queue():
        return job_queue

    async def override_get_publisher():
        return publisher

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_job_queue] = override_get_job_queue
    app.dependency_overrides[get_publisher] = override_get_publisher
    return app


@pytest_asyncio.fixture
async def client(app):
    """
    Create a test HTTP client that talks directly to the FastAPI app.

    ASGITransport means requests go directly to the app in-process,
    no HTTP server or network involved. Every request arrives from
    127.0.0.1 unless a test sets X-Forwarded-For.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
