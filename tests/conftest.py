"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from reportflow.clients.archive import ArchiveClient
from reportflow.config import settings
from reportflow.db.base import Base
# Import all models to register with Base.metadata
import reportflow.db.models  # noqa: F401
from reportflow.messaging.consumer import PartitionConsumer
from reportflow.messaging.memory import InMemoryTransport
from reportflow.messaging.publisher import WorkItemPublisher
from reportflow.resilience.circuit_breaker import CircuitBreaker
from reportflow.strategies.registry import build_default_registry
from reportflow.workers.report_worker import ReportRequestWorker

TOPIC = "bim-report-requested"
GROUP = "bim-report-workers"


def make_token(sub: str = "analyst", scope: str | None = "reports.read reports.write", **claims) -> str:
    """Mint an HS256 access token accepted by the auth middleware."""
    payload = {
        "sub": sub,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        **claims,
    }
    if scope is not None:
        payload["scope"] = scope
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def make_archive_client(handler, **kwargs) -> ArchiveClient:
    """ArchiveClient over an httpx.MockTransport, with no retry backoff."""
    breaker = kwargs.pop(
        "breaker",
        CircuitBreaker(name="archive", window_size=10, minimum_calls=5, failure_rate_threshold=50, open_seconds=30),
    )
    return ArchiveClient(
        "http://archive.test",
        retry_backoff_ms=0,
        retry_max_backoff_ms=0,
        breaker=breaker,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class ArchiveStub:
    """Records archive calls and answers with a fixed ref, or fails."""

    def __init__(self, archive_ref: str = "archive://x", status_code: int = 200):
        self.archive_ref = archive_ref
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": "archive down"})
        return httpx.Response(200, json={"archiveRef": self.archive_ref})


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def transport():
    return InMemoryTransport(partitions=6)


@pytest.fixture
def publisher(transport):
    return WorkItemPublisher(transport, TOPIC)


@pytest.fixture
def archive_stub():
    return ArchiveStub()


@pytest.fixture
async def archive_client(archive_stub):
    client = make_archive_client(archive_stub)
    yield client
    await client.close()


@pytest.fixture
def report_worker(session_factory, archive_client):
    return ReportRequestWorker(session_factory, build_default_registry(archive_client))


@pytest.fixture
def consumer(transport, report_worker):
    return PartitionConsumer(
        transport,
        TOPIC,
        GROUP,
        report_worker.handle,
        max_attempts=3,
        backoff_ms=0,
        poll_timeout_ms=50,
    )


@pytest.fixture
def app(db_engine, session_factory, publisher):
    """Create a test application instance with in-memory DB and queue."""
    from reportflow.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.publisher = publisher
    _app.state.consumer = None
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client authenticated with read and write scopes."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {make_token()}"},
    ) as ac:
        yield ac


@pytest.fixture
async def anon_client(app):
    """Async HTTP test client without credentials."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
