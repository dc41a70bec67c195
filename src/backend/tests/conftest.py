"""
Pytest configuration and fixtures for testing.

Provides:
- Environment for the settings classes (set before any app import)
- Per-test in-memory SQLite database (aiosqlite)
- An in-memory ServiceM8 fake served through httpx.MockTransport
- Service and HTTP client fixtures wired to both

Usage:
    pytest src/backend/tests -v
"""

import os

os.environ.setdefault("SECURITY_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256-signing")
os.environ.setdefault("SECURITY_BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SERVICEM8_API_KEY", "test-api-key")
os.environ.setdefault("SERVICEM8_BASE_URL", "https://api.servicem8.test/api_1.0")
os.environ.setdefault("LOG_ENABLE_FILE_LOGGING", "false")
os.environ.setdefault("API_ENVIRONMENT", "development")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import json
import uuid
from typing import Any, AsyncGenerator, Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import db.models  # noqa: F401  registers tables on the metadata
from api.services.auth_service import AuthService
from api.services.booking_service import BookingService
from api.services.job_service import JobService
from api.services.message_service import MessageService
from api.services.ownership_guard import OwnershipGuard
from core.config import BookingSettings, MessageSettings
from db.models import Customer
from services.servicem8_client import ServiceM8Client
from tests.factories import CustomerFactory

SERVICEM8_BASE_URL = "https://api.servicem8.test/api_1.0"


# ============================================================================
# ServiceM8 fake
# ============================================================================

class FakeServiceM8:
    """
    In-memory stand-in for the ServiceM8 REST API.

    Records are stored as raw dicts. ``fail()`` makes matching calls return
    an error status (or time out) so failure paths can be exercised.
    """

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.companies: Dict[str, Dict[str, Any]] = {}
        self.attachments: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str]] = []
        self._failures: List[Tuple[str, str, Any]] = []
        self.omit_record_uuid = False

    def add_job(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.jobs[payload["uuid"]] = dict(payload)
        return self.jobs[payload["uuid"]]

    def add_company(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.companies[payload["uuid"]] = dict(payload)
        return self.companies[payload["uuid"]]

    def add_attachment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.attachments[payload["uuid"]] = dict(payload)
        return self.attachments[payload["uuid"]]

    def fail(self, method: str, path_prefix: str, status: Any = 500) -> None:
        """Fail calls whose method matches and path starts with path_prefix.

        ``status`` is an HTTP status code or "timeout".
        """
        self._failures.append((method, path_prefix, status))

    def count(self, method: str, path_prefix: str) -> int:
        return sum(1 for m, p in self.calls if m == method and p.startswith(path_prefix))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api_1.0"):]
        self.calls.append((request.method, path))

        for method, prefix, status in self._failures:
            if request.method == method and path.startswith(prefix):
                if status == "timeout":
                    raise httpx.ReadTimeout("timed out", request=request)
                return httpx.Response(status, json={"message": "failure"})

        if path == "/job.json":
            if request.method == "GET":
                return httpx.Response(200, json=list(self.jobs.values()))
            return self._create(request, self.jobs)
        if path.startswith("/job/"):
            return self._record(request, self.jobs, path)

        if path == "/company.json":
            if request.method == "GET":
                return httpx.Response(200, json=list(self.companies.values()))
            return self._create(request, self.companies)
        if path.startswith("/company/"):
            return self._record(request, self.companies, path)

        if path == "/attachment.json":
            related = request.url.params.get("related_object_uuid")
            items = [a for a in self.attachments.values() if a.get("related_object_uuid") == related]
            return httpx.Response(200, json=items)

        return httpx.Response(404, json={"message": "unknown endpoint"})

    def _create(self, request: httpx.Request, store: Dict[str, Dict[str, Any]]) -> httpx.Response:
        body = json.loads(request.content)
        record_uuid = str(uuid.uuid4())
        store[record_uuid] = {**body, "uuid": record_uuid}
        headers = {} if self.omit_record_uuid else {"x-record-uuid": record_uuid}
        return httpx.Response(200, json={"errorCode": 0, "message": "OK"}, headers=headers)

    def _record(self, request: httpx.Request, store: Dict[str, Dict[str, Any]], path: str) -> httpx.Response:
        record_uuid = path.rsplit("/", 1)[-1][: -len(".json")]
        if record_uuid not in store:
            return httpx.Response(404, json={"message": "not found"})
        if request.method == "POST":
            store[record_uuid] = {**json.loads(request.content), "uuid": record_uuid}
            return httpx.Response(200, json={"errorCode": 0, "message": "OK"})
        return httpx.Response(200, json=store[record_uuid])


@pytest.fixture
def servicem8() -> FakeServiceM8:
    return FakeServiceM8()


@pytest_asyncio.fixture
async def servicem8_client(servicem8: FakeServiceM8) -> AsyncGenerator[ServiceM8Client, None]:
    client = ServiceM8Client(
        "test-api-key",
        base_url=SERVICEM8_BASE_URL,
        transport=httpx.MockTransport(servicem8.handler),
    )
    yield client
    await client.close()


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def guard(servicem8_client) -> OwnershipGuard:
    return OwnershipGuard(servicem8_client)


@pytest.fixture
def message_service(guard) -> MessageService:
    return MessageService(guard, MessageSettings())


@pytest.fixture
def booking_service(servicem8_client, guard) -> BookingService:
    return BookingService(servicem8_client, guard, BookingSettings())


@pytest.fixture
def job_service(servicem8_client, guard, message_service) -> JobService:
    return JobService(servicem8_client, guard, message_service)


@pytest.fixture
def auth_service(servicem8_client) -> AuthService:
    return AuthService(servicem8_client)


# ============================================================================
# Test Data Fixtures
# ============================================================================

async def _persist(db: AsyncSession, customer: Customer) -> Customer:
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer


@pytest_asyncio.fixture
async def customer(db_session: AsyncSession) -> Customer:
    """Customer linked to ServiceM8 company CO-1."""
    return await _persist(db_session, CustomerFactory.create(company_uuid="CO-1"))


@pytest_asyncio.fixture
async def other_customer(db_session: AsyncSession) -> Customer:
    """Customer linked to ServiceM8 company CO-2."""
    return await _persist(db_session, CustomerFactory.create(company_uuid="CO-2"))


@pytest_asyncio.fixture
async def customer_without_company(db_session: AsyncSession) -> Customer:
    return await _persist(db_session, CustomerFactory.create(company_uuid=None))


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def app():
    """One application per session; prometheus collectors are process-global."""
    from app import create_app

    return create_app()


@pytest_asyncio.fixture
async def api_client(
    app,
    db_session: AsyncSession,
    servicem8_client: ServiceM8Client,
    guard: OwnershipGuard,
    message_service: MessageService,
    booking_service: BookingService,
    job_service: JobService,
    auth_service: AuthService,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app, bypassing the lifespan."""
    from core.database import get_session

    async def _get_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = _get_session
    app.state.servicem8_client = servicem8_client
    app.state.ownership_guard = guard
    app.state.message_service = message_service
    app.state.booking_service = booking_service
    app.state.job_service = job_service
    app.state.auth_service = auth_service

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a bearer header for a customer, backed by a live session row."""

    async def _build(db: AsyncSession, customer: Customer) -> Dict[str, str]:
        from core.security import create_access_token, hash_token
        from repositories.session_repository import SessionRepository

        token, expires_at = create_access_token(customer.id, customer.identity)
        await SessionRepository.create_session(
            db,
            customer_id=customer.id,
            token_hash=hash_token(token),
            expires_at=expires_at,
        )
        return {"Authorization": f"Bearer {token}"}

    return _build

