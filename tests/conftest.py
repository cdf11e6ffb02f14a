"""Shared test fixtures for the Darrwin API tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL.
"""

import json
import os

# Settings are read at import time; pin them before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["APP_ENV"] = "test"
os.environ["SESAMI_API_KEY"] = ""
os.environ["SESAMI_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["SCHEMA_BOOTSTRAP_ON_STARTUP"] = "false"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.main import app
from app.services.webhook_security import SIGNATURE_HEADER, compute_signature

# Import all models to ensure they're registered with Base.metadata
from app.models.appointment import Appointment  # noqa: F401
from app.models.patient import Patient  # noqa: F401

WEBHOOK_SECRET = "test-webhook-secret"

# Use aiosqlite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
TestSession = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db():
    async with TestSession() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


@pytest_asyncio.fixture
async def client():
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db():
    """Direct DB session for test setup/assertions."""
    async with TestSession() as session:
        yield session


@pytest.fixture
def session_factory():
    """Open extra sessions, e.g. to simulate a concurrent request."""
    return TestSession


@pytest.fixture
def booking_payload():
    """Factory for a valid appointment.* webhook body."""
    def make(event="appointment.created", booking_id="sesami_bk_1001", **booking_overrides):
        booking = {
            "id": booking_id,
            "status": "confirmed",
            "service_id": "svc_42",
            "service_title": "Annual Vaccination",
            "starts_at": "2025-03-14T15:00:00Z",
            "ends_at": "2025-03-14T15:45:00Z",
            "time_zone": "America/New_York",
            "resource_id": "room_2",
            "resource_name": "Dr. Patel",
        }
        booking.update(booking_overrides)
        return {
            "event": event,
            "sent_at": "2025-03-10T09:00:00Z",
            "booking": booking,
            "customer": {
                "name": "Maria Lopez",
                "email": "maria@example.com",
                "phone": "+1-555-0142",
                "external_customer_id": "cust_778",
            },
            "metadata": {
                "notes": "Bring vaccination card",
                "tags": "returning, vaccination",
                "source": "sesami",
            },
        }
    return make


@pytest.fixture
def send_webhook(client):
    """POST a payload to the booking webhook with a valid signature."""
    async def send(payload, secret=WEBHOOK_SECRET, signature=None):
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if signature is None and secret:
            signature = compute_signature(body, secret)
        if signature is not None:
            headers[SIGNATURE_HEADER] = signature
        return await client.post("/api/v1/webhooks/bookings", content=body, headers=headers)
    return send
