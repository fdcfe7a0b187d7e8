"""
Pytest configuration and shared fixtures for the orders backend tests.

Provides both storage backends (JSON files under tmp_path, SQLite file
database), a wired OrderService, a recording email transport, and an
httpx client for the FastAPI app.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from config import Settings
from domain.order import Order
from exceptions import NotificationError
from services.id_allocator import IdentifierAllocator
from services.json_store import JsonFileOrderStore
from services.notification_service import NotificationDispatcher
from services.order_cache import OrderCache
from services.order_service import OrderService
from services.sql_store import SqlOrderStore

BUSINESS_NUMBER = "0712345678"
ADMIN_EMAIL = "admin@ecospin.test"
BASE_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────


class RecordingTransport:
    """In-memory stand-in for SmtpTransport."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, message):
        if self.fail:
            raise NotificationError("SMTP connection refused")
        self.sent.append(message)

    @property
    def subjects(self) -> list[str]:
        return [m["Subject"] for m in self.sent]


def make_order(order_id: str = "ECOSPIN-0001", minutes: int = 0, **overrides) -> Order:
    """A pending order created `minutes` after BASE_TIME."""
    created = BASE_TIME + timedelta(minutes=minutes)
    fields = dict(
        id=order_id,
        service="Wash & Fold - 5kg",
        price=500,
        customer_name="Jane Wanjiku",
        customer_phone="0722000111",
        address="Kilimani, Nairobi",
        notes="Ring the bell",
        created_at=created,
        updated_at=created,
    )
    fields.update(overrides)
    return Order(**fields)


# ── Store Fixtures ───────────────────────────────────────────────────


@pytest_asyncio.fixture
async def json_store(tmp_path) -> AsyncGenerator[JsonFileOrderStore, None]:
    store = JsonFileOrderStore(tmp_path / "data")
    await store.load()
    yield store
    await store.stop_autosave()


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlOrderStore, None]:
    """
    File-backed SQLite database per test.

    A file (not :memory: + StaticPool) gives each session its own connection,
    which the concurrent allocation tests rely on.
    """
    store = SqlOrderStore(f"sqlite:///{tmp_path / 'orders.db'}")
    await store.load()
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["json", "database"])
async def store(request, tmp_path):
    """Runs the test once per storage backend."""
    if request.param == "json":
        backend = JsonFileOrderStore(tmp_path / "data")
    else:
        backend = SqlOrderStore(f"sqlite:///{tmp_path / 'orders.db'}")
    await backend.load()
    yield backend
    if request.param == "json":
        await backend.stop_autosave()
    else:
        await backend.close()


# ── Service Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifier(transport) -> NotificationDispatcher:
    return NotificationDispatcher(
        transport,
        sender_address="orders@ecospin.test",
        business_number=BUSINESS_NUMBER,
        admin_email=ADMIN_EMAIL,
    )


@pytest_asyncio.fixture
async def order_service(store, notifier) -> AsyncGenerator[OrderService, None]:
    service = OrderService(
        store=store,
        cache=OrderCache(),
        allocator=IdentifierAllocator(store, "ECOSPIN"),
        notifier=notifier,
        business_number=BUSINESS_NUMBER,
    )
    yield service
    await service.drain_notifications()


@pytest.fixture
def order_payload() -> dict:
    """Order form fields as the website posts them."""
    return {
        "service": "Duvet Cleaning - Size 3 by 4",
        "price": 249,
        "name": "Brian Otieno",
        "phone": "0733555666",
        "address": "Westlands, Nairobi",
        "notes": "Gate code 4411",
    }


# ── API Client ───────────────────────────────────────────────────────


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        business_number=BUSINESS_NUMBER,
        admin_email=ADMIN_EMAIL,
        cors_origins="http://localhost:3000",
    )


@pytest_asyncio.fixture
async def client(order_service, test_settings) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx client for the FastAPI app.

    ASGITransport does not run the lifespan, so the order service from the
    fixtures above is injected through dependency_overrides.
    """
    from main import create_app
    from deps import get_order_service

    app = create_app(test_settings)
    app.dependency_overrides[get_order_service] = lambda: order_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
