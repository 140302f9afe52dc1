import os
from typing import AsyncGenerator, Optional

# Settings are read at import time, so the test environment goes in first.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_MASTER_PASSWORD"] = "master-pass-123"
os.environ["ADMIN_EMAIL"] = "owner@zoyabites.in"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "s3cr3t"
os.environ["CLOUDINARY_CLOUD_NAME"] = "zoya-test"
os.environ["CLOUDINARY_API_KEY"] = "cloud-key"
os.environ["CLOUDINARY_API_SECRET"] = "cloud-secret"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from libs.auth.models import ACCESS_CODE_SUBJECT_PREFIX, ADMIN_ROLE, SELLER_ROLE
from libs.auth.tokens import create_access_token
from libs.common.config import get_settings
from libs.db.config import Database
from libs.db.session import get_async_db
from services.gateway_service.app.main import app
from services.media_service.storage import get_image_storage
from services.payments_service.razorpay_client import (
    GatewayOrder,
    RazorpayError,
    get_razorpay_client,
)

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
settings = get_settings()


class FakeRazorpayClient:
    """In-memory stand-in for the Razorpay client."""

    def __init__(self, key_id: str = "rzp_test_key"):
        self.key_id = key_id
        self.created: list[dict] = []
        self.orders: dict[str, GatewayOrder] = {}
        self.payments: dict[str, list[dict]] = {}
        self.error: Optional[Exception] = None

    async def create_order(
        self, amount_minor, currency="INR", receipt=None, notes=None
    ):
        if self.error:
            raise self.error
        gateway_order = GatewayOrder(
            id=f"order_{len(self.created) + 1:04d}",
            amount=amount_minor,
            currency=currency,
            receipt=receipt,
            status="created",
        )
        self.created.append(
            {
                "amount": amount_minor,
                "currency": currency,
                "receipt": receipt,
                "notes": notes,
            }
        )
        self.orders[gateway_order.id] = gateway_order
        return gateway_order

    async def fetch_order(self, gateway_order_id):
        if self.error:
            raise self.error
        if gateway_order_id not in self.orders:
            raise RazorpayError("not found", status_code=404)
        return self.orders[gateway_order_id]

    async def fetch_order_payments(self, gateway_order_id):
        if self.error:
            raise self.error
        return self.payments.get(gateway_order_id, [])

    def mark_paid(self, gateway_order_id: str, payment_id: str) -> None:
        self.orders[gateway_order_id] = GatewayOrder(
            id=gateway_order_id,
            amount=0,
            currency="INR",
            receipt=None,
            status="paid",
        )
        self.payments[gateway_order_id] = [{"id": payment_id, "status": "captured"}]


class FakeImageStorage:
    def __init__(self):
        self.uploads: list[tuple[str, int, str]] = []
        self.error: Optional[Exception] = None

    async def upload_image(self, file_data, filename, content_type="image/jpeg"):
        if self.error:
            raise self.error
        self.uploads.append((filename, len(file_data), content_type))
        return f"https://res.cloudinary.com/zoya-test/image/upload/zoyabites/{filename}"


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """A fresh in-memory database per test."""
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def fake_gateway() -> FakeRazorpayClient:
    return FakeRazorpayClient()


@pytest.fixture
def fake_storage() -> FakeImageStorage:
    return FakeImageStorage()


@pytest_asyncio.fixture
async def client(
    database, fake_gateway, fake_storage
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the app with the test database and fake
    outbound clients.
    """

    async def _override_db():
        async with database.session() as session:
            yield session

    app.dependency_overrides[get_async_db] = _override_db
    app.dependency_overrides[get_razorpay_client] = lambda: fake_gateway
    app.dependency_overrides[get_image_storage] = lambda: fake_storage

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def _bearer(subject: str, roles=(), kind: str = "user") -> dict:
    token, _ = create_access_token(subject, roles, kind=kind)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers():
    """Build Authorization headers for an arbitrary principal."""
    return _bearer


@pytest.fixture
def user_id() -> str:
    return "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def user_headers(user_id) -> dict:
    return _bearer(user_id)


@pytest.fixture
def other_user_headers() -> dict:
    return _bearer("22222222-2222-2222-2222-222222222222")


@pytest.fixture
def admin_headers() -> dict:
    return _bearer("master", [ADMIN_ROLE], kind="master")


@pytest_asyncio.fixture
async def seller_headers(db_session) -> dict:
    """Headers for a grant issued by a live access code."""
    from tests.factories import AccessCodeFactory

    access_code = AccessCodeFactory.create()
    db_session.add(access_code)
    await db_session.commit()
    return _bearer(
        f"{ACCESS_CODE_SUBJECT_PREFIX}{access_code.id}", [SELLER_ROLE], kind="code"
    )
