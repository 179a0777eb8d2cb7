"""
Pytest configuration and fixtures.
"""
import json
import os
from typing import Any, AsyncGenerator, Dict, List, Optional

# Settings are read at import time
os.environ["APP_ENV"] = "test"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key_id"
os.environ["RAZORPAY_KEY_SECRET"] = "test_key_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "test_webhook_secret"
os.environ["RESEND_API_KEY"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from main import configure_state, create_app
from shared.auth.jwt_handler import create_access_token
from shared.database.connection import Database
from shared.utils.signatures import sign_client_confirmation, sign_gateway_notification
from services.ticket_purchase.services.purchase_service import PurchaseService
from services.ticket_purchase.services.ticket_issuer import TicketIssuer

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


class FakeDispatcher:
    """Records dispatched notifications instead of queueing them."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, str]] = []

    async def dispatch(self, ticket_id: str, event_title: str, name: str, email: str) -> bool:
        self.sent.append({
            "ticket_id": ticket_id,
            "event_title": event_title,
            "name": name,
            "email": email,
        })
        return True


class FakeRazorpayService:
    """Stands in for the Razorpay SDK wrapper."""

    key_id = "rzp_test_key_id"

    def __init__(self) -> None:
        self.orders: List[Dict[str, Any]] = []

    def create_order(self, amount: int, currency: str, receipt: str, notes: Dict[str, Any]) -> Dict[str, Any]:
        order = {
            "id": f"order_test{len(self.orders) + 1:04d}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
            "status": "created",
        }
        self.orders.append(order)
        return order


def client_signature(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    return sign_client_confirmation(order_id, payment_id, secret)


def webhook_body(
    payment_id: str,
    order_id: Optional[str] = None,
    email: Optional[str] = None,
    notes: Any = None,
    event: str = "payment.captured",
) -> bytes:
    """Razorpay-shaped webhook body."""
    payment = {
        "id": payment_id,
        "entity": "payment",
        "amount": 500,
        "currency": "INR",
        "status": "captured",
        "order_id": order_id,
        "email": email,
        "notes": notes if notes is not None else [],
    }
    body = {
        "entity": "event",
        "event": event,
        "contains": ["payment"],
        "payload": {"payment": {"entity": payment}},
    }
    return json.dumps(body).encode("utf-8")


def webhook_signature(raw_body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return sign_gateway_notification(raw_body, secret)


async def count_rows(database: Database, model) -> int:
    async with database.session_maker() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def fetch(database: Database, model, pk: str):
    """Fresh read from a separate session."""
    async with database.session_maker() as session:
        return await session.get(model, pk)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, Any]:
    """Temporary SQLite file database; separate sessions really run concurrently."""
    db = Database(f"sqlite:///{tmp_path / 'tickets.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, Any]:
    async with database.session_maker() as session:
        yield session


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def razorpay() -> FakeRazorpayService:
    return FakeRazorpayService()


@pytest.fixture
def purchase_service(razorpay: FakeRazorpayService) -> PurchaseService:
    return PurchaseService(razorpay_service=razorpay)


@pytest.fixture
def issuer(dispatcher: FakeDispatcher) -> TicketIssuer:
    return TicketIssuer(dispatcher, key_secret=KEY_SECRET, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def app(database: Database, dispatcher: FakeDispatcher, purchase_service: PurchaseService):
    application = create_app()
    configure_state(application, database, dispatcher, purchase_service)
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def scanner_headers() -> Dict[str, str]:
    token = create_access_token({"sub": "scanner-1", "email": "gate@example.com", "role": "scanner"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    token = create_access_token({"sub": "admin-1", "email": "admin@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}

