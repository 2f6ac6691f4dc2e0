"""Shared test fixtures: temporary database, Stripe and email fakes, services."""

import os
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orderhook.core.config import Settings
from orderhook.core.exceptions import EmailDeliveryError, ProcessorError
from orderhook.db.base import Base
from orderhook.services.email_sender import EmailMessage
from orderhook.services.notifications import Notifier
from orderhook.services.receipt import ReceiptRenderer
from orderhook.webhooks.context import WebhookServices

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_EMAIL = "admin@shop.test"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeStripeGateway:
    """In-memory stand-in for StripeGateway returning plain dicts."""

    def __init__(self) -> None:
        self.session_line_items: dict[str, list[dict]] = {}
        self.invoice_line_items: dict[str, list[dict]] = {}
        self.subscriptions: dict[str, dict] = {}
        self.customers: dict[str, dict] = {}
        # invoice_id -> successive retrieve_invoice responses (last one repeats)
        self.invoice_versions: dict[str, list[dict]] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, Any]] = []
        self.portal_url = "https://billing.stripe.com/p/session/test_portal"

    def _record(self, operation: str, arg: Any) -> None:
        self.calls.append((operation, arg))
        if operation in self.failing:
            raise ProcessorError(operation, RuntimeError("stripe unavailable"))

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def list_session_line_items(self, session_id: str) -> list[dict]:
        self._record("list_session_line_items", session_id)
        return self.session_line_items.get(session_id, [])

    async def retrieve_subscription(self, subscription_id: str) -> dict:
        self._record("retrieve_subscription", subscription_id)
        return self.subscriptions.get(subscription_id, {"id": subscription_id})

    async def retrieve_customer(self, customer_id: str) -> dict:
        self._record("retrieve_customer", customer_id)
        return self.customers.get(customer_id, {"id": customer_id})

    async def retrieve_invoice(self, invoice_id: str) -> dict:
        self._record("retrieve_invoice", invoice_id)
        versions = self.invoice_versions.get(invoice_id) or [{"id": invoice_id}]
        return versions.pop(0) if len(versions) > 1 else versions[0]

    async def list_invoice_line_items(self, invoice_id: str) -> list[dict]:
        self._record("list_invoice_line_items", invoice_id)
        return self.invoice_line_items.get(invoice_id, [])

    async def create_checkout_session(self, **params: Any) -> dict:
        self._record("create_checkout_session", params)
        return {"id": "cs_test_created", "url": "https://checkout.stripe.com/c/pay/cs_test_created"}

    async def create_portal_session(self, customer_id: str, return_url: str) -> dict:
        self._record("create_portal_session", {"customer_id": customer_id, "return_url": return_url})
        return {"id": "bps_test", "url": self.portal_url}


class RecordingEmailSender:
    """Collects sent messages; subjects containing a string in ``fail_on`` raise."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []
        self.fail_on: set[str] = set()

    async def send(self, message: EmailMessage) -> None:
        if any(marker in message.subject for marker in self.fail_on):
            raise EmailDeliveryError(message.subject, "HTTP 500: provider down")
        self.sent.append(message)

    def to(self, address: str) -> list[EmailMessage]:
        return [m for m in self.sent if m.to == address]

    def customer_messages(self) -> list[EmailMessage]:
        return [m for m in self.sent if m.to != ADMIN_EMAIL]

    def admin_messages(self) -> list[EmailMessage]:
        return self.to(ADMIN_EMAIL)


class FakeReceiptRenderer(ReceiptRenderer):
    """Skips WeasyPrint; the "PDF" body is the rendered receipt HTML."""

    def __init__(self, brand_name: str) -> None:
        super().__init__(brand_name)
        self.rendered: list[dict] = []

    async def render_pdf(self, invoice_number, total_cents, currency, customer, items, paid_at=None) -> bytes:
        self.rendered.append({"invoice_number": invoice_number, "total_cents": total_cents, "currency": currency})
        html = self.render_html(invoice_number, total_cents, currency, customer, items, paid_at)
        return b"%PDF-1.7\n" + html.encode("utf-8")


# ---------------------------------------------------------------------------
# Settings and services
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    values = {
        "debug": True,
        "brand_name": "Tienda Test",
        "stripe_secret_key": "sk_test_dummy",
        "stripe_webhook_secret": WEBHOOK_SECRET,
        "admin_email": ADMIN_EMAIL,
        "email_from": "Tienda Test <orders@shop.test>",
        "combine_confirmation_and_invoice": True,
        "invoice_pdf_poll_delay_seconds": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def make_services(gateway, sender):
    """Factory building WebhookServices with settings overrides."""

    def _make(**overrides: Any) -> WebhookServices:
        settings = make_settings(**overrides)
        notifier = Notifier(settings, sender, FakeReceiptRenderer(settings.brand_name))
        return WebhookServices(settings=settings, gateway=gateway, notifier=notifier)

    return _make


@pytest.fixture
def services(make_services) -> WebhookServices:
    return make_services()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine(tmp_path):
    """Create a throwaway database and install it as the global session factory.

    SQLite file per test by default; set TEST_DATABASE_URL to run against PostgreSQL.
    """
    import orderhook.db.base as db_mod
    import orderhook.db.models  # noqa: F401

    url = os.getenv("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'orderhook_test.db'}")
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
