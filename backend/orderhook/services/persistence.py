"""Order and subscriber persistence with merge-on-conflict semantics.

- orders: upsert keyed by session_id, every column overwritten (last write wins)
- order_items: append-only, an identical line inserted twice is dropped
- subscribers: upsert keyed by customer_id, each column keeps its stored
  value when the incoming one is NULL (coalesce merge), so partial updates
  never blank out known contact details
"""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import func, select

from orderhook.db.base import get_session_factory, insert_for
from orderhook.db.models import Order, OrderItem, Subscriber
from orderhook.services.identity import CustomerIdentity
from orderhook.services.line_items import LineItem, currency_of, total_of

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SubscriberUpdate:
    """Partial subscriber state; None means "unknown, keep what is stored"."""

    customer_id: str
    subscription_id: str | None = None
    email: str | None = None
    plan: str | None = None
    status: str | None = None
    name: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal: str | None = None
    country: str | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def from_identity(cls, customer_id: str, identity: CustomerIdentity, **fields) -> "SubscriberUpdate":
        address = identity.address
        return cls(
            customer_id=customer_id,
            email=identity.email,
            name=identity.name,
            phone=identity.phone,
            address=address.street if address else None,
            city=address.city if address else None,
            postal=address.postal_code if address else None,
            country=address.country if address else None,
            **fields,
        )


async def save_order(
    session_data: dict[str, Any],
    customer: CustomerIdentity,
    items: list[LineItem],
) -> None:
    """Upsert the Order for a checkout session and append its line items."""
    session_id = session_data["id"]
    address = customer.address
    order_values = {
        "session_id": session_id,
        "email": customer.email,
        "name": customer.name,
        "phone": customer.phone,
        "total": total_of(items),
        "currency": currency_of(items, session_data.get("currency")),
        "items": [
            {"description": i.description, "quantity": i.quantity, "amount_total_cents": i.amount_total_cents}
            for i in items
        ],
        # Core insert: keyed by column name, not the mapped attribute
        "metadata": session_data.get("metadata") or {},
        "shipping": {"name": customer.name, **asdict(address)} if address else None,
        "status": session_data.get("payment_status"),
        "customer_details": session_data.get("customer_details"),
        "created_at": datetime.now(UTC),
    }

    factory = get_session_factory()
    async with factory() as session:
        order_table = Order.__table__
        stmt = insert_for(session, order_table).values(**order_values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["session_id"],
            set_={
                column.name: stmt.excluded[column.name]
                for column in order_table.c
                if column.name not in ("id", "session_id", "created_at")
            },
        )
        await session.execute(stmt)

        if items:
            item_rows = [
                {
                    "session_id": session_id,
                    "description": item.description or "",
                    "product_id": item.product_id,
                    "price_id": item.price_id or "",
                    "quantity": item.quantity,
                    "unit_amount_cents": item.unit_amount_cents,
                    "amount_total_cents": item.amount_total_cents,
                    "currency": item.currency,
                    "raw": item.raw,
                }
                for item in items
            ]
            await session.execute(
                insert_for(session, OrderItem.__table__).values(item_rows).on_conflict_do_nothing()
            )

        await session.commit()

    logger.info("order_saved", session_id=session_id, items=len(items), total=order_values["total"])


async def upsert_subscriber(update: SubscriberUpdate) -> None:
    """Insert or coalesce-merge a subscriber row keyed by customer_id."""
    values = asdict(update)
    now = datetime.now(UTC)

    factory = get_session_factory()
    async with factory() as session:
        table = Subscriber.__table__
        stmt = insert_for(session, table).values(**values, created_at=now, updated_at=now)
        merged = {
            key: func.coalesce(stmt.excluded[key], table.c[key])
            for key in values
            if key != "customer_id"
        }
        merged["updated_at"] = now
        stmt = stmt.on_conflict_do_update(index_elements=["customer_id"], set_=merged)
        await session.execute(stmt)
        await session.commit()

    logger.info("subscriber_upserted", customer_id=update.customer_id, status=update.status)


async def mark_subscriber_canceled(customer_id: str, subscription_id: str | None = None) -> None:
    """Set status='canceled'. Idempotent; contact details are untouched."""
    await upsert_subscriber(
        SubscriberUpdate(customer_id=customer_id, subscription_id=subscription_id, status="canceled")
    )


async def get_subscriber(customer_id: str) -> Subscriber | None:
    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(select(Subscriber).where(Subscriber.customer_id == customer_id))
        return result.scalar_one_or_none()
