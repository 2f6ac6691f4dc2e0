"""Order and OrderItem models: one row per completed checkout session."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from orderhook.db.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(255), unique=True, nullable=False, index=True)

    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)

    total = Column(Integer, nullable=False, default=0)  # cents, sum of line items
    currency = Column(String(3), nullable=True)
    items = Column(JSON, nullable=True)  # summarized lines for quick display
    order_metadata = Column("metadata", JSON, nullable=True)
    shipping = Column(JSON, nullable=True)
    status = Column(String(50), nullable=True)  # Stripe payment_status
    customer_details = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        # Redelivered lines collapse onto the existing row (ON CONFLICT DO NOTHING)
        UniqueConstraint(
            "session_id",
            "description",
            "price_id",
            "quantity",
            "amount_total_cents",
            name="uq_order_items_line",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(255), nullable=False, index=True)
    description = Column(String(500), nullable=False, default="")
    product_id = Column(String(255), nullable=True)
    price_id = Column(String(255), nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=1)
    unit_amount_cents = Column(Integer, nullable=True)
    amount_total_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=True)
    raw = Column(JSON, nullable=True)
