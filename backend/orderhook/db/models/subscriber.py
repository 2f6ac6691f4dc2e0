"""Subscriber model: one row per Stripe customer holding a subscription."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String

from orderhook.db.base import Base


class Subscriber(Base):
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(String(255), unique=True, nullable=False, index=True)
    subscription_id = Column(String(255), nullable=True)

    email = Column(String(255), nullable=True)
    plan = Column(String(255), nullable=True)
    status = Column(String(50), nullable=True)  # active, past_due, canceled, ...

    # Contact details (kept across partial updates)
    name = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(255), nullable=True)
    postal = Column(String(32), nullable=True)
    country = Column(String(2), nullable=True)

    meta = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
