"""Idempotency markers: one row per key that has already produced side effects."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String

from orderhook.db.base import Base


class ProcessedEvent(Base):
    """Tracks processed Stripe webhook event IDs to prevent duplicate processing."""

    __tablename__ = "processed_events"

    event_id = Column(String(255), primary_key=True)
    processed_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )


class MailedInvoice(Base):
    """Tracks invoices whose customer receipt email has already been sent.

    The same invoice can arrive wrapped in different outer event IDs, so the
    event-level marker alone does not prevent a second receipt.
    """

    __tablename__ = "mailed_invoices"

    invoice_id = Column(String(255), primary_key=True)
    sent_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )


class MailedCancellation(Base):
    """Tracks subscriptions whose cancellation emails were sent (opt-in)."""

    __tablename__ = "mailed_cancellations"

    subscription_id = Column(String(255), primary_key=True)
    sent_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
