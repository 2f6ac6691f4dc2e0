"""Deduplication ledger backed by uniquely keyed marker tables.

A claim is a single INSERT into a primary-keyed table, so two concurrent
deliveries of the same key cannot both observe "first". Store failures are
reported as STORE_UNAVAILABLE instead of raising; callers decide the policy.
"""

from enum import Enum

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from orderhook.db.base import get_session_factory
from orderhook.db.models import MailedCancellation, MailedInvoice, ProcessedEvent

logger = structlog.get_logger(__name__)


class ClaimResult(str, Enum):
    """Outcome of an insert-if-absent claim."""

    CLAIMED = "claimed"
    DUPLICATE = "duplicate"
    STORE_UNAVAILABLE = "store_unavailable"

    @property
    def should_process(self) -> bool:
        """Fail-open policy: only a confirmed duplicate suppresses side effects."""
        return self is not ClaimResult.DUPLICATE


async def _claim(model, **key) -> ClaimResult:
    try:
        factory = get_session_factory()
        async with factory() as session:
            try:
                session.add(model(**key))
                await session.commit()
                return ClaimResult.CLAIMED
            except IntegrityError:
                await session.rollback()
                return ClaimResult.DUPLICATE
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.warning(
            "ledger_store_unavailable",
            table=model.__tablename__,
            error=str(e),
            error_type=type(e).__name__,
        )
        return ClaimResult.STORE_UNAVAILABLE


async def try_claim(event_id: str) -> ClaimResult:
    """Claim a webhook event ID. CLAIMED only for the first caller ever."""
    return await _claim(ProcessedEvent, event_id=event_id)


async def mark_invoice_mailed_once(invoice_id: str) -> ClaimResult:
    """Claim the right to send the receipt email for an invoice."""
    return await _claim(MailedInvoice, invoice_id=invoice_id)


async def mark_cancellation_mailed_once(subscription_id: str) -> ClaimResult:
    """Claim the right to send cancellation emails for a subscription."""
    return await _claim(MailedCancellation, subscription_id=subscription_id)
