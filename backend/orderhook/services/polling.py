"""Bounded wait for the hosted invoice PDF to become available.

Stripe finalizes the invoice PDF asynchronously; the payment_succeeded event
can arrive before ``invoice_pdf`` is populated. We re-fetch a fixed number of
times with a fixed delay, then carry on without the document.
"""

from typing import Any

import structlog
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from orderhook.core.exceptions import ProcessorError

logger = structlog.get_logger(__name__)


def _pdf_missing(invoice: dict[str, Any] | None) -> bool:
    return not (invoice or {}).get("invoice_pdf")


async def wait_for_invoice_pdf(
    gateway,
    invoice: dict[str, Any],
    attempts: int = 3,
    delay_seconds: float = 2.0,
) -> str | None:
    """Return the invoice PDF URL, polling Stripe up to ``attempts`` times.

    Args:
        gateway: StripeGateway (or any object with ``retrieve_invoice``)
        invoice: Invoice payload from the event
        attempts: Maximum number of re-fetches
        delay_seconds: Fixed delay before each re-fetch

    Returns:
        The PDF URL, or None if it never appeared or the re-fetch failed
    """
    if invoice.get("invoice_pdf"):
        return invoice["invoice_pdf"]

    invoice_id = invoice.get("id")
    if not invoice_id or attempts <= 0:
        return None

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(delay_seconds),
            retry=retry_if_result(_pdf_missing),
            before_sleep=lambda rs: logger.info(
                "invoice_pdf_not_ready_retrying",
                invoice_id=invoice_id,
                attempt=rs.attempt_number,
            ),
        ):
            with attempt:
                refreshed = await gateway.retrieve_invoice(invoice_id)
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(refreshed)
    except RetryError:
        logger.warning("invoice_pdf_unavailable", invoice_id=invoice_id, attempts=attempts)
        return None
    except ProcessorError as e:
        logger.warning("invoice_pdf_refetch_failed", invoice_id=invoice_id, error=str(e))
        return None

    return refreshed.get("invoice_pdf")
