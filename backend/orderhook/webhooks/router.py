"""Event dispatch: fresh, verified events go to the handler for their type.

Unknown types are acknowledged without action. Handler exceptions are logged
and swallowed here so the delivery is still acknowledged: redelivering a
half-processed event risks duplicate emails, while persistence is already
idempotent.
"""

from collections.abc import Awaitable, Callable

import structlog

from orderhook.core.logging import bind_event_context
from orderhook.webhooks import ledger
from orderhook.webhooks.context import WebhookServices
from orderhook.webhooks.events import (
    CHECKOUT_COMPLETED,
    INVOICE_PAYMENT_SUCCEEDED,
    SUBSCRIPTION_DELETED,
    SUBSCRIPTION_UPDATED,
    InboundEvent,
)
from orderhook.webhooks.handlers import (
    handle_checkout_completed,
    handle_invoice_payment_succeeded,
    handle_subscription_deleted,
    handle_subscription_updated,
)

logger = structlog.get_logger(__name__)

Handler = Callable[[InboundEvent, WebhookServices], Awaitable[None]]

HANDLERS: dict[str, Handler] = {
    CHECKOUT_COMPLETED: handle_checkout_completed,
    INVOICE_PAYMENT_SUCCEEDED: handle_invoice_payment_succeeded,
    SUBSCRIPTION_DELETED: handle_subscription_deleted,
    SUBSCRIPTION_UPDATED: handle_subscription_updated,
}


async def dispatch_event(event: InboundEvent, services: WebhookServices) -> str:
    """Claim and dispatch one verified event.

    Returns:
        "duplicate", "ignored", "handled" or "failed". Every outcome is
        acknowledged to the channel with 200.
    """
    with bind_event_context(event.id, event.type):
        return await _dispatch(event, services)


async def _dispatch(event: InboundEvent, services: WebhookServices) -> str:
    claim = await ledger.try_claim(event.id)
    if not claim.should_process:
        logger.info("stripe_duplicate_event_ignored")
        return "duplicate"
    if claim is ledger.ClaimResult.STORE_UNAVAILABLE:
        logger.warning("ledger_store_unavailable_fail_open")

    handler = HANDLERS.get(event.type)
    if handler is None:
        logger.info("stripe_event_ignored")
        return "ignored"

    logger.info("stripe_webhook_received", livemode=event.livemode)
    try:
        await handler(event, services)
    except Exception as e:
        logger.error("webhook_handler_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
        return "failed"

    logger.info("stripe_webhook_handled")
    return "handled"
