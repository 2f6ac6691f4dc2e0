"""checkout.session.completed: persist the order, notify admin and customer."""

from datetime import UTC, datetime
from typing import Any

import structlog

from orderhook.services.identity import identity_from_customer, identity_from_session
from orderhook.services.line_items import line_item_from_session
from orderhook.services.persistence import SubscriberUpdate, save_order, upsert_subscriber
from orderhook.webhooks.context import WebhookServices
from orderhook.webhooks.events import InboundEvent

logger = structlog.get_logger(__name__)


def plan_of(subscription: dict[str, Any]) -> str | None:
    """Human-readable plan name from the first subscription item."""
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    price = items[0].get("price") or {}
    return price.get("nickname") or price.get("lookup_key") or price.get("id")


async def _save_subscriber(session_data: dict, identity, services: WebhookServices) -> None:
    customer_id = session_data.get("customer")
    subscription_id = session_data.get("subscription")
    if not customer_id:
        logger.warning("checkout_subscription_without_customer", session_id=session_data.get("id"))
        return

    subscription: dict[str, Any] = {}
    if subscription_id:
        subscription = await services.gateway.retrieve_subscription(subscription_id)
    customer = await services.gateway.retrieve_customer(customer_id)

    await upsert_subscriber(
        SubscriberUpdate.from_identity(
            customer_id,
            identity.with_fallback(identity_from_customer(customer)),
            subscription_id=subscription_id,
            plan=plan_of(subscription),
            status=subscription.get("status"),
            meta=session_data.get("metadata") or None,
        )
    )


async def handle_checkout_completed(event: InboundEvent, services: WebhookServices) -> None:
    session_data = event.payload
    session_id = session_data["id"]
    is_subscription = session_data.get("mode") == "subscription"
    identity = identity_from_session(session_data)

    raw_lines = await services.gateway.list_session_line_items(session_id)
    items = [line_item_from_session(line) for line in raw_lines]

    try:
        await save_order(session_data, identity, items)
    except Exception as e:
        # Emails still go out without the row
        logger.error("order_persist_failed", session_id=session_id, error=str(e), error_type=type(e).__name__)

    if is_subscription:
        try:
            await _save_subscriber(session_data, identity, services)
        except Exception as e:
            logger.error(
                "subscriber_persist_failed", session_id=session_id, error=str(e), error_type=type(e).__name__
            )

    notifier = services.notifier
    await notifier.notify_admin_order(
        session_id,
        identity,
        items,
        status=session_data.get("payment_status"),
        subscription=is_subscription,
    )

    combine = services.settings.combine_confirmation_and_invoice
    if is_subscription:
        if combine:
            # The first invoice carries the receipt number and paid amount; mail from there
            logger.info("subscription_customer_email_deferred_to_invoice", session_id=session_id)
            return
        await notifier.send_confirmation(identity, items, subscription=True)
        return

    if combine:
        await notifier.send_combined(
            identity,
            items,
            invoice_number=receipt_number_for_session(session_data),
            paid_at=datetime.fromtimestamp(event.created, UTC) if event.created else None,
        )
    else:
        await notifier.send_confirmation(identity, items)


def receipt_number_for_session(session_data: dict[str, Any]) -> str:
    """Receipt number for one-off payments, which carry no Stripe invoice number."""
    invoice = session_data.get("invoice")
    if isinstance(invoice, dict) and invoice.get("number"):
        return invoice["number"]
    session_id = session_data["id"]
    return f"R-{session_id[-10:].upper()}"
