"""invoice.payment_succeeded: the combined confirmation + receipt for subscriptions."""

from datetime import UTC, datetime
from typing import Any

import structlog

from orderhook.core.exceptions import ProcessorError
from orderhook.services.identity import customer_id_of, identity_from_customer, identity_from_invoice
from orderhook.services.line_items import line_item_from_invoice
from orderhook.services.polling import wait_for_invoice_pdf
from orderhook.webhooks import ledger
from orderhook.webhooks.context import WebhookServices
from orderhook.webhooks.events import InboundEvent

logger = structlog.get_logger(__name__)

SUBSCRIPTION_BILLING_REASONS = {"subscription_create", "subscription_cycle", "subscription_update"}


def is_subscription_invoice(invoice: dict[str, Any]) -> bool:
    """True for invoices generated by a subscription (not one-off checkout invoices)."""
    if invoice.get("subscription"):
        return True
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    if details.get("subscription"):
        return True
    return invoice.get("billing_reason") in SUBSCRIPTION_BILLING_REASONS


def paid_at_of(invoice: dict[str, Any]) -> datetime | None:
    ts = (invoice.get("status_transitions") or {}).get("paid_at") or invoice.get("created")
    return datetime.fromtimestamp(ts, UTC) if ts else None


async def handle_invoice_payment_succeeded(event: InboundEvent, services: WebhookServices) -> None:
    invoice = event.payload
    invoice_id = invoice.get("id")
    settings = services.settings

    if not settings.combine_confirmation_and_invoice:
        logger.info("invoice_mail_skipped_split_mode", invoice_id=invoice_id)
        return
    if not is_subscription_invoice(invoice):
        logger.info("invoice_mail_skipped_one_off", invoice_id=invoice_id)
        return
    if not invoice_id:
        logger.warning("invoice_without_id", event_id=event.id)
        return

    claim = await ledger.mark_invoice_mailed_once(invoice_id)
    if not claim.should_process:
        logger.info("invoice_already_mailed", invoice_id=invoice_id, event_id=event.id)
        return
    if claim is ledger.ClaimResult.STORE_UNAVAILABLE:
        logger.warning("invoice_marker_unavailable_fail_open", invoice_id=invoice_id)

    identity = identity_from_invoice(invoice)
    customer_id = customer_id_of(invoice)
    if not identity.email and customer_id:
        try:
            customer = await services.gateway.retrieve_customer(customer_id)
            identity = identity.with_fallback(identity_from_customer(customer))
        except ProcessorError as e:
            logger.warning("invoice_customer_lookup_failed", invoice_id=invoice_id, error=str(e))

    pdf_url = None
    if settings.attach_stripe_invoice_pdf:
        pdf_url = await wait_for_invoice_pdf(
            services.gateway,
            invoice,
            attempts=settings.invoice_pdf_poll_attempts,
            delay_seconds=settings.invoice_pdf_poll_delay_seconds,
        )

    raw_lines = await services.gateway.list_invoice_line_items(invoice_id)
    items = [line_item_from_invoice(line) for line in raw_lines]

    await services.notifier.send_combined(
        identity,
        items,
        invoice_number=invoice.get("number") or invoice_id,
        paid_at=paid_at_of(invoice),
        stripe_invoice_pdf_url=pdf_url,
        subscription=True,
    )
