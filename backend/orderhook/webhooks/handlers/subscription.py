"""Subscription lifecycle events and the cancellation reconciler.

Two event shapes describe the same real-world cancellation:
``customer.subscription.deleted`` and ``customer.subscription.updated`` with
``canceled`` as the new or previous status. Both end in ``reconcile_cancellation``.
"""

from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from orderhook.core.exceptions import ProcessorError
from orderhook.services.identity import CustomerIdentity, customer_id_of, identity_from_customer
from orderhook.services.persistence import (
    SubscriberUpdate,
    get_subscriber,
    mark_subscriber_canceled,
    upsert_subscriber,
)
from orderhook.webhooks import ledger
from orderhook.webhooks.context import WebhookServices
from orderhook.webhooks.events import InboundEvent
from orderhook.webhooks.handlers.checkout import plan_of

logger = structlog.get_logger(__name__)

CANCELED = "canceled"


def is_cancellation_update(subscription: dict[str, Any], previous_attributes: dict[str, Any]) -> bool:
    return subscription.get("status") == CANCELED or previous_attributes.get("status") == CANCELED


async def _resolve_identity(customer_id: str, services: WebhookServices) -> CustomerIdentity:
    """Re-fetch the customer; fall back to the stored subscriber row."""
    identity = CustomerIdentity()
    try:
        identity = identity_from_customer(await services.gateway.retrieve_customer(customer_id))
    except ProcessorError as e:
        logger.warning("cancellation_customer_lookup_failed", customer_id=customer_id, error=str(e))

    if not identity.email or not identity.name:
        try:
            stored = await get_subscriber(customer_id)
        except SQLAlchemyError as e:
            logger.warning("cancellation_subscriber_lookup_failed", customer_id=customer_id, error=str(e))
            stored = None
        if stored is not None:
            identity = identity.with_fallback(
                CustomerIdentity(email=stored.email, name=stored.name, phone=stored.phone)
            )
    return identity


async def reconcile_cancellation(subscription: dict[str, Any], services: WebhookServices) -> None:
    """Mark the subscriber canceled, then email the customer and the administrator."""
    customer_id = customer_id_of(subscription)
    subscription_id = subscription.get("id")
    if not customer_id:
        logger.warning("cancellation_without_customer", subscription_id=subscription_id)
        return

    try:
        await mark_subscriber_canceled(customer_id, subscription_id)
    except Exception as e:
        logger.error(
            "subscriber_cancel_persist_failed", customer_id=customer_id, error=str(e), error_type=type(e).__name__
        )

    if services.settings.dedupe_cancellation_emails and subscription_id:
        claim = await ledger.mark_cancellation_mailed_once(subscription_id)
        if not claim.should_process:
            logger.info("cancellation_already_mailed", subscription_id=subscription_id)
            return

    identity = await _resolve_identity(customer_id, services)
    plan = plan_of(subscription)

    await services.notifier.send_cancellation(identity, plan=plan)
    await services.notifier.notify_admin_cancellation(customer_id, subscription_id, identity, plan=plan)
    logger.info("subscription_cancellation_reconciled", customer_id=customer_id, subscription_id=subscription_id)


async def handle_subscription_deleted(event: InboundEvent, services: WebhookServices) -> None:
    await reconcile_cancellation(event.payload, services)


async def handle_subscription_updated(event: InboundEvent, services: WebhookServices) -> None:
    """Cancellations go to the reconciler; any other change syncs status and plan."""
    subscription = event.payload
    if is_cancellation_update(subscription, event.previous_attributes):
        await reconcile_cancellation(subscription, services)
        return

    customer_id = customer_id_of(subscription)
    if not customer_id:
        return

    await upsert_subscriber(
        SubscriberUpdate(
            customer_id=customer_id,
            subscription_id=subscription.get("id"),
            plan=plan_of(subscription),
            status=subscription.get("status"),
        )
    )
    logger.info("subscription_status_updated", status=subscription.get("status"), customer_id=customer_id)
