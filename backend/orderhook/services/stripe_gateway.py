"""Thin async wrapper around the Stripe SDK.

Every call goes through the SDK's ``*_async`` methods and every result is
converted to plain dicts, so handlers and tests never depend on StripeObject
behaviour. SDK errors are re-raised as ProcessorError.
"""

from typing import Any

import stripe
import structlog

from orderhook.core.config import Settings
from orderhook.core.exceptions import ProcessorError

logger = structlog.get_logger(__name__)

LINE_ITEM_PAGE_SIZE = 100


def _to_dict(obj: Any) -> dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    return obj.to_dict()


class StripeGateway:
    """Reads authoritative objects from Stripe and creates hosted sessions."""

    def __init__(self, settings: Settings):
        self.settings = settings
        stripe.api_key = settings.stripe_secret_key

    async def _call(self, operation: str, coro) -> dict[str, Any]:
        try:
            return _to_dict(await coro)
        except stripe.StripeError as e:
            logger.warning("stripe_call_failed", operation=operation, error_type=type(e).__name__)
            raise ProcessorError(operation, e) from e

    async def list_session_line_items(self, session_id: str) -> list[dict[str, Any]]:
        result = await self._call(
            "checkout.sessions.list_line_items",
            stripe.checkout.Session.list_line_items_async(
                session_id, limit=LINE_ITEM_PAGE_SIZE, expand=["data.price.product"]
            ),
        )
        return result.get("data", [])

    async def retrieve_subscription(self, subscription_id: str) -> dict[str, Any]:
        return await self._call("subscriptions.retrieve", stripe.Subscription.retrieve_async(subscription_id))

    async def retrieve_customer(self, customer_id: str) -> dict[str, Any]:
        return await self._call("customers.retrieve", stripe.Customer.retrieve_async(customer_id))

    async def retrieve_invoice(self, invoice_id: str) -> dict[str, Any]:
        return await self._call("invoices.retrieve", stripe.Invoice.retrieve_async(invoice_id))

    async def list_invoice_line_items(self, invoice_id: str) -> list[dict[str, Any]]:
        result = await self._call(
            "invoices.list_lines",
            stripe.Invoice.list_lines_async(invoice_id, limit=LINE_ITEM_PAGE_SIZE),
        )
        return result.get("data", [])

    async def create_checkout_session(self, **params: Any) -> dict[str, Any]:
        return await self._call("checkout.sessions.create", stripe.checkout.Session.create_async(**params))

    async def create_portal_session(self, customer_id: str, return_url: str) -> dict[str, Any]:
        return await self._call(
            "billing_portal.sessions.create",
            stripe.billing_portal.Session.create_async(customer=customer_id, return_url=return_url),
        )
