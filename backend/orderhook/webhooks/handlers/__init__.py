from orderhook.webhooks.handlers.checkout import handle_checkout_completed
from orderhook.webhooks.handlers.invoice import handle_invoice_payment_succeeded
from orderhook.webhooks.handlers.subscription import (
    handle_subscription_deleted,
    handle_subscription_updated,
)

__all__ = [
    "handle_checkout_completed",
    "handle_invoice_payment_succeeded",
    "handle_subscription_deleted",
    "handle_subscription_updated",
]
