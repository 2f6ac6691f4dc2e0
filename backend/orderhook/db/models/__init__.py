"""Re-export all models so Base.metadata sees them."""

from orderhook.db.models.order import Order, OrderItem
from orderhook.db.models.processed_event import MailedCancellation, MailedInvoice, ProcessedEvent
from orderhook.db.models.subscriber import Subscriber

__all__ = [
    "MailedCancellation",
    "MailedInvoice",
    "Order",
    "OrderItem",
    "ProcessedEvent",
    "Subscriber",
]
