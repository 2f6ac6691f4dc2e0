"""Typed, immutable view of a verified Stripe event envelope."""

from dataclasses import dataclass, field
from typing import Any

CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"


@dataclass(frozen=True)
class InboundEvent:
    id: str
    type: str
    livemode: bool
    created: int
    payload: dict[str, Any]
    previous_attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_envelope(cls, envelope: dict[str, Any]) -> "InboundEvent":
        """Build an event from a decoded envelope; raises KeyError/TypeError on bad shape."""
        data = envelope["data"]
        payload = data["object"]
        if not isinstance(payload, dict):
            raise TypeError("event data.object must be an object")
        return cls(
            id=str(envelope["id"]),
            type=str(envelope["type"]),
            livemode=bool(envelope.get("livemode", False)),
            created=int(envelope.get("created") or 0),
            payload=payload,
            previous_attributes=data.get("previous_attributes") or {},
        )
