"""Webhook intake pipeline: verify, claim, dispatch."""

from orderhook.webhooks.events import InboundEvent
from orderhook.webhooks.ledger import ClaimResult
from orderhook.webhooks.router import dispatch_event
from orderhook.webhooks.verifier import verify_event

__all__ = ["ClaimResult", "InboundEvent", "dispatch_event", "verify_event"]
