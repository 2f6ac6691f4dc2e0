"""Signature verification on the untouched request body."""

import json

import stripe
import structlog

from orderhook.core.exceptions import WebhookVerificationError
from orderhook.webhooks.events import InboundEvent

logger = structlog.get_logger(__name__)


def verify_event(
    body: bytes,
    sig_header: str | None,
    secret: str,
    tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
) -> InboundEvent:
    """Authenticate a raw webhook body and decode it into an InboundEvent.

    The HMAC is computed over the exact bytes received; the body is only
    decoded as JSON after the signature checks out.

    Args:
        body: Raw request body, byte-for-byte as delivered
        sig_header: Value of the Stripe-Signature header
        secret: Endpoint signing secret (whsec_...)
        tolerance: Maximum accepted age of the signed timestamp, in seconds

    Returns:
        The verified event

    Raises:
        WebhookVerificationError: missing header, bad signature, or malformed envelope
    """
    if not sig_header:
        raise WebhookVerificationError("Missing stripe-signature header")

    try:
        payload = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise WebhookVerificationError("Invalid payload encoding") from e

    try:
        stripe.WebhookSignature.verify_header(payload, sig_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError("Invalid signature") from e

    try:
        return InboundEvent.from_envelope(json.loads(payload))
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("stripe_webhook_malformed_envelope", error_type=type(e).__name__)
        raise WebhookVerificationError("Invalid payload") from e
