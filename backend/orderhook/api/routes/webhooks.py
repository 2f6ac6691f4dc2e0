"""Inbound Stripe webhook endpoint."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from orderhook.api.dependencies import get_services
from orderhook.core.exceptions import WebhookVerificationError
from orderhook.webhooks.context import WebhookServices
from orderhook.webhooks.router import dispatch_event
from orderhook.webhooks.verifier import verify_event

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/webhook")
async def stripe_webhook(request: Request, services: WebhookServices = Depends(get_services)):
    """Verify, deduplicate and dispatch one Stripe event.

    400 only for verification failures; every verified event is acknowledged
    with 200, including ignored types and handler errors.
    """
    settings = services.settings
    if not settings.stripe_webhook_secret:
        logger.error("stripe_webhook_secret_missing")
        raise HTTPException(status_code=503, detail="Stripe webhook endpoint is not configured")

    body = await request.body()
    sig_header = request.headers.get("stripe-signature")

    try:
        event = verify_event(body, sig_header, settings.stripe_webhook_secret, settings.stripe_webhook_tolerance)
    except WebhookVerificationError as e:
        logger.warning("stripe_webhook_verification_failed", reason=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    outcome = await dispatch_event(event, services)
    return {"received": True, "outcome": outcome}
