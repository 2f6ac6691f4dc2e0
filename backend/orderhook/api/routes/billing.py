"""Billing glue: hosted Checkout session creation and Customer Portal redirect."""

from typing import Any, Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from orderhook.api.dependencies import get_services
from orderhook.core.exceptions import ProcessorError
from orderhook.webhooks.context import WebhookServices

logger = structlog.get_logger(__name__)

router = APIRouter()


# ── Request / Response schemas ──────────────────────────────────────


class CheckoutLine(BaseModel):
    price: str | None = None
    quantity: Any = None


class CheckoutRequest(BaseModel):
    items: list[CheckoutLine] = Field(default_factory=list)
    mode: Literal["payment", "subscription"] = "payment"
    success_url: str | None = None
    cancel_url: str | None = None
    customer_email: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class CheckoutResponse(BaseModel):
    url: str
    id: str


# ── Endpoints ───────────────────────────────────────────────────────


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(body: CheckoutRequest, services: WebhookServices = Depends(get_services)):
    """Create a Stripe Checkout session; prices are resolved by Stripe from price IDs."""
    if not body.items:
        raise HTTPException(status_code=400, detail="No line items provided")
    for line in body.items:
        if not line.price or isinstance(line.quantity, bool) or not isinstance(line.quantity, int | float):
            raise HTTPException(status_code=400, detail="Invalid line item: need price + quantity")

    settings = services.settings
    params: dict[str, Any] = {
        "mode": body.mode,
        "line_items": [{"price": line.price, "quantity": int(line.quantity)} for line in body.items],
        "success_url": body.success_url or f"{settings.frontend_url}/success",
        "cancel_url": body.cancel_url or f"{settings.frontend_url}/cancel",
        "shipping_address_collection": {"allowed_countries": settings.allowed_countries},
        "automatic_tax": {"enabled": settings.enable_automatic_tax},
        "phone_number_collection": {"enabled": True},
        "metadata": body.metadata,
    }
    if body.customer_email:
        params["customer_email"] = body.customer_email
    if settings.shipping_rates:
        params["shipping_options"] = [{"shipping_rate": rate} for rate in settings.shipping_rates]

    try:
        session = await services.gateway.create_checkout_session(**params)
    except ProcessorError as e:
        logger.error("checkout_session_create_failed", error=str(e.cause))
        return JSONResponse(status_code=500, content={"error": str(e.cause)})

    return CheckoutResponse(url=session["url"], id=session["id"])


@router.get("/billing-portal/link")
async def billing_portal_link(
    customer_id: str | None = Query(default=None),
    return_url: str | None = Query(default=None, alias="return"),
    services: WebhookServices = Depends(get_services),
):
    """Create a Customer Portal session and redirect the browser to it."""
    if not customer_id:
        raise HTTPException(status_code=400, detail="customer_id is required")

    portal = await services.gateway.create_portal_session(
        customer_id=customer_id,
        return_url=return_url or services.settings.frontend_url,
    )
    return RedirectResponse(url=portal["url"], status_code=303)
