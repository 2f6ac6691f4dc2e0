"""Builders for Stripe-shaped payloads used across test modules."""

import hashlib
import hmac
import json
import time
from typing import Any


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Produce a Stripe-Signature header value for ``payload``."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_envelope(
    event_id: str,
    event_type: str,
    obj: dict[str, Any],
    previous_attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {"object": obj}
    if previous_attributes is not None:
        data["previous_attributes"] = previous_attributes
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "livemode": False,
        "created": 1760000000,
        "data": data,
    }


def envelope_bytes(envelope: dict[str, Any]) -> bytes:
    return json.dumps(envelope, separators=(",", ":")).encode()


def checkout_session(
    session_id: str = "cs_test_a1b2c3d4e5f6",
    mode: str = "payment",
    **overrides: Any,
) -> dict[str, Any]:
    session = {
        "id": session_id,
        "object": "checkout.session",
        "mode": mode,
        "currency": "eur",
        "amount_total": 4600,
        "payment_status": "paid",
        "customer": "cus_test_001" if mode == "subscription" else None,
        "subscription": "sub_test_001" if mode == "subscription" else None,
        "customer_email": None,
        "metadata": {"source": "storefront"},
        "customer_details": {
            "email": "ana@example.com",
            "name": "Ana Billing",
            "phone": "+34600000000",
            "address": {
                "line1": "Calle Facturación 1",
                "line2": None,
                "city": "Madrid",
                "postal_code": "28001",
                "state": None,
                "country": "ES",
            },
        },
        "shipping_details": {
            "name": "Ana Shipping",
            "address": {
                "line1": "Calle Envío 9",
                "line2": "2ºB",
                "city": "Valencia",
                "postal_code": "46001",
                "state": None,
                "country": "ES",
            },
        },
    }
    session.update(overrides)
    return session


def session_line_items() -> list[dict[str, Any]]:
    """Two lines totaling 4600 cents."""
    return [
        {
            "id": "li_1",
            "object": "item",
            "description": "Café de especialidad 250g",
            "quantity": 2,
            "amount_total": 2400,
            "currency": "eur",
            "price": {"id": "price_coffee", "product": "prod_coffee", "unit_amount": 1200, "currency": "eur"},
        },
        {
            "id": "li_2",
            "object": "item",
            "description": "Taza cerámica",
            "quantity": 1,
            "amount_total": 2200,
            "currency": "eur",
            "price": {"id": "price_mug", "product": "prod_mug", "unit_amount": 2200, "currency": "eur"},
        },
    ]


def subscription(
    subscription_id: str = "sub_test_001",
    customer_id: str = "cus_test_001",
    status: str = "active",
) -> dict[str, Any]:
    return {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer_id,
        "status": status,
        "items": {
            "object": "list",
            "data": [{"id": "si_1", "price": {"id": "price_monthly", "nickname": "Coffee Club Monthly"}}],
        },
    }


def customer(customer_id: str = "cus_test_001", **overrides: Any) -> dict[str, Any]:
    data = {
        "id": customer_id,
        "object": "customer",
        "email": "ana@example.com",
        "name": "Ana Customer",
        "phone": "+34600000000",
        "address": {"line1": "Calle Cliente 3", "city": "Sevilla", "postal_code": "41001", "country": "ES"},
    }
    data.update(overrides)
    return data


def invoice(
    invoice_id: str = "in_test_001",
    customer_id: str = "cus_test_001",
    **overrides: Any,
) -> dict[str, Any]:
    data = {
        "id": invoice_id,
        "object": "invoice",
        "number": "INV-0001",
        "customer": customer_id,
        "customer_email": "ana@example.com",
        "customer_name": "Ana Invoice",
        "customer_address": {"line1": "Calle Factura 5", "city": "Bilbao", "postal_code": "48001", "country": "ES"},
        "customer_shipping": None,
        "subscription": "sub_test_001",
        "billing_reason": "subscription_create",
        "currency": "eur",
        "amount_paid": 1500,
        "invoice_pdf": "https://pay.stripe.com/invoice/acct_1/in_test_001/pdf",
        "status_transitions": {"paid_at": 1760000100},
        "created": 1760000000,
    }
    data.update(overrides)
    return data


def invoice_line_items() -> list[dict[str, Any]]:
    return [
        {
            "id": "il_1",
            "object": "line_item",
            "description": "1 × Coffee Club Monthly",
            "quantity": 1,
            "amount": 1500,
            "currency": "eur",
            "price": {"id": "price_monthly", "product": "prod_club", "unit_amount": 1500},
        }
    ]
