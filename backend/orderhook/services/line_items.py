"""Line item normalization and money formatting.

Amounts always come from the processor's line items; totals shown anywhere
are the sum of these lines and are never recomputed from unit prices.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

CURRENCY_SYMBOLS = {
    "eur": "€",
    "usd": "$",
    "gbp": "£",
}

# Currencies without a minor unit (amounts are already whole units)
ZERO_DECIMAL_CURRENCIES = {"jpy", "krw", "vnd", "clp", "pyg", "ugx", "xaf", "xof"}


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: int
    amount_total_cents: int
    currency: str | None
    unit_amount_cents: int | None = None
    price_id: str | None = None
    product_id: str | None = None
    raw: dict[str, Any] | None = None


def _price_of(line: dict[str, Any]) -> dict[str, Any]:
    price = line.get("price")
    if isinstance(price, dict):
        return price
    # Newer invoice line shape: pricing.price_details
    details = (line.get("pricing") or {}).get("price_details") or {}
    return {"id": details.get("price"), "product": details.get("product")}


def _product_id(price: dict[str, Any]) -> str | None:
    product = price.get("product")
    if isinstance(product, dict):
        return product.get("id")
    return product


def line_item_from_session(line: dict[str, Any]) -> LineItem:
    """Normalize a checkout session line item (amount_total is authoritative)."""
    price = _price_of(line)
    quantity = line.get("quantity") or 1
    return LineItem(
        description=line.get("description") or price.get("nickname") or "",
        quantity=quantity,
        amount_total_cents=int(line.get("amount_total") or 0),
        currency=line.get("currency") or price.get("currency"),
        unit_amount_cents=price.get("unit_amount"),
        price_id=price.get("id"),
        product_id=_product_id(price),
        raw=line,
    )


def line_item_from_invoice(line: dict[str, Any]) -> LineItem:
    """Normalize an invoice line (``amount`` is the line total)."""
    price = _price_of(line)
    quantity = line.get("quantity") or 1
    amount = int(line.get("amount") or 0)
    return LineItem(
        description=line.get("description") or price.get("nickname") or "",
        quantity=quantity,
        amount_total_cents=amount,
        currency=line.get("currency") or price.get("currency"),
        unit_amount_cents=price.get("unit_amount") or (amount // quantity if quantity else None),
        price_id=price.get("id"),
        product_id=_product_id(price),
        raw=line,
    )


def total_of(items: list[LineItem]) -> int:
    return sum(item.amount_total_cents for item in items)


def currency_of(items: list[LineItem], default: str | None = None) -> str:
    for item in items:
        if item.currency:
            return item.currency.lower()
    return (default or "eur").lower()


def format_money(amount_cents: int, currency: str) -> str:
    """Format a minor-unit amount for display, e.g. (4600, "eur") -> "€46.00"."""
    currency = currency.lower()
    if currency in ZERO_DECIMAL_CURRENCIES:
        value = f"{amount_cents:,}"
    else:
        value = f"{Decimal(amount_cents) / 100:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{value}"
    return f"{value} {currency.upper()}"
