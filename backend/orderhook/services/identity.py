"""Customer identity normalization.

Stripe scatters contact details across several differently shaped blocks
(shipping details, billing details, invoice customer fields, the Customer
object). Everything here funnels those sources into one CustomerIdentity with
a fixed precedence so call sites never do field-by-field fallback themselves.

Precedence:
- checkout session: shipping -> billing (customer_details) -> bare customer_email
- invoice: expanded customer block -> customer_* fields -> customer_shipping
- anything still missing: the re-fetched Customer object (``with_fallback``)
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any


@dataclass(frozen=True)
class Address:
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    postal_code: str | None = None
    state: str | None = None
    country: str | None = None

    @classmethod
    def from_stripe(cls, raw: dict[str, Any] | None) -> "Address | None":
        if not raw:
            return None
        address = cls(
            line1=raw.get("line1") or None,
            line2=raw.get("line2") or None,
            city=raw.get("city") or None,
            postal_code=raw.get("postal_code") or None,
            state=raw.get("state") or None,
            country=raw.get("country") or None,
        )
        return address if address.is_present else None

    @property
    def is_present(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))

    @property
    def street(self) -> str | None:
        parts = [p for p in (self.line1, self.line2) if p]
        return ", ".join(parts) or None

    def lines(self) -> list[str]:
        """Printable address lines for emails and receipts."""
        city_line = " ".join(p for p in (self.postal_code, self.city) if p)
        return [p for p in (self.line1, self.line2, city_line, self.state, self.country) if p]


@dataclass(frozen=True)
class CustomerIdentity:
    email: str | None = None
    name: str | None = None
    phone: str | None = None
    address: Address | None = field(default=None)

    def with_fallback(self, other: "CustomerIdentity") -> "CustomerIdentity":
        """Fill each missing field from ``other``; present fields always win."""
        return replace(
            self,
            email=self.email or other.email,
            name=self.name or other.name,
            phone=self.phone or other.phone,
            address=self.address or other.address,
        )


def _identity(block: dict[str, Any] | None) -> CustomerIdentity:
    block = block or {}
    return CustomerIdentity(
        email=block.get("email") or None,
        name=block.get("name") or None,
        phone=block.get("phone") or None,
        address=Address.from_stripe(block.get("address")),
    )


def identity_from_session(session: dict[str, Any]) -> CustomerIdentity:
    """Resolve the buyer of a checkout session, shipping details first."""
    shipping = session.get("shipping_details") or (session.get("collected_information") or {}).get(
        "shipping_details"
    )
    billing = session.get("customer_details")
    bare = CustomerIdentity(email=session.get("customer_email") or None)
    return _identity(shipping).with_fallback(_identity(billing)).with_fallback(bare)


def identity_from_invoice(invoice: dict[str, Any]) -> CustomerIdentity:
    """Resolve the customer of an invoice from the fields carried on the invoice itself."""
    customer = invoice.get("customer")
    structured = _identity(customer) if isinstance(customer, dict) else CustomerIdentity()
    plain = CustomerIdentity(
        email=invoice.get("customer_email") or None,
        name=invoice.get("customer_name") or None,
        phone=invoice.get("customer_phone") or None,
        address=Address.from_stripe(invoice.get("customer_address")),
    )
    return structured.with_fallback(plain).with_fallback(_identity(invoice.get("customer_shipping")))


def identity_from_customer(customer: dict[str, Any] | None) -> CustomerIdentity:
    """Resolve identity from a Stripe Customer object (deleted customers yield nothing)."""
    if not customer or customer.get("deleted"):
        return CustomerIdentity()
    return _identity(customer).with_fallback(_identity(customer.get("shipping")))


def customer_id_of(obj: dict[str, Any]) -> str | None:
    """Return the customer ID whether the ``customer`` field is expanded or not."""
    customer = obj.get("customer")
    if isinstance(customer, dict):
        return customer.get("id")
    return customer or None
