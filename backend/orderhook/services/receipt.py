"""Receipt PDF rendering using Jinja2 and WeasyPrint.

Stateless: the output depends only on the arguments. PDF generation runs in
a worker thread via asyncio.to_thread() so the event loop keeps serving
other webhook deliveries.
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from orderhook.core.exceptions import ReceiptRenderError
from orderhook.services.identity import CustomerIdentity
from orderhook.services.line_items import LineItem, format_money

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


class ReceiptRenderer:
    """Render a paid receipt as HTML, then as PDF bytes."""

    def __init__(self, brand_name: str) -> None:
        self.brand_name = brand_name
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )

    def render_html(
        self,
        invoice_number: str,
        total_cents: int,
        currency: str,
        customer: CustomerIdentity,
        items: list[LineItem],
        paid_at: datetime | None = None,
    ) -> str:
        paid_at = paid_at or datetime.now(UTC)
        template = self.env.get_template("receipt.html")
        return template.render(
            brand_name=self.brand_name,
            invoice_number=invoice_number,
            total=format_money(total_cents, currency),
            customer=customer,
            address_lines=customer.address.lines() if customer.address else [],
            items=[
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit": format_money(item.unit_amount_cents, currency)
                    if item.unit_amount_cents is not None
                    else "",
                    "amount": format_money(item.amount_total_cents, currency),
                }
                for item in items
            ],
            paid_at=paid_at.strftime("%d/%m/%Y"),
        )

    async def render_pdf(
        self,
        invoice_number: str,
        total_cents: int,
        currency: str,
        customer: CustomerIdentity,
        items: list[LineItem],
        paid_at: datetime | None = None,
    ) -> bytes:
        """Render the receipt to PDF bytes.

        Raises:
            ReceiptRenderError: WeasyPrint is unavailable or rendering failed
        """
        html_content = self.render_html(invoice_number, total_cents, currency, customer, items, paid_at)

        try:
            from weasyprint import HTML
        except ImportError as e:
            raise ReceiptRenderError(
                "WeasyPrint not installed. Install with: pip install weasyprint>=68.1"
            ) from e

        try:
            return await asyncio.to_thread(
                lambda: HTML(string=html_content, base_url=str(TEMPLATE_DIR)).write_pdf()
            )
        except Exception as e:
            raise ReceiptRenderError(f"Receipt {invoice_number} failed to render: {e}") from e
