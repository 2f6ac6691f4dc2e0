"""Email composition for customers and the administrator.

All customer templates share one HTML shell. The total printed in any email
is the sum of the line items passed in, so it always equals the amount the
processor charged.

Every public method returns True when the message was accepted by the email
provider and False otherwise; delivery failures are logged here and never
raised, so one failed email cannot prevent its siblings.
"""

from datetime import datetime

import httpx
import structlog
from jinja2 import Environment, FileSystemLoader

from orderhook.core.config import Settings
from orderhook.core.exceptions import EmailDeliveryError, ReceiptRenderError
from orderhook.services.email_sender import Attachment, EmailMessage, EmailSender
from orderhook.services.identity import CustomerIdentity
from orderhook.services.line_items import LineItem, currency_of, format_money, total_of
from orderhook.services.receipt import TEMPLATE_DIR, ReceiptRenderer

logger = structlog.get_logger(__name__)


class Notifier:
    """Builds and sends the system's five kinds of email."""

    def __init__(
        self,
        settings: Settings,
        sender: EmailSender,
        renderer: ReceiptRenderer,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.sender = sender
        self.renderer = renderer
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )
        self._http_transport = http_transport

    # ── Helpers ─────────────────────────────────────────────────────

    def _render(self, template_name: str, **context) -> str:
        template = self.env.get_template(f"emails/{template_name}")
        return template.render(brand_name=self.settings.brand_name, **context)

    def _items_context(self, items: list[LineItem]) -> dict:
        currency = currency_of(items)
        return {
            "items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "amount": format_money(item.amount_total_cents, currency),
                }
                for item in items
            ],
            "total": format_money(total_of(items), currency),
        }

    def _customer_bcc(self) -> str | None:
        if self.settings.bcc_admin_on_customer_emails and self.settings.admin_email:
            return self.settings.admin_email
        return None

    async def _deliver(self, message: EmailMessage, kind: str) -> bool:
        try:
            await self.sender.send(message)
        except EmailDeliveryError as e:
            logger.error("email_send_failed", kind=kind, reason=e.reason)
            return False
        logger.info("email_delivered", kind=kind, attachments=len(message.attachments))
        return True

    async def _fetch_document(self, url: str) -> bytes | None:
        """Best-effort download of the processor-hosted invoice PDF."""
        try:
            async with httpx.AsyncClient(
                timeout=15.0, follow_redirects=True, transport=self._http_transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            logger.warning("stripe_invoice_pdf_fetch_failed", error=str(e), error_type=type(e).__name__)
            return None

    # ── Customer emails ─────────────────────────────────────────────

    async def send_confirmation(
        self,
        customer: CustomerIdentity,
        items: list[LineItem],
        subscription: bool = False,
    ) -> bool:
        """Confirmation-only email (no receipt attached)."""
        if not customer.email:
            logger.warning("customer_email_missing", kind="confirmation")
            return False

        html = self._render(
            "confirmation.html",
            customer=customer,
            subscription=subscription,
            with_receipt=False,
            address_lines=customer.address.lines() if customer.address and not subscription else [],
            **self._items_context(items),
        )
        subject = (
            f"{self.settings.brand_name} · Subscription confirmed"
            if subscription
            else f"{self.settings.brand_name} · Order confirmation"
        )
        message = EmailMessage(to=customer.email, subject=subject, html=html, bcc=self._customer_bcc())
        return await self._deliver(message, "confirmation")

    async def send_combined(
        self,
        customer: CustomerIdentity,
        items: list[LineItem],
        invoice_number: str,
        paid_at: datetime | None = None,
        stripe_invoice_pdf_url: str | None = None,
        subscription: bool = False,
    ) -> bool:
        """Confirmation plus a generated receipt PDF, optionally plus Stripe's own invoice PDF.

        A receipt rendering failure downgrades the email to confirmation-only
        rather than dropping it.
        """
        if not customer.email:
            logger.warning("customer_email_missing", kind="combined", invoice_number=invoice_number)
            return False

        currency = currency_of(items)
        attachments: list[Attachment] = []

        try:
            receipt = await self.renderer.render_pdf(
                invoice_number=invoice_number,
                total_cents=total_of(items),
                currency=currency,
                customer=customer,
                items=items,
                paid_at=paid_at,
            )
            attachments.append(Attachment(filename=f"receipt-{invoice_number}.pdf", content=receipt))
        except ReceiptRenderError as e:
            logger.error("receipt_render_failed", invoice_number=invoice_number, error=str(e))

        with_stripe_invoice = False
        if self.settings.attach_stripe_invoice_pdf and stripe_invoice_pdf_url:
            document = await self._fetch_document(stripe_invoice_pdf_url)
            if document:
                attachments.append(Attachment(filename=f"invoice-{invoice_number}.pdf", content=document))
                with_stripe_invoice = True

        html = self._render(
            "confirmation.html",
            customer=customer,
            subscription=subscription,
            with_receipt=bool(attachments),
            with_stripe_invoice=with_stripe_invoice,
            invoice_number=invoice_number,
            address_lines=customer.address.lines() if customer.address and not subscription else [],
            **self._items_context(items),
        )
        message = EmailMessage(
            to=customer.email,
            subject=f"{self.settings.brand_name} · Receipt {invoice_number}",
            html=html,
            attachments=tuple(attachments),
            bcc=self._customer_bcc(),
        )
        return await self._deliver(message, "combined")

    async def send_cancellation(self, customer: CustomerIdentity, plan: str | None = None) -> bool:
        if not customer.email:
            logger.warning("customer_email_missing", kind="cancellation")
            return False

        html = self._render("cancellation.html", customer=customer, plan=plan)
        message = EmailMessage(
            to=customer.email,
            subject=f"{self.settings.brand_name} · Subscription canceled",
            html=html,
            bcc=self._customer_bcc(),
        )
        return await self._deliver(message, "cancellation")

    # ── Administrator emails ────────────────────────────────────────

    async def notify_admin_order(
        self,
        session_id: str,
        customer: CustomerIdentity,
        items: list[LineItem],
        status: str | None,
        subscription: bool = False,
    ) -> bool:
        if not self.settings.admin_email:
            logger.warning("admin_email_not_configured", kind="admin_order")
            return False

        context = self._items_context(items)
        html = self._render(
            "admin_order.html",
            session_id=session_id,
            customer=customer,
            status=status,
            subscription=subscription,
            address_lines=customer.address.lines() if customer.address else [],
            **context,
        )
        label = "subscription" if subscription else "order"
        message = EmailMessage(
            to=self.settings.admin_email,
            subject=f"New {label} · {context['total']} · {customer.name or customer.email or session_id}",
            html=html,
        )
        return await self._deliver(message, "admin_order")

    async def notify_admin_cancellation(
        self,
        customer_id: str,
        subscription_id: str | None,
        customer: CustomerIdentity,
        plan: str | None = None,
    ) -> bool:
        if not self.settings.admin_email:
            logger.warning("admin_email_not_configured", kind="admin_cancellation")
            return False

        html = self._render(
            "admin_cancellation.html",
            customer_id=customer_id,
            subscription_id=subscription_id,
            customer=customer,
            plan=plan,
        )
        message = EmailMessage(
            to=self.settings.admin_email,
            subject=f"Subscription canceled · {customer.name or customer.email or customer_id}",
            html=html,
        )
        return await self._deliver(message, "admin_cancellation")
