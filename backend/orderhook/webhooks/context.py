"""Collaborators shared by every webhook handler, built once at startup."""

from dataclasses import dataclass

from orderhook.core.config import Settings
from orderhook.services.notifications import Notifier
from orderhook.services.stripe_gateway import StripeGateway


@dataclass(frozen=True)
class WebhookServices:
    settings: Settings
    gateway: StripeGateway
    notifier: Notifier


def build_services(settings: Settings) -> WebhookServices:
    """Wire the production collaborators from settings."""
    from orderhook.services.email_sender import ResendEmailSender
    from orderhook.services.receipt import ReceiptRenderer

    sender = ResendEmailSender(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        api_url=settings.resend_api_url,
    )
    notifier = Notifier(settings, sender, ReceiptRenderer(settings.brand_name))
    return WebhookServices(settings=settings, gateway=StripeGateway(settings), notifier=notifier)
