"""Transactional email delivery through the Resend HTTP API."""

import base64
from dataclasses import dataclass, field
from typing import Protocol

import httpx
import structlog

from orderhook.core.exceptions import EmailDeliveryError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)
    bcc: str | None = None


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> None: ...


class ResendEmailSender:
    """Posts messages to Resend. Raises EmailDeliveryError on any failure."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    def _payload(self, message: EmailMessage) -> dict:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        if message.bcc:
            payload["bcc"] = [message.bcc]
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": a.filename,
                    "content": base64.b64encode(a.content).decode("ascii"),
                    "content_type": a.content_type,
                }
                for a in message.attachments
            ]
        return payload

    async def send(self, message: EmailMessage) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=self._payload(message),
                )
            except httpx.HTTPError as e:
                raise EmailDeliveryError(message.subject, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise EmailDeliveryError(message.subject, f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None
        logger.info(
            "email_sent",
            subject=message.subject,
            message_id=message_id,
            attachments=len(message.attachments),
        )
