"""Resend client: request shape and error mapping."""

import base64
import json

import httpx
import pytest

from orderhook.core.exceptions import EmailDeliveryError
from orderhook.services.email_sender import Attachment, EmailMessage, ResendEmailSender

pytestmark = pytest.mark.unit

API_URL = "https://resend.test/emails"


def _sender(handler) -> ResendEmailSender:
    return ResendEmailSender(
        api_key="re_test_key",
        sender="Shop <orders@shop.test>",
        api_url=API_URL,
        transport=httpx.MockTransport(handler),
    )


async def test_posts_message_with_attachments():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "email_123"})

    message = EmailMessage(
        to="ana@example.com",
        subject="Receipt",
        html="<p>hi</p>",
        attachments=(Attachment(filename="receipt.pdf", content=b"%PDF-1.7"),),
        bcc="admin@shop.test",
    )

    await _sender(handler).send(message)

    (request,) = captured
    assert str(request.url) == API_URL
    assert request.headers["Authorization"] == "Bearer re_test_key"
    body = json.loads(request.content)
    assert body["from"] == "Shop <orders@shop.test>"
    assert body["to"] == ["ana@example.com"]
    assert body["bcc"] == ["admin@shop.test"]
    assert body["attachments"][0]["filename"] == "receipt.pdf"
    assert base64.b64decode(body["attachments"][0]["content"]) == b"%PDF-1.7"


async def test_plain_message_omits_optional_fields():
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "email_124"})

    await _sender(handler).send(EmailMessage(to="a@example.com", subject="s", html="h"))

    assert "bcc" not in captured[0]
    assert "attachments" not in captured[0]


async def test_provider_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "invalid from"})

    with pytest.raises(EmailDeliveryError) as exc_info:
        await _sender(handler).send(EmailMessage(to="a@example.com", subject="Receipt", html="h"))

    assert "HTTP 422" in exc_info.value.reason


async def test_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EmailDeliveryError):
        await _sender(handler).send(EmailMessage(to="a@example.com", subject="Receipt", html="h"))


async def test_non_json_success_body_is_tolerated():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="ok")

    await _sender(handler).send(EmailMessage(to="a@example.com", subject="s", html="h"))
