"""Bounded polling for the hosted invoice PDF."""

import pytest

from orderhook.services.polling import wait_for_invoice_pdf

pytestmark = pytest.mark.unit

PDF_URL = "https://pay.stripe.com/invoice/in_1/pdf"


async def test_present_url_needs_no_fetch(gateway):
    url = await wait_for_invoice_pdf(gateway, {"id": "in_1", "invoice_pdf": PDF_URL}, delay_seconds=0)

    assert url == PDF_URL
    assert gateway.calls == []


async def test_url_appears_on_third_attempt(gateway):
    gateway.invoice_versions["in_1"] = [
        {"id": "in_1", "invoice_pdf": None},
        {"id": "in_1", "invoice_pdf": None},
        {"id": "in_1", "invoice_pdf": PDF_URL},
    ]

    url = await wait_for_invoice_pdf(gateway, {"id": "in_1"}, delay_seconds=0)

    assert url == PDF_URL
    assert gateway.count("retrieve_invoice") == 3


async def test_gives_up_after_attempt_budget(gateway):
    url = await wait_for_invoice_pdf(gateway, {"id": "in_1"}, attempts=3, delay_seconds=0)

    assert url is None
    assert gateway.count("retrieve_invoice") == 3


async def test_refetch_error_yields_none(gateway):
    gateway.failing.add("retrieve_invoice")

    url = await wait_for_invoice_pdf(gateway, {"id": "in_1"}, delay_seconds=0)

    assert url is None
    assert gateway.count("retrieve_invoice") == 1


async def test_invoice_without_id_is_not_polled(gateway):
    assert await wait_for_invoice_pdf(gateway, {}, delay_seconds=0) is None
    assert gateway.calls == []
