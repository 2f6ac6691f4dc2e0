"""Deduplication ledger: insert-if-absent claims with a fail-open store policy."""

import asyncio

import pytest
from sqlalchemy import func, select

import orderhook.db.base as db_mod
from orderhook.db.models import MailedInvoice, ProcessedEvent
from orderhook.webhooks import ledger
from orderhook.webhooks.ledger import ClaimResult

pytestmark = pytest.mark.unit


async def test_first_claim_wins_and_later_claims_are_duplicates(engine, db_session):
    assert await ledger.try_claim("evt_ledger_1") is ClaimResult.CLAIMED
    assert await ledger.try_claim("evt_ledger_1") is ClaimResult.DUPLICATE
    assert await ledger.try_claim("evt_ledger_1") is ClaimResult.DUPLICATE

    count = await db_session.scalar(select(func.count()).select_from(ProcessedEvent))
    assert count == 1


async def test_concurrent_claims_have_a_single_winner(engine):
    results = await asyncio.gather(*(ledger.try_claim("evt_race") for _ in range(5)))

    assert results.count(ClaimResult.CLAIMED) == 1


async def test_invoice_marker_is_independent_of_event_marker(engine, db_session):
    assert await ledger.try_claim("in_shared_key") is ClaimResult.CLAIMED
    assert await ledger.mark_invoice_mailed_once("in_shared_key") is ClaimResult.CLAIMED
    assert await ledger.mark_invoice_mailed_once("in_shared_key") is ClaimResult.DUPLICATE

    row = await db_session.get(MailedInvoice, "in_shared_key")
    assert row is not None
    assert row.sent_at is not None


async def test_cancellation_marker(engine):
    assert await ledger.mark_cancellation_mailed_once("sub_x") is ClaimResult.CLAIMED
    assert await ledger.mark_cancellation_mailed_once("sub_x") is ClaimResult.DUPLICATE


async def test_store_unavailable_fails_open(monkeypatch):
    monkeypatch.setattr(db_mod, "_session_factory", None)

    result = await ledger.try_claim("evt_no_store")

    assert result is ClaimResult.STORE_UNAVAILABLE
    assert result.should_process is True


def test_only_duplicates_suppress_processing():
    assert ClaimResult.CLAIMED.should_process is True
    assert ClaimResult.STORE_UNAVAILABLE.should_process is True
    assert ClaimResult.DUPLICATE.should_process is False
