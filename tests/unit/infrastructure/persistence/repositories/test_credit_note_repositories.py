"""Tests for SqlCreditNoteRepository and credit-aware invoice balances against SQLite."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.billing import (
    AMOUNT_EXCEEDS_INVOICE_BALANCE,
    AMOUNT_MUST_BE_POSITIVE,
    CURRENCY_MISMATCH,
    INVOICE_NOT_FOUND,
)
from booking_core.domain.models.enums import CreditNoteStatus, InvoiceStatus
from booking_core.infrastructure.persistence.repositories import get_repositories

NOW = datetime(2025, 8, 1, 12, tzinfo=timezone.utc)


@pytest.fixture
def repos(db_engine):
    return get_repositories(db_engine)


async def _invoice(repos, total="100.00", **extra):
    return await repos.invoices.create(
        {
            "client_id": uuid4(),
            "invoice_number": f"INV-2025-{uuid4().hex[:6]}",
            "currency": "USD",
            "total_amount": Decimal(total),
            "issued_at": NOW,
            "due_at": NOW + timedelta(days=30),
            **extra,
        }
    )


async def _note(repos, invoice, amount="10.00", **extra):
    return await repos.credit_notes.create(
        {
            "invoice_id": invoice.id,
            "amount": Decimal(amount),
            "currency": "USD",
            "status": CreditNoteStatus.ISSUED,
            "issued_at": NOW,
            **extra,
        }
    )


# --- validate_credit_amount ---

async def test_amount_within_invoice_total_is_valid(repos):
    invoice = await _invoice(repos)

    result = await repos.credit_notes.validate_credit_amount(invoice.id, Decimal("100.00"))

    assert result.valid
    assert result.max_allowed == Decimal("100.00")


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
async def test_non_positive_amount_is_invalid(repos, amount):
    invoice = await _invoice(repos)

    result = await repos.credit_notes.validate_credit_amount(invoice.id, amount)

    assert not result.valid
    assert result.reason == AMOUNT_MUST_BE_POSITIVE


async def test_missing_or_deleted_invoice_is_invalid(repos):
    invoice = await _invoice(repos)
    await repos.invoices.soft_delete({"id": invoice.id})

    for invoice_id in (uuid4(), invoice.id):
        result = await repos.credit_notes.validate_credit_amount(invoice_id, Decimal("1"))
        assert result.reason == INVOICE_NOT_FOUND


async def test_currency_must_match_invoice(repos):
    invoice = await _invoice(repos)

    result = await repos.credit_notes.validate_credit_amount(
        invoice.id, Decimal("1"), currency="EUR"
    )

    assert result.reason == CURRENCY_MISMATCH


async def test_existing_credit_lowers_the_ceiling(repos):
    invoice = await _invoice(repos)
    await _note(repos, invoice, "60.00")
    await _note(repos, invoice, "30.00", status=CreditNoteStatus.CANCELLED)

    result = await repos.credit_notes.validate_credit_amount(invoice.id, Decimal("40.01"))

    assert not result.valid
    assert result.reason == AMOUNT_EXCEEDS_INVOICE_BALANCE
    assert result.max_allowed == Decimal("40.00")


async def test_void_invoice_has_nothing_left_to_credit(repos):
    invoice = await _invoice(repos, status=InvoiceStatus.VOID)

    result = await repos.credit_notes.validate_credit_amount(invoice.id, Decimal("0.01"))

    assert result.reason == AMOUNT_EXCEEDS_INVOICE_BALANCE
    assert result.max_allowed == Decimal("0.00")


# --- totals and lookups ---

async def test_total_credit_skips_cancelled_and_deleted_notes(repos):
    invoice = await _invoice(repos)
    await _note(repos, invoice, "10.00")
    await _note(repos, invoice, "5.50", status=CreditNoteStatus.APPLIED)
    await _note(repos, invoice, "20.00", status=CreditNoteStatus.CANCELLED)
    deleted = await _note(repos, invoice, "7.00")
    await repos.credit_notes.soft_delete({"id": deleted.id})

    total = await repos.credit_notes.get_total_credit_for_invoice(invoice.id)

    assert total == Decimal("15.50")


async def test_total_credit_of_invoice_without_notes_is_zero(repos):
    assert await repos.credit_notes.get_total_credit_for_invoice(uuid4()) == Decimal("0.00")


async def test_find_by_invoice_only_returns_that_invoice(repos):
    invoice, other = await _invoice(repos), await _invoice(repos)
    mine = await _note(repos, invoice)
    await _note(repos, other)

    assert [n.id for n in await repos.credit_notes.find_by_invoice(invoice.id)] == [mine.id]


async def test_find_by_date_range_is_inclusive(repos):
    invoice = await _invoice(repos)
    early = await _note(repos, invoice, issued_at=NOW - timedelta(days=10))
    edge = await _note(repos, invoice, issued_at=NOW)
    await _note(repos, invoice, issued_at=NOW + timedelta(days=1))

    found = await repos.credit_notes.find_by_date_range(NOW - timedelta(days=10), NOW)

    assert [n.id for n in found] == [edge.id, early.id]


# --- apply / cancel ---

async def test_apply_marks_note_applied(repos):
    invoice = await _invoice(repos)
    note = await _note(repos, invoice)
    actor_id = uuid4()

    applied = await repos.credit_notes.apply_to_invoice(note.id, NOW, actor_id=actor_id)

    assert applied.status is CreditNoteStatus.APPLIED
    assert applied.applied_at == NOW
    assert applied.updated_by_id == actor_id


async def test_apply_twice_is_rejected(repos):
    note = await _note(repos, await _invoice(repos))
    await repos.credit_notes.apply_to_invoice(note.id, NOW)

    with pytest.raises(BusinessRuleError, match="status APPLIED"):
        await repos.credit_notes.apply_to_invoice(note.id, NOW)


async def test_apply_after_cancel_leaves_note_cancelled(repos):
    note = await _note(repos, await _invoice(repos))
    await repos.credit_notes.cancel(note.id)

    with pytest.raises(BusinessRuleError, match="status CANCELLED"):
        await repos.credit_notes.apply_to_invoice(note.id, NOW)
    current = await repos.credit_notes.find_by_id(note.id)
    assert current.status is CreditNoteStatus.CANCELLED
    assert current.applied_at is None


async def test_apply_to_void_invoice_is_rejected(repos):
    invoice = await _invoice(repos)
    note = await _note(repos, invoice)
    await repos.invoices.update({"id": invoice.id}, {"status": InvoiceStatus.VOID})

    with pytest.raises(BusinessRuleError, match="void or missing invoice"):
        await repos.credit_notes.apply_to_invoice(note.id, NOW)


async def test_missing_note_is_not_found(repos):
    with pytest.raises(NotFoundError):
        await repos.credit_notes.apply_to_invoice(uuid4(), NOW)
    with pytest.raises(NotFoundError):
        await repos.credit_notes.cancel(uuid4())


@pytest.mark.parametrize(
    "reason, stored",
    [("duplicate charge", "CANCELLED: duplicate charge"), (None, "CANCELLED")],
)
async def test_cancel_records_reason(repos, reason, stored):
    note = await _note(repos, await _invoice(repos), reason="goodwill")

    cancelled = await repos.credit_notes.cancel(note.id, reason)

    assert cancelled.status is CreditNoteStatus.CANCELLED
    assert cancelled.reason == stored


async def test_cancel_applied_note_is_rejected(repos):
    note = await _note(repos, await _invoice(repos))
    await repos.credit_notes.apply_to_invoice(note.id, NOW)

    with pytest.raises(BusinessRuleError):
        await repos.credit_notes.cancel(note.id)


# --- invoice balance ---

async def test_balance_subtracts_applied_credit_only(repos):
    invoice = await _invoice(repos, "100.00")
    await repos.payments.create(
        {
            "invoice_id": invoice.id,
            "amount": Decimal("30.00"),
            "currency": "USD",
            "status": "APPROVED",
        }
    )
    applied = await _note(repos, invoice, "20.00")
    await repos.credit_notes.apply_to_invoice(applied.id, NOW)
    await _note(repos, invoice, "10.00")
    await _note(repos, invoice, "5.00", status=CreditNoteStatus.CANCELLED)

    balance = await repos.invoices.get_balance(invoice.id)

    assert balance.total_due == Decimal("100.00")
    assert balance.amount_paid == Decimal("30.00")
    assert balance.amount_credited == Decimal("20.00")
    assert balance.balance == Decimal("50.00")
