"""Tests for the billing repositories against SQLite."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.billing import InvoiceLineCreate
from booking_core.domain.models.enums import InvoiceStatus, SubscriptionStatus
from booking_core.infrastructure.persistence.repositories import get_repositories

NOW = datetime(2025, 6, 10, 8, tzinfo=timezone.utc)


@pytest.fixture
def repos(db_engine):
    return get_repositories(db_engine)


async def _plan(repos, interval="MONTH", amount="19.99"):
    return await repos.pricing_plans.create(
        {
            "name": "Host Basic",
            "amount": Decimal(amount),
            "currency": "USD",
            "billing_interval": interval,
        }
    )


async def _subscription(repos, status=SubscriptionStatus.PENDING, **extra):
    plan = await _plan(repos)
    return await repos.subscriptions.create(
        {
            "client_id": uuid4(),
            "pricing_plan_id": plan.id,
            "status": status,
            "start_at": NOW,
            **extra,
        }
    )


async def _invoice(repos, number="INV-2025-000001", **extra):
    return await repos.invoices.create(
        {
            "client_id": uuid4(),
            "invoice_number": number,
            "currency": "USD",
            "issued_at": NOW,
            "due_at": NOW + timedelta(days=30),
            **extra,
        }
    )


# --- subscriptions ---

async def test_activate_then_pause(repos):
    subscription = await _subscription(repos)
    actor_id = uuid4()

    active = await repos.subscriptions.activate(subscription.id, actor_id=actor_id)
    paused = await repos.subscriptions.pause(subscription.id)

    assert active.status is SubscriptionStatus.ACTIVE
    assert active.updated_by_id == actor_id
    assert paused.status is SubscriptionStatus.PAUSED


async def test_invalid_transition_raises_business_rule(repos):
    subscription = await _subscription(repos)
    with pytest.raises(BusinessRuleError, match="from PENDING to PAUSED"):
        await repos.subscriptions.pause(subscription.id)
    current = await repos.subscriptions.find_by_id(subscription.id)
    assert current.status is SubscriptionStatus.PENDING


async def test_transition_of_missing_subscription_is_not_found(repos):
    with pytest.raises(NotFoundError):
        await repos.subscriptions.activate(uuid4())


async def test_cancel_records_cancel_date(repos):
    subscription = await _subscription(repos, SubscriptionStatus.ACTIVE)
    cancel_at = NOW + timedelta(days=3)

    cancelled = await repos.subscriptions.cancel(subscription.id, cancel_at)

    assert cancelled.status is SubscriptionStatus.CANCELLED
    assert cancelled.cancel_at == cancel_at


async def test_renew_reactivates_paused_subscription(repos):
    subscription = await _subscription(repos, SubscriptionStatus.PAUSED)
    end_at = NOW + timedelta(days=365)

    renewed = await repos.subscriptions.renew(subscription.id, end_at)

    assert renewed.status is SubscriptionStatus.ACTIVE
    assert renewed.end_at == end_at


async def test_renew_cancelled_subscription_is_rejected(repos):
    subscription = await _subscription(repos, SubscriptionStatus.CANCELLED)
    with pytest.raises(BusinessRuleError):
        await repos.subscriptions.renew(subscription.id, NOW + timedelta(days=30))


def _stale_reads(monkeypatch, repository, snapshot):
    """Serve *snapshot* for the first find_by_id, then read through."""
    real = repository.find_by_id
    served = []

    async def find_by_id(id, *, tx=None):
        if not served:
            served.append(id)
            return snapshot
        return await real(id, tx=tx)

    monkeypatch.setattr(repository, "find_by_id", find_by_id)
    return real


async def test_stale_transition_does_not_overwrite_terminal_status(repos, monkeypatch):
    subscription = await _subscription(repos, SubscriptionStatus.ACTIVE)
    await repos.subscriptions.cancel(subscription.id)
    real = _stale_reads(monkeypatch, repos.subscriptions, subscription)

    with pytest.raises(BusinessRuleError, match="from CANCELLED to EXPIRED"):
        await repos.subscriptions.update_status(subscription.id, SubscriptionStatus.EXPIRED)

    assert (await real(subscription.id)).status is SubscriptionStatus.CANCELLED


async def test_stale_renew_does_not_touch_cancelled_subscription(repos, monkeypatch):
    subscription = await _subscription(repos, SubscriptionStatus.ACTIVE)
    await repos.subscriptions.cancel(subscription.id)
    real = _stale_reads(monkeypatch, repos.subscriptions, subscription)

    with pytest.raises(BusinessRuleError, match="Cannot renew a CANCELLED"):
        await repos.subscriptions.renew(subscription.id, NOW + timedelta(days=90))

    assert (await real(subscription.id)).end_at is None


async def test_is_active_and_find_active(repos):
    open_ended = await _subscription(repos, SubscriptionStatus.ACTIVE)
    await _subscription(repos, SubscriptionStatus.ACTIVE, end_at=NOW - timedelta(days=1))
    await _subscription(repos, SubscriptionStatus.PAUSED)

    assert await repos.subscriptions.is_active(open_ended.id, NOW)
    assert [s.id for s in await repos.subscriptions.find_active(NOW)] == [open_ended.id]


async def test_find_expiring_within_window(repos):
    soon = await _subscription(repos, SubscriptionStatus.ACTIVE, end_at=NOW + timedelta(days=3))
    await _subscription(repos, SubscriptionStatus.ACTIVE, end_at=NOW + timedelta(days=30))

    found = await repos.subscriptions.find_expiring(7, NOW)

    assert [s.id for s in found] == [soon.id]


async def test_trial_expiring(repos):
    subscription = await _subscription(repos, trial_ends_at=NOW + timedelta(days=2))
    assert await repos.subscriptions.is_trial_expiring(subscription.id, 3, NOW)
    assert not await repos.subscriptions.is_trial_expiring(subscription.id, 1, NOW)


async def test_calculate_next_billing_from_plan(repos):
    subscription = await _subscription(repos)
    assert await repos.subscriptions.calculate_next_billing(subscription.id) == datetime(
        2025, 7, 10, 8, tzinfo=timezone.utc
    )


async def test_subscription_with_pricing_plan(repos):
    subscription = await _subscription(repos)
    hydrated = await repos.subscriptions.find_with_relations(
        {"id": subscription.id}, ["pricing_plan"]
    )
    assert hydrated.pricing_plan.id == subscription.pricing_plan_id


async def test_find_by_client(repos):
    subscription = await _subscription(repos)
    await _subscription(repos)
    found = await repos.subscriptions.find_by_client(subscription.client_id)
    assert [s.id for s in found] == [subscription.id]


# --- invoices ---

async def test_invoice_numbers_are_sequential_per_year(repos):
    assert await repos.invoices.next_invoice_number(2025) == "INV-2025-000001"
    await _invoice(repos, "INV-2025-000001")
    await _invoice(repos, "INV-2024-000009")
    assert await repos.invoices.next_invoice_number(2025) == "INV-2025-000002"
    assert await repos.invoices.next_invoice_number(2024) == "INV-2024-000010"


async def test_lines_priced_and_totals_applied(repos):
    invoice = await _invoice(repos)
    line = await repos.invoice_lines.add_line(
        invoice.id,
        InvoiceLineCreate(
            description="Nights",
            quantity=2,
            unit_price=Decimal("50.00"),
            tax_rate=Decimal("0.21"),
            discount_rate=Decimal("0.10"),
        ),
    )
    await repos.invoice_lines.add_line(
        invoice.id, InvoiceLineCreate(description="Cleaning", quantity=1, unit_price=Decimal("10"))
    )

    updated = await repos.invoices.apply_totals(invoice.id)

    assert line.line_amount == Decimal("90.00")
    assert line.total_amount == Decimal("108.90")
    assert updated.subtotal_amount == Decimal("100.00")
    assert updated.tax_amount == Decimal("18.90")
    assert updated.total_amount == Decimal("118.90")


async def test_totals_of_empty_invoice_are_zero(repos):
    invoice = await _invoice(repos)
    totals = await repos.invoices.calculate_totals(invoice.id)
    assert totals.total == Decimal("0.00")


async def test_apply_discounts_reprices_line(repos):
    invoice = await _invoice(repos)
    line = await repos.invoice_lines.add_line(
        invoice.id, InvoiceLineCreate(description="Nights", quantity=1, unit_price=Decimal("80"))
    )

    repriced = await repos.invoice_lines.apply_discounts(line.id, discount_amount=Decimal("30"))

    assert repriced.line_amount == Decimal("50.00")
    recomputed = await repos.invoice_lines.calculate_line_total(line.id)
    assert recomputed.total_amount == Decimal("50.00")


async def test_mark_as_paid_and_guards(repos):
    invoice = await _invoice(repos)
    assert await repos.invoices.can_mark_paid(invoice.id)

    paid = await repos.invoices.mark_as_paid(invoice.id, NOW)

    assert paid.status is InvoiceStatus.PAID
    assert paid.paid_at == NOW
    assert not await repos.invoices.can_mark_paid(invoice.id)
    assert not await repos.invoices.can_void(invoice.id)


async def test_mark_as_paid_leaves_void_invoice_alone(repos):
    invoice = await _invoice(repos, status=InvoiceStatus.VOID)

    assert await repos.invoices.mark_as_paid(invoice.id, NOW) is None
    current = await repos.invoices.find_by_id(invoice.id)
    assert current.status is InvoiceStatus.VOID
    assert current.paid_at is None


async def test_balance_counts_only_settled_payments(repos):
    invoice = await _invoice(repos, total_amount=Decimal("118.90"))
    for amount, status in (("40.00", "APPROVED"), ("100.00", "FAILED"), ("8.90", "PENDING")):
        await repos.payments.create(
            {
                "invoice_id": invoice.id,
                "amount": Decimal(amount),
                "currency": "USD",
                "status": status,
            }
        )

    balance = await repos.invoices.get_balance(invoice.id)

    assert balance.amount_paid == Decimal("48.90")
    assert balance.balance == Decimal("70.00")
    assert len(await repos.payments.find_by_invoice(invoice.id)) == 3


async def test_balance_of_missing_invoice_is_none(repos):
    assert await repos.invoices.get_balance(uuid4()) is None


async def test_find_overdue(repos):
    overdue = await _invoice(repos, "INV-2025-000001", due_at=NOW - timedelta(days=1))
    await _invoice(repos, "INV-2025-000002")
    await _invoice(
        repos, "INV-2025-000003", due_at=NOW - timedelta(days=2), status=InvoiceStatus.PAID
    )

    assert [i.id for i in await repos.invoices.find_overdue(NOW)] == [overdue.id]


async def test_invoice_with_lines(repos):
    invoice = await _invoice(repos)
    await repos.invoice_lines.add_line(
        invoice.id, InvoiceLineCreate(description="Nights", quantity=1, unit_price=Decimal("5"))
    )

    hydrated = await repos.invoices.find_with_relations({"id": invoice.id}, ["lines"])

    assert [line.description for line in hydrated.lines] == ["Nights"]
    assert hydrated.payments is None
