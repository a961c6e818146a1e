"""Tests for booking_core/domain/models/billing.py."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from booking_core.domain.models.billing import (
    Invoice,
    InvoiceLineCreate,
    PricingPlan,
    Subscription,
    SubscriptionCreate,
    add_interval,
    calculate_line_amounts,
)
from booking_core.domain.models.enums import BillingInterval, InvoiceStatus, SubscriptionStatus

NOW = datetime(2025, 3, 10, 12, tzinfo=timezone.utc)


def _audit(**overrides):
    data = {"id": uuid4(), "created_at": NOW, "updated_at": NOW}
    data.update(overrides)
    return data


def _subscription(**overrides):
    data = _audit(client_id=uuid4(), pricing_plan_id=uuid4(), start_at=NOW)
    data.update(overrides)
    return Subscription.model_validate(data)


def _invoice(**overrides):
    data = _audit(
        client_id=uuid4(),
        invoice_number="INV-2025-000001",
        issued_at=NOW,
        due_at=NOW + timedelta(days=30),
    )
    data.update(overrides)
    return Invoice.model_validate(data)


# --- calculate_line_amounts ---

def test_line_without_discount_or_tax():
    amounts = calculate_line_amounts(3, Decimal("10.00"))
    assert amounts.line_amount == Decimal("30.00")
    assert amounts.tax_amount == Decimal("0.00")
    assert amounts.total_amount == Decimal("30.00")


def test_tax_applies_to_discounted_amount():
    amounts = calculate_line_amounts(
        2, Decimal("50.00"), tax_rate=Decimal("0.21"), discount_rate=Decimal("0.10")
    )
    assert amounts.line_amount == Decimal("90.00")
    assert amounts.tax_amount == Decimal("18.90")
    assert amounts.total_amount == Decimal("108.90")


def test_discount_rate_wins_over_fixed_amount():
    amounts = calculate_line_amounts(
        1, Decimal("100"), discount_rate=Decimal("0.5"), discount_amount=Decimal("90")
    )
    assert amounts.line_amount == Decimal("50.00")


def test_fixed_discount_used_when_no_rate():
    amounts = calculate_line_amounts(1, Decimal("100"), discount_amount=Decimal("15.50"))
    assert amounts.line_amount == Decimal("84.50")


def test_discount_never_goes_below_zero():
    amounts = calculate_line_amounts(
        1, Decimal("10"), tax_rate=Decimal("0.21"), discount_amount=Decimal("25")
    )
    assert amounts.line_amount == Decimal("0.00")
    assert amounts.total_amount == Decimal("0.00")


def test_line_amounts_round_half_up():
    amounts = calculate_line_amounts(1, Decimal("0.05"), tax_rate=Decimal("0.5"))
    assert amounts.tax_amount == Decimal("0.03")


# --- add_interval / PricingPlan ---

def test_add_interval_days_and_weeks():
    assert add_interval(NOW, BillingInterval.DAY, 3) == NOW + timedelta(days=3)
    assert add_interval(NOW, BillingInterval.WEEK) == NOW + timedelta(weeks=1)


def test_add_interval_clamps_month_end():
    jan_31 = datetime(2025, 1, 31, tzinfo=timezone.utc)
    assert add_interval(jan_31, BillingInterval.MONTH) == datetime(2025, 2, 28, tzinfo=timezone.utc)


def test_add_interval_crosses_year():
    nov = datetime(2024, 11, 15, tzinfo=timezone.utc)
    assert add_interval(nov, BillingInterval.MONTH, 3) == datetime(2025, 2, 15, tzinfo=timezone.utc)


def test_add_interval_leap_day_yearly():
    leap = datetime(2024, 2, 29, tzinfo=timezone.utc)
    assert add_interval(leap, BillingInterval.YEAR) == datetime(2025, 2, 28, tzinfo=timezone.utc)


def test_one_off_plan_has_no_next_billing():
    plan = PricingPlan.model_validate(_audit(name="Setup", amount=Decimal("5"), currency="USD"))
    assert plan.next_billing_after(NOW) is None


def test_monthly_plan_next_billing():
    plan = PricingPlan.model_validate(
        _audit(
            name="Pro",
            amount=Decimal("5"),
            currency="USD",
            billing_interval=BillingInterval.MONTH,
            interval_count=2,
        )
    )
    assert plan.next_billing_after(NOW) == datetime(2025, 5, 10, 12, tzinfo=timezone.utc)


# --- Subscription ---

def test_subscription_active_when_open_ended():
    assert _subscription(status=SubscriptionStatus.ACTIVE).is_active_at(NOW)


def test_subscription_inactive_after_end():
    subscription = _subscription(
        status=SubscriptionStatus.ACTIVE, end_at=NOW - timedelta(seconds=1)
    )
    assert not subscription.is_active_at(NOW)


def test_pending_subscription_is_not_active():
    assert not _subscription().is_active_at(NOW)


def test_trial_expiring_within_window():
    subscription = _subscription(trial_ends_at=NOW + timedelta(days=2))
    assert subscription.is_trial_expiring(3, NOW)
    assert not subscription.is_trial_expiring(1, NOW)


def test_subscription_without_trial_is_not_expiring():
    assert not _subscription().is_trial_expiring(30, NOW)


def test_subscription_create_requires_end_after_start():
    with pytest.raises(ValidationError):
        SubscriptionCreate(
            client_id=uuid4(), pricing_plan_id=uuid4(), start_at=NOW, end_at=NOW
        )


# --- Invoice ---

def test_open_invoice_can_be_paid_and_voided():
    invoice = _invoice()
    assert invoice.can_mark_paid
    assert invoice.can_void


@pytest.mark.parametrize("status", [InvoiceStatus.PAID, InvoiceStatus.VOID, InvoiceStatus.DRAFT])
def test_non_open_invoice_cannot_be_paid(status):
    assert not _invoice(status=status).can_mark_paid


def test_invoice_overdue_at_due_date():
    invoice = _invoice()
    assert invoice.is_overdue_at(invoice.due_at)
    assert not invoice.is_overdue_at(NOW)


def test_invoice_line_rates_are_fractions():
    with pytest.raises(ValidationError):
        InvoiceLineCreate(description="Nights", quantity=1, unit_price=Decimal("10"), tax_rate=21)
