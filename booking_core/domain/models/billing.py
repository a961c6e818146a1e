"""Billing domain models: pricing plans, subscriptions, invoices, payments
and credit notes.

Money is always Decimal; rates (tax_rate, discount_rate) are fractions in
[0, 1], so 0.21 means 21 %.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from pydantic import Field, model_validator

from .base import (
    AuditedEntity,
    CurrencyCode,
    InputModel,
    SearchParams,
    UtcDateTime,
    quantize_money,
)
from .enums import (
    BillingInterval,
    CreditNoteStatus,
    InvoiceStatus,
    PaymentStatus,
    SubscriptionStatus,
)

Rate = Decimal


def add_interval(start: datetime, interval: BillingInterval, count: int = 1) -> datetime:
    """Advance *start* by *count* billing intervals.

    Month and year steps clamp the day to the end of the target month
    (Jan 31 + 1 month -> Feb 28/29).
    """
    if interval is BillingInterval.DAY:
        return start + timedelta(days=count)
    if interval is BillingInterval.WEEK:
        return start + timedelta(weeks=count)
    months = count if interval is BillingInterval.MONTH else 12 * count
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


# --- Pricing plans ---

class PricingPlan(AuditedEntity):
    name: str
    amount: Decimal
    currency: str
    billing_interval: BillingInterval | None = None  # None = one-off charge
    interval_count: int = 1
    is_active: bool = True

    def next_billing_after(self, start: datetime) -> datetime | None:
        if self.billing_interval is None:
            return None
        return add_interval(start, self.billing_interval, self.interval_count)


class PricingPlanCreate(InputModel):
    name: str = Field(min_length=2, max_length=120)
    amount: Decimal = Field(ge=0)
    currency: CurrencyCode = "USD"
    billing_interval: BillingInterval | None = None
    interval_count: int = Field(default=1, ge=1, le=36)
    is_active: bool = True


class PricingPlanUpdate(InputModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    amount: Decimal | None = Field(default=None, ge=0)
    currency: CurrencyCode | None = None
    billing_interval: BillingInterval | None = None
    interval_count: int | None = Field(default=None, ge=1, le=36)
    is_active: bool | None = None


# --- Subscriptions ---

class Subscription(AuditedEntity):
    client_id: UUID
    pricing_plan_id: UUID
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    start_at: UtcDateTime
    end_at: UtcDateTime | None = None
    trial_ends_at: UtcDateTime | None = None
    cancel_at: UtcDateTime | None = None

    def is_active_at(self, now: datetime) -> bool:
        """ACTIVE and not yet past its end date (open-ended counts as active)."""
        if self.status is not SubscriptionStatus.ACTIVE:
            return False
        return self.end_at is None or self.end_at > now

    def is_trial_expiring(self, days: int, now: datetime) -> bool:
        """True when the trial ends within the next *days* days."""
        if self.trial_ends_at is None:
            return False
        return now <= self.trial_ends_at <= now + timedelta(days=days)

    def can_transition_to(self, target: SubscriptionStatus) -> bool:
        return self.status.can_transition_to(target)


class SubscriptionWithRelations(Subscription):
    pricing_plan: PricingPlan | None = None


class SubscriptionCreate(InputModel):
    client_id: UUID
    pricing_plan_id: UUID
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    start_at: UtcDateTime
    end_at: UtcDateTime | None = None
    trial_ends_at: UtcDateTime | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> SubscriptionCreate:
        if self.end_at is not None and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class SubscriptionUpdate(InputModel):
    """Status is not editable here; it only moves through update_status."""

    pricing_plan_id: UUID | None = None
    end_at: UtcDateTime | None = None
    trial_ends_at: UtcDateTime | None = None
    cancel_at: UtcDateTime | None = None


class SubscriptionSearch(SearchParams):
    client_id: UUID | None = None
    pricing_plan_id: UUID | None = None
    status: SubscriptionStatus | None = None


# --- Invoices ---

@dataclass(frozen=True)
class LineAmounts:
    line_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def calculate_line_amounts(
    quantity: int,
    unit_price: Decimal,
    tax_rate: Decimal = Decimal("0"),
    discount_rate: Decimal = Decimal("0"),
    discount_amount: Decimal = Decimal("0"),
) -> LineAmounts:
    """Price one invoice line.

    A positive discount_rate wins over discount_amount; tax is charged on
    the discounted amount. The discounted amount never goes below zero.
    """
    gross = Decimal(quantity) * unit_price
    if discount_rate > 0:
        discounted = gross * (Decimal("1") - discount_rate)
    elif discount_amount > 0:
        discounted = gross - discount_amount
    else:
        discounted = gross
    discounted = max(discounted, Decimal("0"))
    tax = discounted * tax_rate
    return LineAmounts(
        line_amount=quantize_money(discounted),
        tax_amount=quantize_money(tax),
        total_amount=quantize_money(discounted + tax),
    )


class Invoice(AuditedEntity):
    client_id: UUID
    subscription_id: UUID | None = None
    invoice_number: str
    status: InvoiceStatus = InvoiceStatus.OPEN
    subtotal_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    currency: str = "USD"
    issued_at: UtcDateTime
    due_at: UtcDateTime
    paid_at: UtcDateTime | None = None

    @property
    def can_mark_paid(self) -> bool:
        return self.status is InvoiceStatus.OPEN

    @property
    def can_void(self) -> bool:
        return self.status is InvoiceStatus.OPEN

    def is_overdue_at(self, now: datetime) -> bool:
        return self.status is InvoiceStatus.OPEN and self.due_at <= now


class InvoiceLine(AuditedEntity):
    invoice_id: UUID
    description: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal = Decimal("0")
    discount_rate: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    line_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    period_start: UtcDateTime | None = None
    period_end: UtcDateTime | None = None

    def amounts(self) -> LineAmounts:
        return calculate_line_amounts(
            self.quantity,
            self.unit_price,
            self.tax_rate,
            self.discount_rate,
            self.discount_amount,
        )


class Payment(AuditedEntity):
    invoice_id: UUID
    amount: Decimal
    currency: str
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: UtcDateTime | None = None


class InvoiceWithRelations(Invoice):
    lines: list[InvoiceLine] | None = None
    payments: list[Payment] | None = None


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class InvoiceBalance:
    """balance = total_due - amount_paid - amount_credited (applied credit notes)."""

    total_due: Decimal
    amount_paid: Decimal
    balance: Decimal
    amount_credited: Decimal = Decimal("0.00")


class InvoiceCreate(InputModel):
    """invoice_number, issued_at and due_at are assigned by the service."""

    client_id: UUID
    subscription_id: UUID | None = None
    currency: CurrencyCode = "USD"
    status: InvoiceStatus = InvoiceStatus.OPEN


class InvoiceUpdate(InputModel):
    """Status only moves through mark_as_paid and void."""

    due_at: UtcDateTime | None = None


class InvoiceSearch(SearchParams):
    client_id: UUID | None = None
    subscription_id: UUID | None = None
    status: InvoiceStatus | None = None
    currency: str | None = None


class InvoiceLineCreate(InputModel):
    description: str = Field(min_length=1, max_length=300)
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    tax_rate: Rate = Field(default=Decimal("0"), ge=0, le=1)
    discount_rate: Rate = Field(default=Decimal("0"), ge=0, le=1)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    period_start: UtcDateTime | None = None
    period_end: UtcDateTime | None = None


class PaymentCreate(InputModel):
    invoice_id: UUID
    amount: Decimal = Field(gt=0)
    currency: CurrencyCode = "USD"
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: UtcDateTime | None = None


# --- Credit notes ---

AMOUNT_MUST_BE_POSITIVE = "AMOUNT_MUST_BE_POSITIVE"
INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
AMOUNT_EXCEEDS_INVOICE_BALANCE = "AMOUNT_EXCEEDS_INVOICE_BALANCE"
CURRENCY_MISMATCH = "CURRENCY_MISMATCH"


class CreditNote(AuditedEntity):
    invoice_id: UUID
    amount: Decimal
    currency: str
    reason: str | None = None
    status: CreditNoteStatus = CreditNoteStatus.ISSUED
    issued_at: UtcDateTime
    applied_at: UtcDateTime | None = None


@dataclass(frozen=True)
class CreditValidation:
    valid: bool
    reason: str | None = None
    max_allowed: Decimal | None = None


class CreditNoteCreate(InputModel):
    """issued_at is assigned by the service."""

    invoice_id: UUID
    amount: Decimal = Field(gt=0)
    currency: CurrencyCode = "USD"
    reason: str | None = Field(default=None, max_length=500)


class CreditNoteUpdate(InputModel):
    reason: str | None = Field(default=None, max_length=500)


class CreditNoteSearch(SearchParams):
    invoice_id: UUID | None = None
    status: CreditNoteStatus | None = None
    currency: str | None = None
