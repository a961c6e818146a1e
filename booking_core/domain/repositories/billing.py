"""Billing repository interfaces: plans, subscriptions, invoices, lines, payments, credits."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from booking_core.domain.models.billing import (
    CreditNote,
    CreditValidation,
    Invoice,
    InvoiceBalance,
    InvoiceLine,
    InvoiceLineCreate,
    InvoiceTotals,
    InvoiceWithRelations,
    LineAmounts,
    Payment,
    PricingPlan,
    Subscription,
    SubscriptionWithRelations,
)
from booking_core.domain.models.enums import SubscriptionStatus

from .base import Repository, Transaction


class PricingPlanRepository(Repository[PricingPlan]):
    pass


class SubscriptionRepository(Repository[Subscription]):
    """Status changes go through update_status so the state machine holds.

    The transition helpers raise NotFoundError for an unknown id and
    BusinessRuleError for a transition the allow-list forbids, including one
    made stale by a concurrent status change; neither case writes anything.
    """

    @abstractmethod
    async def update_status(
        self,
        id: UUID,
        status: SubscriptionStatus,
        *,
        extra: Mapping[str, Any] | None = None,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> Subscription:
        """Move the subscription to *status*, writing *extra* columns alongside."""

    @abstractmethod
    async def activate(
        self, id: UUID, *, actor_id: UUID | None = None, tx: Transaction = None
    ) -> Subscription:
        """PENDING / PAUSED / PAST_DUE -> ACTIVE."""

    @abstractmethod
    async def pause(
        self, id: UUID, *, actor_id: UUID | None = None, tx: Transaction = None
    ) -> Subscription:
        """ACTIVE -> PAUSED."""

    @abstractmethod
    async def cancel(
        self,
        id: UUID,
        cancel_at: datetime | None = None,
        *,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> Subscription:
        """-> CANCELLED, recording cancel_at (defaults to now)."""

    @abstractmethod
    async def renew(
        self, id: UUID, end_at: datetime, *, actor_id: UUID | None = None, tx: Transaction = None
    ) -> Subscription:
        """Extend end_at; a non-terminal, non-active subscription is reactivated."""

    @abstractmethod
    async def is_active(self, id: UUID, now: datetime, *, tx: Transaction = None) -> bool:
        """True when the subscription exists, is ACTIVE and has not ended."""

    @abstractmethod
    async def is_trial_expiring(
        self, id: UUID, days: int, now: datetime, *, tx: Transaction = None
    ) -> bool:
        """True when the trial ends within *days* days of *now*."""

    @abstractmethod
    async def calculate_next_billing(self, id: UUID, *, tx: Transaction = None) -> datetime | None:
        """start_at advanced by the plan's interval; None for one-off plans."""

    @abstractmethod
    async def find_active(self, now: datetime, *, tx: Transaction = None) -> list[Subscription]:
        """Return ACTIVE subscriptions whose end_at is null or in the future."""

    @abstractmethod
    async def find_expiring(
        self, days: int, now: datetime, *, tx: Transaction = None
    ) -> list[Subscription]:
        """Return ACTIVE subscriptions ending within *days* days of *now*."""

    @abstractmethod
    async def find_by_client(
        self, client_id: UUID, *, tx: Transaction = None
    ) -> list[Subscription]:
        """Return the client's live subscriptions, newest first."""

    @abstractmethod
    async def find_with_relations(
        self, where: Mapping[str, Any], relations: Iterable[str], *, tx: Transaction = None
    ) -> SubscriptionWithRelations | None:
        """Relations: "pricing_plan"."""


class InvoiceRepository(Repository[Invoice]):
    """Relations: "lines", "payments"."""

    @abstractmethod
    async def next_invoice_number(self, year: int, *, tx: Transaction = None) -> str:
        """Return the next free number in the year's sequence (INV-2025-000001)."""

    @abstractmethod
    async def calculate_totals(self, id: UUID, *, tx: Transaction = None) -> InvoiceTotals:
        """Sum the live lines of the invoice."""

    @abstractmethod
    async def apply_totals(self, id: UUID, *, tx: Transaction = None) -> Invoice | None:
        """Recalculate totals from the lines and store them on the invoice."""

    @abstractmethod
    async def mark_as_paid(
        self, id: UUID, paid_at: datetime, *, actor_id: UUID | None = None, tx: Transaction = None
    ) -> Invoice | None:
        """Set status PAID and paid_at; None unless the invoice is still OPEN."""

    @abstractmethod
    async def can_mark_paid(self, id: UUID, *, tx: Transaction = None) -> bool:
        """True when the invoice exists and is OPEN."""

    @abstractmethod
    async def can_void(self, id: UUID, *, tx: Transaction = None) -> bool:
        """True when the invoice exists and is OPEN."""

    @abstractmethod
    async def get_amount_paid(self, id: UUID, *, tx: Transaction = None) -> Decimal:
        """Sum of payments excluding FAILED and CANCELLED ones."""

    @abstractmethod
    async def get_amount_credited(self, id: UUID, *, tx: Transaction = None) -> Decimal:
        """Sum of the invoice's APPLIED credit notes."""

    @abstractmethod
    async def get_balance(self, id: UUID, *, tx: Transaction = None) -> InvoiceBalance | None:
        """Total due less payments and applied credit; None if the invoice is absent."""

    @abstractmethod
    async def find_overdue(self, now: datetime, *, tx: Transaction = None) -> list[Invoice]:
        """Return OPEN invoices whose due_at is at or before *now*."""

    @abstractmethod
    async def find_by_client(self, client_id: UUID, *, tx: Transaction = None) -> list[Invoice]:
        """Return the client's live invoices, newest first."""

    @abstractmethod
    async def find_with_relations(
        self, where: Mapping[str, Any], relations: Iterable[str], *, tx: Transaction = None
    ) -> InvoiceWithRelations | None:
        """Return the invoice with its lines and/or payments when requested."""


class InvoiceLineRepository(Repository[InvoiceLine]):
    @abstractmethod
    async def add_line(
        self,
        invoice_id: UUID,
        line: InvoiceLineCreate,
        *,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> InvoiceLine:
        """Price the line and insert it under the invoice."""

    @abstractmethod
    async def calculate_line_total(
        self, id: UUID, *, tx: Transaction = None
    ) -> LineAmounts | None:
        """Recompute the line's amounts from quantity, price, discount and tax."""

    @abstractmethod
    async def apply_discounts(
        self,
        id: UUID,
        *,
        discount_rate: Decimal | None = None,
        discount_amount: Decimal | None = None,
        tx: Transaction = None,
    ) -> InvoiceLine | None:
        """Store a discount (a rate resets the fixed amount and vice versa) and reprice."""

    @abstractmethod
    async def find_by_invoice(
        self, invoice_id: UUID, *, tx: Transaction = None
    ) -> list[InvoiceLine]:
        """Return the invoice's live lines in insertion order."""


class PaymentRepository(Repository[Payment]):
    @abstractmethod
    async def find_by_invoice(self, invoice_id: UUID, *, tx: Transaction = None) -> list[Payment]:
        """Return the invoice's payments, oldest first."""


class CreditNoteRepository(Repository[CreditNote]):
    """ISSUED and APPLIED notes both count against the invoice total; only
    APPLIED ones reduce the invoice balance."""

    @abstractmethod
    async def find_by_invoice(
        self, invoice_id: UUID, *, tx: Transaction = None
    ) -> list[CreditNote]:
        """Return the invoice's live credit notes, newest first."""

    @abstractmethod
    async def find_by_date_range(
        self, start: datetime, end: datetime, *, tx: Transaction = None
    ) -> list[CreditNote]:
        """Return live credit notes issued within [start, end], newest first."""

    @abstractmethod
    async def get_total_credit_for_invoice(
        self, invoice_id: UUID, *, tx: Transaction = None
    ) -> Decimal:
        """Sum of the invoice's live, non-cancelled credit notes."""

    @abstractmethod
    async def validate_credit_amount(
        self,
        invoice_id: UUID,
        amount: Decimal,
        currency: str | None = None,
        *,
        tx: Transaction = None,
    ) -> CreditValidation:
        """Check *amount* against the invoice total minus the credit already issued."""

    @abstractmethod
    async def apply_to_invoice(
        self,
        id: UUID,
        applied_at: datetime,
        *,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> CreditNote:
        """ISSUED -> APPLIED.

        Raises NotFoundError for an unknown note and BusinessRuleError when
        the note is no longer ISSUED or its invoice is void or gone.
        """

    @abstractmethod
    async def cancel(
        self,
        id: UUID,
        reason: str | None = None,
        *,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> CreditNote:
        """ISSUED -> CANCELLED, prefixing the reason with "CANCELLED"."""
