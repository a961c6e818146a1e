"""SQLAlchemy implementations of the billing repositories."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncConnection

from booking_core.config import settings
from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.base import ensure_utc, quantize_money, utc_now
from booking_core.domain.models.billing import (
    AMOUNT_EXCEEDS_INVOICE_BALANCE,
    AMOUNT_MUST_BE_POSITIVE,
    CURRENCY_MISMATCH,
    INVOICE_NOT_FOUND,
    CreditNote as DomainCreditNote,
    CreditValidation,
    Invoice as DomainInvoice,
    InvoiceBalance,
    InvoiceLine as DomainInvoiceLine,
    InvoiceLineCreate,
    InvoiceTotals,
    InvoiceWithRelations,
    LineAmounts,
    Payment as DomainPayment,
    PricingPlan as DomainPricingPlan,
    Subscription as DomainSubscription,
    SubscriptionWithRelations,
    add_interval,
    calculate_line_amounts,
)
from booking_core.domain.models.enums import (
    BillingInterval,
    CreditNoteStatus,
    InvoiceStatus,
    PaymentStatus,
    SubscriptionStatus,
)
from booking_core.domain.repositories.billing import (
    CreditNoteRepository,
    InvoiceLineRepository,
    InvoiceRepository,
    PaymentRepository,
    PricingPlanRepository,
    SubscriptionRepository,
)
from booking_core.infrastructure.persistence.models.billing import (
    CreditNote as OrmCreditNote,
    Invoice as OrmInvoice,
    InvoiceLine as OrmInvoiceLine,
    Payment as OrmPayment,
    PricingPlan as OrmPricingPlan,
    Subscription as OrmSubscription,
)

from .base import SqlRepository

_UNSETTLED_PAYMENTS = (PaymentStatus.FAILED.value, PaymentStatus.CANCELLED.value)


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return quantize_money(Decimal(str(value)))


class SqlPricingPlanRepository(SqlRepository[DomainPricingPlan], PricingPlanRepository):
    orm_model = OrmPricingPlan
    model = DomainPricingPlan
    entity_name = "PricingPlan"


class SqlSubscriptionRepository(SqlRepository[DomainSubscription], SubscriptionRepository):
    orm_model = OrmSubscription
    model = DomainSubscription
    entity_name = "Subscription"

    async def _require(self, id: UUID, tx: AsyncConnection | None) -> DomainSubscription:
        subscription = await self.find_by_id(id, tx=tx)
        if subscription is None:
            raise NotFoundError(f"Subscription {id} not found")
        return subscription

    async def update_status(
        self,
        id: UUID,
        status: SubscriptionStatus,
        *,
        extra: Mapping[str, Any] | None = None,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainSubscription:
        async def work() -> DomainSubscription:
            current = await self._require(id, tx)
            if not current.can_transition_to(status):
                raise BusinessRuleError(
                    f"Invalid status transition from {current.status.value} to {status.value}"
                )
            # Conditional on the status just read so a concurrent transition
            # is never overwritten.
            updated = await self.update(
                {"id": id, "status": current.status},
                {**(extra or {}), "status": status},
                actor_id=actor_id,
                tx=tx,
            )
            if updated is None:
                fresh = await self._require(id, tx)
                raise BusinessRuleError(
                    f"Invalid status transition from {fresh.status.value} to {status.value}"
                )
            return updated

        return await self._execute("update_status", {"id": id, "status": status}, work)

    async def activate(
        self, id: UUID, *, actor_id: UUID | None = None, tx: AsyncConnection | None = None
    ) -> DomainSubscription:
        return await self.update_status(id, SubscriptionStatus.ACTIVE, actor_id=actor_id, tx=tx)

    async def pause(
        self, id: UUID, *, actor_id: UUID | None = None, tx: AsyncConnection | None = None
    ) -> DomainSubscription:
        return await self.update_status(id, SubscriptionStatus.PAUSED, actor_id=actor_id, tx=tx)

    async def cancel(
        self,
        id: UUID,
        cancel_at: datetime | None = None,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainSubscription:
        return await self.update_status(
            id,
            SubscriptionStatus.CANCELLED,
            extra={"cancel_at": cancel_at or utc_now()},
            actor_id=actor_id,
            tx=tx,
        )

    async def renew(
        self,
        id: UUID,
        end_at: datetime,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainSubscription:
        async def work() -> DomainSubscription:
            current = await self._require(id, tx)
            if current.status.is_terminal:
                raise BusinessRuleError(f"Cannot renew a {current.status.value} subscription")
            if end_at <= current.start_at:
                raise BusinessRuleError("Renewal end date must be after the start date")
            if current.status is not SubscriptionStatus.ACTIVE:
                return await self.update_status(
                    id,
                    SubscriptionStatus.ACTIVE,
                    extra={"end_at": end_at},
                    actor_id=actor_id,
                    tx=tx,
                )
            updated = await self.update(
                {"id": id, "status": SubscriptionStatus.ACTIVE},
                {"end_at": end_at},
                actor_id=actor_id,
                tx=tx,
            )
            if updated is None:
                fresh = await self._require(id, tx)
                raise BusinessRuleError(f"Cannot renew a {fresh.status.value} subscription")
            return updated

        return await self._execute("renew", {"id": id, "end_at": end_at}, work)

    async def is_active(self, id: UUID, now: datetime, *, tx: AsyncConnection | None = None) -> bool:
        subscription = await self.find_by_id(id, tx=tx)
        return (
            subscription is not None
            and not subscription.is_deleted
            and subscription.is_active_at(now)
        )

    async def is_trial_expiring(
        self, id: UUID, days: int, now: datetime, *, tx: AsyncConnection | None = None
    ) -> bool:
        subscription = await self.find_by_id(id, tx=tx)
        return subscription is not None and subscription.is_trial_expiring(days, now)

    async def calculate_next_billing(
        self, id: UUID, *, tx: AsyncConnection | None = None
    ) -> datetime | None:
        async def work() -> datetime | None:
            subscriptions = self.table
            plans = OrmPricingPlan.__table__
            stmt = (
                select(
                    subscriptions.c.start_at,
                    plans.c.billing_interval,
                    plans.c.interval_count,
                )
                .select_from(
                    subscriptions.join(plans, plans.c.id == subscriptions.c.pricing_plan_id)
                )
                .where(subscriptions.c.id == id)
            )
            rows = await self._fetch_rows(stmt, tx)
            if not rows or rows[0].billing_interval is None:
                return None
            row = rows[0]
            return add_interval(
                ensure_utc(row.start_at),
                BillingInterval(row.billing_interval),
                row.interval_count or 1,
            )

        return await self._execute("calculate_next_billing", {"id": id}, work)

    async def find_active(
        self, now: datetime, *, tx: AsyncConnection | None = None
    ) -> list[DomainSubscription]:
        async def work() -> list[DomainSubscription]:
            subscriptions = self.table
            stmt = (
                select(subscriptions)
                .where(
                    self._condition({"status": SubscriptionStatus.ACTIVE}),
                    or_(subscriptions.c.end_at.is_(None), subscriptions.c.end_at > now),
                )
                .order_by(subscriptions.c.start_at)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_active", {"now": now}, work)

    async def find_expiring(
        self, days: int, now: datetime, *, tx: AsyncConnection | None = None
    ) -> list[DomainSubscription]:
        async def work() -> list[DomainSubscription]:
            subscriptions = self.table
            stmt = (
                select(subscriptions)
                .where(
                    self._condition({"status": SubscriptionStatus.ACTIVE}),
                    subscriptions.c.end_at > now,
                    subscriptions.c.end_at <= now + timedelta(days=days),
                )
                .order_by(subscriptions.c.end_at)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_expiring", {"days": days, "now": now}, work)

    async def find_by_client(
        self, client_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainSubscription]:
        async def work() -> list[DomainSubscription]:
            stmt = (
                select(self.table)
                .where(self._condition({"client_id": client_id}))
                .order_by(self.table.c.created_at.desc())
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_client", {"client_id": client_id}, work)

    async def find_with_relations(
        self,
        where: Mapping[str, Any],
        relations: Iterable[str],
        *,
        tx: AsyncConnection | None = None,
    ) -> SubscriptionWithRelations | None:
        relations = list(relations)

        async def work() -> SubscriptionWithRelations | None:
            unknown = set(relations) - {"pricing_plan"}
            if unknown:
                raise ValueError(f"Unknown Subscription relation(s): {sorted(unknown)}")
            plans = OrmPricingPlan.__table__
            async with self._connect(tx) as conn:
                stmt = select(self.table).where(self._condition(where)).limit(1)
                row = (await conn.execute(stmt)).first()
                if row is None:
                    return None
                extras: dict[str, Any] = {}
                if "pricing_plan" in relations:
                    plan = (
                        await conn.execute(select(plans).where(plans.c.id == row.pricing_plan_id))
                    ).first()
                    extras["pricing_plan"] = (
                        self._to_domain(plan, DomainPricingPlan) if plan else None
                    )
            return self._hydrate(row, SubscriptionWithRelations, **extras)

        return await self._execute(
            "find_with_relations", {"where": where, "relations": relations}, work
        )


class SqlInvoiceRepository(SqlRepository[DomainInvoice], InvoiceRepository):
    orm_model = OrmInvoice
    model = DomainInvoice
    entity_name = "Invoice"

    async def next_invoice_number(self, year: int, *, tx: AsyncConnection | None = None) -> str:
        async def work() -> str:
            prefix = f"{settings.invoice_number_prefix}-{year}-"
            numbers = self.table.c.invoice_number
            stmt = (
                select(numbers)
                .where(numbers.like(f"{prefix}%"))
                .order_by(numbers.desc())
                .limit(1)
            )
            latest = await self._fetch_scalar(stmt, tx)
            sequence = 1
            if latest:
                try:
                    sequence = int(str(latest).rsplit("-", 1)[-1]) + 1
                except ValueError:
                    sequence = 1
            return f"{prefix}{sequence:06d}"

        return await self._execute("next_invoice_number", {"year": year}, work)

    async def calculate_totals(
        self, id: UUID, *, tx: AsyncConnection | None = None
    ) -> InvoiceTotals:
        async def work() -> InvoiceTotals:
            lines = OrmInvoiceLine.__table__
            stmt = select(
                func.coalesce(func.sum(lines.c.line_amount), 0).label("subtotal"),
                func.coalesce(func.sum(lines.c.tax_amount), 0).label("tax"),
                func.coalesce(func.sum(lines.c.total_amount), 0).label("total"),
            ).where(lines.c.invoice_id == id, lines.c.deleted_at.is_(None))
            rows = await self._fetch_rows(stmt, tx)
            row = rows[0] if rows else None
            if row is None:
                return InvoiceTotals(_money(0), _money(0), _money(0))
            return InvoiceTotals(_money(row.subtotal), _money(row.tax), _money(row.total))

        return await self._execute("calculate_totals", {"id": id}, work)

    async def apply_totals(
        self, id: UUID, *, tx: AsyncConnection | None = None
    ) -> DomainInvoice | None:
        totals = await self.calculate_totals(id, tx=tx)
        return await self.update(
            {"id": id},
            {
                "subtotal_amount": totals.subtotal,
                "tax_amount": totals.tax,
                "total_amount": totals.total,
            },
            tx=tx,
        )

    async def mark_as_paid(
        self,
        id: UUID,
        paid_at: datetime,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainInvoice | None:
        return await self.update(
            {"id": id, "status": InvoiceStatus.OPEN},
            {"status": InvoiceStatus.PAID, "paid_at": paid_at},
            actor_id=actor_id,
            tx=tx,
        )

    async def can_mark_paid(self, id: UUID, *, tx: AsyncConnection | None = None) -> bool:
        invoice = await self.find_by_id(id, tx=tx)
        return invoice is not None and not invoice.is_deleted and invoice.can_mark_paid

    async def can_void(self, id: UUID, *, tx: AsyncConnection | None = None) -> bool:
        invoice = await self.find_by_id(id, tx=tx)
        return invoice is not None and not invoice.is_deleted and invoice.can_void

    async def get_amount_paid(self, id: UUID, *, tx: AsyncConnection | None = None) -> Decimal:
        async def work() -> Decimal:
            payments = OrmPayment.__table__
            stmt = select(func.coalesce(func.sum(payments.c.amount), 0)).where(
                payments.c.invoice_id == id,
                payments.c.status.not_in(_UNSETTLED_PAYMENTS),
                payments.c.deleted_at.is_(None),
            )
            return _money(await self._fetch_scalar(stmt, tx))

        return await self._execute("get_amount_paid", {"id": id}, work)

    async def get_balance(
        self, id: UUID, *, tx: AsyncConnection | None = None
    ) -> InvoiceBalance | None:
        invoice = await self.find_by_id(id, tx=tx)
        if invoice is None:
            return None
        paid = await self.get_amount_paid(id, tx=tx)
        credited = await self.get_amount_credited(id, tx=tx)
        total = _money(invoice.total_amount)
        return InvoiceBalance(
            total_due=total,
            amount_paid=paid,
            balance=total - paid - credited,
            amount_credited=credited,
        )

    async def get_amount_credited(
        self, id: UUID, *, tx: AsyncConnection | None = None
    ) -> Decimal:
        """Sum of the invoice's live APPLIED credit notes."""

        async def work() -> Decimal:
            notes = OrmCreditNote.__table__
            stmt = select(func.coalesce(func.sum(notes.c.amount), 0)).where(
                notes.c.invoice_id == id,
                notes.c.status == CreditNoteStatus.APPLIED.value,
                notes.c.deleted_at.is_(None),
            )
            return _money(await self._fetch_scalar(stmt, tx))

        return await self._execute("get_amount_credited", {"id": id}, work)

    async def find_overdue(
        self, now: datetime, *, tx: AsyncConnection | None = None
    ) -> list[DomainInvoice]:
        async def work() -> list[DomainInvoice]:
            stmt = (
                select(self.table)
                .where(
                    self._condition({"status": InvoiceStatus.OPEN}),
                    self.table.c.due_at <= now,
                )
                .order_by(self.table.c.due_at)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_overdue", {"now": now}, work)

    async def find_by_client(
        self, client_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainInvoice]:
        async def work() -> list[DomainInvoice]:
            stmt = (
                select(self.table)
                .where(self._condition({"client_id": client_id}))
                .order_by(self.table.c.issued_at.desc())
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_client", {"client_id": client_id}, work)

    async def find_with_relations(
        self,
        where: Mapping[str, Any],
        relations: Iterable[str],
        *,
        tx: AsyncConnection | None = None,
    ) -> InvoiceWithRelations | None:
        relations = list(relations)

        async def work() -> InvoiceWithRelations | None:
            unknown = set(relations) - {"lines", "payments"}
            if unknown:
                raise ValueError(f"Unknown Invoice relation(s): {sorted(unknown)}")
            lines = OrmInvoiceLine.__table__
            payments = OrmPayment.__table__
            async with self._connect(tx) as conn:
                stmt = select(self.table).where(self._condition(where)).limit(1)
                row = (await conn.execute(stmt)).first()
                if row is None:
                    return None
                extras: dict[str, Any] = {}
                if "lines" in relations:
                    rows = await conn.execute(
                        select(lines)
                        .where(lines.c.invoice_id == row.id, lines.c.deleted_at.is_(None))
                        .order_by(lines.c.created_at, lines.c.id)
                    )
                    extras["lines"] = [self._to_domain(r, DomainInvoiceLine) for r in rows]
                if "payments" in relations:
                    rows = await conn.execute(
                        select(payments)
                        .where(payments.c.invoice_id == row.id, payments.c.deleted_at.is_(None))
                        .order_by(payments.c.created_at, payments.c.id)
                    )
                    extras["payments"] = [self._to_domain(r, DomainPayment) for r in rows]
            return self._hydrate(row, InvoiceWithRelations, **extras)

        return await self._execute(
            "find_with_relations", {"where": where, "relations": relations}, work
        )


class SqlInvoiceLineRepository(SqlRepository[DomainInvoiceLine], InvoiceLineRepository):
    orm_model = OrmInvoiceLine
    model = DomainInvoiceLine
    entity_name = "InvoiceLine"

    async def add_line(
        self,
        invoice_id: UUID,
        line: InvoiceLineCreate,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainInvoiceLine:
        amounts = calculate_line_amounts(
            line.quantity,
            line.unit_price,
            line.tax_rate,
            line.discount_rate,
            line.discount_amount,
        )
        return await self.create(
            {
                **line.model_dump(),
                "invoice_id": invoice_id,
                "line_amount": amounts.line_amount,
                "tax_amount": amounts.tax_amount,
                "total_amount": amounts.total_amount,
            },
            actor_id=actor_id,
            tx=tx,
        )

    async def calculate_line_total(
        self, id: UUID, *, tx: AsyncConnection | None = None
    ) -> LineAmounts | None:
        line = await self.find_by_id(id, tx=tx)
        return line.amounts() if line is not None else None

    async def apply_discounts(
        self,
        id: UUID,
        *,
        discount_rate: Decimal | None = None,
        discount_amount: Decimal | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainInvoiceLine | None:
        line = await self.find_by_id(id, tx=tx)
        if line is None:
            return None
        rate, amount = line.discount_rate, line.discount_amount
        if discount_rate is not None:
            rate, amount = discount_rate, Decimal("0")
        elif discount_amount is not None:
            rate, amount = Decimal("0"), discount_amount
        amounts = calculate_line_amounts(line.quantity, line.unit_price, line.tax_rate, rate, amount)
        return await self.update(
            {"id": id},
            {
                "discount_rate": rate,
                "discount_amount": amount,
                "line_amount": amounts.line_amount,
                "tax_amount": amounts.tax_amount,
                "total_amount": amounts.total_amount,
            },
            tx=tx,
        )

    async def find_by_invoice(
        self, invoice_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainInvoiceLine]:
        async def work() -> list[DomainInvoiceLine]:
            stmt = (
                select(self.table)
                .where(self._condition({"invoice_id": invoice_id}))
                .order_by(self.table.c.created_at, self.table.c.id)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_invoice", {"invoice_id": invoice_id}, work)


class SqlPaymentRepository(SqlRepository[DomainPayment], PaymentRepository):
    orm_model = OrmPayment
    model = DomainPayment
    entity_name = "Payment"

    async def find_by_invoice(
        self, invoice_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainPayment]:
        async def work() -> list[DomainPayment]:
            stmt = (
                select(self.table)
                .where(self._condition({"invoice_id": invoice_id}))
                .order_by(self.table.c.created_at, self.table.c.id)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_invoice", {"invoice_id": invoice_id}, work)


class SqlCreditNoteRepository(SqlRepository[DomainCreditNote], CreditNoteRepository):
    orm_model = OrmCreditNote
    model = DomainCreditNote
    entity_name = "CreditNote"

    async def _require(self, id: UUID, tx: AsyncConnection | None) -> DomainCreditNote:
        note = await self.find_by_id(id, tx=tx)
        if note is None or note.is_deleted:
            raise NotFoundError(f"Credit note {id} not found")
        return note

    async def find_by_invoice(
        self, invoice_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainCreditNote]:
        async def work() -> list[DomainCreditNote]:
            stmt = (
                select(self.table)
                .where(self._condition({"invoice_id": invoice_id}))
                .order_by(self.table.c.created_at.desc(), self.table.c.id)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_invoice", {"invoice_id": invoice_id}, work)

    async def find_by_date_range(
        self, start: datetime, end: datetime, *, tx: AsyncConnection | None = None
    ) -> list[DomainCreditNote]:
        async def work() -> list[DomainCreditNote]:
            notes = self.table
            stmt = (
                select(notes)
                .where(
                    self._condition(None),
                    notes.c.issued_at >= start,
                    notes.c.issued_at <= end,
                )
                .order_by(notes.c.issued_at.desc(), notes.c.id)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_date_range", {"start": start, "end": end}, work)

    async def get_total_credit_for_invoice(
        self, invoice_id: UUID, *, tx: AsyncConnection | None = None
    ) -> Decimal:
        async def work() -> Decimal:
            notes = self.table
            stmt = select(func.coalesce(func.sum(notes.c.amount), 0)).where(
                notes.c.invoice_id == invoice_id,
                notes.c.status != CreditNoteStatus.CANCELLED.value,
                notes.c.deleted_at.is_(None),
            )
            return _money(await self._fetch_scalar(stmt, tx))

        return await self._execute(
            "get_total_credit_for_invoice", {"invoice_id": invoice_id}, work
        )

    async def _live_invoice(
        self, invoice_id: UUID, tx: AsyncConnection | None
    ) -> DomainInvoice | None:
        invoices = OrmInvoice.__table__
        stmt = (
            select(invoices)
            .where(invoices.c.id == invoice_id, invoices.c.deleted_at.is_(None))
            .limit(1)
        )
        found = await self._fetch_models(stmt, tx, DomainInvoice)
        return found[0] if found else None

    async def validate_credit_amount(
        self,
        invoice_id: UUID,
        amount: Decimal,
        currency: str | None = None,
        *,
        tx: AsyncConnection | None = None,
    ) -> CreditValidation:
        async def work() -> CreditValidation:
            if amount <= 0:
                return CreditValidation(False, AMOUNT_MUST_BE_POSITIVE)
            invoice = await self._live_invoice(invoice_id, tx)
            if invoice is None:
                return CreditValidation(False, INVOICE_NOT_FOUND)
            if currency is not None and currency != invoice.currency:
                return CreditValidation(False, CURRENCY_MISMATCH)
            existing = await self.get_total_credit_for_invoice(invoice_id, tx=tx)
            # A void invoice has nothing left to credit.
            total = Decimal("0") if invoice.status is InvoiceStatus.VOID else invoice.total_amount
            max_allowed = max(_money(total) - existing, Decimal("0.00"))
            if amount > max_allowed:
                return CreditValidation(False, AMOUNT_EXCEEDS_INVOICE_BALANCE, max_allowed)
            return CreditValidation(True, max_allowed=max_allowed)

        return await self._execute(
            "validate_credit_amount", {"invoice_id": invoice_id, "amount": amount}, work
        )

    async def _transition(
        self,
        operation: str,
        id: UUID,
        target: CreditNoteStatus,
        values: Mapping[str, Any],
        actor_id: UUID | None,
        tx: AsyncConnection | None,
    ) -> DomainCreditNote:
        updated = await self.update(
            {"id": id, "status": CreditNoteStatus.ISSUED},
            {**values, "status": target},
            actor_id=actor_id,
            tx=tx,
        )
        if updated is None:
            fresh = await self._require(id, tx)
            raise BusinessRuleError(
                f"Cannot {operation} credit note in status {fresh.status.value}"
            )
        return updated

    async def apply_to_invoice(
        self,
        id: UUID,
        applied_at: datetime,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainCreditNote:
        async def work() -> DomainCreditNote:
            note = await self._require(id, tx)
            invoice = await self._live_invoice(note.invoice_id, tx)
            if invoice is None or invoice.status is InvoiceStatus.VOID:
                raise BusinessRuleError(
                    f"Credit note {id} cannot be applied to a void or missing invoice"
                )
            return await self._transition(
                "apply",
                id,
                CreditNoteStatus.APPLIED,
                {"applied_at": applied_at},
                actor_id,
                tx,
            )

        return await self._execute("apply_to_invoice", {"id": id}, work)

    async def cancel(
        self,
        id: UUID,
        reason: str | None = None,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainCreditNote:
        async def work() -> DomainCreditNote:
            await self._require(id, tx)
            return await self._transition(
                "cancel",
                id,
                CreditNoteStatus.CANCELLED,
                {"reason": f"CANCELLED: {reason}" if reason else "CANCELLED"},
                actor_id,
                tx,
            )

        return await self._execute("cancel", {"id": id, "reason": reason}, work)
