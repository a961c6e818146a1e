"""Subscription, invoice and credit note services."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager, nullcontext
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from booking_core.config import settings
from booking_core.domain.errors import (
    BusinessRuleError,
    ForbiddenError,
    InputValidationError,
    NotFoundError,
)
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.base import utc_now
from booking_core.domain.models.billing import (
    CreditNote,
    CreditNoteCreate,
    CreditNoteSearch,
    CreditNoteUpdate,
    CreditValidation,
    Invoice,
    InvoiceBalance,
    InvoiceCreate,
    InvoiceLine,
    InvoiceLineCreate,
    InvoiceSearch,
    InvoiceUpdate,
    Subscription,
    SubscriptionCreate,
    SubscriptionSearch,
    SubscriptionUpdate,
)
from booking_core.domain.models.enums import (
    CreditNoteStatus,
    InvoiceStatus,
    Permission,
    SubscriptionStatus,
)
from booking_core.domain.repositories.billing import (
    CreditNoteRepository,
    InvoiceLineRepository,
    InvoiceRepository,
    PricingPlanRepository,
    SubscriptionRepository,
)

from .base import BaseCrudService, LifecycleHooks, ServiceOutput
from .permissions import EntityPermissions, require_permission

TransactionFactory = Callable[[], AbstractAsyncContextManager[Any]]


def _no_transaction() -> AbstractAsyncContextManager[Any]:
    return nullcontext()


class SubscriptionService(BaseCrudService[Subscription]):
    """Clients read their own subscriptions; status moves only through the
    transition helpers, which the repository validates against the state
    machine before writing."""

    entity_name = "Subscription"
    model = Subscription
    permissions = EntityPermissions(
        create=Permission.SUBSCRIPTION_CREATE,
        update_any=Permission.SUBSCRIPTION_UPDATE,
        delete_any=Permission.SUBSCRIPTION_DELETE,
        restore=Permission.SUBSCRIPTION_RESTORE,
        hard_delete=Permission.SUBSCRIPTION_HARD_DELETE,
        view_all=Permission.SUBSCRIPTION_VIEW_ALL,
    )
    owner_field = "client_id"
    owner_only = True
    create_schema = SubscriptionCreate
    update_schema = SubscriptionUpdate
    search_schema = SubscriptionSearch

    repository: SubscriptionRepository

    def _check_changes(self, entity: Subscription, changes: dict[str, Any]) -> None:
        end_at = changes.get("end_at", entity.end_at)
        if end_at is not None and end_at <= entity.start_at:
            raise InputValidationError("end_at must be after start_at")

    async def _transition(
        self,
        method: str,
        actor: Actor,
        id: UUID,
        target: SubscriptionStatus,
        call: Callable[[], Any],
    ) -> ServiceOutput[Subscription]:
        async def work() -> Subscription:
            entity = await self._load_live(id)
            self._require_update(actor, entity)
            if not entity.can_transition_to(target):
                raise BusinessRuleError(
                    f"Invalid status transition from {entity.status.value} to {target.value}"
                )
            return await call()

        return await self._run(method, work)

    async def update_status(
        self, actor: Actor, id: UUID, status: SubscriptionStatus
    ) -> ServiceOutput[Subscription]:
        return await self._transition(
            "update_status",
            actor,
            id,
            status,
            lambda: self.repository.update_status(id, status, actor_id=actor.id),
        )

    async def activate(self, actor: Actor, id: UUID) -> ServiceOutput[Subscription]:
        return await self._transition(
            "activate",
            actor,
            id,
            SubscriptionStatus.ACTIVE,
            lambda: self.repository.activate(id, actor_id=actor.id),
        )

    async def pause(self, actor: Actor, id: UUID) -> ServiceOutput[Subscription]:
        return await self._transition(
            "pause",
            actor,
            id,
            SubscriptionStatus.PAUSED,
            lambda: self.repository.pause(id, actor_id=actor.id),
        )

    async def cancel(
        self, actor: Actor, id: UUID, cancel_at: datetime | None = None
    ) -> ServiceOutput[Subscription]:
        return await self._transition(
            "cancel",
            actor,
            id,
            SubscriptionStatus.CANCELLED,
            lambda: self.repository.cancel(id, cancel_at, actor_id=actor.id),
        )

    async def renew(self, actor: Actor, id: UUID, end_at: datetime) -> ServiceOutput[Subscription]:
        async def work() -> Subscription:
            entity = await self._load_live(id)
            self._require_update(actor, entity)
            return await self.repository.renew(id, end_at, actor_id=actor.id)

        return await self._run("renew", work)

    async def list_by_client(self, actor: Actor, client_id: UUID) -> ServiceOutput[list[Subscription]]:
        async def work() -> list[Subscription]:
            if client_id != actor.id and not self._can_view_all(actor):
                raise ForbiddenError("Permission denied: cannot view Subscription")
            return await self.repository.find_by_client(client_id)

        return await self._run("list_by_client", work)

    async def list_expiring(
        self, actor: Actor, days: int = 7, now: datetime | None = None
    ) -> ServiceOutput[list[Subscription]]:
        async def work() -> list[Subscription]:
            require_permission(actor, Permission.SUBSCRIPTION_VIEW_ALL, "view all subscriptions")
            return await self.repository.find_expiring(days, now or utc_now())

        return await self._run("list_expiring", work)


class InvoiceService(BaseCrudService[Invoice]):
    """Invoices are numbered per year and due ``due_days`` after issue
    (settings.invoice_due_days unless given).

    Operations touching more than one table run inside the transaction
    returned by *transaction*; without one every call commits on its own.
    """

    entity_name = "Invoice"
    model = Invoice
    permissions = EntityPermissions(
        create=Permission.INVOICE_CREATE,
        update_any=Permission.INVOICE_UPDATE,
        delete_any=Permission.INVOICE_DELETE,
        restore=Permission.INVOICE_RESTORE,
        hard_delete=Permission.INVOICE_HARD_DELETE,
        view_all=Permission.INVOICE_VIEW_ALL,
    )
    owner_field = "client_id"
    owner_only = True
    create_schema = InvoiceCreate
    update_schema = InvoiceUpdate
    search_schema = InvoiceSearch

    repository: InvoiceRepository

    def __init__(
        self,
        repository: InvoiceRepository,
        lines: InvoiceLineRepository,
        *,
        subscriptions: SubscriptionRepository | None = None,
        pricing_plans: PricingPlanRepository | None = None,
        hooks: LifecycleHooks | None = None,
        transaction: TransactionFactory | None = None,
        due_days: int | None = None,
    ) -> None:
        super().__init__(repository, hooks)
        self.lines = lines
        self.subscriptions = subscriptions
        self.pricing_plans = pricing_plans
        self.transaction = transaction or _no_transaction
        self.due_days = due_days

    async def _prepare_create(self, actor: Actor, values: dict[str, Any]) -> dict[str, Any]:
        return await self._numbered(values, utc_now())

    async def _numbered(
        self, values: dict[str, Any], issued_at: datetime, tx: Any = None
    ) -> dict[str, Any]:
        number = await self.repository.next_invoice_number(issued_at.year, tx=tx)
        due_days = settings.invoice_due_days if self.due_days is None else self.due_days
        return {
            **values,
            "invoice_number": number,
            "issued_at": issued_at,
            "due_at": issued_at + timedelta(days=due_days),
        }

    async def add_line(self, actor: Actor, invoice_id: UUID, data: Any) -> ServiceOutput[InvoiceLine]:
        """Price the line and refresh the invoice totals in one transaction."""

        async def work() -> InvoiceLine:
            line = self._validate(InvoiceLineCreate, data)
            invoice = await self._load_live(invoice_id)
            self._require_update(actor, invoice)
            if invoice.status not in (InvoiceStatus.DRAFT, InvoiceStatus.OPEN):
                raise BusinessRuleError(
                    f"Cannot add lines to a {invoice.status.value} invoice"
                )
            async with self.transaction() as tx:
                created = await self.lines.add_line(invoice_id, line, actor_id=actor.id, tx=tx)
                await self.repository.apply_totals(invoice_id, tx=tx)
            return created

        return await self._run("add_line", work)

    async def mark_as_paid(
        self, actor: Actor, id: UUID, paid_at: datetime | None = None
    ) -> ServiceOutput[Invoice]:
        async def work() -> Invoice:
            invoice = await self._load_live(id)
            self._require_update(actor, invoice)
            if not invoice.can_mark_paid:
                raise BusinessRuleError(
                    f"Invoice {invoice.invoice_number} cannot be marked as paid"
                )
            updated = await self.repository.mark_as_paid(
                id, paid_at or utc_now(), actor_id=actor.id
            )
            if updated is None:
                raise BusinessRuleError(
                    f"Invoice {invoice.invoice_number} cannot be marked as paid"
                )
            return updated

        return await self._run("mark_as_paid", work)

    async def void(self, actor: Actor, id: UUID) -> ServiceOutput[Invoice]:
        async def work() -> Invoice:
            invoice = await self._load_live(id)
            self._require_update(actor, invoice)
            if not invoice.can_void:
                raise BusinessRuleError(f"Invoice {invoice.invoice_number} cannot be voided")
            updated = await self.repository.update(
                {"id": id, "status": InvoiceStatus.OPEN},
                {"status": InvoiceStatus.VOID},
                actor_id=actor.id,
            )
            if updated is None:
                raise BusinessRuleError(f"Invoice {invoice.invoice_number} cannot be voided")
            return updated

        return await self._run("void", work)

    async def get_balance(self, actor: Actor, id: UUID) -> ServiceOutput[InvoiceBalance]:
        async def work() -> InvoiceBalance:
            await self._load_visible(actor, id)
            balance = await self.repository.get_balance(id)
            if balance is None:
                raise NotFoundError(f"Invoice {id} not found")
            return balance

        return await self._run("get_balance", work)

    async def generate_for_subscription(
        self, actor: Actor, subscription_id: UUID, now: datetime | None = None
    ) -> ServiceOutput[Invoice]:
        """Issue an invoice for the subscription's plan: header, one line, totals."""

        async def work() -> Invoice:
            if self.subscriptions is None or self.pricing_plans is None:
                raise RuntimeError("InvoiceService was built without subscription repositories")
            subscription = await self.subscriptions.find_by_id(subscription_id)
            if subscription is None or subscription.deleted_at is not None:
                raise NotFoundError(f"Subscription {subscription_id} not found")
            require_permission(actor, self.permissions.create, "create Invoice")
            plan = await self.pricing_plans.find_by_id(subscription.pricing_plan_id)
            if plan is None:
                raise NotFoundError(f"Pricing plan {subscription.pricing_plan_id} not found")

            issued_at = now or utc_now()
            line = InvoiceLineCreate(
                description=plan.name,
                quantity=1,
                unit_price=plan.amount,
                period_start=subscription.start_at,
                period_end=plan.next_billing_after(subscription.start_at),
            )
            async with self.transaction() as tx:
                values = await self._numbered(
                    {
                        "client_id": subscription.client_id,
                        "subscription_id": subscription.id,
                        "currency": plan.currency,
                        "status": InvoiceStatus.OPEN,
                    },
                    issued_at,
                    tx,
                )
                invoice = await self.repository.create(values, actor_id=actor.id, tx=tx)
                await self.lines.add_line(invoice.id, line, actor_id=actor.id, tx=tx)
                totalled = await self.repository.apply_totals(invoice.id, tx=tx)
            return totalled or invoice

        return await self._run("generate_for_subscription", work)


class CreditNoteService(BaseCrudService[CreditNote]):
    """Credit notes are back-office documents: only CREDIT_NOTE_VIEW_ALL
    holders read them. A note is checked against what is left to credit on
    its invoice when issued, and only counts towards the invoice balance once
    applied."""

    entity_name = "CreditNote"
    model = CreditNote
    permissions = EntityPermissions(
        create=Permission.CREDIT_NOTE_CREATE,
        update_any=Permission.CREDIT_NOTE_UPDATE,
        delete_any=Permission.CREDIT_NOTE_DELETE,
        restore=Permission.CREDIT_NOTE_RESTORE,
        hard_delete=Permission.CREDIT_NOTE_HARD_DELETE,
        view_all=Permission.CREDIT_NOTE_VIEW_ALL,
    )
    owner_only = True
    create_schema = CreditNoteCreate
    update_schema = CreditNoteUpdate
    search_schema = CreditNoteSearch

    repository: CreditNoteRepository

    async def _prepare_create(self, actor: Actor, values: dict[str, Any]) -> dict[str, Any]:
        validation = await self.repository.validate_credit_amount(
            values["invoice_id"], values["amount"], values["currency"]
        )
        if not validation.valid:
            message = f"Invalid credit amount: {validation.reason}"
            if validation.max_allowed is not None:
                message += f" (at most {validation.max_allowed})"
            raise BusinessRuleError(message)
        return {**values, "status": CreditNoteStatus.ISSUED, "issued_at": utc_now()}

    def _require_view_all(self, actor: Actor) -> None:
        require_permission(actor, Permission.CREDIT_NOTE_VIEW_ALL, "view credit notes")

    async def apply_to_invoice(
        self, actor: Actor, id: UUID, applied_at: datetime | None = None
    ) -> ServiceOutput[CreditNote]:
        async def work() -> CreditNote:
            note = await self._load_live(id)
            self._require_update(actor, note)
            if note.status is not CreditNoteStatus.ISSUED:
                raise BusinessRuleError(f"Cannot apply credit note in status {note.status.value}")
            return await self.repository.apply_to_invoice(
                id, applied_at or utc_now(), actor_id=actor.id
            )

        return await self._run("apply_to_invoice", work)

    async def cancel(
        self, actor: Actor, id: UUID, reason: str | None = None
    ) -> ServiceOutput[CreditNote]:
        async def work() -> CreditNote:
            note = await self._load_live(id)
            self._require_update(actor, note)
            if note.status is not CreditNoteStatus.ISSUED:
                raise BusinessRuleError(f"Cannot cancel credit note in status {note.status.value}")
            return await self.repository.cancel(id, reason, actor_id=actor.id)

        return await self._run("cancel", work)

    async def validate_credit_amount(
        self, actor: Actor, invoice_id: UUID, amount: Decimal, currency: str | None = None
    ) -> ServiceOutput[CreditValidation]:
        async def work() -> CreditValidation:
            require_permission(actor, Permission.CREDIT_NOTE_CREATE, "create CreditNote")
            return await self.repository.validate_credit_amount(invoice_id, amount, currency)

        return await self._run("validate_credit_amount", work)

    async def get_total_credit_for_invoice(
        self, actor: Actor, invoice_id: UUID
    ) -> ServiceOutput[Decimal]:
        async def work() -> Decimal:
            self._require_view_all(actor)
            return await self.repository.get_total_credit_for_invoice(invoice_id)

        return await self._run("get_total_credit_for_invoice", work)

    async def list_by_invoice(
        self, actor: Actor, invoice_id: UUID
    ) -> ServiceOutput[list[CreditNote]]:
        async def work() -> list[CreditNote]:
            self._require_view_all(actor)
            return await self.repository.find_by_invoice(invoice_id)

        return await self._run("list_by_invoice", work)

    async def list_by_date_range(
        self, actor: Actor, start: datetime, end: datetime
    ) -> ServiceOutput[list[CreditNote]]:
        async def work() -> list[CreditNote]:
            self._require_view_all(actor)
            if end < start:
                raise InputValidationError("end must not be before start")
            return await self.repository.find_by_date_range(start, end)

        return await self._run("list_by_date_range", work)
