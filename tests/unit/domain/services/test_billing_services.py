"""Tests for booking_core/domain/services/billing.py."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import ANY, AsyncMock
from uuid import uuid4

import pytest

from booking_core.config import settings
from booking_core.domain.errors import ServiceErrorCode
from booking_core.domain.models.base import Page
from booking_core.domain.models.billing import (
    Invoice,
    InvoiceBalance,
    InvoiceLineCreate,
    PricingPlan,
    Subscription,
)
from booking_core.domain.models.enums import (
    BillingInterval,
    InvoiceStatus,
    Permission,
    RoleName,
    SubscriptionStatus,
)
from booking_core.domain.repositories.billing import (
    InvoiceLineRepository,
    InvoiceRepository,
    PricingPlanRepository,
    SubscriptionRepository,
)
from booking_core.domain.services import InvoiceService, SubscriptionService

NOW = datetime(2025, 4, 15, 9, tzinfo=timezone.utc)


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
        invoice_number="INV-2025-000007",
        issued_at=NOW,
        due_at=NOW + timedelta(days=30),
    )
    data.update(overrides)
    return Invoice.model_validate(data)


def _subscriptions():
    repository = AsyncMock(spec=SubscriptionRepository)
    return SubscriptionService(repository), repository


def _invoices(**kwargs):
    repository = AsyncMock(spec=InvoiceRepository)
    lines = AsyncMock(spec=InvoiceLineRepository)
    return InvoiceService(repository, lines, **kwargs), repository, lines


# --- SubscriptionService ---

async def test_client_sees_only_own_subscriptions(actor_factory):
    client = actor_factory(RoleName.CLIENT)
    service, repository = _subscriptions()
    repository.find_all.return_value = Page(items=[], total=0)

    await service.list(client)

    repository.find_all.assert_awaited_once_with({"client_id": client.id}, page=1, page_size=20)


async def test_foreign_subscription_is_forbidden(actor_factory):
    service, repository = _subscriptions()
    repository.find_by_id.return_value = _subscription()

    result = await service.get_by_id(actor_factory(RoleName.CLIENT), uuid4())

    assert result.error.code is ServiceErrorCode.FORBIDDEN


async def test_activate_pending_subscription(actor_factory):
    admin = actor_factory(RoleName.ADMIN, Permission.SUBSCRIPTION_UPDATE)
    service, repository = _subscriptions()
    pending = _subscription()
    repository.find_by_id.return_value = pending
    repository.activate.return_value = _subscription(
        id=pending.id, status=SubscriptionStatus.ACTIVE
    )

    result = await service.activate(admin, pending.id)

    assert result.data.status is SubscriptionStatus.ACTIVE
    repository.activate.assert_awaited_once_with(pending.id, actor_id=admin.id)


async def test_invalid_transition_is_business_rule_violation(super_admin):
    service, repository = _subscriptions()
    repository.find_by_id.return_value = _subscription(status=SubscriptionStatus.CANCELLED)

    result = await service.update_status(super_admin, uuid4(), SubscriptionStatus.ACTIVE)

    assert result.error.code is ServiceErrorCode.BUSINESS_RULE_VIOLATION
    assert result.error.message == "Invalid status transition from CANCELLED to ACTIVE"
    repository.update_status.assert_not_awaited()


async def test_pause_requires_update_permission(actor_factory):
    service, repository = _subscriptions()
    repository.find_by_id.return_value = _subscription(status=SubscriptionStatus.ACTIVE)

    result = await service.pause(actor_factory(RoleName.CLIENT), uuid4())

    assert result.error.code is ServiceErrorCode.FORBIDDEN


async def test_cancel_forwards_cancel_date(super_admin):
    service, repository = _subscriptions()
    active = _subscription(status=SubscriptionStatus.ACTIVE)
    repository.find_by_id.return_value = active
    cancel_at = NOW + timedelta(days=10)

    await service.cancel(super_admin, active.id, cancel_at)

    repository.cancel.assert_awaited_once_with(active.id, cancel_at, actor_id=super_admin.id)


async def test_update_end_before_stored_start_is_rejected(super_admin):
    service, repository = _subscriptions()
    repository.find_by_id.return_value = _subscription()

    result = await service.update(
        super_admin, uuid4(), {"end_at": (NOW - timedelta(days=1)).isoformat()}
    )

    assert result.error.code is ServiceErrorCode.VALIDATION_ERROR
    assert result.error.message == "end_at must be after start_at"
    repository.update.assert_not_awaited()


async def test_update_may_clear_end_date(super_admin):
    service, repository = _subscriptions()
    subscription = _subscription(end_at=NOW + timedelta(days=30))
    repository.find_by_id.return_value = subscription
    repository.update.return_value = subscription

    result = await service.update(super_admin, subscription.id, {"end_at": None})

    assert result.ok
    repository.update.assert_awaited_once_with(
        {"id": subscription.id}, {"end_at": None}, actor_id=super_admin.id
    )


async def test_list_by_client_for_another_client_is_forbidden(actor_factory):
    service, repository = _subscriptions()
    result = await service.list_by_client(actor_factory(RoleName.CLIENT), uuid4())
    assert result.error.code is ServiceErrorCode.FORBIDDEN
    repository.find_by_client.assert_not_awaited()


async def test_list_expiring_requires_view_all(actor_factory):
    viewer = actor_factory(RoleName.ADMIN, Permission.SUBSCRIPTION_VIEW_ALL)
    service, repository = _subscriptions()
    repository.find_expiring.return_value = []

    assert (await service.list_expiring(viewer, days=3, now=NOW)).data == []
    repository.find_expiring.assert_awaited_once_with(3, NOW)
    assert (await service.list_expiring(actor_factory(RoleName.CLIENT))).error is not None


# --- InvoiceService ---

async def test_create_assigns_number_and_due_date(super_admin):
    service, repository, _ = _invoices(due_days=15)
    repository.next_invoice_number.return_value = "INV-2025-000001"
    repository.create.return_value = _invoice()

    result = await service.create(super_admin, {"client_id": str(uuid4())})

    assert result.ok
    values = repository.create.await_args.args[0]
    assert values["invoice_number"] == "INV-2025-000001"
    assert values["due_at"] - values["issued_at"] == timedelta(days=15)


async def test_create_due_date_follows_settings(super_admin, monkeypatch):
    monkeypatch.setattr(settings, "invoice_due_days", 7)
    service, repository, _ = _invoices()
    repository.next_invoice_number.return_value = "INV-2025-000001"
    repository.create.return_value = _invoice()

    await service.create(super_admin, {"client_id": str(uuid4())})

    values = repository.create.await_args.args[0]
    assert values["due_at"] - values["issued_at"] == timedelta(days=7)


async def test_add_line_runs_in_one_transaction(super_admin):
    entered = []

    @asynccontextmanager
    async def transaction():
        entered.append("tx")
        yield "tx-handle"

    service, repository, lines = _invoices(transaction=transaction)
    invoice = _invoice()
    repository.find_by_id.return_value = invoice

    result = await service.add_line(
        super_admin, invoice.id, {"description": "Nights", "quantity": 2, "unit_price": "50"}
    )

    assert result.ok
    assert entered == ["tx"]
    lines.add_line.assert_awaited_once_with(invoice.id, ANY, actor_id=super_admin.id, tx="tx-handle")
    repository.apply_totals.assert_awaited_once_with(invoice.id, tx="tx-handle")


async def test_add_line_to_paid_invoice_is_rejected(super_admin):
    service, repository, lines = _invoices()
    repository.find_by_id.return_value = _invoice(status=InvoiceStatus.PAID)

    result = await service.add_line(
        super_admin, uuid4(), {"description": "Nights", "quantity": 1, "unit_price": "5"}
    )

    assert result.error.code is ServiceErrorCode.BUSINESS_RULE_VIOLATION
    lines.add_line.assert_not_awaited()


async def test_mark_void_invoice_as_paid_is_rejected(super_admin):
    service, repository, _ = _invoices()
    repository.find_by_id.return_value = _invoice(status=InvoiceStatus.VOID)

    result = await service.mark_as_paid(super_admin, uuid4())

    assert result.error.message == "Invoice INV-2025-000007 cannot be marked as paid"
    repository.mark_as_paid.assert_not_awaited()


async def test_mark_as_paid_uses_given_date(super_admin):
    service, repository, _ = _invoices()
    invoice = _invoice()
    repository.find_by_id.return_value = invoice
    repository.mark_as_paid.return_value = _invoice(status=InvoiceStatus.PAID, paid_at=NOW)

    result = await service.mark_as_paid(super_admin, invoice.id, NOW)

    assert result.data.status is InvoiceStatus.PAID
    repository.mark_as_paid.assert_awaited_once_with(invoice.id, NOW, actor_id=super_admin.id)


async def test_void_sets_status_only_while_open(super_admin):
    service, repository, _ = _invoices()
    invoice = _invoice()
    repository.find_by_id.return_value = invoice
    repository.update.return_value = _invoice(status=InvoiceStatus.VOID)

    await service.void(super_admin, invoice.id)

    repository.update.assert_awaited_once_with(
        {"id": invoice.id, "status": InvoiceStatus.OPEN},
        {"status": InvoiceStatus.VOID},
        actor_id=super_admin.id,
    )


async def test_void_of_invoice_paid_meanwhile_is_rejected(super_admin):
    service, repository, _ = _invoices()
    repository.find_by_id.return_value = _invoice()
    repository.update.return_value = None

    result = await service.void(super_admin, uuid4())

    assert result.error.code is ServiceErrorCode.BUSINESS_RULE_VIOLATION
    assert result.error.message == "Invoice INV-2025-000007 cannot be voided"


async def test_mark_as_paid_of_invoice_voided_meanwhile_is_rejected(super_admin):
    service, repository, _ = _invoices()
    repository.find_by_id.return_value = _invoice()
    repository.mark_as_paid.return_value = None

    result = await service.mark_as_paid(super_admin, uuid4(), NOW)

    assert result.error.code is ServiceErrorCode.BUSINESS_RULE_VIOLATION


@pytest.mark.parametrize("status", [InvoiceStatus.VOID, InvoiceStatus.PAID])
async def test_generic_update_cannot_reopen_invoice(super_admin, status):
    service, repository, _ = _invoices()
    repository.find_by_id.return_value = _invoice(status=status)

    result = await service.update(super_admin, uuid4(), {"status": "OPEN"})

    assert result.error.code is ServiceErrorCode.VALIDATION_ERROR
    repository.update.assert_not_awaited()


async def test_client_reads_own_balance(actor_factory):
    client = actor_factory(RoleName.CLIENT)
    service, repository, _ = _invoices()
    invoice = _invoice(client_id=client.id)
    balance = InvoiceBalance(Decimal("100.00"), Decimal("40.00"), Decimal("60.00"))
    repository.find_by_id.return_value = invoice
    repository.get_balance.return_value = balance

    assert (await service.get_balance(client, invoice.id)).data == balance


async def test_generate_for_subscription_builds_invoice(super_admin):
    subscriptions = AsyncMock(spec=SubscriptionRepository)
    plans = AsyncMock(spec=PricingPlanRepository)
    service, repository, lines = _invoices(subscriptions=subscriptions, pricing_plans=plans)
    subscription = _subscription(status=SubscriptionStatus.ACTIVE)
    plan = PricingPlan.model_validate(
        _audit(
            id=subscription.pricing_plan_id,
            name="Host Pro",
            amount=Decimal("29.90"),
            currency="USD",
            billing_interval=BillingInterval.MONTH,
        )
    )
    header = _invoice(client_id=subscription.client_id)
    subscriptions.find_by_id.return_value = subscription
    plans.find_by_id.return_value = plan
    repository.next_invoice_number.return_value = "INV-2025-000002"
    repository.create.return_value = header
    repository.apply_totals.return_value = header

    result = await service.generate_for_subscription(super_admin, subscription.id, now=NOW)

    assert result.data is header
    values = repository.create.await_args.args[0]
    assert values["subscription_id"] == subscription.id
    assert values["status"] is InvoiceStatus.OPEN
    line = lines.add_line.await_args.args[1]
    assert isinstance(line, InvoiceLineCreate)
    assert line.unit_price == Decimal("29.90")
    assert line.period_end == datetime(2025, 5, 15, 9, tzinfo=timezone.utc)


async def test_generate_for_missing_subscription_is_not_found(super_admin):
    subscriptions = AsyncMock(spec=SubscriptionRepository)
    subscriptions.find_by_id.return_value = None
    service, repository, _ = _invoices(
        subscriptions=subscriptions, pricing_plans=AsyncMock(spec=PricingPlanRepository)
    )

    result = await service.generate_for_subscription(super_admin, uuid4())

    assert result.error.code is ServiceErrorCode.NOT_FOUND
    repository.create.assert_not_awaited()
