"""Tests for the discount code repositories against SQLite."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.discount import (
    BELOW_MINIMUM_PURCHASE,
    CURRENCY_MISMATCH,
    EXPIRED,
    GLOBAL_LIMIT_EXCEEDED,
    INVALID_CODE,
    USER_LIMIT_EXCEEDED,
    DiscountCodeCreate,
)
from booking_core.domain.models.promotion import Purchase
from booking_core.infrastructure.persistence.repositories import get_repositories

NOW = datetime(2025, 12, 1, 9, tzinfo=timezone.utc)


@pytest.fixture
def repos(db_engine):
    return get_repositories(db_engine)


async def _code(repos, **overrides):
    defaults = dict(
        code="summer10",
        discount_type="PERCENTAGE",
        percent_off=Decimal("10"),
        valid_from=NOW - timedelta(days=1),
        valid_to=NOW + timedelta(days=30),
    )
    payload = DiscountCodeCreate(**{**defaults, **overrides})
    return await repos.discount_codes.create(payload.model_dump())


def _purchase(amount="200.00", currency="USD"):
    return Purchase(amount=Decimal(amount), currency=currency)


# --- lookups ---

async def test_codes_are_stored_and_found_case_insensitively(repos):
    created = await _code(repos)

    assert created.code == "SUMMER10"
    assert (await repos.discount_codes.find_by_code(" Summer10 ")).id == created.id
    assert await repos.discount_codes.find_by_code("WINTER") is None


async def test_is_valid_respects_window_flag_and_deletion(repos):
    await _code(repos)
    await _code(repos, code="OFF", is_active=False)
    deleted = await _code(repos, code="GONE")
    await repos.discount_codes.soft_delete({"id": deleted.id})

    assert await repos.discount_codes.is_valid("summer10", NOW)
    assert not await repos.discount_codes.is_valid("summer10", NOW + timedelta(days=31))
    assert not await repos.discount_codes.is_valid("OFF", NOW)
    assert not await repos.discount_codes.is_valid("GONE", NOW)
    assert not await repos.discount_codes.is_valid("NOPE", NOW)


async def test_calculate_discount(repos):
    await _code(repos, percent_off=Decimal("12.5"))

    result = await repos.discount_codes.calculate_discount("SUMMER10", Decimal("80.00"))

    assert result.discount_amount == Decimal("10.00")
    assert result.final_amount == Decimal("70.00")
    assert await repos.discount_codes.calculate_discount("NOPE", Decimal("1")) is None


async def test_remaining_uses(repos):
    await _code(repos, max_redemptions_global=3)
    await _code(repos, code="OPEN")

    capped = await repos.discount_codes.get_remaining_uses("SUMMER10")
    unlimited = await repos.discount_codes.get_remaining_uses("OPEN")
    unknown = await repos.discount_codes.get_remaining_uses("NOPE")

    assert (capped.global_remaining, capped.unlimited) == (3, False)
    assert (unlimited.global_remaining, unlimited.unlimited) == (None, True)
    assert (unknown.global_remaining, unknown.unlimited) == (0, False)


# --- increment_usage ---

async def test_increment_creates_then_bumps_usage_row(repos):
    code = await _code(repos)
    client_id = uuid4()

    first = await repos.discount_codes.increment_usage("summer10", client_id, NOW)
    later = NOW + timedelta(hours=2)
    second = await repos.discount_codes.increment_usage("SUMMER10", client_id, later)

    assert first.id == second.id
    assert second.usage_count == 2
    assert second.first_used_at == NOW
    assert second.last_used_at == later
    assert (await repos.discount_codes.find_by_id(code.id)).used_count_global == 2
    assert await repos.discount_codes.has_been_used_by_client("SUMMER10", client_id)
    assert not await repos.discount_codes.has_been_used_by_client("SUMMER10", uuid4())


async def test_increment_stops_at_global_cap(repos):
    code = await _code(repos, max_redemptions_global=2)
    await repos.discount_codes.increment_usage("SUMMER10", uuid4(), NOW)
    await repos.discount_codes.increment_usage("SUMMER10", uuid4(), NOW)

    with pytest.raises(BusinessRuleError, match="exhausted"):
        await repos.discount_codes.increment_usage("SUMMER10", uuid4(), NOW)

    assert (await repos.discount_codes.find_by_id(code.id)).used_count_global == 2


async def test_increment_stops_at_client_cap_without_consuming_global(repos):
    code = await _code(repos, max_redemptions_per_user=1)
    client_id = uuid4()
    await repos.discount_codes.increment_usage("SUMMER10", client_id, NOW)

    with pytest.raises(BusinessRuleError, match="reached the limit"):
        await repos.discount_codes.increment_usage("SUMMER10", client_id, NOW)

    assert (await repos.discount_codes.find_by_id(code.id)).used_count_global == 1
    usages = await repos.discount_code_usages.find_by_client(client_id)
    assert [u.usage_count for u in usages] == [1]


async def test_concurrent_redemptions_never_pass_the_global_cap(repos):
    code = await _code(repos, max_redemptions_global=3)

    results = await asyncio.gather(
        *(
            repos.discount_codes.increment_usage("SUMMER10", uuid4(), NOW)
            for _ in range(6)
        ),
        return_exceptions=True,
    )

    assert sum(not isinstance(r, Exception) for r in results) == 3
    assert (await repos.discount_codes.find_by_id(code.id)).used_count_global == 3


async def test_increment_of_unknown_code_is_not_found(repos):
    with pytest.raises(NotFoundError):
        await repos.discount_codes.increment_usage("NOPE", uuid4(), NOW)


# --- can_be_used / check_limits ---

async def test_can_be_used_reports_each_limit(repos):
    await _code(repos, max_redemptions_global=1)
    await _code(repos, code="PERUSER", max_redemptions_per_user=1)
    client_id = uuid4()
    await repos.discount_codes.increment_usage("SUMMER10", uuid4(), NOW)
    await repos.discount_codes.increment_usage("PERUSER", client_id, NOW)

    global_check = await repos.discount_codes.can_be_used("SUMMER10", client_id, NOW)
    user_check = await repos.discount_codes.can_be_used("PERUSER", client_id, NOW)
    other_client = await repos.discount_codes.can_be_used("PERUSER", uuid4(), NOW)
    unknown = await repos.discount_codes.can_be_used("NOPE", client_id, NOW)

    assert global_check.reason == GLOBAL_LIMIT_EXCEEDED
    assert user_check.reason == USER_LIMIT_EXCEEDED
    assert other_client.can_use
    assert unknown.reason == INVALID_CODE


async def test_check_limits_with_and_without_client(repos):
    await _code(repos, max_redemptions_global=5, max_redemptions_per_user=2)
    client_id = uuid4()
    await repos.discount_codes.increment_usage("SUMMER10", client_id, NOW)
    await repos.discount_codes.increment_usage("SUMMER10", client_id, NOW)

    with_client = await repos.discount_codes.check_limits("SUMMER10", client_id)
    without = await repos.discount_codes.check_limits("SUMMER10")
    unknown = await repos.discount_codes.check_limits("NOPE")

    assert with_client.global_remaining == 3
    assert not with_client.global_limit_reached
    assert with_client.user_limit_reached
    assert with_client.user_remaining == 0
    assert without.user_remaining is None
    assert unknown.global_limit_reached and unknown.user_limit_reached


# --- check_eligibility ---

async def test_eligible_code_previews_discount(repos):
    await _code(repos)

    result = await repos.discount_codes.check_eligibility(
        "summer10", uuid4(), _purchase("200.00"), NOW
    )

    assert result.eligible
    assert result.preview.discount_amount == Decimal("20.00")
    assert result.preview.final_amount == Decimal("180.00")


async def test_expired_code_is_reported_as_expired(repos):
    await _code(repos)

    result = await repos.discount_codes.check_eligibility(
        "SUMMER10", uuid4(), _purchase(), NOW + timedelta(days=31)
    )

    assert not result.eligible
    assert result.reason == EXPIRED


async def test_fixed_amount_code_requires_matching_currency(repos):
    await _code(
        repos,
        code="FIVE",
        discount_type="FIXED_AMOUNT",
        percent_off=None,
        amount_off=Decimal("5"),
        currency="EUR",
    )

    result = await repos.discount_codes.check_eligibility("FIVE", uuid4(), _purchase(), NOW)

    assert result.reason == CURRENCY_MISMATCH


async def test_purchase_below_minimum_is_ineligible(repos):
    await _code(repos, minimum_purchase_amount=Decimal("500"))

    result = await repos.discount_codes.check_eligibility(
        "SUMMER10", uuid4(), _purchase("499.99"), NOW
    )

    assert result.reason == BELOW_MINIMUM_PURCHASE
    assert result.preview is None


# --- usage rows ---

async def test_usage_rows_by_code_and_client(repos):
    code = await _code(repos)
    other = await _code(repos, code="OTHER")
    client_id = uuid4()
    await repos.discount_codes.increment_usage("SUMMER10", client_id, NOW)
    await repos.discount_codes.increment_usage(
        "OTHER", client_id, NOW + timedelta(minutes=5)
    )
    await repos.discount_codes.increment_usage("SUMMER10", uuid4(), NOW)

    mine = await repos.discount_code_usages.find_by_client(client_id)
    for_code = await repos.discount_code_usages.find_by_discount_code(code.id)

    assert [u.discount_code_id for u in mine] == [other.id, code.id]
    assert len(for_code) == 2
