"""Tests for booking_core/domain/models/discount.py."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from booking_core.domain.models.discount import (
    DiscountCode,
    DiscountCodeCreate,
    DiscountCodeSearch,
)
from booking_core.domain.models.enums import DiscountType

NOW = datetime(2025, 12, 1, 9, tzinfo=timezone.utc)


def _code(**overrides):
    data = {
        "id": uuid4(),
        "created_at": NOW,
        "updated_at": NOW,
        "code": "SUMMER10",
        "discount_type": DiscountType.PERCENTAGE,
        "percent_off": Decimal("10"),
        "valid_from": NOW - timedelta(days=1),
        "valid_to": NOW + timedelta(days=1),
    }
    data.update(overrides)
    return DiscountCode.model_validate(data)


def _create(**overrides):
    data = {
        "code": "summer10",
        "discount_type": "PERCENTAGE",
        "percent_off": "10",
        "valid_from": NOW,
        "valid_to": NOW + timedelta(days=7),
    }
    data.update(overrides)
    return DiscountCodeCreate.model_validate(data)


# --- calculate_discount ---

def test_percentage_discount_is_rounded_half_up():
    result = _code(percent_off=Decimal("15")).calculate_discount(Decimal("33.30"))

    assert result.discount_amount == Decimal("5.00")
    assert result.final_amount == Decimal("28.30")


def test_fixed_discount_never_exceeds_the_purchase():
    code = _code(
        discount_type=DiscountType.FIXED_AMOUNT,
        percent_off=None,
        amount_off=Decimal("50"),
        currency="USD",
    )

    result = code.calculate_discount(Decimal("20.00"))

    assert result.discount_amount == Decimal("20.00")
    assert result.final_amount == Decimal("0.00")


def test_below_minimum_purchase_nothing_is_taken_off():
    code = _code(minimum_purchase_amount=Decimal("100"))

    result = code.calculate_discount(Decimal("99.99"))

    assert result.discount_amount == Decimal("0.00")
    assert result.final_amount == Decimal("99.99")


# --- validity and limits ---

@pytest.mark.parametrize(
    "overrides, at, expected",
    [
        ({}, NOW, True),
        ({}, NOW + timedelta(days=2), False),
        ({}, NOW - timedelta(days=2), False),
        ({"is_active": False}, NOW, False),
        ({"deleted_at": NOW}, NOW, False),
    ],
)
def test_is_valid_at(overrides, at, expected):
    assert _code(**overrides).is_valid_at(at) is expected


def test_global_remaining():
    assert _code().global_remaining() is None
    assert _code(max_redemptions_global=5, used_count_global=2).global_remaining() == 3
    assert _code(max_redemptions_global=5, used_count_global=7).global_remaining() == 0


# --- create payload ---

def test_create_upper_cases_code():
    assert _create(code=" summer10 ").code == "SUMMER10"


@pytest.mark.parametrize(
    "overrides",
    [
        {"valid_to": NOW},
        {"percent_off": None},
        {"amount_off": "5"},
        {"percent_off": "101"},
        {"code": "no spaces"},
        {"discount_type": "FIXED_AMOUNT", "percent_off": None, "amount_off": "5"},
        {"discount_type": "FIXED_AMOUNT", "amount_off": "5", "currency": "USD"},
    ],
)
def test_create_rejects_inconsistent_payload(overrides):
    with pytest.raises(ValidationError):
        _create(**overrides)


def test_create_fixed_amount_code():
    payload = _create(
        discount_type="FIXED_AMOUNT", percent_off=None, amount_off="5", currency="EUR"
    )

    assert payload.amount_off == Decimal("5")


def test_search_normalises_code_filter():
    assert DiscountCodeSearch(code="summer10").filters() == {"code": "SUMMER10"}
