"""Tests for booking_core/domain/models/advertising.py."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from booking_core.domain.models.advertising import (
    AdPricingCatalog,
    AdPricingCatalogCreate,
    AdSlotReservation,
    AdSlotReservationCreate,
)
from booking_core.domain.models.enums import CampaignChannel, PricingModel, ReservationStatus

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _catalog(**overrides):
    data = {
        "id": uuid4(),
        "created_at": NOW,
        "updated_at": NOW,
        "channel": CampaignChannel.WEB,
        "pricing_model": PricingModel.CPM,
        "base_price": Decimal("10"),
        "weekend_multiplier": Decimal("1.5"),
        "holiday_multiplier": Decimal("2"),
    }
    data.update(overrides)
    return AdPricingCatalog.model_validate(data)


# --- multiplier ---

def test_multiplier_is_one_on_regular_days():
    assert _catalog().multiplier() == Decimal("1")


def test_weekend_and_holiday_multipliers_stack():
    assert _catalog().multiplier(is_weekend=True, is_holiday=True) == Decimal("3.0")


# --- price_for ---

def test_cpm_weekend_price():
    assert _catalog().price_for(impressions=10_000, is_weekend=True) == Decimal("150.00")


def test_cpm_weekday_price():
    assert _catalog().price_for(impressions=2_500) == Decimal("25.00")


def test_cpc_price_uses_clicks():
    catalog = _catalog(pricing_model=PricingModel.CPC, base_price=Decimal("0.35"))
    assert catalog.price_for(impressions=99_999, clicks=40) == Decimal("14.00")


def test_flat_price_ignores_volume():
    catalog = _catalog(pricing_model=PricingModel.FLAT, base_price=Decimal("200"))
    assert catalog.price_for(impressions=5, clicks=5, is_holiday=True) == Decimal("400.00")


def test_price_rounds_half_up_to_cents():
    catalog = _catalog(pricing_model=PricingModel.CPC, base_price=Decimal("0.125"))
    assert catalog.price_for(clicks=1) == Decimal("0.13")


# --- schemas ---

def test_catalog_create_rejects_inverted_budget():
    with pytest.raises(ValidationError):
        AdPricingCatalogCreate(
            channel=CampaignChannel.WEB,
            pricing_model=PricingModel.FLAT,
            base_price=Decimal("1"),
            minimum_budget=Decimal("100"),
            maximum_budget=Decimal("10"),
        )


def test_reservation_create_requires_positive_window():
    with pytest.raises(ValidationError):
        AdSlotReservationCreate(
            ad_slot_id=uuid4(), campaign_id=uuid4(), starts_at=NOW, ends_at=NOW
        )


def test_reservation_transition_follows_status():
    reservation = AdSlotReservation.model_validate(
        {
            "id": uuid4(),
            "created_at": NOW,
            "updated_at": NOW,
            "ad_slot_id": uuid4(),
            "campaign_id": uuid4(),
            "starts_at": NOW,
            "ends_at": NOW + timedelta(days=7),
        }
    )
    assert reservation.status is ReservationStatus.RESERVED
    assert reservation.can_transition_to(ReservationStatus.ACTIVE)
    assert not reservation.can_transition_to(ReservationStatus.ENDED)
