"""Advertising domain models: pricing catalogs and ad slot reservations."""

from __future__ import annotations

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
from .enums import CampaignChannel, PricingModel, ReservationStatus

_THOUSAND = Decimal("1000")


class AdPricingCatalog(AuditedEntity):
    """Price list for one advertising channel.

    base_price is per thousand impressions for CPM, per click for CPC and a
    flat fee for FLAT. Weekend and holiday multipliers stack.
    """

    channel: CampaignChannel
    pricing_model: PricingModel
    base_price: Decimal
    currency: str = "USD"
    weekend_multiplier: Decimal = Decimal("1")
    holiday_multiplier: Decimal = Decimal("1")
    minimum_budget: Decimal | None = None
    maximum_budget: Decimal | None = None
    is_active: bool = True

    def multiplier(self, is_weekend: bool = False, is_holiday: bool = False) -> Decimal:
        factor = Decimal("1")
        if is_weekend:
            factor *= self.weekend_multiplier
        if is_holiday:
            factor *= self.holiday_multiplier
        return factor

    def price_for(
        self,
        impressions: int = 0,
        clicks: int = 0,
        is_weekend: bool = False,
        is_holiday: bool = False,
    ) -> Decimal:
        unit = self.base_price * self.multiplier(is_weekend, is_holiday)
        if self.pricing_model is PricingModel.CPM:
            price = unit / _THOUSAND * Decimal(impressions)
        elif self.pricing_model is PricingModel.CPC:
            price = unit * Decimal(clicks)
        else:
            price = unit
        return quantize_money(price)


class AdPricingCatalogCreate(InputModel):
    channel: CampaignChannel
    pricing_model: PricingModel
    base_price: Decimal = Field(ge=0)
    currency: CurrencyCode = "USD"
    weekend_multiplier: Decimal = Field(default=Decimal("1"), gt=0)
    holiday_multiplier: Decimal = Field(default=Decimal("1"), gt=0)
    minimum_budget: Decimal | None = Field(default=None, ge=0)
    maximum_budget: Decimal | None = Field(default=None, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_budget(self) -> AdPricingCatalogCreate:
        if (
            self.minimum_budget is not None
            and self.maximum_budget is not None
            and self.minimum_budget > self.maximum_budget
        ):
            raise ValueError("minimum_budget must not exceed maximum_budget")
        return self


class AdPricingCatalogUpdate(InputModel):
    base_price: Decimal | None = Field(default=None, ge=0)
    weekend_multiplier: Decimal | None = Field(default=None, gt=0)
    holiday_multiplier: Decimal | None = Field(default=None, gt=0)
    minimum_budget: Decimal | None = Field(default=None, ge=0)
    maximum_budget: Decimal | None = Field(default=None, ge=0)
    is_active: bool | None = None


class AdPricingCatalogSearch(SearchParams):
    channel: CampaignChannel | None = None
    pricing_model: PricingModel | None = None
    is_active: bool | None = None


class PriceQuoteRequest(InputModel):
    catalog_id: UUID
    impressions: int = Field(default=0, ge=0)
    clicks: int = Field(default=0, ge=0)
    is_weekend: bool = False
    is_holiday: bool = False


class AdSlotReservation(AuditedEntity):
    ad_slot_id: UUID
    campaign_id: UUID
    pricing_catalog_id: UUID | None = None
    status: ReservationStatus = ReservationStatus.RESERVED
    starts_at: UtcDateTime
    ends_at: UtcDateTime

    def can_transition_to(self, target: ReservationStatus) -> bool:
        return self.status.can_transition_to(target)


class AdSlotReservationCreate(InputModel):
    ad_slot_id: UUID
    campaign_id: UUID
    pricing_catalog_id: UUID | None = None
    starts_at: UtcDateTime
    ends_at: UtcDateTime

    @model_validator(mode="after")
    def _check_window(self) -> AdSlotReservationCreate:
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class AdSlotReservationUpdate(InputModel):
    pricing_catalog_id: UUID | None = None
    starts_at: UtcDateTime | None = None
    ends_at: UtcDateTime | None = None


class AdSlotReservationSearch(SearchParams):
    ad_slot_id: UUID | None = None
    campaign_id: UUID | None = None
    status: ReservationStatus | None = None
