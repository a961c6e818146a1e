"""Promotion domain models.

Eligibility rules and benefits are closed sets of tagged variants
(discriminated on ``kind``) rather than free-form JSON, so a stored rule
either parses into one of the known shapes or is rejected at the boundary.
The interpreter lives in booking_core.domain.services.promotion_rules.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import AuditedEntity, CurrencyCode, InputModel, SearchParams, UtcDateTime


class _Variant(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class MinAmountRule(_Variant):
    kind: Literal["min_amount"] = "min_amount"
    amount: Decimal = Field(ge=0)


class MaxAmountRule(_Variant):
    kind: Literal["max_amount"] = "max_amount"
    amount: Decimal = Field(ge=0)


class AllowedCurrenciesRule(_Variant):
    kind: Literal["allowed_currencies"] = "allowed_currencies"
    currencies: frozenset[CurrencyCode] = Field(min_length=1)


class ExcludedActorsRule(_Variant):
    kind: Literal["excluded_actors"] = "excluded_actors"
    actor_ids: frozenset[UUID] = Field(min_length=1)


class AllOfRule(_Variant):
    """Every nested rule must pass."""

    kind: Literal["all"] = "all"
    rules: list[PromotionRule] = Field(min_length=1)


PromotionRule = Annotated[
    Union[MinAmountRule, MaxAmountRule, AllowedCurrenciesRule, ExcludedActorsRule, AllOfRule],
    Field(discriminator="kind"),
]

AllOfRule.model_rebuild()


class PercentageBenefit(_Variant):
    kind: Literal["percentage"] = "percentage"
    percent: Decimal = Field(gt=0, le=100)


class FixedAmountBenefit(_Variant):
    kind: Literal["fixed_amount"] = "fixed_amount"
    amount: Decimal = Field(gt=0)


PromotionBenefit = Annotated[
    Union[PercentageBenefit, FixedAmountBenefit],
    Field(discriminator="kind"),
]


class Promotion(AuditedEntity):
    name: str
    description: str | None = None
    rules: PromotionRule | None = None
    benefit: PromotionBenefit
    starts_at: UtcDateTime
    ends_at: UtcDateTime

    def is_active_at(self, now: datetime) -> bool:
        return not self.is_deleted and self.starts_at <= now <= self.ends_at


class PromotionCreate(InputModel):
    name: str = Field(min_length=2, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    rules: PromotionRule | None = None
    benefit: PromotionBenefit
    starts_at: UtcDateTime
    ends_at: UtcDateTime

    @model_validator(mode="after")
    def _check_window(self) -> PromotionCreate:
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class PromotionUpdate(InputModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    rules: PromotionRule | None = None
    benefit: PromotionBenefit | None = None
    starts_at: UtcDateTime | None = None
    ends_at: UtcDateTime | None = None


class PromotionSearch(SearchParams):
    name: str | None = None


class Purchase(InputModel):
    """What a promotion is being applied to."""

    amount: Decimal = Field(ge=0)
    currency: CurrencyCode


class PromotionApplication(BaseModel):
    model_config = ConfigDict(frozen=True)

    applied: bool
    discount_amount: Decimal
    final_amount: Decimal
    reason: str | None = None
    applied_rules: list[str] = Field(default_factory=list)
