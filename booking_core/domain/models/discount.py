"""Discount codes and their per-client usage counters.

A code is either a percentage off (percent_off in (0, 100]) or a fixed
amount off in the code's currency. used_count_global is only ever moved by
the repository's guarded increment, never through a generic update.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from .base import (
    AuditedEntity,
    CurrencyCode,
    InputModel,
    SearchParams,
    UtcDateTime,
    quantize_money,
)
from .enums import DiscountType

INVALID_CODE = "INVALID_CODE"
EXPIRED = "EXPIRED"
GLOBAL_LIMIT_EXCEEDED = "GLOBAL_LIMIT_EXCEEDED"
USER_LIMIT_EXCEEDED = "USER_LIMIT_EXCEEDED"
CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
BELOW_MINIMUM_PURCHASE = "BELOW_MINIMUM_PURCHASE"


def normalize_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True)
class DiscountCalculation:
    discount_amount: Decimal
    final_amount: Decimal


@dataclass(frozen=True)
class RemainingUses:
    """global_remaining is None when the code has no global cap."""

    global_remaining: int | None
    unlimited: bool


@dataclass(frozen=True)
class UsageCheck:
    can_use: bool
    reason: str | None = None


@dataclass(frozen=True)
class UsageLimits:
    global_limit_reached: bool
    user_limit_reached: bool
    global_remaining: int | None
    user_remaining: int | None


@dataclass(frozen=True)
class DiscountEligibility:
    eligible: bool
    reason: str | None = None
    preview: DiscountCalculation | None = None


class DiscountCode(AuditedEntity):
    code: str
    discount_type: DiscountType
    percent_off: Decimal | None = None
    amount_off: Decimal | None = None
    currency: str | None = None
    valid_from: UtcDateTime
    valid_to: UtcDateTime
    is_active: bool = True
    max_redemptions_global: int | None = None
    max_redemptions_per_user: int | None = None
    used_count_global: int = 0
    minimum_purchase_amount: Decimal | None = None

    def is_valid_at(self, now: datetime) -> bool:
        return (
            self.is_active
            and not self.is_deleted
            and self.valid_from <= now <= self.valid_to
        )

    def is_expired_at(self, now: datetime) -> bool:
        return self.valid_to < now

    def global_remaining(self) -> int | None:
        if self.max_redemptions_global is None:
            return None
        return max(0, self.max_redemptions_global - self.used_count_global)

    def calculate_discount(self, amount: Decimal) -> DiscountCalculation:
        """Discount for a purchase of *amount*.

        Below the minimum purchase nothing is taken off; the discount never
        exceeds the purchase itself.
        """
        if self.minimum_purchase_amount is not None and amount < self.minimum_purchase_amount:
            return DiscountCalculation(quantize_money(Decimal("0")), quantize_money(amount))
        if self.discount_type is DiscountType.PERCENTAGE:
            discount = amount * (self.percent_off or Decimal("0")) / Decimal("100")
        else:
            discount = self.amount_off or Decimal("0")
        discount = quantize_money(min(discount, amount))
        return DiscountCalculation(discount, quantize_money(amount - discount))


class DiscountCodeUsage(AuditedEntity):
    discount_code_id: UUID
    client_id: UUID
    usage_count: int = 0
    first_used_at: UtcDateTime
    last_used_at: UtcDateTime


class DiscountCodeCreate(InputModel):
    code: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    discount_type: DiscountType
    percent_off: Decimal | None = Field(default=None, gt=0, le=100)
    amount_off: Decimal | None = Field(default=None, gt=0)
    currency: CurrencyCode | None = None
    valid_from: UtcDateTime
    valid_to: UtcDateTime
    is_active: bool = True
    max_redemptions_global: int | None = Field(default=None, ge=1)
    max_redemptions_per_user: int | None = Field(default=None, ge=1)
    minimum_purchase_amount: Decimal | None = Field(default=None, ge=0)

    @field_validator("code")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_code(value)

    @model_validator(mode="after")
    def _check_shape(self) -> DiscountCodeCreate:
        if self.valid_to <= self.valid_from:
            raise ValueError("valid_to must be after valid_from")
        if self.discount_type is DiscountType.PERCENTAGE:
            if self.percent_off is None or self.amount_off is not None:
                raise ValueError("percentage codes take percent_off only")
        elif self.amount_off is None or self.currency is None or self.percent_off is not None:
            raise ValueError("fixed amount codes take amount_off and currency")
        return self


class DiscountCodeUpdate(InputModel):
    """Type, amounts and counters are fixed once a code exists."""

    valid_from: UtcDateTime | None = None
    valid_to: UtcDateTime | None = None
    is_active: bool | None = None
    max_redemptions_global: int | None = Field(default=None, ge=1)
    max_redemptions_per_user: int | None = Field(default=None, ge=1)
    minimum_purchase_amount: Decimal | None = Field(default=None, ge=0)


class DiscountCodeSearch(SearchParams):
    code: str | None = None
    discount_type: DiscountType | None = None
    is_active: bool | None = None

    @field_validator("code")
    @classmethod
    def _normalize(cls, value: str | None) -> str | None:
        return None if value is None else normalize_code(value)
