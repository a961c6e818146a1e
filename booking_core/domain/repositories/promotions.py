"""Promotion and discount code repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from booking_core.domain.models.base import Page
from booking_core.domain.models.discount import (
    DiscountCalculation,
    DiscountCode,
    DiscountCodeUsage,
    DiscountEligibility,
    RemainingUses,
    UsageCheck,
    UsageLimits,
)
from booking_core.domain.models.promotion import Promotion, PromotionApplication, Purchase

from .base import Repository, Transaction


class PromotionRepository(Repository[Promotion]):
    @abstractmethod
    async def is_active(self, id: UUID, now: datetime, *, tx: Transaction = None) -> bool:
        """True when the promotion exists, is not deleted and now is inside its window."""

    @abstractmethod
    async def find_active(
        self, now: datetime, *, page: int = 1, page_size: int = 20, tx: Transaction = None
    ) -> Page[Promotion]:
        """Page through promotions whose window contains *now*."""

    @abstractmethod
    async def apply_promotion(
        self,
        id: UUID,
        client_id: UUID,
        purchase: Purchase,
        now: datetime,
        *,
        tx: Transaction = None,
    ) -> PromotionApplication:
        """Evaluate the promotion against the purchase; never raises for ineligibility."""


class DiscountCodeRepository(Repository[DiscountCode]):
    """Codes are looked up case-insensitively (stored upper-cased).

    Lookups by code answer "no" for an unknown code instead of raising,
    except increment_usage, which is a write.
    """

    @abstractmethod
    async def find_by_code(self, code: str, *, tx: Transaction = None) -> DiscountCode | None:
        """Return the live code, or None."""

    @abstractmethod
    async def is_valid(self, code: str, now: datetime, *, tx: Transaction = None) -> bool:
        """Active, not deleted and *now* inside [valid_from, valid_to]."""

    @abstractmethod
    async def can_be_used(
        self, code: str, client_id: UUID, now: datetime, *, tx: Transaction = None
    ) -> UsageCheck:
        """Valid and under both the global and the per-client cap."""

    @abstractmethod
    async def calculate_discount(
        self, code: str, amount: Decimal, *, tx: Transaction = None
    ) -> DiscountCalculation | None:
        """Discount for a purchase of *amount*; None for an unknown code."""

    @abstractmethod
    async def get_remaining_uses(self, code: str, *, tx: Transaction = None) -> RemainingUses:
        """Remaining global redemptions; an unknown code has none left."""

    @abstractmethod
    async def has_been_used_by_client(
        self, code: str, client_id: UUID, *, tx: Transaction = None
    ) -> bool:
        """True when the client has a live usage row for the code."""

    @abstractmethod
    async def check_limits(
        self, code: str, client_id: UUID | None = None, *, tx: Transaction = None
    ) -> UsageLimits:
        """Global and (with a client) per-client limit state."""

    @abstractmethod
    async def check_eligibility(
        self,
        code: str,
        client_id: UUID,
        purchase: Purchase,
        now: datetime,
        *,
        tx: Transaction = None,
    ) -> DiscountEligibility:
        """Run every check and preview the discount; never raises for ineligibility."""

    @abstractmethod
    async def increment_usage(
        self,
        code: str,
        client_id: UUID,
        now: datetime,
        *,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> DiscountCodeUsage:
        """Count one redemption against the global and the client's counter.

        Both caps are enforced by the writes themselves, so two concurrent
        redemptions cannot overshoot either. Raises NotFoundError for an
        unknown code and BusinessRuleError once a cap is reached.
        """


class DiscountCodeUsageRepository(Repository[DiscountCodeUsage]):
    @abstractmethod
    async def find_by_client(
        self, client_id: UUID, *, tx: Transaction = None
    ) -> list[DiscountCodeUsage]:
        """Return the client's live usage rows, most recently used first."""

    @abstractmethod
    async def find_by_discount_code(
        self, discount_code_id: UUID, *, tx: Transaction = None
    ) -> list[DiscountCodeUsage]:
        """Return the code's live usage rows, most recently used first."""
