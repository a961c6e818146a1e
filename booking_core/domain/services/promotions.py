"""Promotion and discount code services: CRUD plus eligibility checks for a purchase."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from booking_core.domain.errors import BusinessRuleError, InputValidationError, NotFoundError
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.base import Page, utc_now
from booking_core.domain.models.discount import (
    DiscountCode,
    DiscountCodeCreate,
    DiscountCodeSearch,
    DiscountCodeUpdate,
    DiscountCodeUsage,
    DiscountEligibility,
    RemainingUses,
    UsageLimits,
)
from booking_core.domain.models.enums import Permission
from booking_core.domain.models.promotion import (
    Promotion,
    PromotionApplication,
    PromotionCreate,
    PromotionSearch,
    PromotionUpdate,
    Purchase,
)
from booking_core.domain.repositories.promotions import (
    DiscountCodeRepository,
    DiscountCodeUsageRepository,
    PromotionRepository,
)

from .base import BaseCrudService, LifecycleHooks, ServiceOutput
from .permissions import EntityPermissions, require_permission


class PromotionService(BaseCrudService[Promotion]):
    entity_name = "Promotion"
    model = Promotion
    permissions = EntityPermissions(
        create=Permission.PROMOTION_CREATE,
        update_any=Permission.PROMOTION_UPDATE,
        delete_any=Permission.PROMOTION_DELETE,
        restore=Permission.PROMOTION_RESTORE,
        hard_delete=Permission.PROMOTION_HARD_DELETE,
    )
    create_schema = PromotionCreate
    update_schema = PromotionUpdate
    search_schema = PromotionSearch

    repository: PromotionRepository

    def _check_changes(self, entity: Promotion, changes: dict[str, Any]) -> None:
        for field in ("starts_at", "ends_at"):
            if field in changes and changes[field] is None:
                raise InputValidationError(f"{field} cannot be cleared")
        starts_at = changes.get("starts_at", entity.starts_at)
        ends_at = changes.get("ends_at", entity.ends_at)
        if ends_at <= starts_at:
            raise InputValidationError("ends_at must be after starts_at")

    async def apply(
        self,
        actor: Actor,
        promotion_id: UUID,
        purchase: Any,
        *,
        client_id: UUID | None = None,
        now: datetime | None = None,
    ) -> ServiceOutput[PromotionApplication]:
        """Evaluate the promotion for *client_id* (the actor by default).

        An ineligible purchase is not an error: the result carries
        ``applied=False`` and the reason.
        """

        async def work() -> PromotionApplication:
            checked = self._validate(Purchase, purchase)
            promotion = await self.repository.find_by_id(promotion_id)
            if promotion is None or promotion.deleted_at is not None:
                raise NotFoundError(f"Promotion {promotion_id} not found")
            beneficiary = client_id or actor.id
            if beneficiary != actor.id:
                require_permission(
                    actor, Permission.PROMOTION_APPLY, "apply promotions for other clients"
                )
            return await self.repository.apply_promotion(
                promotion_id, beneficiary, checked, now or utc_now()
            )

        return await self._run("apply", work)

    async def list_active(
        self,
        actor: Actor,
        *,
        page: int = 1,
        page_size: int | None = None,
        now: datetime | None = None,
    ) -> ServiceOutput[Page[Promotion]]:
        async def work() -> Page[Promotion]:
            size = self._page_size(page, page_size)
            return await self.repository.find_active(now or utc_now(), page=page, page_size=size)

        return await self._run("list_active", work)


class DiscountCodeService(BaseCrudService[DiscountCode]):
    """Codes are managed by staff; anyone may check or redeem one for
    themselves. Redeeming on behalf of another client needs
    DISCOUNT_CODE_APPLY."""

    entity_name = "DiscountCode"
    model = DiscountCode
    permissions = EntityPermissions(
        create=Permission.DISCOUNT_CODE_CREATE,
        update_any=Permission.DISCOUNT_CODE_UPDATE,
        delete_any=Permission.DISCOUNT_CODE_DELETE,
        restore=Permission.DISCOUNT_CODE_RESTORE,
        hard_delete=Permission.DISCOUNT_CODE_HARD_DELETE,
        view_all=Permission.DISCOUNT_CODE_VIEW_ALL,
    )
    owner_only = True
    create_schema = DiscountCodeCreate
    update_schema = DiscountCodeUpdate
    search_schema = DiscountCodeSearch

    repository: DiscountCodeRepository

    def __init__(
        self,
        repository: DiscountCodeRepository,
        usages: DiscountCodeUsageRepository | None = None,
        hooks: LifecycleHooks | None = None,
    ) -> None:
        super().__init__(repository, hooks)
        self.usages = usages

    def _check_changes(self, entity: DiscountCode, changes: dict[str, Any]) -> None:
        for field in ("valid_from", "valid_to"):
            if field in changes and changes[field] is None:
                raise InputValidationError(f"{field} cannot be cleared")
        valid_from = changes.get("valid_from", entity.valid_from)
        valid_to = changes.get("valid_to", entity.valid_to)
        if valid_to <= valid_from:
            raise InputValidationError("valid_to must be after valid_from")
        cap = changes.get("max_redemptions_global")
        if cap is not None and cap < entity.used_count_global:
            raise InputValidationError(
                f"max_redemptions_global cannot drop below {entity.used_count_global} uses"
            )

    def _beneficiary(self, actor: Actor, client_id: UUID | None) -> UUID:
        beneficiary = client_id or actor.id
        if beneficiary != actor.id:
            require_permission(
                actor, Permission.DISCOUNT_CODE_APPLY, "apply discount codes for other clients"
            )
        return beneficiary

    async def check_eligibility(
        self,
        actor: Actor,
        code: str,
        purchase: Any,
        *,
        client_id: UUID | None = None,
        now: datetime | None = None,
    ) -> ServiceOutput[DiscountEligibility]:
        """An ineligible code is not an error: the result carries the reason."""

        async def work() -> DiscountEligibility:
            checked = self._validate(Purchase, purchase)
            beneficiary = self._beneficiary(actor, client_id)
            return await self.repository.check_eligibility(
                code, beneficiary, checked, now or utc_now()
            )

        return await self._run("check_eligibility", work)

    async def redeem(
        self,
        actor: Actor,
        code: str,
        purchase: Any,
        *,
        client_id: UUID | None = None,
        now: datetime | None = None,
    ) -> ServiceOutput[DiscountEligibility]:
        """Check the code and count the redemption; the preview is the discount granted."""

        async def work() -> DiscountEligibility:
            checked = self._validate(Purchase, purchase)
            beneficiary = self._beneficiary(actor, client_id)
            at = now or utc_now()
            eligibility = await self.repository.check_eligibility(code, beneficiary, checked, at)
            if not eligibility.eligible:
                raise BusinessRuleError(
                    f"Discount code {code} cannot be used: {eligibility.reason}"
                )
            await self.repository.increment_usage(code, beneficiary, at, actor_id=actor.id)
            return eligibility

        return await self._run("redeem", work)

    async def get_remaining_uses(self, actor: Actor, code: str) -> ServiceOutput[RemainingUses]:
        async def work() -> RemainingUses:
            require_permission(actor, Permission.DISCOUNT_CODE_VIEW_ALL, "view discount codes")
            return await self.repository.get_remaining_uses(code)

        return await self._run("get_remaining_uses", work)

    async def check_limits(
        self, actor: Actor, code: str, client_id: UUID | None = None
    ) -> ServiceOutput[UsageLimits]:
        async def work() -> UsageLimits:
            require_permission(actor, Permission.DISCOUNT_CODE_VIEW_ALL, "view discount codes")
            return await self.repository.check_limits(code, client_id)

        return await self._run("check_limits", work)

    async def has_been_used_by_client(
        self, actor: Actor, code: str, client_id: UUID | None = None
    ) -> ServiceOutput[bool]:
        async def work() -> bool:
            if client_id is not None and client_id != actor.id:
                require_permission(
                    actor, Permission.DISCOUNT_CODE_VIEW_ALL, "view discount code usage"
                )
            return await self.repository.has_been_used_by_client(code, client_id or actor.id)

        return await self._run("has_been_used_by_client", work)

    async def list_usages(
        self, actor: Actor, *, client_id: UUID | None = None
    ) -> ServiceOutput[list[DiscountCodeUsage]]:
        """The actor's own usage rows, or another client's with DISCOUNT_CODE_VIEW_ALL."""

        async def work() -> list[DiscountCodeUsage]:
            if self.usages is None:
                raise RuntimeError("DiscountCodeService was built without a usage repository")
            beneficiary = client_id or actor.id
            if beneficiary != actor.id:
                require_permission(
                    actor, Permission.DISCOUNT_CODE_VIEW_ALL, "view discount code usage"
                )
            return await self.usages.find_by_client(beneficiary)

        return await self._run("list_usages", work)
