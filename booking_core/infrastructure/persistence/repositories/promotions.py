"""SQLAlchemy implementations of the promotion and discount code repositories."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, func, insert, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncConnection

from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.base import Page
from booking_core.domain.models.discount import (
    BELOW_MINIMUM_PURCHASE,
    CURRENCY_MISMATCH,
    EXPIRED,
    GLOBAL_LIMIT_EXCEEDED,
    INVALID_CODE,
    USER_LIMIT_EXCEEDED,
    DiscountCalculation,
    DiscountCode as DomainDiscountCode,
    DiscountCodeUsage as DomainDiscountCodeUsage,
    DiscountEligibility,
    RemainingUses,
    UsageCheck,
    UsageLimits,
    normalize_code,
)
from booking_core.domain.models.enums import DiscountType
from booking_core.domain.models.promotion import (
    Promotion as DomainPromotion,
    PromotionApplication,
    Purchase,
)
from booking_core.domain.repositories.promotions import (
    DiscountCodeRepository,
    DiscountCodeUsageRepository,
    PromotionRepository,
)
from booking_core.domain.services import promotion_rules
from booking_core.infrastructure.persistence.models.billing import (
    DiscountCode as OrmDiscountCode,
    DiscountCodeUsage as OrmDiscountCodeUsage,
    Promotion as OrmPromotion,
)

from .base import SqlRepository


class SqlPromotionRepository(SqlRepository[DomainPromotion], PromotionRepository):
    orm_model = OrmPromotion
    model = DomainPromotion
    entity_name = "Promotion"

    async def is_active(self, id: UUID, now: datetime, *, tx: AsyncConnection | None = None) -> bool:
        promotion = await self.find_by_id(id, tx=tx)
        return promotion is not None and promotion.is_active_at(now)

    async def find_active(
        self,
        now: datetime,
        *,
        page: int = 1,
        page_size: int = 20,
        tx: AsyncConnection | None = None,
    ) -> Page[DomainPromotion]:
        window = and_(self.table.c.starts_at <= now, self.table.c.ends_at >= now)
        return await self.search(
            None,
            sort_by="starts_at",
            page=page,
            page_size=page_size,
            conditions=[window],
            tx=tx,
        )

    async def apply_promotion(
        self,
        id: UUID,
        client_id: UUID,
        purchase: Purchase,
        now: datetime,
        *,
        tx: AsyncConnection | None = None,
    ) -> PromotionApplication:
        async def work() -> PromotionApplication:
            stmt = select(self.table).where(self._pk[0] == id).limit(1)
            found = await self._fetch_models(stmt, tx)
            return promotion_rules.apply(found[0] if found else None, purchase, client_id, now)

        return await self._execute(
            "apply_promotion",
            {"id": id, "client_id": client_id, "purchase": purchase.model_dump(mode="json")},
            work,
        )


class SqlDiscountCodeRepository(SqlRepository[DomainDiscountCode], DiscountCodeRepository):
    orm_model = OrmDiscountCode
    model = DomainDiscountCode
    entity_name = "DiscountCode"

    async def find_by_code(
        self, code: str, *, tx: AsyncConnection | None = None
    ) -> DomainDiscountCode | None:
        return await self.find_one({"code": normalize_code(code)}, tx=tx)

    async def _client_usage(
        self, code_id: UUID, client_id: UUID, tx: AsyncConnection | None
    ) -> int:
        usages = OrmDiscountCodeUsage.__table__
        stmt = select(func.coalesce(func.sum(usages.c.usage_count), 0)).where(
            usages.c.discount_code_id == code_id,
            usages.c.client_id == client_id,
            usages.c.deleted_at.is_(None),
        )
        return self._as_count(await self._fetch_scalar(stmt, tx))

    async def _usage_check(
        self,
        found: DomainDiscountCode | None,
        client_id: UUID,
        now: datetime,
        tx: AsyncConnection | None,
    ) -> UsageCheck:
        if found is None or not found.is_valid_at(now):
            return UsageCheck(False, INVALID_CODE)
        if found.global_remaining() == 0:
            return UsageCheck(False, GLOBAL_LIMIT_EXCEEDED)
        if found.max_redemptions_per_user is not None:
            used = await self._client_usage(found.id, client_id, tx)
            if used >= found.max_redemptions_per_user:
                return UsageCheck(False, USER_LIMIT_EXCEEDED)
        return UsageCheck(True)

    async def is_valid(self, code: str, now: datetime, *, tx: AsyncConnection | None = None) -> bool:
        found = await self.find_by_code(code, tx=tx)
        return found is not None and found.is_valid_at(now)

    async def can_be_used(
        self, code: str, client_id: UUID, now: datetime, *, tx: AsyncConnection | None = None
    ) -> UsageCheck:
        async def work() -> UsageCheck:
            found = await self.find_by_code(code, tx=tx)
            return await self._usage_check(found, client_id, now, tx)

        return await self._execute("can_be_used", {"code": code, "client_id": client_id}, work)

    async def calculate_discount(
        self, code: str, amount: Decimal, *, tx: AsyncConnection | None = None
    ) -> DiscountCalculation | None:
        found = await self.find_by_code(code, tx=tx)
        return found.calculate_discount(amount) if found is not None else None

    async def get_remaining_uses(
        self, code: str, *, tx: AsyncConnection | None = None
    ) -> RemainingUses:
        found = await self.find_by_code(code, tx=tx)
        if found is None:
            return RemainingUses(global_remaining=0, unlimited=False)
        remaining = found.global_remaining()
        return RemainingUses(global_remaining=remaining, unlimited=remaining is None)

    async def has_been_used_by_client(
        self, code: str, client_id: UUID, *, tx: AsyncConnection | None = None
    ) -> bool:
        async def work() -> bool:
            found = await self.find_by_code(code, tx=tx)
            if found is None:
                return False
            usages = OrmDiscountCodeUsage.__table__
            stmt = select(func.count()).where(
                usages.c.discount_code_id == found.id,
                usages.c.client_id == client_id,
                usages.c.deleted_at.is_(None),
            )
            return self._as_count(await self._fetch_scalar(stmt, tx)) > 0

        return await self._execute(
            "has_been_used_by_client", {"code": code, "client_id": client_id}, work
        )

    async def check_limits(
        self, code: str, client_id: UUID | None = None, *, tx: AsyncConnection | None = None
    ) -> UsageLimits:
        async def work() -> UsageLimits:
            found = await self.find_by_code(code, tx=tx)
            if found is None:
                return UsageLimits(True, True, 0, 0)
            global_remaining = found.global_remaining()
            user_reached, user_remaining = False, None
            if client_id is not None and found.max_redemptions_per_user is not None:
                used = await self._client_usage(found.id, client_id, tx)
                user_reached = used >= found.max_redemptions_per_user
                user_remaining = max(0, found.max_redemptions_per_user - used)
            return UsageLimits(
                global_limit_reached=global_remaining == 0,
                user_limit_reached=user_reached,
                global_remaining=global_remaining,
                user_remaining=user_remaining,
            )

        return await self._execute("check_limits", {"code": code, "client_id": client_id}, work)

    async def check_eligibility(
        self,
        code: str,
        client_id: UUID,
        purchase: Purchase,
        now: datetime,
        *,
        tx: AsyncConnection | None = None,
    ) -> DiscountEligibility:
        async def work() -> DiscountEligibility:
            found = await self.find_by_code(code, tx=tx)
            if found is not None and found.is_expired_at(now):
                return DiscountEligibility(False, EXPIRED)
            check = await self._usage_check(found, client_id, now, tx)
            if not check.can_use or found is None:
                return DiscountEligibility(False, check.reason)
            if (
                found.discount_type is DiscountType.FIXED_AMOUNT
                and found.currency != purchase.currency
            ):
                return DiscountEligibility(False, CURRENCY_MISMATCH)
            if (
                found.minimum_purchase_amount is not None
                and purchase.amount < found.minimum_purchase_amount
            ):
                return DiscountEligibility(False, BELOW_MINIMUM_PURCHASE)
            return DiscountEligibility(True, preview=found.calculate_discount(purchase.amount))

        return await self._execute(
            "check_eligibility",
            {"code": code, "client_id": client_id, "purchase": purchase.model_dump(mode="json")},
            work,
        )

    async def increment_usage(
        self,
        code: str,
        client_id: UUID,
        now: datetime,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainDiscountCodeUsage:
        async def work() -> DomainDiscountCodeUsage:
            codes = self.table
            usages = OrmDiscountCodeUsage.__table__
            stamps: dict[str, Any] = {"updated_at": now}
            if actor_id is not None:
                stamps["updated_by_id"] = actor_id
            async with self._connect(tx) as conn:
                found = (
                    await conn.execute(
                        select(codes).where(self._condition({"code": normalize_code(code)}))
                    )
                ).first()
                if found is None:
                    raise NotFoundError(f"Discount code {code} not found")
                # Each counter is only bumped while still under its cap.
                bumped = (
                    await conn.execute(
                        update(codes)
                        .where(
                            codes.c.id == found.id,
                            or_(
                                codes.c.max_redemptions_global.is_(None),
                                codes.c.used_count_global < codes.c.max_redemptions_global,
                            ),
                        )
                        .values(used_count_global=codes.c.used_count_global + 1, **stamps)
                        .returning(codes.c.id)
                    )
                ).first()
                if bumped is None:
                    raise BusinessRuleError(f"Discount code {found.code} is exhausted")

                own_row = and_(
                    usages.c.discount_code_id == found.id,
                    usages.c.client_id == client_id,
                    usages.c.deleted_at.is_(None),
                )
                cap = found.max_redemptions_per_user
                under_cap = usages.c.usage_count < cap if cap is not None else true()
                row = (
                    await conn.execute(
                        update(usages)
                        .where(own_row, under_cap)
                        .values(usage_count=usages.c.usage_count + 1, last_used_at=now, **stamps)
                        .returning(*usages.c)
                    )
                ).first()
                if row is None:
                    existing = (await conn.execute(select(usages.c.id).where(own_row))).first()
                    if existing is not None:
                        await conn.execute(
                            update(codes)
                            .where(codes.c.id == found.id)
                            .values(used_count_global=codes.c.used_count_global - 1)
                        )
                        raise BusinessRuleError(
                            f"Client {client_id} has reached the limit for {found.code}"
                        )
                    row = (
                        await conn.execute(
                            insert(usages)
                            .values(
                                id=uuid4(),
                                discount_code_id=found.id,
                                client_id=client_id,
                                usage_count=1,
                                first_used_at=now,
                                last_used_at=now,
                                created_at=now,
                                created_by_id=actor_id,
                                **stamps,
                            )
                            .returning(*usages.c)
                        )
                    ).first()
            return self._to_domain(row, DomainDiscountCodeUsage)

        return await self._execute(
            "increment_usage", {"code": code, "client_id": client_id}, work
        )


class SqlDiscountCodeUsageRepository(
    SqlRepository[DomainDiscountCodeUsage], DiscountCodeUsageRepository
):
    orm_model = OrmDiscountCodeUsage
    model = DomainDiscountCodeUsage
    entity_name = "DiscountCodeUsage"

    async def _find_by(
        self, operation: str, where: dict[str, Any], tx: AsyncConnection | None
    ) -> list[DomainDiscountCodeUsage]:
        async def work() -> list[DomainDiscountCodeUsage]:
            stmt = (
                select(self.table)
                .where(self._condition(where))
                .order_by(self.table.c.last_used_at.desc(), self.table.c.id)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute(operation, where, work)

    async def find_by_client(
        self, client_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainDiscountCodeUsage]:
        return await self._find_by("find_by_client", {"client_id": client_id}, tx)

    async def find_by_discount_code(
        self, discount_code_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainDiscountCodeUsage]:
        return await self._find_by(
            "find_by_discount_code", {"discount_code_id": discount_code_id}, tx
        )
