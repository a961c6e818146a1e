"""SQLAlchemy implementations of the advertising repositories."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.advertising import (
    AdPricingCatalog as DomainAdPricingCatalog,
    AdSlotReservation as DomainAdSlotReservation,
)
from booking_core.domain.models.enums import CampaignChannel, ReservationStatus
from booking_core.domain.repositories.advertising import (
    AdPricingCatalogRepository,
    AdSlotReservationRepository,
)
from booking_core.infrastructure.persistence.models.advertising import (
    AdPricingCatalog as OrmAdPricingCatalog,
    AdSlotReservation as OrmAdSlotReservation,
)

from .base import SqlRepository


class SqlAdPricingCatalogRepository(
    SqlRepository[DomainAdPricingCatalog], AdPricingCatalogRepository
):
    orm_model = OrmAdPricingCatalog
    model = DomainAdPricingCatalog
    entity_name = "AdPricingCatalog"

    async def find_active_for_channel(
        self, channel: CampaignChannel, *, tx: AsyncConnection | None = None
    ) -> list[DomainAdPricingCatalog]:
        return await self.find_all({"channel": channel, "is_active": True}, tx=tx)


class SqlAdSlotReservationRepository(
    SqlRepository[DomainAdSlotReservation], AdSlotReservationRepository
):
    orm_model = OrmAdSlotReservation
    model = DomainAdSlotReservation
    entity_name = "AdSlotReservation"

    async def _set_status(
        self,
        id: UUID,
        status: ReservationStatus,
        expected: ReservationStatus | None,
        actor_id: UUID | None,
        tx: AsyncConnection | None,
    ) -> DomainAdSlotReservation:
        where: dict[str, Any] = {"id": id}
        if expected is not None:
            where["status"] = expected
        updated = await self.update(where, {"status": status}, actor_id=actor_id, tx=tx)
        if updated is not None:
            return updated
        current = await self.find_by_id(id, tx=tx) if expected is not None else None
        if current is None:
            raise NotFoundError(f"Ad slot reservation {id} not found")
        raise BusinessRuleError(
            f"Invalid status transition from {current.status.value} to {status.value}"
        )

    async def activate(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainAdSlotReservation:
        return await self._set_status(id, ReservationStatus.ACTIVE, expected, actor_id, tx)

    async def pause(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainAdSlotReservation:
        return await self._set_status(id, ReservationStatus.PAUSED, expected, actor_id, tx)

    async def cancel(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainAdSlotReservation:
        return await self._set_status(id, ReservationStatus.CANCELLED, expected, actor_id, tx)

    async def end(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> DomainAdSlotReservation:
        return await self._set_status(id, ReservationStatus.ENDED, expected, actor_id, tx)

    async def find_by_campaign(
        self, campaign_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainAdSlotReservation]:
        async def work() -> list[DomainAdSlotReservation]:
            stmt = (
                select(self.table)
                .where(self._condition({"campaign_id": campaign_id}))
                .order_by(self.table.c.starts_at)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_campaign", {"campaign_id": campaign_id}, work)

    async def find_by_status(
        self, status: ReservationStatus, *, tx: AsyncConnection | None = None
    ) -> list[DomainAdSlotReservation]:
        return await self.find_all({"status": status}, tx=tx)
