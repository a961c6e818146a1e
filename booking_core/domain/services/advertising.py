"""Ad pricing catalog and ad slot reservation services."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from booking_core.domain.errors import BusinessRuleError, NotFoundError
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.advertising import (
    AdPricingCatalog,
    AdPricingCatalogCreate,
    AdPricingCatalogSearch,
    AdPricingCatalogUpdate,
    AdSlotReservation,
    AdSlotReservationCreate,
    AdSlotReservationSearch,
    AdSlotReservationUpdate,
    PriceQuoteRequest,
)
from booking_core.domain.models.enums import Permission, ReservationStatus
from booking_core.domain.repositories.advertising import (
    AdPricingCatalogRepository,
    AdSlotReservationRepository,
)

from .base import BaseCrudService, ServiceOutput
from .permissions import EntityPermissions, require_permission


class AdPricingCatalogService(BaseCrudService[AdPricingCatalog]):
    entity_name = "AdPricingCatalog"
    model = AdPricingCatalog
    permissions = EntityPermissions(
        create=Permission.AD_PRICING_CREATE,
        update_any=Permission.AD_PRICING_UPDATE,
        delete_any=Permission.AD_PRICING_DELETE,
        restore=Permission.AD_PRICING_RESTORE,
        hard_delete=Permission.AD_PRICING_HARD_DELETE,
    )
    create_schema = AdPricingCatalogCreate
    update_schema = AdPricingCatalogUpdate
    search_schema = AdPricingCatalogSearch

    repository: AdPricingCatalogRepository

    async def calculate_price(self, actor: Actor, request: Any) -> ServiceOutput[Decimal]:
        """Quote a campaign against a live, active catalog.

        10 000 CPM impressions on a weekend at base 10 with a 1.5 weekend
        multiplier cost 150.00.
        """

        async def work() -> Decimal:
            quote = self._validate(PriceQuoteRequest, request)
            catalog = await self._load_live(quote.catalog_id)
            if not catalog.is_active:
                raise BusinessRuleError(f"Pricing catalog {quote.catalog_id} is not active")
            return catalog.price_for(
                impressions=quote.impressions,
                clicks=quote.clicks,
                is_weekend=quote.is_weekend,
                is_holiday=quote.is_holiday,
            )

        return await self._run("calculate_price", work)


class AdSlotReservationService(BaseCrudService[AdSlotReservation]):
    """Status changes are checked against the reservation state machine
    before anything is written."""

    entity_name = "AdSlotReservation"
    model = AdSlotReservation
    permissions = EntityPermissions(
        create=Permission.AD_RESERVATION_CREATE,
        update_any=Permission.AD_RESERVATION_UPDATE,
        delete_any=Permission.AD_RESERVATION_DELETE,
        restore=Permission.AD_RESERVATION_RESTORE,
        hard_delete=Permission.AD_RESERVATION_HARD_DELETE,
    )
    create_schema = AdSlotReservationCreate
    update_schema = AdSlotReservationUpdate
    search_schema = AdSlotReservationSearch

    repository: AdSlotReservationRepository

    async def _transition(
        self, method: str, actor: Actor, id: UUID, target: ReservationStatus
    ) -> ServiceOutput[AdSlotReservation]:
        async def work() -> AdSlotReservation:
            reservation = await self._load_live(id)
            require_permission(
                actor, Permission.AD_RESERVATION_MANAGE_STATUS, "manage reservation status"
            )
            if not reservation.can_transition_to(target):
                raise BusinessRuleError(
                    f"Invalid status transition from {reservation.status.value} to {target.value}"
                )
            change = getattr(self.repository, method)
            updated = await change(id, expected=reservation.status, actor_id=actor.id)
            if updated is None:
                raise NotFoundError(f"Ad slot reservation {id} not found")
            return updated

        return await self._run(method, work)

    async def activate(self, actor: Actor, id: UUID) -> ServiceOutput[AdSlotReservation]:
        return await self._transition("activate", actor, id, ReservationStatus.ACTIVE)

    async def pause(self, actor: Actor, id: UUID) -> ServiceOutput[AdSlotReservation]:
        return await self._transition("pause", actor, id, ReservationStatus.PAUSED)

    async def cancel(self, actor: Actor, id: UUID) -> ServiceOutput[AdSlotReservation]:
        return await self._transition("cancel", actor, id, ReservationStatus.CANCELLED)

    async def end(self, actor: Actor, id: UUID) -> ServiceOutput[AdSlotReservation]:
        return await self._transition("end", actor, id, ReservationStatus.ENDED)
