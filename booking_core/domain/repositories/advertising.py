"""Advertising repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from uuid import UUID

from booking_core.domain.models.advertising import AdPricingCatalog, AdSlotReservation
from booking_core.domain.models.enums import CampaignChannel, ReservationStatus

from .base import Repository, Transaction


class AdPricingCatalogRepository(Repository[AdPricingCatalog]):
    @abstractmethod
    async def find_active_for_channel(
        self, channel: CampaignChannel, *, tx: Transaction = None
    ) -> list[AdPricingCatalog]:
        """Return active, live catalogs for the channel."""


class AdSlotReservationRepository(Repository[AdSlotReservation]):
    """Status helpers are thin wrappers over update() that raise NotFoundError
    when no reservation matches. Transition validity is the caller's concern.

    Passing ``expected`` makes the write conditional on the stored status
    still being that value; a reservation that moved on in the meantime
    raises BusinessRuleError instead of being overwritten.
    """

    @abstractmethod
    async def activate(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> AdSlotReservation:
        """Set status ACTIVE."""

    @abstractmethod
    async def pause(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> AdSlotReservation:
        """Set status PAUSED."""

    @abstractmethod
    async def cancel(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> AdSlotReservation:
        """Set status CANCELLED."""

    @abstractmethod
    async def end(
        self,
        id: UUID,
        *,
        expected: ReservationStatus | None = None,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> AdSlotReservation:
        """Set status ENDED."""

    @abstractmethod
    async def find_by_campaign(
        self, campaign_id: UUID, *, tx: Transaction = None
    ) -> list[AdSlotReservation]:
        """Return the campaign's live reservations ordered by starts_at."""

    @abstractmethod
    async def find_by_status(
        self, status: ReservationStatus, *, tx: Transaction = None
    ) -> list[AdSlotReservation]:
        """Return live reservations in the given status."""
