"""Catalog repository interfaces: destinations, accommodations, tags, events."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from booking_core.domain.models.base import Page
from booking_core.domain.models.catalog import (
    Accommodation,
    AccommodationWithRelations,
    Destination,
    DestinationWithRelations,
    Event,
    EventOrganizer,
    EventWithRelations,
    Tag,
)
from booking_core.domain.models.enums import TaggableEntity

from .base import Repository, Transaction


class DestinationRepository(Repository[Destination]):
    """Relations: "accommodations"."""

    @abstractmethod
    async def find_with_relations(
        self, where: Mapping[str, Any], relations: Iterable[str], *, tx: Transaction = None
    ) -> DestinationWithRelations | None:
        """Return the destination with its live accommodations when requested."""


class AccommodationRepository(Repository[Accommodation]):
    """Relations: "destination", "tags"."""

    @abstractmethod
    async def find_with_relations(
        self, where: Mapping[str, Any], relations: Iterable[str], *, tx: Transaction = None
    ) -> AccommodationWithRelations | None:
        """Return the accommodation with its destination and/or tags when requested."""

    @abstractmethod
    async def find_by_destination(
        self, destination_id: UUID, *, tx: Transaction = None
    ) -> list[Accommodation]:
        """Return live accommodations in the destination, ordered by name."""

    @abstractmethod
    async def search_accommodations(
        self,
        where: Mapping[str, Any] | None = None,
        *,
        q: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        sort_by: str | None = None,
        sort_order: str = "asc",
        page: int = 1,
        page_size: int = 20,
        tx: Transaction = None,
    ) -> Page[Accommodation]:
        """search() plus a case-insensitive name match and an inclusive price range."""


class TagRepository(Repository[Tag]):
    @abstractmethod
    async def find_for_entity(
        self, entity_type: TaggableEntity, entity_id: UUID, *, tx: Transaction = None
    ) -> list[Tag]:
        """Return live tags assigned to the entity, ordered by name."""

    @abstractmethod
    async def add_to_entity(
        self,
        tag_id: UUID,
        entity_type: TaggableEntity,
        entity_id: UUID,
        *,
        tx: Transaction = None,
    ) -> bool:
        """Assign the tag; return False when it was already assigned."""

    @abstractmethod
    async def remove_from_entity(
        self,
        tag_id: UUID,
        entity_type: TaggableEntity,
        entity_id: UUID,
        *,
        tx: Transaction = None,
    ) -> int:
        """Unassign the tag; return the number of assignments removed."""

    @abstractmethod
    async def count_usage(self, tag_id: UUID, *, tx: Transaction = None) -> int:
        """Return how many entities carry the tag."""


class EventOrganizerRepository(Repository[EventOrganizer]):
    pass


class EventRepository(Repository[Event]):
    """Relations: "organizer", "tags"."""

    @abstractmethod
    async def find_by_date_range(
        self, start: datetime, end: datetime, *, tx: Transaction = None
    ) -> list[Event]:
        """Return live events overlapping [start, end], ordered by start_at."""

    @abstractmethod
    async def find_upcoming(
        self, now: datetime, limit: int = 10, *, tx: Transaction = None
    ) -> list[Event]:
        """Return the next *limit* live events starting at or after *now*."""

    @abstractmethod
    async def find_with_relations(
        self, where: Mapping[str, Any], relations: Iterable[str], *, tx: Transaction = None
    ) -> EventWithRelations | None:
        """Return the event with its organizer and/or tags when requested."""
