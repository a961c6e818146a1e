"""Catalog domain models: destinations, accommodations, tags and events.

Each entity has a frozen read model plus Create / Update / Search input
schemas. Update schemas make every field optional; omitted fields are left as is.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import Field, model_validator

from .base import (
    AuditedEntity,
    CurrencyCode,
    InputModel,
    SearchParams,
    SluggedInput,
    UtcDateTime,
)
from .enums import (
    AccommodationType,
    EventCategory,
    LifecycleStatus,
    ModerationStatus,
    TaggableEntity,
    Visibility,
)


# --- Destinations ---

class Destination(AuditedEntity):
    slug: str
    name: str
    summary: str | None = None
    description: str | None = None
    country: str
    region: str | None = None
    city: str | None = None
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    is_featured: bool = False


class DestinationCreate(SluggedInput):
    slug: str = Field(min_length=1, max_length=120)
    name: str = Field(min_length=2, max_length=120)
    summary: str | None = Field(default=None, max_length=300)
    description: str | None = None
    country: str = Field(min_length=2, max_length=80)
    region: str | None = None
    city: str | None = None
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    is_featured: bool = False


class DestinationUpdate(InputModel):
    slug: str | None = Field(default=None, min_length=1, max_length=120)
    name: str | None = Field(default=None, min_length=2, max_length=120)
    summary: str | None = Field(default=None, max_length=300)
    description: str | None = None
    country: str | None = Field(default=None, min_length=2, max_length=80)
    region: str | None = None
    city: str | None = None
    lifecycle_state: LifecycleStatus | None = None
    visibility: Visibility | None = None
    is_featured: bool | None = None


class DestinationSearch(SearchParams):
    country: str | None = None
    city: str | None = None
    lifecycle_state: LifecycleStatus | None = None
    visibility: Visibility | None = None
    is_featured: bool | None = None


# --- Tags ---

class Tag(AuditedEntity):
    slug: str
    name: str
    color: str | None = None
    notes: str | None = None
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE


class TagCreate(SluggedInput):
    slug: str = Field(min_length=1, max_length=60)
    name: str = Field(min_length=1, max_length=60)
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    notes: str | None = Field(default=None, max_length=300)
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE


class TagUpdate(InputModel):
    slug: str | None = Field(default=None, min_length=1, max_length=60)
    name: str | None = Field(default=None, min_length=1, max_length=60)
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    notes: str | None = Field(default=None, max_length=300)
    lifecycle_state: LifecycleStatus | None = None


class TagSearch(SearchParams):
    slug: str | None = None
    lifecycle_state: LifecycleStatus | None = None


class EntityTag(InputModel):
    """Assignment of a tag to an accommodation, destination or event."""

    tag_id: UUID
    entity_type: TaggableEntity
    entity_id: UUID


# --- Accommodations ---

class Accommodation(AuditedEntity):
    slug: str
    name: str
    summary: str | None = None
    description: str | None = None
    type: AccommodationType
    destination_id: UUID
    owner_id: UUID
    price: Decimal | None = None
    currency: str = "ARS"
    max_guests: int = 1
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    moderation_state: ModerationStatus = ModerationStatus.PENDING
    is_featured: bool = False


class AccommodationWithRelations(Accommodation):
    """Accommodation plus whichever relations were requested.

    Relations that were not requested stay None; a requested but empty
    collection is an empty list.
    """

    destination: Destination | None = None
    tags: list[Tag] | None = None


class AccommodationCreate(SluggedInput):
    slug: str = Field(min_length=1, max_length=120)
    name: str = Field(min_length=3, max_length=120)
    summary: str | None = Field(default=None, max_length=300)
    description: str | None = None
    type: AccommodationType
    destination_id: UUID
    owner_id: UUID
    price: Decimal | None = Field(default=None, ge=0)
    currency: CurrencyCode = "ARS"
    max_guests: int = Field(default=1, ge=1, le=100)
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    moderation_state: ModerationStatus = ModerationStatus.PENDING
    is_featured: bool = False


class AccommodationUpdate(InputModel):
    slug: str | None = Field(default=None, min_length=1, max_length=120)
    name: str | None = Field(default=None, min_length=3, max_length=120)
    summary: str | None = Field(default=None, max_length=300)
    description: str | None = None
    type: AccommodationType | None = None
    destination_id: UUID | None = None
    price: Decimal | None = Field(default=None, ge=0)
    currency: CurrencyCode | None = None
    max_guests: int | None = Field(default=None, ge=1, le=100)
    lifecycle_state: LifecycleStatus | None = None
    visibility: Visibility | None = None
    moderation_state: ModerationStatus | None = None
    is_featured: bool | None = None


class AccommodationSearch(SearchParams):
    """Sparse equality filters plus a free-text name match and price range."""

    type: AccommodationType | None = None
    destination_id: UUID | None = None
    owner_id: UUID | None = None
    lifecycle_state: LifecycleStatus | None = None
    visibility: Visibility | None = None
    is_featured: bool | None = None
    q: str | None = Field(default=None, min_length=1, max_length=100)
    min_price: Decimal | None = Field(default=None, ge=0)
    max_price: Decimal | None = Field(default=None, ge=0)

    def filters(self) -> dict:
        filters = super().filters()
        for key in ("q", "min_price", "max_price"):
            filters.pop(key, None)
        return filters

    @model_validator(mode="after")
    def _check_price_range(self) -> AccommodationSearch:
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        return self


class DestinationWithRelations(Destination):
    accommodations: list[Accommodation] | None = None


# --- Events ---

class EventOrganizer(AuditedEntity):
    name: str
    contact_email: str | None = None
    website: str | None = None


class EventOrganizerCreate(InputModel):
    name: str = Field(min_length=2, max_length=120)
    contact_email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    website: str | None = None


class EventOrganizerUpdate(InputModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    contact_email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    website: str | None = None


class Event(AuditedEntity):
    slug: str
    name: str
    summary: str | None = None
    category: EventCategory
    organizer_id: UUID | None = None
    start_at: UtcDateTime
    end_at: UtcDateTime | None = None
    location: str | None = None
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    is_featured: bool = False


class EventWithRelations(Event):
    organizer: EventOrganizer | None = None
    tags: list[Tag] | None = None


class EventCreate(SluggedInput):
    slug: str = Field(min_length=1, max_length=120)
    name: str = Field(min_length=3, max_length=120)
    summary: str | None = Field(default=None, max_length=300)
    category: EventCategory
    organizer_id: UUID | None = None
    start_at: UtcDateTime
    end_at: UtcDateTime | None = None
    location: str | None = None
    lifecycle_state: LifecycleStatus = LifecycleStatus.ACTIVE
    visibility: Visibility = Visibility.PUBLIC
    is_featured: bool = False

    @model_validator(mode="after")
    def _check_dates(self) -> EventCreate:
        if self.end_at is not None and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class EventUpdate(InputModel):
    slug: str | None = Field(default=None, min_length=1, max_length=120)
    name: str | None = Field(default=None, min_length=3, max_length=120)
    summary: str | None = Field(default=None, max_length=300)
    category: EventCategory | None = None
    organizer_id: UUID | None = None
    start_at: UtcDateTime | None = None
    end_at: UtcDateTime | None = None
    location: str | None = None
    lifecycle_state: LifecycleStatus | None = None
    visibility: Visibility | None = None
    is_featured: bool | None = None


class EventSearch(SearchParams):
    category: EventCategory | None = None
    organizer_id: UUID | None = None
    lifecycle_state: LifecycleStatus | None = None
    visibility: Visibility | None = None
    is_featured: bool | None = None
