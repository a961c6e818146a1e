"""Catalog ORM models: destinations, accommodations, tags, events."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from booking_core.infrastructure.database import Base

from .mixins import AuditMixin


class Destination(AuditMixin, Base):
    __tablename__ = "destinations"
    __table_args__ = (UniqueConstraint("slug", name="uq_destinations_slug"),)

    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    country: Mapped[str] = mapped_column(Text, nullable=False)
    region: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    lifecycle_state: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="PUBLIC")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Accommodation(AuditMixin, Base):
    """Bookable lodging owned by a host.

    owner_id is the host's actor id; it drives the update/delete "own"
    permissions.
    """

    __tablename__ = "accommodations"
    __table_args__ = (UniqueConstraint("slug", name="uq_accommodations_slug"),)

    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)  # HOTEL / CABIN / …
    destination_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("destinations.id"), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="ARS")  # ISO 4217
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    lifecycle_state: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="PUBLIC")
    moderation_state: Mapped[str] = mapped_column(Text, nullable=False, default="PENDING")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Tag(AuditMixin, Base):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("slug", name="uq_tags_slug"),)

    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    lifecycle_state: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")


class EntityTag(Base):
    """Polymorphic tag assignment; entity_type names the target table."""

    __tablename__ = "entity_tags"

    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )
    entity_type: Mapped[str] = mapped_column(Text, primary_key=True)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, index=True)


class EventOrganizer(AuditMixin, Base):
    __tablename__ = "event_organizers"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Event(AuditMixin, Base):
    __tablename__ = "events"
    __table_args__ = (UniqueConstraint("slug", name="uq_events_slug"),)

    slug: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    organizer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("event_organizers.id"), nullable=True
    )
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    lifecycle_state: Mapped[str] = mapped_column(Text, nullable=False, default="ACTIVE")
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="PUBLIC")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
