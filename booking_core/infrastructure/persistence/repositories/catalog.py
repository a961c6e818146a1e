"""SQLAlchemy implementations of the catalog repositories."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Select, and_, delete, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncConnection

from booking_core.domain.models.base import Page
from booking_core.domain.models.catalog import (
    Accommodation as DomainAccommodation,
    AccommodationWithRelations,
    Destination as DomainDestination,
    DestinationWithRelations,
    Event as DomainEvent,
    EventOrganizer as DomainEventOrganizer,
    EventWithRelations,
    Tag as DomainTag,
)
from booking_core.domain.models.enums import TaggableEntity
from booking_core.domain.repositories.catalog import (
    AccommodationRepository,
    DestinationRepository,
    EventOrganizerRepository,
    EventRepository,
    TagRepository,
)
from booking_core.infrastructure.persistence.models.catalog import (
    Accommodation as OrmAccommodation,
    Destination as OrmDestination,
    EntityTag as OrmEntityTag,
    Event as OrmEvent,
    EventOrganizer as OrmEventOrganizer,
    Tag as OrmTag,
)

from .base import SqlRepository

_ENTITY_TAGS = OrmEntityTag.__table__


def _requested(relations: Iterable[str], supported: set[str], entity_name: str) -> set[str]:
    wanted = set(relations)
    unknown = wanted - supported
    if unknown:
        raise ValueError(f"Unknown {entity_name} relation(s): {sorted(unknown)}")
    return wanted


def _tags_for(entity_type: TaggableEntity, entity_id: UUID) -> Select[Any]:
    tags = OrmTag.__table__
    return (
        select(tags)
        .join(_ENTITY_TAGS, _ENTITY_TAGS.c.tag_id == tags.c.id)
        .where(
            _ENTITY_TAGS.c.entity_type == entity_type.value,
            _ENTITY_TAGS.c.entity_id == entity_id,
            tags.c.deleted_at.is_(None),
        )
        .order_by(tags.c.name)
    )


class SqlDestinationRepository(SqlRepository[DomainDestination], DestinationRepository):
    orm_model = OrmDestination
    model = DomainDestination
    entity_name = "Destination"

    async def find_with_relations(
        self,
        where: Mapping[str, Any],
        relations: Iterable[str],
        *,
        tx: AsyncConnection | None = None,
    ) -> DestinationWithRelations | None:
        relations = list(relations)

        async def work() -> DestinationWithRelations | None:
            wanted = _requested(relations, {"accommodations"}, self.entity_name)
            accommodations = OrmAccommodation.__table__
            async with self._connect(tx) as conn:
                stmt = select(self.table).where(self._condition(where)).limit(1)
                row = (await conn.execute(stmt)).first()
                if row is None:
                    return None
                extras: dict[str, Any] = {}
                if "accommodations" in wanted:
                    rows = await conn.execute(
                        select(accommodations)
                        .where(
                            accommodations.c.destination_id == row.id,
                            accommodations.c.deleted_at.is_(None),
                        )
                        .order_by(accommodations.c.name)
                    )
                    extras["accommodations"] = [
                        self._to_domain(r, DomainAccommodation) for r in rows
                    ]
            return self._hydrate(row, DestinationWithRelations, **extras)

        return await self._execute(
            "find_with_relations", {"where": where, "relations": relations}, work
        )


class SqlAccommodationRepository(SqlRepository[DomainAccommodation], AccommodationRepository):
    orm_model = OrmAccommodation
    model = DomainAccommodation
    entity_name = "Accommodation"

    async def find_with_relations(
        self,
        where: Mapping[str, Any],
        relations: Iterable[str],
        *,
        tx: AsyncConnection | None = None,
    ) -> AccommodationWithRelations | None:
        relations = list(relations)

        async def work() -> AccommodationWithRelations | None:
            wanted = _requested(relations, {"destination", "tags"}, self.entity_name)
            destinations = OrmDestination.__table__
            async with self._connect(tx) as conn:
                stmt = select(self.table).where(self._condition(where)).limit(1)
                row = (await conn.execute(stmt)).first()
                if row is None:
                    return None
                extras: dict[str, Any] = {}
                if "destination" in wanted:
                    dest = (
                        await conn.execute(
                            select(destinations).where(destinations.c.id == row.destination_id)
                        )
                    ).first()
                    extras["destination"] = (
                        self._to_domain(dest, DomainDestination) if dest else None
                    )
                if "tags" in wanted:
                    rows = await conn.execute(_tags_for(TaggableEntity.ACCOMMODATION, row.id))
                    extras["tags"] = [self._to_domain(r, DomainTag) for r in rows]
            return self._hydrate(row, AccommodationWithRelations, **extras)

        return await self._execute(
            "find_with_relations", {"where": where, "relations": relations}, work
        )

    async def find_by_destination(
        self, destination_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainAccommodation]:
        async def work() -> list[DomainAccommodation]:
            stmt = (
                select(self.table)
                .where(self._condition({"destination_id": destination_id}))
                .order_by(self.table.c.name)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute(
            "find_by_destination", {"destination_id": destination_id}, work
        )

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
        tx: AsyncConnection | None = None,
    ) -> Page[DomainAccommodation]:
        conditions = []
        if q:
            pattern = f"%{q.lower()}%"
            conditions.append(
                or_(
                    func.lower(self.table.c.name).like(pattern),
                    func.lower(self.table.c.summary).like(pattern),
                )
            )
        if min_price is not None:
            conditions.append(self.table.c.price >= min_price)
        if max_price is not None:
            conditions.append(self.table.c.price <= max_price)
        return await self.search(
            where,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
            conditions=conditions,
            tx=tx,
        )


class SqlTagRepository(SqlRepository[DomainTag], TagRepository):
    orm_model = OrmTag
    model = DomainTag
    entity_name = "Tag"

    def _link_condition(self, tag_id: UUID, entity_type: TaggableEntity, entity_id: UUID) -> Any:
        return and_(
            _ENTITY_TAGS.c.tag_id == tag_id,
            _ENTITY_TAGS.c.entity_type == entity_type.value,
            _ENTITY_TAGS.c.entity_id == entity_id,
        )

    async def find_for_entity(
        self, entity_type: TaggableEntity, entity_id: UUID, *, tx: AsyncConnection | None = None
    ) -> list[DomainTag]:
        async def work() -> list[DomainTag]:
            return await self._fetch_models(_tags_for(entity_type, entity_id), tx)

        return await self._execute(
            "find_for_entity", {"entity_type": entity_type, "entity_id": entity_id}, work
        )

    async def add_to_entity(
        self,
        tag_id: UUID,
        entity_type: TaggableEntity,
        entity_id: UUID,
        *,
        tx: AsyncConnection | None = None,
    ) -> bool:
        params = {"tag_id": tag_id, "entity_type": entity_type, "entity_id": entity_id}

        async def work() -> bool:
            async with self._connect(tx) as conn:
                existing = await conn.execute(
                    select(func.count())
                    .select_from(_ENTITY_TAGS)
                    .where(self._link_condition(tag_id, entity_type, entity_id))
                )
                if self._as_count(existing.scalar()) > 0:
                    return False
                await conn.execute(
                    insert(_ENTITY_TAGS).values(
                        tag_id=tag_id, entity_type=entity_type.value, entity_id=entity_id
                    )
                )
            return True

        return await self._execute("add_to_entity", params, work)

    async def remove_from_entity(
        self,
        tag_id: UUID,
        entity_type: TaggableEntity,
        entity_id: UUID,
        *,
        tx: AsyncConnection | None = None,
    ) -> int:
        params = {"tag_id": tag_id, "entity_type": entity_type, "entity_id": entity_id}

        async def work() -> int:
            stmt = delete(_ENTITY_TAGS).where(self._link_condition(tag_id, entity_type, entity_id))
            async with self._connect(tx) as conn:
                return (await conn.execute(stmt)).rowcount

        return await self._execute("remove_from_entity", params, work)

    async def count_usage(self, tag_id: UUID, *, tx: AsyncConnection | None = None) -> int:
        async def work() -> int:
            stmt = (
                select(func.count())
                .select_from(_ENTITY_TAGS)
                .where(_ENTITY_TAGS.c.tag_id == tag_id)
            )
            return self._as_count(await self._fetch_scalar(stmt, tx))

        return await self._execute("count_usage", {"tag_id": tag_id}, work)


class SqlEventOrganizerRepository(SqlRepository[DomainEventOrganizer], EventOrganizerRepository):
    orm_model = OrmEventOrganizer
    model = DomainEventOrganizer
    entity_name = "EventOrganizer"


class SqlEventRepository(SqlRepository[DomainEvent], EventRepository):
    orm_model = OrmEvent
    model = DomainEvent
    entity_name = "Event"

    async def find_by_date_range(
        self, start: datetime, end: datetime, *, tx: AsyncConnection | None = None
    ) -> list[DomainEvent]:
        """Events overlapping [start, end]; an open-ended event is a single instant."""

        async def work() -> list[DomainEvent]:
            events = self.table
            stmt = (
                select(events)
                .where(
                    self._condition(None),
                    events.c.start_at <= end,
                    func.coalesce(events.c.end_at, events.c.start_at) >= start,
                )
                .order_by(events.c.start_at)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_by_date_range", {"start": start, "end": end}, work)

    async def find_upcoming(
        self, now: datetime, limit: int = 10, *, tx: AsyncConnection | None = None
    ) -> list[DomainEvent]:
        async def work() -> list[DomainEvent]:
            stmt = (
                select(self.table)
                .where(self._condition(None), self.table.c.start_at >= now)
                .order_by(self.table.c.start_at)
                .limit(limit)
            )
            return await self._fetch_models(stmt, tx)

        return await self._execute("find_upcoming", {"now": now, "limit": limit}, work)

    async def find_with_relations(
        self,
        where: Mapping[str, Any],
        relations: Iterable[str],
        *,
        tx: AsyncConnection | None = None,
    ) -> EventWithRelations | None:
        relations = list(relations)

        async def work() -> EventWithRelations | None:
            wanted = _requested(relations, {"organizer", "tags"}, self.entity_name)
            organizers = OrmEventOrganizer.__table__
            async with self._connect(tx) as conn:
                stmt = select(self.table).where(self._condition(where)).limit(1)
                row = (await conn.execute(stmt)).first()
                if row is None:
                    return None
                extras: dict[str, Any] = {}
                if "organizer" in wanted and row.organizer_id is not None:
                    organizer = (
                        await conn.execute(
                            select(organizers).where(organizers.c.id == row.organizer_id)
                        )
                    ).first()
                    extras["organizer"] = (
                        self._to_domain(organizer, DomainEventOrganizer) if organizer else None
                    )
                if "tags" in wanted:
                    rows = await conn.execute(_tags_for(TaggableEntity.EVENT, row.id))
                    extras["tags"] = [self._to_domain(r, DomainTag) for r in rows]
            return self._hydrate(row, EventWithRelations, **extras)

        return await self._execute(
            "find_with_relations", {"where": where, "relations": relations}, work
        )
