"""Services for destinations, accommodations, tags and events."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

from booking_core.domain.errors import InputValidationError, NotFoundError
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.base import Page, utc_now
from booking_core.domain.models.catalog import (
    Accommodation,
    AccommodationCreate,
    AccommodationSearch,
    AccommodationUpdate,
    Destination,
    DestinationCreate,
    DestinationSearch,
    DestinationUpdate,
    EntityTag,
    Event,
    EventCreate,
    EventSearch,
    EventUpdate,
    Tag,
    TagCreate,
    TagSearch,
    TagUpdate,
)
from booking_core.domain.models.enums import Permission, TaggableEntity
from booking_core.domain.repositories.catalog import (
    AccommodationRepository,
    DestinationRepository,
    EventRepository,
    TagRepository,
)

from .base import BaseCrudService, ServiceOutput
from .permissions import EntityPermissions, require_permission


class _RelationsMixin:
    """get_with_relations for services whose repository hydrates relations.

    With no explicit list every relation in ``default_relations`` is loaded.
    """

    default_relations: ClassVar[tuple[str, ...]] = ()

    async def get_with_relations(
        self, actor: Actor, id: UUID, relations: Iterable[str] | None = None
    ) -> ServiceOutput[Any]:
        async def work() -> Any:
            await self._load_visible(actor, id)
            requested = self.default_relations if relations is None else list(relations)
            entity = await self.repository.find_with_relations({"id": id}, requested)
            if entity is None:
                raise NotFoundError(f"{self.entity_name} {id} not found")
            return entity

        return await self._run("get_with_relations", work)


class DestinationService(_RelationsMixin, BaseCrudService[Destination]):
    entity_name = "Destination"
    model = Destination
    permissions = EntityPermissions(
        create=Permission.DESTINATION_CREATE,
        update_any=Permission.DESTINATION_UPDATE,
        delete_any=Permission.DESTINATION_DELETE,
        restore=Permission.DESTINATION_RESTORE,
        hard_delete=Permission.DESTINATION_HARD_DELETE,
        view_all=Permission.DESTINATION_VIEW_ALL,
    )
    create_schema = DestinationCreate
    update_schema = DestinationUpdate
    search_schema = DestinationSearch
    default_relations = ("accommodations",)

    repository: DestinationRepository


class AccommodationService(_RelationsMixin, BaseCrudService[Accommodation]):
    """Hosts manage their own listings; admins hold the ``*_any`` permissions."""

    entity_name = "Accommodation"
    model = Accommodation
    permissions = EntityPermissions(
        create=Permission.ACCOMMODATION_CREATE,
        update_any=Permission.ACCOMMODATION_UPDATE_ANY,
        update_own=Permission.ACCOMMODATION_UPDATE_OWN,
        delete_any=Permission.ACCOMMODATION_DELETE_ANY,
        delete_own=Permission.ACCOMMODATION_DELETE_OWN,
        restore=Permission.ACCOMMODATION_RESTORE,
        hard_delete=Permission.ACCOMMODATION_HARD_DELETE,
        view_all=Permission.ACCOMMODATION_VIEW_ALL,
    )
    owner_field = "owner_id"
    create_schema = AccommodationCreate
    update_schema = AccommodationUpdate
    search_schema = AccommodationSearch
    default_relations = ("destination", "tags")

    repository: AccommodationRepository

    async def search(self, actor: Actor, params: Any = None) -> ServiceOutput[Page[Accommodation]]:
        async def work() -> Page[Accommodation]:
            query = self._validate(AccommodationSearch, params or {})
            return await self.repository.search_accommodations(
                self._scope(actor, query.filters()),
                q=query.q,
                min_price=query.min_price,
                max_price=query.max_price,
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                page=query.page,
                page_size=query.page_size,
            )

        return await self._run("search", work)

    async def list_by_destination(
        self, actor: Actor, destination_id: UUID
    ) -> ServiceOutput[list[Accommodation]]:
        async def work() -> list[Accommodation]:
            found = await self.repository.find_by_destination(destination_id)
            return [item for item in found if self._can_view(actor, item)]

        return await self._run("list_by_destination", work)


class TagService(BaseCrudService[Tag]):
    entity_name = "Tag"
    model = Tag
    permissions = EntityPermissions(
        create=Permission.TAG_CREATE,
        update_any=Permission.TAG_UPDATE,
        delete_any=Permission.TAG_DELETE,
        restore=Permission.TAG_RESTORE,
        hard_delete=Permission.TAG_HARD_DELETE,
    )
    create_schema = TagCreate
    update_schema = TagUpdate
    search_schema = TagSearch

    repository: TagRepository

    async def add_to_entity(self, actor: Actor, data: Any) -> ServiceOutput[bool]:
        """Attach a tag; data is False when the link already existed."""

        async def work() -> bool:
            link = self._validate(EntityTag, data)
            await self._load_live(link.tag_id)
            require_permission(actor, Permission.TAG_ASSIGN, "assign tags")
            return await self.repository.add_to_entity(
                link.tag_id, link.entity_type, link.entity_id
            )

        return await self._run("add_to_entity", work)

    async def remove_from_entity(self, actor: Actor, data: Any) -> ServiceOutput[int]:
        async def work() -> int:
            link = self._validate(EntityTag, data)
            require_permission(actor, Permission.TAG_ASSIGN, "assign tags")
            return await self.repository.remove_from_entity(
                link.tag_id, link.entity_type, link.entity_id
            )

        return await self._run("remove_from_entity", work)

    async def list_for_entity(
        self, actor: Actor, entity_type: TaggableEntity, entity_id: UUID
    ) -> ServiceOutput[list[Tag]]:
        async def work() -> list[Tag]:
            return await self.repository.find_for_entity(entity_type, entity_id)

        return await self._run("list_for_entity", work)


class EventService(_RelationsMixin, BaseCrudService[Event]):
    """Events are owned by whoever created them."""

    entity_name = "Event"
    model = Event
    permissions = EntityPermissions(
        create=Permission.EVENT_CREATE,
        update_any=Permission.EVENT_UPDATE_ANY,
        update_own=Permission.EVENT_UPDATE_OWN,
        delete_any=Permission.EVENT_DELETE_ANY,
        delete_own=Permission.EVENT_DELETE_OWN,
        restore=Permission.EVENT_RESTORE,
        hard_delete=Permission.EVENT_HARD_DELETE,
        view_all=Permission.EVENT_VIEW_ALL,
    )
    owner_field = "created_by_id"
    create_schema = EventCreate
    update_schema = EventUpdate
    search_schema = EventSearch
    default_relations = ("organizer", "tags")

    repository: EventRepository

    async def list_by_date_range(
        self, actor: Actor, start: datetime, end: datetime
    ) -> ServiceOutput[list[Event]]:
        async def work() -> list[Event]:
            if end < start:
                raise InputValidationError("end: must not be before start")
            found = await self.repository.find_by_date_range(start, end)
            return [item for item in found if self._can_view(actor, item)]

        return await self._run("list_by_date_range", work)

    async def list_upcoming(
        self, actor: Actor, limit: int = 10, now: datetime | None = None
    ) -> ServiceOutput[list[Event]]:
        async def work() -> list[Event]:
            if limit < 1:
                raise InputValidationError("limit: must be positive")
            found = await self.repository.find_upcoming(now or utc_now(), limit=limit)
            return [item for item in found if self._can_view(actor, item)]

        return await self._run("list_upcoming", work)
