"""Generic CRUD service: validation, authorisation and lifecycle hooks.

Every public method returns a ServiceOutput instead of raising. The pipeline
for a mutation is:

    validate input            -> VALIDATION_ERROR
    resolve target by id      -> NOT_FOUND
    authorise the actor       -> FORBIDDEN
    before_* hook             -> INTERNAL_ERROR, nothing written
    repository mutation
    after_* hook              -> INTERNAL_ERROR, mutation kept

Existence is always checked before authorisation.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from booking_core.config import settings
from booking_core.domain.errors import (
    ForbiddenError,
    InputValidationError,
    InternalError,
    NotFoundError,
    ServiceError,
    ServiceErrorCode,
)
from booking_core.domain.models.actor import Actor
from booking_core.domain.models.base import CountResult, Page, SearchParams
from booking_core.domain.models.enums import Visibility
from booking_core.domain.repositories.base import Repository

from .permissions import (
    EntityPermissions,
    has_permission,
    owns,
    require_owner_or_permission,
    require_permission,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S", bound=BaseModel)

Hook = Callable[..., Any]


@dataclass(frozen=True)
class ServiceErrorInfo:
    code: ServiceErrorCode
    message: str


@dataclass(frozen=True)
class ServiceOutput(Generic[T]):
    """Uniform service result: exactly one of data / error is meaningful."""

    data: T | None = None
    error: ServiceErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class LifecycleHooks:
    """Optional callbacks run around each mutation.

    before_* hooks receive ``(actor, target)`` where target is the validated
    payload for create and the stored entity otherwise; update hooks also get
    the change set. after_* hooks receive ``(actor, result)``. Callbacks may be
    plain functions or coroutines.
    """

    before_create: Hook | None = None
    after_create: Hook | None = None
    before_update: Hook | None = None
    after_update: Hook | None = None
    before_soft_delete: Hook | None = None
    after_soft_delete: Hook | None = None
    before_hard_delete: Hook | None = None
    after_hard_delete: Hook | None = None
    before_restore: Hook | None = None
    after_restore: Hook | None = None


def validation_message(exc: ValidationError) -> str:
    """Flatten pydantic errors into "field: reason" pairs."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "input"
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)


class BaseCrudService(Generic[T]):
    """CRUD over one repository, gated by an EntityPermissions bundle.

    Concrete services set the class attributes below. ``owner_field`` names the
    attribute holding the owning actor id (used by the "own" permissions and
    by visibility). ``owner_only`` marks entities that only their owner or a
    ``view_all`` holder may read, regardless of a visibility column.
    """

    entity_name: ClassVar[str] = "Entity"
    permissions: ClassVar[EntityPermissions]
    owner_field: ClassVar[str | None] = None
    owner_only: ClassVar[bool] = False
    model: ClassVar[type[BaseModel]]
    create_schema: ClassVar[type[BaseModel]]
    update_schema: ClassVar[type[BaseModel]]
    search_schema: ClassVar[type[SearchParams]] = SearchParams

    def __init__(self, repository: Repository[T], hooks: LifecycleHooks | None = None) -> None:
        self.repository = repository
        self.hooks = hooks or LifecycleHooks()

    # ------------------------------------------------------------------ #
    # Plumbing                                                             #
    # ------------------------------------------------------------------ #

    async def _run(self, method: str, work: Callable[[], Awaitable[Any]]) -> ServiceOutput[Any]:
        name = f"{self.entity_name}.{method}"
        logger.debug("%s started", name)
        try:
            data = await work()
        except ServiceError as exc:
            logger.info("%s rejected with %s: %s", name, exc.code.value, exc.message)
            return ServiceOutput(error=ServiceErrorInfo(exc.code, exc.message))
        except Exception:
            logger.exception("%s failed", name)
            return ServiceOutput(
                error=ServiceErrorInfo(
                    ServiceErrorCode.INTERNAL_ERROR, "An unexpected error occurred"
                )
            )
        logger.debug("%s finished", name)
        return ServiceOutput(data=data)

    @staticmethod
    def _validate(schema: type[S], data: Any) -> S:
        if isinstance(data, schema):
            return data
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise InputValidationError(validation_message(exc), details=exc.errors()) from exc

    async def _call_hook(self, name: str, *args: Any) -> None:
        hook = getattr(self.hooks, name)
        if hook is None:
            return
        try:
            result = hook(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.exception("%s.%s hook failed", self.entity_name, name)
            raise InternalError(f"Error in {name} hook") from exc

    def _can_view(self, actor: Actor, entity: Any) -> bool:
        if getattr(entity, "deleted_at", None) is not None and not has_permission(
            actor, self.permissions.restore
        ):
            return False
        visibility = getattr(entity, "visibility", Visibility.PUBLIC)
        if not self.owner_only and visibility is Visibility.PUBLIC:
            return True
        return owns(actor, entity, self.owner_field) or self._can_view_all(actor)

    def _can_view_all(self, actor: Actor) -> bool:
        view_all = self.permissions.view_all
        return view_all is not None and has_permission(actor, view_all)

    def _scope(self, actor: Actor, where: Mapping[str, Any] | None) -> dict[str, Any]:
        """Narrow a list filter to what *actor* may read."""
        scoped = dict(where or {})
        if self._can_view_all(actor):
            return scoped
        if self.owner_field is not None and scoped.get(self.owner_field) == actor.id:
            return scoped
        if self.owner_only:
            if self.owner_field is None:
                raise ForbiddenError(f"Permission denied: cannot list {self.entity_name}")
            scoped[self.owner_field] = actor.id
        elif "visibility" in self.model.model_fields:
            scoped["visibility"] = Visibility.PUBLIC
        return scoped

    async def _load(self, id: UUID) -> T:
        entity = await self.repository.find_by_id(id)
        if entity is None:
            raise NotFoundError(f"{self.entity_name} {id} not found")
        return entity

    async def _load_live(self, id: UUID) -> T:
        """Resolve a target that must exist and not be soft-deleted."""
        entity = await self._load(id)
        if getattr(entity, "deleted_at", None) is not None:
            raise NotFoundError(f"{self.entity_name} {id} not found")
        return entity

    async def _load_visible(self, actor: Actor, id: UUID) -> T:
        entity = await self._load(id)
        if getattr(entity, "deleted_at", None) is not None and not has_permission(
            actor, self.permissions.restore
        ):
            raise NotFoundError(f"{self.entity_name} {id} not found")
        if not self._can_view(actor, entity):
            raise ForbiddenError(f"Permission denied: cannot view {self.entity_name}")
        return entity

    def _require_update(self, actor: Actor, entity: Any) -> None:
        require_owner_or_permission(
            actor,
            entity,
            self.permissions.update_any,
            self.permissions.update_own,
            self.owner_field,
            f"update {self.entity_name}",
        )

    def _require_delete(self, actor: Actor, entity: Any) -> None:
        require_owner_or_permission(
            actor,
            entity,
            self.permissions.delete_any,
            self.permissions.delete_own,
            self.owner_field,
            f"delete {self.entity_name}",
        )

    async def _prepare_create(self, actor: Actor, values: dict[str, Any]) -> dict[str, Any]:
        """Extend the validated payload before insert (generated fields)."""
        return values

    def _check_changes(self, entity: T, changes: dict[str, Any]) -> None:
        """Validate *changes* against the stored entity; raise InputValidationError."""

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    async def create(self, actor: Actor, data: Any) -> ServiceOutput[T]:
        async def work() -> T:
            payload = self._validate(self.create_schema, data)
            require_permission(actor, self.permissions.create, f"create {self.entity_name}")
            await self._call_hook("before_create", actor, payload)
            values = await self._prepare_create(actor, payload.model_dump())
            entity = await self.repository.create(values, actor_id=actor.id)
            await self._call_hook("after_create", actor, entity)
            return entity

        return await self._run("create", work)

    async def update(self, actor: Actor, id: UUID, data: Any) -> ServiceOutput[T]:
        async def work() -> T:
            payload = self._validate(self.update_schema, data)
            entity = await self._load_live(id)
            self._require_update(actor, entity)
            changes = payload.model_dump(exclude_unset=True)
            self._check_changes(entity, changes)
            await self._call_hook("before_update", actor, entity, changes)
            updated = await self.repository.update({"id": id}, changes, actor_id=actor.id)
            if updated is None:
                raise NotFoundError(f"{self.entity_name} {id} not found")
            await self._call_hook("after_update", actor, updated)
            return updated

        return await self._run("update", work)

    async def get_by_id(self, actor: Actor, id: UUID) -> ServiceOutput[T]:
        async def work() -> T:
            return await self._load_visible(actor, id)

        return await self._run("get_by_id", work)

    @staticmethod
    def _page_size(page: int, page_size: int | None) -> int:
        size = settings.default_page_size if page_size is None else page_size
        if page < 1 or size < 1:
            raise InputValidationError("page and page_size must be positive")
        if size > settings.max_page_size:
            raise InputValidationError(f"page_size must be at most {settings.max_page_size}")
        return size

    async def list(
        self,
        actor: Actor,
        where: Mapping[str, Any] | None = None,
        *,
        page: int = 1,
        page_size: int | None = None,
    ) -> ServiceOutput[Page[T]]:
        async def work() -> Page[T]:
            size = self._page_size(page, page_size)
            return await self.repository.find_all(
                self._scope(actor, where), page=page, page_size=size
            )

        return await self._run("list", work)

    async def search(self, actor: Actor, params: Any = None) -> ServiceOutput[Page[T]]:
        async def work() -> Page[T]:
            query = self._validate(self.search_schema, params or {})
            return await self.repository.search(
                self._scope(actor, query.filters()),
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                page=query.page,
                page_size=query.page_size,
            )

        return await self._run("search", work)

    async def count(self, actor: Actor, params: Any = None) -> ServiceOutput[CountResult]:
        async def work() -> CountResult:
            query = self._validate(self.search_schema, params or {})
            total = await self.repository.count(self._scope(actor, query.filters()))
            return CountResult(count=total)

        return await self._run("count", work)

    async def soft_delete(self, actor: Actor, id: UUID) -> ServiceOutput[CountResult]:
        async def work() -> CountResult:
            entity = await self._load(id)
            self._require_delete(actor, entity)
            if getattr(entity, "deleted_at", None) is not None:
                return CountResult(count=0)
            await self._call_hook("before_soft_delete", actor, entity)
            count = await self.repository.soft_delete({"id": id}, actor_id=actor.id)
            await self._call_hook("after_soft_delete", actor, count)
            return CountResult(count=count)

        return await self._run("soft_delete", work)

    async def hard_delete(self, actor: Actor, id: UUID) -> ServiceOutput[CountResult]:
        async def work() -> CountResult:
            entity = await self._load(id)
            require_permission(
                actor, self.permissions.hard_delete, f"permanently delete {self.entity_name}"
            )
            await self._call_hook("before_hard_delete", actor, entity)
            count = await self.repository.hard_delete({"id": id})
            await self._call_hook("after_hard_delete", actor, count)
            return CountResult(count=count)

        return await self._run("hard_delete", work)

    async def restore(self, actor: Actor, id: UUID) -> ServiceOutput[CountResult]:
        async def work() -> CountResult:
            entity = await self._load(id)
            require_permission(actor, self.permissions.restore, f"restore {self.entity_name}")
            if getattr(entity, "deleted_at", None) is None:
                return CountResult(count=0)
            await self._call_hook("before_restore", actor, entity)
            count = await self.repository.restore({"id": id})
            await self._call_hook("after_restore", actor, count)
            return CountResult(count=count)

        return await self._run("restore", work)
