"""Generic repository base interface.

Repository[T] is the root abstraction for all data-access interfaces in this
domain layer. The single concrete implementation lives in
booking_core/infrastructure/persistence/repositories/base.py and is wired at
the application boundary via dependency injection.

Design notes:
  - All methods are async to accommodate async database drivers.
  - T is the domain model type (never an ORM row or DTO).
  - ``where`` is a sparse mapping of column name to value; None values are
    ignored and the remaining pairs are ANDed as equality predicates.
  - Every method accepts ``tx``, an open transaction handle obtained from the
    persistence layer. When given, the call joins that transaction instead of
    opening its own.
  - Soft-deleted rows are excluded from find_all / find_one / count / search
    unless include_deleted=True; find_by_id always sees them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar
from uuid import UUID

from booking_core.domain.models.base import Page

T = TypeVar("T")

Where = Mapping[str, Any]
Transaction = Any


class Repository(ABC, Generic[T]):
    """Abstract CRUD + soft-delete interface for one auditable entity."""

    entity_name: str = "Entity"

    @abstractmethod
    async def find_all(
        self,
        where: Where | None = None,
        *,
        page: int | None = None,
        page_size: int | None = None,
        include_deleted: bool = False,
        tx: Transaction = None,
    ) -> list[T] | Page[T]:
        """Return every match, or one Page when page and page_size are both given."""

    @abstractmethod
    async def find_by_id(self, id: UUID, *, tx: Transaction = None) -> T | None:
        """Return the entity with the given primary key (deleted or not), or None."""

    @abstractmethod
    async def find_one(
        self, where: Where, *, include_deleted: bool = False, tx: Transaction = None
    ) -> T | None:
        """Return the first match, or None."""

    @abstractmethod
    async def create(
        self, data: Mapping[str, Any], *, actor_id: UUID | None = None, tx: Transaction = None
    ) -> T:
        """Insert one row and return it with generated fields populated."""

    @abstractmethod
    async def update(
        self,
        where: Where,
        data: Mapping[str, Any],
        *,
        actor_id: UUID | None = None,
        tx: Transaction = None,
    ) -> T | None:
        """Update every match and return the first updated row, or None."""

    @abstractmethod
    async def count(
        self, where: Where | None = None, *, include_deleted: bool = False, tx: Transaction = None
    ) -> int:
        """Return the number of matches."""

    @abstractmethod
    async def soft_delete(
        self, where: Where, *, actor_id: UUID | None = None, tx: Transaction = None
    ) -> int:
        """Mark matches as deleted; return the affected row count."""

    @abstractmethod
    async def restore(self, where: Where, *, tx: Transaction = None) -> int:
        """Clear the deletion marker on matches; return the affected row count."""

    @abstractmethod
    async def hard_delete(self, where: Where, *, tx: Transaction = None) -> int:
        """Physically remove matches; return the removed row count."""

    @abstractmethod
    async def search(
        self,
        where: Where | None = None,
        *,
        sort_by: str | None = None,
        sort_order: str = "asc",
        page: int = 1,
        page_size: int = 20,
        include_deleted: bool = False,
        conditions: Iterable[Any] = (),
        tx: Transaction = None,
    ) -> Page[T]:
        """Filter, sort and paginate; item and total queries run independently."""

    @abstractmethod
    async def find_with_relations(
        self, where: Where, relations: Iterable[str], *, tx: Transaction = None
    ) -> T | None:
        """Return the first match hydrated with the requested relations."""
