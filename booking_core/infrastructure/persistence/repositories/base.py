"""Generic SQLAlchemy repository.

SqlRepository[T] implements the whole Repository[T] contract against one
table, using Core statements on the mapped class's ``__table__``. Concrete
repositories only declare ``orm_model``, ``model`` and ``entity_name`` and
add their entity-specific queries.

Every public operation runs through ``_execute``: success is logged via
query_log.log_query, any failure is logged via log_error and re-raised as
DbError. ServiceError subclasses raised by specialisations (not-found,
invalid transition) pass through untouched, as does a DbError raised by a
nested repository call, which has already been logged.

Connections: each call borrows a connection from the injected engine inside
``engine.begin()`` (commit on success, rollback on error). Passing ``tx``
runs the call on that connection instead, so several calls can share one
caller-managed transaction.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from contextlib import asynccontextmanager
from typing import Any, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel
from sqlalchemy import Column, Select, Table, and_, delete, func, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from booking_core.domain.errors import DbError, ServiceError
from booking_core.domain.models.base import Page, utc_now
from booking_core.domain.repositories.base import Repository, Where
from booking_core.infrastructure.persistence.filters import build_where_clause, to_storage
from booking_core.infrastructure.persistence.query_log import log_error, log_query

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")


class InsertFailedError(RuntimeError):
    """An INSERT … RETURNING produced no row."""


class SqlRepository(Repository[T]):
    orm_model: Any
    model: type[T]
    entity_name: str = "Entity"

    def __init__(self, db: AsyncEngine) -> None:
        self._db = db

    # --- plumbing ---

    @property
    def table(self) -> Table:
        return self.orm_model.__table__

    @property
    def _pk(self) -> list[Column[Any]]:
        return list(self.table.primary_key.columns)

    @property
    def _countable_column(self) -> Column[Any]:
        return self._pk[0] if self._pk else list(self.table.c)[0]

    @property
    def _soft_deletable(self) -> bool:
        return "deleted_at" in self.table.c

    @asynccontextmanager
    async def _connect(self, tx: AsyncConnection | None) -> AsyncIterator[AsyncConnection]:
        if tx is not None:
            yield tx
        else:
            async with self._db.begin() as conn:
                yield conn

    async def _execute(
        self, operation: str, params: Any, work: Callable[[], Awaitable[R]]
    ) -> R:
        try:
            result = await work()
        except (DbError, ServiceError):
            raise
        except Exception as exc:
            log_error(self.entity_name, operation, params, exc)
            raise DbError(self.entity_name, operation, params, str(exc)) from exc
        log_query(self.entity_name, operation, params, result)
        return result

    def _to_domain(self, row: Row[Any], model: type[BaseModel] | None = None) -> Any:
        return (model or self.model).model_validate(dict(row._mapping))

    def _hydrate(self, row: Row[Any], model: type[BaseModel], **relations: Any) -> Any:
        return model.model_validate({**dict(row._mapping), **relations})

    def _condition(self, where: Where | None, include_deleted: bool = False) -> Any:
        condition = build_where_clause(where, self.table)
        if self._soft_deletable and not include_deleted:
            condition = and_(condition, self.table.c.deleted_at.is_(None))
        return condition

    def _mutation_condition(self, where: Where) -> Any:
        if not any(value is not None for value in (where or {}).values()):
            raise ValueError(f"{self.entity_name} mutations require a non-empty filter")
        return build_where_clause(where, self.table)

    async def _fetch_rows(self, stmt: Any, tx: AsyncConnection | None = None) -> list[Row[Any]]:
        async with self._connect(tx) as conn:
            return list((await conn.execute(stmt)).all())

    async def _fetch_models(
        self, stmt: Any, tx: AsyncConnection | None = None, model: type[BaseModel] | None = None
    ) -> list[Any]:
        return [self._to_domain(row, model) for row in await self._fetch_rows(stmt, tx)]

    async def _fetch_scalar(self, stmt: Any, tx: AsyncConnection | None = None) -> Any:
        async with self._connect(tx) as conn:
            return (await conn.execute(stmt)).scalar()

    @staticmethod
    def _as_count(value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    async def _paginate(
        self,
        stmt: Select[Any],
        condition: Any,
        page: int,
        page_size: int,
        tx: AsyncConnection | None,
    ) -> Page[T]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        stmt = stmt.limit(page_size).offset((page - 1) * page_size)
        count_stmt = (
            select(func.count(self._countable_column)).select_from(self.table).where(condition)
        )
        if tx is not None:
            rows = await self._fetch_rows(stmt, tx)
            total = await self._fetch_scalar(count_stmt, tx)
        else:
            rows, total = await asyncio.gather(
                self._fetch_rows(stmt), self._fetch_scalar(count_stmt)
            )
        return Page(items=[self._to_domain(row) for row in rows], total=self._as_count(total))

    # --- contract ---

    async def find_all(
        self,
        where: Where | None = None,
        *,
        page: int | None = None,
        page_size: int | None = None,
        include_deleted: bool = False,
        tx: AsyncConnection | None = None,
    ) -> list[T] | Page[T]:
        params = {"where": where, "page": page, "page_size": page_size}

        async def work() -> list[T] | Page[T]:
            condition = self._condition(where, include_deleted)
            stmt = select(self.table).where(condition).order_by(*self._pk)
            if page is None or page_size is None:
                return await self._fetch_models(stmt, tx)
            return await self._paginate(stmt, condition, page, page_size, tx)

        return await self._execute("find_all", params, work)

    async def find_by_id(self, id: UUID, *, tx: AsyncConnection | None = None) -> T | None:
        async def work() -> T | None:
            stmt = select(self.table).where(self._pk[0] == id).limit(1)
            models = await self._fetch_models(stmt, tx)
            return models[0] if models else None

        return await self._execute("find_by_id", {"id": id}, work)

    async def find_one(
        self,
        where: Where,
        *,
        include_deleted: bool = False,
        tx: AsyncConnection | None = None,
    ) -> T | None:
        async def work() -> T | None:
            stmt = select(self.table).where(self._condition(where, include_deleted)).limit(1)
            models = await self._fetch_models(stmt, tx)
            return models[0] if models else None

        return await self._execute("find_one", {"where": where}, work)

    async def create(
        self,
        data: Mapping[str, Any],
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> T:
        async def work() -> T:
            values = {key: to_storage(value) for key, value in data.items()}
            columns = self.table.c
            now = utc_now()
            if "id" in columns and values.get("id") is None:
                values["id"] = uuid4()
            for stamp in ("created_at", "updated_at"):
                if stamp in columns:
                    values.setdefault(stamp, now)
            if actor_id is not None:
                for stamp in ("created_by_id", "updated_by_id"):
                    if stamp in columns:
                        values[stamp] = actor_id
            stmt = insert(self.table).values(**values).returning(*columns)
            async with self._connect(tx) as conn:
                row = (await conn.execute(stmt)).first()
            if row is None:
                raise InsertFailedError("Insert failed")
            return self._to_domain(row)

        return await self._execute("create", {"data": dict(data)}, work)

    async def update(
        self,
        where: Where,
        data: Mapping[str, Any],
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> T | None:
        async def work() -> T | None:
            values = {key: to_storage(value) for key, value in data.items()}
            immutable = {column.name for column in self._pk} & values.keys()
            if immutable:
                raise ValueError(f"Cannot update primary key column(s): {sorted(immutable)}")
            columns = self.table.c
            if "updated_at" in columns:
                values["updated_at"] = utc_now()
            if actor_id is not None and "updated_by_id" in columns:
                values["updated_by_id"] = actor_id
            stmt = (
                update(self.table)
                .where(self._mutation_condition(where))
                .values(**values)
                .returning(*columns)
            )
            rows = await self._fetch_rows(stmt, tx)
            return self._to_domain(rows[0]) if rows else None

        return await self._execute("update", {"where": where, "data": dict(data)}, work)

    async def count(
        self,
        where: Where | None = None,
        *,
        include_deleted: bool = False,
        tx: AsyncConnection | None = None,
    ) -> int:
        async def work() -> int:
            stmt = (
                select(func.count(self._countable_column))
                .select_from(self.table)
                .where(self._condition(where, include_deleted))
            )
            return self._as_count(await self._fetch_scalar(stmt, tx))

        return await self._execute("count", {"where": where}, work)

    async def soft_delete(
        self,
        where: Where,
        *,
        actor_id: UUID | None = None,
        tx: AsyncConnection | None = None,
    ) -> int:
        async def work() -> int:
            stmt = (
                update(self.table)
                .where(self._mutation_condition(where), self.table.c.deleted_at.is_(None))
                .values(deleted_at=utc_now(), deleted_by_id=actor_id)
            )
            async with self._connect(tx) as conn:
                return (await conn.execute(stmt)).rowcount

        return await self._execute("soft_delete", {"where": where}, work)

    async def restore(self, where: Where, *, tx: AsyncConnection | None = None) -> int:
        async def work() -> int:
            stmt = (
                update(self.table)
                .where(self._mutation_condition(where), self.table.c.deleted_at.is_not(None))
                .values(deleted_at=None, deleted_by_id=None, updated_at=utc_now())
            )
            async with self._connect(tx) as conn:
                return (await conn.execute(stmt)).rowcount

        return await self._execute("restore", {"where": where}, work)

    async def hard_delete(self, where: Where, *, tx: AsyncConnection | None = None) -> int:
        async def work() -> int:
            stmt = delete(self.table).where(self._mutation_condition(where))
            async with self._connect(tx) as conn:
                return (await conn.execute(stmt)).rowcount

        return await self._execute("hard_delete", {"where": where}, work)

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
        tx: AsyncConnection | None = None,
    ) -> Page[T]:
        params = {
            "where": where,
            "sort_by": sort_by,
            "sort_order": sort_order,
            "page": page,
            "page_size": page_size,
        }

        async def work() -> Page[T]:
            condition = and_(self._condition(where, include_deleted), *conditions)
            ordering = []
            if sort_by is not None:
                if sort_by not in self.table.c:
                    raise ValueError(
                        f"Unknown sort column '{sort_by}' for table '{self.table.name}'"
                    )
                column = self.table.c[sort_by]
                ordering.append(column.desc() if sort_order == "desc" else column.asc())
            stmt = select(self.table).where(condition).order_by(*ordering, *self._pk)
            return await self._paginate(stmt, condition, page, page_size, tx)

        return await self._execute("search", params, work)

    async def find_with_relations(
        self,
        where: Where,
        relations: Iterable[str],
        *,
        tx: AsyncConnection | None = None,
    ) -> T | None:
        raise NotImplementedError(
            f"find_with_relations must be implemented in the concrete repository ({self.entity_name})"
        )
