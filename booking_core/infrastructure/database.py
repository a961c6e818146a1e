"""Async SQLAlchemy engine, declarative base and transaction helper."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from booking_core.config import Settings, settings

__all__ = ["Base", "Settings", "engine", "settings", "transaction"]

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_pre_ping=True,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


@asynccontextmanager
async def transaction(db: AsyncEngine = engine) -> AsyncIterator[AsyncConnection]:
    """Yield a connection inside a transaction that commits on clean exit.

    Pass the connection as ``tx=`` to repository calls so they all join the
    same unit of work; any exception rolls everything back.
    """
    async with db.begin() as conn:
        yield conn
