"""Shared fixtures.

Repository tests run against a throwaway file-backed SQLite database
(aiosqlite) built from Base.metadata; service tests use AsyncMock
repositories and the actor factories below.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from booking_core.domain.models.actor import Actor
from booking_core.domain.models.enums import Permission, RoleName
from booking_core.infrastructure.database import Base
import booking_core.infrastructure.persistence.models  # noqa: F401


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


def make_actor(role: RoleName = RoleName.USER, *permissions: Permission) -> Actor:
    return Actor(id=uuid4(), role=role, permissions=frozenset(permissions))


@pytest.fixture
def super_admin() -> Actor:
    return make_actor(RoleName.SUPER_ADMIN)


@pytest.fixture
def guest() -> Actor:
    return make_actor(RoleName.GUEST)


@pytest.fixture
def actor_factory():
    return make_actor
