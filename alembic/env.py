"""Alembic environment for the booking schema, run through an async engine."""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

config = context.config

# Every ORM module must be imported so its tables land on Base.metadata.
from booking_core.infrastructure.database import Base, settings  # noqa: E402
from booking_core.infrastructure.logging_config import configure_logging  # noqa: E402
import booking_core.infrastructure.persistence.models  # noqa: E402, F401

if config.config_file_name is not None:
    fileConfig(config.config_file_name)
else:
    configure_logging()

target_metadata = Base.metadata


def _database_url() -> str:
    return (
        os.environ.get("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
        or settings.database_url
    )


def _configure(**options) -> None:  # type: ignore[no-untyped-def]
    url = options.get("url") or _database_url()
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place.
        render_as_batch=url.startswith("sqlite"),
        **options,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL instead of executing it."""
    _configure(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(_database_url())
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
