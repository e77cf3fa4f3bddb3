"""
Alembic migration environment for the Conduit schema.

The URL is taken from ``conduit.config.settings``; whatever
``sqlalchemy.url`` alembic.ini might carry is ignored.  Online runs go
through the async driver on a throwaway NullPool engine.
"""
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

import conduit.models  # noqa: F401  (registers every table on Base.metadata)
from conduit.config import settings
from conduit.database import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.database_url
IS_SQLITE = DATABASE_URL.startswith("sqlite")

common_options = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    # SQLite cannot ALTER constraints in place.
    "render_as_batch": IS_SQLITE,
}


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of executing it."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **common_options,
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **common_options)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        {"sqlalchemy.url": DATABASE_URL},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args={} if IS_SQLITE else {"ssl": settings.DB_SSLMODE},
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
