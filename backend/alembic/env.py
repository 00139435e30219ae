"""
Alembic Migration Environment
===============================

What:  Runs NoteCraft migrations with the application's async engine settings.
How:   Reads the URL from notecraft.config (DATABASE_URL) and runs the
       migration steps through connection.run_sync().
Who:   Called by `alembic` CLI commands (upgrade, downgrade, revision).
When:  Deployment (PostgreSQL via asyncpg) and local development, where
       DATABASE_URL may point at SQLite via aiosqlite.

SQLite note:
    SQLite cannot ALTER most column properties in place, so migrations run
    in batch mode there (render_as_batch). PostgreSQL runs them directly.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from notecraft.config import settings
from notecraft.database import Base

# Registers the notes table on Base.metadata for --autogenerate
from notecraft.models.note import Note  # noqa: F401

# Access to alembic.ini values, when an ini file is used
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# DATABASE_URL from settings always wins over sqlalchemy.url in alembic.ini
config.set_main_option("sqlalchemy.url", settings.database_url)


def run_migrations_offline() -> None:
    """
    Emit SQL to stdout without connecting (alembic upgrade --sql).

    Useful for reviewing the notes table DDL before applying it.
    """
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    """Runs the migration steps on a sync connection handed over by run_sync()."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """
    Apply pending migrations through a short-lived async engine.

    The engine uses NullPool: one connection for the migration run, closed
    with dispose() afterwards.
    """
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
