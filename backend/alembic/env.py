"""
A+ Marketplace Backend — Alembic Environment
==============================================

What:  Runs the schema migrations for the marketplace tables.
How:   The URL comes from `aplus.config.settings` (DATABASE_URL), so the app
       and the migrations never disagree. Online mode drives the async
       engine through `connection.run_sync()`. On SQLite (local development)
       migrations run in batch mode, because SQLite cannot ALTER constraints
       in place.
Who:   `alembic upgrade head` (deployment) and
       `alembic revision --autogenerate` (development).
"""

import asyncio
from logging.config import fileConfig
from typing import Any, Dict

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from aplus.config import settings
from aplus.database import Base

import aplus.models  # noqa: F401  (registers every table on Base.metadata)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

config.set_main_option("sqlalchemy.url", settings.database_url)
target_metadata = Base.metadata


def _options(dialect_name: str) -> Dict[str, Any]:
    """Comparison flags for autogenerate; Numeric money columns and CHECKs matter."""
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    """Emit the SQL script to stdout (`alembic upgrade head --sql`)."""
    url = config.get_main_option("sqlalchemy.url")
    dialect_name = url.split(":", 1)[0].split("+", 1)[0]
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_options(dialect_name),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, **_options(connection.dialect.name))

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
