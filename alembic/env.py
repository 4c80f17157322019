"""Alembic migration environment for the tokenpay schema.

DATABASE_URL (from the environment or .env) is the same async URL the
service uses: mysql+aiomysql:// in production, sqlite+aiosqlite:// locally.
Online runs go through an async engine; offline runs render SQL for the
matching sync dialect.
"""

import asyncio
import os
from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel

import tokenpay.models  # noqa: F401  (registers users and transactions)
from alembic import context

load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata

ASYNC_DRIVERS = {"aiomysql": "pymysql", "aiosqlite": None}


def database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL must be set to run migrations")
    return url


def sync_url(url: str) -> str:
    """Swap the async driver for its sync counterpart (offline SQL only)."""
    parsed = make_url(url)
    backend, _, driver = parsed.drivername.partition("+")
    if driver in ASYNC_DRIVERS:
        sync_driver = ASYNC_DRIVERS[driver]
        parsed = parsed.set(drivername=f"{backend}+{sync_driver}" if sync_driver else backend)
    return parsed.render_as_string(hide_password=False)


def configure_context(is_sqlite: bool, **kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=is_sqlite,
        **kwargs,
    )


def run_migrations_offline() -> None:
    url = sync_url(database_url())
    configure_context(
        url.startswith("sqlite"),
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    configure_context(connection.dialect.name == "sqlite", connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = database_url()
    connectable = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
