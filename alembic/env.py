"""Alembic environment for the identity schema."""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from identity_vault.infrastructure.db.metadata import metadata

_INI_DEFAULT_URL = "sqlite:///./identity_vault.db"
_ASYNC_DRIVERS = ("+aiosqlite", "+asyncpg")

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _resolve_url() -> str:
    """Prefer DATABASE_URL from the environment or .env over the ini placeholder.

    A URL set programmatically (tests) always wins.
    """

    configured = config.get_main_option("sqlalchemy.url") or _INI_DEFAULT_URL
    if configured != _INI_DEFAULT_URL:
        return configured
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    return os.getenv("DATABASE_URL") or configured


def _apply_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=metadata)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_async(url: str) -> None:
    engine = async_engine_from_config({"sqlalchemy.url": url}, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(_apply_migrations)
    await engine.dispose()


def _migrate(url: str) -> None:
    if any(driver in url for driver in _ASYNC_DRIVERS):
        asyncio.run(_migrate_async(url))
        return

    engine = engine_from_config({"sqlalchemy.url": url}, poolclass=pool.NullPool)
    with engine.connect() as connection:
        _apply_migrations(connection)


if context.is_offline_mode():
    raise RuntimeError("offline SQL generation is not supported; run against a database")

_migrate(_resolve_url())
