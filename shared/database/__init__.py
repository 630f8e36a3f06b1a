"""
Tortoise ORM lifecycle for workflow and deployment records.

``init_db`` connects with the configured database URL unless one is passed in;
tests hand it an in-memory SQLite URL.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from tortoise import Tortoise

from shared.database.config import DATABASE_URL, DB_GENERATE_SCHEMAS, build_tortoise_config
from shared.logger import get_logger

logger = get_logger("shared.database")


def _backend_name(database_url: str) -> str:
    return database_url.split("://", 1)[0] or "unknown"


async def init_db(database_url: Optional[str] = None, *, generate_schemas: Optional[bool] = None) -> None:
    """
    Connect Tortoise and optionally create the record tables.

    Args:
        database_url: Overrides ``config.database_url``
        generate_schemas: Overrides ``config.db_generate_schemas``
    """
    url = database_url or DATABASE_URL
    await Tortoise.init(config=build_tortoise_config(url))
    logger.info(f"Connected to {_backend_name(url)} database")

    should_generate = DB_GENERATE_SCHEMAS if generate_schemas is None else generate_schemas
    if should_generate:
        if not url.startswith("sqlite"):
            logger.warning("Generating schemas on a non-SQLite database; prefer migrations there")
        await Tortoise.generate_schemas(safe=True)


async def close_db() -> None:
    await Tortoise.close_connections()


@asynccontextmanager
async def db_lifespan(_: FastAPI) -> AsyncIterator[None]:
    """FastAPI lifespan handler: connect on startup, close on shutdown."""
    await init_db()
    try:
        yield
    finally:
        logger.info("Closing database connections")
        await close_db()


__all__ = ["db_lifespan", "init_db", "close_db"]
