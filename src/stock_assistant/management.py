"""Utility helpers for administrative tasks."""
from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine

from .database import Base, create_engine


async def init_database(db_engine: AsyncEngine) -> None:
    """Create the ledger tables if they do not exist yet."""

    from . import models  # noqa: F401  registers the tables on Base.metadata

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _init_from_settings() -> None:
    from .config import get_settings

    engine = create_engine(get_settings())
    try:
        await init_database(engine)
    finally:
        await engine.dispose()


def cli_init_database() -> None:
    """CLI wrapper executed from :mod:`python -m`."""

    asyncio.run(_init_from_settings())


if __name__ == "__main__":
    cli_init_database()
