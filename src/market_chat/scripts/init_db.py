"""Create the chat tables (the ``users`` table too, for local development)."""
from __future__ import annotations

import asyncio
import logging

from market_chat.config import settings
from market_chat.infrastructure.db.base import Base
from market_chat.infrastructure.db.session import engine
from market_chat.log import configure_logging

import market_chat.infrastructure.db.models  # noqa: F401

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))
    await engine.dispose()


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(create_tables())


if __name__ == "__main__":
    main()
