"""Create all tables directly from the ORM metadata.

Meant for fresh local or container databases; deployed databases are
managed with ``alembic upgrade head``.
"""

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from claude_chat.core.config import get_settings
from claude_chat.core.db import Database
from claude_chat.core.logging import configure_logging
from claude_chat.models import Base

MAX_ATTEMPTS = 30

logger = logging.getLogger("claude_chat.scripts.init_db")


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    database = Database(settings.database_url)

    try:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                async with database.engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                    await conn.run_sync(Base.metadata.create_all)
                logger.info("Database schema created", extra={"attempt": attempt})
                return
            except (OperationalError, OSError):
                if attempt == MAX_ATTEMPTS:
                    raise
                logger.warning("Database not ready, retrying", extra={"attempt": attempt})
                await asyncio.sleep(1)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
