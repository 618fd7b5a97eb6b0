"""Create the database tables for the configured DATABASE_URL."""

from __future__ import annotations

import asyncio
import logging

from wardrobe_share.config.settings import get_settings
from wardrobe_share.db.session import init_db
from wardrobe_share.monitoring.logging import configure_logging

logger = logging.getLogger(__name__)


async def _run() -> None:
    await init_db()
    logger.info("Tables ready at %s", get_settings().database_url)


def main() -> None:
    configure_logging()
    asyncio.run(_run())


if __name__ == "__main__":
    main()
