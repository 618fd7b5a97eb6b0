"""Process-wide logging setup."""

from __future__ import annotations

import logging

from wardrobe_share.config.settings import get_settings


def configure_logging() -> None:
    """Set the root level from LOG_LEVEL and use the pipe-separated line format."""

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
