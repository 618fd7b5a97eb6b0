"""Database engine and session management."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from wardrobe_share.config.settings import get_settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine, preparing the sqlite directory when needed."""

    if database_url.startswith("sqlite"):
        database = make_url(database_url).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(database_url, echo=False)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


engine = build_engine(get_settings().database_url)
AsyncSessionFactory = build_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a managed asynchronous SQLAlchemy session."""

    async with AsyncSessionFactory() as session:
        yield session


async def init_db(target: AsyncEngine | None = None) -> None:
    """Create database tables if they do not exist."""

    from wardrobe_share.db import models  # noqa: WPS433

    async with (target or engine).begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
