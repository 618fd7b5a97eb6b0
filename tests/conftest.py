"""Shared fixtures: a fresh sqlite database per test and wired services."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

# Module-level engine in wardrobe_share.db.session must not touch ./data.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from factories import TEST_SETTINGS, MakeGarment, RecordingDispatcher
from wardrobe_share.cache import InMemoryCache
from wardrobe_share.db import models
from wardrobe_share.db.session import build_engine, build_session_factory, init_db
from wardrobe_share.services.container import Services, build_services


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'wardrobe.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def services(
    session_factory: async_sessionmaker[AsyncSession],
    dispatcher: RecordingDispatcher,
    cache: InMemoryCache,
) -> Services:
    return build_services(TEST_SETTINGS, session_factory, cache=cache, dispatcher=dispatcher)


@pytest.fixture
def make_garment(session_factory: async_sessionmaker[AsyncSession]) -> MakeGarment:
    async def _make(owner_id: str, name: str, type: str, **fields: Any) -> models.Garment:
        async with session_factory() as session:
            garment = models.Garment(owner_id=owner_id, name=name, type=type, **fields)
            session.add(garment)
            await session.commit()
            return garment

    return _make
