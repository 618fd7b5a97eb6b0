"""Read-only access to the garment catalog."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.db import models


class GarmentCatalog(Protocol):
    """Queries the engine needs from the external garment store."""

    async def find_by_id(self, session: AsyncSession, garment_id: str) -> models.Garment | None: ...

    async def find_many(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        ids: Sequence[str] | None = None,
        available_only: bool = False,
    ) -> list[models.Garment]: ...

    async def count(self, session: AsyncSession, *, owner_id: str, ids: Sequence[str]) -> int: ...


class SqlGarmentCatalog:
    """Catalog adapter reading the shared ``garments`` table."""

    async def find_by_id(self, session: AsyncSession, garment_id: str) -> models.Garment | None:
        return await session.get(models.Garment, garment_id)

    async def find_many(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        ids: Sequence[str] | None = None,
        available_only: bool = False,
    ) -> list[models.Garment]:
        """Return the owner's garments, optionally restricted to ``ids`` or to wearable items."""

        stmt = select(models.Garment).where(models.Garment.owner_id == owner_id)
        if ids is not None:
            if not ids:
                return []
            stmt = stmt.where(models.Garment.id.in_(list(ids)))
        if available_only:
            stmt = stmt.where(
                models.Garment.worn.is_(False),
                models.Garment.needs_cleaning.is_(False),
            )
        stmt = stmt.order_by(models.Garment.created_at, models.Garment.id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, session: AsyncSession, *, owner_id: str, ids: Sequence[str]) -> int:
        """Count how many of ``ids`` exist and belong to ``owner_id``."""

        unique_ids = set(ids)
        if not unique_ids:
            return 0
        stmt = select(func.count()).select_from(models.Garment).where(
            models.Garment.owner_id == owner_id,
            models.Garment.id.in_(unique_ids),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())


async def verify_ownership(
    catalog: GarmentCatalog,
    session: AsyncSession,
    *,
    owner_id: str,
    garment_ids: Sequence[str],
) -> bool:
    """Return ``True`` when every id resolves to a garment owned by ``owner_id``."""

    unique_ids = set(garment_ids)
    if not unique_ids:
        return True
    return await catalog.count(session, owner_id=owner_id, ids=list(unique_ids)) == len(unique_ids)
