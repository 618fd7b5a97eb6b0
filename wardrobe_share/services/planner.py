"""Outfits an owner schedules for themself."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.cache import CacheBackend
from wardrobe_share.cache import keys
from wardrobe_share.catalog.garments import GarmentCatalog, verify_ownership
from wardrobe_share.db import models
from wardrobe_share.services.errors import ValidationError
from wardrobe_share.services.principal import as_utc, utcnow
from wardrobe_share.services.states import SuggestionSource, SuggestionStatus
from wardrobe_share.services.suggestions import clean_garment_ids, clean_occasion, clean_title

logger = logging.getLogger(__name__)

DEFAULT_PLAN_TITLE = "Planned outfit"


class OutfitPlanner:
    """Self-planned outfits share the suggestion record but skip approval."""

    def __init__(self, catalog: GarmentCatalog, cache: CacheBackend) -> None:
        self._catalog = catalog
        self._cache = cache

    async def list(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        start: datetime,
        end: datetime,
    ) -> list[models.OutfitSuggestion]:
        """Planned outfits with ``start <= planned_at <= end``, earliest first."""

        lower, upper = as_utc(start), as_utc(end)
        if lower > upper:
            raise ValidationError("'from' must not be after 'to'")
        stmt = (
            select(models.OutfitSuggestion)
            .where(
                models.OutfitSuggestion.owner_id == owner_id,
                models.OutfitSuggestion.planned_at.is_not(None),
                models.OutfitSuggestion.planned_at >= lower,
                models.OutfitSuggestion.planned_at <= upper,
            )
            .order_by(models.OutfitSuggestion.planned_at, models.OutfitSuggestion.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        garment_ids: Sequence[str],
        planned_at: datetime | None,
        title: str | None = None,
        occasion: str | None = None,
    ) -> models.OutfitSuggestion:
        """Schedule an outfit; it is stored already ``accepted``."""

        if planned_at is None:
            raise ValidationError("plannedAt is required")
        ids = clean_garment_ids(garment_ids)
        if not await verify_ownership(self._catalog, session, owner_id=owner_id, garment_ids=ids):
            raise ValidationError("Some items do not exist or do not belong to this wardrobe")

        plan = models.OutfitSuggestion(
            owner_id=owner_id,
            stylist_id=owner_id,
            garment_ids=ids,
            title=clean_title((title or "").strip() or DEFAULT_PLAN_TITLE),
            description="",
            occasion=clean_occasion(occasion),
            tags=[],
            modifications=[],
            status=SuggestionStatus.ACCEPTED.value,
            source=SuggestionSource.SELF.value,
            planned_at=as_utc(planned_at),
            responded_at=utcnow(),
        )
        session.add(plan)
        await session.commit()
        logger.info("Owner %s planned outfit %s for %s", owner_id, plan.id, plan.planned_at)
        await self._cache.delete(keys.user_suggestions(owner_id), keys.suggestion(plan.id))
        return plan
