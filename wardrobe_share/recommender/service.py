"""Recommendation entry point backed by the garment catalog.

Catalog state changes outside this service, so every call reads it afresh.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.catalog.garments import GarmentCatalog
from wardrobe_share.metrics.prometheus_exporter import recommendations_total
from wardrobe_share.recommender.matching import Recommendation, recommend_outfit
from wardrobe_share.services.access_grants import AccessGrantLedger
from wardrobe_share.services.errors import AuthorizationError
from wardrobe_share.services.principal import Principal

logger = logging.getLogger(__name__)

NO_AVAILABLE_GARMENTS = (
    "No available clothes for recommendation. All items are either worn or need cleaning."
)
INCOMPLETE_OUTFIT = "Unable to generate a complete outfit recommendation with available items."


@dataclass(slots=True)
class RecommendationResult:
    """Outcome of a recommendation request; ``selection`` is ``None`` when nothing fits."""

    occasion: str
    selection: dict[str, Any] | None
    confidence: int
    reasoning: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "occasion": self.occasion,
            "recommendation": self.selection,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


@dataclass(slots=True)
class WardrobeSummary:
    total_items: int
    available_items: int
    worn_items: int
    needs_cleaning_items: int


def _selection(recommendation: Recommendation) -> dict[str, Any]:
    def _garment_id(garment: Any) -> str | None:
        return garment.id if garment is not None else None

    return {
        "top": _garment_id(recommendation.top),
        "bottom": _garment_id(recommendation.bottom),
        "outerwear": _garment_id(recommendation.outerwear),
        "shoes": _garment_id(recommendation.shoes),
        "accessories": [accessory.id for accessory in recommendation.accessories],
        "garment_ids": recommendation.garment_ids,
        "color_coordinated": recommendation.color_coordinated,
    }


class RecommendationService:
    """Runs the matcher over an owner's available garments."""

    def __init__(self, catalog: GarmentCatalog, ledger: AccessGrantLedger) -> None:
        self._catalog = catalog
        self._ledger = ledger

    async def _require_access(self, session: AsyncSession, principal: Principal, owner_id: str) -> None:
        if not await self._ledger.has_access(session, principal_id=principal.id, owner_id=owner_id):
            raise AuthorizationError("You do not have permission to view this wardrobe")

    async def recommend(
        self,
        session: AsyncSession,
        *,
        principal: Principal,
        owner_id: str,
        occasion: str = "casual",
    ) -> RecommendationResult:
        """Recommend an outfit for ``owner_id`` if the principal may see that wardrobe."""

        await self._require_access(session, principal, owner_id)
        wanted = (occasion or "").strip().lower() or "casual"
        result, _ = await self.compute(session, owner_id=owner_id, occasion=wanted)
        return result

    async def summary(
        self,
        session: AsyncSession,
        *,
        principal: Principal,
        owner_id: str,
    ) -> WardrobeSummary:
        """Count the owner's garments by availability."""

        await self._require_access(session, principal, owner_id)
        garments = await self._catalog.find_many(session, owner_id=owner_id)
        return WardrobeSummary(
            total_items=len(garments),
            available_items=sum(1 for item in garments if not item.worn and not item.needs_cleaning),
            worn_items=sum(1 for item in garments if item.worn),
            needs_cleaning_items=sum(1 for item in garments if item.needs_cleaning),
        )

    async def compute(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        occasion: str,
    ) -> tuple[RecommendationResult, Recommendation | None]:
        """Run the matcher without access checks."""

        garments = await self._catalog.find_many(session, owner_id=owner_id, available_only=True)
        if not garments:
            recommendations_total.labels(outcome="empty").inc()
            return RecommendationResult(occasion, None, 0, NO_AVAILABLE_GARMENTS), None

        recommendation = recommend_outfit(garments, occasion)
        if recommendation is None:
            recommendations_total.labels(outcome="incomplete").inc()
            return RecommendationResult(occasion, None, 0, INCOMPLETE_OUTFIT), None

        recommendations_total.labels(outcome="ok").inc()
        logger.debug(
            "Recommended %s for owner %s (%s, confidence %d)",
            recommendation.garment_ids,
            owner_id,
            occasion,
            recommendation.confidence,
        )
        return (
            RecommendationResult(
                occasion=occasion,
                selection=_selection(recommendation),
                confidence=recommendation.confidence,
                reasoning=recommendation.reasoning,
            ),
            recommendation,
        )
