"""Wiring of services and their collaborators."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wardrobe_share.cache import CacheBackend, build_cache
from wardrobe_share.catalog.garments import GarmentCatalog, SqlGarmentCatalog
from wardrobe_share.config.settings import Settings
from wardrobe_share.notifications import NotificationDispatcher, NotificationInbox, build_dispatcher
from wardrobe_share.recommender.service import RecommendationService
from wardrobe_share.services.access_grants import AccessGrantLedger
from wardrobe_share.services.collections import CollectionService
from wardrobe_share.services.planner import OutfitPlanner
from wardrobe_share.services.suggestions import SuggestionWorkflow


@dataclass(slots=True)
class Services:
    """Every service bound to one set of collaborators."""

    session_factory: async_sessionmaker[AsyncSession]
    catalog: GarmentCatalog
    cache: CacheBackend
    dispatcher: NotificationDispatcher
    ledger: AccessGrantLedger
    collections: CollectionService
    recommender: RecommendationService
    suggestions: SuggestionWorkflow
    planner: OutfitPlanner
    inbox: NotificationInbox

    async def close(self) -> None:
        """Release network clients held by the cache and the dispatcher."""

        for resource in (self.dispatcher, self.cache):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    catalog: GarmentCatalog | None = None,
    cache: CacheBackend | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> Services:
    """Assemble services; collaborators not passed in are built from ``settings``."""

    catalog = catalog or SqlGarmentCatalog()
    cache = cache or build_cache(settings)
    dispatcher = dispatcher or build_dispatcher(settings, session_factory)

    ledger = AccessGrantLedger(cache)
    collections = CollectionService(catalog, cache, settings.public_base_url)
    recommender = RecommendationService(catalog, ledger)
    suggestions = SuggestionWorkflow(
        catalog=catalog,
        ledger=ledger,
        collections=collections,
        recommender=recommender,
        dispatcher=dispatcher,
        cache=cache,
    )
    return Services(
        session_factory=session_factory,
        catalog=catalog,
        cache=cache,
        dispatcher=dispatcher,
        ledger=ledger,
        collections=collections,
        recommender=recommender,
        suggestions=suggestions,
        planner=OutfitPlanner(catalog, cache),
        inbox=NotificationInbox(),
    )
