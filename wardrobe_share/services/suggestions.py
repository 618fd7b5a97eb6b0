"""Outfit suggestion lifecycle between wardrobe owners and stylists.

A suggestion starts ``pending``. Only the owner can move it, and only once:
``accept`` and ``reject`` end the lifecycle, while an explicit owner edit moves
it to ``modified``. Every move is a single conditional ``UPDATE ... WHERE
status = 'pending'`` so concurrent callers race on the database row, not on a
value read earlier; the loser sees :class:`NotFoundError`.

Stylists are admitted through one of two paths:

* an accepted :class:`~wardrobe_share.db.models.AccessGrant`, bound to the
  collaborator's email when the invite was accepted;
* a collection id owned by the target owner. This is bearer access: anyone
  holding the link may propose outfits and no identity is checked. The path
  that admitted a suggestion is kept in ``collection_id``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.cache import CacheBackend
from wardrobe_share.cache import keys
from wardrobe_share.catalog.garments import GarmentCatalog, verify_ownership
from wardrobe_share.db import models
from wardrobe_share.metrics.prometheus_exporter import suggestion_transitions_total
from wardrobe_share.notifications.dispatcher import (
    NotificationDispatcher,
    notify_safely,
    response_event,
    suggested_event,
)
from wardrobe_share.recommender.service import RecommendationService
from wardrobe_share.services.access_grants import AccessGrantLedger
from wardrobe_share.services.collections import CollectionService
from wardrobe_share.services.errors import (
    SUGGESTION_UNAVAILABLE,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from wardrobe_share.services.principal import Principal, is_valid_id, utcnow
from wardrobe_share.services.states import (
    OCCASIONS,
    CommentRole,
    SuggestionSource,
    SuggestionStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Outfit Suggestion"
DEFAULT_OCCASION = "casual"
MAX_TITLE_LENGTH = 200
MAX_COMMENT_LENGTH = 1000
SUGGESTION_NOT_FOUND = "Suggestion not found"
STATS_TTL_SECONDS = 60


@dataclass(slots=True)
class SuggestionDraft:
    """Proposal submitted by a stylist."""

    owner_id: str
    garment_ids: Sequence[str]
    title: str | None = None
    description: str | None = None
    occasion: str | None = None
    tags: Sequence[str] = field(default_factory=list)
    collection_id: str | None = None


def clean_garment_ids(garment_ids: Any) -> list[str]:
    """Validate an ordered, non-empty list of garment ids."""

    if isinstance(garment_ids, str) or not isinstance(garment_ids, Sequence) or not garment_ids:
        raise ValidationError("garment ids are required")
    if not all(isinstance(garment_id, str) and garment_id for garment_id in garment_ids):
        raise ValidationError("garment ids must be strings")
    return list(garment_ids)


def clean_occasion(occasion: str | None) -> str:
    value = (occasion or DEFAULT_OCCASION).strip().lower()
    if value not in OCCASIONS:
        raise ValidationError(f"Unknown occasion: {occasion}")
    return value


def clean_title(title: str | None) -> str:
    value = (title or "").strip() or DEFAULT_TITLE
    if len(value) > MAX_TITLE_LENGTH:
        raise ValidationError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    return value


def _clean_feedback(feedback: str | None) -> str | None:
    if feedback is None:
        return None
    return feedback.strip() or None


class SuggestionWorkflow:
    """Creates, transitions, edits and queries outfit suggestions."""

    def __init__(
        self,
        *,
        catalog: GarmentCatalog,
        ledger: AccessGrantLedger,
        collections: CollectionService,
        recommender: RecommendationService,
        dispatcher: NotificationDispatcher,
        cache: CacheBackend,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._collections = collections
        self._recommender = recommender
        self._dispatcher = dispatcher
        self._cache = cache

    async def _admitting_collection(
        self,
        session: AsyncSession,
        *,
        stylist: Principal,
        owner_id: str,
        collection_id: str | None,
    ) -> models.Collection | None:
        """Return the collection that admits the stylist, or ``None`` for grant access.

        Raises :class:`AuthorizationError` when neither path applies.
        """

        if collection_id:
            collection = await self._collections.find_for_owner(
                session,
                collection_id=collection_id,
                owner_id=owner_id,
            )
            if collection is not None:
                logger.info(
                    "Principal %s admitted to wardrobe %s by collection link %s",
                    stylist.id,
                    owner_id,
                    collection.id,
                )
                return collection
        if await self._ledger.has_access(session, principal_id=stylist.id, owner_id=owner_id):
            return None
        raise AuthorizationError("You do not have permission to suggest outfits for this wardrobe")

    async def create(
        self,
        session: AsyncSession,
        *,
        stylist: Principal,
        draft: SuggestionDraft,
    ) -> models.OutfitSuggestion:
        """Store a pending proposal and notify the owner."""

        if not is_valid_id(draft.owner_id):
            raise ValidationError("ownerId is required")
        garment_ids = clean_garment_ids(draft.garment_ids)
        occasion = clean_occasion(draft.occasion)
        title = clean_title(draft.title)
        if isinstance(draft.tags, str) or not all(isinstance(tag, str) for tag in draft.tags):
            raise ValidationError("tags must be a list of strings")
        tags = [tag.strip() for tag in draft.tags if tag.strip()]

        collection = await self._admitting_collection(
            session,
            stylist=stylist,
            owner_id=draft.owner_id,
            collection_id=draft.collection_id,
        )
        if collection is not None and not set(garment_ids) <= set(collection.garment_ids):
            raise ValidationError("Some items are not part of this collection")
        if not await verify_ownership(
            self._catalog,
            session,
            owner_id=draft.owner_id,
            garment_ids=garment_ids,
        ):
            raise ValidationError("Some items do not exist or do not belong to this wardrobe")

        suggestion = models.OutfitSuggestion(
            owner_id=draft.owner_id,
            stylist_id=stylist.id,
            collection_id=collection.id if collection is not None else None,
            garment_ids=garment_ids,
            title=title,
            description=(draft.description or "").strip(),
            occasion=occasion,
            tags=tags,
            status=SuggestionStatus.PENDING.value,
            source=SuggestionSource.FRIEND.value,
            modifications=[],
        )
        return await self._store_proposal(session, suggestion, actor_id=stylist.id)

    async def create_system_suggestion(
        self,
        session: AsyncSession,
        *,
        principal: Principal,
        owner_id: str,
        occasion: str = DEFAULT_OCCASION,
    ) -> models.OutfitSuggestion | None:
        """Persist the recommender's pick as a pending ``system`` suggestion.

        Returns ``None`` when the wardrobe cannot produce a complete outfit.
        """

        if not await self._ledger.has_access(session, principal_id=principal.id, owner_id=owner_id):
            raise AuthorizationError("You do not have permission to view this wardrobe")

        wanted = (occasion or DEFAULT_OCCASION).strip().lower()
        result, recommendation = await self._recommender.compute(
            session,
            owner_id=owner_id,
            occasion=wanted,
        )
        if recommendation is None:
            return None

        suggestion = models.OutfitSuggestion(
            owner_id=owner_id,
            stylist_id=principal.id,
            garment_ids=recommendation.garment_ids,
            title=f"Recommended {wanted} outfit",
            description=result.reasoning,
            occasion=wanted if wanted in OCCASIONS else "any",
            tags=[],
            confidence=recommendation.confidence,
            status=SuggestionStatus.PENDING.value,
            source=SuggestionSource.SYSTEM.value,
            modifications=[],
        )
        return await self._store_proposal(session, suggestion, actor_id=principal.id)

    async def _store_proposal(
        self,
        session: AsyncSession,
        suggestion: models.OutfitSuggestion,
        *,
        actor_id: str,
    ) -> models.OutfitSuggestion:
        session.add(suggestion)
        await session.commit()

        suggestion_transitions_total.labels(action="create", outcome="ok").inc()
        logger.info(
            "Suggestion %s created for owner %s by %s (%s)",
            suggestion.id,
            suggestion.owner_id,
            actor_id,
            suggestion.source,
        )
        await self._invalidate(suggestion)
        if suggestion.owner_id != actor_id:
            await notify_safely(
                self._dispatcher,
                suggested_event(suggestion=suggestion, actor_id=actor_id),
            )
        return suggestion

    async def accept(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        suggestion_id: str,
        feedback: str | None = None,
    ) -> models.OutfitSuggestion:
        return await self._respond(
            session,
            owner_id=owner_id,
            suggestion_id=suggestion_id,
            status=SuggestionStatus.ACCEPTED,
            feedback=feedback,
        )

    async def reject(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        suggestion_id: str,
        feedback: str | None = None,
    ) -> models.OutfitSuggestion:
        return await self._respond(
            session,
            owner_id=owner_id,
            suggestion_id=suggestion_id,
            status=SuggestionStatus.REJECTED,
            feedback=feedback,
        )

    async def _respond(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        suggestion_id: str,
        status: SuggestionStatus,
        feedback: str | None,
    ) -> models.OutfitSuggestion:
        action = "accept" if status is SuggestionStatus.ACCEPTED else "reject"
        now = utcnow()
        values: dict[str, Any] = {"status": status.value, "responded_at": now, "updated_at": now}
        cleaned = _clean_feedback(feedback)
        if cleaned is not None:
            values["feedback"] = cleaned

        suggestion = await self._conditional_update(
            session,
            owner_id=owner_id,
            suggestion_id=suggestion_id,
            values=values,
        )
        if suggestion is None:
            suggestion_transitions_total.labels(action=action, outcome="not_found").inc()
            raise NotFoundError(SUGGESTION_UNAVAILABLE)

        suggestion_transitions_total.labels(action=action, outcome="ok").inc()
        logger.info("Owner %s %sed suggestion %s", owner_id, action, suggestion_id)
        await self._invalidate(suggestion)
        if suggestion.stylist_id != owner_id:
            await notify_safely(self._dispatcher, response_event(suggestion=suggestion))
        return suggestion

    async def _conditional_update(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        suggestion_id: str,
        values: dict[str, Any],
    ) -> models.OutfitSuggestion | None:
        """Apply ``values`` only while the owner's suggestion is still pending."""

        stmt = (
            update(models.OutfitSuggestion)
            .where(
                models.OutfitSuggestion.id == suggestion_id,
                models.OutfitSuggestion.owner_id == owner_id,
                models.OutfitSuggestion.status == SuggestionStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            return None
        await session.commit()
        return await session.get(models.OutfitSuggestion, suggestion_id, populate_existing=True)

    async def modify(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        suggestion_id: str,
        add_ids: Sequence[str] = (),
        remove_ids: Sequence[str] = (),
    ) -> models.OutfitSuggestion:
        """Owner edit of a pending suggestion; records each change and marks it ``modified``."""

        added = list(dict.fromkeys(add_ids))
        removed = list(dict.fromkeys(remove_ids))
        if not added and not removed:
            raise ValidationError("Nothing to modify")
        if not all(isinstance(garment_id, str) and garment_id for garment_id in [*added, *removed]):
            raise ValidationError("garment ids must be strings")

        stmt = select(models.OutfitSuggestion).where(
            models.OutfitSuggestion.id == suggestion_id,
            models.OutfitSuggestion.owner_id == owner_id,
            models.OutfitSuggestion.status == SuggestionStatus.PENDING.value,
        )
        current = (await session.execute(stmt)).scalar_one_or_none()
        if current is None:
            raise NotFoundError(SUGGESTION_UNAVAILABLE)
        if not await verify_ownership(
            self._catalog,
            session,
            owner_id=owner_id,
            garment_ids=added,
        ):
            raise ValidationError("Some items do not exist or do not belong to this wardrobe")

        garment_ids = [garment_id for garment_id in current.garment_ids if garment_id not in removed]
        garment_ids.extend(garment_id for garment_id in added if garment_id not in garment_ids)
        if not garment_ids:
            raise ValidationError("A suggestion needs at least one garment")

        now = utcnow()
        stamp = now.isoformat()
        modifications = list(current.modifications or [])
        modifications.extend(
            {"action": "removed", "garment_id": garment_id, "timestamp": stamp}
            for garment_id in removed
            if garment_id in current.garment_ids
        )
        modifications.extend(
            {"action": "added", "garment_id": garment_id, "timestamp": stamp}
            for garment_id in added
            if garment_id not in current.garment_ids
        )

        suggestion = await self._conditional_update(
            session,
            owner_id=owner_id,
            suggestion_id=suggestion_id,
            values={
                "garment_ids": garment_ids,
                "modifications": modifications,
                "status": SuggestionStatus.MODIFIED.value,
                "responded_at": now,
                "updated_at": now,
            },
        )
        if suggestion is None:
            suggestion_transitions_total.labels(action="modify", outcome="not_found").inc()
            raise NotFoundError(SUGGESTION_UNAVAILABLE)

        suggestion_transitions_total.labels(action="modify", outcome="ok").inc()
        await self._invalidate(suggestion)
        return suggestion

    async def _visible(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
        suggestion_id: str,
    ) -> models.OutfitSuggestion:
        """Load a suggestion the principal is a party to.

        Missing and foreign records raise the same :class:`NotFoundError`.
        """

        suggestion = await session.get(models.OutfitSuggestion, suggestion_id)
        if suggestion is None or principal_id not in (suggestion.owner_id, suggestion.stylist_id):
            raise NotFoundError(SUGGESTION_NOT_FOUND)
        return suggestion

    async def get(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
        suggestion_id: str,
    ) -> models.OutfitSuggestion:
        return await self._visible(session, principal_id=principal_id, suggestion_id=suggestion_id)

    async def delete(self, session: AsyncSession, *, principal_id: str, suggestion_id: str) -> None:
        """Delete a suggestion and its thread; only the owner or the stylist may."""

        suggestion = await self._visible(
            session,
            principal_id=principal_id,
            suggestion_id=suggestion_id,
        )
        await session.execute(
            delete(models.SuggestionComment).where(
                models.SuggestionComment.suggestion_id == suggestion_id,
            ),
        )
        await session.execute(
            delete(models.OutfitSuggestion).where(models.OutfitSuggestion.id == suggestion_id),
        )
        await session.commit()
        logger.info("Principal %s deleted suggestion %s", principal_id, suggestion_id)
        await self._invalidate(suggestion)

    async def add_comment(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
        suggestion_id: str,
        message: str,
    ) -> models.SuggestionComment:
        """Append a message to the thread; the author's role comes from the record."""

        text = (message or "").strip() if isinstance(message, str) else ""
        if not text:
            raise ValidationError("message is required")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"message must be at most {MAX_COMMENT_LENGTH} characters")

        suggestion = await self._visible(
            session,
            principal_id=principal_id,
            suggestion_id=suggestion_id,
        )
        role = CommentRole.OWNER if principal_id == suggestion.owner_id else CommentRole.STYLIST
        comment = models.SuggestionComment(
            suggestion_id=suggestion.id,
            author_id=principal_id,
            role=role.value,
            message=text,
        )
        session.add(comment)
        suggestion.updated_at = utcnow()
        await session.commit()
        await self._cache.delete(keys.suggestion(suggestion.id))
        return comment

    async def list_comments(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
        suggestion_id: str,
    ) -> list[models.SuggestionComment]:
        await self._visible(session, principal_id=principal_id, suggestion_id=suggestion_id)
        stmt = (
            select(models.SuggestionComment)
            .where(models.SuggestionComment.suggestion_id == suggestion_id)
            .order_by(models.SuggestionComment.created_at, models.SuggestionComment.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_received(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        status: str | None = None,
    ) -> list[models.OutfitSuggestion]:
        stmt = select(models.OutfitSuggestion).where(models.OutfitSuggestion.owner_id == owner_id)
        if status:
            try:
                stmt = stmt.where(models.OutfitSuggestion.status == SuggestionStatus(status).value)
            except ValueError as exc:
                raise ValidationError(f"Unknown status: {status}") from exc
        stmt = stmt.order_by(models.OutfitSuggestion.created_at.desc(), models.OutfitSuggestion.id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_created(
        self,
        session: AsyncSession,
        *,
        stylist_id: str,
    ) -> list[models.OutfitSuggestion]:
        stmt = (
            select(models.OutfitSuggestion)
            .where(
                models.OutfitSuggestion.stylist_id == stylist_id,
                models.OutfitSuggestion.source != SuggestionSource.SELF.value,
            )
            .order_by(models.OutfitSuggestion.created_at.desc(), models.OutfitSuggestion.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def stats(self, session: AsyncSession, *, principal_id: str) -> dict[str, int]:
        """Counts of suggestions received and created, and how many were accepted."""

        cache_key = keys.suggestion_stats(principal_id)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        table = models.OutfitSuggestion
        accepted = table.status == SuggestionStatus.ACCEPTED.value

        def _total(condition: Any) -> Any:
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            _total(table.owner_id == principal_id),
            _total(table.stylist_id == principal_id),
            _total((table.owner_id == principal_id) & accepted),
            _total((table.stylist_id == principal_id) & accepted),
        ).where(
            or_(table.owner_id == principal_id, table.stylist_id == principal_id),
            table.source != SuggestionSource.SELF.value,
        )
        row = (await session.execute(stmt)).one()
        result = {
            "total_received": int(row[0]),
            "total_created": int(row[1]),
            "accepted_received": int(row[2]),
            "accepted_created": int(row[3]),
        }
        await self._cache.set(cache_key, result, ttl=STATS_TTL_SECONDS)
        return result

    async def wardrobe_for_styling(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
        owner_id: str,
    ) -> list[models.Garment]:
        """The owner's garments, for principals with grant access."""

        if not await self._ledger.has_access(session, principal_id=principal_id, owner_id=owner_id):
            raise AuthorizationError("You do not have permission to view this wardrobe")
        return await self._catalog.find_many(session, owner_id=owner_id)

    async def _invalidate(self, suggestion: models.OutfitSuggestion) -> None:
        parties = {suggestion.owner_id, suggestion.stylist_id}
        stale = [keys.suggestion(suggestion.id)]
        for party in parties:
            stale.append(keys.user_suggestions(party))
            stale.append(keys.suggestion_stats(party))
        await self._cache.delete(*stale)
