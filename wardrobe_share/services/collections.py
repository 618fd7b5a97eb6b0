"""Owner-curated garment collections shared by link or email invite."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from sqlalchemy import String, cast, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.cache import CacheBackend
from wardrobe_share.cache import keys
from wardrobe_share.catalog.garments import GarmentCatalog, verify_ownership
from wardrobe_share.db import models
from wardrobe_share.services.errors import ConflictError, NotFoundError, ValidationError
from wardrobe_share.services.principal import is_valid_email, normalize_email, utcnow
from wardrobe_share.services.states import PermissionLevel

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 12
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


@dataclass(slots=True)
class CollectionDraft:
    """Fields an owner submits when creating or editing a collection."""

    name: str
    garment_ids: Sequence[str]
    permission_level: str = PermissionLevel.STYLIST.value
    description: str | None = None
    id: str | None = None


@dataclass(slots=True)
class SharedCollection:
    """Collection resolved through its share token."""

    collection: models.Collection
    garments: list[models.Garment]


@dataclass(slots=True)
class CollectionInvite:
    share_link: str
    invited_emails: list[str]


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class CollectionService:
    """Creates, shares and resolves collections.

    Garment ownership is re-checked against the catalog on every write rather
    than trusted from an earlier call.
    """

    def __init__(self, catalog: GarmentCatalog, cache: CacheBackend, public_base_url: str) -> None:
        self._catalog = catalog
        self._cache = cache
        self._public_base_url = public_base_url.rstrip("/")

    def _validate(self, draft: CollectionDraft) -> tuple[str, list[str], str, str | None]:
        name = (draft.name or "").strip()
        if not name:
            raise ValidationError("name required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"name must be at most {MAX_NAME_LENGTH} characters")
        try:
            permission = PermissionLevel(draft.permission_level).value
        except ValueError as exc:
            raise ValidationError("permission level must be 'viewer' or 'stylist'") from exc
        if isinstance(draft.garment_ids, str) or not all(
            isinstance(garment_id, str) and garment_id for garment_id in draft.garment_ids
        ):
            raise ValidationError("garment ids must be a list of ids")
        description = (draft.description or "").strip() or None
        if description and len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"description must be at most {MAX_DESCRIPTION_LENGTH} characters",
            )
        return name, _unique(draft.garment_ids), permission, description

    async def save(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        draft: CollectionDraft,
    ) -> models.Collection:
        """Create a collection, or update the owner's collection in place when ``draft.id`` is set."""

        name, garment_ids, permission, description = self._validate(draft)
        if not await verify_ownership(
            self._catalog,
            session,
            owner_id=owner_id,
            garment_ids=garment_ids,
        ):
            raise ValidationError("Invalid items")

        try:
            if draft.id:
                collection = await self._update(
                    session,
                    owner_id=owner_id,
                    collection_id=draft.id,
                    values={
                        "name": name,
                        "garment_ids": garment_ids,
                        "permission_level": permission,
                        "description": description,
                    },
                )
            else:
                collection = models.Collection(
                    owner_id=owner_id,
                    name=name,
                    description=description,
                    garment_ids=garment_ids,
                    permission_level=permission,
                    share_token=secrets.token_hex(SHARE_TOKEN_BYTES),
                    invited_emails=[],
                )
                session.add(collection)
                await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise ConflictError("A collection with this name already exists") from exc

        logger.info(
            "Owner %s saved collection %s with %d garments",
            owner_id,
            collection.id,
            len(garment_ids),
        )
        await self._invalidate(collection)
        return collection

    async def _update(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        collection_id: str,
        values: dict,
    ) -> models.Collection:
        stmt = (
            update(models.Collection)
            .where(
                models.Collection.id == collection_id,
                models.Collection.owner_id == owner_id,
            )
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            raise NotFoundError("Collection not found")
        await session.commit()
        collection = await session.get(models.Collection, collection_id, populate_existing=True)
        if collection is None:
            raise NotFoundError("Collection not found")
        return collection

    async def get(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        collection_id: str,
    ) -> models.Collection:
        stmt = select(models.Collection).where(
            models.Collection.id == collection_id,
            models.Collection.owner_id == owner_id,
        )
        collection = (await session.execute(stmt)).scalar_one_or_none()
        if collection is None:
            raise NotFoundError("Collection not found")
        return collection

    async def list_mine(self, session: AsyncSession, *, owner_id: str) -> list[models.Collection]:
        stmt = (
            select(models.Collection)
            .where(models.Collection.owner_id == owner_id)
            .order_by(models.Collection.updated_at.desc(), models.Collection.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, session: AsyncSession, *, owner_id: str, collection_id: str) -> None:
        """Remove the owner's collection; garments and suggestions are left alone."""

        collection = await self.get(session, owner_id=owner_id, collection_id=collection_id)
        await session.execute(
            delete(models.Collection).where(
                models.Collection.id == collection_id,
                models.Collection.owner_id == owner_id,
            ),
        )
        await session.commit()
        logger.info("Owner %s deleted collection %s", owner_id, collection_id)
        await self._invalidate(collection)

    async def invite(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        collection_id: str,
        emails: Sequence[str],
    ) -> CollectionInvite:
        """Merge ``emails`` into the invited set and return a link to the collection."""

        addresses = _unique(normalize_email(email) for email in emails)
        invalid = [address for address in addresses if not is_valid_email(address)]
        if invalid:
            raise ValidationError(f"Invalid email addresses: {', '.join(invalid)}")

        collection = await self.get(session, owner_id=owner_id, collection_id=collection_id)
        previous = list(collection.invited_emails or [])
        merged = _unique([*previous, *addresses])
        collection = await self._update(
            session,
            owner_id=owner_id,
            collection_id=collection_id,
            values={"invited_emails": merged},
        )

        await self._invalidate(collection, *(set(merged) - set(previous)))
        share_link = f"{self._public_base_url}/stylist/{owner_id}?collection={collection.id}"
        return CollectionInvite(share_link=share_link, invited_emails=merged)

    async def resolve_by_token(self, session: AsyncSession, *, token: str) -> SharedCollection:
        """Unauthenticated read: the collection and only the garments listed in it."""

        if not token:
            raise NotFoundError("Not found")
        stmt = select(models.Collection).where(models.Collection.share_token == token)
        collection = (await session.execute(stmt)).scalar_one_or_none()
        if collection is None:
            raise NotFoundError("Not found")

        garment_ids = list(collection.garment_ids or [])
        garments = await self._catalog.find_many(
            session,
            owner_id=collection.owner_id,
            ids=garment_ids,
        )
        position = {garment_id: index for index, garment_id in enumerate(garment_ids)}
        garments.sort(key=lambda garment: position[garment.id])
        return SharedCollection(collection=collection, garments=garments)

    async def list_invited(self, session: AsyncSession, *, email: str) -> list[models.Collection]:
        """Collections whose invite list contains ``email``."""

        address = normalize_email(email)
        if not address:
            raise ValidationError("User email missing")
        # JSON containment differs per backend: narrow on the serialised text,
        # then match exactly in Python.
        stmt = (
            select(models.Collection)
            .where(cast(models.Collection.invited_emails, String).contains(f'"{address}"', autoescape=True))
            .order_by(models.Collection.updated_at.desc(), models.Collection.id)
        )
        result = await session.execute(stmt)
        return [
            collection
            for collection in result.scalars().all()
            if address in (collection.invited_emails or [])
        ]

    async def find_for_owner(
        self,
        session: AsyncSession,
        *,
        collection_id: str,
        owner_id: str,
    ) -> models.Collection | None:
        stmt = select(models.Collection).where(
            models.Collection.id == collection_id,
            models.Collection.owner_id == owner_id,
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _invalidate(self, collection: models.Collection, *emails: str) -> None:
        stale = [
            keys.user_collections(collection.owner_id),
            keys.collection(collection.id),
        ]
        if collection.share_token:
            stale.append(keys.share(collection.share_token))
        for email in {*emails, *(collection.invited_emails or [])}:
            stale.append(keys.invited_collections(email))
        await self._cache.delete(*stale)
