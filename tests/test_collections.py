"""Tests for curated collections and their share paths."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select, update

from factories import OWNER, STRANGER, STYLIST, MakeGarment
from wardrobe_share.db import models
from wardrobe_share.services.collections import CollectionDraft
from wardrobe_share.services.container import Services
from wardrobe_share.services.errors import ConflictError, NotFoundError, ValidationError
from wardrobe_share.services.suggestions import SuggestionDraft


@pytest.mark.asyncio
async def test_save_creates_collection_with_share_token(
    services: Services,
    make_garment: MakeGarment,
) -> None:
    shirt = await make_garment(OWNER.id, "Shirt", "shirt")
    jeans = await make_garment(OWNER.id, "Jeans", "jeans")

    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="  Weekend  ", garment_ids=[shirt.id, jeans.id, shirt.id]),
        )

    assert collection.name == "Weekend"
    assert collection.garment_ids == [shirt.id, jeans.id]
    assert collection.permission_level == "stylist"
    assert collection.share_token
    assert collection.invited_emails == []


@pytest.mark.asyncio
async def test_save_rejects_foreign_garments(services: Services, make_garment: MakeGarment) -> None:
    mine = await make_garment(OWNER.id, "Shirt", "shirt")
    theirs = await make_garment(STRANGER.id, "Coat", "coat")

    async with services.session_factory() as session:
        with pytest.raises(ValidationError):
            await services.collections.save(
                session,
                owner_id=OWNER.id,
                draft=CollectionDraft(name="Mixed", garment_ids=[mine.id, theirs.id]),
            )
        count = await session.scalar(select(func.count()).select_from(models.Collection))

    assert count == 0


@pytest.mark.asyncio
async def test_update_rechecks_ownership(services: Services, make_garment: MakeGarment) -> None:
    shirt = await make_garment(OWNER.id, "Shirt", "shirt")
    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Work", garment_ids=[shirt.id]),
        )

    # The catalog hands the garment to someone else between requests.
    async with services.session_factory() as session:
        await session.execute(
            update(models.Garment).where(models.Garment.id == shirt.id).values(owner_id=STRANGER.id),
        )
        await session.commit()

    async with services.session_factory() as session:
        with pytest.raises(ValidationError):
            await services.collections.save(
                session,
                owner_id=OWNER.id,
                draft=CollectionDraft(id=collection.id, name="Work", garment_ids=[shirt.id]),
            )


@pytest.mark.asyncio
async def test_update_is_scoped_to_owner(services: Services) -> None:
    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Mine", garment_ids=[]),
        )

    async with services.session_factory() as session:
        with pytest.raises(NotFoundError):
            await services.collections.save(
                session,
                owner_id=STRANGER.id,
                draft=CollectionDraft(id=collection.id, name="Hijacked", garment_ids=[]),
            )
        unchanged = await services.collections.get(
            session,
            owner_id=OWNER.id,
            collection_id=collection.id,
        )

    assert unchanged.name == "Mine"


@pytest.mark.asyncio
async def test_update_keeps_token_and_changes_fields(
    services: Services,
    make_garment: MakeGarment,
) -> None:
    shirt = await make_garment(OWNER.id, "Shirt", "shirt")
    async with services.session_factory() as session:
        created = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Draft", garment_ids=[]),
        )
    async with services.session_factory() as session:
        updated = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(
                id=created.id,
                name="Final",
                garment_ids=[shirt.id],
                permission_level="viewer",
            ),
        )

    assert updated.id == created.id
    assert updated.share_token == created.share_token
    assert updated.name == "Final"
    assert updated.garment_ids == [shirt.id]
    assert updated.permission_level == "viewer"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "draft",
    [
        CollectionDraft(name="   ", garment_ids=[]),
        CollectionDraft(name="x" * 101, garment_ids=[]),
        CollectionDraft(name="Bad level", garment_ids=[], permission_level="admin"),
        CollectionDraft(name="Bad ids", garment_ids="abc"),
    ],
)
async def test_save_validates_draft(services: Services, draft: CollectionDraft) -> None:
    async with services.session_factory() as session:
        with pytest.raises(ValidationError):
            await services.collections.save(session, owner_id=OWNER.id, draft=draft)


@pytest.mark.asyncio
async def test_duplicate_name_conflicts(services: Services) -> None:
    async with services.session_factory() as session:
        await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Summer", garment_ids=[]),
        )
    async with services.session_factory() as session:
        with pytest.raises(ConflictError):
            await services.collections.save(
                session,
                owner_id=OWNER.id,
                draft=CollectionDraft(name="Summer", garment_ids=[]),
            )


@pytest.mark.asyncio
async def test_resolve_by_token_returns_only_listed_garments(
    services: Services,
    make_garment: MakeGarment,
) -> None:
    shirt = await make_garment(OWNER.id, "Shirt", "shirt")
    jeans = await make_garment(OWNER.id, "Jeans", "jeans")
    await make_garment(OWNER.id, "Private coat", "coat")

    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Shared", garment_ids=[jeans.id, shirt.id]),
        )

    async with services.session_factory() as session:
        shared = await services.collections.resolve_by_token(session, token=collection.share_token)

    assert shared.collection.id == collection.id
    assert [garment.id for garment in shared.garments] == [jeans.id, shirt.id]


@pytest.mark.asyncio
async def test_unknown_token_is_not_found(services: Services) -> None:
    async with services.session_factory() as session:
        with pytest.raises(NotFoundError):
            await services.collections.resolve_by_token(session, token="missing")


@pytest.mark.asyncio
async def test_invite_merges_emails_and_links_collection(services: Services) -> None:
    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Party", garment_ids=[]),
        )

    async with services.session_factory() as session:
        await services.collections.invite(
            session,
            owner_id=OWNER.id,
            collection_id=collection.id,
            emails=[STYLIST.email],
        )
        invite = await services.collections.invite(
            session,
            owner_id=OWNER.id,
            collection_id=collection.id,
            emails=["stylist@example.com", "friend@example.com"],
        )

    assert invite.invited_emails == ["stylist@example.com", "friend@example.com"]
    assert invite.share_link == (
        f"https://wardrobe.test/stylist/{OWNER.id}?collection={collection.id}"
    )

    async with services.session_factory() as session:
        invited = await services.collections.list_invited(session, email="Friend@Example.com")
        not_invited = await services.collections.list_invited(session, email=STRANGER.email)

    assert [item.id for item in invited] == [collection.id]
    assert not_invited == []


@pytest.mark.asyncio
async def test_invite_rejects_invalid_email(services: Services) -> None:
    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Party", garment_ids=[]),
        )
        with pytest.raises(ValidationError):
            await services.collections.invite(
                session,
                owner_id=OWNER.id,
                collection_id=collection.id,
                emails=["nope"],
            )


@pytest.mark.asyncio
async def test_delete_keeps_garments_and_suggestions(
    services: Services,
    make_garment: MakeGarment,
) -> None:
    shirt = await make_garment(OWNER.id, "Shirt", "shirt")
    async with services.session_factory() as session:
        collection = await services.collections.save(
            session,
            owner_id=OWNER.id,
            draft=CollectionDraft(name="Temp", garment_ids=[shirt.id]),
        )
    async with services.session_factory() as session:
        suggestion = await services.suggestions.create(
            session,
            stylist=STRANGER,
            draft=SuggestionDraft(
                owner_id=OWNER.id,
                garment_ids=[shirt.id],
                collection_id=collection.id,
            ),
        )

    async with services.session_factory() as session:
        with pytest.raises(NotFoundError):
            await services.collections.delete(
                session,
                owner_id=STRANGER.id,
                collection_id=collection.id,
            )
        await services.collections.delete(session, owner_id=OWNER.id, collection_id=collection.id)

    async with services.session_factory() as session:
        assert await services.collections.list_mine(session, owner_id=OWNER.id) == []
        assert await session.get(models.Garment, shirt.id) is not None
        kept = await session.get(models.OutfitSuggestion, suggestion.id)

    assert kept is not None
    assert kept.garment_ids == [shirt.id]
