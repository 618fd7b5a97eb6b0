"""Pairwise wardrobe sharing through single-use invite codes."""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.cache import CacheBackend
from wardrobe_share.cache import keys
from wardrobe_share.db import models
from wardrobe_share.metrics.prometheus_exporter import (
    invites_accepted_total,
    invites_created_total,
)
from wardrobe_share.services.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from wardrobe_share.services.principal import (
    Principal,
    is_valid_email,
    is_valid_id,
    normalize_email,
    utcnow,
)
from wardrobe_share.services.states import GrantStatus

logger = logging.getLogger(__name__)

INVITE_CODE_BYTES = 16


class AccessGrantLedger:
    """Issues, accepts and revokes owner-to-collaborator grants."""

    def __init__(self, cache: CacheBackend) -> None:
        self._cache = cache

    async def create_invite(
        self,
        session: AsyncSession,
        *,
        owner: Principal,
        email: str,
    ) -> models.AccessGrant:
        """Create a pending grant addressed to ``email``.

        The invite code is random; a collision with an existing code fails the
        whole call with :class:`ConflictError` instead of retrying.
        """

        address = normalize_email(email)
        if not address or not is_valid_email(address):
            raise ValidationError("A valid email is required")
        if address == owner.normalized_email:
            raise ValidationError("You cannot invite yourself")

        grant = models.AccessGrant(
            owner_id=owner.id,
            collaborator_email=address,
            status=GrantStatus.PENDING.value,
            invite_code=secrets.token_hex(INVITE_CODE_BYTES),
        )
        session.add(grant)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise ConflictError("Invite code already in use") from exc

        invites_created_total.inc()
        logger.info("Owner %s invited %s (grant %s)", owner.id, address, grant.id)
        await self._cache.delete(keys.user_grants(owner.id))
        return grant

    async def accept_invite(
        self,
        session: AsyncSession,
        *,
        principal: Principal,
        code: str,
    ) -> models.AccessGrant:
        """Bind the calling principal to the grant behind ``code`` exactly once."""

        if not code or not isinstance(code, str):
            raise NotFoundError("Invalid invite")

        # The guarded write comes first; reading before it would let two
        # acceptors both observe "pending".
        accepted_at = utcnow()
        bind = (
            update(models.AccessGrant)
            .where(
                models.AccessGrant.invite_code == code,
                models.AccessGrant.status == GrantStatus.PENDING.value,
                models.AccessGrant.collaborator_email == principal.normalized_email,
            )
            .values(
                status=GrantStatus.ACCEPTED.value,
                collaborator_id=principal.id,
                accepted_at=accepted_at,
                updated_at=accepted_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(bind)
        if result.rowcount != 1:
            pending = await session.execute(
                select(models.AccessGrant.id).where(
                    models.AccessGrant.invite_code == code,
                    models.AccessGrant.status == GrantStatus.PENDING.value,
                ),
            )
            addressed_elsewhere = pending.scalar_one_or_none() is not None
            await session.rollback()
            if addressed_elsewhere:
                raise AuthorizationError("Invite not addressed to this user")
            raise NotFoundError("Invalid invite")
        await session.commit()

        grant = (
            await session.execute(
                select(models.AccessGrant).where(models.AccessGrant.invite_code == code),
            )
        ).scalar_one()

        invites_accepted_total.inc()
        logger.info("Principal %s accepted grant %s", principal.id, grant.id)
        await self._cache.delete(keys.user_grants(grant.owner_id), keys.user_grants(principal.id))
        return grant

    async def revoke(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        grant_id: str,
    ) -> models.AccessGrant:
        """Mark the owner's grant as revoked; suggestions already made are kept."""

        stmt = (
            update(models.AccessGrant)
            .where(
                models.AccessGrant.id == grant_id,
                models.AccessGrant.owner_id == owner_id,
            )
            .values(status=GrantStatus.REVOKED.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            raise NotFoundError("Grant not found")
        await session.commit()

        grant = await session.get(models.AccessGrant, grant_id, populate_existing=True)
        if grant is None:
            raise NotFoundError("Grant not found")
        logger.info("Owner %s revoked grant %s", owner_id, grant_id)
        stale = [keys.user_grants(owner_id)]
        if grant.collaborator_id:
            stale.append(keys.user_grants(grant.collaborator_id))
        await self._cache.delete(*stale)
        return grant

    async def has_access(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
        owner_id: str,
    ) -> bool:
        """Return ``True`` for the owner or a collaborator holding an accepted grant."""

        if not is_valid_id(principal_id) or not is_valid_id(owner_id):
            return False
        if principal_id == owner_id:
            return True
        stmt = (
            select(models.AccessGrant.id)
            .where(
                models.AccessGrant.owner_id == owner_id,
                models.AccessGrant.collaborator_id == principal_id,
                models.AccessGrant.status == GrantStatus.ACCEPTED.value,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_shares(
        self,
        session: AsyncSession,
        *,
        principal_id: str,
    ) -> dict[str, list[models.AccessGrant]]:
        """Return grants the principal issued and accepted grants they hold."""

        outgoing = await session.execute(
            select(models.AccessGrant)
            .where(models.AccessGrant.owner_id == principal_id)
            .order_by(models.AccessGrant.created_at.desc()),
        )
        incoming = await session.execute(
            select(models.AccessGrant)
            .where(
                models.AccessGrant.collaborator_id == principal_id,
                models.AccessGrant.status == GrantStatus.ACCEPTED.value,
            )
            .order_by(models.AccessGrant.created_at.desc()),
        )
        return {
            "outgoing": list(outgoing.scalars().all()),
            "incoming": list(incoming.scalars().all()),
        }
