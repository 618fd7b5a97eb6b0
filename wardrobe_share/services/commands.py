"""Closed command set executed against the services.

Each command is a frozen dataclass. :meth:`CommandHandler.execute` matches
them exhaustively, runs each one in its own session, and turns domain errors
into a :class:`CommandResult`. Unknown commands, including unknown ``type``
strings given to :func:`parse_command`, are validation errors.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.services.collections import CollectionDraft
from wardrobe_share.services.container import Services
from wardrobe_share.services.errors import InternalError, ValidationError, WardrobeShareError
from wardrobe_share.services.principal import Principal
from wardrobe_share.services.states import PermissionLevel
from wardrobe_share.services.suggestions import SuggestionDraft

logger = logging.getLogger(__name__)


class TransitionAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class CreateInvite:
    email: str


@dataclass(frozen=True, slots=True)
class AcceptInvite:
    code: str


@dataclass(frozen=True, slots=True)
class RevokeGrant:
    grant_id: str


@dataclass(frozen=True, slots=True)
class SaveCollection:
    name: str
    garment_ids: Sequence[str] = ()
    permission_level: str = PermissionLevel.STYLIST.value
    description: str | None = None
    id: str | None = None


@dataclass(frozen=True, slots=True)
class InviteToCollection:
    collection_id: str
    emails: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class DeleteCollection:
    collection_id: str


@dataclass(frozen=True, slots=True)
class CreateSuggestion:
    owner_id: str
    garment_ids: Sequence[str] = ()
    title: str | None = None
    description: str | None = None
    occasion: str | None = None
    tags: Sequence[str] = ()
    collection_id: str | None = None


@dataclass(frozen=True, slots=True)
class Transition:
    suggestion_id: str
    action: TransitionAction
    feedback: str | None = None


@dataclass(frozen=True, slots=True)
class ModifySuggestion:
    suggestion_id: str
    add_ids: Sequence[str] = ()
    remove_ids: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class DeleteSuggestion:
    suggestion_id: str


@dataclass(frozen=True, slots=True)
class AddComment:
    suggestion_id: str
    message: str


@dataclass(frozen=True, slots=True)
class PlanOutfit:
    garment_ids: Sequence[str]
    planned_at: datetime
    title: str | None = None
    occasion: str | None = None


@dataclass(frozen=True, slots=True)
class Recommend:
    owner_id: str
    occasion: str = "casual"


Command = (
    CreateInvite
    | AcceptInvite
    | RevokeGrant
    | SaveCollection
    | InviteToCollection
    | DeleteCollection
    | CreateSuggestion
    | Transition
    | ModifySuggestion
    | DeleteSuggestion
    | AddComment
    | PlanOutfit
    | Recommend
)

COMMAND_TYPES: dict[str, type] = {
    "create_invite": CreateInvite,
    "accept_invite": AcceptInvite,
    "revoke_grant": RevokeGrant,
    "save_collection": SaveCollection,
    "invite_to_collection": InviteToCollection,
    "delete_collection": DeleteCollection,
    "create_suggestion": CreateSuggestion,
    "transition": Transition,
    "modify_suggestion": ModifySuggestion,
    "delete_suggestion": DeleteSuggestion,
    "add_comment": AddComment,
    "plan_outfit": PlanOutfit,
    "recommend": Recommend,
}


def parse_command(payload: Mapping[str, Any]) -> Command:
    """Build a command from ``{"type": ..., **fields}``."""

    kind = payload.get("type")
    command_type = COMMAND_TYPES.get(kind) if isinstance(kind, str) else None
    if command_type is None:
        raise ValidationError(f"Unknown command: {kind!r}")

    allowed = {item.name for item in fields(command_type)}
    arguments = {key: value for key, value in payload.items() if key != "type"}
    unexpected = set(arguments) - allowed
    if unexpected:
        raise ValidationError(f"Unexpected fields: {', '.join(sorted(unexpected))}")

    if command_type is Transition and "action" in arguments:
        try:
            arguments["action"] = TransitionAction(arguments["action"])
        except ValueError as exc:
            raise ValidationError(f"Unknown transition: {arguments['action']!r}") from exc
    if command_type is PlanOutfit and isinstance(arguments.get("planned_at"), str):
        try:
            arguments["planned_at"] = datetime.fromisoformat(arguments["planned_at"])
        except ValueError as exc:
            raise ValidationError("plannedAt must be an ISO 8601 timestamp") from exc
    try:
        return command_type(**arguments)
    except TypeError as exc:
        raise ValidationError(f"Missing fields for {kind}") from exc


@dataclass(slots=True)
class CommandResult:
    """Structured outcome of a command; ``error`` holds the error code on failure."""

    ok: bool
    value: Any = None
    error: str | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> CommandResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: WardrobeShareError) -> CommandResult:
        return cls(ok=False, error=error.code, message=error.message)


class CommandHandler:
    """Executes commands for an authenticated principal."""

    def __init__(self, services: Services) -> None:
        self._services = services

    async def execute(self, principal: Principal, command: Command) -> CommandResult:
        try:
            async with self._services.session_factory() as session:
                value = await self._dispatch(session, principal, command)
        except WardrobeShareError as exc:
            logger.info(
                "%s by %s failed: %s",
                type(command).__name__,
                principal.id,
                exc.message,
            )
            return CommandResult.failure(exc)
        except SQLAlchemyError:
            logger.exception("%s by %s hit a persistence fault", type(command).__name__, principal.id)
            return CommandResult.failure(InternalError("Internal error"))
        return CommandResult.success(value)

    async def _dispatch(self, session: AsyncSession, principal: Principal, command: Any) -> Any:
        services = self._services
        match command:
            case CreateInvite(email=email):
                return await services.ledger.create_invite(session, owner=principal, email=email)
            case AcceptInvite(code=code):
                return await services.ledger.accept_invite(session, principal=principal, code=code)
            case RevokeGrant(grant_id=grant_id):
                return await services.ledger.revoke(session, owner_id=principal.id, grant_id=grant_id)
            case SaveCollection():
                draft = CollectionDraft(
                    name=command.name,
                    garment_ids=command.garment_ids,
                    permission_level=command.permission_level,
                    description=command.description,
                    id=command.id,
                )
                return await services.collections.save(session, owner_id=principal.id, draft=draft)
            case InviteToCollection(collection_id=collection_id, emails=emails):
                return await services.collections.invite(
                    session,
                    owner_id=principal.id,
                    collection_id=collection_id,
                    emails=list(emails),
                )
            case DeleteCollection(collection_id=collection_id):
                await services.collections.delete(
                    session,
                    owner_id=principal.id,
                    collection_id=collection_id,
                )
                return None
            case CreateSuggestion():
                draft = SuggestionDraft(
                    owner_id=command.owner_id,
                    garment_ids=command.garment_ids,
                    title=command.title,
                    description=command.description,
                    occasion=command.occasion,
                    tags=list(command.tags),
                    collection_id=command.collection_id,
                )
                return await services.suggestions.create(session, stylist=principal, draft=draft)
            case Transition(suggestion_id=suggestion_id, action=action, feedback=feedback):
                return await self._transition(session, principal, suggestion_id, action, feedback)
            case ModifySuggestion(suggestion_id=suggestion_id, add_ids=add_ids, remove_ids=remove_ids):
                return await services.suggestions.modify(
                    session,
                    owner_id=principal.id,
                    suggestion_id=suggestion_id,
                    add_ids=list(add_ids),
                    remove_ids=list(remove_ids),
                )
            case DeleteSuggestion(suggestion_id=suggestion_id):
                await services.suggestions.delete(
                    session,
                    principal_id=principal.id,
                    suggestion_id=suggestion_id,
                )
                return None
            case AddComment(suggestion_id=suggestion_id, message=message):
                return await services.suggestions.add_comment(
                    session,
                    principal_id=principal.id,
                    suggestion_id=suggestion_id,
                    message=message,
                )
            case PlanOutfit():
                return await services.planner.create(
                    session,
                    owner_id=principal.id,
                    garment_ids=command.garment_ids,
                    planned_at=command.planned_at,
                    title=command.title,
                    occasion=command.occasion,
                )
            case Recommend(owner_id=owner_id, occasion=occasion):
                return await services.recommender.recommend(
                    session,
                    principal=principal,
                    owner_id=owner_id,
                    occasion=occasion,
                )
            case _:
                raise ValidationError(f"Unknown command: {type(command).__name__}")

    async def _transition(
        self,
        session: AsyncSession,
        principal: Principal,
        suggestion_id: str,
        action: Any,
        feedback: str | None,
    ) -> Any:
        suggestions = self._services.suggestions
        match action:
            case TransitionAction.ACCEPT:
                return await suggestions.accept(
                    session,
                    owner_id=principal.id,
                    suggestion_id=suggestion_id,
                    feedback=feedback,
                )
            case TransitionAction.REJECT:
                return await suggestions.reject(
                    session,
                    owner_id=principal.id,
                    suggestion_id=suggestion_id,
                    feedback=feedback,
                )
            case _:
                raise ValidationError(f"Unknown transition: {action!r}")
