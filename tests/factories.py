"""Principals and helpers shared by the test modules."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from wardrobe_share.config.settings import Settings
from wardrobe_share.db import models
from wardrobe_share.notifications import NotificationRequest
from wardrobe_share.services.container import Services
from wardrobe_share.services.principal import Principal

OWNER = Principal(id="owner-1", email="owner@example.com")
STYLIST = Principal(id="stylist-1", email="Stylist@Example.com")
STRANGER = Principal(id="stranger-1", email="stranger@example.com")

TEST_SETTINGS = Settings(public_base_url="https://wardrobe.test")

MakeGarment = Callable[..., Awaitable[models.Garment]]


@dataclass
class RecordingDispatcher:
    """Keeps every notification it is asked to deliver."""

    requests: list[NotificationRequest] = field(default_factory=list)

    async def notify(self, request: NotificationRequest) -> None:
        self.requests.append(request)

    def of_type(self, notification_type: str) -> list[NotificationRequest]:
        return [request for request in self.requests if request.type == notification_type]


async def grant_access(
    services: Services,
    owner: Principal,
    collaborator: Principal,
) -> models.AccessGrant:
    """Invite ``collaborator`` to ``owner``'s wardrobe and accept the invite."""

    async with services.session_factory() as session:
        grant = await services.ledger.create_invite(session, owner=owner, email=collaborator.email)
    async with services.session_factory() as session:
        return await services.ledger.accept_invite(
            session,
            principal=collaborator,
            code=grant.invite_code,
        )
