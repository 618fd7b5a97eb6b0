"""Fire-and-forget notification delivery."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Protocol

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wardrobe_share.config.settings import Settings
from wardrobe_share.db import models
from wardrobe_share.metrics.prometheus_exporter import notification_failures_total
from wardrobe_share.services.states import NotificationType, SuggestionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    """Event addressed to a single recipient."""

    recipient_id: str
    from_user_id: str | None
    type: str
    related_id: str | None
    message: str
    link: str | None = None


class NotificationDispatcher(Protocol):
    """Delivers notifications; implementations may raise on failure."""

    async def notify(self, request: NotificationRequest) -> None: ...


class DatabaseNotificationDispatcher:
    """Writes notifications to the inbox table using a session of its own.

    The triggering write has already committed by the time this runs, so a
    failure here cannot undo it.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def notify(self, request: NotificationRequest) -> None:
        async with self._session_factory() as session:
            session.add(
                models.Notification(
                    recipient_id=request.recipient_id,
                    from_user_id=request.from_user_id,
                    type=request.type,
                    related_id=request.related_id,
                    message=request.message,
                    link=request.link,
                ),
            )
            await session.commit()


class WebhookNotificationDispatcher:
    """Posts notifications as JSON to an external delivery service."""

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def notify(self, request: NotificationRequest) -> None:
        response = await self._client.post(self._url, json=asdict(request))
        response.raise_for_status()

    async def close(self) -> None:
        """Release HTTP resources."""

        await self._client.aclose()


class FanOutDispatcher:
    """Delivers to several dispatchers; each failure is isolated."""

    def __init__(self, *dispatchers: NotificationDispatcher) -> None:
        self._dispatchers = dispatchers

    async def notify(self, request: NotificationRequest) -> None:
        for dispatcher in self._dispatchers:
            await notify_safely(dispatcher, request)

    async def close(self) -> None:
        for dispatcher in self._dispatchers:
            close = getattr(dispatcher, "close", None)
            if close is not None:
                await close()


async def notify_safely(dispatcher: NotificationDispatcher, request: NotificationRequest) -> bool:
    """Deliver a notification, logging and swallowing any failure."""

    try:
        await dispatcher.notify(request)
    except Exception:  # noqa: BLE001 delivery is best effort
        notification_failures_total.inc()
        logger.exception(
            "Failed to deliver %s notification to %s",
            request.type,
            request.recipient_id,
        )
        return False
    return True


def suggestion_link(suggestion_id: str) -> str:
    return f"/wardrobe/suggestions/{suggestion_id}"


def suggested_event(*, suggestion: models.OutfitSuggestion, actor_id: str | None) -> NotificationRequest:
    if actor_id is None:
        message = f'A new outfit was suggested for you: "{suggestion.title}"'
    else:
        message = f'{actor_id} suggested a new outfit: "{suggestion.title}"'
    return NotificationRequest(
        recipient_id=suggestion.owner_id,
        from_user_id=actor_id,
        type=NotificationType.OUTFIT_SUGGESTED.value,
        related_id=suggestion.id,
        message=message,
        link=suggestion_link(suggestion.id),
    )


def response_event(*, suggestion: models.OutfitSuggestion) -> NotificationRequest:
    notification_type = (
        NotificationType.OUTFIT_ACCEPTED
        if suggestion.status == SuggestionStatus.ACCEPTED.value
        else NotificationType.OUTFIT_REJECTED
    )
    return NotificationRequest(
        recipient_id=suggestion.stylist_id,
        from_user_id=suggestion.owner_id,
        type=notification_type.value,
        related_id=suggestion.id,
        message=f'Your outfit suggestion "{suggestion.title}" was {suggestion.status}',
        link=suggestion_link(suggestion.id),
    )


def build_dispatcher(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> NotificationDispatcher:
    """Inbox delivery, plus the webhook when ``NOTIFICATION_WEBHOOK_URL`` is set."""

    inbox = DatabaseNotificationDispatcher(session_factory)
    if not settings.notification_webhook_url:
        return inbox
    webhook = WebhookNotificationDispatcher(
        settings.notification_webhook_url,
        timeout=settings.notification_timeout_seconds,
    )
    return FanOutDispatcher(inbox, webhook)
