# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from app.models.enums import NotificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A notification as handed to the delivery service."""

    user_id: uuid.UUID
    type: NotificationType
    message: str
    link: str | None = None


@runtime_checkable
class NotificationService(Protocol):
    """Interface for the notification delivery service."""

    async def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        message: str,
        link: str | None = None,
    ) -> None:
        """Deliver a notification to a user."""
        ...


class InMemoryNotificationService:
    """In-memory stub that records every notification it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        message: str,
        link: str | None = None,
    ) -> None:
        """Record the notification."""
        self.sent.append(Notification(user_id=user_id, type=type, message=message, link=link))


_notification_service: NotificationService = InMemoryNotificationService()


def get_notification_service() -> NotificationService:
    """FastAPI dependency for the notification service."""
    return _notification_service


def set_notification_service(service: NotificationService) -> None:
    """Override the service (for testing or production wiring)."""
    global _notification_service
    _notification_service = service


async def send_notification(
    user_id: uuid.UUID | None,
    type: NotificationType,
    message: str,
    link: str | None = None,
) -> bool:
    """Send a notification, never raising.

    Returns False when there is no recipient or delivery failed.
    """
    if user_id is None:
        return False
    try:
        await _notification_service.notify(user_id, type, message, link)
    except Exception:
        logger.exception("Failed to deliver %s notification to user=%s", type.value, user_id)
        return False
    return True
