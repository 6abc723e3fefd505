"""Transient user notifications."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationVariant(StrEnum):
    """Visual variant of a notification."""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    """A short message shown to the user once."""

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Notifier:
    """Sends notifications to a renderer, or queues them until drained.

    With ``on_notify`` set each notification is handed over once and not
    kept. Without it they accumulate in ``notifications`` for ``drain()``.
    """

    def __init__(self, on_notify: Callable[[Notification], None] | None = None):
        self.on_notify = on_notify
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        if self.on_notify:
            self.on_notify(notification)
        else:
            self.notifications.append(notification)

    def success(self, title: str, description: str) -> None:
        self.notify(Notification(title=title, description=description))

    def error(self, title: str, description: str) -> None:
        logger.debug(f"Error notification: {title}: {description}")
        self.notify(Notification(title=title, description=description, variant=NotificationVariant.DESTRUCTIVE))

    def drain(self) -> list[Notification]:
        """Return pending notifications and forget them."""
        pending, self.notifications = self.notifications, []
        return pending
