"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from notification_sync.utils import format_time_ago


class NotificationType(str, Enum):
    """Kinds of notification emitted by the platform."""

    NEW_SUBSCRIBER = "new_subscriber"
    NEW_MESSAGE = "new_message"
    NEW_COMMENT = "new_comment"
    NEW_POST = "new_post"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    PAYOUT_COMPLETED = "payout_completed"
    LIKE = "like"
    GENERIC = "generic"

    @classmethod
    def from_wire(cls, value: object) -> "NotificationType":
        """Return the member matching ``value`` or :attr:`GENERIC`."""

        try:
            return cls(str(value))
        except ValueError:
            return cls.GENERIC


_ICONS: dict[NotificationType, str] = {
    NotificationType.NEW_SUBSCRIBER: "\U0001F465",
    NotificationType.NEW_MESSAGE: "\U0001F4AC",
    NotificationType.NEW_COMMENT: "\U0001F4AD",
    NotificationType.NEW_POST: "\U0001F4DD",
    NotificationType.PAYMENT_SUCCESS: "\U0001F4B0",
    NotificationType.PAYMENT_FAILED: "❌",
    NotificationType.PAYOUT_COMPLETED: "\U0001F4B3",
    NotificationType.LIKE: "❤️",
}
_DEFAULT_ICON = "\U0001F4E2"


@dataclass(frozen=True)
class Actor:
    """User who triggered a notification."""

    id: int
    username: str
    display_name: str | None = None
    avatar: str | None = None


@dataclass(frozen=True)
class NotificationEvent:
    """Notification as observed by the client, whatever channel delivered it."""

    id: int
    type: NotificationType
    title: str
    message: str
    read: bool
    created_at: datetime
    time_ago: str = ""
    action_url: str | None = None
    actor: Actor | None = None
    entity_type: str | None = None
    entity_id: int | None = None
    metadata: Any = None

    @property
    def icon(self) -> str:
        return _ICONS.get(self.type, _DEFAULT_ICON)

    def display_time_ago(self, now: datetime | None = None) -> str:
        """Recompute the relative time label instead of trusting ``time_ago``."""

        return format_time_ago(self.created_at, now=now)

    def as_read(self) -> "NotificationEvent":
        """Return a copy flagged as read (``self`` when already read)."""

        if self.read:
            return self
        return replace(self, read=True)


__all__ = ["Actor", "NotificationEvent", "NotificationType"]
