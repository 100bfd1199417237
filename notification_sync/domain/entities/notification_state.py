"""Snapshots of the reconciled notification state."""

from __future__ import annotations

from dataclasses import dataclass

from .notification import NotificationEvent

_BADGE_LIMIT = 99


@dataclass(frozen=True)
class NotificationSnapshot:
    """Immutable view of a user's notifications at a given version."""

    items: tuple[NotificationEvent, ...] = ()
    unread_count: int = 0
    version: int = 0

    @property
    def badge_label(self) -> str:
        if self.unread_count <= 0:
            return ""
        if self.unread_count > _BADGE_LIMIT:
            return f"{_BADGE_LIMIT}+"
        return str(self.unread_count)

    def get(self, notification_id: int) -> NotificationEvent | None:
        for item in self.items:
            if item.id == notification_id:
                return item
        return None

    def ids(self) -> list[int]:
        return [item.id for item in self.items]


@dataclass(frozen=True)
class StateChange:
    """Published by the reconciler whenever items or the unread count change.

    ``arrived`` holds only notifications first seen through the socket in this
    change; poll refreshes never populate it.
    """

    snapshot: NotificationSnapshot
    arrived: tuple[NotificationEvent, ...] = ()
    source: str = "local"


__all__ = ["NotificationSnapshot", "StateChange"]
