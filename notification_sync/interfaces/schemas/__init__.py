from .notification import (
    ActorRead,
    DirectMessageFrame,
    DirectMessageRead,
    NotificationFrame,
    NotificationRead,
    UnreadCountRead,
)

__all__ = [
    "ActorRead",
    "DirectMessageFrame",
    "DirectMessageRead",
    "NotificationFrame",
    "NotificationRead",
    "UnreadCountRead",
]
