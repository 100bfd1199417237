"""Interfaces the notification components expect from their collaborators."""

from __future__ import annotations

from typing import Awaitable, Callable, Protocol, Sequence

from notification_sync.domain.entities import NotificationEvent


class NotificationApi(Protocol):
    """REST endpoints used for polling and mark-read mutations."""

    async def list_notifications(self, limit: int) -> Sequence[NotificationEvent]:
        ...

    async def unread_count(self) -> int:
        ...

    async def mark_read(self, notification_id: int) -> None:
        ...

    async def mark_all_read(self) -> None:
        ...


class Transport(Protocol):
    """One open bidirectional socket."""

    async def send(self, text: str) -> None:
        ...

    async def receive(self) -> str:
        """Return the next text frame or raise ``TransportClosed``."""
        ...

    async def close(self, code: int) -> None:
        ...


TransportFactory = Callable[[str], Awaitable[Transport]]


class PresentationPlatform(Protocol):
    """Host environment surfaces: page visibility, OS push and toasts."""

    def is_page_hidden(self) -> bool:
        ...

    def permission(self) -> str:
        ...

    async def request_permission(self) -> str:
        ...

    def show_push(self, title: str, *, body: str, tag: str, icon: str) -> None:
        ...

    def show_toast(self, title: str, *, description: str, duration: float) -> None:
        ...


__all__ = [
    "NotificationApi",
    "PresentationPlatform",
    "Transport",
    "TransportFactory",
]
