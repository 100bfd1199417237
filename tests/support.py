"""In-memory collaborators used across the test-suite."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from notification_sync.config import Settings
from notification_sync.domain.entities import NotificationEvent, NotificationType
from notification_sync.domain.errors import ApiRequestError, TransportError

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
AUTH_SUCCESS = json.dumps({"type": "auth_success"})


def make_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)


def make_notification(
    notification_id: int,
    *,
    read: bool = False,
    created_at: datetime | None = None,
    title: str | None = None,
    type: NotificationType = NotificationType.NEW_COMMENT,
) -> NotificationEvent:
    return NotificationEvent(
        id=notification_id,
        type=type,
        title=title or f"Notification {notification_id}",
        message=f"Body of notification {notification_id}",
        read=read,
        created_at=created_at or BASE_TIME + timedelta(minutes=notification_id),
    )


def notification_frame(notification_id: int, *, read: bool = False, **fields: Any) -> str:
    notification = {
        "id": notification_id,
        "type": "new_comment",
        "title": f"Notification {notification_id}",
        "message": f"Body of notification {notification_id}",
        "read": read,
        "createdAt": (BASE_TIME + timedelta(minutes=notification_id)).isoformat(),
    }
    notification.update(fields)
    return json.dumps({"type": "new_notification", "notification": notification})


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays without waiting."""

    def __init__(self, *, block: bool = False) -> None:
        self.delays: list[float] = []
        self._block = block
        self._never = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._block:
            await self._never.wait()
        await asyncio.sleep(0)


class FakeTransport:
    """Scripted socket: queued strings are frames, queued exceptions are raised."""

    def __init__(self, *frames: Any) -> None:
        self.incoming: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[str] = []
        self.closed_with: int | None = None
        self.feed(*frames)

    def feed(self, *frames: Any) -> None:
        for frame in frames:
            self.incoming.put_nowait(frame)

    @property
    def sent_types(self) -> list[str]:
        return [json.loads(text)["type"] for text in self.sent]

    async def send(self, text: str) -> None:
        if self.closed_with is not None:
            raise TransportError("socket already closed")
        self.sent.append(text)

    async def receive(self) -> str:
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self, code: int) -> None:
        self.closed_with = code


class FakeTransportFactory:
    """Hand out scripted transports; refuses the connection once they run out."""

    def __init__(self, *scripts: FakeTransport | BaseException) -> None:
        self.scripts = list(scripts)
        self.urls: list[str] = []
        self.transports: list[FakeTransport] = []

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        if not self.scripts:
            raise TransportError("connection refused")
        script = self.scripts.pop(0)
        if isinstance(script, BaseException):
            raise script
        self.transports.append(script)
        return script


class FakeApi:
    """Notification REST endpoints backed by in-memory data."""

    def __init__(self, items: list[NotificationEvent] | None = None, count: int = 0) -> None:
        self.items = list(items or [])
        self.count = count
        self.list_calls = 0
        self.count_calls = 0
        self.mark_read_calls: list[int] = []
        self.mark_all_calls = 0
        self.fail_mutations = False
        self.fail_polls = False
        self.gate: asyncio.Event | None = None

    async def list_notifications(self, limit: int) -> list[NotificationEvent]:
        self.list_calls += 1
        if self.fail_polls:
            raise ApiRequestError("GET", "/", 502, "bad gateway")
        return self.items[:limit]

    async def unread_count(self) -> int:
        self.count_calls += 1
        if self.fail_polls:
            raise ApiRequestError("GET", "/unread-count", 502, "bad gateway")
        return self.count

    async def mark_read(self, notification_id: int) -> None:
        self.mark_read_calls.append(notification_id)
        await self._mutate(f"/{notification_id}/read")

    async def mark_all_read(self) -> None:
        self.mark_all_calls += 1
        await self._mutate("/mark-all-read")

    async def _mutate(self, path: str) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_mutations:
            raise ApiRequestError("PATCH", path, 503, "unavailable")


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition was not met in time")
        await asyncio.sleep(0.001)
