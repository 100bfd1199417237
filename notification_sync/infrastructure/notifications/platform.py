"""In-memory presentation platform for headless sessions and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from notification_sync.domain.entities import PermissionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushRecord:
    title: str
    body: str
    tag: str
    icon: str


@dataclass(frozen=True)
class ToastRecord:
    title: str
    description: str
    duration: float


@dataclass
class HeadlessPlatform:
    """Record presentations instead of drawing them.

    ``permission_answer`` is what the simulated user picks when asked for push
    permission.
    """

    hidden: bool = False
    permission_state: PermissionState = PermissionState.DEFAULT
    permission_answer: PermissionState = PermissionState.GRANTED
    pushes: list[PushRecord] = field(default_factory=list)
    toasts: list[ToastRecord] = field(default_factory=list)
    permission_requests: int = 0

    def is_page_hidden(self) -> bool:
        return self.hidden

    def permission(self) -> str:
        return self.permission_state.value

    async def request_permission(self) -> str:
        self.permission_requests += 1
        self.permission_state = self.permission_answer
        return self.permission_state.value

    def show_push(self, title: str, *, body: str, tag: str, icon: str) -> None:
        logger.info("OS push %s: %s", tag, title)
        self.pushes.append(PushRecord(title=title, body=body, tag=tag, icon=icon))

    def show_toast(self, title: str, *, description: str, duration: float) -> None:
        logger.info("Toast: %s", title)
        self.toasts.append(ToastRecord(title=title, description=description, duration=duration))


__all__ = ["HeadlessPlatform", "PushRecord", "ToastRecord"]
