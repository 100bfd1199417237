"""Route newly arrived notifications to exactly one presentation surface."""

from __future__ import annotations

import logging

from notification_sync.config import Settings, get_settings
from notification_sync.domain.entities import (
    DeliveryDecision,
    NotificationEvent,
    PermissionState,
    StateChange,
    Surface,
)

from .ports import PresentationPlatform

logger = logging.getLogger(__name__)


class DeliveryCoordinator:
    """Decide between OS push, in-app toast and a silent badge update.

    Only ``StateChange.arrived`` is considered, so poll refreshes of already
    known notifications never present anything twice.
    """

    def __init__(
        self, platform: PresentationPlatform, *, settings: Settings | None = None
    ) -> None:
        self._platform = platform
        self._settings = settings or get_settings()
        self._permission = PermissionState.DEFAULT
        self._presented: set[int] = set()
        self._interactions = 0

    @property
    def permission(self) -> PermissionState:
        return self._permission

    def start(self) -> None:
        """Read the push permission once for the new session."""

        self._permission = PermissionState.from_platform(self._platform.permission())
        logger.debug("Push permission at session start: %s", self._permission.value)

    def reset(self) -> None:
        self._presented.clear()
        self._interactions = 0

    def decide(self, event: NotificationEvent) -> Surface:
        hidden = self._platform.is_page_hidden()
        if hidden and self._permission is PermissionState.GRANTED:
            return Surface.OS_PUSH
        if not hidden:
            return Surface.TOAST
        return Surface.BADGE

    def handle_change(self, change: StateChange) -> list[DeliveryDecision]:
        """Present every notification in ``change.arrived`` not presented before."""

        decisions: list[DeliveryDecision] = []
        for event in change.arrived:
            if event.id in self._presented:
                continue
            self._presented.add(event.id)
            surface = self.decide(event)
            self._present(event, surface)
            decisions.append(DeliveryDecision(notification_id=event.id, surface=surface))
        return decisions

    def _present(self, event: NotificationEvent, surface: Surface) -> None:
        if surface is Surface.OS_PUSH:
            self._platform.show_push(
                event.title,
                body=event.message,
                tag=f"notification-{event.id}",
                icon=self._settings.push_icon,
            )
        elif surface is Surface.TOAST:
            self._platform.show_toast(
                event.title,
                description=event.message,
                duration=self._settings.toast_duration,
            )
        else:
            logger.debug("Notification %s delivered to the badge only", event.id)

    async def request_permission(self) -> PermissionState:
        """Ask the user for push permission; only ever asks from ``default``."""

        if self._permission is not PermissionState.DEFAULT:
            return self._permission
        result = PermissionState.from_platform(await self._platform.request_permission())
        self._permission = result
        logger.info("Push permission is now %s", result.value)
        return result

    def record_interaction(self) -> bool:
        """Count a dropdown opening; ``True`` when push should be suggested."""

        if self._permission is not PermissionState.DEFAULT:
            return False
        should_prompt = self._interactions >= self._settings.push_prompt_after
        self._interactions += 1
        return should_prompt


__all__ = ["DeliveryCoordinator"]
