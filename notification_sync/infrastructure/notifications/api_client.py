"""REST client for the notification list, unread count and mark-read endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import aiohttp
from pydantic import ValidationError

from notification_sync.config import Settings, get_settings
from notification_sync.domain.entities import NotificationEvent
from notification_sync.domain.errors import ApiRequestError
from notification_sync.interfaces.schemas import NotificationRead, UnreadCountRead

logger = logging.getLogger(__name__)

_ERROR_DETAIL_LIMIT = 200


class NotificationApiClient:
    """Talk to the notification endpoints on the page origin."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        settings: Settings | None = None,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._base_url = (base_url or self._settings.origin).rstrip("/")
        self._prefix = self._settings.api_prefix.rstrip("/")
        self._headers = dict(headers or {})

    async def list_notifications(self, limit: int) -> list[NotificationEvent]:
        """Return up to ``limit`` most recent notifications, newest first."""

        data = await self._request("GET", "", params={"limit": str(limit)})
        if not isinstance(data, list):
            logger.warning("Notification list response is not a list; treating as empty")
            return []

        notifications: list[NotificationEvent] = []
        for entry in data:
            try:
                notifications.append(NotificationRead.model_validate(entry).to_entity())
            except ValidationError as exc:
                logger.warning(
                    "Skipping notification with %s validation errors", exc.error_count()
                )
        return notifications

    async def unread_count(self) -> int:
        data = await self._request("GET", "/unread-count")
        try:
            return UnreadCountRead.model_validate(data).count
        except ValidationError as exc:
            raise ApiRequestError("GET", "/unread-count", detail="invalid count payload") from exc

    async def mark_read(self, notification_id: int) -> None:
        await self._request("PATCH", f"/{notification_id}/read")

    async def mark_all_read(self) -> None:
        await self._request("PATCH", "/mark-all-read")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        url = f"{self._base_url}{self._prefix}{path}"
        timeout = aiohttp.ClientTimeout(total=self._settings.request_timeout)
        try:
            async with self._session.request(
                method, url, params=params, headers=self._headers, timeout=timeout
            ) as response:
                if response.status >= 400:
                    detail = (await response.text())[:_ERROR_DETAIL_LIMIT]
                    raise ApiRequestError(method, path or "/", response.status, detail)
                try:
                    return await response.json(content_type=None)
                except ValueError:
                    return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ApiRequestError(method, path or "/", detail=str(exc) or type(exc).__name__) from exc


__all__ = ["NotificationApiClient"]
