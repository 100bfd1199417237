"""aiohttp websocket transport for the realtime notification socket."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Mapping

import aiohttp

from notification_sync.domain.entities import ABNORMAL_CLOSURE
from notification_sync.domain.errors import TransportClosed, TransportError

if TYPE_CHECKING:
    from notification_sync.application.notifications.ports import TransportFactory

logger = logging.getLogger(__name__)

_CLOSING_TYPES = frozenset(
    {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED}
)


class AiohttpTransport:
    """Adapt :class:`aiohttp.ClientWebSocketResponse` to the transport protocol."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        websocket: aiohttp.ClientWebSocketResponse,
        *,
        owns_session: bool = False,
    ) -> None:
        self._session = session
        self._websocket = websocket
        self._owns_session = owns_session

    @classmethod
    async def connect(
        cls,
        url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> "AiohttpTransport":
        """Open a websocket to ``url`` or raise :class:`TransportError`."""

        owns_session = session is None
        client = session or aiohttp.ClientSession()
        try:
            websocket = await client.ws_connect(url, headers=headers, autoping=True)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            if owns_session:
                await client.close()
            raise TransportError(f"could not connect to {url}: {exc}") from exc
        logger.debug("Websocket opened to %s", url)
        return cls(client, websocket, owns_session=owns_session)

    @property
    def close_code(self) -> int | None:
        return self._websocket.close_code

    async def send(self, text: str) -> None:
        try:
            await self._websocket.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
            raise TransportError(f"could not send frame: {exc}") from exc

    async def receive(self) -> str:
        while True:
            message = await self._websocket.receive()
            if message.type is aiohttp.WSMsgType.TEXT:
                return message.data
            if message.type is aiohttp.WSMsgType.BINARY:
                return message.data.decode("utf-8", errors="replace")
            if message.type in _CLOSING_TYPES:
                code = self._websocket.close_code
                raise TransportClosed(
                    code if code is not None else ABNORMAL_CLOSURE,
                    str(message.extra or ""),
                )
            if message.type is aiohttp.WSMsgType.ERROR:
                raise TransportClosed(ABNORMAL_CLOSURE, str(self._websocket.exception()))
            logger.debug("Skipping websocket message of type %s", message.type)

    async def close(self, code: int) -> None:
        try:
            await self._websocket.close(code=code)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise TransportError(f"could not close socket: {exc}") from exc
        finally:
            if self._owns_session:
                await self._session.close()


def aiohttp_transport_factory(
    session: aiohttp.ClientSession | None = None,
    *,
    headers: Mapping[str, str] | None = None,
) -> TransportFactory:
    """Return a factory opening :class:`AiohttpTransport` connections."""

    async def factory(url: str) -> AiohttpTransport:
        return await AiohttpTransport.connect(url, session=session, headers=headers)

    return factory


__all__ = ["AiohttpTransport", "aiohttp_transport_factory"]
