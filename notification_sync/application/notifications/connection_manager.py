"""Connection management for the realtime notification socket."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit, urlunsplit

from notification_sync.config import Settings, get_settings
from notification_sync.domain.entities import (
    GOING_AWAY,
    NORMAL_CLOSURE,
    POLICY_VIOLATION,
    ConnectionState,
    ConnectionTransition,
)
from notification_sync.domain.errors import (
    AuthRejected,
    ConnectionExhausted,
    NotificationSyncError,
    TransportClosed,
    TransportError,
)
from notification_sync.utils.fanout import SubscriberRegistry, Subscription

from .ports import Transport, TransportFactory

logger = logging.getLogger(__name__)

_PING_FRAME = json.dumps({"type": "ping"})
_AUTH_REJECTED_TYPES = frozenset({"auth_error", "auth_failed"})
# Silent heartbeat intervals tolerated before the link is considered dead.
_MAX_IDLE_INTERVALS = 2


def build_socket_url(origin: str, path: str) -> str:
    """Return the socket address for ``path`` on the page ``origin``."""

    parts = urlsplit(origin)
    if not parts.netloc:
        raise ValueError(f"origin {origin!r} has no host")
    scheme = "wss" if parts.scheme in ("https", "wss") else "ws"
    if not path.startswith("/"):
        path = f"/{path}"
    return urlunsplit((scheme, parts.netloc, path, "", ""))


def _frame_type(raw: str) -> str | None:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if isinstance(payload, dict) and isinstance(payload.get("type"), str):
        return payload["type"]
    return None


class ConnectionManager:
    """Own one logical socket per session across reconnects.

    A single supervisor task connects, authenticates, pumps frames and sleeps
    between attempts, so at most one reconnection timer exists at any time.
    Frames are handed to ``on_frame`` unparsed once the server confirmed the
    authentication frame.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        on_frame: Callable[[str], Any],
        *,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_error: Callable[[NotificationSyncError], Any] | None = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._on_frame = on_frame
        self._settings = settings or get_settings()
        self._sleep = sleep
        self.on_error = on_error
        self._state = ConnectionState.DISCONNECTED
        self._listeners: SubscriberRegistry[ConnectionTransition] = SubscriberRegistry(
            "connection state"
        )
        self._task: asyncio.Task[None] | None = None
        self._transport: Transport | None = None
        self._user_id: int | str | None = None
        self._url: str | None = None
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        """Consecutive abnormal closures since the connection was last live."""

        return self._attempts

    @property
    def url(self) -> str | None:
        return self._url

    def subscribe(
        self, callback: Callable[[ConnectionTransition], Any]
    ) -> Subscription[ConnectionTransition]:
        return self._listeners.subscribe(callback)

    def reconnect_delay(self, attempt: int) -> float:
        """Backoff before reconnection ``attempt`` (1-based), without jitter."""

        delay = self._settings.initial_reconnect_delay * 2 ** (attempt - 1)
        return min(delay, self._settings.max_reconnect_delay)

    def open(self, user_id: int | str, origin: str | None = None) -> bool:
        """Start connecting for ``user_id``; no-op while a connection is active."""

        if self._state.is_active:
            logger.debug("open() ignored while %s", self._state.value)
            return False

        self._user_id = user_id
        self._url = build_socket_url(origin or self._settings.origin, self._settings.socket_path)
        self._attempts = 0
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(self._supervise(), name="notification-socket")
        return True

    async def close(self) -> None:
        """Close intentionally; cancels any pending reconnection.

        Once this returns no further transition is published and no new socket
        is opened until :meth:`open` is called again.
        """

        task, self._task = self._task, None
        self._set_state(ConnectionState.CLOSED)
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ------------------------------------------------------------------
    # Supervisor
    # ------------------------------------------------------------------
    async def _supervise(self) -> None:
        try:
            while True:
                self._advance(ConnectionState.CONNECTING)
                try:
                    await self._connect_and_serve()
                except AuthRejected as exc:
                    logger.error("Realtime authentication rejected: %s", exc)
                    self._finish(exc)
                    return
                except TransportClosed as exc:
                    if exc.code == NORMAL_CLOSURE:
                        logger.info("Server closed the realtime connection normally")
                        self._finish(None)
                        return
                    logger.warning("Realtime connection lost: %s", exc)
                except TransportError as exc:
                    logger.warning("Realtime connection failed: %s", exc)
                except Exception:
                    logger.exception("Unexpected error on the realtime connection")

                self._ensure_current()
                self._attempts += 1
                if self._attempts > self._settings.max_reconnect_attempts:
                    exhausted = ConnectionExhausted(self._settings.max_reconnect_attempts)
                    logger.error("%s", exhausted)
                    self._finish(exhausted)
                    return

                delay = self.reconnect_delay(self._attempts)
                self._advance(ConnectionState.RECONNECTING)
                logger.info(
                    "Reconnecting in %.1fs (attempt %s/%s)",
                    delay,
                    self._attempts,
                    self._settings.max_reconnect_attempts,
                )
                await self._sleep(delay)
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    def _ensure_current(self) -> None:
        # close() drops the task reference; a superseded supervisor stops here.
        if self._task is not asyncio.current_task():
            raise asyncio.CancelledError()

    def _advance(self, state: ConnectionState) -> None:
        self._ensure_current()
        self._set_state(state)

    def _finish(self, error: NotificationSyncError | None) -> None:
        self._advance(ConnectionState.CLOSED)
        if error is not None and self.on_error is not None:
            self.on_error(error)

    async def _connect_and_serve(self) -> None:
        transport = await self._transport_factory(self._url)
        self._transport = transport
        close_code = NORMAL_CLOSURE
        try:
            self._ensure_current()
            await transport.send(json.dumps({"type": "auth", "userId": self._user_id}))
            self._advance(ConnectionState.AUTHENTICATING)
            await self._authenticate(transport)
            self._attempts = 0
            self._advance(ConnectionState.LIVE)
            logger.info("Realtime connection live at %s", self._url)
            await self._pump(transport)
        except TransportError as exc:
            if not (isinstance(exc, TransportClosed) and exc.code == NORMAL_CLOSURE):
                close_code = GOING_AWAY
            raise
        finally:
            self._transport = None
            await self._close_quietly(transport, close_code)

    async def _authenticate(self, transport: Transport) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.auth_timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TransportError("timed out waiting for auth_success")
            try:
                raw = await asyncio.wait_for(transport.receive(), remaining)
            except asyncio.TimeoutError as exc:
                self._ensure_current()
                raise TransportError("timed out waiting for auth_success") from exc
            except TransportClosed as exc:
                if exc.code == POLICY_VIOLATION:
                    raise AuthRejected(f"server closed the handshake: {exc}") from exc
                raise
            self._ensure_current()

            frame_type = _frame_type(raw)
            if frame_type == "auth_success":
                return
            if frame_type in _AUTH_REJECTED_TYPES:
                raise AuthRejected(f"server answered {frame_type}")
            logger.debug("Discarding %s frame received before authentication", frame_type)

    async def _pump(self, transport: Transport) -> None:
        idle_intervals = 0
        while True:
            try:
                raw = await asyncio.wait_for(
                    transport.receive(), self._settings.heartbeat_interval
                )
            except asyncio.TimeoutError:
                self._ensure_current()
                idle_intervals += 1
                if idle_intervals >= _MAX_IDLE_INTERVALS:
                    raise TransportError("no frames received within the heartbeat window")
                await transport.send(_PING_FRAME)
                continue
            self._ensure_current()
            idle_intervals = 0
            self._on_frame(raw)

    async def _close_quietly(self, transport: Transport, code: int) -> None:
        try:
            await transport.close(code)
        except TransportError as exc:
            logger.debug("Ignoring error while closing the socket: %s", exc)

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        logger.debug("Connection state %s -> %s", previous.value, state.value)
        self._listeners.publish(ConnectionTransition(previous=previous, current=state))


__all__ = ["ConnectionManager", "build_socket_url"]
