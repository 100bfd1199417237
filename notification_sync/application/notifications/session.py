"""Wire the connection, router, reconciler and delivery coordinator for one user."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable

from notification_sync.config import Settings, get_settings
from notification_sync.domain.entities import (
    Advisory,
    AdvisoryKind,
    ConnectionState,
    ConnectionTransition,
    DirectMessage,
    NotificationEvent,
    NotificationSnapshot,
    PermissionState,
    StateChange,
)
from notification_sync.domain.errors import (
    AuthRejected,
    ConnectionExhausted,
    MutationFailure,
    NotificationSyncError,
    TransportError,
)
from notification_sync.utils.fanout import SubscriberRegistry, Subscription

from .connection_manager import ConnectionManager
from .delivery_coordinator import DeliveryCoordinator
from .event_router import EventRouter, InboundMessage, MessageKind
from .ports import NotificationApi, PresentationPlatform, TransportFactory
from .state_reconciler import POLL_COUNT, POLL_LIST, StateReconciler

logger = logging.getLogger(__name__)


class NotificationSession:
    """Notification delivery for one authenticated user in one tab.

    Socket frames flow through the :class:`ConnectionManager` and the
    :class:`EventRouter` into the :class:`StateReconciler`; the poll loop feeds
    the reconciler directly. Newly arrived notifications reach the
    :class:`DeliveryCoordinator` through the reconciler's change feed.
    """

    def __init__(
        self,
        user_id: int | str,
        *,
        api: NotificationApi,
        transport_factory: TransportFactory,
        platform: PresentationPlatform,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        origin: str | None = None,
        autopoll: bool = True,
    ) -> None:
        self.user_id = user_id
        self._api = api
        self._settings = settings or get_settings()
        self._origin = origin
        self._autopoll = autopoll

        self.router = EventRouter()
        self.reconciler = StateReconciler(
            api,
            settings=self._settings,
            sleep=sleep,
            on_mutation_failure=self._on_mutation_failure,
            on_poll_requested=self.request_poll,
        )
        self.coordinator = DeliveryCoordinator(platform, settings=self._settings)
        self.connection = ConnectionManager(
            transport_factory,
            self.router.route,
            settings=self._settings,
            sleep=sleep,
            on_error=self._on_connection_error,
        )

        self._arrivals: SubscriberRegistry[NotificationEvent] = SubscriberRegistry(
            "notification arrivals"
        )
        self._advisories: SubscriberRegistry[Advisory] = SubscriberRegistry(
            "session advisories"
        )
        self._wiring: list[Subscription[Any]] = []
        self._poll_task: asyncio.Task[None] | None = None
        self._poll_wakeup: asyncio.Event | None = None
        self._started = False
        self.last_advisory: Advisory | None = None
        self.poll_requests = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Open the socket and start polling; calling it twice is harmless."""

        if self._started:
            return
        self._started = True
        self.last_advisory = None
        self.reconciler.reset()
        self.coordinator.reset()
        self.coordinator.start()
        self._wiring = [
            self.router.subscribe(self._on_notification_frame, MessageKind.NOTIFICATION_CREATED),
            self.reconciler.subscribe(self.coordinator.handle_change),
            self.reconciler.subscribe(self._on_state_change),
        ]
        self.connection.open(self.user_id, self._origin)
        self._poll_wakeup = asyncio.Event()
        if self._autopoll:
            self._poll_task = asyncio.create_task(self._poll_loop(), name="notification-poll")
        logger.info("Notification session started for user %s", self.user_id)

    async def close(self) -> None:
        """Stop the socket and the poll loop and clear the state (logout)."""

        if not self._started:
            return
        self._started = False
        for subscription in self._wiring:
            subscription.cancel()
        self._wiring = []
        await self.connection.close()

        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self.reconciler.reset()
        self.coordinator.reset()
        logger.info("Notification session closed for user %s", self.user_id)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> NotificationSnapshot:
        return self.reconciler.snapshot

    @property
    def connection_state(self) -> ConnectionState:
        return self.connection.state

    @property
    def permission(self) -> PermissionState:
        return self.coordinator.permission

    @property
    def offline(self) -> bool:
        """Whether realtime delivery was abandoned and only polling remains."""

        return (
            self.last_advisory is not None
            and self.last_advisory.kind is AdvisoryKind.CONNECTION_EXHAUSTED
            and self.connection.state is ConnectionState.CLOSED
        )

    def subscribe_notifications(
        self, callback: Callable[[NotificationEvent], Any]
    ) -> Subscription[NotificationEvent]:
        """Called once per notification newly pushed over the socket."""

        return self._arrivals.subscribe(callback)

    def subscribe_messages(
        self, callback: Callable[[DirectMessage], Any]
    ) -> Subscription[InboundMessage]:
        def forward(message: InboundMessage) -> None:
            if message.direct_message is not None:
                callback(message.direct_message)

        return self.router.subscribe(forward, MessageKind.DIRECT_MESSAGE_CREATED)

    def subscribe_state(
        self, callback: Callable[[StateChange], Any]
    ) -> Subscription[StateChange]:
        return self.reconciler.subscribe(callback)

    def subscribe_connection(
        self, callback: Callable[[ConnectionTransition], Any]
    ) -> Subscription[ConnectionTransition]:
        return self.connection.subscribe(callback)

    def subscribe_advisories(
        self, callback: Callable[[Advisory], Any]
    ) -> Subscription[Advisory]:
        return self._advisories.subscribe(callback)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------
    async def mark_read(self, notification_id: int) -> bool:
        if not self._started:
            logger.debug("mark_read(%s) ignored on a closed session", notification_id)
            return False
        return await self.reconciler.mark_read(notification_id)

    async def mark_all_read(self) -> bool:
        if not self._started:
            logger.debug("mark_all_read() ignored on a closed session")
            return False
        return await self.reconciler.mark_all_read()

    async def request_permission(self) -> PermissionState:
        return await self.coordinator.request_permission()

    def record_interaction(self) -> bool:
        return self.coordinator.record_interaction()

    def request_poll(self) -> None:
        """Ask the poll loop to refresh now instead of at the next interval."""

        self.poll_requests += 1
        if self._poll_wakeup is not None:
            self._poll_wakeup.set()

    async def poll_once(self) -> None:
        """Run the list and unread-count queries once."""

        await asyncio.gather(self._poll_list(), self._poll_count())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _poll_loop(self) -> None:
        wakeup = self._poll_wakeup
        while True:
            if wakeup is not None:
                wakeup.clear()
            await self.poll_once()
            if wakeup is None:
                await asyncio.sleep(self._settings.poll_interval)
                continue
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(wakeup.wait(), timeout=self._settings.poll_interval)

    async def _poll_list(self) -> None:
        ticket = self.reconciler.begin_poll(POLL_LIST)
        try:
            notifications = await self._api.list_notifications(self._settings.poll_limit)
        except asyncio.CancelledError:
            self.reconciler.cancel_poll(ticket)
            raise
        except TransportError as exc:
            self.reconciler.cancel_poll(ticket)
            logger.warning("Notification list poll failed: %s", exc)
            return
        self.reconciler.apply_poll_items(ticket, notifications)

    async def _poll_count(self) -> None:
        ticket = self.reconciler.begin_poll(POLL_COUNT)
        try:
            count = await self._api.unread_count()
        except asyncio.CancelledError:
            self.reconciler.cancel_poll(ticket)
            raise
        except TransportError as exc:
            self.reconciler.cancel_poll(ticket)
            logger.warning("Unread count poll failed: %s", exc)
            return
        self.reconciler.apply_unread_count(ticket, count)

    def _on_notification_frame(self, message: InboundMessage) -> None:
        if message.notification is not None:
            self.reconciler.apply_event(message.notification, source="socket")

    def _on_state_change(self, change: StateChange) -> None:
        for event in change.arrived:
            self._arrivals.publish(event)

    def _on_connection_error(self, error: NotificationSyncError) -> None:
        if isinstance(error, ConnectionExhausted):
            advisory = Advisory(
                kind=AdvisoryKind.CONNECTION_EXHAUSTED,
                message="Realtime updates are offline; notifications refresh periodically",
                error=error,
            )
        elif isinstance(error, AuthRejected):
            advisory = Advisory(
                kind=AdvisoryKind.AUTH_REJECTED,
                message="Your session is no longer valid; sign in again",
                error=error,
            )
            self._stop_polling()
        else:
            logger.warning("Unhandled connection error: %s", error)
            return
        self._report(advisory)

    def _stop_polling(self) -> None:
        # Rejected credentials would fail every poll as well.
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            logger.info("Stopping the notification poll for user %s", self.user_id)
            task.cancel()

    def _on_mutation_failure(self, failure: MutationFailure) -> None:
        self._report(
            Advisory(
                kind=AdvisoryKind.MUTATION_FAILED,
                message="Could not sync read status; it will be retried on the next refresh",
                error=failure,
            )
        )

    def _report(self, advisory: Advisory) -> None:
        self.last_advisory = advisory
        self._advisories.publish(advisory)


__all__ = ["NotificationSession"]
