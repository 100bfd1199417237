"""Authoritative, deduplicated notification state for one session.

Three inputs mutate the state: notifications pushed over the socket, poll
responses (a list query and an unread-count query) and local mark-read
actions. Every local action and every socket arrival advances a logical
sequence number; poll requests capture that number in a :class:`PollTicket`
so their responses can be recognised as stale when the user acted while the
request was in flight.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from notification_sync.config import Settings, get_settings
from notification_sync.domain.entities import (
    NotificationEvent,
    NotificationSnapshot,
    StateChange,
)
from notification_sync.domain.errors import MutationFailure, TransportError
from notification_sync.utils import retry_async
from notification_sync.utils.fanout import SubscriberRegistry, Subscription

from .ports import NotificationApi

logger = logging.getLogger(__name__)

POLL_LIST = "list"
POLL_COUNT = "count"


@dataclass(frozen=True)
class PollTicket:
    """Issued before a poll request and handed back with its response."""

    kind: str
    sequence: int
    generation: int


class StateReconciler:
    """Merge socket, poll and local inputs into one :class:`NotificationSnapshot`."""

    def __init__(
        self,
        api: NotificationApi,
        *,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_mutation_failure: Callable[[MutationFailure], Any] | None = None,
        on_poll_requested: Callable[[], Any] | None = None,
    ) -> None:
        self._api = api
        self._settings = settings or get_settings()
        self._sleep = sleep
        self.on_mutation_failure = on_mutation_failure
        self.on_poll_requested = on_poll_requested
        self._registry: SubscriberRegistry[StateChange] = SubscriberRegistry(
            "notification state"
        )
        self._generation = 0
        self._reset_state()

    def _reset_state(self) -> None:
        self._items: dict[int, NotificationEvent] = {}
        self._unread_count = 0
        self._version = 0
        self._sequence = 0
        self._snapshot = NotificationSnapshot()
        # id -> sequence of the local action that marked it read
        self._locally_read: dict[int, int] = {}
        self._failed_reads: set[int] = set()
        self._all_read_sequence: int | None = None
        # ids first seen after the latest mark-all-read; stale lists cannot force them read
        self._seen_since_mark_all: set[int] = set()
        # (sequence, id) logs consulted when a stale unread count comes back
        self._local_reads: list[tuple[int, int]] = []
        self._arrivals: list[tuple[int, int]] = []
        self._open_tickets: list[int] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> NotificationSnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(
        self, callback: Callable[[StateChange], Any]
    ) -> Subscription[StateChange]:
        """Register ``callback`` for every change of items or unread count."""

        return self._registry.subscribe(callback)

    def reset(self) -> None:
        """Forget everything; completions of earlier requests are ignored."""

        self._generation += 1
        had_state = bool(self._items) or self._unread_count
        self._reset_state()
        if had_state:
            self._publish((), "reset")

    # ------------------------------------------------------------------
    # Socket input
    # ------------------------------------------------------------------
    def apply_event(self, event: NotificationEvent, *, source: str = "socket") -> bool:
        """Merge a pushed notification; return ``True`` when the state changed."""

        existing = self._items.get(event.id)
        if existing is not None:
            if event.read and not existing.read:
                self._items[event.id] = existing.as_read()
                self._decrement_unread()
                self._publish((), source)
                return True
            return False

        item = event.as_read() if event.id in self._locally_read else event
        self._sequence += 1
        self._items[item.id] = item
        if self._all_read_sequence is not None:
            self._seen_since_mark_all.add(item.id)
        arrived: tuple[NotificationEvent, ...] = ()
        if not item.read:
            self._unread_count += 1
            self._arrivals.append((self._sequence, item.id))
            arrived = (item,)
        self._trim()
        self._publish(arrived, source)
        return True

    # ------------------------------------------------------------------
    # Poll input
    # ------------------------------------------------------------------
    def begin_poll(self, kind: str) -> PollTicket:
        """Record the logical time at which a poll request is issued."""

        ticket = PollTicket(kind=kind, sequence=self._sequence, generation=self._generation)
        self._open_tickets.append(ticket.sequence)
        return ticket

    def cancel_poll(self, ticket: PollTicket) -> None:
        """Release ``ticket`` when its request failed."""

        if ticket.generation == self._generation:
            self._close_ticket(ticket)

    def apply_poll_items(
        self, ticket: PollTicket, events: Iterable[NotificationEvent]
    ) -> bool:
        """Merge a list-poll response issued under ``ticket``."""

        if ticket.generation != self._generation:
            logger.debug("Ignoring list poll from a previous session")
            return False

        events = list(events)
        after_mark_all = (
            self._all_read_sequence is not None
            and self._all_read_sequence > ticket.sequence
        )
        changed = False
        for event in events:
            force_read = event.id in self._locally_read or (
                after_mark_all and event.id not in self._seen_since_mark_all
            )
            existing = self._items.get(event.id)
            if existing is None:
                if self._all_read_sequence is not None and not after_mark_all:
                    self._seen_since_mark_all.add(event.id)
                self._items[event.id] = (
                    event.as_read() if force_read and not event.read else event
                )
                changed = True
            elif not existing.read and (event.read or force_read):
                self._items[event.id] = existing.as_read()
                self._decrement_unread()
                changed = True

        if len(events) < self._settings.poll_limit:
            # The server returned everything it has, so the local list is complete.
            derived = sum(1 for item in self._items.values() if not item.read)
            if derived != self._unread_count:
                self._unread_count = derived
                changed = True

        self._close_ticket(ticket)
        if changed:
            self._trim()
            self._publish((), "poll")
        return changed

    def apply_unread_count(self, ticket: PollTicket, count: int) -> bool:
        """Adopt the server-computed unread count unless local actions superseded it."""

        if ticket.generation != self._generation:
            logger.debug("Ignoring unread count from a previous session")
            return False

        if ticket.sequence == self._sequence:
            adopted = count
        elif (
            self._all_read_sequence is not None
            and self._all_read_sequence > ticket.sequence
        ):
            logger.debug("Unread count predates mark-all-read; keeping local value")
            adopted = self._unread_count
        else:
            reads_since = sum(
                1 for sequence, _ in self._local_reads if sequence > ticket.sequence
            )
            arrivals_since = sum(
                1
                for sequence, notification_id in self._arrivals
                if sequence > ticket.sequence and self._is_unread(notification_id)
            )
            # Never below what the local list shows unread.
            known_unread = sum(1 for item in self._items.values() if not item.read)
            adopted = max(count - reads_since, arrivals_since, known_unread, 0)

        self._close_ticket(ticket)
        adopted = max(adopted, 0)
        if adopted == self._unread_count:
            return False
        self._unread_count = adopted
        self._publish((), "poll")
        return True

    # ------------------------------------------------------------------
    # Local actions
    # ------------------------------------------------------------------
    async def mark_read(self, notification_id: int) -> bool:
        """Optimistically mark one notification read and confirm it remotely.

        Returns ``True`` when the server confirmed (or nothing needed sending)
        and ``False`` when the request failed or the session was replaced.
        """

        existing = self._items.get(notification_id)
        retrying = notification_id in self._failed_reads
        if not retrying and (
            notification_id in self._locally_read
            or (existing is not None and existing.read)
        ):
            self._locally_read.setdefault(notification_id, self._sequence)
            return True

        self._sequence += 1
        self._locally_read[notification_id] = self._sequence
        self._failed_reads.discard(notification_id)
        if existing is not None and not existing.read:
            self._items[notification_id] = existing.as_read()
            self._decrement_unread()
            self._local_reads.append((self._sequence, notification_id))
            self._publish((), "local")

        return await self._confirm(
            lambda: self._api.mark_read(notification_id),
            operation=f"mark_read({notification_id})",
            failed_id=notification_id,
        )

    async def mark_all_read(self) -> bool:
        """Optimistically mark every notification read and confirm it remotely."""

        self._sequence += 1
        self._all_read_sequence = self._sequence
        self._seen_since_mark_all.clear()
        changed = self._unread_count != 0
        for notification_id, item in list(self._items.items()):
            self._locally_read.setdefault(notification_id, self._sequence)
            if not item.read:
                self._items[notification_id] = item.as_read()
                self._local_reads.append((self._sequence, notification_id))
                changed = True
        self._unread_count = 0
        if changed:
            self._publish((), "local")

        return await self._confirm(self._api.mark_all_read, operation="mark_all_read")

    async def _confirm(
        self,
        request: Callable[[], Awaitable[None]],
        *,
        operation: str,
        failed_id: int | None = None,
    ) -> bool:
        generation = self._generation
        attempts = self._settings.mutation_retries
        try:
            await retry_async(
                request,
                attempts=attempts,
                delay=self._settings.mutation_retry_delay,
                retry_on=(TransportError,),
                sleep=self._sleep,
                description=operation,
            )
        except TransportError as exc:
            if generation != self._generation:
                return False
            if failed_id is not None:
                self._failed_reads.add(failed_id)
            failure = MutationFailure(operation, attempts, exc)
            logger.warning("%s; keeping optimistic state", failure)
            if self.on_mutation_failure is not None:
                self.on_mutation_failure(failure)
            if self.on_poll_requested is not None:
                self.on_poll_requested()
            return False
        return generation == self._generation

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _is_unread(self, notification_id: int) -> bool:
        item = self._items.get(notification_id)
        return item is not None and not item.read

    def _decrement_unread(self) -> None:
        self._unread_count = max(self._unread_count - 1, 0)

    def _close_ticket(self, ticket: PollTicket) -> None:
        try:
            self._open_tickets.remove(ticket.sequence)
        except ValueError:
            return
        horizon = min(self._open_tickets) if self._open_tickets else self._sequence
        self._local_reads = [entry for entry in self._local_reads if entry[0] > horizon]
        self._arrivals = [entry for entry in self._arrivals if entry[0] > horizon]

    def _ordered_items(self) -> list[NotificationEvent]:
        return sorted(
            self._items.values(),
            key=lambda item: (item.created_at, item.id),
            reverse=True,
        )

    def _trim(self) -> None:
        limit = self._settings.max_items
        if len(self._items) <= limit:
            return
        for item in self._ordered_items()[limit:]:
            del self._items[item.id]

    def _publish(self, arrived: tuple[NotificationEvent, ...], source: str) -> None:
        self._version += 1
        self._snapshot = NotificationSnapshot(
            items=tuple(self._ordered_items()),
            unread_count=self._unread_count,
            version=self._version,
        )
        self._registry.publish(
            StateChange(snapshot=self._snapshot, arrived=arrived, source=source)
        )


__all__ = ["POLL_COUNT", "POLL_LIST", "PollTicket", "StateReconciler"]
