"""Snapshot-based fan-out shared by the router, the reconciler and the session."""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """Handle returned by :meth:`SubscriberRegistry.subscribe`."""

    def __init__(
        self,
        registry: "SubscriberRegistry[T]",
        callback: Callable[[T], Any],
        topic: Hashable | None,
    ) -> None:
        self._registry = registry
        self.callback = callback
        self.topic = topic

    @property
    def active(self) -> bool:
        return self._registry.is_registered(self)

    def matches(self, topic: Hashable | None) -> bool:
        return self.topic is None or self.topic == topic

    def cancel(self) -> None:
        """Stop receiving payloads; safe to call more than once."""

        self._registry.unsubscribe(self)

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class SubscriberRegistry(Generic[T]):
    """Ordered callbacks with an optional topic filter.

    :meth:`publish` iterates over the subscriber list captured before the first
    callback runs, so subscribing or cancelling from inside a callback only
    affects the next publication.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: tuple[Subscription[T], ...] = ()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self, callback: Callable[[T], Any], *, topic: Hashable | None = None
    ) -> Subscription[T]:
        subscription = Subscription(self, callback, topic)
        self._subscribers = (*self._subscribers, subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        self._subscribers = tuple(
            existing for existing in self._subscribers if existing is not subscription
        )

    def is_registered(self, subscription: Subscription[T]) -> bool:
        return any(existing is subscription for existing in self._subscribers)

    def clear(self) -> None:
        self._subscribers = ()

    def publish(self, payload: T, *, topic: Hashable | None = None) -> int:
        """Deliver ``payload`` to matching subscribers; return how many ran."""

        delivered = 0
        for subscription in self._subscribers:
            if not subscription.matches(topic):
                continue
            delivered += 1
            try:
                subscription.callback(payload)
            except Exception:
                logger.exception("Subscriber of %s failed", self.name)
        return delivered


__all__ = ["SubscriberRegistry", "Subscription"]
