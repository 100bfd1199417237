"""Decode inbound socket frames and dispatch them to subscribers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from notification_sync.domain.entities import DirectMessage, NotificationEvent
from notification_sync.domain.errors import MalformedFrame
from notification_sync.interfaces.schemas import (
    DirectMessageFrame,
    NotificationFrame,
    NotificationRead,
)
from notification_sync.utils.fanout import SubscriberRegistry, Subscription

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    """Discriminator of decoded frames."""

    AUTH_SUCCESS = "auth_success"
    NOTIFICATION_CREATED = "notification_created"
    DIRECT_MESSAGE_CREATED = "direct_message_created"
    UNKNOWN = "unknown"


_WIRE_KINDS: dict[str, MessageKind] = {
    "auth_success": MessageKind.AUTH_SUCCESS,
    "new_notification": MessageKind.NOTIFICATION_CREATED,
    "notification": MessageKind.NOTIFICATION_CREATED,
    "new_message_realtime": MessageKind.DIRECT_MESSAGE_CREATED,
}


@dataclass(frozen=True)
class InboundMessage:
    """A fully decoded frame."""

    kind: MessageKind
    wire_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    notification: NotificationEvent | None = None
    direct_message: DirectMessage | None = None


def decode_frame(raw: str | bytes) -> InboundMessage:
    """Decode ``raw`` or raise :class:`MalformedFrame`."""

    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedFrame(f"invalid JSON: {exc}", raw) from exc

    if not isinstance(payload, dict):
        raise MalformedFrame("frame is not an object", raw)

    wire_type = payload.get("type")
    if not isinstance(wire_type, str) or not wire_type:
        raise MalformedFrame("frame has no type", raw)

    kind = _WIRE_KINDS.get(wire_type, MessageKind.UNKNOWN)
    try:
        if kind is MessageKind.NOTIFICATION_CREATED:
            if wire_type == "notification":
                # Legacy servers send the notification fields at the top level.
                notification = NotificationRead.model_validate(payload).to_entity()
            else:
                notification = NotificationFrame.model_validate(payload).notification.to_entity()
            return InboundMessage(
                kind=kind, wire_type=wire_type, payload=payload, notification=notification
            )
        if kind is MessageKind.DIRECT_MESSAGE_CREATED:
            message = DirectMessageFrame.model_validate(payload).to_entity(payload)
            return InboundMessage(
                kind=kind, wire_type=wire_type, payload=payload, direct_message=message
            )
    except ValidationError as exc:
        raise MalformedFrame(
            f"invalid {wire_type} frame: {exc.error_count()} validation errors", raw
        ) from exc

    return InboundMessage(kind=kind, wire_type=wire_type, payload=payload)


class EventRouter:
    """Classify frames and fan them out in registration order.

    The router keeps no notification state; the reconciler is just another
    subscriber.
    """

    def __init__(self) -> None:
        self._registry: SubscriberRegistry[InboundMessage] = SubscriberRegistry(
            "event router"
        )
        self.dropped_frames = 0

    def subscribe(
        self,
        callback: Callable[[InboundMessage], Any],
        kind: MessageKind | None = None,
    ) -> Subscription[InboundMessage]:
        """Register ``callback`` for ``kind`` (every dispatched kind when ``None``)."""

        return self._registry.subscribe(callback, topic=kind)

    def route(self, raw: str | bytes) -> InboundMessage | None:
        """Decode ``raw`` and dispatch it; malformed frames are dropped."""

        try:
            message = decode_frame(raw)
        except MalformedFrame as exc:
            self.dropped_frames += 1
            logger.warning("Dropping malformed frame: %s", exc.reason)
            return None

        if message.kind is MessageKind.UNKNOWN:
            logger.debug("Ignoring frame of type %s", message.wire_type)
            return message

        self._registry.publish(message, topic=message.kind)
        return message


__all__ = ["EventRouter", "InboundMessage", "MessageKind", "decode_frame"]
