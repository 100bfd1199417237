"""Domain entities exposed by the client."""

from .advisory import Advisory, AdvisoryKind
from .connection import (
    ABNORMAL_CLOSURE,
    GOING_AWAY,
    NORMAL_CLOSURE,
    POLICY_VIOLATION,
    ConnectionState,
    ConnectionTransition,
)
from .delivery import DeliveryDecision, PermissionState, Surface
from .direct_message import DirectMessage
from .notification import Actor, NotificationEvent, NotificationType
from .notification_state import NotificationSnapshot, StateChange

__all__ = [
    "ABNORMAL_CLOSURE",
    "GOING_AWAY",
    "NORMAL_CLOSURE",
    "POLICY_VIOLATION",
    "Actor",
    "Advisory",
    "AdvisoryKind",
    "ConnectionState",
    "ConnectionTransition",
    "DeliveryDecision",
    "DirectMessage",
    "NotificationEvent",
    "NotificationSnapshot",
    "NotificationType",
    "PermissionState",
    "StateChange",
    "Surface",
]
