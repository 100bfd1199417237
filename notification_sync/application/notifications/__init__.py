"""Realtime notification delivery and reconciliation."""

from notification_sync.utils.fanout import SubscriberRegistry, Subscription

from .connection_manager import ConnectionManager, build_socket_url
from .delivery_coordinator import DeliveryCoordinator
from .event_router import EventRouter, InboundMessage, MessageKind, decode_frame
from .ports import NotificationApi, PresentationPlatform, Transport, TransportFactory
from .state_reconciler import POLL_COUNT, POLL_LIST, PollTicket, StateReconciler
from .session import NotificationSession

__all__ = [
    "ConnectionManager",
    "DeliveryCoordinator",
    "EventRouter",
    "InboundMessage",
    "MessageKind",
    "NotificationApi",
    "NotificationSession",
    "POLL_COUNT",
    "POLL_LIST",
    "PollTicket",
    "PresentationPlatform",
    "StateReconciler",
    "SubscriberRegistry",
    "Subscription",
    "Transport",
    "TransportFactory",
    "build_socket_url",
    "decode_frame",
]
