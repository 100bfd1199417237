"""Lifecycle states of the realtime connection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ConnectionState(str, Enum):
    """States owned by the connection manager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    LIVE = "live"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"

    @property
    def is_active(self) -> bool:
        """Whether a connection is open or being (re)established."""

        return self in _ACTIVE_STATES


_ACTIVE_STATES = frozenset(
    {
        ConnectionState.CONNECTING,
        ConnectionState.AUTHENTICATING,
        ConnectionState.LIVE,
        ConnectionState.RECONNECTING,
    }
)


@dataclass(frozen=True)
class ConnectionTransition:
    """Published by the connection manager on every state change."""

    previous: ConnectionState
    current: ConnectionState


# Close codes from RFC 6455 used by the client and the notification server.
NORMAL_CLOSURE = 1000
GOING_AWAY = 1001
ABNORMAL_CLOSURE = 1006
POLICY_VIOLATION = 1008


__all__ = [
    "ABNORMAL_CLOSURE",
    "ConnectionState",
    "ConnectionTransition",
    "GOING_AWAY",
    "NORMAL_CLOSURE",
    "POLICY_VIOLATION",
]
