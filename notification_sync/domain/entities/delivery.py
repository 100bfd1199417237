"""Presentation surfaces and permission states."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PermissionState(str, Enum):
    """OS push permission as reported by the host platform."""

    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_platform(cls, value: object) -> "PermissionState":
        try:
            return cls(str(value))
        except ValueError:
            return cls.DEFAULT


class Surface(str, Enum):
    """Where a newly arrived notification is presented."""

    OS_PUSH = "os_push"
    TOAST = "toast"
    BADGE = "badge"


@dataclass(frozen=True)
class DeliveryDecision:
    """Outcome of routing one notification to a surface."""

    notification_id: int
    surface: Surface


__all__ = ["DeliveryDecision", "PermissionState", "Surface"]
