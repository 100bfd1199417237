"""Domain entity for realtime direct messages relayed over the socket."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class DirectMessage:
    """Chat message pushed alongside notifications."""

    conversation_id: int | str | None
    message_id: int | str | None
    sender: str | None
    content: str
    timestamp: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)


__all__ = ["DirectMessage"]
