"""Pydantic models describing notification payloads exchanged with the server."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from notification_sync.domain.entities import (
    Actor,
    DirectMessage,
    NotificationEvent,
    NotificationType,
)
from notification_sync.utils import ensure_utc


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


class ActorRead(BaseModel):
    """User that triggered a notification."""

    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("display_name", "displayName")
    )
    avatar: str | None = None

    def to_entity(self) -> Actor:
        return Actor(
            id=self.id,
            username=self.username,
            display_name=self.display_name,
            avatar=self.avatar,
        )


class NotificationRead(BaseModel):
    """Representation of a notification as delivered by the socket or the list poll."""

    model_config = ConfigDict(extra="ignore")

    id: int
    type: str
    title: str
    message: str = ""
    read: bool = False
    created_at: datetime = Field(
        validation_alias=AliasChoices("created_at", "createdAt")
    )
    time_ago: str = Field(
        default="", validation_alias=AliasChoices("time_ago", "timeAgo")
    )
    action_url: str | None = Field(
        default=None, validation_alias=AliasChoices("action_url", "actionUrl")
    )
    actor: ActorRead | None = None
    entity_type: str | None = Field(
        default=None, validation_alias=AliasChoices("entity_type", "entityType")
    )
    entity_id: int | None = Field(
        default=None, validation_alias=AliasChoices("entity_id", "entityId")
    )
    metadata: Any = None

    @field_validator("message", "time_ago", mode="before")
    @classmethod
    def _coerce_to_text(cls, value: Any) -> str:
        # Producers occasionally send objects or numbers as the message body.
        return _coerce_text(value)

    def to_entity(self) -> NotificationEvent:
        return NotificationEvent(
            id=self.id,
            type=NotificationType.from_wire(self.type),
            title=self.title,
            message=self.message,
            read=self.read,
            created_at=ensure_utc(self.created_at),
            time_ago=self.time_ago,
            action_url=self.action_url,
            actor=self.actor.to_entity() if self.actor else None,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            metadata=self.metadata,
        )


class NotificationFrame(BaseModel):
    """``new_notification`` frame pushed by the server."""

    model_config = ConfigDict(extra="ignore")

    type: str
    notification: NotificationRead


class DirectMessageRead(BaseModel):
    """Message body embedded in a ``new_message_realtime`` frame."""

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    sender: str | None = None
    content: str = ""
    timestamp: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> str:
        return _coerce_text(value)


class DirectMessageFrame(BaseModel):
    """``new_message_realtime`` frame pushed by the server."""

    model_config = ConfigDict(extra="ignore")

    type: str
    conversation_id: int | str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversationId", "conversation_id"),
    )
    message: DirectMessageRead

    def to_entity(self, raw: dict[str, Any]) -> DirectMessage:
        return DirectMessage(
            conversation_id=self.conversation_id,
            message_id=self.message.id,
            sender=self.message.sender,
            content=self.message.content,
            timestamp=self.message.timestamp,
            raw=raw,
        )


class UnreadCountRead(BaseModel):
    """Response of the unread-count query."""

    model_config = ConfigDict(extra="ignore")

    count: int = Field(ge=0)


__all__ = [
    "ActorRead",
    "DirectMessageFrame",
    "DirectMessageRead",
    "NotificationFrame",
    "NotificationRead",
    "UnreadCountRead",
]
