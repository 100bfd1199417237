"""Error taxonomy for the notification client."""

from __future__ import annotations

from typing import Any


class NotificationSyncError(Exception):
    """Base class for every error raised by the client."""


class TransportError(NotificationSyncError):
    """Connecting to or talking with the server failed."""


class TransportClosed(TransportError):
    """The socket ended; ``code`` is the websocket close code."""

    def __init__(self, code: int | None, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        detail = f"connection closed with code {code}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)


class ApiRequestError(TransportError):
    """A REST request failed or returned an unusable response."""

    def __init__(self, method: str, path: str, status: int | None = None, detail: str = "") -> None:
        self.method = method
        self.path = path
        self.status = status
        message = f"{method} {path} failed"
        if status is not None:
            message = f"{message} with status {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConnectionExhausted(NotificationSyncError):
    """Reconnection was abandoned after ``attempts`` consecutive failures."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"gave up reconnecting after {attempts} attempts")


class AuthRejected(NotificationSyncError):
    """The server refused the authentication frame."""


class MutationFailure(NotificationSyncError):
    """A mark-read request kept failing after its retries."""

    def __init__(self, operation: str, attempts: int, cause: Exception | None = None) -> None:
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"{operation} failed after {attempts} attempts")


class MalformedFrame(NotificationSyncError):
    """An inbound frame could not be decoded into a message."""

    def __init__(self, reason: str, raw: Any = None) -> None:
        self.reason = reason
        self.raw = raw
        super().__init__(reason)


__all__ = [
    "ApiRequestError",
    "AuthRejected",
    "ConnectionExhausted",
    "MalformedFrame",
    "MutationFailure",
    "NotificationSyncError",
    "TransportClosed",
    "TransportError",
]
