"""Utility helpers for reusable functionality."""

from .datetime import ensure_utc, format_time_ago, now_utc, parse_timestamp
from .retry import retry_async

__all__ = [
    "ensure_utc",
    "format_time_ago",
    "now_utc",
    "parse_timestamp",
    "retry_async",
]
