"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Final

_MONTH_ABBREVIATIONS: Final[tuple[str, ...]] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in UTC.

    Naive values are assumed to already be UTC, which is what the notification
    endpoints emit when they drop the offset.
    """

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into aware UTC."""

    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        parsed = datetime.fromisoformat(text)
    normalized = ensure_utc(parsed)
    if normalized is None:  # pragma: no cover - ensure_utc only returns None for None
        raise ValueError("timestamp is required")
    return normalized


def format_time_ago(value: datetime | None, *, now: datetime | None = None) -> str:
    """Return a short relative label such as ``"5m ago"`` for ``value``."""

    if value is None:
        return ""

    moment = ensure_utc(value)
    reference = ensure_utc(now) if now is not None else now_utc()
    elapsed = (reference - moment).total_seconds()
    if elapsed < 0:
        return "Now"

    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)
    weeks = days // 7

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    if weeks < 4:
        return f"{weeks}w ago"

    label = f"{_MONTH_ABBREVIATIONS[moment.month - 1]} {moment.day}"
    if moment.year != reference.year:
        label = f"{label}, {moment.year}"
    return label


__all__ = ["ensure_utc", "format_time_ago", "now_utc", "parse_timestamp"]
