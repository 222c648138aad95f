"""Timestamp parsing and ISO-8601 formatting helpers.

The backend and the live feed send times as ISO strings, epoch milliseconds,
or digit-only strings holding epoch milliseconds. Everything is normalized to
UTC ISO-8601 with millisecond precision, e.g. ``2023-11-14T22:13:20.000Z``.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

_EPOCH_MS_PATTERN = re.compile(r"^\d+$")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def epoch_ms(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: float) -> Optional[datetime]:
    """Convert epoch milliseconds to a UTC datetime, None if out of range."""
    try:
        return _EPOCH + timedelta(milliseconds=value)
    except (OverflowError, ValueError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an epoch-millis number, digit string or ISO string.

    Returns an aware UTC datetime, or None when the value is missing or
    cannot be interpreted as a date.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return from_epoch_ms(value)

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    if _EPOCH_MS_PATTERN.match(text):
        return from_epoch_ms(int(text))

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # offset pushes the instant outside the datetime range
        return None


def to_iso(dt: datetime) -> str:
    """Format as UTC ISO-8601 with milliseconds and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
        f".{dt.microsecond // 1000:03d}Z"
    )


def now_iso() -> str:
    return to_iso(now_utc())
