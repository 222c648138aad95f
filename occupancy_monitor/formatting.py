"""Display formatting for alerts, dwell times and people."""

import logging
import re
from datetime import datetime, timedelta, tzinfo
from typing import Any, Optional

from .timestamps import from_epoch_ms, now_utc, parse_timestamp

logger = logging.getLogger(__name__)

_LOCAL_TIME_PATTERN = re.compile(r"(\d{2}):(\d{2}):\d{2}")


def _clock(dt: datetime) -> str:
    """12-hour clock, e.g. '9:05 AM'."""
    hour = dt.hour % 12 or 12
    suffix = "PM" if dt.hour >= 12 else "AM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def format_alert_time(
    timestamp: Any,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """Relative alert time: 'Today, 10:00 AM', 'Yesterday, 9:15 PM' or 'Dec 14, 8:00 AM'.

    Missing or unparseable timestamps are shown as the current time.
    Dates are compared in `tz` (the machine's local zone when omitted).
    """
    now = (now or now_utc()).astimezone(tz)

    parsed = parse_timestamp(timestamp)
    if parsed is None:
        if timestamp:
            logger.warning(f"Invalid timestamp: {timestamp!r}")
        parsed = now
    local = parsed.astimezone(tz)

    time_string = _clock(local)
    if local.date() == now.date():
        return f"Today, {time_string}"
    if local.date() == now.date() - timedelta(days=1):
        return f"Yesterday, {time_string}"
    return f"{local.strftime('%b')} {local.day}, {time_string}"


def format_dwell_time(minutes: float, unit: str = "minutes") -> str:
    """'08min 30sec' for minutes, '1.5 hrs' when the unit is hours."""
    if unit == "hours":
        return f"{minutes:.1f} hrs"
    mins = int(minutes)
    secs = round((minutes - mins) * 60)
    if secs == 60:
        mins, secs = mins + 1, 0
    return f"{mins:02d}min {secs:02d}sec"


def format_dwell_clock(minutes: Optional[float], exit_utc: Optional[int] = None) -> str:
    """'HH:MM' dwell for a completed visit, '--' while still inside."""
    if not exit_utc or not minutes:
        return "--"
    hours = int(minutes // 60)
    mins = round(minutes % 60)
    if mins == 60:
        hours, mins = hours + 1, 0
    return f"{hours:02d}:{mins:02d}"


def format_entry_time(
    utc_millis: Optional[int],
    local_time: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """'h:mm AM' for an epoch-millis time.

    Falls back to the time part of a 'dd/mm/yyyy HH:MM:SS' local string when
    the epoch value cannot be converted.
    """
    if utc_millis is None:
        return "--"

    dt = None
    if isinstance(utc_millis, (int, float)) and not isinstance(utc_millis, bool):
        dt = from_epoch_ms(utc_millis)
    if dt is not None:
        return _clock(dt.astimezone(tz))

    if local_time:
        match = _LOCAL_TIME_PATTERN.search(local_time)
        if match:
            hours, minutes = int(match.group(1)), match.group(2)
            suffix = "PM" if hours >= 12 else "AM"
            return f"{hours % 12 or 12}:{minutes} {suffix}"
        return local_time
    return "--"


def user_initials(email: Optional[str]) -> str:
    """Two initials from the local part of an email address."""
    if not email:
        return "?"
    name_part = email.split("@")[0]
    parts = [p for p in re.split(r"[._-]", name_part) if p]
    if len(parts) >= 2:
        return (parts[0][0] + parts[1][0]).upper()
    return name_part[:2].upper()


def name_initials(name: Optional[str]) -> str:
    """First letters of the first and last word of a name."""
    if not name:
        return "??"
    parts = name.split()
    if len(parts) >= 2:
        return (parts[0][0] + parts[-1][0]).upper()
    return name.strip()[:2].upper()
