"""
Live event normalization.

Raw `alert` payloads from the live feed are loosely typed: the zone can sit in
one of several fields, optionally nested under `data`, `payload` or
`metadata`; the direction may be an explicit `actionType` or buried in a
`direction` string; timestamps arrive as epoch millis, digit strings or ISO
text. All of that guessing lives here. `normalize_alert` turns any input into
a fully populated CanonicalAlert and never raises.
"""

import logging
import random
from collections.abc import Mapping
from typing import Any, Optional

from .directory import ZoneDirectory
from .models import ActionType, CanonicalAlert, LiveOccupancyEvent, Severity
from .timestamps import epoch_ms, now_iso, now_utc, parse_timestamp, to_iso

logger = logging.getLogger(__name__)

# Zone fields in priority order
ZONE_FIELDS = ("zone", "zoneId", "zoneName", "location", "zone_id", "fromZone", "toZone")

# Containers probed when no top-level zone field is present
NESTED_CONTAINERS = ("data", "payload", "metadata")

UNKNOWN_ZONE_SUFFIX = "(Zone Unknown)"


def _zone_text(value: Any) -> Optional[str]:
    """Usable zone text from a field value, None if empty or unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _first_zone_field(container: Mapping) -> Optional[str]:
    for key in ZONE_FIELDS:
        text = _zone_text(container.get(key))
        if text:
            return text
    return None


def extract_zone_value(raw: Mapping) -> Optional[str]:
    """Find the first non-empty zone value, top level first, then nested."""
    zone = _first_zone_field(raw)
    if zone:
        return zone

    for container_key in NESTED_CONTAINERS:
        container = raw.get(container_key)
        if isinstance(container, Mapping):
            zone = _first_zone_field(container)
            if zone:
                return zone
    return None


def zone_from_direction(direction: Any, directory: ZoneDirectory) -> Optional[str]:
    """Resolve a zone from a `<zoneId>-<suffix>` direction string.

    The literal token `zone` is a placeholder and never resolves. Only the
    last hyphen separates the suffix, so ids that contain hyphens, such as
    `gate-a` in `gate-a-exit`, still resolve.
    """
    if not isinstance(direction, str) or "-" not in direction:
        return None
    token = direction.rsplit("-", 1)[0].strip()
    if not token or token.lower() == "zone":
        return None
    return directory.resolve(token)


def _site_label(raw: Mapping, directory: ZoneDirectory) -> Optional[str]:
    """`<siteName> (Zone Unknown)` when the event names a known site."""
    for key in ("site", "siteId"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            site = directory.find_site(value)
            if site is not None:
                return f"{site.name} {UNKNOWN_ZONE_SUFFIX}"
    return None


def resolve_zone(raw: Mapping, directory: ZoneDirectory) -> str:
    """Resolve the display zone name for a raw event.

    Order: exact id, case-insensitive name, substring of an id or name, the
    trimmed value as-is. With no zone value at all, the direction token and
    then the site label are tried; otherwise the zone is empty.
    """
    candidate = extract_zone_value(raw)

    if candidate:
        name = directory.resolve(candidate)
        if name:
            return name
        name = directory.resolve_by_name(candidate)
        if name:
            return name
        name = directory.resolve_partial(candidate)
        if name:
            return name
        logger.debug(f"Zone not found in directory, using raw value: {candidate}")
        return candidate

    name = zone_from_direction(raw.get("direction"), directory)
    if name:
        return name

    label = _site_label(raw, directory)
    if label:
        return label

    return ""


def normalize_action_type(raw: Mapping) -> ActionType:
    """Explicit actionType first, then keywords in `direction`, default exit."""
    action = raw.get("actionType")
    if isinstance(action, str) and action.strip():
        try:
            return ActionType(action.strip().lower())
        except ValueError:
            logger.warning(f"Unrecognized actionType: {action!r}")

    direction = raw.get("direction")
    if isinstance(direction, str):
        lowered = direction.lower()
        if "exit" in lowered:
            return ActionType.EXIT
        if "entry" in lowered or "enter" in lowered:
            return ActionType.ENTRY

    return ActionType.EXIT


def normalize_timestamp(raw: Mapping) -> str:
    """ISO-8601 UTC timestamp from `timestamp` or `ts`, now if unusable."""
    value = raw.get("timestamp") or raw.get("ts")
    if not value:
        return now_iso()

    parsed = parse_timestamp(value)
    if parsed is None:
        logger.debug(f"Invalid timestamp, using current time: {value!r}")
        return now_iso()
    return to_iso(parsed)


def normalize_severity(raw: Mapping) -> Severity:
    return Severity.from_value(raw.get("severity")) or Severity.LOW


def alert_identity(raw: Mapping) -> str:
    """The event's own id, or a generated `<epochMillis>-<random>` one."""
    event_id = raw.get("eventId")
    if event_id is not None and not isinstance(event_id, bool) and str(event_id):
        return str(event_id)
    return f"{epoch_ms(now_utc())}-{random.random()}"


def _site(raw: Mapping) -> str:
    for key in ("site", "siteId"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def normalize_alert(raw: Any, directory: ZoneDirectory) -> CanonicalAlert:
    """Convert any raw live event into a CanonicalAlert."""
    if not isinstance(raw, Mapping):
        logger.debug(f"Non-mapping alert payload: {type(raw).__name__}")
        raw = {}

    return CanonicalAlert(
        id=alert_identity(raw),
        action_type=normalize_action_type(raw),
        zone=resolve_zone(raw, directory),
        site=_site(raw),
        severity=normalize_severity(raw),
        timestamp=normalize_timestamp(raw),
    )


def normalize_occupancy(raw: Any) -> Optional[LiveOccupancyEvent]:
    """Convert a `liveOccupancy` payload, None if it has no numeric occupancy."""
    if not isinstance(raw, Mapping):
        logger.debug(f"Dropping non-mapping occupancy payload: {type(raw).__name__}")
        return None

    occupancy = raw.get("occupancy")
    if isinstance(occupancy, bool) or not isinstance(occupancy, (int, float)):
        logger.debug(f"Dropping occupancy payload without numeric occupancy: {raw!r}")
        return None

    zone = _zone_text(raw.get("zone"))
    floor = raw.get("floor")

    return LiveOccupancyEvent(
        site=_site(raw),
        occupancy=occupancy,
        timestamp=normalize_timestamp(raw),
        zone=zone,
        floor=str(floor) if floor is not None else None,
    )


class EventNormalizer:
    """Normalizes alerts against whatever zone directory is current."""

    def __init__(self, reference):
        """
        Args:
            reference: Object with a `directory` attribute (a ZoneDirectory),
                       typically a ReferenceDirectory. Read on every call so a
                       rebuilt directory applies to the next event.
        """
        self.reference = reference

    def normalize(self, raw: Any) -> CanonicalAlert:
        return normalize_alert(raw, self.reference.directory)

    def normalize_occupancy(self, raw: Any) -> Optional[LiveOccupancyEvent]:
        return normalize_occupancy(raw)
