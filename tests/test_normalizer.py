"""Unit tests for live event normalization.

Covers:
- Zone extraction across top-level and nested fields
- Zone resolution (id, case-insensitive name, substring, passthrough)
- Direction token and site-label fallbacks
- Action type, timestamp, severity, identity and site normalization
- Never raising on malformed input
"""

import re
from datetime import timedelta
from types import SimpleNamespace

import pytest

from occupancy_monitor.directory import ZoneDirectory
from occupancy_monitor.models import ActionType, Severity, Site
from occupancy_monitor.normalizer import (
    EventNormalizer,
    extract_zone_value,
    normalize_alert,
    normalize_occupancy,
    resolve_zone,
)
from occupancy_monitor.timestamps import now_utc, parse_timestamp

ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


@pytest.fixture
def directory(sample_sites):
    return ZoneDirectory.build(Site.from_dict(s) for s in sample_sites)


class TestZoneExtraction:
    """Test finding the zone value in raw events."""

    def test_top_level_priority(self):
        """Earlier fields win over later ones."""
        assert extract_zone_value({"toZone": "z2", "zone": "z1"}) == "z1"
        assert extract_zone_value({"location": "Lobby", "zoneName": "Gate A"}) == "Gate A"

    def test_empty_values_skipped(self):
        assert extract_zone_value({"zone": "  ", "zoneId": "z2"}) == "z2"

    def test_nested_containers(self):
        assert extract_zone_value({"data": {"zoneName": "z1"}}) == "z1"
        assert extract_zone_value({"payload": {"fromZone": "z2"}}) == "z2"
        assert extract_zone_value({"metadata": {"zone_id": "gate-a"}}) == "gate-a"

    def test_top_level_wins_over_nested(self):
        assert extract_zone_value({"toZone": "z2", "data": {"zone": "z1"}}) == "z2"

    def test_numeric_zone_converted(self):
        assert extract_zone_value({"zone": 7}) == "7"

    def test_unusable_types_ignored(self):
        assert extract_zone_value({"zone": True, "zoneId": ["z1"], "data": "z2"}) is None


class TestZoneResolution:
    """Test resolving zone values against the directory."""

    def test_zone_id_resolves_to_name(self, directory):
        assert resolve_zone({"zone": "z1"}, directory) == "Lobby"

    def test_name_match_is_case_insensitive(self, directory):
        """Returns the directory's canonical casing."""
        assert resolve_zone({"zone": "lobby"}, directory) == "Lobby"
        assert resolve_zone({"zone": "FOOD COURT"}, directory) == "Food Court"

    def test_trimmed_before_lookup(self, directory):
        assert resolve_zone({"zoneId": "  z2 "}, directory) == "Food Court"

    def test_substring_match(self, directory):
        assert resolve_zone({"zone": "food"}, directory) == "Food Court"

    def test_unknown_zone_passed_through(self, directory):
        assert resolve_zone({"zone": " Parking "}, directory) == "Parking"

    def test_direction_token(self, directory):
        assert resolve_zone({"direction": "z2-entry"}, directory) == "Food Court"
        assert resolve_zone({"direction": "gate-a-exit"}, directory) == "Gate A"

    def test_direction_placeholder_token_ignored(self, directory):
        assert resolve_zone({"direction": "zone-exit"}, directory) == ""

    def test_site_label_fallback(self, directory):
        assert resolve_zone({"site": "site-1"}, directory) == "Main Mall (Zone Unknown)"
        assert resolve_zone({"siteId": "site-2"}, directory) == "North Campus (Zone Unknown)"
        assert resolve_zone({"site": "North Campus"}, directory) == "North Campus (Zone Unknown)"

    def test_unknown_site_gives_empty_zone(self, directory):
        assert resolve_zone({"site": "elsewhere"}, directory) == ""

    def test_empty_directory(self):
        assert resolve_zone({"zone": "z1"}, ZoneDirectory()) == "z1"
        assert resolve_zone({}, ZoneDirectory()) == ""


class TestNormalizeAlert:
    """Test the full CanonicalAlert conversion."""

    def test_zone_direction_example(self, directory):
        alert = normalize_alert({"direction": "zone-exit"}, directory)
        assert alert.zone == ""
        assert alert.action_type == ActionType.EXIT

    def test_explicit_action_type(self, directory):
        assert normalize_alert({"actionType": "entry"}, directory).action_type == ActionType.ENTRY
        assert normalize_alert({"actionType": "EXIT"}, directory).action_type == ActionType.EXIT

    def test_unrecognized_action_type_falls_back_to_direction(self, directory):
        alert = normalize_alert({"actionType": "loiter", "direction": "z1-enter"}, directory)
        assert alert.action_type == ActionType.ENTRY

    def test_action_type_defaults_to_exit(self, directory):
        assert normalize_alert({}, directory).action_type == ActionType.EXIT

    def test_numeric_timestamp(self, directory):
        alert = normalize_alert({"timestamp": 1700000000000}, directory)
        assert alert.timestamp == "2023-11-14T22:13:20.000Z"

    def test_digit_string_timestamp(self, directory):
        alert = normalize_alert({"timestamp": "1700000000000"}, directory)
        assert alert.timestamp == "2023-11-14T22:13:20.000Z"

    def test_ts_field_used_when_timestamp_missing(self, directory):
        alert = normalize_alert({"ts": 1700000000000}, directory)
        assert alert.timestamp == "2023-11-14T22:13:20.000Z"

    def test_iso_timestamp_normalized_to_utc(self, directory):
        assert normalize_alert(
            {"timestamp": "2024-01-05T10:00:00Z"}, directory
        ).timestamp == "2024-01-05T10:00:00.000Z"
        assert normalize_alert(
            {"timestamp": "2024-01-05T12:00:00+02:00"}, directory
        ).timestamp == "2024-01-05T10:00:00.000Z"

    def test_invalid_timestamp_uses_now(self, directory):
        alert = normalize_alert({"timestamp": "not-a-date"}, directory)
        assert alert.timestamp != "not-a-date"
        assert ISO_PATTERN.match(alert.timestamp)
        parsed = parse_timestamp(alert.timestamp)
        assert abs(now_utc() - parsed) < timedelta(seconds=5)

    def test_severity(self, directory):
        assert normalize_alert({"severity": "HIGH"}, directory).severity == Severity.HIGH
        assert normalize_alert({"severity": "medium"}, directory).severity == Severity.MEDIUM
        assert normalize_alert({"severity": "urgent"}, directory).severity == Severity.LOW
        assert normalize_alert({}, directory).severity == Severity.LOW

    def test_event_id_used_as_identity(self, directory):
        assert normalize_alert({"eventId": "evt-9"}, directory).id == "evt-9"
        assert normalize_alert({"eventId": 42}, directory).id == "42"

    def test_generated_identity(self, directory):
        first = normalize_alert({}, directory)
        second = normalize_alert({}, directory)
        assert re.match(r"^\d+-", first.id)
        assert first.id != second.id

    def test_site(self, directory):
        assert normalize_alert({"site": "site-1"}, directory).site == "site-1"
        assert normalize_alert({"siteId": "site-2"}, directory).site == "site-2"
        assert normalize_alert({}, directory).site == ""

    def test_new_alert_not_dismissed(self, directory):
        assert normalize_alert({"zone": "z1"}, directory).dismissed is False

    @pytest.mark.parametrize("raw", [
        None,
        42,
        "alert",
        [],
        {"zone": None},
        {"zone": {"nested": 1}},
        {"data": "not-a-dict", "payload": 3},
        {"timestamp": float("nan")},
        {"timestamp": float("inf")},
        {"timestamp": 10 ** 20},
        {"timestamp": True},
        {"timestamp": {"when": "now"}},
        {"direction": 5, "actionType": 3},
        {"eventId": None, "severity": None},
        {"site": 12, "siteId": None},
        {"timestamp": "0001-01-01T00:00:00+05:00"},
        {"timestamp": "9999-12-31T23:59:59-05:00"},
    ])
    def test_never_raises(self, directory, raw):
        """Every field is populated whatever the input looks like."""
        alert = normalize_alert(raw, directory)
        assert isinstance(alert.id, str) and alert.id
        assert isinstance(alert.action_type, ActionType)
        assert isinstance(alert.zone, str)
        assert isinstance(alert.site, str)
        assert isinstance(alert.severity, Severity)
        assert ISO_PATTERN.match(alert.timestamp)


class TestEventNormalizer:
    """Test the directory-following normalizer."""

    def test_uses_current_directory(self, directory):
        reference = SimpleNamespace(directory=ZoneDirectory())
        normalizer = EventNormalizer(reference)
        assert normalizer.normalize({"zone": "z1"}).zone == "z1"

        reference.directory = directory
        assert normalizer.normalize({"zone": "z1"}).zone == "Lobby"


class TestNormalizeOccupancy:
    """Test live occupancy payload conversion."""

    def test_valid_payload(self):
        event = normalize_occupancy({
            "site": "site-1",
            "zone": "z1",
            "floor": 2,
            "occupancy": 42,
            "timestamp": 1700000000000,
        })
        assert event.site == "site-1"
        assert event.zone == "z1"
        assert event.floor == "2"
        assert event.occupancy == 42
        assert event.timestamp == "2023-11-14T22:13:20.000Z"

    @pytest.mark.parametrize("raw", [
        None,
        {},
        {"occupancy": "42"},
        {"occupancy": True},
        {"occupancy": None},
    ])
    def test_non_numeric_dropped(self, raw):
        assert normalize_occupancy(raw) is None
