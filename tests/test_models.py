"""Tests for data models."""

import pytest

from occupancy_monitor.models import (
    ActionType,
    CanonicalAlert,
    DateFilter,
    Demographics,
    EntryExitRecord,
    Severity,
    Site,
)


class TestEnums:
    """Test enum parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("high", Severity.HIGH),
        (" Medium ", Severity.MEDIUM),
        ("LOW", Severity.LOW),
        ("critical", None),
        (3, None),
        (None, None),
    ])
    def test_severity_from_value(self, value, expected):
        assert Severity.from_value(value) == expected

    def test_date_filter_from_string(self):
        assert DateFilter.from_string("month") == DateFilter.MONTH
        assert DateFilter.from_string("fortnight") == DateFilter.TODAY


class TestSite:
    """Test building sites from /sites payloads."""

    def test_from_dict(self, sample_sites):
        site = Site.from_dict(sample_sites[0])

        assert site.site_id == "site-1"
        assert site.timezone == "Asia/Dubai"
        assert [z.name for z in site.zones] == ["Lobby", "Food Court"]
        assert site.zones[1].security_level == "medium"

    def test_non_object_zones_skipped(self):
        site = Site.from_dict({"siteId": "s", "name": "S", "zones": ["z1", {"zoneId": "z2", "name": "Two"}]})
        assert [z.zone_id for z in site.zones] == ["z2"]

    def test_missing_zones(self):
        assert Site.from_dict({"siteId": "s", "name": "S", "zones": None}).zones == []


class TestDemographics:
    """Test male/female percentages."""

    def test_percentages(self):
        demographics = Demographics(male=1, female=2)
        assert demographics.male_percent == 33
        assert demographics.female_percent == 67
        assert demographics.dominant_percent == 67

    def test_empty(self):
        demographics = Demographics()
        assert demographics.total == 0
        assert demographics.dominant_percent == 0


class TestRecords:
    """Test alert and record conversions."""

    def test_alert_to_dict(self):
        alert = CanonicalAlert(
            id="e1",
            action_type=ActionType.EXIT,
            zone="Lobby",
            site="Main Mall",
            severity=Severity.LOW,
            timestamp="2024-01-01T10:00:00.000Z",
        )
        assert alert.to_dict() == {
            "id": "e1",
            "action_type": "exit",
            "zone": "Lobby",
            "site": "Main Mall",
            "severity": "low",
            "timestamp": "2024-01-01T10:00:00.000Z",
            "dismissed": False,
        }

    def test_entry_exit_record(self):
        record = EntryExitRecord.from_dict({
            "personId": "p-1",
            "personName": "Jane Smith",
            "entryUtc": 1700000000000,
            "exitUtc": 1700000600000,
            "dwellMinutes": 10,
        })
        assert record.has_exited is True
        assert record.dwell_minutes == 10
        assert record.zone_name is None
