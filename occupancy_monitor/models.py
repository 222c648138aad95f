"""Data models for the occupancy monitor."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ActionType(Enum):
    """Direction of a live entry/exit event."""
    ENTRY = "entry"
    EXIT = "exit"


class Severity(Enum):
    """Alert severity as reported by the backend."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_value(cls, value: Any) -> Optional["Severity"]:
        """Match a severity string case-insensitively, None if unrecognised."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class DateFilter(Enum):
    """Time window used for analytics snapshots."""
    TODAY = "today"
    YESTERDAY = "yesterday"
    WEEK = "week"
    MONTH = "month"

    @classmethod
    def from_string(cls, value: str) -> "DateFilter":
        """Convert string to DateFilter, defaulting to TODAY."""
        for date_filter in cls:
            if date_filter.value == value:
                return date_filter
        return cls.TODAY


@dataclass
class Zone:
    """A monitored sub-area of a site."""
    zone_id: str
    name: str
    security_level: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Zone":
        """Create from a /sites zone entry."""
        return cls(
            zone_id=data.get("zoneId") or "",
            name=data.get("name") or "",
            security_level=data.get("securityLevel"),
        )


@dataclass
class Site:
    """A monitored site and its zones."""
    site_id: str
    name: str
    zones: list[Zone] = field(default_factory=list)
    city: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Site":
        """Create from a /sites entry.

        Zone entries that are not objects are kept out of the zone list; the
        directory logs sites that end up without zones.
        """
        raw_zones = data.get("zones")
        zones = []
        if isinstance(raw_zones, list):
            zones = [Zone.from_dict(z) for z in raw_zones if isinstance(z, dict)]

        return cls(
            site_id=data.get("siteId") or "",
            name=data.get("name") or "",
            zones=zones,
            city=data.get("city"),
            country=data.get("country"),
            timezone=data.get("timezone"),
        )


@dataclass
class CanonicalAlert:
    """A normalized live entry/exit alert."""
    id: str
    action_type: ActionType
    zone: str
    site: str
    severity: Severity
    timestamp: str  # ISO 8601, UTC
    dismissed: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "action_type": self.action_type.value,
            "zone": self.zone,
            "site": self.site,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
            "dismissed": self.dismissed,
        }


@dataclass
class LiveOccupancyEvent:
    """Live occupancy reading pushed by the backend."""
    site: str
    occupancy: float
    timestamp: str
    zone: Optional[str] = None
    floor: Optional[str] = None


@dataclass
class Comparison:
    """Change against the previous period."""
    previous: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Comparison"]:
        """Create from a response `comparison` object, None if absent."""
        if not isinstance(data, dict):
            return None
        return cls(
            previous=data.get("previous"),
            change=data.get("change"),
            change_percent=data.get("changePercent"),
        )


@dataclass
class OccupancyPoint:
    """One point of the occupancy timeseries."""
    timestamp: str
    occupancy: float


@dataclass
class DemographicsPoint:
    """One point of the demographics timeseries."""
    timestamp: str
    male: float
    female: float


@dataclass
class Demographics:
    """Current male/female split."""
    male: float = 0
    female: float = 0

    @property
    def total(self) -> float:
        return self.male + self.female

    @property
    def male_percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.male / self.total * 100)

    @property
    def female_percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.female / self.total * 100)

    @property
    def dominant_percent(self) -> int:
        """Percentage of the larger group."""
        return max(self.male_percent, self.female_percent)


@dataclass
class DashboardSnapshot:
    """Analytics snapshot for one site and date filter."""
    site_id: str
    date_filter: DateFilter
    occupancy: float = 0
    footfall: int = 0
    avg_dwell_minutes: float = 0
    dwell_unit: str = "minutes"
    occupancy_series: list[OccupancyPoint] = field(default_factory=list)
    demographics_series: list[DemographicsPoint] = field(default_factory=list)
    demographics: Demographics = field(default_factory=Demographics)
    occupancy_comparison: Optional[Comparison] = None
    dwell_comparison: Optional[Comparison] = None
    loaded_at: datetime = field(default_factory=datetime.now)


@dataclass
class EntryExitRecord:
    """A person's entry/exit record from the paged records endpoint."""
    person_id: str
    person_name: str
    gender: Optional[str] = None
    zone_id: Optional[str] = None
    zone_name: Optional[str] = None
    severity: Optional[str] = None
    entry_utc: Optional[int] = None
    entry_local: Optional[str] = None
    exit_utc: Optional[int] = None
    exit_local: Optional[str] = None
    dwell_minutes: Optional[float] = None

    @property
    def has_exited(self) -> bool:
        return self.exit_utc is not None

    @classmethod
    def from_dict(cls, data: dict) -> "EntryExitRecord":
        """Create from an entry-exit API record."""
        return cls(
            person_id=data.get("personId") or "",
            person_name=data.get("personName") or "",
            gender=data.get("gender"),
            zone_id=data.get("zoneId"),
            zone_name=data.get("zoneName"),
            severity=data.get("severity"),
            entry_utc=data.get("entryUtc"),
            entry_local=data.get("entryLocal"),
            exit_utc=data.get("exitUtc"),
            exit_local=data.get("exitLocal"),
            dwell_minutes=data.get("dwellMinutes"),
        )


@dataclass
class EntryExitPage:
    """One page of entry/exit records."""
    records: list[EntryExitRecord] = field(default_factory=list)
    total_records: int = 0
    total_pages: int = 0
    page_number: int = 1
    page_size: int = 10


@dataclass
class LoginResult:
    """Outcome of a login attempt."""
    success: bool
    token: Optional[str] = None
    email: Optional[str] = None
    error_message: Optional[str] = None
