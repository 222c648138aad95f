"""
Analytics snapshot loading.

A snapshot is four independent REST calls (occupancy, footfall, dwell time,
demographics) issued concurrently. Each call settles on its own: a failure
is logged and that metric falls back to zero/empty, while the others are
still applied. The combined snapshot is only produced once all four have
settled.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import requests

from .api_client import AnalyticsAPIClient
from .models import (
    Comparison,
    DashboardSnapshot,
    DateFilter,
    Demographics,
    DemographicsPoint,
    OccupancyPoint,
)
from .timestamps import epoch_ms, now_utc, parse_timestamp, to_iso

logger = logging.getLogger(__name__)


def _utc_midnight(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    return datetime(now.year, now.month, now.day, tzinfo=timezone.utc)


def time_range(date_filter: DateFilter, now: Optional[datetime] = None) -> tuple[int, int]:
    """(from_utc, to_utc) in epoch millis for a date filter.

    today: UTC midnight to now. yesterday: the whole previous UTC day.
    week/month: the last 7/30 days up to now.
    """
    now = now or now_utc()
    to_utc = epoch_ms(now)

    if date_filter == DateFilter.TODAY:
        return epoch_ms(_utc_midnight(now)), to_utc

    if date_filter == DateFilter.YESTERDAY:
        start = _utc_midnight(now) - timedelta(days=1)
        end = start + timedelta(days=1) - timedelta(milliseconds=1)
        return epoch_ms(start), epoch_ms(end)

    days = 7 if date_filter == DateFilter.WEEK else 30
    return epoch_ms(now - timedelta(days=days)), to_utc


def footfall_range(date_filter: DateFilter, now: Optional[datetime] = None) -> tuple[int, int]:
    """Footfall covers the whole UTC day for `today`, else the normal range."""
    now = now or now_utc()
    if date_filter == DateFilter.TODAY:
        start = _utc_midnight(now)
        end = start + timedelta(days=1) - timedelta(milliseconds=1)
        return epoch_ms(start), epoch_ms(end)
    return time_range(date_filter, now)


# Response parsing


def _first_present(data: dict, *keys: str) -> Any:
    """First value under `keys` that is not None."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _number(value: Any, default: float = 0) -> float:
    """Numeric value, or `default` for non-numbers, booleans, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return value


def _point_time(point: dict, *keys: str) -> str:
    """ISO timestamp for a series point; the raw value when unparseable."""
    value = None
    for key in keys:
        if point.get(key):
            value = point[key]
            break
    parsed = parse_timestamp(value)
    if parsed is not None:
        return to_iso(parsed)
    return "" if value is None else str(value)


def _non_empty_list(value: Any) -> Optional[list]:
    if isinstance(value, list) and value:
        return [item for item in value if isinstance(item, dict)]
    return None


def parse_occupancy(response: Any) -> tuple[float, list[OccupancyPoint], Optional[Comparison]]:
    """Current occupancy, series and comparison from an occupancy response.

    Accepts `{buckets: [{utc|local, avg}]}` or the older
    `{timeseries: [{timestamp|time|date, occupancy|count}], currentOccupancy}`.
    """
    if not isinstance(response, dict):
        return 0, [], None

    comparison = Comparison.from_dict(response.get("comparison"))

    buckets = _non_empty_list(response.get("buckets"))
    if buckets:
        series = [
            OccupancyPoint(
                timestamp=_point_time(b, "utc", "local"),
                occupancy=_number(b.get("avg")),
            )
            for b in buckets
        ]
        current = series[-1].occupancy if series else 0
        return current, series, comparison

    timeseries = _non_empty_list(response.get("timeseries"))
    if timeseries:
        series = [
            OccupancyPoint(
                timestamp=_point_time(p, "timestamp", "time", "date"),
                occupancy=_number(p.get("occupancy") or p.get("count")),
            )
            for p in timeseries
        ]
        current = _first_present(response, "currentOccupancy", "occupancy")
        if current is None:
            current = series[-1].occupancy if series else 0
        return _number(current), series, comparison

    logger.warning("No buckets or timeseries data found in occupancy response")
    return 0, [], comparison


def parse_footfall(response: Any) -> int:
    if not isinstance(response, dict):
        return 0
    return int(_number(_first_present(response, "footfall", "todayFootfall", "count")))


def parse_dwell(response: Any) -> tuple[float, Optional[Comparison]]:
    """Average dwell minutes and comparison. The API always reports minutes."""
    if not isinstance(response, dict):
        return 0, None
    value = _first_present(
        response, "avgDwellMinutes", "averageDwellTime", "dwellTime", "avgDwellTime"
    )
    return _number(value), Comparison.from_dict(response.get("comparison"))


def parse_demographics(response: Any) -> tuple[Demographics, list[DemographicsPoint]]:
    """Current split and series from `{buckets}` or `{current, timeseries}`."""
    if not isinstance(response, dict):
        return Demographics(), []

    buckets = _non_empty_list(response.get("buckets"))
    if buckets:
        series = [
            DemographicsPoint(
                timestamp=_point_time(b, "utc", "local"),
                male=_number(b.get("male")),
                female=_number(b.get("female")),
            )
            for b in buckets
        ]
        latest = series[-1] if series else None
        current = Demographics(latest.male, latest.female) if latest else Demographics()
        return current, series

    timeseries = _non_empty_list(response.get("timeseries"))
    if timeseries:
        series = [
            DemographicsPoint(
                timestamp=_point_time(p, "timestamp", "time", "date"),
                male=_number(p.get("male")),
                female=_number(p.get("female")),
            )
            for p in timeseries
        ]
        current = response.get("current")
        if not isinstance(current, dict):
            current = {}
        return Demographics(_number(current.get("male")), _number(current.get("female"))), series

    logger.warning("No buckets or timeseries data found in demographics response")
    return Demographics(), []


class AnalyticsLoader:
    """Loads DashboardSnapshots through the blocking REST client."""

    def __init__(self, api: AnalyticsAPIClient):
        self.api = api

    async def _call(self, name: str, func: Callable[[], Any]) -> Any:
        """Run one blocking request in the executor; None on failure."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"Error loading {name} (status {status}): {e}")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error loading {name}: {e}")
        return None

    async def load_snapshot(
        self,
        site_id: str,
        date_filter: DateFilter = DateFilter.TODAY,
        now: Optional[datetime] = None,
    ) -> DashboardSnapshot:
        """Fetch all four metrics concurrently and combine them."""
        now = now or now_utc()
        from_utc, to_utc = time_range(date_filter, now)
        footfall_from, footfall_to = footfall_range(date_filter, now)

        occupancy, footfall, dwell, demographics = await asyncio.gather(
            self._call(
                "occupancy",
                lambda: self.api.get_occupancy_timeseries(site_id, from_utc, to_utc),
            ),
            self._call(
                "footfall",
                lambda: self.api.get_footfall(site_id, footfall_from, footfall_to),
            ),
            self._call(
                "dwell time",
                lambda: self.api.get_average_dwell_time(site_id, from_utc, to_utc),
            ),
            self._call(
                "demographics",
                lambda: self.api.get_demographics(site_id, from_utc, to_utc),
            ),
        )

        current_occupancy, occupancy_series, occupancy_comparison = parse_occupancy(occupancy)
        avg_dwell, dwell_comparison = parse_dwell(dwell)
        current_demographics, demographics_series = parse_demographics(demographics)

        snapshot = DashboardSnapshot(
            site_id=site_id,
            date_filter=date_filter,
            occupancy=current_occupancy,
            footfall=parse_footfall(footfall),
            avg_dwell_minutes=avg_dwell,
            occupancy_series=occupancy_series,
            demographics_series=demographics_series,
            demographics=current_demographics,
            occupancy_comparison=occupancy_comparison,
            dwell_comparison=dwell_comparison,
        )
        logger.debug(
            f"Loaded snapshot for {site_id} ({date_filter.value}): "
            f"occupancy={snapshot.occupancy} footfall={snapshot.footfall} "
            f"dwell={snapshot.avg_dwell_minutes}"
        )
        return snapshot
