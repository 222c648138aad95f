"""
Occupancy Monitor

Client for a people-counting analytics backend. It authenticates, loads the
site/zone reference data, fetches occupancy, footfall, dwell time and
demographics snapshots over REST, and keeps a live feed of entry/exit alerts
and occupancy readings over Socket.IO.

Live events arrive in many shapes. They are normalized against the zone
directory into canonical alerts and accumulated in an in-memory store that
dashboards and the CLI read from.
"""

__version__ = "1.0.0"
