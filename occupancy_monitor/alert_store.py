"""
In-memory alert and occupancy state.

Alerts are kept newest-first in delivery order. There is no content-based
de-duplication and no expiry; alerts leave the store only through dismiss.
"""

import logging
from collections import deque
from typing import Iterator, Optional

from .models import CanonicalAlert

logger = logging.getLogger(__name__)


class AlertStore:
    """Ordered live alerts plus the latest occupancy reading."""

    def __init__(self):
        self._alerts: deque[CanonicalAlert] = deque()
        self._occupancy: Optional[float] = None

    def insert(self, alert: CanonicalAlert) -> None:
        """Place an alert at the head of the sequence."""
        self._alerts.appendleft(alert)

    def dismiss(self, alert_id: str) -> bool:
        """Remove the alert with this id. Returns True if one was removed."""
        for alert in self._alerts:
            if alert.id == alert_id:
                self._alerts.remove(alert)
                return True
        logger.debug(f"Dismiss ignored, alert not found: {alert_id}")
        return False

    def dismiss_all(self) -> int:
        """Remove every alert. Returns how many were removed."""
        count = len(self._alerts)
        self._alerts.clear()
        return count

    def mark_seen(self, alert_id: str) -> bool:
        """Flag an alert as seen without removing it."""
        alert = self.get(alert_id)
        if alert is None:
            return False
        alert.dismissed = True
        return True

    def unread_count(self) -> int:
        return sum(1 for alert in self._alerts if not alert.dismissed)

    def get(self, alert_id: str) -> Optional[CanonicalAlert]:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def snapshot(self) -> list[CanonicalAlert]:
        """Alerts newest first."""
        return list(self._alerts)

    def set_occupancy(self, value: float) -> None:
        """Replace the occupancy reading (last write wins)."""
        self._occupancy = value

    @property
    def occupancy(self) -> Optional[float]:
        return self._occupancy

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self) -> Iterator[CanonicalAlert]:
        return iter(list(self._alerts))
