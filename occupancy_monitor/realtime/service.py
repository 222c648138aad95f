"""
Live dashboard service.

Ties together:
- Reference Directory: sites and the zone lookup, selected site
- Live Feed Session: alerts and occupancy over Socket.IO
- Alert Store: newest-first alerts and the latest occupancy reading
- Analytics Loader: REST snapshot for the selected site and date filter
- Background Refresher: silent periodic snapshot refresh
"""

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Optional, Union

import requests

from ..alert_store import AlertStore
from ..analytics import AnalyticsLoader
from ..api_client import AnalyticsAPIClient
from ..auth import SITE_LOAD_FAILED_MESSAGE, AuthService
from ..client_state import ClientStateStore
from ..config import config as app_config
from ..directory import ReferenceDirectory
from ..models import CanonicalAlert, DashboardSnapshot, DateFilter, LiveOccupancyEvent
from ..normalizer import EventNormalizer
from .refresher import BackgroundRefresher
from .session import LiveFeedSession, Subscription

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


@dataclass
class ServiceConfig:
    """Configuration for the live dashboard service."""

    api_base_url: str = "http://localhost:8080/api"
    socket_url: str = "http://localhost:8080"
    request_timeout: int = 30

    transports: list[str] = field(default_factory=lambda: ["websocket", "polling"])
    reconnection_attempts: int = 5
    reconnection_delay: float = 1.0

    refresh_interval: float = 30  # seconds
    date_filter: DateFilter = DateFilter.TODAY

    # Database
    db_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Create configuration from environment variables."""
        return cls(
            api_base_url=app_config.API_BASE_URL,
            socket_url=app_config.SOCKET_URL,
            request_timeout=app_config.REQUEST_TIMEOUT,
            transports=list(app_config.SOCKET_TRANSPORTS),
            reconnection_attempts=app_config.RECONNECTION_ATTEMPTS,
            reconnection_delay=app_config.RECONNECTION_DELAY,
            refresh_interval=app_config.REFRESH_INTERVAL,
            date_filter=DateFilter.from_string(app_config.DATE_FILTER),
            db_path=app_config.get_state_db_path(),
        )


class LiveDashboardService:
    """
    Keeps the dashboard state for the selected site up to date.

    The REST snapshot is loaded on start and whenever the site or date filter
    changes (foreground, toggles is_loading) and on a fixed interval
    (background, silent). Live alerts and occupancy readings flow into the
    store as they arrive.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        state: Optional[ClientStateStore] = None,
        api: Optional[AnalyticsAPIClient] = None,
        client_factory=None,
    ):
        self.config = config or ServiceConfig.from_env()
        self.state = state or ClientStateStore(self.config.db_path)
        self.api = api or AnalyticsAPIClient(
            base_url=self.config.api_base_url,
            timeout=self.config.request_timeout,
            token_provider=self.state.get_token,
        )

        self.auth = AuthService(self.api, self.state)
        self.reference = ReferenceDirectory(self.state)
        self.normalizer = EventNormalizer(self.reference)
        self.store = AlertStore()
        self.loader = AnalyticsLoader(self.api)

        self.session = LiveFeedSession(
            url=self.config.socket_url,
            token_provider=self.state.get_token,
            normalizer=self.normalizer,
            transports=self.config.transports,
            reconnection_attempts=self.config.reconnection_attempts,
            reconnection_delay=self.config.reconnection_delay,
            client_factory=client_factory,
        )
        self.refresher = BackgroundRefresher(
            lambda: self.refresh(foreground=False),
            interval=self.config.refresh_interval,
        )

        self.date_filter = self.config.date_filter
        self.snapshot: Optional[DashboardSnapshot] = None
        self.error_message: Optional[str] = None

        self._running = False
        self._foreground_loads = 0
        self._subscriptions: list[Subscription] = []

    @property
    def running(self) -> bool:
        return self._running

    @property
    def is_loading(self) -> bool:
        """True while a foreground snapshot load is in progress."""
        return self._foreground_loads > 0

    async def start(self) -> bool:
        """Load sites, open the live feed and load the first snapshot.

        Returns:
            False if the dashboard cannot start (no sites, site load failure)
        """
        if self._running:
            logger.warning("Service already running")
            return True

        logger.info("Starting live dashboard service")
        self._running = True

        if not await self.load_reference():
            self._running = False
            return False

        self._subscriptions.append(await self.session.on_alert(self._on_alert))
        self._subscriptions.append(await self.session.on_live_occupancy(self._on_occupancy))

        await self.refresh(foreground=True)
        await self.refresher.start()

        logger.info(f"Live dashboard started for site {self.reference.selected_site.site_id}")
        return True

    async def stop(self) -> None:
        """Release subscriptions, stop refreshing and close the live feed."""
        if not self._running:
            return

        logger.info("Stopping live dashboard service")
        self._running = False

        for subscription in self._subscriptions:
            subscription.release()
        self._subscriptions.clear()

        await self.refresher.stop()
        await self.session.disconnect()

        logger.info("Live dashboard service stopped")

    async def run(self) -> bool:
        """Run the service until interrupted."""
        if not await self.start():
            return False
        await self.wait_stopped()
        return True

    async def wait_stopped(self) -> None:
        """Stop on SIGINT/SIGTERM and wait until the service has stopped."""
        # Set up signal handlers
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(self.stop()))

        # Wait until stopped
        while self._running:
            await asyncio.sleep(1)

    async def load_reference(self) -> bool:
        """Load the site list into the reference directory.

        Returns:
            False if the sites could not be loaded or there are none
        """
        self.error_message = None
        self._foreground_loads += 1
        try:
            sites = await self._load_sites()
        finally:
            self._foreground_loads -= 1

        if sites is None:
            return False

        self.reference.load(sites)
        if self.reference.selected_site is None:
            logger.error("No sites available; dashboard cannot proceed")
            return False
        return True

    async def _load_sites(self) -> Optional[list[dict]]:
        """Fetch the site list. None (with error_message set) on failure."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.api.get_sites)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in AUTH_FAILURE_STATUSES:
                logger.error(f"Not authorized to load sites (status {status})")
            else:
                logger.error(f"Error fetching sites: {e}")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching sites: {e}")

        self.error_message = SITE_LOAD_FAILED_MESSAGE
        return None

    async def refresh(self, foreground: bool = True) -> Optional[DashboardSnapshot]:
        """Reload the analytics snapshot for the selected site.

        Background refreshes leave is_loading untouched. The result is
        dropped if the service stopped or the selection changed meanwhile.
        """
        site = self.reference.selected_site
        if site is None:
            logger.error("Site ID is required")
            return None

        date_filter = self.date_filter
        if foreground:
            self._foreground_loads += 1
        try:
            snapshot = await self.loader.load_snapshot(site.site_id, date_filter)
        finally:
            if foreground:
                self._foreground_loads -= 1

        if not self._running:
            logger.debug(f"Discarding snapshot for {site.site_id}, service stopped")
            return None

        current = self.reference.selected_site
        if current is None or current.site_id != site.site_id or self.date_filter != date_filter:
            logger.debug(f"Discarding stale snapshot for {site.site_id} ({date_filter.value})")
            return None

        self.snapshot = snapshot
        self.store.set_occupancy(snapshot.occupancy)
        return snapshot

    async def select_site(self, site_id: str) -> Optional[DashboardSnapshot]:
        """Switch site and reload.

        Raises:
            ValueError: If the site id is unknown
        """
        self.reference.set_selected_site(site_id)
        return await self.refresh(foreground=True)

    async def set_date_filter(self, date_filter: Union[DateFilter, str]) -> Optional[DashboardSnapshot]:
        if isinstance(date_filter, str):
            date_filter = DateFilter.from_string(date_filter)
        self.date_filter = date_filter
        return await self.refresh(foreground=True)

    # Event handlers

    def _on_alert(self, alert: CanonicalAlert) -> None:
        self.store.insert(alert)

    def _on_occupancy(self, event: LiveOccupancyEvent) -> None:
        self.store.set_occupancy(event.occupancy)

    def get_stats(self) -> dict:
        """Get service statistics."""
        selected = self.reference.selected_site
        return {
            "running": self._running,
            "site_id": selected.site_id if selected else None,
            "date_filter": self.date_filter.value,
            "zones": len(self.reference.directory),
            "alerts": len(self.store),
            "unread_alerts": self.store.unread_count(),
            "occupancy": self.store.occupancy,
            "refresh_ticks": self.refresher.ticks,
            "refresh_skipped": self.refresher.skipped,
            "session": self.session.get_stats(),
        }
