"""
REST client for the occupancy analytics backend.

Endpoints:
- POST /auth/login
- GET  /sites
- POST /analytics/dwell, /analytics/footfall, /analytics/occupancy,
       /analytics/demographics (body: siteId, fromUtc, toUtc in epoch millis)
- POST /analytics/entry-exit (body: pageNumber, pageSize, siteId)
"""

import logging
from typing import Any, Callable, Optional
from urllib.parse import urljoin

import requests

from .config import config

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


class AnalyticsAPIClient:
    """Client for the analytics REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        token_provider: Optional[TokenProvider] = None,
    ):
        self.base_url = base_url or config.API_BASE_URL
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.token_provider = token_provider
        self.session = requests.Session()
        self.session.headers["Content-Type"] = "application/json"

    def _url(self, endpoint: str) -> str:
        return urljoin(self.base_url.rstrip("/") + "/", endpoint.lstrip("/"))

    def _auth_headers(self) -> dict:
        """Bearer header for the stored token, if any."""
        token = self.token_provider() if self.token_provider else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """Make GET request to an API endpoint."""
        response = self.session.get(
            self._url(endpoint),
            params=params,
            headers=self._auth_headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, body: dict) -> Any:
        """Make POST request with a JSON body."""
        response = self.session.post(
            self._url(endpoint),
            json=body,
            headers=self._auth_headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    # Auth and reference data

    def login(self, email: str, password: str) -> dict:
        """Authenticate and return {token, user}."""
        return self._post("auth/login", {"email": email, "password": password})

    def get_sites(self) -> list[dict]:
        """Get all sites with their zones."""
        sites = self._get("sites")
        if not isinstance(sites, list):
            logger.warning(f"Unexpected /sites response type: {type(sites).__name__}")
            return []
        return sites

    # Analytics

    def _analytics(self, endpoint: str, site_id: str, from_utc: int, to_utc: int) -> dict:
        body = {"siteId": site_id, "fromUtc": from_utc, "toUtc": to_utc}
        return self._post(f"analytics/{endpoint}", body)

    def get_average_dwell_time(self, site_id: str, from_utc: int, to_utc: int) -> dict:
        return self._analytics("dwell", site_id, from_utc, to_utc)

    def get_footfall(self, site_id: str, from_utc: int, to_utc: int) -> dict:
        return self._analytics("footfall", site_id, from_utc, to_utc)

    def get_occupancy_timeseries(self, site_id: str, from_utc: int, to_utc: int) -> dict:
        return self._analytics("occupancy", site_id, from_utc, to_utc)

    def get_demographics(self, site_id: str, from_utc: int, to_utc: int) -> dict:
        return self._analytics("demographics", site_id, from_utc, to_utc)

    def get_entry_exit_records(
        self,
        page_number: int,
        page_size: int,
        site_id: Optional[str] = None,
    ) -> dict:
        """Get one page of entry/exit records."""
        body: dict[str, Any] = {"pageNumber": page_number, "pageSize": page_size}
        if site_id:
            body["siteId"] = site_id
        return self._post("analytics/entry-exit", body)
