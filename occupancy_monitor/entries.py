"""
Paged entry/exit records browser.

Fetches one page of person entry/exit records at a time for the selected
site. Fetch failures leave an empty page rather than raising; once the
browser is closed, pages that finish loading are dropped.
"""

import asyncio
import logging
from typing import Optional

import requests

from .api_client import AnalyticsAPIClient
from .directory import ReferenceDirectory
from .models import EntryExitPage, EntryExitRecord
from .pagination import PageMarker, Paginator

logger = logging.getLogger(__name__)


def _total(value) -> int:
    """Non-negative integer total from a response field, 0 when unusable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        return 0
    return max(value, 0)


class EntryExitBrowser:
    """Entry/exit record pages for the selected site."""

    def __init__(
        self,
        api: AnalyticsAPIClient,
        reference: ReferenceDirectory,
        page_size: int = 10,
    ):
        self.api = api
        self.reference = reference
        self.paginator = Paginator(page_size=page_size)
        self.page = EntryExitPage(page_size=page_size)
        self.is_loading = False
        self._closed = False

    @property
    def records(self) -> list[EntryExitRecord]:
        return self.page.records

    def _site_id(self) -> Optional[str]:
        site = self.reference.selected_site
        return site.site_id if site else None

    def _fetch(self, page_number: int, site_id: Optional[str]) -> EntryExitPage:
        """Blocking fetch of one page. Failures give an empty page."""
        page_size = self.paginator.page_size
        try:
            response = self.api.get_entry_exit_records(page_number, page_size, site_id)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error loading entries: {e}")
            return EntryExitPage(page_number=page_number, page_size=page_size)

        if not isinstance(response, dict) or not isinstance(response.get("records"), list):
            logger.warning(f"Unexpected entry-exit response structure: {response!r}")
            return EntryExitPage(page_number=page_number, page_size=page_size)

        return EntryExitPage(
            records=[
                EntryExitRecord.from_dict(r) for r in response["records"] if isinstance(r, dict)
            ],
            total_records=_total(response.get("totalRecords")),
            total_pages=_total(response.get("totalPages")),
            page_number=page_number,
            page_size=page_size,
        )

    async def load_entries(self) -> Optional[EntryExitPage]:
        """Fetch the current page. Returns None if the browser was closed meanwhile."""
        if self._closed:
            return None

        page_number = self.paginator.current_page
        site_id = self._site_id()
        self.is_loading = True

        loop = asyncio.get_running_loop()
        try:
            page = await loop.run_in_executor(None, lambda: self._fetch(page_number, site_id))
        finally:
            self.is_loading = False

        if self._closed:
            logger.debug(f"Discarding entries page {page_number}, browser closed")
            return None

        self.page = page
        self.paginator.update(page.total_records, page.total_pages)
        logger.info(
            f"Loaded entries page {page_number}/{page.total_pages} "
            f"({len(page.records)} of {page.total_records} records)"
        )
        return page

    async def go_to_page(self, page: int) -> bool:
        """Move to a page and load it. Out-of-range pages are ignored."""
        if not self.paginator.go_to_page(page):
            return False
        await self.load_entries()
        return True

    async def next_page(self) -> bool:
        return await self.go_to_page(self.paginator.current_page + 1)

    async def previous_page(self) -> bool:
        return await self.go_to_page(self.paginator.current_page - 1)

    async def select_site(self, site_id: str) -> Optional[EntryExitPage]:
        """Switch site and reload from page 1.

        Raises:
            ValueError: If the site id is unknown
        """
        self.reference.set_selected_site(site_id)
        self.paginator.reset()
        return await self.load_entries()

    def page_numbers(self) -> list[PageMarker]:
        return self.paginator.window()

    def close(self) -> None:
        self._closed = True
