"""Page-number windowing for paged record views."""

from dataclasses import dataclass
from typing import Union

ELLIPSIS = "..."

# Up to this many pages every page number is shown
FULL_RANGE_LIMIT = 7

PageMarker = Union[int, str]


def page_window(total_pages: int, current_page: int) -> list[PageMarker]:
    """Page markers to display for the current position.

    Short ranges are shown in full. Longer ones always show the first and last
    page and the neighbours of the current page, with ELLIPSIS marking gaps.

    Example:
        >>> page_window(10, 5)
        [1, '...', 4, 5, 6, '...', 10]
    """
    if total_pages <= 0:
        return []

    current_page = min(max(current_page, 1), total_pages)

    if total_pages <= FULL_RANGE_LIMIT:
        return list(range(1, total_pages + 1))

    pages: list[PageMarker] = [1]
    if current_page > 3:
        pages.append(ELLIPSIS)

    start = max(2, current_page - 1)
    end = min(total_pages - 1, current_page + 1)
    pages.extend(range(start, end + 1))

    if current_page < total_pages - 2:
        pages.append(ELLIPSIS)
    pages.append(total_pages)

    return pages


@dataclass
class Paginator:
    """Current page position for a paged record view."""
    page_size: int = 10
    current_page: int = 1
    total_pages: int = 0
    total_records: int = 0

    def __post_init__(self):
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    def go_to_page(self, page: int) -> bool:
        """Move to a page. Out-of-range pages are ignored."""
        if page < 1 or page > self.total_pages:
            return False
        self.current_page = page
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.current_page + 1)

    def previous_page(self) -> bool:
        return self.go_to_page(self.current_page - 1)

    def update(self, total_records: int, total_pages: int) -> None:
        """Apply totals from a fetched page."""
        self.total_records = max(total_records, 0)
        self.total_pages = max(total_pages, 0)

    def reset(self) -> None:
        self.current_page = 1
        self.total_pages = 0
        self.total_records = 0

    def window(self) -> list[PageMarker]:
        return page_window(self.total_pages, self.current_page)
