"""Tests for the paged entry/exit records browser."""

import asyncio
from unittest.mock import Mock

import pytest
import requests

from occupancy_monitor.directory import ReferenceDirectory
from occupancy_monitor.entries import EntryExitBrowser

RECORD = {
    "personId": "p-1",
    "personName": "Jane Smith",
    "gender": "female",
    "zoneId": "z1",
    "zoneName": "Lobby",
    "severity": "low",
    "entryUtc": 1700000000000,
    "entryLocal": "14/11/2023 22:13:20",
    "exitUtc": None,
    "exitLocal": None,
    "dwellMinutes": None,
}


class TestEntryExitBrowser:
    """Test EntryExitBrowser paging and site changes."""

    @pytest.fixture
    def api(self):
        api = Mock()
        api.get_entry_exit_records.return_value = {
            "records": [RECORD],
            "totalRecords": 25,
            "totalPages": 3,
        }
        return api

    @pytest.fixture
    def browser(self, api, state_store, sample_sites):
        reference = ReferenceDirectory(state_store)
        reference.load(sample_sites)
        return EntryExitBrowser(api, reference, page_size=10)

    def test_load_entries(self, browser, api):
        page = asyncio.run(browser.load_entries())

        assert len(page.records) == 1
        assert page.records[0].person_name == "Jane Smith"
        assert page.records[0].has_exited is False
        assert browser.paginator.total_pages == 3
        assert browser.is_loading is False
        api.get_entry_exit_records.assert_called_once_with(1, 10, "site-1")

    def test_go_to_page(self, browser, api):
        async def scenario():
            await browser.load_entries()
            moved = await browser.go_to_page(2)
            out_of_range = await browser.go_to_page(5)
            return moved, out_of_range

        moved, out_of_range = asyncio.run(scenario())

        assert moved is True
        assert out_of_range is False
        assert browser.paginator.current_page == 2
        api.get_entry_exit_records.assert_called_with(2, 10, "site-1")
        assert api.get_entry_exit_records.call_count == 2

    def test_next_and_previous(self, browser):
        async def scenario():
            await browser.load_entries()
            await browser.next_page()
            await browser.next_page()
            at_last = await browser.next_page()
            await browser.previous_page()
            return at_last

        assert asyncio.run(scenario()) is False
        assert browser.paginator.current_page == 2

    def test_site_change_resets_to_first_page(self, browser, api):
        async def scenario():
            await browser.load_entries()
            await browser.go_to_page(3)
            await browser.select_site("site-2")

        asyncio.run(scenario())

        assert browser.paginator.current_page == 1
        api.get_entry_exit_records.assert_called_with(1, 10, "site-2")

    def test_unknown_site(self, browser):
        with pytest.raises(ValueError):
            asyncio.run(browser.select_site("site-404"))

    def test_request_failure_gives_empty_page(self, browser, api):
        api.get_entry_exit_records.side_effect = requests.ConnectionError("Connection refused")

        page = asyncio.run(browser.load_entries())

        assert page.records == []
        assert page.total_pages == 0
        assert browser.page_numbers() == []

    def test_unexpected_response_gives_empty_page(self, browser, api):
        api.get_entry_exit_records.return_value = {"items": []}
        page = asyncio.run(browser.load_entries())
        assert page.records == []

    @pytest.mark.parametrize("totals,expected", [
        ({"totalRecords": "25", "totalPages": "3"}, (0, 0)),
        ({"totalRecords": 25.0, "totalPages": 3.0}, (25, 3)),
        ({"totalRecords": -4, "totalPages": None}, (0, 0)),
        ({"totalRecords": True, "totalPages": float("inf")}, (0, 0)),
    ])
    def test_malformed_totals(self, browser, api, totals, expected):
        api.get_entry_exit_records.return_value = {"records": [RECORD], **totals}

        page = asyncio.run(browser.load_entries())

        assert (page.total_records, page.total_pages) == expected
        assert browser.paginator.total_pages == expected[1]
        assert browser.page_numbers() == list(range(1, expected[1] + 1))

    def test_page_numbers(self, browser):
        asyncio.run(browser.load_entries())
        assert browser.page_numbers() == [1, 2, 3]

    def test_closed_browser_does_not_fetch(self, browser, api):
        browser.close()
        assert asyncio.run(browser.load_entries()) is None
        api.get_entry_exit_records.assert_not_called()

    def test_result_after_close_discarded(self, browser, api):
        def close_during_fetch(*args):
            browser.close()
            return {"records": [RECORD], "totalRecords": 1, "totalPages": 1}

        api.get_entry_exit_records.side_effect = close_during_fetch

        assert asyncio.run(browser.load_entries()) is None
        assert browser.records == []
        assert browser.paginator.total_pages == 0
