#!/usr/bin/env python3
"""CLI runner for the occupancy monitor.

Usage:
    occupancy-monitor --once                # Print one analytics snapshot
    occupancy-monitor --entries 2           # Print page 2 of entry/exit records
    occupancy-monitor                       # Stream live alerts until interrupted
    occupancy-monitor --logout
"""

import argparse
import asyncio
import logging
import sys

from .config import Config
from .entries import EntryExitBrowser
from .formatting import (
    format_alert_time,
    format_dwell_clock,
    format_dwell_time,
    format_entry_time,
    name_initials,
    user_initials,
)
from .models import CanonicalAlert, DashboardSnapshot, DateFilter, EntryExitPage, Site
from .realtime import LiveDashboardService, ServiceConfig

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from HTTP and Socket.IO libraries
    for name in ("urllib3", "requests", "socketio", "engineio"):
        logging.getLogger(name).setLevel(logging.WARNING)


def show_snapshot(site: Site, snapshot: DashboardSnapshot) -> None:
    """Display an analytics snapshot."""
    demographics = snapshot.demographics

    print(f"\n=== {site.name} ({snapshot.date_filter.value}) ===")
    print(f"Live occupancy:     {snapshot.occupancy}")
    if snapshot.occupancy_comparison and snapshot.occupancy_comparison.change_percent is not None:
        print(f"  vs previous:      {snapshot.occupancy_comparison.change_percent:+.1f}%")
    print(f"Footfall:           {snapshot.footfall}")
    print(f"Avg dwell time:     {format_dwell_time(snapshot.avg_dwell_minutes, snapshot.dwell_unit)}")
    if snapshot.dwell_comparison and snapshot.dwell_comparison.change_percent is not None:
        print(f"  vs previous:      {snapshot.dwell_comparison.change_percent:+.1f}%")
    print(
        f"Demographics:       {demographics.total:g} people, "
        f"{demographics.male_percent}% male / {demographics.female_percent}% female"
    )
    print(f"Occupancy points:   {len(snapshot.occupancy_series)}")
    print()


def show_entries(page: EntryExitPage, page_numbers: list) -> None:
    """Display one page of entry/exit records."""
    print(f"\n=== Entries (page {page.page_number} of {page.total_pages}, "
          f"{page.total_records} records) ===")
    print("-" * 80)

    if not page.records:
        print("No records found.")
    for r in page.records:
        print(
            f"{name_initials(r.person_name):2s} {r.person_name or 'Unknown':24s} | "
            f"{r.gender or '-':6s} | "
            f"{r.zone_name or r.zone_id or 'Unknown Zone':16s} | "
            f"in {format_entry_time(r.entry_utc, r.entry_local):>8s} | "
            f"out {format_entry_time(r.exit_utc, r.exit_local):>8s} | "
            f"dwell {format_dwell_clock(r.dwell_minutes, r.exit_utc)}"
        )

    print("-" * 80)
    print("Pages: " + " ".join(str(p) for p in page_numbers))


def format_alert_line(alert: CanonicalAlert) -> str:
    return (
        f"[{alert.severity.value.upper():6s}] {format_alert_time(alert.timestamp)} | "
        f"{alert.action_type.value:5s} | {alert.zone or 'Unknown Zone'} | {alert.site}"
    )


def ensure_login(service: LiveDashboardService, email: str, password: str) -> bool:
    """Log in with the given credentials, or reuse a stored session."""
    if not email and service.auth.is_authenticated():
        logger.info(f"Using stored session for {service.auth.get_user_email()}")
        return True

    if not email or not password:
        logger.error("Not logged in; pass --email/--password or set OCCUPANCY_EMAIL/OCCUPANCY_PASSWORD")
        return False

    result = service.auth.login_and_load_site(email, password)
    if not result.success:
        print(result.error_message)
        return False

    logger.info(f"Logged in as {result.email} ({user_initials(result.email)})")
    return True


async def run_once(service: LiveDashboardService) -> int:
    """Load sites and print one analytics snapshot."""
    if not await service.load_reference():
        if service.error_message:
            print(service.error_message)
        return 1

    site = service.reference.selected_site
    snapshot = await service.loader.load_snapshot(site.site_id, service.date_filter)
    show_snapshot(site, snapshot)
    return 0


async def run_entries(service: LiveDashboardService, page: int, page_size: int) -> int:
    """Load sites and print one page of entry/exit records."""
    if not await service.load_reference():
        if service.error_message:
            print(service.error_message)
        return 1

    browser = EntryExitBrowser(service.api, service.reference, page_size=page_size)
    await browser.load_entries()
    if page != 1 and not await browser.go_to_page(page):
        logger.warning(f"Page {page} out of range, showing page 1")

    show_entries(browser.page, browser.page_numbers())
    browser.close()
    return 0


async def run_live(service: LiveDashboardService) -> int:
    """Stream live alerts until interrupted."""
    if not await service.start():
        if service.error_message:
            print(service.error_message)
        return 1

    subscription = await service.session.on_alert(lambda alert: print(format_alert_line(alert)))
    try:
        await service.wait_stopped()
    finally:
        subscription.release()
        await service.stop()
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Live occupancy and entry/exit alert monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print today's snapshot for the stored (or first) site
  occupancy-monitor --once

  # Last 7 days for a specific site
  occupancy-monitor --once --site site-1 --filter week

  # Entry/exit records, page 3
  occupancy-monitor --entries 3

  # Stream live alerts
  occupancy-monitor --email user@example.com --password secret
        """,
    )

    parser.add_argument(
        "--email",
        default=Config.EMAIL,
        help="Login email (default: OCCUPANCY_EMAIL)",
    )
    parser.add_argument(
        "--password",
        default=Config.PASSWORD,
        help="Login password (default: OCCUPANCY_PASSWORD)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print one analytics snapshot and exit",
    )
    parser.add_argument(
        "--entries",
        type=int,
        nargs="?",
        const=1,
        metavar="PAGE",
        help="Print one page of entry/exit records and exit",
    )
    parser.add_argument(
        "--site",
        type=str,
        help="Site ID to monitor (default: stored selection, else first site)",
    )
    parser.add_argument(
        "--filter",
        choices=[f.value for f in DateFilter],
        default=Config.DATE_FILTER,
        help="Date filter for analytics",
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Clear the stored session and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    service_config = ServiceConfig.from_env()
    service_config.date_filter = DateFilter.from_string(args.filter)

    try:
        service = LiveDashboardService(service_config)
    except Exception as e:
        logger.error(f"Failed to initialize service: {e}")
        return 1

    if args.logout:
        service.auth.logout()
        print("Logged out.")
        return 0

    if not ensure_login(service, args.email, args.password):
        return 1

    # The directory prefers the stored site on load
    if args.site:
        service.state.set_site_id(args.site)

    try:
        if args.entries is not None:
            return asyncio.run(run_entries(service, args.entries, Config.PAGE_SIZE))
        if args.once:
            return asyncio.run(run_once(service))

        logger.info("Starting live monitoring mode...")
        return asyncio.run(run_live(service))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
