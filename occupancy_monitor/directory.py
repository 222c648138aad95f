"""
Site and zone reference directory.

Live events name zones by id, by display name, or by something in between.
The directory holds the zone-id -> zone-name lookup built from the most
recent site list. Each load builds a fresh ZoneDirectory and swaps it in with
a single assignment, so readers never see a half-built map and ids from an
earlier load are gone after a rebuild.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from .client_state import ClientStateStore
from .models import Site

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneDirectory:
    """Immutable zone lookup for one site-list load."""

    zones: dict[str, str] = field(default_factory=dict)
    sites: tuple[Site, ...] = ()

    @classmethod
    def build(cls, sites: Iterable[Site]) -> "ZoneDirectory":
        """Build the lookup from every valid zone of every site."""
        sites = tuple(sites)
        zones: dict[str, str] = {}

        for site in sites:
            if not site.zones:
                logger.warning(f"Site has no zones: {site.site_id} ({site.name})")
                continue
            for zone in site.zones:
                if zone.zone_id and zone.name:
                    zones[zone.zone_id] = zone.name
                else:
                    logger.warning(
                        f"Skipping invalid zone in site {site.site_id}: "
                        f"id={zone.zone_id!r} name={zone.name!r}"
                    )

        if zones:
            logger.info(f"Zone map initialized with {len(zones)} zones from {len(sites)} sites")
        else:
            logger.error(
                "Zone map is empty; live alerts will not resolve zone names. "
                "Check that the sites response includes zones with zoneId and name."
            )

        return cls(zones=zones, sites=sites)

    def __len__(self) -> int:
        return len(self.zones)

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self.zones

    def resolve(self, identifier: str) -> Optional[str]:
        """Exact zone-id lookup."""
        return self.zones.get(identifier)

    def resolve_by_name(self, candidate: str) -> Optional[str]:
        """Case-insensitive match against zone names, returning canonical case."""
        wanted = candidate.lower()
        for name in self.zones.values():
            if name.lower() == wanted:
                return name
        return None

    def resolve_partial(self, candidate: str) -> Optional[str]:
        """First zone whose id or name contains the candidate (case-insensitive)."""
        wanted = candidate.lower()
        if not wanted:
            return None
        for zone_id, name in self.zones.items():
            if wanted in zone_id.lower() or wanted in name.lower():
                return name
        return None

    def find_site(self, value: str) -> Optional[Site]:
        """Find a site by id or by name."""
        for site in self.sites:
            if site.site_id == value or site.name == value:
                return site
        return None


class ReferenceDirectory:
    """
    Owns the current ZoneDirectory and the selected site.

    The selected site id is persisted so it survives a restart. On load the
    persisted id wins if it is still in the site list, otherwise the first
    site is selected.
    """

    def __init__(self, state: ClientStateStore):
        self.state = state
        self._directory = ZoneDirectory()
        self._selected: Optional[Site] = None

    @property
    def directory(self) -> ZoneDirectory:
        """The current zone lookup snapshot."""
        return self._directory

    @property
    def selected_site(self) -> Optional[Site]:
        return self._selected

    def load(self, site_list: Iterable[Union[dict, Site]]) -> ZoneDirectory:
        """Replace the zone lookup with one built from a new site list."""
        sites = []
        for entry in site_list:
            if isinstance(entry, Site):
                sites.append(entry)
            elif isinstance(entry, dict):
                sites.append(Site.from_dict(entry))
            else:
                logger.warning(f"Ignoring malformed site entry: {entry!r}")

        self._directory = ZoneDirectory.build(sites)

        if not sites:
            logger.error("No sites available")
            self._selected = None
            return self._directory

        stored_site_id = self.state.get_site_id()
        site = None
        if stored_site_id:
            site = next((s for s in sites if s.site_id == stored_site_id), None)
        if site is None:
            site = sites[0]

        self._select(site)
        return self._directory

    def _select(self, site: Site) -> None:
        self._selected = site
        self.state.set_site_id(site.site_id)
        logger.info(f"Selected site {site.site_id} ({site.name})")

    def list_sites(self) -> list[Site]:
        return list(self._directory.sites)

    def set_selected_site(self, site_id: str) -> Site:
        """Select and persist a site from the current list.

        Raises:
            ValueError: If the site id is not in the current site list
        """
        site = next((s for s in self._directory.sites if s.site_id == site_id), None)
        if site is None:
            raise ValueError(f"Unknown site id: {site_id}")
        self._select(site)
        return site

    def resolve(self, identifier: str) -> Optional[str]:
        return self._directory.resolve(identifier)

    def resolve_by_name(self, candidate: str) -> Optional[str]:
        return self._directory.resolve_by_name(candidate)
