"""Static catalog of Kakamega waste-handling sites.

The catalog is configuration data: it is built once by load_site_catalog()
and passed to the map view, marker controller and collection form.
"""
import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Iterator, List, Optional, Tuple

from ..models.collection import MapMarker, SiteCategory, SiteLocation

# (name, lat, lon, category, description, status, challenges, image)
SITE_DEFINITIONS: Tuple[tuple, ...] = (
    (
        "Rosterman Dumpsite", 0.25509, 34.72066, SiteCategory.INFORMAL,
        "Main dumping site in Rosterman. Over 95% of waste arriving is mixed. County government "
        "collaborates with local community groups to manage the site.",
        "Active", "Mixed waste, lack of segregation at source", "images/disposal worker.jpg",
    ),
    (
        "Regen Organics Fertilizer Processing Plant", 0.33474, 34.48796, SiteCategory.PROCESSING,
        "Located in Mumias, processes organic waste into fertilizer. Accepts only organic waste "
        "for composting.",
        "Operational", "Small amounts of plastic often mixed in, requiring segregation", None,
    ),
    (
        "Khayenga Refuse Chamber", 0.20819, 34.77152, SiteCategory.FORMAL,
        "Located near Khayenga Market. Managed by Khayenga Self Help Group. Compartments for "
        "biodegradable and non-biodegradable waste are clearly marked.",
        "Active", "Local community unaware of need to separate waste", "images/khayega refuse.jpg",
    ),
    (
        "Lurambi Refuse Chamber", 0.2998, 34.76485, SiteCategory.FORMAL,
        "Located in Lurambi Market. Operated by well-organized youth and community groups. "
        "Compartments for biodegradable and non-biodegradable waste.",
        "Active", "Waste often mixed despite compartmentalization", "images/lurambi waste.jpg",
    ),
    (
        "Sichirayi Refuse Chamber", 0.315, 34.745, SiteCategory.FORMAL,
        "Formal waste collection point in Sichirayi area. Part of the municipal waste management "
        "system.",
        "Active", "Requires better community awareness for waste segregation", None,
    ),
    (
        "Masingo Refuse Chamber", 0.285, 34.7505, SiteCategory.FORMAL,
        "Located close to fresh food market. Majority of waste is organic. Informal dumping site "
        "exists nearby.",
        "Active", "Informal dumping site just 10 meters away", "images/bird image.jpg",
    ),
    (
        "Amelemba Scheme Refuse Chamber", 0.295, 34.755, SiteCategory.FORMAL,
        "Formal waste collection point in Amelemba Scheme area.",
        "Active", "Community engagement needed for proper waste segregation", None,
    ),
    (
        "Mevic Waste Management", 0.283, 34.753, SiteCategory.PLASTIC,
        "Plastic waste collection yard managed by Mevic Waste Management. Specializes in plastic, "
        "metal, and paper/carton collection.",
        "Operational", "Vested interests in plastic/metal discourage organic waste focus", None,
    ),
    (
        "Kambi Somali Refuse Chamber", 0.286, 34.752, SiteCategory.FORMAL,
        "Refuse chamber in Kambi Somali area. Built within market walls with narrow passages.",
        "Active", "Narrow passages limit proper waste collection and segregation", None,
    ),
    (
        "Shirere Waste Collection", 0.265, 34.735, SiteCategory.FORMAL,
        "Waste collection point in Shirere Ward.",
        "Active", "Community awareness needed", None,
    ),
)


def site_id(name: str) -> str:
    """Stable slug id for a site name ("Rosterman Dumpsite" -> "rosterman-dumpsite")."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class SiteCatalog(Mapping):
    """Read-only, ordered mapping of site id -> SiteLocation."""

    def __init__(self, sites):
        entries = {}
        for site in sites:
            if site.id in entries:
                raise ValueError(f"Duplicate site id: {site.id}")
            entries[site.id] = site
        if not entries:
            raise ValueError("Site catalog must not be empty")
        self._sites = MappingProxyType(entries)

    def __getitem__(self, key: str) -> SiteLocation:
        return self._sites[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sites)

    def __len__(self) -> int:
        return len(self._sites)

    def first(self) -> SiteLocation:
        return next(iter(self._sites.values()))

    def by_name(self, name: str) -> Optional[SiteLocation]:
        site = self._sites.get(site_id(name)) if name else None
        return site if site is not None and site.name == name else None

    def names(self) -> List[str]:
        return [site.name for site in self._sites.values()]

    def markers(self) -> List[MapMarker]:
        return [site.to_marker() for site in self._sites.values()]


def load_site_catalog(definitions=SITE_DEFINITIONS) -> SiteCatalog:
    sites = [
        SiteLocation(
            id=site_id(name),
            name=name,
            latitude=lat,
            longitude=lon,
            category=category,
            description=description,
            status=status,
            challenges=challenges,
            image=image,
        )
        for name, lat, lon, category, description, status, challenges, image in definitions
    ]
    return SiteCatalog(sites)
