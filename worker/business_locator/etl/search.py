"""Proximity search over resolved businesses, with text/category/tag filters."""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from business_locator.etl.distance import distance_km
from business_locator.etl.gazetteer import ServiceAreaGazetteer
from business_locator.models import Business, BusinessWithDistance, Coordinates
from business_locator.vendors.nominatim import GeocodingClient

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 25.0
SORT_KEYS = ("distance", "name", "newest")


@dataclass
class SearchCenter:
    coordinates: Coordinates
    label: str
    radius_km: float


@dataclass
class SearchFilters:
    text_query: str = ""
    center: Optional[Coordinates] = None
    radius_km: float = DEFAULT_RADIUS_KM
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    sort_by: str = "name"

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_KEYS:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_KEYS)}")
        if self.radius_km < 0:
            raise ValueError("radius_km must not be negative")


def _name_key(name: str) -> str:
    return unicodedata.normalize("NFKD", name or "").casefold()


def find_nearby(
    businesses: Iterable[Business],
    center: Coordinates,
    max_distance_km: float = DEFAULT_RADIUS_KM,
) -> List[BusinessWithDistance]:
    """Resolved businesses within ``max_distance_km`` (inclusive), closest first."""
    nearby: List[BusinessWithDistance] = []
    for business in businesses:
        record = business.location
        if record is None or record.coordinates is None:
            continue
        distance = distance_km(center, record.coordinates)
        if distance <= max_distance_km:
            nearby.append(BusinessWithDistance(business=business, distance_km=distance))

    nearby.sort(key=lambda item: (item.distance_km, _name_key(item.business.name)))
    return nearby


def _matches_text(business: Business, query: str) -> bool:
    needle = query.strip().casefold()
    if not needle:
        return True
    haystack = [business.name, business.description, business.category or "", *business.tags]
    return any(needle in (value or "").casefold() for value in haystack)


def _matches_category(business: Business, categories: Sequence[str]) -> bool:
    return not categories or business.category in categories


def _matches_tags(business: Business, tags: Sequence[str]) -> bool:
    return not tags or any(tag in business.tags for tag in tags)


def search_businesses(businesses: Iterable[Business], filters: SearchFilters) -> List[BusinessWithDistance]:
    """Apply every active filter (AND) and sort.

    Without a center every result carries ``distance_km = None`` and a
    ``distance`` sort falls back to name order.
    """
    candidates = [
        business
        for business in businesses
        if business.is_active
        and _matches_text(business, filters.text_query)
        and _matches_category(business, filters.categories)
        and _matches_tags(business, filters.tags)
    ]

    if filters.center is not None:
        results = find_nearby(candidates, filters.center, filters.radius_km)
    else:
        results = [BusinessWithDistance(business=business, distance_km=None) for business in candidates]

    if filters.sort_by == "distance" and filters.center is not None:
        return results
    if filters.sort_by == "newest":
        results.sort(key=lambda item: _name_key(item.business.name))
        results.sort(key=lambda item: item.business.created_at, reverse=True)
        return results

    results.sort(key=lambda item: _name_key(item.business.name))
    return results


def resolve_search_center(
    query: str,
    gazetteer: ServiceAreaGazetteer,
    client: Optional[GeocodingClient] = None,
    radius_km: float = DEFAULT_RADIUS_KM,
) -> Optional[SearchCenter]:
    """Turn a typed location into a search center: service area first, then the geocoder."""
    query = (query or "").strip()
    if not query:
        return None

    area = gazetteer.search(query)
    if area is not None:
        return SearchCenter(coordinates=area.center, label=area.name, radius_km=area.radius_km)

    if client is None:
        return None

    result = client.geocode_address(query)
    if result is None:
        logger.info("Could not resolve search location: %s", query)
        return None
    return SearchCenter(coordinates=result.coordinates, label=result.address, radius_km=radius_km)
