"""Static directory of the service areas a business can choose from.

Tier 1 are cities (small radius), tier 2 sub-national regions, tier 3
nationwide catch-alls. Lookups are exact and case-sensitive.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from business_locator.models import Coordinates, ServiceAreaEntry

# name, lat, lng, radius_km, tier
_ISRAELI_SERVICE_AREAS: Tuple[Tuple[str, float, float, float, int], ...] = (
    ("תל אביב", 32.0853, 34.7818, 8, 1),
    ("ירושלים", 31.7683, 35.2137, 12, 1),
    ("חיפה", 32.7940, 34.9896, 10, 1),
    ("באר שבע", 31.2518, 34.7915, 12, 1),
    ("נתניה", 32.3215, 34.8532, 7, 1),
    ("פתח תקווה", 32.0917, 34.8878, 6, 1),
    ("רמת גן", 32.0804, 34.8144, 5, 1),
    ("רעננה", 32.1847, 34.8708, 4, 1),
    ("כפר סבא", 32.1742, 34.9063, 4, 1),
    ("הוד השרון", 32.1614, 34.8889, 3, 1),
    ("רחובות", 31.8947, 34.8096, 5, 1),
    ("בת ים", 32.0178, 34.7542, 4, 1),
    ("אשדוד", 31.7940, 34.6446, 7, 1),
    ("אשקלון", 31.6688, 34.5742, 6, 1),
    ("גוש דן", 32.0853, 34.7818, 25, 2),
    ("השרון", 32.2500, 34.9000, 30, 2),
    ("הגליל", 32.9000, 35.3000, 40, 2),
    ("הנגב", 31.0000, 34.8000, 60, 2),
    ("השפלה", 31.8500, 34.8500, 25, 2),
    ("עמק יזרעאל", 32.6000, 35.3000, 20, 2),
    ("אזור ירושלים", 31.7683, 35.2137, 20, 2),
    ("כל הארץ", 31.5, 35.0, 200, 3),
    ("אזור המרכז", 32.0, 34.8, 35, 3),
    ("אזור הצפון", 32.8, 35.2, 50, 3),
    ("אזור הדרום", 31.2, 34.8, 80, 3),
)


class ServiceAreaGazetteer:
    """Read-only name -> area table."""

    def __init__(self, entries: Iterable[ServiceAreaEntry]) -> None:
        self._entries: Dict[str, ServiceAreaEntry] = {}
        for entry in entries:
            if entry.tier not in (1, 2, 3):
                raise ValueError(f"Invalid tier {entry.tier} for service area {entry.name}")
            if entry.name in self._entries:
                raise ValueError(f"Duplicate service area: {entry.name}")
            self._entries[entry.name] = entry

    def lookup(self, name: str) -> Optional[ServiceAreaEntry]:
        return self._entries.get(name)

    def list_areas(self) -> List[ServiceAreaEntry]:
        """All entries, cities first, then regions, then catch-alls."""
        return sorted(self._entries.values(), key=lambda entry: entry.tier)

    def search(self, query: str) -> Optional[ServiceAreaEntry]:
        """Loose match used for free-text search boxes, not for enhancement."""
        query = (query or "").strip()
        if not query:
            return None
        exact = self.lookup(query)
        if exact is not None:
            return exact
        for entry in self.list_areas():
            if query in entry.name:
                return entry
        return None


def _build_default() -> ServiceAreaGazetteer:
    return ServiceAreaGazetteer(
        ServiceAreaEntry(name=name, center=Coordinates(lat, lng), radius_km=float(radius), tier=tier)
        for name, lat, lng, radius, tier in _ISRAELI_SERVICE_AREAS
    )


DEFAULT_GAZETTEER = _build_default()
