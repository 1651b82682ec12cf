"""Core data models shared by the location resolution pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

LOCATION_TYPES = ("specific", "service_areas")
CONFIDENCE_LEVELS = ("high", "medium", "low")


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90 <= self.lat <= 90:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180 <= self.lng <= 180:
            raise ValueError(f"Longitude out of range: {self.lng}")

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(slots=True)
class ParsedReference:
    """What could be recovered from a single deep link."""

    address: Optional[str] = None
    place: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.lat is None or self.lng is None:
            return None
        return Coordinates(self.lat, self.lng)


@dataclass(frozen=True, slots=True)
class ServiceAreaEntry:
    name: str
    center: Coordinates
    radius_km: float
    tier: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tier": self.tier,
            "center": self.center.to_dict(),
            "radiusKm": self.radius_km,
        }


@dataclass(slots=True)
class GeocodingResult:
    coordinates: Coordinates
    address: str
    confidence: str


@dataclass(slots=True)
class LocationRecord:
    """Resolved location attached to a business under ``metadata["location"]``."""

    location_type: str
    coordinates: Optional[Coordinates] = None
    search_radius_km: Optional[float] = None
    confidence: Optional[str] = None
    last_updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def same_location(self, other: "LocationRecord") -> bool:
        """Compare everything except the timestamp."""
        return (
            self.location_type == other.location_type
            and self.coordinates == other.coordinates
            and self.search_radius_km == other.search_radius_km
            and self.confidence == other.confidence
        )

    def to_metadata(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "locationType": self.location_type,
            "lastUpdated": self.last_updated_at.isoformat(),
        }
        if self.coordinates is not None:
            payload["coordinates"] = self.coordinates.to_dict()
        if self.search_radius_km is not None:
            payload["searchRadius"] = self.search_radius_km
        if self.confidence is not None:
            payload["locationConfidence"] = self.confidence
        return payload

    @classmethod
    def from_metadata(cls, payload: Optional[Dict[str, Any]]) -> Optional["LocationRecord"]:
        if not payload or payload.get("locationType") not in LOCATION_TYPES:
            return None

        coordinates = None
        raw_coords = payload.get("coordinates") or {}
        try:
            if raw_coords.get("lat") is not None and raw_coords.get("lng") is not None:
                coordinates = Coordinates(float(raw_coords["lat"]), float(raw_coords["lng"]))
        except (TypeError, ValueError):
            coordinates = None

        last_updated = payload.get("lastUpdated")
        try:
            last_updated_at = datetime.fromisoformat(last_updated) if last_updated else datetime.now(timezone.utc)
        except ValueError:
            last_updated_at = datetime.now(timezone.utc)

        radius = payload.get("searchRadius")
        return cls(
            location_type=payload["locationType"],
            coordinates=coordinates,
            search_radius_km=float(radius) if radius is not None else None,
            confidence=payload.get("locationConfidence"),
            last_updated_at=last_updated_at,
        )


@dataclass(slots=True)
class Business:
    """Community business listing as stored by the platform."""

    id: str
    name: str
    description: str = ""
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    deep_link: Optional[str] = None
    service_areas: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> Optional[LocationRecord]:
        return LocationRecord.from_metadata(self.metadata.get("location"))

    def has_physical_location(self) -> bool:
        return bool(self.deep_link)

    def is_service_provider(self) -> bool:
        return bool(self.service_areas)


@dataclass(slots=True)
class BusinessWithDistance:
    business: Business
    distance_km: Optional[float]


@dataclass(slots=True)
class ItemOutcome:
    business_id: str
    status: str  # success / failed / skipped
    record: Optional[LocationRecord] = None
    error: Optional[str] = None


@dataclass(slots=True)
class BatchSummary:
    success: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.success + self.failed + self.skipped

    def record(self, outcome: ItemOutcome) -> None:
        if outcome.status == "success":
            self.success += 1
        elif outcome.status == "failed":
            self.failed += 1
        else:
            self.skipped += 1

    def to_dict(self) -> Dict[str, int]:
        return {"success": self.success, "failed": self.failed, "skipped": self.skipped, "total": self.total}
