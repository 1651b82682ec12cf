"""Marker interaction state for the business map.

Pointer devices get a hover preview and click-to-navigate. Touch devices get
a two-tap scheme: the first tap opens an in-place overlay, a second tap on the
same marker navigates. At most one marker is open at a time.

    Closed --hover(id)--> Hovering(id) --leave+grace--> Closed
    Closed --tap(id)--> Open(id) --tap(id)--> navigate, Closed
                        Open(a)  --tap(b)--> Open(b)
                        Open(a)  --tap background--> Closed
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from business_locator.etl.deep_link import location_display_text
from business_locator.etl.distance import format_distance
from business_locator.models import Business, BusinessWithDistance, Coordinates

HOVER_GRACE_SECONDS = 0.3

DEFAULT_CENTER = Coordinates(32.0853, 34.7818)
DEFAULT_ZOOM = 8
FOCUSED_ZOOM = 12
OVERVIEW_ZOOM = 10


class DeviceKind(str, Enum):
    POINTER = "pointer"
    TOUCH = "touch"


class MarkerState(str, Enum):
    CLOSED = "closed"
    HOVERING = "hovering"
    OPEN = "open"


class ActionKind(str, Enum):
    NAVIGATE = "navigate"
    OPEN_NAVIGATION_LINK = "open_navigation_link"


@dataclass(frozen=True)
class MapAction:
    kind: ActionKind
    business_id: str
    url: Optional[str] = None


def detail_url(business_id: str) -> str:
    return f"/businesses/{business_id}"


class MapInteractionController:
    """One per mounted map. Events must arrive on a single thread."""

    def __init__(self, device: DeviceKind, clock: Callable[[], float] = time.monotonic) -> None:
        self.device = device
        self._clock = clock
        self.state = MarkerState.CLOSED
        self.active_id: Optional[str] = None
        self.screen_position: Optional[Tuple[float, float]] = None
        self._hide_deadline: Optional[float] = None
        self._mounted = True

    @property
    def open_marker_id(self) -> Optional[str]:
        return self.active_id if self.state is MarkerState.OPEN else None

    @property
    def hovered_id(self) -> Optional[str]:
        return self.active_id if self.state is MarkerState.HOVERING else None

    def _ensure_mounted(self) -> None:
        if not self._mounted:
            raise RuntimeError("map has been unmounted")

    def _reset(self) -> None:
        self.state = MarkerState.CLOSED
        self.active_id = None
        self.screen_position = None
        self._hide_deadline = None

    # pointer devices

    def pointer_enter(self, marker_id: str, position: Tuple[float, float]) -> None:
        self._ensure_mounted()
        if self.device is not DeviceKind.POINTER:
            return
        self.state = MarkerState.HOVERING
        self.active_id = marker_id
        self.screen_position = position
        self._hide_deadline = None

    def pointer_leave(self, marker_id: str) -> None:
        self._ensure_mounted()
        if self.device is not DeviceKind.POINTER or self.hovered_id != marker_id:
            return
        self._hide_deadline = self._clock() + HOVER_GRACE_SECONDS

    def expire(self) -> None:
        """Hide a hover preview whose grace delay has run out."""
        self._ensure_mounted()
        if self._hide_deadline is not None and self._clock() >= self._hide_deadline:
            self._reset()

    def click(self, marker_id: str) -> Optional[MapAction]:
        self._ensure_mounted()
        if self.device is not DeviceKind.POINTER:
            return None
        self._reset()
        return MapAction(ActionKind.NAVIGATE, marker_id, detail_url(marker_id))

    # touch devices

    def tap(self, marker_id: str) -> Optional[MapAction]:
        self._ensure_mounted()
        if self.device is not DeviceKind.TOUCH:
            return None
        if self.open_marker_id == marker_id:
            self._reset()
            return MapAction(ActionKind.NAVIGATE, marker_id, detail_url(marker_id))
        self.state = MarkerState.OPEN
        self.active_id = marker_id
        return None

    def tap_background(self) -> None:
        self._ensure_mounted()
        self._reset()

    # overlay buttons skip the tap gating

    def overlay_action(self, marker_id: str, kind: ActionKind, deep_link: Optional[str] = None) -> MapAction:
        self._ensure_mounted()
        if kind is ActionKind.OPEN_NAVIGATION_LINK:
            if not deep_link:
                raise ValueError("open_navigation_link needs a deep link")
            return MapAction(kind, marker_id, deep_link)
        self._reset()
        return MapAction(ActionKind.NAVIGATE, marker_id, detail_url(marker_id))

    def unmount(self) -> None:
        self._reset()
        self._mounted = False


@dataclass(frozen=True)
class MapView:
    center: Coordinates
    zoom: int


def build_markers(items: Iterable[BusinessWithDistance]) -> List[Dict[str, object]]:
    """Marker payloads for businesses that have coordinates; the rest are left off."""
    markers: List[Dict[str, object]] = []
    for item in items:
        business: Business = item.business
        record = business.location
        if record is None or record.coordinates is None:
            continue
        markers.append({
            "id": business.id,
            "name": business.name,
            "category": business.category,
            "position": record.coordinates.to_dict(),
            "radiusKm": record.search_radius_km,
            "locationType": record.location_type,
            "locationText": location_display_text(business.deep_link, business.service_areas),
            "distance": format_distance(item.distance_km) if item.distance_km is not None else None,
            "detailUrl": detail_url(business.id),
            "navigationUrl": business.deep_link,
        })
    return markers


def compute_map_view(
    markers: List[Dict[str, object]],
    center: Optional[Coordinates] = None,
    user_location: Optional[Coordinates] = None,
) -> MapView:
    if center is not None:
        return MapView(center, FOCUSED_ZOOM)
    if user_location is not None:
        return MapView(user_location, FOCUSED_ZOOM)
    if len(markers) == 1:
        position = markers[0]["position"]
        return MapView(Coordinates(position["lat"], position["lng"]), FOCUSED_ZOOM)
    if markers:
        lat = sum(marker["position"]["lat"] for marker in markers) / len(markers)
        lng = sum(marker["position"]["lng"] for marker in markers) / len(markers)
        return MapView(Coordinates(lat, lng), OVERVIEW_ZOOM)
    return MapView(DEFAULT_CENTER, DEFAULT_ZOOM)
