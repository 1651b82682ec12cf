"""Client utilities for the Nominatim (OpenStreetMap) geocoding API.

The public instance's usage policy allows at most one request per second per
client, so every request goes through a shared ``MinIntervalThrottle``. Calls
are strictly sequential; never fan these out to a thread pool.
"""

import logging
import random
import time
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

import requests

from business_locator.core.config import Settings, get_settings
from business_locator.core.rate_limit import MinIntervalThrottle
from business_locator.etl.deep_link import format_coordinates, parse_deep_link
from business_locator.models import Coordinates, GeocodingResult

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 1.2

HIGH_IMPORTANCE = 0.6
MEDIUM_IMPORTANCE = 0.4
_HIGH_TYPES = {"house"}
_MEDIUM_TYPES = {"residential", "primary"}


class GeocodingError(RuntimeError):
    """Raised when the geocoder returns a non-successful or unreadable response."""


def classify_confidence(result: Dict[str, Any]) -> str:
    """Map a Nominatim hit to high / medium / low from its importance and type."""
    try:
        importance = float(result.get("importance") or 0)
    except (TypeError, ValueError):
        importance = 0.0
    place_type = result.get("type") or ""

    if place_type in _HIGH_TYPES or importance > HIGH_IMPORTANCE:
        return "high"
    if place_type in _MEDIUM_TYPES or importance > MEDIUM_IMPORTANCE:
        return "medium"
    return "low"


class GeocodingClient:
    def __init__(
        self,
        settings: Settings,
        throttle: Optional[MinIntervalThrottle] = None,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.settings = settings
        self.throttle = throttle or MinIntervalThrottle(settings.geocoder_min_interval)
        self.session = session or requests.Session()
        self._sleep = sleep or time.sleep

    def _build_params(self, address: str) -> Dict[str, Any]:
        query = address.strip()
        country = self.settings.geocoder_country_name
        if country:
            query = f"{query}, {country}"
        return {
            "q": query,
            "format": "json",
            "limit": 1,
            "countrycodes": self.settings.geocoder_country_code,
            "accept-language": self.settings.geocoder_language,
        }

    def _search(self, address: str) -> List[Dict[str, Any]]:
        # One request in flight at a time, across every thread sharing the throttle.
        with self.throttle.slot():
            response = self.session.get(
                self.settings.geocoder_base_url,
                params=self._build_params(address),
                headers={"User-Agent": self.settings.geocoder_user_agent},
                timeout=self.settings.geocoder_timeout,
            )
        if not (200 <= response.status_code < 300):
            raise GeocodingError(f"Geocoding failed: HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise GeocodingError("Geocoder returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise GeocodingError(f"Unexpected geocoder payload: {str(payload)[:200]}")
        return payload

    def _search_with_retry(self, address: str) -> List[Dict[str, Any]]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._search(address)
            except (requests.RequestException, GeocodingError) as exc:
                if attempt > self.settings.geocoder_max_retries:
                    raise
                logger.warning(
                    "Geocoder request failed (attempt %s/%s): %s",
                    attempt,
                    self.settings.geocoder_max_retries + 1,
                    exc,
                )
                self._sleep(RETRY_DELAY_SECONDS + random.uniform(0, 0.8))

    def geocode_address(self, address: str) -> Optional[GeocodingResult]:
        """Geocode free text. Any failure or empty result gives ``None``."""
        if not address or not address.strip():
            return None

        try:
            results = self._search_with_retry(address)
        except (requests.RequestException, GeocodingError) as exc:
            logger.warning("Geocoding error for '%s': %s", address, exc)
            return None

        if not results:
            logger.warning("No geocoding results for address: %s", address)
            return None

        hit = results[0]
        try:
            coordinates = Coordinates(float(hit["lat"]), float(hit["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Unreadable geocoding hit for '%s': %s", address, exc)
            return None

        return GeocodingResult(
            coordinates=coordinates,
            address=hit.get("display_name") or address,
            confidence=classify_confidence(hit),
        )

    def geocode_reference(self, deep_link: str) -> Optional[GeocodingResult]:
        """Resolve a deep link, skipping the network when it already carries coordinates."""
        parsed = parse_deep_link(deep_link)
        if parsed is None:
            logger.debug("Not a recognised deep link: %s", deep_link)
            return None

        coordinates = parsed.coordinates
        if coordinates is not None:
            return GeocodingResult(
                coordinates=coordinates,
                address=parsed.address or format_coordinates(coordinates.lat, coordinates.lng),
                confidence="high",
            )

        if not parsed.address:
            logger.warning("No address found in deep link: %s", deep_link)
            return None

        result = self.geocode_address(parsed.address)
        if result is not None:
            result.address = parsed.address
        return result


@lru_cache(maxsize=1)
def get_geocoding_client() -> GeocodingClient:
    """Process-wide client so every caller shares one throttle."""
    return GeocodingClient(get_settings())
