"""Resolve businesses to a LocationRecord and run that over the whole catalogue.

Resolution order, first success wins:
    1. deep link   -> geocoded point, 5 km radius, geocoder confidence
    2. first listed service area -> gazetteer center/radius, medium confidence
    3. nothing     -> None (business stays off the map)
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Optional, Sequence

from business_locator.etl.gazetteer import DEFAULT_GAZETTEER, ServiceAreaGazetteer
from business_locator.models import BatchSummary, Business, ItemOutcome, LocationRecord
from business_locator.vendors.nominatim import GeocodingClient

logger = logging.getLogger(__name__)

SPECIFIC_SEARCH_RADIUS_KM = 5.0
BATCH_ITEM_DELAY_SECONDS = 1.2

SaveFn = Callable[[Business, LocationRecord], None]


class LocationEnhancer:
    def __init__(
        self,
        client: GeocodingClient,
        gazetteer: ServiceAreaGazetteer = DEFAULT_GAZETTEER,
        item_delay: float = BATCH_ITEM_DELAY_SECONDS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.client = client
        self.gazetteer = gazetteer
        self.item_delay = item_delay
        self._clock = clock

    def enhance(self, business: Business) -> Optional[LocationRecord]:
        """Build a fresh LocationRecord for one business, or ``None`` if unresolvable."""
        logger.info("Enhancing location for business: %s", business.name)

        if business.has_physical_location():
            result = self.client.geocode_reference(business.deep_link)
            if result is not None:
                return LocationRecord(
                    location_type="specific",
                    coordinates=result.coordinates,
                    search_radius_km=SPECIFIC_SEARCH_RADIUS_KM,
                    confidence=result.confidence,
                    last_updated_at=self._clock(),
                )
            logger.warning("Failed to geocode deep link for business: %s", business.name)

        if business.is_service_provider():
            # Only the first listed area is used; the rest are not consulted.
            primary = business.service_areas[0]
            entry = self.gazetteer.lookup(primary)
            if entry is not None:
                return LocationRecord(
                    location_type="service_areas",
                    coordinates=entry.center,
                    search_radius_km=entry.radius_km,
                    confidence="medium",
                    last_updated_at=self._clock(),
                )
            logger.warning("Unknown service area: %s for business: %s", primary, business.name)

        logger.warning("No location data available for business: %s", business.name)
        return None

    def iter_enhance(self, businesses: Sequence[Business], save: Optional[SaveFn] = None) -> Iterator[ItemOutcome]:
        """Yield one outcome per business, pausing between items.

        Stopping iteration early is safe: every yielded success has already
        been saved.
        """
        total = len(businesses)
        for index, business in enumerate(businesses):
            logger.info("Processing %d/%d: %s", index + 1, total, business.name)
            try:
                record = self.enhance(business)
                if record is None:
                    outcome = ItemOutcome(business_id=business.id, status="skipped")
                else:
                    if save is not None:
                        save(business, record)
                    outcome = ItemOutcome(business_id=business.id, status="success", record=record)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Error processing %s: %s", business.name, exc)
                outcome = ItemOutcome(business_id=business.id, status="failed", error=str(exc))

            yield outcome

            if index < total - 1:
                time.sleep(self.item_delay)

    def enhance_all(
        self,
        businesses: Iterable[Business],
        save: Optional[SaveFn] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> BatchSummary:
        """Run the whole batch; one bad business never stops the rest."""
        items = list(businesses)
        logger.info("Starting batch location enhancement for %d businesses", len(items))

        summary = BatchSummary()
        outcomes = self.iter_enhance(items, save=save)
        for outcome in outcomes:
            summary.record(outcome)
            if should_stop is not None and should_stop() and summary.total < len(items):
                logger.info("Batch stop requested after %d/%d businesses", summary.total, len(items))
                outcomes.close()
                break

        logger.info(
            "Batch enhancement completed: success=%d failed=%d skipped=%d",
            summary.success,
            summary.failed,
            summary.skipped,
        )
        return summary
