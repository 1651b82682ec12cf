"""CLI job that resolves business locations and stores them on each business."""

import argparse
import logging
from typing import Optional

from business_locator.core.config import get_settings
from business_locator.core.db import fetch_business, fetch_businesses, init_pool, save_location_record
from business_locator.etl.enhancer import LocationEnhancer
from business_locator.models import BatchSummary, Business, LocationRecord
from business_locator.vendors.nominatim import get_geocoding_client

logger = logging.getLogger(__name__)


def _save(business: Business, record: LocationRecord) -> None:
    save_location_record(business.id, record)
    logger.info("Enhanced location for: %s", business.name)


def build_enhancer(delay: Optional[float] = None) -> LocationEnhancer:
    settings = get_settings()
    return LocationEnhancer(
        get_geocoding_client(),
        item_delay=settings.enhance_item_delay if delay is None else delay,
    )


def enhance_single_business(business_id: str) -> Optional[LocationRecord]:
    """Resolve and store one business; ``None`` when it cannot be resolved."""
    init_pool()
    business = fetch_business(business_id)
    if business is None:
        raise LookupError(f"Business not found: {business_id}")

    record = build_enhancer().enhance(business)
    if record is not None:
        _save(business, record)
    return record


def run_enhance_job(*, delay: Optional[float] = None) -> BatchSummary:
    init_pool()
    businesses = fetch_businesses(active_only=False)
    logger.info("Found %d businesses to enhance", len(businesses))

    summary = build_enhancer(delay).enhance_all(businesses, save=_save)
    logger.info(
        "Completed run: success=%d failed=%d skipped=%d total=%d",
        summary.success,
        summary.failed,
        summary.skipped,
        summary.total,
    )
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve business locations into coordinates")
    parser.add_argument("--business-id", dest="business_id", help="Only enhance this business")
    parser.add_argument(
        "--delay",
        dest="delay",
        type=float,
        default=get_settings().enhance_item_delay,
        help="Seconds to wait between businesses",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    if args.business_id:
        try:
            record = enhance_single_business(args.business_id)
        except LookupError as exc:
            logger.error("%s", exc)
            raise SystemExit(2) from exc
        if record is None:
            logger.warning("No location data for business %s", args.business_id)
            raise SystemExit(1)
        logger.info("Enhancement result: %s", record.to_metadata())
        return

    summary = run_enhance_job(delay=args.delay)
    if summary.failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
