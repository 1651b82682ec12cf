"""Utilities for transforming business rows into models and API payloads."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from business_locator.etl.deep_link import location_display_text
from business_locator.etl.distance import format_distance
from business_locator.models import Business, BusinessWithDistance

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item]


def _as_utc(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            logger.debug("Unparseable created_at %s", value)
            value = None
    if not isinstance(value, datetime):
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _as_metadata(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = json.loads(value)
        except ValueError:
            logger.warning("Ignoring malformed metadata payload")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def to_business(row: Dict[str, Any]) -> Business:
    metadata = _as_metadata(row.get("metadata"))
    return Business(
        id=str(row.get("id")),
        name=row.get("name") or "",
        description=row.get("description") or "",
        category=row.get("category") or metadata.get("category"),
        tags=_as_list(row.get("tags") or row.get("service_tags")),
        deep_link=row.get("waze_url") or None,
        service_areas=_as_list(row.get("service_areas")),
        created_at=_as_utc(row.get("created_at")),
        is_active=bool(row.get("is_active", True)),
        metadata=metadata,
    )


def to_search_payload(items: Iterable[BusinessWithDistance]) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    for item in items:
        business = item.business
        record = business.location
        payload.append({
            "id": business.id,
            "name": business.name,
            "description": business.description,
            "category": business.category,
            "tags": list(business.tags),
            "location": record.to_metadata() if record is not None else None,
            "location_text": location_display_text(business.deep_link, business.service_areas),
            "distance_km": round(item.distance_km, 3) if item.distance_km is not None else None,
            "distance_text": format_distance(item.distance_km) if item.distance_km is not None else None,
        })
    return payload


def parse_csv_arg(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]
