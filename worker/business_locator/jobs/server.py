"""HTTP entrypoint for location enhancement, proximity search and map data."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from business_locator.core.config import get_settings
from business_locator.core.db import fetch_businesses
from business_locator.etl.gazetteer import DEFAULT_GAZETTEER
from business_locator.etl.map_interaction import build_markers, compute_map_view
from business_locator.etl.search import SORT_KEYS, SearchFilters, resolve_search_center, search_businesses
from business_locator.etl.transform import parse_csv_arg, to_search_payload
from business_locator.jobs.enhance_locations import enhance_single_business, run_enhance_job
from business_locator.models import Coordinates
from business_locator.vendors.nominatim import get_geocoding_client

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# A single worker keeps batches (and their geocoder calls) strictly sequential.
_executor = ThreadPoolExecutor(max_workers=1)
_batch_lock = threading.Lock()


class BadRequest(ValueError):
    """Raised for query parameters we cannot use."""


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": getattr(settings, "worker_port", None),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/service-areas")
def list_service_areas() -> Any:
    return jsonify({"data": [entry.to_dict() for entry in DEFAULT_GAZETTEER.list_areas()]}), 200


@app.post("/enhance")
def enqueue_enhance() -> Any:
    """Start a background batch over every business; only one may run at a time."""
    if not _batch_lock.acquire(blocking=False):
        return jsonify({"error": "an enhancement batch is already running"}), 409

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    delay = payload.get("delay")
    if delay is not None:
        try:
            delay = float(delay)
            if delay < 0:
                raise ValueError
        except (TypeError, ValueError):
            _batch_lock.release()
            return jsonify({"error": "delay must be a non-negative number"}), 400

    logger.info("Queueing location enhancement batch (delay=%s)", delay)
    _executor.submit(_run_batch_safe, delay)
    return jsonify({"data": {"status": "queued"}}), 202


@app.post("/enhance/<business_id>")
def enhance_one(business_id: str) -> Any:
    try:
        record = enhance_single_business(business_id)
    except LookupError:
        return jsonify({"error": "business not found"}), 404
    except Exception as exc:  # noqa: BLE001
        logger.exception("Enhancement failed for %s: %s", business_id, exc)
        return jsonify({"error": "enhancement failed"}), 500

    if record is None:
        return jsonify({"error": "no usable location data", "business_id": business_id}), 422
    return jsonify({"data": {"business_id": business_id, "location": record.to_metadata()}}), 200


@app.get("/search")
def search() -> Any:
    try:
        filters, _ = _filters_from_args()
    except BadRequest as exc:
        return jsonify({"error": str(exc)}), 400

    results = search_businesses(fetch_businesses(), filters)
    return jsonify({"data": to_search_payload(results), "count": len(results)}), 200


@app.get("/map")
def map_data() -> Any:
    try:
        filters, user_location = _filters_from_args()
    except BadRequest as exc:
        return jsonify({"error": str(exc)}), 400

    markers = build_markers(search_businesses(fetch_businesses(), filters))
    view = compute_map_view(markers, center=filters.center, user_location=user_location)
    return (
        jsonify({"data": {"view": {"center": view.center.to_dict(), "zoom": view.zoom}, "markers": markers}}),
        200,
    )


# ---------- Internals ----------


def _float_arg(name: str) -> Optional[float]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise BadRequest(f"{name} must be numeric") from exc


def _filters_from_args() -> Tuple[SearchFilters, Optional[Coordinates]]:
    radius = _float_arg("radius")
    if radius is None:
        radius = get_settings().default_search_radius_km
    if radius < 0:
        raise BadRequest("radius must not be negative")

    sort_by = request.args.get("sort", "name")
    if sort_by not in SORT_KEYS:
        raise BadRequest(f"sort must be one of {', '.join(SORT_KEYS)}")

    lat, lng = _float_arg("lat"), _float_arg("lng")
    center = None
    user_location = None
    if lat is not None or lng is not None:
        if lat is None or lng is None:
            raise BadRequest("lat and lng must be given together")
        try:
            user_location = Coordinates(lat, lng)
        except ValueError as exc:
            raise BadRequest(str(exc)) from exc
        center = user_location
    elif request.args.get("near"):
        resolved = resolve_search_center(
            request.args["near"], DEFAULT_GAZETTEER, get_geocoding_client(), radius_km=radius
        )
        if resolved is None:
            raise BadRequest("could not resolve location")
        center = resolved.coordinates
        radius = resolved.radius_km

    filters = SearchFilters(
        text_query=request.args.get("q", ""),
        center=center,
        radius_km=radius,
        categories=parse_csv_arg(request.args.get("category")),
        tags=parse_csv_arg(request.args.get("tag")),
        sort_by=sort_by,
    )
    return filters, user_location


def _run_batch_safe(delay: Optional[float]) -> None:
    try:
        run_enhance_job(delay=delay)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Enhancement batch failed: %s", exc)
    finally:
        _batch_lock.release()


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
