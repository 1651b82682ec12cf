"""Database helpers for the worker."""

import logging
from contextlib import contextmanager
from typing import List, Optional

from psycopg2 import extras, pool

from business_locator.core.config import get_settings
from business_locator.etl.transform import to_business
from business_locator.models import Business, LocationRecord

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


_SELECT_BUSINESSES = """
SELECT
    id,
    name,
    description,
    category,
    service_tags,
    waze_url,
    service_areas,
    is_active,
    created_at,
    metadata
FROM businesses
"""

# Replaces metadata.location wholesale so reruns never accumulate history.
_SAVE_LOCATION = """
UPDATE businesses
SET metadata = jsonb_set(COALESCE(metadata, '{}'::jsonb), '{location}', %(location)s, true),
    updated_at = NOW()
WHERE id = %(id)s;
"""


def fetch_businesses(active_only: bool = True) -> List[Business]:
    sql = _SELECT_BUSINESSES
    if active_only:
        sql += " WHERE is_active"
    sql += " ORDER BY created_at, id;"

    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql)
            rows = cur.fetchall()
    return [to_business(dict(row)) for row in rows]


def fetch_business(business_id: str) -> Optional[Business]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(_SELECT_BUSINESSES + " WHERE id = %(id)s;", {"id": business_id})
            row = cur.fetchone()
    return to_business(dict(row)) if row else None


def save_location_record(business_id: str, record: LocationRecord) -> None:
    """Overwrite the stored location for one business."""
    if not business_id:
        raise ValueError("business_id is required to save a location")

    params = {"id": business_id, "location": extras.Json(record.to_metadata())}
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_SAVE_LOCATION, params)
            if cur.rowcount == 0:
                logger.warning("No business row updated for id %s", business_id)
        conn.commit()
        logger.debug("Saved location for business %s", business_id)
