"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "CommunityPlatform/1.0"


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    database_url: str
    geocoder_base_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = DEFAULT_USER_AGENT
    geocoder_country_code: str = "il"
    geocoder_country_name: str = "Israel"
    geocoder_language: str = "he,en"
    geocoder_min_interval: float = 1.0
    geocoder_timeout: float = 10.0
    geocoder_max_retries: int = 0
    enhance_item_delay: float = 1.2
    default_search_radius_km: float = 25.0
    worker_port: int = 9000


def _get_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    geocoder_user_agent = os.getenv("GEOCODER_USER_AGENT", DEFAULT_USER_AGENT)

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if geocoder_user_agent == DEFAULT_USER_AGENT:
        logger.warning("GEOCODER_USER_AGENT is not configured; using the shared default agent.")

    return Settings(
        database_url=database_url,
        geocoder_base_url=os.getenv("GEOCODER_BASE_URL", "https://nominatim.openstreetmap.org/search"),
        geocoder_user_agent=geocoder_user_agent,
        geocoder_country_code=os.getenv("GEOCODER_COUNTRY_CODE", "il").strip().lower(),
        geocoder_country_name=os.getenv("GEOCODER_COUNTRY_NAME", "Israel").strip(),
        geocoder_language=os.getenv("GEOCODER_LANGUAGE", "he,en"),
        geocoder_min_interval=_get_number("GEOCODER_MIN_INTERVAL", "1.0", float),
        geocoder_timeout=_get_number("GEOCODER_TIMEOUT", "10", float),
        geocoder_max_retries=_get_number("GEOCODER_MAX_RETRIES", "0", int),
        enhance_item_delay=_get_number("ENHANCE_ITEM_DELAY", "1.2", float),
        default_search_radius_km=_get_number("DEFAULT_SEARCH_RADIUS_KM", "25", float),
        worker_port=_get_number("WORKER_PORT", "9000", int),
    )
