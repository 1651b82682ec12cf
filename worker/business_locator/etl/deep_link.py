"""Parsing helpers for Waze deep links submitted by business owners.

Accepted shapes:
    https://waze.com/ul?ll=32.0853,34.7818&navigate=yes
    https://waze.com/ul?ll=32.0853,34.7818&q=Tel%20Aviv
    https://www.waze.com/live-map/directions/to/tel-aviv-center
    נסיעה עם Waze אל <address>: https://waze.com/ul/...

Links from any other host are not ours and parse to ``None``.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence
from urllib.parse import parse_qs, unquote, urlsplit

from business_locator.models import ParsedReference

logger = logging.getLogger(__name__)

DEEP_LINK_HOST = "waze.com"

EXACT_LOCATION_TEXT = "מיקום מדויק"
LINK_ONLY_TEXT = "מיקום זמין ב-Waze"
NO_LOCATION_TEXT = "מיקום לא זמין"

_SHARED_TEXT_RE = re.compile(r"נסיעה עם Waze אל\s+([^:]+):\s*(https?://\S+)", re.IGNORECASE)
_LINK_IN_TEXT_RE = re.compile(r"(https?://(?:www\.)?waze\.com/\S+)", re.IGNORECASE)
_BARE_LINK_RE = re.compile(r"(?<![\w.])((?:www\.)?waze\.com/\S+)", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d+")

_BUSINESS_KEYWORDS = ("פיצה", "מקדונלד", "בורגר", "קפה", "מסעדת", "בית קפה", "פלפל", "סבארו")
_STREET_KEYWORDS = ("רחוב", "שדרות", "כיכר", "מושבה", "דרך", "נחל", "הר")


def _is_our_host(hostname: Optional[str]) -> bool:
    if not hostname:
        return False
    hostname = hostname.lower()
    return hostname == DEEP_LINK_HOST or hostname.endswith("." + DEEP_LINK_HOST)


def normalize_deep_link(text: str) -> str:
    """Return a clean absolute link, or an empty string when it is not a Waze link."""
    if not text or not isinstance(text, str):
        return ""

    clean = text.strip()
    clean = re.sub(r"^https:/(?!/)", "https://", clean, flags=re.IGNORECASE)
    clean = re.sub(r"^http:/(?!/)", "http://", clean, flags=re.IGNORECASE)

    match = _LINK_IN_TEXT_RE.search(clean)
    if match:
        clean = match.group(1)
    else:
        bare = _BARE_LINK_RE.search(clean)
        if bare:
            clean = "https://" + bare.group(1)

    if not re.match(r"^https?://", clean, flags=re.IGNORECASE):
        logger.debug("Not a deep link: %s", text)
        return ""

    try:
        parts = urlsplit(clean)
    except ValueError:
        logger.debug("Failed to split deep link: %s", text)
        return ""

    if not _is_our_host(parts.hostname):
        logger.debug("Deep link host is not %s: %s", DEEP_LINK_HOST, clean)
        return ""
    return clean


def is_deep_link(text: str) -> bool:
    if not text or not isinstance(text, str):
        return False
    try:
        return _is_our_host(urlsplit(text.strip()).hostname)
    except ValueError:
        return False


def clean_address_from_business_name(address: str) -> str:
    """Drop a leading business name when the next segment is a street address.

    "פיצה סלייס, סוקולוב 72, רמת השרון" -> "סוקולוב 72, רמת השרון"
    """
    if not address:
        return address

    parts = [part.strip() for part in address.split(",")]
    if len(parts) < 2:
        return address

    first, second = parts[0], parts[1]
    has_street_number = bool(_DIGIT_RE.search(second))
    has_business_keyword = any(keyword.lower() in first.lower() for keyword in _BUSINESS_KEYWORDS)
    has_street_keyword = any(keyword in first for keyword in _STREET_KEYWORDS)

    if has_street_number and (has_business_keyword or not has_street_keyword):
        return ", ".join(parts[1:])
    return address


def _parse_pair(raw: Optional[str]):
    if not raw:
        return None, None
    pieces = raw.split(",")
    if len(pieces) != 2:
        return None, None
    try:
        lat, lng = float(pieces[0]), float(pieces[1])
    except ValueError:
        return None, None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        logger.debug("Ignoring out-of-range coordinates %s", raw)
        return None, None
    return lat, lng


def _path_address(path: str) -> Optional[str]:
    if "/directions/to/" not in path:
        return None
    segments = path.split("/")
    try:
        index = segments.index("to")
    except ValueError:
        return None
    if index + 1 >= len(segments) or not segments[index + 1]:
        return None
    return unquote(segments[index + 1]).replace("-", " ")


def parse_deep_link(text: str) -> Optional[ParsedReference]:
    """Extract coordinates, an address and a place name from a deep link.

    Returns ``None`` when the text is not a link we understand. A recognised
    short link with nothing extractable still returns an empty reference.
    """
    if not text or not isinstance(text, str):
        return None

    shared_address = None
    shared = _SHARED_TEXT_RE.search(text)
    if shared:
        shared_address = clean_address_from_business_name(shared.group(1).strip())

    link = normalize_deep_link(text)
    if not link:
        return None

    parts = urlsplit(link)
    params = parse_qs(parts.query)

    lat, lng = _parse_pair((params.get("ll") or [None])[0])
    place = (params.get("q") or [None])[0] or None
    path_address = _path_address(parts.path)

    return ParsedReference(
        address=shared_address or path_address or place,
        place=place,
        lat=lat,
        lng=lng,
    )


def format_coordinates(lat: float, lng: float) -> str:
    return f"{lat:.4f}, {lng:.4f}"


def location_display_text(deep_link: Optional[str] = None, service_areas: Optional[Sequence[str]] = None) -> str:
    """Human label for where a business is, from the best signal available."""
    if deep_link:
        parsed = parse_deep_link(deep_link)
        if parsed is not None:
            if parsed.address:
                return parsed.address
            if parsed.place:
                return parsed.place
            if parsed.coordinates is not None:
                return EXACT_LOCATION_TEXT
            return LINK_ONLY_TEXT

    if service_areas:
        return ", ".join(service_areas[:2])
    return NO_LOCATION_TEXT
