"""Coordinates and place names from Google Maps share links."""

from __future__ import annotations

import math
import re
from typing import Optional
from urllib.parse import unquote_plus

from .models import ParsedCoordinates

_NUMBER = r"(-?\d+\.?\d*)"

# Ordered by reliability.
COORDINATE_PATTERNS = (
    re.compile(rf"@{_NUMBER},{_NUMBER}"),
    re.compile(rf"[?&](?:q|ll|query)={_NUMBER},{_NUMBER}"),
    re.compile(rf"!3d{_NUMBER}!4d{_NUMBER}"),
    re.compile(rf"/search/{_NUMBER},{_NUMBER}"),
    re.compile(rf"/maps/{_NUMBER},{_NUMBER}"),
)

GOOGLE_MAPS_PATTERNS = (
    re.compile(r"google\.com/maps", re.IGNORECASE),
    re.compile(r"maps\.google\.", re.IGNORECASE),
    re.compile(r"maps\.app\.goo\.gl", re.IGNORECASE),
    re.compile(r"goo\.gl/maps", re.IGNORECASE),
)

_PLACE_RE = re.compile(r"/place/([^/@]+)(?:/|@|,)")
_COORDINATE_ONLY_RE = re.compile(r"^[\d.\-,\s]+$")


def is_google_maps_url(url: str) -> bool:
    return any(pattern.search(url) for pattern in GOOGLE_MAPS_PATTERNS)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def extract_place_name(url: str) -> Optional[str]:
    """Return the decoded ``/place/<name>/`` segment, if it is a real name."""

    match = _PLACE_RE.search(url)
    if not match:
        return None
    name = unquote_plus(match.group(1)).strip().rstrip(",-").strip()
    if not name or _COORDINATE_ONLY_RE.match(name):
        return None
    return name


def parse_google_maps_url(url: Optional[str]) -> Optional[ParsedCoordinates]:
    """Extract coordinates from the common Google Maps URL formats."""

    if not url or not isinstance(url, str):
        return None
    url = url.strip()
    if not is_google_maps_url(url):
        return None

    for pattern in COORDINATE_PATTERNS:
        match = pattern.search(url)
        if not match:
            continue
        latitude, longitude = float(match.group(1)), float(match.group(2))
        if is_valid_coordinate(latitude, longitude):
            return ParsedCoordinates(latitude=latitude, longitude=longitude, name=extract_place_name(url))
    return None
