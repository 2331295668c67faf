"""Nearby business lookup through the Overpass API.

Used when a submitted pin should be matched to an existing OSM feature: the
query asks for shops, business amenities, crafts and offices within a small
radius and returns the named ones, one per name.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from .gmaps import is_valid_coordinate
from .models import Lookup, PointOfInterest
from .settings import OverpassSettings
from .tags import extract_contact_field

logger = logging.getLogger(__name__)

BUSINESS_AMENITIES = "cafe|restaurant|bar|fast_food|bakery|pharmacy|bank|marketplace"
TYPE_KEYS = ("amenity", "shop", "tourism", "leisure", "craft", "office")

_FILTERS = ('["shop"]', f'["amenity"~"{BUSINESS_AMENITIES}"]', '["craft"]', '["office"]')


def build_query(latitude: float, longitude: float, radius_meters: int, timeout: int = 25) -> str:
    """Return the Overpass QL query for business features around a point."""

    around = f"(around:{radius_meters},{latitude},{longitude})"
    statements = [f"  {kind}{tag_filter}{around};" for kind in ("node", "way") for tag_filter in _FILTERS]
    return "\n".join([f"[out:json][timeout:{timeout}];", "(", *statements, ");", "out center body;"])


def build_address(tags: Mapping[str, Any]) -> Optional[str]:
    """Join ``addr:street``/``addr:housenumber`` and ``addr:city``."""

    parts: List[str] = []
    street = tags.get("addr:street")
    if street:
        housenumber = tags.get("addr:housenumber")
        parts.append(f"{street} {housenumber}" if housenumber else street)
    if tags.get("addr:city"):
        parts.append(tags["addr:city"])
    return ", ".join(parts) or None


def parse_element(element: Mapping[str, Any]) -> Optional[PointOfInterest]:
    tags = element.get("tags") or {}
    name = tags.get("name")
    if not name:
        return None

    # Ways only carry a centroid when queried with ``out center``.
    center = element.get("center") or {}
    latitude = element.get("lat", center.get("lat"))
    longitude = element.get("lon", center.get("lon"))
    if latitude is None or longitude is None:
        return None

    kind = next((tags[key] for key in TYPE_KEYS if tags.get(key)), "unknown")
    return PointOfInterest(
        id=int(element["id"]),
        name=name,
        lat=float(latitude),
        lng=float(longitude),
        type=kind,
        address=build_address(tags),
        phone=extract_contact_field(tags, "phone"),
        website=extract_contact_field(tags, "website"),
    )


def unique_by_name(pois: Iterable[PointOfInterest]) -> List[PointOfInterest]:
    """Keep the first place for every case-insensitive name."""

    seen = set()
    unique: List[PointOfInterest] = []
    for poi in pois:
        key = poi.name.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(poi)
    return unique


class OverpassClient:
    """Query the configured Overpass endpoints in order until one answers."""

    def __init__(self, settings: Optional[OverpassSettings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or OverpassSettings()
        self._session = session or requests.Session()
        self._session.headers.update(self.settings.headers())

    def _post(self, endpoint: str, query: str) -> Dict[str, Any]:
        response = self._session.post(endpoint, data=query.encode("utf-8"), timeout=self.settings.timeout)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("Malformed response from Overpass")
        return payload

    def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_meters: Optional[int] = None,
    ) -> Lookup[List[PointOfInterest]]:
        if not is_valid_coordinate(latitude, longitude):
            return Lookup()

        query = build_query(
            latitude,
            longitude,
            radius_meters or self.settings.radius_meters,
            self.settings.query_timeout,
        )
        last_error: Optional[str] = None
        for endpoint in self.settings.endpoints:
            try:
                payload = self._post(endpoint, query)
            except (requests.RequestException, ValueError) as exc:
                logger.warning("Overpass endpoint %s failed: %s", endpoint, exc)
                last_error = str(exc)
                continue

            elements = payload.get("elements") or []
            pois = unique_by_name(poi for poi in map(parse_element, elements) if poi is not None)
            logger.debug("Overpass returned %d places near %s,%s", len(pois), latitude, longitude)
            return Lookup(pois)

        return Lookup(error=f"Overpass API error: {last_error}")
