"""Nominatim client with rate limiting and the business-name enrichment chain."""

from __future__ import annotations

import logging
import math
import re
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .hours import format_opening_hours_preview, parse_opening_hours
from .matching import select_best_candidate
from .models import (
    AddressParts,
    EnrichedResult,
    GeocodeCandidate,
    GeocodeQuery,
    GeocodeResult,
    Lookup,
    MatchType,
    ReverseGeocodeResult,
)
from .settings import GeocodeSettings
from .tags import extract_contact, extract_facilities, extract_payment_methods

logger = logging.getLogger(__name__)

NO_RESULTS = "No results found"

_NAME_SEPARATOR_RE = re.compile(r"\s+-\s+|\s*[|_–—]\s*")


class GeocodingError(Exception):
    """Raised when a provider request fails or returns an error body."""


class RequestThrottle:
    """Serialize requests so that consecutive ones start ``interval`` seconds apart."""

    def __init__(
        self,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None

    def wait(self) -> None:
        with self._lock:
            if self._last_request is not None:
                remaining = self.interval - (self._clock() - self._last_request)
                if remaining > 0:
                    logger.debug("Sleeping %.2f seconds before next Nominatim request", remaining)
                    self._sleep(remaining)
            self._last_request = self._clock()


def simplify_business_name(name: str) -> Optional[str]:
    """Drop a descriptive suffix from a business name.

    ``"Die Auffüllerei - unverpackt einkaufen"`` becomes ``"Die Auffüllerei"``.
    Returns ``None`` when nothing would change.
    """

    simplified = _NAME_SEPARATOR_RE.split(name)[0].strip()
    if simplified and simplified != name.strip():
        return simplified
    return None


def _parse_candidate(item: Dict[str, Any]) -> Optional[GeocodeCandidate]:
    try:
        latitude = float(item["lat"])
        longitude = float(item["lon"])
    except (KeyError, TypeError, ValueError):
        return None
    extratags = item.get("extratags") or {}
    return GeocodeCandidate(
        latitude=latitude,
        longitude=longitude,
        display_name=item.get("display_name", ""),
        address=AddressParts.from_nominatim(item.get("address")),
        extratags={key: value for key, value in extratags.items() if isinstance(value, (str, bool))},
        raw=item,
    )


def build_enriched_result(candidate: GeocodeCandidate, distance: Optional[float] = None) -> EnrichedResult:
    """Fold an accepted candidate and its tags into an :class:`EnrichedResult`."""

    extras = candidate.extratags
    contact = extract_contact(extras)
    hours_osm = extras.get("opening_hours")
    if not isinstance(hours_osm, str) or not hours_osm.strip():
        hours_osm = None

    return EnrichedResult(
        latitude=candidate.latitude,
        longitude=candidate.longitude,
        address=candidate.address.street,
        city=candidate.address.city,
        postal_code=candidate.address.postal_code,
        suburb=candidate.address.suburb,
        phone=contact["phone"],
        website=contact["website"],
        email=contact["email"],
        instagram=contact["instagram"],
        opening_hours_osm=hours_osm,
        opening_hours_formatted=format_opening_hours_preview(hours_osm) if hours_osm else None,
        opening_hours_structured=parse_opening_hours(hours_osm),
        payment_methods=extract_payment_methods(extras),
        facilities=extract_facilities(extras),
        match_type=MatchType.NAME_SEARCH,
        distance_km=distance,
    )


class NominatimGeocoder:
    """Wrapper around the public Nominatim API.

    All requests made through one instance share a :class:`RequestThrottle`;
    pass the same throttle to several instances to keep them in one queue.
    """

    def __init__(
        self,
        settings: Optional[GeocodeSettings] = None,
        session: Optional[requests.Session] = None,
        throttle: Optional[RequestThrottle] = None,
    ) -> None:
        self.settings = settings or GeocodeSettings()
        self.throttle = throttle or RequestThrottle(self.settings.pause_seconds)
        self._session = session or requests.Session()
        self._session.headers.update(self.settings.headers())

    @property
    def session(self) -> requests.Session:
        return self._session

    def _get(self, url: str, params: Dict[str, str]) -> Any:
        self.throttle.wait()
        logger.debug("GET %s %s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self.settings.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise GeocodingError(str(exc)) from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise GeocodingError("Malformed response from geocoding provider") from exc
        if isinstance(payload, dict) and payload.get("error"):
            raise GeocodingError(str(payload["error"]))
        return payload

    def search(
        self,
        query: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[GeocodeCandidate]:
        """Return the candidates Nominatim finds for ``query``."""

        payload = self._get(
            self.settings.search_url,
            self.settings.search_params(query, latitude, longitude, limit=limit),
        )
        if not isinstance(payload, list):
            raise GeocodingError("Malformed response from geocoding provider")
        candidates = [candidate for candidate in map(_parse_candidate, payload) if candidate]
        logger.debug("Nominatim returned %d candidates for %r", len(candidates), query)
        return candidates

    def reverse(self, latitude: float, longitude: float) -> ReverseGeocodeResult:
        """Return the address found at a coordinate pair."""

        payload = self._get(self.settings.reverse_url, self.settings.reverse_params(latitude, longitude))
        if not isinstance(payload, dict):
            raise GeocodingError("Malformed response from geocoding provider")
        address = AddressParts.from_nominatim(payload.get("address"))
        return ReverseGeocodeResult(
            address=address.street,
            city=address.city,
            postal_code=address.postal_code,
            suburb=address.suburb,
            display_name=payload.get("display_name") or "",
        )

    def geocode(self, address: str) -> Lookup[GeocodeResult]:
        """Forward geocode ``address`` to its first match, without validation."""

        if not address or not address.strip():
            return Lookup()
        try:
            candidates = self.search(address, limit=1)
        except GeocodingError as exc:
            logger.warning("Geocoding failed for %r: %s", address, exc)
            return Lookup(error=str(exc))
        if not candidates:
            return Lookup(error=NO_RESULTS)
        first = candidates[0]
        return Lookup(
            GeocodeResult(latitude=first.latitude, longitude=first.longitude, display_name=first.display_name)
        )

    def reverse_geocode(self, latitude: float, longitude: float) -> Lookup[ReverseGeocodeResult]:
        """Reverse geocode a coordinate pair."""

        if math.isnan(latitude) or math.isnan(longitude):
            return Lookup()
        try:
            return Lookup(self.reverse(latitude, longitude))
        except GeocodingError as exc:
            logger.warning("Reverse geocoding failed for %s,%s: %s", latitude, longitude, exc)
            return Lookup(error=str(exc))

    def search_with_extras(
        self,
        query: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Lookup[EnrichedResult]:
        """Find a business by name and enrich it with its OSM tags.

        The full name is tried first, then the simplified name. With a
        reference coordinate, matches further than ``max_distance_km`` are
        rejected and, if no name search succeeds, the coordinate is reverse
        geocoded so that at least the address can be filled in.
        """

        if not query or not query.strip():
            return Lookup()

        request = GeocodeQuery(query, latitude, longitude)
        attempts = [query]
        simplified = simplify_business_name(query)
        if simplified:
            attempts.append(simplified)

        last_error: Optional[str] = None
        for attempt in attempts:
            try:
                candidates = self.search(attempt, request.latitude, request.longitude)
            except GeocodingError as exc:
                logger.warning("Search for %r failed: %s", attempt, exc)
                last_error = str(exc)
                continue
            last_error = None

            best, distance = select_best_candidate(
                candidates, request.reference, max_distance_km=self.settings.max_distance_km
            )
            if best is not None:
                if distance is not None:
                    logger.info("OSM match for %r %.2f km away", attempt, distance)
                return Lookup(build_enriched_result(best, distance))
            if distance is not None:
                logger.warning("OSM result for %r too far (%.1f km away)", attempt, distance)

        if request.reference is not None:
            try:
                reverse = self.reverse(*request.reference)
            except GeocodingError as exc:
                logger.warning("Reverse geocoding fallback failed for %r: %s", query, exc)
                last_error = str(exc)
            else:
                logger.info("Falling back to reverse geocode for %r: %s", query, reverse.address)
                return Lookup(
                    EnrichedResult(
                        latitude=request.latitude,
                        longitude=request.longitude,
                        address=reverse.address,
                        city=reverse.city,
                        postal_code=reverse.postal_code,
                        suburb=reverse.suburb,
                        match_type=MatchType.REVERSE_GEOCODE,
                    )
                )

        return Lookup(error=last_error or NO_RESULTS)


_default_geocoder: Optional[NominatimGeocoder] = None
_default_lock = threading.Lock()


def get_default_geocoder() -> NominatimGeocoder:
    """Return the process-wide geocoder so all callers share one throttle."""

    global _default_geocoder
    with _default_lock:
        if _default_geocoder is None:
            _default_geocoder = NominatimGeocoder(GeocodeSettings.from_env())
        return _default_geocoder


def geocode(address: str) -> Lookup[GeocodeResult]:
    return get_default_geocoder().geocode(address)


def search_with_extras(
    query: str, latitude: Optional[float] = None, longitude: Optional[float] = None
) -> Lookup[EnrichedResult]:
    return get_default_geocoder().search_with_extras(query, latitude, longitude)


def reverse_geocode(latitude: float, longitude: float) -> Lookup[ReverseGeocodeResult]:
    return get_default_geocoder().reverse_geocode(latitude, longitude)
