"""Configuration objects for the enrichment pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Sequence

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT = "ZeroWasteFrankfurt/1.0 (contact@zerowastefrankfurt.de)"
DEFAULT_CITY = "Frankfurt"
DEFAULT_OVERPASS_ENDPOINTS = (
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://maps.mail.ru/osm/tools/overpass/api/interpreter",
)


@dataclass(slots=True)
class GeocodeSettings:
    """Settings used to query Nominatim and validate its matches."""

    search_url: str = f"{DEFAULT_NOMINATIM_URL}/search"
    reverse_url: str = f"{DEFAULT_NOMINATIM_URL}/reverse"
    user_agent: str = DEFAULT_USER_AGENT
    email: Optional[str] = None
    accept_language: Optional[str] = "de"
    limit: int = 5
    pause_seconds: float = 1.0
    timeout: float = 10.0
    max_distance_km: float = 1.5
    debounce_seconds: float = 1.0
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides) -> "GeocodeSettings":
        """Build settings from ``NOMINATIM_*`` environment variables."""

        values: Dict[str, object] = {}
        user_agent = os.getenv("NOMINATIM_USER_AGENT")
        if user_agent:
            values["user_agent"] = user_agent
        email = os.getenv("NOMINATIM_EMAIL")
        if email:
            values["email"] = email
        interval = os.getenv("NOMINATIM_MIN_INTERVAL")
        if interval:
            values["pause_seconds"] = float(interval)
        values.update(overrides)
        return cls(**values)

    def headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.accept_language:
            headers["Accept-Language"] = self.accept_language
        headers.update(self.extra_headers)
        return headers

    def search_params(
        self,
        query: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        limit: Optional[int] = None,
        extratags: bool = True,
    ) -> Dict[str, str]:
        params = {
            "format": "json",
            "q": query,
            "limit": str(limit or self.limit),
            "addressdetails": "1",
        }
        if extratags:
            params["extratags"] = "1"
        if latitude is not None and longitude is not None:
            params["lat"] = str(latitude)
            params["lon"] = str(longitude)
        if self.email:
            params["email"] = self.email
        return params

    def reverse_params(self, latitude: float, longitude: float) -> Dict[str, str]:
        params = {
            "format": "json",
            "lat": str(latitude),
            "lon": str(longitude),
            "addressdetails": "1",
        }
        if self.email:
            params["email"] = self.email
        return params


@dataclass(slots=True)
class WebsiteSettings:
    """Settings for scraping schema.org data from business websites."""

    user_agent: str = "ZeroWasteFrankfurt/1.0 (Location Enrichment Bot)"
    robots_agent: str = "zerowastefrankfurt"
    timeout: float = 5.0
    robots_timeout: float = 2.0

    def headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "text/html"}


@dataclass(slots=True)
class OverpassSettings:
    """Settings for nearby-place lookups against public Overpass instances."""

    endpoints: Sequence[str] = field(default_factory=lambda: list(DEFAULT_OVERPASS_ENDPOINTS))
    user_agent: str = DEFAULT_USER_AGENT
    radius_meters: int = 50
    query_timeout: int = 25
    timeout: float = 30.0

    def headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Content-Type": "text/plain"}


@dataclass(slots=True)
class MigrationSettings:
    """Composite settings structure for the batch migration."""

    geocode: GeocodeSettings = field(default_factory=GeocodeSettings)
    input_path: str = "google-maps-export.json"
    output_json: Optional[str] = "migration-data.json"
    output_csv: Optional[str] = None
    default_city: str = DEFAULT_CITY


def default_output_fields() -> Iterable[str]:
    """Return the column names used when exporting migrated locations to CSV."""

    return [
        "name",
        "original_category",
        "mapped_categories",
        "lat",
        "lng",
        "address",
        "city",
        "postal_code",
        "description_de",
        "phone",
        "website",
        "email",
        "instagram",
        "opening_hours_osm",
        "opening_hours_text",
        "payment_methods",
        "facilities",
        "osm_enriched",
        "match_type",
    ]
