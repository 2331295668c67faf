"""Data models shared by the geocoding, tagging and opening-hours helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar, Union

T = TypeVar("T")

TagValue = Union[str, bool]
Coordinate = Tuple[float, float]


class MatchType(str, Enum):
    """Confidence of an enrichment result."""

    NAME_SEARCH = "name_search"
    REVERSE_GEOCODE = "reverse_geocode"
    NONE = "none"


@dataclass(slots=True)
class Lookup(Generic[T]):
    """Result/error pair returned by every network-facing operation."""

    result: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass(slots=True)
class GeocodeQuery:
    """Free-text query with an optional reference point for validation."""

    text: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def reference(self) -> Optional[Coordinate]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)


@dataclass(slots=True)
class AddressParts:
    """Normalized address fragments taken from a Nominatim ``address`` block."""

    street: str = ""
    city: str = ""
    postal_code: str = ""
    suburb: Optional[str] = None

    @classmethod
    def from_nominatim(cls, address: Optional[Mapping[str, Any]]) -> "AddressParts":
        address = address or {}
        street = " ".join(
            str(part) for part in (address.get("road"), address.get("house_number")) if part
        )
        city = ""
        for key in ("city", "town", "village", "municipality"):
            if address.get(key):
                city = str(address[key])
                break
        return cls(
            street=street,
            city=city,
            postal_code=str(address.get("postcode") or ""),
            suburb=address.get("suburb") or None,
        )


@dataclass(slots=True)
class GeocodeCandidate:
    """One entry of a Nominatim search response."""

    latitude: float
    longitude: float
    display_name: str = ""
    address: AddressParts = field(default_factory=AddressParts)
    extratags: Dict[str, TagValue] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def coordinate(self) -> Coordinate:
        return (self.latitude, self.longitude)


@dataclass(slots=True)
class GeocodeResult:
    """Result of a one-shot forward geocode."""

    latitude: float
    longitude: float
    display_name: str


@dataclass(slots=True)
class ReverseGeocodeResult:
    """Address found for a coordinate pair."""

    address: str
    city: str
    postal_code: str
    suburb: Optional[str] = None
    display_name: str = ""


class _FlagSet:
    """Mixin for dataclasses made only of optional ``True`` flags."""

    __slots__ = ()

    def as_dict(self) -> Dict[str, bool]:
        return {f.name: True for f in fields(self) if getattr(self, f.name)}

    def __bool__(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


@dataclass(slots=True)
class PaymentMethods(_FlagSet):
    cash: Optional[bool] = None
    credit_cards: Optional[bool] = None
    debit_cards: Optional[bool] = None
    contactless: Optional[bool] = None
    maestro: Optional[bool] = None
    visa: Optional[bool] = None
    mastercard: Optional[bool] = None
    american_express: Optional[bool] = None
    mobile_payment: Optional[bool] = None


@dataclass(slots=True)
class Facilities(_FlagSet):
    toilets: Optional[bool] = None
    wheelchair: Optional[bool] = None
    wifi: Optional[bool] = None
    organic: Optional[bool] = None
    outdoor_seating: Optional[bool] = None
    takeaway: Optional[bool] = None


@dataclass(slots=True)
class OpeningHoursEntry:
    """Opening time of a single weekday; ``None`` times mean closed."""

    day: str
    opens: Optional[str] = None
    closes: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"day": self.day, "opens": self.opens, "closes": self.closes}


@dataclass(slots=True)
class StructuredOpeningHours:
    """Weekly schedule parsed from an OSM ``opening_hours`` value."""

    entries: List[OpeningHoursEntry] = field(default_factory=list)
    special: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"entries": [entry.as_dict() for entry in self.entries], "special": self.special}


@dataclass(slots=True)
class EnrichedResult:
    """Accepted output of the enrichment pipeline."""

    latitude: float
    longitude: float
    address: str = ""
    city: str = ""
    postal_code: str = ""
    suburb: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    instagram: Optional[str] = None
    opening_hours_osm: Optional[str] = None
    opening_hours_formatted: Optional[str] = None
    opening_hours_structured: Optional[StructuredOpeningHours] = None
    payment_methods: Optional[PaymentMethods] = None
    facilities: Optional[Facilities] = None
    match_type: MatchType = MatchType.NONE
    distance_km: Optional[float] = None


@dataclass(slots=True)
class WebsiteDetails:
    """Contact details scraped from schema.org markup on a business website."""

    phone: Optional[str] = None
    email: Optional[str] = None
    instagram: Optional[str] = None
    opening_hours: Optional[str] = None

    def is_complete(self) -> bool:
        return all((self.phone, self.email, self.instagram, self.opening_hours))


@dataclass(slots=True)
class ParsedCoordinates:
    """Coordinates (and optionally a place name) taken from a Google Maps link."""

    latitude: float
    longitude: float
    name: Optional[str] = None


@dataclass(slots=True)
class PointOfInterest:
    """Named OSM feature found near a coordinate by an Overpass query."""

    id: int
    name: str
    lat: float
    lng: float
    type: str = "unknown"
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None


@dataclass(slots=True)
class GoogleMapsLocation:
    """Row of a Google Maps list export."""

    name: str
    category: str
    lat: float
    lng: float
    description: str = ""


@dataclass(slots=True)
class MigratedLocation:
    """Google Maps export row enriched with OpenStreetMap data."""

    name: str
    original_category: str
    mapped_categories: List[str]
    lat: float
    lng: float
    address: str = ""
    city: str = ""
    postal_code: str = ""
    description_de: str = ""
    phone: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    instagram: Optional[str] = None
    opening_hours_osm: Optional[str] = None
    opening_hours_text: Optional[str] = None
    payment_methods: Optional[PaymentMethods] = None
    facilities: Optional[Facilities] = None
    osm_enriched: bool = False
    match_type: MatchType = MatchType.NONE

    def as_dict(self) -> Dict[str, Any]:
        """Return the location as JSON-compatible primitives, omitting unset optionals."""

        data: Dict[str, Any] = {
            "name": self.name,
            "original_category": self.original_category,
            "mapped_categories": list(self.mapped_categories),
            "lat": self.lat,
            "lng": self.lng,
            "address": self.address,
            "city": self.city,
            "postal_code": self.postal_code,
            "description_de": self.description_de,
        }
        for key in ("phone", "website", "email", "instagram", "opening_hours_osm", "opening_hours_text"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.payment_methods:
            data["payment_methods"] = self.payment_methods.as_dict()
        if self.facilities:
            data["facilities"] = self.facilities.as_dict()
        data["osm_enriched"] = self.osm_enriched
        data["match_type"] = self.match_type.value
        return data

    def as_row(self) -> List[str]:
        """Return the location as a CSV row using primitive types."""

        return [
            self.name,
            self.original_category,
            ";".join(self.mapped_categories),
            f"{self.lat:.6f}",
            f"{self.lng:.6f}",
            self.address,
            self.city,
            self.postal_code,
            self.description_de,
            self.phone or "",
            self.website or "",
            self.email or "",
            self.instagram or "",
            self.opening_hours_osm or "",
            self.opening_hours_text or "",
            json.dumps(self.payment_methods.as_dict()) if self.payment_methods else "",
            json.dumps(self.facilities.as_dict()) if self.facilities else "",
            "true" if self.osm_enriched else "false",
            self.match_type.value,
        ]
