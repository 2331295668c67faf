"""Batch enrichment of a Google Maps list export with OpenStreetMap data."""

from __future__ import annotations

import csv
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .geocode import NominatimGeocoder
from .hours import format_opening_hours_preview
from .models import GoogleMapsLocation, MatchType, MigratedLocation
from .settings import DEFAULT_CITY, MigrationSettings, default_output_fields

logger = logging.getLogger(__name__)

CATEGORY_MAPPING: Dict[str, List[str]] = {
    "Unverpackt-Läden": ["unverpackt"],
    "Restaurants, Cafés, Bars": ["gastronomie"],
    "Bäckereien": ["baeckereien"],
    "Spezialitätengeschäfte & Milchtankstellen": ["feinkost"],
    "Fair Fashion & Second Hand Läden": ["second-hand", "nachhaltige-mode"],
    "Unverpacktes Zusatzangebot": ["bio-regional"],
    "Wochenmärkte & Flohmärkte": ["wochenmaerkte"],
    "Nachhaltige Orte & Unternehmen": ["andere"],
    "Zero Waste Basics": ["haushalt-pflege"],
    "Repair Cafés": ["repair-cafes"],
}
DEFAULT_CATEGORIES = ["andere"]

MILK_DISPENSER_KEYWORDS = ("milch", "milk", "dairy", "tankstelle", "automat")
FLEA_MARKET_KEYWORDS = ("flohmarkt", "flea", "trödelmarkt")


def _mentions(name: str, keywords: Iterable[str]) -> bool:
    lower = name.lower()
    return any(keyword in lower for keyword in keywords)


def map_category(google_category: str, name: str) -> List[str]:
    """Translate a Google Maps list name into category slugs."""

    if google_category == "Spezialitätengeschäfte & Milchtankstellen" and _mentions(name, MILK_DISPENSER_KEYWORDS):
        return ["milchtankstellen"]
    if google_category == "Wochenmärkte & Flohmärkte" and _mentions(name, FLEA_MARKET_KEYWORDS):
        return ["flohmaerkte"]
    return list(CATEGORY_MAPPING.get(google_category, DEFAULT_CATEGORIES))


def load_export(path: str | Path) -> List[GoogleMapsLocation]:
    """Read a Google Maps export (a JSON list of objects)."""

    with Path(path).open("r", encoding="utf-8") as handle:
        rows = json.load(handle)
    locations = []
    for row in rows:
        try:
            locations.append(
                GoogleMapsLocation(
                    name=row["name"],
                    category=row.get("category", ""),
                    lat=float(row["lat"]),
                    lng=float(row["lng"]),
                    description=row.get("description") or "",
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed export row %r", row)
    return locations


def migrate_location(
    location: GoogleMapsLocation, geocoder: NominatimGeocoder, default_city: str = DEFAULT_CITY
) -> MigratedLocation:
    lookup = geocoder.search_with_extras(location.name, location.lat, location.lng)
    migrated = MigratedLocation(
        name=location.name,
        original_category=location.category,
        mapped_categories=map_category(location.category, location.name),
        lat=location.lat,
        lng=location.lng,
        city=default_city,
        description_de=location.description,
    )
    enriched = lookup.result
    if enriched is None:
        logger.info("No data found for %s (%s)", location.name, lookup.error)
        return migrated

    migrated.address = enriched.address
    migrated.city = enriched.city or default_city
    migrated.postal_code = enriched.postal_code
    migrated.phone = enriched.phone
    migrated.website = enriched.website
    migrated.email = enriched.email
    migrated.instagram = enriched.instagram
    migrated.opening_hours_osm = enriched.opening_hours_osm
    if enriched.opening_hours_osm:
        migrated.opening_hours_text = format_opening_hours_preview(enriched.opening_hours_osm)
    migrated.payment_methods = enriched.payment_methods
    migrated.facilities = enriched.facilities
    migrated.match_type = enriched.match_type
    migrated.osm_enriched = enriched.match_type is MatchType.NAME_SEARCH
    return migrated


def migrate_locations(
    locations: Sequence[GoogleMapsLocation],
    geocoder: Optional[NominatimGeocoder] = None,
    default_city: str = DEFAULT_CITY,
) -> List[MigratedLocation]:
    """Enrich every export row in order; requests are throttled by the geocoder."""

    geocoder = geocoder or NominatimGeocoder()
    migrated: List[MigratedLocation] = []
    total = len(locations)
    for index, location in enumerate(locations, start=1):
        logger.info("[%d/%d] %s", index, total, location.name)
        migrated.append(migrate_location(location, geocoder, default_city))
    return migrated


def summarize(locations: Iterable[MigratedLocation]) -> Dict[str, int]:
    """Count migrated locations per match type."""

    counts = Counter(location.match_type.value for location in locations)
    return {match_type.value: counts.get(match_type.value, 0) for match_type in MatchType}


def write_json(locations: Iterable[MigratedLocation], path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [location.as_dict() for location in locations]
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
    logger.info("Wrote %d locations to %s", len(payload), path)


def write_to_csv(locations: Iterable[MigratedLocation], path: str | Path, append: bool = False) -> None:
    """Persist migrated locations to CSV."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mode = "a" if append and path.exists() else "w"
    write_header = mode == "w"
    count = 0

    with path.open(mode, newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        if write_header:
            writer.writerow(default_output_fields())
        for location in locations:
            writer.writerow(location.as_row())
            count += 1

    logger.info("Wrote %d rows to %s", count, path)


def run_migration(
    settings: Optional[MigrationSettings] = None, geocoder: Optional[NominatimGeocoder] = None
) -> List[MigratedLocation]:
    """Run the migration using the provided settings."""

    settings = settings or MigrationSettings()
    locations = load_export(settings.input_path)
    logger.info("Found %d locations to process", len(locations))

    geocoder = geocoder or NominatimGeocoder(settings.geocode)
    migrated = migrate_locations(locations, geocoder, settings.default_city)

    counts = summarize(migrated)
    total = len(migrated) or 1
    for match_type, count in counts.items():
        logger.info("%-16s %d (%.1f%%)", match_type, count, count / total * 100)

    if settings.output_json:
        write_json(migrated, settings.output_json)
    if settings.output_csv:
        write_to_csv(migrated, settings.output_csv)
    return migrated
