"""Command line interface for OpenStreetMap enrichment."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .geocode import NominatimGeocoder
from .gmaps import parse_google_maps_url
from .hours import format_opening_hours_preview, parse_opening_hours
from .migration import run_migration
from .overpass import OverpassClient
from .settings import GeocodeSettings, MigrationSettings, OverpassSettings, WebsiteSettings
from .website import WebsiteEnricher

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Enrich zero-waste locations with OpenStreetMap data")
    parser.add_argument("--config", type=Path, help="Optional JSON file overriding settings")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--email", type=str, default=None, help="Contact email passed to Nominatim")
    parser.add_argument("--pause", type=float, default=None, help="Seconds to wait between Nominatim requests")
    subparsers = parser.add_subparsers(dest="command", required=True)

    enrich = subparsers.add_parser("enrich", help="Find a business by name and read its OSM tags")
    enrich.add_argument("name", nargs="?", help="Business name")
    enrich.add_argument("--lat", type=float, default=None, help="Known latitude of the business")
    enrich.add_argument("--lng", type=float, default=None, help="Known longitude of the business")
    enrich.add_argument("--maps-url", default=None, help="Google Maps link supplying name and coordinates")
    enrich.add_argument("--max-distance", type=float, default=None, help="Maximum match distance in km")

    geocode = subparsers.add_parser("geocode", help="Forward geocode an address")
    geocode.add_argument("address")

    reverse = subparsers.add_parser("reverse", help="Reverse geocode a coordinate pair")
    reverse.add_argument("lat", type=float)
    reverse.add_argument("lng", type=float)

    hours = subparsers.add_parser("hours", help="Parse an OSM opening_hours value")
    hours.add_argument("value")

    nearby = subparsers.add_parser("nearby", help="List named OSM businesses around a coordinate")
    nearby.add_argument("lat", type=float)
    nearby.add_argument("lng", type=float)
    nearby.add_argument("--radius", type=int, default=None, help="Search radius in meters")

    website = subparsers.add_parser("website", help="Read schema.org contact data from a website")
    website.add_argument("url")

    migrate = subparsers.add_parser("migrate", help="Enrich a Google Maps list export")
    migrate.add_argument("--input", type=Path, default=None, help="Google Maps export JSON")
    migrate.add_argument("--output", type=Path, default=None, help="Output JSON path")
    migrate.add_argument("--csv", type=Path, default=None, help="Optional output CSV path")
    return parser.parse_args(argv)


def load_config(path: Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _emit(payload: Any) -> None:
    print(json.dumps(payload, default=_default, ensure_ascii=False, indent=2))


def _emit_lookup(lookup) -> int:
    if lookup.result is None:
        logger.error("%s", lookup.error or "No results found")
        return 1
    if isinstance(lookup.result, list):
        _emit([asdict(item) for item in lookup.result])
    else:
        _emit(asdict(lookup.result))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)

    config = load_config(args.config)

    geocode_config = dict(config.get("geocode", {}))
    if args.email is not None:
        geocode_config["email"] = args.email
    if args.pause is not None:
        geocode_config["pause_seconds"] = args.pause
    if getattr(args, "max_distance", None) is not None:
        geocode_config["max_distance_km"] = args.max_distance
    geocode_settings = GeocodeSettings.from_env(**geocode_config)

    if args.command == "hours":
        structured = parse_opening_hours(args.value)
        _emit(
            {
                "raw": args.value,
                "formatted": format_opening_hours_preview(args.value),
                "structured": structured.as_dict() if structured else None,
            }
        )
        return 0

    if args.command == "website":
        enricher = WebsiteEnricher(WebsiteSettings(**config.get("website", {})))
        return _emit_lookup(enricher.enrich(args.url))

    if args.command == "nearby":
        client = OverpassClient(OverpassSettings(**config.get("overpass", {})))
        return _emit_lookup(client.find_nearby(args.lat, args.lng, args.radius))

    if args.command == "migrate":
        migration_config = dict(config.get("migration", {}))
        # Geocoder settings come from the top-level "geocode" section only.
        migration_config.pop("geocode", None)
        if args.input is not None:
            migration_config["input_path"] = str(args.input)
        if args.output is not None:
            migration_config["output_json"] = str(args.output)
        if args.csv is not None:
            migration_config["output_csv"] = str(args.csv)
        run_migration(MigrationSettings(geocode=geocode_settings, **migration_config))
        return 0

    geocoder = NominatimGeocoder(geocode_settings)
    if args.command == "geocode":
        return _emit_lookup(geocoder.geocode(args.address))
    if args.command == "reverse":
        return _emit_lookup(geocoder.reverse_geocode(args.lat, args.lng))

    name: Optional[str] = args.name
    lat, lng = args.lat, args.lng
    if args.maps_url:
        parsed = parse_google_maps_url(args.maps_url)
        if parsed is None:
            logger.error("Could not read coordinates from %s", args.maps_url)
            return 1
        name = name or parsed.name
        lat = parsed.latitude if lat is None else lat
        lng = parsed.longitude if lng is None else lng
    if not name:
        logger.error("A business name is required")
        return 1
    return _emit_lookup(geocoder.search_with_extras(name, lat, lng))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
