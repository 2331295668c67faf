"""Parsing and formatting of OSM ``opening_hours`` values.

Only the common subset of the grammar is structured: ``;``-separated
segments of the form ``<days> <HH:MM-HH:MM>`` where ``<days>`` is a single
two-letter weekday, a comma list, or an inclusive ``Mo-Fr`` style range.
Anything richer (holidays, exceptions, several intervals per day) makes the
segment drop out, and if nothing is left the caller should show the raw
string instead.

See https://wiki.openstreetmap.org/wiki/Key:opening_hours
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .models import OpeningHoursEntry, StructuredOpeningHours

logger = logging.getLogger(__name__)

SPECIAL_ALWAYS_OPEN = "24/7"
SPECIAL_BY_APPOINTMENT = "by_appointment"

DAY_ORDER = ("Mo", "Tu", "We", "Th", "Fr", "Sa", "Su")
DAY_ABBREVIATIONS = {
    "Mo": "monday",
    "Tu": "tuesday",
    "We": "wednesday",
    "Th": "thursday",
    "Fr": "friday",
    "Sa": "saturday",
    "Su": "sunday",
}

_CLOCK = r"(?:[01]\d|2[0-3]):[0-5]\d"
TIME_RANGE_RE = re.compile(r"(%s)-(%s|24:00)" % (_CLOCK, _CLOCK))

GERMAN_DAYS = {"Tu": "Di", "We": "Mi", "Th": "Do", "Su": "So"}
_GERMAN_DAY_RE = re.compile(r"\b(%s)\b" % "|".join(GERMAN_DAYS))
_HOLIDAY_CLOSED_RE = re.compile(r"\bPH (?:off|closed)\b")
_DAYS_CLOSED_RE = re.compile(r"\b([A-Z][a-z](?:[,-][A-Z][a-z])*) (?:off|closed)\b")
_SEPARATOR_RE = re.compile(r"\s*;\s*")


def parse_days(day_spec: str) -> List[str]:
    """Expand ``Mo``, ``Mo,We,Fr`` or ``Mo-Fr`` into canonical day names."""

    if "," in day_spec:
        return [DAY_ABBREVIATIONS[day] for day in (d.strip() for d in day_spec.split(",")) if day in DAY_ABBREVIATIONS]

    if "-" in day_spec:
        bounds = [d.strip() for d in day_spec.split("-")]
        if len(bounds) != 2 or not all(bound in DAY_ABBREVIATIONS for bound in bounds):
            return []
        start, end = (DAY_ORDER.index(bound) for bound in bounds)
        if start > end:
            return []
        return [DAY_ABBREVIATIONS[day] for day in DAY_ORDER[start : end + 1]]

    day = DAY_ABBREVIATIONS.get(day_spec.strip())
    return [day] if day else []


def parse_segment(segment: str) -> List[OpeningHoursEntry]:
    """Parse ``"Mo-Fr 09:00-18:00"``; malformed segments yield no entries."""

    parts = segment.split()
    if len(parts) < 2:
        return []

    day_part, time_part = parts[0], " ".join(parts[1:])
    ranges = TIME_RANGE_RE.findall(time_part)
    if len(ranges) != 1:
        return []

    opens, closes = ranges[0]
    return [OpeningHoursEntry(day=day, opens=opens, closes=closes) for day in parse_days(day_part)]


def _parse(raw: str) -> Optional[StructuredOpeningHours]:
    if raw == SPECIAL_ALWAYS_OPEN:
        return StructuredOpeningHours(entries=[], special=SPECIAL_ALWAYS_OPEN)
    if "appointment" in raw.lower():
        return StructuredOpeningHours(entries=[], special=SPECIAL_BY_APPOINTMENT)

    entries: List[OpeningHoursEntry] = []
    for segment in (s.strip() for s in raw.split(";")):
        # Closed days are represented by the absence of an entry.
        if "off" in segment:
            continue
        entries.extend(parse_segment(segment))

    if not entries:
        return None
    return StructuredOpeningHours(entries=entries, special=None)


def parse_opening_hours(raw: Optional[str]) -> Optional[StructuredOpeningHours]:
    """Convert an OSM ``opening_hours`` string into a weekly schedule.

    Returns ``None`` for blank or unparseable input; it never raises.
    """

    if not raw or not raw.strip():
        return None
    try:
        return _parse(raw.strip())
    except Exception:
        logger.debug("Failed to parse opening hours %r", raw, exc_info=True)
        return None


def format_opening_hours_preview(raw: Optional[str]) -> str:
    """Render an OSM ``opening_hours`` string as a short German preview."""

    if not raw or not raw.strip():
        return ""
    text = raw.strip()
    if text == SPECIAL_ALWAYS_OPEN:
        return "Täglich 24 Stunden"

    text = _HOLIDAY_CLOSED_RE.sub("Feiertage geschlossen", text)
    text = _DAYS_CLOSED_RE.sub(r"\1 geschlossen", text)
    text = _GERMAN_DAY_RE.sub(lambda match: GERMAN_DAYS[match.group(1)], text)
    return _SEPARATOR_RE.sub(", ", text)
