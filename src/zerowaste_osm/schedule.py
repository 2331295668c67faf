"""Queries over a structured weekly schedule ("open now", week views)."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional

from .hours import SPECIAL_ALWAYS_OPEN
from .models import OpeningHoursEntry, StructuredOpeningHours

DAYS_ORDER = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DAY_NAMES = {
    "de": {
        "monday": "Montag",
        "tuesday": "Dienstag",
        "wednesday": "Mittwoch",
        "thursday": "Donnerstag",
        "friday": "Freitag",
        "saturday": "Samstag",
        "sunday": "Sonntag",
    },
    "en": {day: day.capitalize() for day in DAYS_ORDER},
}


def day_for(when: date) -> str:
    return DAYS_ORDER[when.weekday()]


def day_name(day: str, locale: str = "de") -> str:
    return DAY_NAMES.get(locale, DAY_NAMES["de"]).get(day, day)


def entry_for_day(hours: Optional[StructuredOpeningHours], day: str) -> Optional[OpeningHoursEntry]:
    if not hours:
        return None
    for entry in hours.entries:
        if entry.day == day:
            return entry
    return None


def format_entry(entry: Optional[OpeningHoursEntry]) -> str:
    if entry is None or entry.opens is None:
        return "Closed"
    return f"{entry.opens}–{entry.closes}"


def week_from_monday(hours: Optional[StructuredOpeningHours]) -> List[OpeningHoursEntry]:
    """Return seven entries Monday to Sunday, filling unlisted days as closed."""

    if not hours:
        return []
    return [entry_for_day(hours, day) or OpeningHoursEntry(day=day) for day in DAYS_ORDER]


def week_from_today(hours: Optional[StructuredOpeningHours], today: Optional[date] = None) -> List[OpeningHoursEntry]:
    """Like :func:`week_from_monday` but rotated so the list starts with ``today``."""

    week = week_from_monday(hours)
    if not week:
        return []
    start = DAYS_ORDER.index(day_for(today or date.today()))
    return week[start:] + week[:start]


def _minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def is_open_at(hours: Optional[StructuredOpeningHours], when: Optional[datetime] = None) -> bool:
    """Return whether the schedule is open at ``when`` (defaults to now).

    A closing time that is not after the opening time runs past midnight
    into the following day.
    """

    if not hours:
        return False
    if hours.special == SPECIAL_ALWAYS_OPEN:
        return True
    if hours.special:
        return False

    when = when or datetime.now()
    current = when.hour * 60 + when.minute
    today = day_for(when.date())
    yesterday = day_for(when.date() - timedelta(days=1))

    for entry in hours.entries:
        if entry.opens is None or entry.closes is None:
            continue
        opens, closes = _minutes(entry.opens), _minutes(entry.closes)
        overnight = closes <= opens
        if entry.day == today:
            if opens <= current < (closes if not overnight else 24 * 60):
                return True
        elif entry.day == yesterday and overnight and current < closes:
            return True
    return False
