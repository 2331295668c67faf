from unittest.mock import patch

import pytest

from zerowaste_osm.hours import format_opening_hours_preview, parse_days, parse_opening_hours
from zerowaste_osm.models import OpeningHoursEntry


def test_weekdays_saturday_and_sunday_off():
    hours = parse_opening_hours("Mo-Fr 09:00-18:00; Sa 10:00-14:00; Su off")

    assert hours.special is None
    assert [entry.day for entry in hours.entries] == [
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
    ]
    assert hours.entries[0] == OpeningHoursEntry("monday", "09:00", "18:00")
    assert hours.entries[-1] == OpeningHoursEntry("saturday", "10:00", "14:00")


def test_always_open():
    hours = parse_opening_hours("24/7")

    assert hours.entries == []
    assert hours.special == "24/7"


@pytest.mark.parametrize("raw", ["by appointment", "Nach Appointment", "Mo-Fr 09:00-12:00; by Appointment"])
def test_by_appointment(raw):
    hours = parse_opening_hours(raw)

    assert hours.entries == []
    assert hours.special == "by_appointment"


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_blank_input(raw):
    assert parse_opening_hours(raw) is None


def test_comma_separated_days():
    hours = parse_opening_hours("Mo,We,Fr 10:00-12:00")

    assert [(e.day, e.opens, e.closes) for e in hours.entries] == [
        ("monday", "10:00", "12:00"),
        ("wednesday", "10:00", "12:00"),
        ("friday", "10:00", "12:00"),
    ]


def test_reversed_range_is_unparseable():
    assert parse_opening_hours("Fr-Mo 10:00-12:00") is None


def test_reversed_range_only_drops_its_segment():
    hours = parse_opening_hours("Fr-Mo 10:00-12:00; Sa 09:00-13:00")

    assert [e.day for e in hours.entries] == ["saturday"]


def test_multiple_time_ranges_drop_segment():
    assert parse_opening_hours("Mo-Fr 08:00-12:00,14:00-18:00") is None


def test_missing_day_part_is_dropped():
    assert parse_opening_hours("09:00-18:00") is None


def test_unknown_words_are_unparseable():
    assert parse_opening_hours("invalid format") is None


def test_off_segments_contribute_nothing():
    hours = parse_opening_hours("Tu-Fr 10:00-18:00; Sa 10:00-14:00; Mo,Su,PH off")

    assert len(hours.entries) == 5
    assert {e.day for e in hours.entries} == {"tuesday", "wednesday", "thursday", "friday", "saturday"}


def test_midnight_close_is_kept():
    hours = parse_opening_hours("Fr-Sa 18:00-24:00")

    assert hours.entries[0].closes == "24:00"


@pytest.mark.parametrize("raw", ["Mo 25:00-99:99", "Mo 09:60-18:00", "Mo 24:00-24:00", "Mo 09:00-24:30"])
def test_out_of_range_clock_times_are_unparseable(raw):
    assert parse_opening_hours(raw) is None


def test_out_of_range_segment_only_drops_itself():
    hours = parse_opening_hours("Mo 25:00-26:00; Tu 00:00-23:59")

    assert hours.entries == [OpeningHoursEntry("tuesday", "00:00", "23:59")]


def test_whitespace_is_tolerated():
    hours = parse_opening_hours("  Mo-Fr   09:00-18:00 ;Sa 10:00-14:00  ")

    assert len(hours.entries) == 6


@pytest.mark.parametrize(
    "spec,expected",
    [
        ("Mo", ["monday"]),
        ("Su", ["sunday"]),
        ("Mo-Mo", ["monday"]),
        ("Sa-Su", ["saturday", "sunday"]),
        ("Mo,Xx,Fr", ["monday", "friday"]),
        ("Mo-Xx", []),
        ("Mo-We-Fr", []),
        ("PH", []),
    ],
)
def test_parse_days(spec, expected):
    assert parse_days(spec) == expected


def test_unexpected_errors_are_swallowed():
    with patch("zerowaste_osm.hours.parse_segment", side_effect=RuntimeError("boom")):
        assert parse_opening_hours("Mo 09:00-10:00") is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("24/7", "Täglich 24 Stunden"),
        ("Mo-Fr 09:00-18:00", "Mo-Fr 09:00-18:00"),
        ("Tu-Th 10:00-18:00; Sa 10:00-14:00", "Di-Do 10:00-18:00, Sa 10:00-14:00"),
        ("We 10:00-12:00; Su off", "Mi 10:00-12:00, So geschlossen"),
        ("Mo-Fr 09:00-18:00; Sa,Su closed", "Mo-Fr 09:00-18:00, Sa,So geschlossen"),
        ("Mo-Sa 09:00-20:00; Su off; PH off", "Mo-Sa 09:00-20:00, So geschlossen, Feiertage geschlossen"),
        ("Mo-Fr 09:00-18:00; PH off", "Mo-Fr 09:00-18:00, Feiertage geschlossen"),
        ("Mo-Sa 09:00-20:00; PH closed", "Mo-Sa 09:00-20:00, Feiertage geschlossen"),
        ("", ""),
        (None, ""),
    ],
)
def test_format_preview(raw, expected):
    assert format_opening_hours_preview(raw) == expected
