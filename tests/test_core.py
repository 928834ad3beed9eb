from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from salon.core import (
    build_time_slots,
    check_business_hours,
    format_duration,
    format_phone,
    js_weekday,
    overlaps,
    parse_birth_date,
    parse_duration,
    slugify,
    unique_slug,
)
from salon.stats import category_breakdown, monthly_projection, percent_change

MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)


def hours(**overrides):
    values = dict(
        start_time=time(9, 0),
        end_time=time(18, 0),
        days_off=[0],
        lunch_start=None,
        lunch_end=None,
        slot_interval=30,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_overlaps_touching_intervals_do_not_overlap():
    a = datetime(2026, 1, 1, 10, 0)
    b = datetime(2026, 1, 1, 11, 0)
    c = datetime(2026, 1, 1, 12, 0)
    assert not overlaps(a, b, b, c)
    assert overlaps(a, c, b, c)


def test_js_weekday_starts_on_sunday():
    assert js_weekday(SUNDAY) == 0
    assert js_weekday(MONDAY) == 1


@pytest.mark.parametrize("value, minutes", [
    ("01:00:00", 60),
    ("00:45", 45),
    ("1:30", 90),
    ("90", 90),
    (30, 30),
])
def test_parse_duration(value, minutes):
    assert parse_duration(value) == minutes


@pytest.mark.parametrize("value", ["abc", "1:75", "1:2:3:4", ""])
def test_parse_duration_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_format_duration():
    assert format_duration(90) == "01:30:00"


def test_format_phone():
    assert format_phone("11987654321") == "(11) 98765-4321"
    assert format_phone("1133334444") == "1133334444"


def test_parse_birth_date():
    assert parse_birth_date("05/03/1990") == date(1990, 3, 5)
    with pytest.raises(ValueError):
        parse_birth_date("31/02/1990")
    with pytest.raises(ValueError):
        parse_birth_date("01/01/2030", today=date(2026, 1, 1))
    with pytest.raises(ValueError):
        parse_birth_date("1990-03-05")


def test_slugify_strips_accents_and_symbols():
    assert slugify("Corte & Barba Promoção") == "corte-barba-promocao"


def test_unique_slug_appends_random_id():
    slug = unique_slug("Agenda Online")
    assert slug.startswith("agenda-online-")
    assert len(slug) == len("agenda-online-") + 6
    assert unique_slug("Agenda Online") != slug


def test_check_business_hours():
    h = hours(lunch_start=time(12, 0), lunch_end=time(13, 0))
    assert check_business_hours(datetime(2026, 10, 19, 10, 0), 60, h) is None
    assert check_business_hours(datetime(2026, 10, 18, 10, 0), 60, h) == "Closed on this day"
    assert check_business_hours(datetime(2026, 10, 19, 17, 30), 60, h) == "Appointment must be within business hours"
    assert check_business_hours(datetime(2026, 10, 19, 11, 30), 60, h) == "Appointment overlaps the lunch break"


def test_build_time_slots_skips_lunch_and_marks_busy():
    h = hours(start_time=time(9, 0), end_time=time(14, 0), lunch_start=time(12, 0), lunch_end=time(13, 0))
    busy = [(datetime(2026, 10, 19, 10, 0), datetime(2026, 10, 19, 11, 0))]

    slots = build_time_slots(MONDAY, 60, h, busy)

    assert [s["time"] for s in slots] == ["09:00", "09:30", "10:00", "10:30", "11:00", "13:00"]
    available = {s["time"]: s["available"] for s in slots}
    assert available["09:00"] is True
    assert available["09:30"] is False
    assert available["10:30"] is False
    assert available["11:00"] is True


def test_build_time_slots_day_off_and_past():
    assert build_time_slots(SUNDAY, 30, hours(), []) == []

    slots = build_time_slots(MONDAY, 30, hours(), [], now=datetime(2026, 10, 19, 10, 15))
    available = {s["time"]: s["available"] for s in slots}
    assert available["10:00"] is False
    assert available["10:30"] is True
    assert slots[-1]["time"] == "17:30"


def test_category_breakdown():
    rows = [("Corte", 60.0), ("Barba", 20.0), ("Corte", 20.0)]
    assert category_breakdown(rows) == [
        {"category": "Corte", "total": 80.0, "percentage": 80.0},
        {"category": "Barba", "total": 20.0, "percentage": 20.0},
    ]
    assert category_breakdown([]) == []


def test_monthly_projection():
    assert monthly_projection({}) == 0.0
    assert monthly_projection({"2026-01": 100.0}) == 100.0
    assert monthly_projection({"2026-01": 100.0, "2026-02": 200.0}) == 150.0
    assert monthly_projection({
        "2025-12": 1000.0,
        "2026-01": 100.0,
        "2026-02": 200.0,
        "2026-03": 300.0,
    }) == 230.0


def test_percent_change():
    assert percent_change(150, 100) == 50.0
    assert percent_change(50, 100) == -50.0
    assert percent_change(10, 0) == 100.0
    assert percent_change(0, 0) is None
