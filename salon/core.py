# salon/core.py

import re
import secrets
import string
import unicodedata
from datetime import datetime, date, time, timedelta
from typing import Iterable, List, Optional, Tuple

SLUG_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
SLUG_ID_LENGTH = 6


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def js_weekday(day: date) -> int:
    """Weekday numbered the way business hours store it: 0=Sunday ... 6=Saturday."""
    return (day.weekday() + 1) % 7


def parse_duration(value) -> int:
    """Turn ``HH:MM[:SS]`` (or a plain number of minutes) into minutes."""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    parts = text.split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError("Duration must use the HH:MM or HH:MM:SS format")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if minutes > 59 or seconds > 59:
        raise ValueError("Duration must use the HH:MM or HH:MM:SS format")
    return hours * 60 + minutes + (1 if seconds else 0)


def format_duration(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}:00"


def digits_only(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def format_phone(value: str) -> str:
    """(XX) XXXXX-XXXX for 11-digit numbers, the raw value otherwise."""
    numbers = digits_only(value)
    if len(numbers) != 11:
        return value
    return f"({numbers[:2]}) {numbers[2:7]}-{numbers[7:]}"


def parse_birth_date(value: str, today: Optional[date] = None) -> date:
    """Parse a ``DD/MM/YYYY`` birth date that must not be in the future."""
    if not re.fullmatch(r"(0[1-9]|[12][0-9]|3[01])/(0[1-9]|1[0-2])/\d{4}", value):
        raise ValueError("Invalid date (use DD/MM/YYYY)")
    try:
        parsed = datetime.strptime(value, "%d/%m/%Y").date()
    except ValueError:
        raise ValueError("Invalid birth date")
    if parsed > (today or date.today()):
        raise ValueError("Invalid birth date")
    return parsed


def slugify(name: str) -> str:
    text = unicodedata.normalize("NFD", name.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", "-", text.strip())


def unique_slug(name: str) -> str:
    suffix = "".join(secrets.choice(SLUG_ID_ALPHABET) for _ in range(SLUG_ID_LENGTH))
    base = slugify(name)
    return f"{base}-{suffix}" if base else suffix


def _lunch_window(day: date, hours) -> Optional[Tuple[datetime, datetime]]:
    if hours.lunch_start is None or hours.lunch_end is None:
        return None
    return datetime.combine(day, hours.lunch_start), datetime.combine(day, hours.lunch_end)


def check_business_hours(start: datetime, duration_minutes: int, hours) -> Optional[str]:
    """Return why ``start`` cannot be booked under ``hours``, or None if it fits."""
    day = start.date()
    end = start + timedelta(minutes=duration_minutes)

    if js_weekday(day) in (hours.days_off or []):
        return "Closed on this day"

    work_start = datetime.combine(day, hours.start_time)
    work_end = datetime.combine(day, hours.end_time)
    if start < work_start or end > work_end:
        return "Appointment must be within business hours"

    lunch = _lunch_window(day, hours)
    if lunch and overlaps(start, end, *lunch):
        return "Appointment overlaps the lunch break"

    return None


def build_time_slots(
    day: date,
    duration_minutes: int,
    hours,
    busy: Iterable[Tuple[datetime, datetime]],
    now: Optional[datetime] = None,
) -> List[dict]:
    """
    Generate the day's slots for a service of ``duration_minutes``.

    Slots start every ``hours.slot_interval`` minutes from opening time and must
    end by closing time; slots that touch the lunch break are left out. A slot
    is unavailable when it overlaps a ``busy`` interval or starts before ``now``.
    """
    if js_weekday(day) in (hours.days_off or []):
        return []

    busy = list(busy)
    lunch = _lunch_window(day, hours)
    step = timedelta(minutes=hours.slot_interval or 30)
    length = timedelta(minutes=duration_minutes)

    cursor = datetime.combine(day, hours.start_time)
    limit = datetime.combine(day, hours.end_time)

    slots = []
    while cursor + length <= limit:
        slot_start = cursor
        slot_end = cursor + length
        cursor += step

        if lunch and overlaps(slot_start, slot_end, *lunch):
            continue

        available = not any(overlaps(slot_start, slot_end, b_start, b_end) for b_start, b_end in busy)
        if now is not None and slot_start < now:
            available = False

        slots.append({"time": slot_start.strftime("%H:%M"), "available": available})

    return slots


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()
