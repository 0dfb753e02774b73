"""
Opening-hours parsing and formatting.

Place-search results describe hours as one human-readable line per weekday
("Monday: 9:00 AM – 5:00 PM", "Tuesday: Closed"). The directory stores them
as compact strings keyed by lowercase weekday ("9:00am-5:00pm").
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

from src.errors import ValidationError
from src.models import WEEKDAYS, DayHours

logger = logging.getLogger(__name__)

_DAY_ENTRY = re.compile(r"^\s*(\w+)\s*:\s*(.+?)\s*$")
_TIME_RANGE = re.compile(
    r"(\d{1,2}):?(\d{2})?\s*(AM|PM)\s*[–-]\s*(\d{1,2}):?(\d{2})?\s*(AM|PM)",
    re.IGNORECASE,
)
_WIRE_TIME = r"\d{1,2}:\d{2}[ap]m"
_WIRE_RANGE = re.compile(rf"^{_WIRE_TIME}-{_WIRE_TIME}$")
_SHORT_DAY = {day: day[:3].capitalize() for day in WEEKDAYS}


def parse_day_entry(text: str) -> tuple[str, DayHours | None] | None:
    """Parse one weekday description.

    Returns ``(weekday, DayHours)`` for an open day, ``(weekday, None)`` when the
    day is explicitly closed, and ``None`` when the text cannot be understood.
    """
    match = _DAY_ENTRY.match(text or "")
    if not match:
        return None
    day = match.group(1).casefold()
    if day not in WEEKDAYS:
        return None

    remainder = match.group(2)
    if remainder.casefold() == "closed":
        return day, None

    times = _TIME_RANGE.search(remainder)
    if not times:
        return None
    open_hour, open_minute, open_meridiem, close_hour, close_minute, close_meridiem = times.groups()
    return day, DayHours(
        open=f"{open_hour}:{open_minute or '00'}",
        open_meridiem=open_meridiem.upper(),
        close=f"{close_hour}:{close_minute or '00'}",
        close_meridiem=close_meridiem.upper(),
    )


def parse_weekly_hours(descriptions: Iterable[str]) -> dict[str, DayHours]:
    hours: dict[str, DayHours] = {}
    for description in descriptions:
        parsed = parse_day_entry(description)
        if parsed is None:
            logger.debug(f"Skipping unparsable opening-hours entry: {description!r}")
            continue
        day, day_hours = parsed
        if day_hours is not None:
            hours[day] = day_hours
    return hours


def format_time(time_text: str | None, meridiem: str | None) -> str | None:
    if not time_text or not time_text.strip():
        return None

    cleaned = re.sub(r"[ap]m", "", time_text.strip().casefold()).strip()
    if ":" in cleaned:
        hour_text, minute_text = (part.strip() for part in cleaned.split(":", 1))
    else:
        hour_text, minute_text = cleaned, "00"

    try:
        hour = int(hour_text)
    except ValueError:
        return None
    if hour < 1 or hour > 12:
        return None

    try:
        minute = int(minute_text or "00")
    except ValueError:
        minute = 0
    if minute < 0 or minute > 59:
        minute = 0

    suffix = (meridiem or "").strip().casefold()
    if suffix not in {"am", "pm"}:
        return None
    return f"{hour}:{minute:02d}{suffix}"


def day_hours_to_wire(day_hours: DayHours) -> str | None:
    opens = format_time(day_hours.open, day_hours.open_meridiem)
    closes = format_time(day_hours.close, day_hours.close_meridiem)
    if opens and closes:
        return f"{opens}-{closes}"
    return None


def weekly_hours_to_wire(weekly: Mapping[str, DayHours | None]) -> dict[str, str | None] | None:
    result: dict[str, str | None] = {}
    for day in WEEKDAYS:
        day_hours = weekly.get(day)
        result[day] = day_hours_to_wire(day_hours) if day_hours is not None else None
    if not any(result.values()):
        return None
    return result


def normalize_hours(value: object) -> dict[str, str | None] | None:
    """Validate an ``hours`` field submitted for a place."""
    if value is None or value == "" or value == {}:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("hours must be an object keyed by weekday")

    normalized: dict[str, str | None] = {}
    for raw_day, raw_value in value.items():
        day = str(raw_day).strip().casefold()
        if day not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday in hours: {raw_day!r}")
        normalized[day] = _normalize_day_value(day, raw_value)

    if not any(normalized.values()):
        return None
    return {day: normalized.get(day) for day in WEEKDAYS if day in normalized}


def _normalize_day_value(day: str, value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, Mapping):
        day_hours = DayHours(
            open=str(value.get("open") or ""),
            open_meridiem=str(value.get("openMeridiem") or value.get("openAmpm") or "AM"),
            close=str(value.get("close") or ""),
            close_meridiem=str(value.get("closeMeridiem") or value.get("closeAmpm") or "PM"),
        )
        if not day_hours.open.strip() and not day_hours.close.strip():
            return None
        wire = day_hours_to_wire(day_hours)
        if wire is None:
            raise ValidationError(f"Invalid opening hours for {day}")
        return wire
    if isinstance(value, str):
        compact = re.sub(r"\s+", "", value).casefold()
        if not compact:
            return None
        if not _WIRE_RANGE.match(compact):
            raise ValidationError(f"Hours for {day} must look like 9:00am-5:00pm")
        return compact
    raise ValidationError(f"Invalid opening hours for {day}")


def format_hours(hours: Mapping[str, str | None] | str | None) -> str:
    if not hours:
        return ""
    if isinstance(hours, str):
        return hours
    formatted = [f"{_SHORT_DAY[day]}: {hours[day]}" for day in WEEKDAYS if hours.get(day)]
    return ", ".join(formatted) or "Hours not specified"
