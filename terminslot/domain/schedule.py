"""
Normalization of doctor profile payloads into the canonical domain shapes.

The backend has shipped two field conventions over time: ``open``/``close``
with a ``closed`` flag, and ``od``/``do`` with an inverted ``radi`` flag.
Both are folded into ``DaySchedule`` here so the calculator only ever sees
one shape.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pendulum
from pendulum import DateTime

from .models import (
    CLOSED_DAY,
    WEEKDAY_NAMES_BS,
    Booking,
    BreakInterval,
    ClosureRange,
    DayHours,
    DaySchedule,
    WeeklySchedule,
)

logger = logging.getLogger(__name__)

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

_WEEKDAY_KEYS: Dict[str, int] = {name: idx for idx, name in enumerate(WEEKDAY_NAMES_BS)}
_WEEKDAY_KEYS.update({
    "cetvrtak": 3,
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
})


def parse_clock(value: Any) -> Optional[int]:
    """
    Parse "HH:MM" (or "HH:MM:SS") into minutes since midnight.

    Returns None for anything that is not a valid wall-clock time.
    "24:00" is accepted as end of day.
    """
    if not isinstance(value, str):
        return None

    match = _CLOCK_RE.match(value.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        return None

    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    """Format minutes since midnight as "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _weekday_index(key: Any) -> Optional[int]:
    if isinstance(key, int) and not isinstance(key, bool):
        return key if 0 <= key <= 6 else None
    if isinstance(key, str):
        return _WEEKDAY_KEYS.get(key.strip().lower())
    return None


def _normalize_day(name: Any, entry: Any) -> DaySchedule:
    if not isinstance(entry, Mapping):
        logger.warning("Working hours for %s are not a mapping: %r", name, entry)
        return CLOSED_DAY

    if entry.get("closed") is True or entry.get("radi") is False:
        return CLOSED_DAY

    raw_open = entry.get("open") or entry.get("od")
    raw_close = entry.get("close") or entry.get("do")
    open_minute = parse_clock(raw_open)
    close_minute = parse_clock(raw_close)

    if open_minute is None or close_minute is None:
        # Folded into "closed", but worth surfacing: a real day off uses the flag
        logger.warning(
            "Working hours for %s have missing or malformed boundaries (%r - %r); treating as closed",
            name, raw_open, raw_close,
        )
        return CLOSED_DAY

    if open_minute >= close_minute:
        logger.warning(
            "Working hours for %s open at %s but close at %s; treating as closed",
            name, raw_open, raw_close,
        )
        return CLOSED_DAY

    return DaySchedule(closed=False, open_minute=open_minute, close_minute=close_minute)


def normalize_weekly_schedule(raw: Optional[Mapping[Any, Any]]) -> WeeklySchedule:
    """
    Build a ``WeeklySchedule`` from a ``radno_vrijeme`` payload.

    Keys may be Bosnian or English weekday names or Monday-first indexes.
    Unknown keys are ignored with a warning.
    """
    if not raw:
        return WeeklySchedule(days={}, is_configured=False)

    days: Dict[int, DaySchedule] = {}
    for key, entry in raw.items():
        weekday = _weekday_index(key)
        if weekday is None:
            logger.warning("Ignoring unknown weekday key in working hours: %r", key)
            continue
        days[weekday] = _normalize_day(key, entry)

    return WeeklySchedule(days=days, is_configured=True)


def _interval_bounds(entry: Mapping[str, Any]) -> tuple[Any, Any]:
    start = entry.get("start") or entry.get("od")
    end = entry.get("end") or entry.get("do")
    return start, end


def normalize_breaks(raw: Optional[Iterable[Any]]) -> List[BreakInterval]:
    """Convert a ``pauze`` payload into break intervals, dropping malformed entries."""
    breaks: List[BreakInterval] = []

    for entry in raw or []:
        if not isinstance(entry, Mapping):
            logger.warning("Ignoring malformed break entry: %r", entry)
            continue

        raw_start, raw_end = _interval_bounds(entry)
        start = parse_clock(raw_start)
        end = parse_clock(raw_end)

        if start is None or end is None or start >= end:
            logger.warning("Ignoring malformed break %r - %r", raw_start, raw_end)
            continue

        breaks.append(BreakInterval(start_minute=start, end_minute=end))

    return breaks


def _parse_day(value: Any, timezone: str) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    try:
        parsed = pendulum.parse(value.strip(), tz=timezone)
    except (ValueError, TypeError):
        return None

    if isinstance(parsed, DateTime):
        return parsed.in_timezone(timezone).date()
    if isinstance(parsed, date):
        return parsed
    return None


def normalize_closures(
    raw: Optional[Iterable[Any]],
    timezone: str = "Europe/Sarajevo"
) -> List[ClosureRange]:
    """Convert an ``odmori`` payload into closure ranges."""
    closures: List[ClosureRange] = []

    for entry in raw or []:
        if not isinstance(entry, Mapping):
            logger.warning("Ignoring malformed closure entry: %r", entry)
            continue

        raw_start, raw_end = _interval_bounds(entry)
        start = _parse_day(raw_start, timezone)
        end = _parse_day(raw_end, timezone)

        if start is None or end is None or start > end:
            logger.warning("Ignoring malformed closure %r - %r", raw_start, raw_end)
            continue

        closures.append(ClosureRange(
            start=start,
            end=end,
            reason=entry.get("reason") or entry.get("razlog"),
        ))

    return closures


def normalize_bookings(
    raw: Optional[Iterable[Any]],
    timezone: str = "Europe/Sarajevo"
) -> List[Booking]:
    """
    Convert booked-slot payloads (``datum_vrijeme``, ``trajanje_minuti``).

    Naive timestamps are read in ``timezone``; every start is converted into
    it so calendar-day comparisons are made in local time.
    """
    bookings: List[Booking] = []

    for entry in raw or []:
        if not isinstance(entry, Mapping):
            logger.warning("Ignoring malformed booking entry: %r", entry)
            continue

        raw_start = entry.get("datum_vrijeme") or entry.get("start")
        try:
            start = pendulum.parse(str(raw_start), tz=timezone)
        except (ValueError, TypeError):
            start = None

        if not isinstance(start, DateTime):
            logger.warning("Ignoring booking with unparseable start: %r", raw_start)
            continue

        duration = entry.get("trajanje_minuti")
        if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
            duration = None

        bookings.append(Booking(start=start.in_timezone(timezone), duration_minutes=duration))

    return bookings


def resolve_day_hours(day: date, schedule: WeeklySchedule) -> Optional[DayHours]:
    """Return the working interval for ``day``, or None when the practice is closed."""
    entry = schedule.for_weekday(day.weekday())

    if entry.closed or entry.open_minute is None or entry.close_minute is None:
        return None

    return DayHours(open_minute=entry.open_minute, close_minute=entry.close_minute)


def is_closure_day(day: date, closures: Iterable[ClosureRange]) -> bool:
    """Check whether ``day`` falls inside any closure range (inclusive)."""
    return any(closure.contains(day) for closure in closures)
