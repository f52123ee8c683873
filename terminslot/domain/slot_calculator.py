"""
Core business logic for calculating bookable appointment slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). Every call recomputes its result from the inputs.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    Booking,
    BreakInterval,
    ClosureRange,
    DayHours,
    DayStatus,
    GuestVisit,
    WeeklySchedule,
)
from .schedule import format_clock, is_closure_day, resolve_day_hours

logger = logging.getLogger(__name__)


def interval_overlaps(slot_start: int, slot_end: int, start: int, end: int) -> bool:
    """
    Three-way overlap test between a slot and a blocked interval.

    The slot is blocked when it starts inside the interval, ends inside it,
    or fully contains it. Intervals are half-open, so touching edges do not
    count as overlap.
    """
    starts_inside = start <= slot_start < end
    ends_inside = start < slot_end <= end
    contains = slot_start <= start and slot_end >= end
    return starts_inside or ends_inside or contains


class SlotCalculator:
    """
    Calculates bookable start times for one practitioner.

    Algorithm for a single day:
    1. Resolve the weekday's working hours; closed or closure days have none
    2. Walk a cursor from opening time in steps of the slot duration
    3. Skip candidates that overlap a daily break
    4. Skip candidates that overlap a booking on the same calendar day
    5. Emit the remaining start times as "HH:MM"
    """

    def __init__(
        self,
        schedule: WeeklySchedule,
        breaks: Sequence[BreakInterval] = (),
        closures: Sequence[ClosureRange] = (),
        slot_duration_minutes: int = 30,
        timezone: str = "Europe/Sarajevo"
    ):
        self.schedule = schedule
        self.breaks = list(breaks)
        self.closures = list(closures)
        self.slot_duration_minutes = slot_duration_minutes
        self.timezone = timezone

    def day_hours(self, day: date) -> Optional[DayHours]:
        """Working interval for ``day``, or None when closed or on a closure."""
        if is_closure_day(day, self.closures):
            return None
        return resolve_day_hours(day, self.schedule)

    def available_slots(self, day: date, bookings: Iterable[Booking] = ()) -> List[str]:
        """
        List free start times for ``day``, earliest first.

        Args:
            day: The calendar day to inspect
            bookings: Already reserved appointments; those on other days are ignored

        Returns:
            List of "HH:MM" strings (empty when nothing can be booked)
        """
        hours = self.day_hours(day)
        if hours is None or self.slot_duration_minutes <= 0:
            return []

        day_bookings = self._bookings_on(day, bookings)
        slots = [
            format_clock(start)
            for start in self._walk(hours)
            if not self._overlaps_booking(start, day_bookings)
        ]

        logger.debug("%s: %d free slot(s), %d booking(s)", day, len(slots), len(day_bookings))
        return slots

    def count_bookable_slots(self, day: date) -> int:
        """Number of slots on ``day`` before bookings are taken into account."""
        hours = self.day_hours(day)
        if hours is None or self.slot_duration_minutes <= 0:
            return 0
        return sum(1 for _ in self._walk(hours))

    def classify_day(self, day: date, bookings: Iterable[Booking] = ()) -> DayStatus:
        """
        Classify ``day`` for calendar display.

        Compares the number of bookings on that day against the number of
        slots the schedule offers, so a day is fully booked once the count
        of bookings reaches the count of slots.
        """
        if self.day_hours(day) is None:
            return DayStatus.CLOSED

        total_slots = self.count_bookable_slots(day)
        booked_count = len(self._bookings_on(day, bookings))

        if booked_count >= total_slots:
            return DayStatus.FULLY_BOOKED
        return DayStatus.AVAILABLE

    def classify_range(
        self,
        start: date,
        end: date,
        bookings: Iterable[Booking] = ()
    ) -> Dict[date, DayStatus]:
        """Classify every day from ``start`` to ``end`` inclusive."""
        by_day: Dict[str, List[Booking]] = {}
        for booking in bookings:
            by_day.setdefault(self._local_date_string(booking), []).append(booking)

        statuses: Dict[date, DayStatus] = {}
        current = start
        while current <= end:
            statuses[current] = self.classify_day(current, by_day.get(current.isoformat(), []))
            current += timedelta(days=1)

        return statuses

    def _walk(self, hours: DayHours) -> Iterable[int]:
        """Yield candidate start minutes that fit the working hours and avoid breaks."""
        duration = self.slot_duration_minutes
        cursor = hours.open_minute

        while cursor + duration <= hours.close_minute:
            slot_end = cursor + duration
            if not any(
                interval_overlaps(cursor, slot_end, pause.start_minute, pause.end_minute)
                for pause in self.breaks
            ):
                yield cursor
            cursor += duration

    def _overlaps_booking(self, slot_start: int, bookings: List[Booking]) -> bool:
        slot_end = slot_start + self.slot_duration_minutes

        for booking in bookings:
            local = booking.start.in_timezone(self.timezone)
            booking_start = local.hour * 60 + local.minute
            booking_end = booking_start + (booking.duration_minutes or self.slot_duration_minutes)
            if interval_overlaps(slot_start, slot_end, booking_start, booking_end):
                return True

        return False

    def _local_date_string(self, booking: Booking) -> str:
        return booking.start.in_timezone(self.timezone).to_date_string()

    def _bookings_on(self, day: date, bookings: Iterable[Booking]) -> List[Booking]:
        day_str = day.isoformat()
        return [b for b in bookings if self._local_date_string(b) == day_str]


def generate_guest_visit_slots(visit: GuestVisit, booked_times: Iterable[str] = ()) -> List[str]:
    """
    Slots for a guest visit window.

    Guest visits have no weekly schedule or breaks; a slot is taken only when
    a booking starts at exactly the same "HH:MM".
    """
    duration = visit.slot_duration_minutes
    if duration <= 0:
        return []

    taken = set(booked_times)
    slots: List[str] = []
    cursor = visit.open_minute

    while cursor + duration <= visit.close_minute:
        label = format_clock(cursor)
        if label not in taken:
            slots.append(label)
        cursor += duration

    return slots
