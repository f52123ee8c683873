"""
Domain models for working hours, closures, bookings and slot calculations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Optional

from pendulum import DateTime


# Monday-first, matching date.weekday()
WEEKDAY_NAMES_BS = (
    "ponedjeljak",
    "utorak",
    "srijeda",
    "četvrtak",
    "petak",
    "subota",
    "nedjelja",
)


@dataclass(frozen=True)
class TimeRange:
    """Start and end of a confirmed appointment; start must come first."""
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)


@dataclass(frozen=True)
class DaySchedule:
    """
    Working hours for one weekday, in minutes since midnight.

    When ``closed`` is set the boundaries carry no meaning.
    """
    closed: bool
    open_minute: Optional[int] = None
    close_minute: Optional[int] = None


CLOSED_DAY = DaySchedule(closed=True)


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Canonical recurring schedule keyed by weekday index (0=Monday, 6=Sunday).

    Build it with ``normalize_weekly_schedule``; missing days are closed.
    """
    days: Dict[int, DaySchedule] = field(default_factory=dict)
    is_configured: bool = True

    def for_weekday(self, weekday: int) -> DaySchedule:
        return self.days.get(weekday, CLOSED_DAY)


@dataclass(frozen=True)
class DayHours:
    """Resolved working interval for a single date."""
    open_minute: int
    close_minute: int


@dataclass(frozen=True)
class BreakInterval:
    """Daily recurring pause (e.g. lunch), in minutes since midnight."""
    start_minute: int
    end_minute: int


@dataclass(frozen=True)
class ClosureRange:
    """Inclusive calendar-day range with no availability (holiday, vacation)."""
    start: date
    end: date
    reason: Optional[str] = None

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class Booking:
    """An already reserved appointment."""
    start: DateTime
    duration_minutes: Optional[int] = None


class DayStatus(str, Enum):
    """Calendar affordance for one day."""
    CLOSED = "closed"
    AVAILABLE = "available"
    FULLY_BOOKED = "fully-booked"


@dataclass(frozen=True)
class GuestVisit:
    """A doctor's one-day guest appearance at a partner clinic."""
    id: int
    day: date
    open_minute: int
    close_minute: int
    slot_duration_minutes: int
    clinic_name: str = ""
    clinic_id: Optional[int] = None
    accepts_online_bookings: bool = True


@dataclass
class AppointmentDetails:
    """
    A confirmed appointment as shown on the confirmation screen.

    ``time`` is the "HH:MM" slot label; the appointment is assumed to last
    ``duration_minutes``.
    """
    doctor_name: str
    day: date
    time: str
    location: str
    specialty: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    service_name: Optional[str] = None
    clinic_name: Optional[str] = None
    duration_minutes: int = 30

    def display_location(self) -> str:
        return self.address or self.location
