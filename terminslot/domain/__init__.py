"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    AppointmentDetails,
    Booking,
    BreakInterval,
    ClosureRange,
    DayHours,
    DaySchedule,
    DayStatus,
    GuestVisit,
    TimeRange,
    WeeklySchedule,
)
from .slot_calculator import SlotCalculator, generate_guest_visit_slots

__all__ = [
    "AppointmentDetails",
    "Booking",
    "BreakInterval",
    "ClosureRange",
    "DayHours",
    "DaySchedule",
    "DayStatus",
    "GuestVisit",
    "TimeRange",
    "WeeklySchedule",
    "SlotCalculator",
    "generate_guest_visit_slots",
]
