"""
Tests for domain models.
"""

from datetime import date

import pendulum
import pytest

from terminslot.domain.models import (
    AppointmentDetails,
    ClosureRange,
    DaySchedule,
    DayStatus,
    TimeRange,
    WeeklySchedule,
)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2026-11-02 09:00", tz="Europe/Sarajevo")
        end = pendulum.parse("2026-11-02 17:00", tz="Europe/Sarajevo")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2026-11-02 17:00", tz="Europe/Sarajevo")
        end = pendulum.parse("2026-11-02 09:00", tz="Europe/Sarajevo")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)


class TestWeeklySchedule:
    """Tests for WeeklySchedule lookups."""

    def test_missing_day_is_closed(self):
        """A weekday without an entry is closed."""
        schedule = WeeklySchedule(days={0: DaySchedule(closed=False, open_minute=540, close_minute=720)})

        assert not schedule.for_weekday(0).closed
        assert schedule.for_weekday(6).closed


class TestClosureRange:
    """Tests for ClosureRange."""

    def test_contains_is_inclusive(self):
        """Both the first and the last day are closed."""
        closure = ClosureRange(start=date(2026, 12, 24), end=date(2027, 1, 2))

        assert closure.contains(date(2026, 12, 24))
        assert closure.contains(date(2027, 1, 2))
        assert not closure.contains(date(2026, 12, 23))
        assert not closure.contains(date(2027, 1, 3))


def test_day_status_values():
    """Status values match the labels used by the calendar view."""
    assert DayStatus.FULLY_BOOKED.value == "fully-booked"
    assert DayStatus("closed") is DayStatus.CLOSED


def test_appointment_location_prefers_address():
    """The street address wins over the city."""
    details = AppointmentDetails(
        doctor_name="Dr. Amra Hodžić",
        day=date(2026, 11, 2),
        time="09:30",
        location="Sarajevo",
        address="Zmaja od Bosne 12",
    )

    assert details.display_location() == "Zmaja od Bosne 12"
    details.address = None
    assert details.display_location() == "Sarajevo"
