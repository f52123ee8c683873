"""
"Add to calendar" helpers for a confirmed appointment: ICS file and Google link.
"""

from datetime import datetime, timezone as dt_timezone
from typing import List, cast
from urllib.parse import quote

import icalendar
import pendulum

from ..domain.models import AppointmentDetails, TimeRange
from ..domain.schedule import parse_clock

PRODID = "-//WizMedik//Appointment//BS"
GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


def _utc(dt: datetime) -> datetime:
    return datetime.fromtimestamp(dt.timestamp(), tz=dt_timezone.utc)


def appointment_range(details: AppointmentDetails, timezone: str = "Europe/Sarajevo") -> TimeRange:
    """Start/end of the appointment as timezone-aware datetimes."""
    minutes = parse_clock(details.time)
    if minutes is None:
        raise ValueError(f"Invalid appointment time: {details.time!r}")

    start = pendulum.datetime(
        details.day.year,
        details.day.month,
        details.day.day,
        minutes // 60,
        minutes % 60,
        tz=timezone,
    )
    return TimeRange(start=start, end=start.add(minutes=details.duration_minutes))


def describe(details: AppointmentDetails) -> str:
    """Event description: doctor and specialty, then service and phone lines."""
    lines: List[str] = [f"Termin kod {details.doctor_name}"]
    if details.specialty:
        lines[0] += f" ({details.specialty})"
    if details.service_name:
        lines.append(f"Usluga: {details.service_name}")
    if details.phone:
        lines.append(f"Telefon: {details.phone}")
    return "\n".join(lines)


def build_ics(details: AppointmentDetails, timezone: str = "Europe/Sarajevo") -> bytes:
    cal = icalendar.Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")

    time_range = appointment_range(details, timezone)
    event = icalendar.Event()
    event.add("summary", f"Termin: {details.doctor_name}")
    event.add("description", describe(details))
    event.add("dtstart", _utc(time_range.start))
    event.add("dtend", _utc(time_range.end))
    event.add("location", details.display_location())
    cal.add_component(event)

    return cast(bytes, cal.to_ical())


def ics_filename(details: AppointmentDetails) -> str:
    return f"termin-{details.day.isoformat()}.ics"


def google_calendar_url(details: AppointmentDetails, timezone: str = "Europe/Sarajevo") -> str:
    """Prefilled Google Calendar "create event" link."""
    time_range = appointment_range(details, timezone)

    def fmt(dt: pendulum.DateTime) -> str:
        return dt.in_timezone("UTC").format("YYYYMMDD[T]HHmmss[Z]")

    title = quote(f"Termin: {details.doctor_name}", safe="")
    text = quote(describe(details), safe="")
    location = quote(details.display_location(), safe="")
    dates = f"{fmt(time_range.start)}/{fmt(time_range.end)}"

    return (
        f"{GOOGLE_CALENDAR_URL}?action=TEMPLATE&text={title}"
        f"&dates={dates}&details={text}&location={location}"
    )
