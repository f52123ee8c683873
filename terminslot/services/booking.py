"""
Application services for looking up availability and booking appointments.

The service fetches doctor profiles and booked slots through an API client
adapter and delegates the availability calculation to the domain-level
``SlotCalculator``. The client is described by a protocol so tests and the
``--mock`` mode can plug in a stub without touching the network.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import pendulum

from ..config import AppConfig
from ..domain.exceptions import BookingAPIError, ConfigurationError, SlotUnavailableError
from ..domain.models import DayStatus, GuestVisit
from ..domain.schedule import (
    normalize_bookings,
    normalize_breaks,
    normalize_closures,
    normalize_weekly_schedule,
    parse_clock,
)
from ..domain.slot_calculator import SlotCalculator, generate_guest_visit_slots

logger = logging.getLogger(__name__)


class BookingClientProtocol(Protocol):
    """Protocol describing the API client behaviour needed by the service."""

    def get_doctor_profile(self, doctor_id: int) -> Dict[str, Any]:
        """Return the raw doctor profile payload."""

    def get_booked_slots(self, doctor_id: int, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Return raw booked-slot records in the date range."""

    def get_doctor_guest_visits(self, doctor_id: int) -> List[Dict[str, Any]]:
        """Return the raw guest visits announced by the doctor."""

    def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Submit a booking for a signed-in patient."""

    def create_guest_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Submit a booking for a guest."""


@dataclass
class GuestContact:
    """Contact data required when booking without an account."""
    first_name: str
    last_name: str
    email: str
    phone: str

    def as_payload(self) -> Dict[str, str]:
        return {
            "ime": self.first_name,
            "prezime": self.last_name,
            "email": self.email,
            "telefon": self.phone,
        }


@dataclass
class DoctorAvailability:
    """A doctor profile turned into a ready-to-use calculator."""
    doctor_id: int
    profile: Dict[str, Any]
    calculator: SlotCalculator

    @property
    def display_name(self) -> str:
        name = " ".join(
            part for part in (self.profile.get("ime"), self.profile.get("prezime")) if part
        )
        return name or self.profile.get("naziv") or f"Doktor {self.doctor_id}"

    @property
    def is_configured(self) -> bool:
        return self.calculator.schedule.is_configured


class ProfileCache:
    """
    Doctor profiles keyed by id, each entry expiring after ``ttl_seconds``.

    Owned by a ``BookingService`` instance; a TTL of zero disables caching.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[int, Tuple[float, DoctorAvailability]] = {}

    def get(self, doctor_id: int) -> Optional[DoctorAvailability]:
        entry = self._entries.get(doctor_id)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[doctor_id]
            return None
        return value

    def put(self, doctor_id: int, value: DoctorAvailability) -> None:
        if self.ttl_seconds > 0:
            self._entries[doctor_id] = (self._clock(), value)

    def invalidate(self, doctor_id: Optional[int] = None) -> None:
        """Drop one doctor, or everything when ``doctor_id`` is None."""
        if doctor_id is None:
            self._entries.clear()
        else:
            self._entries.pop(doctor_id, None)


@dataclass
class BookingRequest:
    """What the patient picked in the booking form."""
    doctor_id: int
    day: date
    time: str
    service_id: Optional[int] = None
    note: Optional[str] = None
    guest: Optional[GuestContact] = None
    visit: Optional[GuestVisit] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def _slot_duration(value: Any, default: int) -> int:
    """Positive integer minutes, or ``default`` for anything else."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        return default
    return value


def parse_guest_visit(payload: Dict[str, Any], default_duration: int = 30) -> GuestVisit:
    """Convert a guest visit (gostovanje) payload into the domain model."""
    open_minute = parse_clock(payload.get("vrijeme_od"))
    close_minute = parse_clock(payload.get("vrijeme_do"))
    if open_minute is None or close_minute is None:
        raise ConfigurationError(f"Guest visit {payload.get('id')} has no valid time window")

    try:
        day = pendulum.parse(str(payload.get("datum"))).date()
    except ValueError as exc:
        raise ConfigurationError(f"Guest visit {payload.get('id')} has no valid date") from exc

    clinic = payload.get("klinika") or {}
    return GuestVisit(
        id=payload.get("id"),
        day=day,
        open_minute=open_minute,
        close_minute=close_minute,
        slot_duration_minutes=_slot_duration(payload.get("slot_trajanje_minuti"), default_duration),
        clinic_name=clinic.get("naziv", ""),
        clinic_id=clinic.get("id"),
        accepts_online_bookings=payload.get("prihvata_online_rezervacije", True) is not False,
    )


class BookingService:
    """
    Orchestrates profile retrieval, slot calculation and booking submission.
    """

    def __init__(
        self,
        api_client: BookingClientProtocol,
        config: AppConfig,
        profile_cache: Optional[ProfileCache] = None
    ) -> None:
        self._api_client = api_client
        self._config = config
        self._profiles = profile_cache or ProfileCache(config.defaults.profile_cache_ttl_seconds)

    @property
    def timezone(self) -> str:
        return self._config.timezone

    def today(self) -> date:
        return pendulum.today(self.timezone).date()

    def earliest_bookable_day(self, today: Optional[date] = None) -> date:
        """First day patients may book; today and the past are never offered by default."""
        return (today or self.today()) + timedelta(days=self._config.defaults.min_lead_days)

    def load_doctor(self, doctor_id: int) -> DoctorAvailability:
        """
        Fetch and normalize a doctor's schedule, breaks and closures.

        Raises:
            BookingAPIError: If the profile cannot be fetched
            ConfigurationError: If the profile payload is unusable
        """
        cached = self._profiles.get(doctor_id)
        if cached is not None:
            return cached

        profile = self._api_client.get_doctor_profile(doctor_id)
        if not isinstance(profile, dict):
            raise ConfigurationError(f"Doctor {doctor_id} profile is not an object")

        duration = _slot_duration(
            profile.get("slot_trajanje_minuti"), self._config.defaults.slot_duration_minutes
        )

        calculator = SlotCalculator(
            schedule=normalize_weekly_schedule(profile.get("radno_vrijeme")),
            breaks=normalize_breaks(profile.get("pauze")),
            closures=normalize_closures(profile.get("odmori"), self.timezone),
            slot_duration_minutes=duration,
            timezone=self.timezone,
        )
        availability = DoctorAvailability(doctor_id=doctor_id, profile=profile, calculator=calculator)

        if not availability.is_configured:
            logger.warning("Doctor %s has no working hours configured", doctor_id)

        self._profiles.put(doctor_id, availability)
        return availability

    def invalidate(self, doctor_id: Optional[int] = None) -> None:
        self._profiles.invalidate(doctor_id)

    def available_slots(self, doctor_id: int, day: date) -> List[str]:
        """Free start times for ``day`` given the doctor's current bookings."""
        doctor = self.load_doctor(doctor_id)
        raw = self._api_client.get_booked_slots(doctor_id, day, day)
        bookings = normalize_bookings(raw, self.timezone)
        return doctor.calculator.available_slots(day, bookings)

    def month_overview(
        self,
        doctor_id: int,
        year: int,
        month: int,
        today: Optional[date] = None
    ) -> Dict[date, DayStatus]:
        """
        Status of every day in a month for the date picker.

        Days before the earliest bookable day are reported as closed.
        """
        doctor = self.load_doctor(doctor_id)
        first = pendulum.date(year, month, 1)
        last = first.end_of("month")

        raw = self._api_client.get_booked_slots(doctor_id, first, last)
        bookings = normalize_bookings(raw, self.timezone)
        statuses = doctor.calculator.classify_range(first, last, bookings)

        earliest = self.earliest_bookable_day(today)
        for day in statuses:
            if day < earliest:
                statuses[day] = DayStatus.CLOSED

        return statuses

    def load_guest_visit(self, doctor_id: int, visit_id: int) -> GuestVisit:
        """
        Find one of the doctor's announced guest visits.

        Raises:
            BookingAPIError: If the doctor has no visit with that id
            ConfigurationError: If the visit payload is unusable
        """
        for payload in self._api_client.get_doctor_guest_visits(doctor_id):
            if isinstance(payload, dict) and payload.get("id") == visit_id:
                return parse_guest_visit(
                    payload, default_duration=self._config.defaults.slot_duration_minutes
                )
        raise BookingAPIError(f"Gostovanje {visit_id} nije pronađeno", status_code=404)

    def guest_visit_slots(self, doctor_id: int, visit: GuestVisit) -> List[str]:
        """Free start times inside a guest visit window."""
        raw = self._api_client.get_booked_slots(doctor_id, visit.day, visit.day)
        booked_times = [
            booking.start.in_timezone(self.timezone).format("HH:mm")
            for booking in normalize_bookings(raw, self.timezone)
        ]
        return generate_guest_visit_slots(visit, booked_times)

    def book(self, request: BookingRequest, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Re-check availability and submit the booking.

        The re-check narrows the window for double bookings but cannot close
        it; the backend stays the authority.

        Raises:
            SlotUnavailableError: If the slot is not offered any more
            BookingAPIError: If the backend rejects the booking
        """
        if request.visit is not None and request.day != request.visit.day:
            raise SlotUnavailableError(
                f"Gostovanje {request.visit.id} je {request.visit.day.isoformat()}, "
                f"ne {request.day.isoformat()}"
            )
        if request.day < self.earliest_bookable_day(today):
            raise SlotUnavailableError(
                f"Termin {request.day.isoformat()} {request.time} više nije moguće zakazati"
            )

        payload: Dict[str, Any] = {
            "doktor_id": request.doctor_id,
            "datum_vrijeme": f"{request.day.isoformat()} {request.time}:00",
        }

        if request.visit is not None:
            if not request.visit.accepts_online_bookings:
                raise SlotUnavailableError("Ovo gostovanje ne prima online rezervacije")
            offered = self.guest_visit_slots(request.doctor_id, request.visit)
            payload["gostovanje_id"] = request.visit.id
            payload["klinika_id"] = request.visit.clinic_id
        else:
            offered = self.available_slots(request.doctor_id, request.day)
            payload["trajanje_minuti"] = self.load_doctor(request.doctor_id).calculator.slot_duration_minutes

        if request.time not in offered:
            raise SlotUnavailableError(
                f"Termin {request.day.isoformat()} {request.time} nije dostupan"
            )

        if request.service_id is not None:
            payload["usluga_id"] = request.service_id
        if request.note:
            payload["napomena"] = request.note
        payload.update(request.extra)

        if request.guest is not None:
            payload.update(request.guest.as_payload())
            response = self._api_client.create_guest_appointment(payload)
        else:
            response = self._api_client.create_appointment(payload)

        logger.info(
            "Booked doctor %s on %s at %s", request.doctor_id, request.day.isoformat(), request.time
        )
        return response
