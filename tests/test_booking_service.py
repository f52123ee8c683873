"""
Tests for the BookingService orchestration layer.
"""

from datetime import date
from typing import Any, Dict, List

import pytest

from terminslot.config import AppConfig
from terminslot.domain.exceptions import BookingAPIError, ConfigurationError, SlotUnavailableError
from terminslot.domain.models import DayStatus, GuestVisit
from terminslot.services.booking import (
    BookingRequest,
    BookingService,
    GuestContact,
    ProfileCache,
    parse_guest_visit,
)

TODAY = date(2026, 10, 19)
MONDAY = date(2026, 11, 2)

PROFILE = {
    "id": 5,
    "ime": "Amra",
    "prezime": "Hodžić",
    "slot_trajanje_minuti": 30,
    "radno_vrijeme": {
        "ponedjeljak": {"radi": True, "od": "09:00", "do": "12:00"},
        "utorak": {"radi": False},
    },
    "pauze": [{"od": "11:00", "do": "11:30"}],
    "odmori": [{"od": "2026-11-16", "do": "2026-11-16", "razlog": "Kongres"}],
}


class StubBookingClient:
    """Minimal stub matching BookingClientProtocol."""

    def __init__(self, profile: Dict[str, Any], booked: List[Dict[str, Any]], visits=None):
        self.profile = profile
        self.booked = booked
        self.visits = visits or []
        self.profile_calls = 0
        self.booked_calls: List[tuple] = []
        self.created: List[Dict[str, Any]] = []
        self.created_guest: List[Dict[str, Any]] = []

    def get_doctor_profile(self, doctor_id):
        self.profile_calls += 1
        return self.profile

    def get_booked_slots(self, doctor_id, start_date, end_date):
        self.booked_calls.append((doctor_id, start_date.isoformat(), end_date.isoformat()))
        return self.booked

    def get_doctor_guest_visits(self, doctor_id):
        return self.visits

    def create_appointment(self, payload):
        self.created.append(payload)
        return {"id": 1}

    def create_guest_appointment(self, payload):
        self.created_guest.append(payload)
        return {"id": 2}


def _build_service(profile=PROFILE, booked=None, visits=None, **defaults):
    client = StubBookingClient(profile, booked or [], visits)
    config = AppConfig(defaults=defaults) if defaults else AppConfig()
    return BookingService(api_client=client, config=config), client


class TestLoadDoctor:
    """Tests for profile loading and caching."""

    def test_profile_is_normalized(self):
        """Legacy field names end up in a ready calculator."""
        service, _ = _build_service()

        doctor = service.load_doctor(5)

        assert doctor.display_name == "Amra Hodžić"
        assert doctor.is_configured
        assert doctor.calculator.slot_duration_minutes == 30
        assert len(doctor.calculator.breaks) == 1
        assert len(doctor.calculator.closures) == 1

    def test_missing_duration_uses_default(self):
        """A profile without slot duration uses the configured default."""
        profile = dict(PROFILE, slot_trajanje_minuti=None)
        service, _ = _build_service(profile=profile, slot_duration_minutes=20)

        assert service.load_doctor(5).calculator.slot_duration_minutes == 20

    def test_profile_is_cached(self):
        """Repeated lookups hit the cache until invalidated."""
        service, client = _build_service()

        service.load_doctor(5)
        service.load_doctor(5)
        assert client.profile_calls == 1

        service.invalidate(5)
        service.load_doctor(5)
        assert client.profile_calls == 2

    def test_invalid_profile_raises(self):
        """A non-object profile is a configuration error."""
        service, _ = _build_service(profile=["not", "a", "profile"])

        with pytest.raises(ConfigurationError):
            service.load_doctor(5)


class TestProfileCache:
    """Tests for ProfileCache expiry."""

    def test_entries_expire(self):
        """Entries disappear once the TTL has passed."""
        now = [100.0]
        cache = ProfileCache(ttl_seconds=10, clock=lambda: now[0])
        cache.put(1, "doctor")

        assert cache.get(1) == "doctor"
        now[0] = 110.0
        assert cache.get(1) is None

    def test_zero_ttl_disables_cache(self):
        cache = ProfileCache(ttl_seconds=0)
        cache.put(1, "doctor")

        assert cache.get(1) is None


class TestAvailability:
    """Tests for slot lookups through the service."""

    def test_available_slots(self):
        """Bookings for the day are fetched and excluded."""
        service, client = _build_service(
            booked=[{"datum_vrijeme": "2026-11-02 10:00:00", "trajanje_minuti": 30}]
        )

        slots = service.available_slots(5, MONDAY)

        assert slots == ["09:00", "09:30", "10:30", "11:30"]
        assert client.booked_calls == [(5, "2026-11-02", "2026-11-02")]

    def test_month_overview(self):
        """The whole month is classified with one booked-slot fetch."""
        booked = [
            {"datum_vrijeme": f"2026-11-09 {t}:00", "trajanje_minuti": 30}
            for t in ("09:00", "09:30", "10:00", "10:30", "11:30")
        ]
        service, client = _build_service(booked=booked)

        statuses = service.month_overview(5, 2026, 11, today=TODAY)

        assert len(statuses) == 30
        assert client.booked_calls == [(5, "2026-11-01", "2026-11-30")]
        assert statuses[MONDAY] is DayStatus.AVAILABLE
        assert statuses[date(2026, 11, 3)] is DayStatus.CLOSED
        assert statuses[date(2026, 11, 9)] is DayStatus.FULLY_BOOKED
        assert statuses[date(2026, 11, 16)] is DayStatus.CLOSED

    def test_month_overview_closes_days_before_lead_time(self):
        """Today and the past cannot be booked."""
        service, _ = _build_service()

        statuses = service.month_overview(5, 2026, 11, today=MONDAY)

        assert statuses[MONDAY] is DayStatus.CLOSED
        assert statuses[date(2026, 11, 9)] is DayStatus.AVAILABLE


class TestBook:
    """Tests for booking submission."""

    def test_book_as_patient(self):
        """A free slot is posted to /appointments."""
        service, client = _build_service()

        service.book(BookingRequest(doctor_id=5, day=MONDAY, time="09:30", service_id=3), today=TODAY)

        assert client.created == [{
            "doktor_id": 5,
            "datum_vrijeme": "2026-11-02 09:30:00",
            "trajanje_minuti": 30,
            "usluga_id": 3,
        }]
        assert client.created_guest == []

    def test_book_as_guest(self):
        """Guest contact data goes to /appointments/guest."""
        service, client = _build_service()
        guest = GuestContact(first_name="Amar", last_name="Begić", email="amar@example.ba", phone="061000000")

        service.book(
            BookingRequest(doctor_id=5, day=MONDAY, time="09:00", note="Kontrola", guest=guest),
            today=TODAY,
        )

        payload = client.created_guest[0]
        assert payload["ime"] == "Amar"
        assert payload["telefon"] == "061000000"
        assert payload["napomena"] == "Kontrola"

    def test_taken_slot_is_refused(self):
        """A slot booked in the meantime is not submitted."""
        service, client = _build_service(
            booked=[{"datum_vrijeme": "2026-11-02 09:30:00", "trajanje_minuti": 30}]
        )

        with pytest.raises(SlotUnavailableError):
            service.book(BookingRequest(doctor_id=5, day=MONDAY, time="09:30"), today=TODAY)

        assert client.created == []

    def test_slot_before_lead_time_is_refused(self):
        """Booking for today is refused."""
        service, _ = _build_service()

        with pytest.raises(SlotUnavailableError):
            service.book(BookingRequest(doctor_id=5, day=MONDAY, time="09:30"), today=MONDAY)

    def test_book_guest_visit(self):
        """Guest visit bookings carry the visit and clinic ids."""
        service, client = _build_service(
            booked=[{"datum_vrijeme": "2026-11-14 09:00:00", "trajanje_minuti": 20}]
        )
        visit = GuestVisit(
            id=7, day=date(2026, 11, 14), open_minute=540, close_minute=600,
            slot_duration_minutes=20, clinic_name="Poliklinika Centar", clinic_id=3,
        )

        assert service.guest_visit_slots(5, visit) == ["09:20", "09:40"]

        with pytest.raises(SlotUnavailableError):
            service.book(BookingRequest(doctor_id=5, day=visit.day, time="09:00", visit=visit), today=TODAY)

        service.book(BookingRequest(doctor_id=5, day=visit.day, time="09:20", visit=visit), today=TODAY)
        assert client.created[0]["gostovanje_id"] == 7
        assert client.created[0]["klinika_id"] == 3

    def test_guest_visit_on_another_day_is_refused(self):
        """A visit booking is only ever sent for the visit date."""
        service, client = _build_service()
        visit = GuestVisit(
            id=7, day=date(2026, 11, 14), open_minute=540, close_minute=600,
            slot_duration_minutes=20, clinic_name="Poliklinika Centar", clinic_id=3,
        )

        with pytest.raises(SlotUnavailableError, match="2026-11-14"):
            service.book(
                BookingRequest(doctor_id=5, day=date(2026, 11, 20), time="09:20", visit=visit),
                today=TODAY,
            )

        assert client.created == []

        service.book(BookingRequest(doctor_id=5, day=visit.day, time="09:20", visit=visit), today=TODAY)
        assert client.created[0]["datum_vrijeme"] == "2026-11-14 09:20:00"


class TestLoadGuestVisit:
    """Tests for picking a guest visit from the doctor's list."""

    VISITS = [
        {"id": 6, "datum": "2026-11-07", "vrijeme_od": "10:00", "vrijeme_do": "12:00"},
        {
            "id": 7,
            "datum": "2026-11-14",
            "vrijeme_od": "09:00",
            "vrijeme_do": "13:00",
            "slot_trajanje_minuti": 20,
            "klinika": {"id": 3, "naziv": "Poliklinika Centar"},
        },
    ]

    def test_visit_is_found_by_id(self):
        service, _ = _build_service(visits=self.VISITS)

        visit = service.load_guest_visit(5, 7)

        assert visit.day == date(2026, 11, 14)
        assert visit.clinic_id == 3
        assert visit.slot_duration_minutes == 20

    def test_unknown_visit_raises_not_found(self):
        service, _ = _build_service(visits=self.VISITS)

        with pytest.raises(BookingAPIError) as exc_info:
            service.load_guest_visit(5, 99)

        assert exc_info.value.status_code == 404


def test_parse_guest_visit():
    """Guest visit payloads become domain objects."""
    visit = parse_guest_visit({
        "id": 7,
        "datum": "2026-11-14",
        "vrijeme_od": "09:00:00",
        "vrijeme_do": "13:00:00",
        "slot_trajanje_minuti": None,
        "prihvata_online_rezervacije": False,
        "klinika": {"id": 3, "naziv": "Poliklinika Centar"},
    }, default_duration=15)

    assert visit.day == date(2026, 11, 14)
    assert (visit.open_minute, visit.close_minute) == (540, 780)
    assert visit.slot_duration_minutes == 15
    assert visit.clinic_name == "Poliklinika Centar"
    assert not visit.accepts_online_bookings

    with pytest.raises(ConfigurationError):
        parse_guest_visit({"id": 8, "datum": "2026-11-14"})


@pytest.mark.parametrize("duration", ["20", 0, -20, True])
def test_parse_guest_visit_ignores_invalid_duration(duration):
    """Anything but a positive integer falls back to the default duration."""
    visit = parse_guest_visit({
        "id": 7,
        "datum": "2026-11-14",
        "vrijeme_od": "09:00",
        "vrijeme_do": "10:00",
        "slot_trajanje_minuti": duration,
    }, default_duration=15)

    assert visit.slot_duration_minutes == 15
