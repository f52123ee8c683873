"""
Mock booking API client for running without a backend.
"""

import copy
import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum

from ..domain.exceptions import BookingAPIError


class MockBookingAPIClient:
    """
    Mock client that simulates the booking platform API.

    Loads doctors, booked slots and guest visits from
    mock_booking_data.json. Bookings created through it are kept in memory
    for the lifetime of the instance.
    """

    def __init__(self, data_file: Optional[Path] = None, timezone: str = "Europe/Sarajevo"):
        """
        Initialize the mock client.

        Args:
            data_file: Optional JSON fixture; defaults to the bundled one
            timezone: Timezone used to read naive booking timestamps
        """
        self.data_file = data_file or Path(__file__).parent / "mock_booking_data.json"
        self.timezone = timezone
        self._load_data()

    def _load_data(self) -> None:
        """Load mock data from JSON file."""
        if self.data_file.exists():
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            data = {}

        self.doctors: List[Dict[str, Any]] = data.get("doctors", [])
        self.booked_slots: List[Dict[str, Any]] = data.get("booked_slots", [])
        self.guest_visits: List[Dict[str, Any]] = data.get("guest_visits", [])
        self.created: List[Dict[str, Any]] = []

    def get_doctor_profile(self, doctor_id: int) -> Dict[str, Any]:
        for doctor in self.doctors:
            if doctor.get("id") == doctor_id:
                return copy.deepcopy(doctor)
        raise BookingAPIError(f"Doktor {doctor_id} nije pronađen", status_code=404)

    def get_booked_slots(
        self,
        doctor_id: int,
        start_date: date,
        end_date: date
    ) -> List[Dict[str, Any]]:
        """Return booked slots for the doctor whose local date is within the range."""
        result: List[Dict[str, Any]] = []

        for slot in self.booked_slots:
            if slot.get("doktor_id") != doctor_id:
                continue
            try:
                start = pendulum.parse(slot["datum_vrijeme"], tz=self.timezone)
            except (KeyError, ValueError):
                # Skip invalid entries
                continue
            if start_date <= start.date() <= end_date:
                result.append({
                    "datum_vrijeme": slot["datum_vrijeme"],
                    "trajanje_minuti": slot.get("trajanje_minuti"),
                })

        return result

    def get_doctor_guest_visits(self, doctor_id: int) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(visit)
            for visit in self.guest_visits
            if visit.get("doktor_id") == doctor_id
        ]

    def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._store(payload)

    def create_guest_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._store(payload)

    def _store(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        appointment = dict(payload, id=len(self.created) + 1, status="zakazan")
        self.created.append(appointment)
        self.booked_slots.append({
            "doktor_id": payload.get("doktor_id"),
            "datum_vrijeme": payload.get("datum_vrijeme"),
            "trajanje_minuti": payload.get("trajanje_minuti"),
        })
        return {"message": "Termin uspješno zakazan", "appointment": appointment}
