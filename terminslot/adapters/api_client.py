"""
REST client for the booking platform API.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import BookingAPIError

logger = logging.getLogger(__name__)


class BookingAPIClient:
    """
    Client for the doctor profile, booked-slot and appointment endpoints.

    Every transport or HTTP failure is turned into ``BookingAPIError``.
    Requests are sent once; there is no retry and no idempotency key.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: API root, e.g. "https://example.ba/api"
            token: Optional bearer token for authenticated calls
            timeout: Request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def get_doctor_profile(self, doctor_id: int) -> Dict[str, Any]:
        """Fetch a doctor profile including ``radno_vrijeme``, ``pauze`` and ``odmori``."""
        data = self._request("GET", f"/doctors/{doctor_id}")
        # Some deployments wrap the profile in {"doctor": {...}}
        if isinstance(data, dict) and isinstance(data.get("doctor"), dict):
            return data["doctor"]
        if not isinstance(data, dict):
            raise BookingAPIError(f"Unexpected doctor profile payload for doctor {doctor_id}")
        return data

    def get_booked_slots(
        self,
        doctor_id: int,
        start_date: date,
        end_date: date
    ) -> List[Dict[str, Any]]:
        """
        Fetch reserved appointments in a date range.

        Returns:
            List of {"datum_vrijeme": ..., "trajanje_minuti": ...} records
        """
        data = self._request(
            "GET",
            f"/doctors/{doctor_id}/booked-slots",
            params={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return list(data.get("booked_slots") or [])
        raise BookingAPIError(f"Unexpected booked-slots payload for doctor {doctor_id}")

    def get_doctor_guest_visits(self, doctor_id: int) -> List[Dict[str, Any]]:
        """Fetch the guest visits (gostovanja) a doctor has announced at other clinics."""
        data = self._request("GET", f"/doctors/{doctor_id}/guest-visits")
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return data["data"]
        raise BookingAPIError(f"Unexpected guest visits payload for doctor {doctor_id}")

    def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Book an appointment as a signed-in patient."""
        return self._request("POST", "/appointments", json=payload) or {}

    def create_guest_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Book an appointment without an account (ime, prezime, email, telefon)."""
        return self._request("POST", "/appointments/guest", json=payload) or {}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            message = self._error_message(e.response) or str(e)
            logger.error("%s %s failed with %s: %s", method, url, status, message)
            raise BookingAPIError(message, status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise BookingAPIError(f"Request to {url} failed: {e}") from e

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise BookingAPIError(f"Invalid JSON returned by {url}") from e

    @staticmethod
    def _error_message(response: Optional[requests.Response]) -> Optional[str]:
        """Extract the backend's ``error``/``message`` field when present."""
        if response is None:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("error") or body.get("message")
        return None
