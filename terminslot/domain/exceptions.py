"""
Domain-specific exception hierarchy for the booking slot tooling.
"""

from __future__ import annotations

from typing import Optional


class TerminslotError(Exception):
    """Base class for all application-level errors."""


class BookingAPIError(TerminslotError):
    """Raised when booking data cannot be fetched, parsed or submitted."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SlotUnavailableError(TerminslotError):
    """Raised when the chosen slot is no longer offered at submit time."""


class ConfigurationError(TerminslotError):
    """Raised when a doctor profile cannot be turned into a schedule."""
