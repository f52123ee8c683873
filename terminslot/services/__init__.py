"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking import (
    BookingClientProtocol,
    BookingRequest,
    BookingService,
    DoctorAvailability,
    GuestContact,
    ProfileCache,
)

__all__ = [
    "BookingClientProtocol",
    "BookingRequest",
    "BookingService",
    "DoctorAvailability",
    "GuestContact",
    "ProfileCache",
]
