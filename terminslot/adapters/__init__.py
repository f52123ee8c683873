"""
Adapters layer - External integrations (booking REST API, calendar export).
"""

from .api_client import BookingAPIClient
from .mock_api_client import MockBookingAPIClient

__all__ = ["BookingAPIClient", "MockBookingAPIClient"]
