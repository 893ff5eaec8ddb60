# backend/database/models/__init__.py
"""Record types persisted by the booking stores."""

from .booking import (
    ADMIN_LOCATION,
    DEFAULT_SPORT,
    GENERIC_LOCATIONS,
    MISSING,
    NO_SUBJECT,
    NOT_AVAILABLE,
    TBD,
    UNKNOWN_LOCATION,
    BookingAlert,
    Platform,
)

__all__ = [
    "ADMIN_LOCATION",
    "DEFAULT_SPORT",
    "GENERIC_LOCATIONS",
    "MISSING",
    "NO_SUBJECT",
    "NOT_AVAILABLE",
    "TBD",
    "UNKNOWN_LOCATION",
    "BookingAlert",
    "Platform",
]
