# backend/database/models/booking.py
"""Booking alert record and its sentinel values.

Every field of a BookingAlert holds either a resolved value or one of the
named sentinels below, never an empty string or None. Records cross the
store boundary as camelCase dicts (the shape the dashboard consumes).
"""

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum

# Sentinel values for unresolved fields
MISSING = "MISSING"  # booking_slot
TBD = "TBD"  # game_date, game_time
NOT_AVAILABLE = "N/A"  # customer_name, paid_amount
UNKNOWN_LOCATION = "Unknown Location"
ADMIN_LOCATION = "Security/Admin"  # location for System mail
DEFAULT_SPORT = "General"
NO_SUBJECT = "No Subject"

# Locations that mean "nobody in particular" for push targeting
GENERIC_LOCATIONS = frozenset({"", "Unknown", UNKNOWN_LOCATION, DEFAULT_SPORT})


class Platform(str, Enum):
    """Source platforms a booking email can come from"""
    PLAYO = "Playo"
    HUDLE = "Hudle"
    DISTRICT = "District"
    KHELOMORE = "Khelomore"
    SYSTEM = "System"


# Persisted key for each attribute
_FIELD_KEYS = {
    "id": "id",
    "platform": "platform",
    "location": "location",
    "booking_slot": "bookingSlot",
    "game_date": "gameDate",
    "game_time": "gameTime",
    "sport": "sport",
    "customer_name": "customerName",
    "paid_amount": "paidAmount",
    "message": "message",
    "timestamp": "timestamp",
}


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class BookingAlert:
    """One booking extracted from one email."""
    id: str
    platform: Platform
    location: str = UNKNOWN_LOCATION
    booking_slot: str = MISSING
    game_date: str = TBD
    game_time: str = TBD
    sport: str = DEFAULT_SPORT
    customer_name: str = NOT_AVAILABLE
    paid_amount: str = NOT_AVAILABLE
    message: str = NO_SUBJECT
    timestamp: datetime = None

    def __post_init__(self):
        """Coerce platform/timestamp and reject empty fields"""
        try:
            object.__setattr__(self, "platform", Platform(self.platform))
        except ValueError:
            raise ValueError(f"Unknown platform: {self.platform!r}")

        object.__setattr__(self, "timestamp", _parse_timestamp(self.timestamp))
        object.__setattr__(self, "id", str(self.id))

        for f in fields(self):
            if f.name in ("platform", "timestamp"):
                continue
            value = getattr(self, f.name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"BookingAlert.{f.name} must be a non-empty string (got {value!r})")

    @property
    def is_stale(self) -> bool:
        """True while any key field still holds its sentinel."""
        return (
            self.booking_slot == MISSING
            or self.game_date == TBD
            or self.location == UNKNOWN_LOCATION
            or self.customer_name == NOT_AVAILABLE
            or self.paid_amount == NOT_AVAILABLE
        )

    def to_dict(self) -> dict:
        data = {}
        for attr, key in _FIELD_KEYS.items():
            value = getattr(self, attr)
            if attr == "platform":
                value = value.value
            elif attr == "timestamp":
                value = value.isoformat()
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "BookingAlert":
        """Build a record from its persisted form. Raises ValueError if invalid."""
        if not isinstance(data, dict):
            raise ValueError(f"Expected dict, got {type(data).__name__}")
        if "id" not in data:
            raise ValueError("Booking record has no id")
        kwargs = {}
        for attr, key in _FIELD_KEYS.items():
            if key in data and data[key] is not None:
                kwargs[attr] = data[key]
        return cls(**kwargs)
