"""Routes package for API endpoints."""

from routes.bookings import booking_bp
from routes.health import health_bp

__all__ = [
    "booking_bp",
    "health_bp",
]
