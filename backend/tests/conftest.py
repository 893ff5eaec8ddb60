"""Core test fixtures.

Provides the Flask test client, a sync configuration pointed at a
temporary data directory, and a booking record factory.

CRITICAL: Tests never touch a real mailbox, Redis or push service.
APP_ENV is forced to development and REDIS_URL is cleared before any
application module is imported.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from flask import Flask

BACKEND_DIR = Path(__file__).parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# CRITICAL: Set test mode BEFORE importing application modules
os.environ["APP_ENV"] = "development"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="booking-logs-")
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="booking-data-")
os.environ.pop("REDIS_URL", None)
os.environ.pop("KV_URL", None)
for _var in ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "EMAIL_USER", "EMAIL_PASSWORD"):
    os.environ.pop(_var, None)

from config import SyncConfig  # noqa: E402
from database.models.booking import BookingAlert, Platform  # noqa: E402

RECEIVED_AT = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# FLASK APP
# ============================================================================


@pytest.fixture(scope="session")
def app() -> Flask:
    """Flask app with test configuration."""
    from app import app as flask_app

    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app: Flask):
    """Flask test client.

    Example:
        def test_health_endpoint(client):
            response = client.get('/api/health')
            assert response.status_code == 200
    """
    return app.test_client()


# ============================================================================
# CONFIGURATION & RECORDS
# ============================================================================


@pytest.fixture
def sync_config(tmp_path) -> SyncConfig:
    """Development config with credentials and a temporary data directory."""
    return SyncConfig(
        email_user="courts@example.com",
        email_password="app-password",
        data_dir=str(tmp_path),
        retry_delay_seconds=10.0,
    )


@pytest.fixture
def make_booking():
    """Factory for BookingAlert records; fully resolved unless overridden."""

    def _make(booking_id="1", minutes_ago=0, **overrides):
        fields = {
            "id": booking_id,
            "platform": Platform.PLAYO,
            "location": "Andheri",
            "booking_slot": "06 Feb '26, 7:00 PM - 8:00 PM",
            "game_date": "06 Feb 2026",
            "game_time": "7:00 PM - 8:00 PM",
            "sport": "Badminton",
            "customer_name": "Rahul Mehta",
            "paid_amount": "1200",
            "message": "Booking confirmed",
            "timestamp": RECEIVED_AT - timedelta(minutes=minutes_ago),
        }
        fields.update(overrides)
        return BookingAlert(**fields)

    return _make
