"""
Database Layer - Public API

This module provides the public interface for booking and subscription storage.

Usage:
    from database import get_booking_store, BookingAlert

Organization:
    - models/booking.py: BookingAlert record, Platform tags and sentinels
    - bookings.py: Booking ledger stores (JSON file / Redis)
    - subscriptions.py: Push subscription stores (in-memory / Redis)
"""

from .bookings import (
    BookingStore,
    JsonFileBookingStore,
    RedisBookingStore,
    get_booking_store,
    prepare_records,
)
from .models import BookingAlert, Platform
from .subscriptions import (
    InMemorySubscriptionStore,
    LocationSubscription,
    RedisSubscriptionStore,
    get_subscription_store,
)

__all__ = [
    "BookingAlert",
    "BookingStore",
    "InMemorySubscriptionStore",
    "JsonFileBookingStore",
    "LocationSubscription",
    "Platform",
    "RedisBookingStore",
    "RedisSubscriptionStore",
    "get_booking_store",
    "get_subscription_store",
    "prepare_records",
]
