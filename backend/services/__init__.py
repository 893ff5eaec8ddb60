"""
Services Package - Business Logic Layer

This package contains service modules that encapsulate business logic,
separating it from HTTP routing concerns.

Services can be called from:
- Flask routes (HTTP requests)
- Background tasks (Celery)
- Tests

Available services:
- booking_service: Sync triggering, ledger reads and push subscriptions
"""

from . import booking_service

__all__ = [
    'booking_service',
]
