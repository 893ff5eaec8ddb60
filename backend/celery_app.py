"""Celery application configuration for background booking syncs."""

import os

from celery import Celery
from dotenv import load_dotenv

from config import load_sync_config

# Load environment variables from .env file
load_dotenv()

# Initialize Celery
celery_app = Celery(
    "booking_tasks",
    broker=os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0"),
    backend=os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0"),
    include=["tasks.booking_tasks"],
)

SYNC_INTERVAL_SECONDS = load_sync_config().sync_interval_seconds

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes hard limit (deep scans of 90 days)
    task_soft_time_limit=540,
    result_expires=3600,  # Keep results for 1 hour
    # One mailbox connection at a time
    worker_concurrency=1,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "sync-bookings": {
            "task": "tasks.booking_tasks.sync_bookings_task",
            "schedule": float(SYNC_INTERVAL_SECONDS),
            "kwargs": {"deep": False},
            # A missed beat is superseded by the next one
            "options": {"expires": SYNC_INTERVAL_SECONDS},
        },
    },
)
