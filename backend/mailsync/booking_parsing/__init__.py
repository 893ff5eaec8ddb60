"""
Booking Email Parsing Package

Architecture:
- utilities: Body normalization, location/sport lookup, date and time patterns
- filtering: Platform classification and review-request rejection
- slot_extraction: Keyword-anchored slot discovery and date/time projection
- slot_merger: Time range merging
- orchestrator: Extraction coordination for one message

Public API:
- classify_platform(subject, sender)
- extract_booking(body, platform, subject, received_at)
- merge_time_ranges(matches)
"""

from .filtering import classify_platform, is_review_request
from .orchestrator import BookingCandidate, MessageBody, extract_booking
from .slot_merger import merge_time_ranges
from .utilities import normalize_body

__all__ = [
    'BookingCandidate',
    'MessageBody',
    'classify_platform',
    'extract_booking',
    'is_review_request',
    'merge_time_ranges',
    'normalize_body',
]
