"""
Booking Email Filtering

Classifies a message by source platform from its subject and sender.
Review/feedback requests are rejected even when they come from a
booking platform.
"""

from typing import Optional

from database.models.booking import Platform


# Any one of these rejects the message outright
REVIEW_KEYWORDS = [
    'review', 'rate your', 'feedback', 'how was', 'share your experience',
]

# Platform keywords, checked in order; first match wins
PLATFORM_KEYWORDS = [
    (Platform.PLAYO, ['playo']),
    (Platform.HUDLE, ['hudle']),
    (Platform.DISTRICT, ['district']),
    (Platform.KHELOMORE, ['khelomore']),
    (Platform.SYSTEM, ['google', 'security', 'verification', 'sign-in']),
]


def is_review_request(text: str) -> bool:
    text = (text or '').lower()
    return any(keyword in text for keyword in REVIEW_KEYWORDS)


def classify_platform(subject: str, sender: str) -> Optional[Platform]:
    """
    Determine the source platform of a message.

    Args:
        subject: Decoded subject line
        sender: Decoded From header

    Returns:
        Platform, or None if the message should be discarded
    """
    haystack = f"{subject or ''} {sender or ''}".lower()

    if is_review_request(haystack):
        return None

    for platform, keywords in PLATFORM_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return platform

    return None
