"""Tests for platform classification."""

import pytest

from database.models.booking import Platform
from mailsync.booking_parsing.filtering import classify_platform, is_review_request


@pytest.mark.parametrize(
    "subject,sender,expected",
    [
        ("Your booking is confirmed", "Playo <noreply@playo.co>", Platform.PLAYO),
        ("Booking Confirmation #HD123", "bookings@hudle.in", Platform.HUDLE),
        ("Your tickets for Andheri Turf", "District by Zomato <noreply@district.in>", Platform.DISTRICT),
        ("KHELOMORE booking receipt", "support@example.com", Platform.KHELOMORE),
        ("Security alert", "Google <no-reply@accounts.google.com>", Platform.SYSTEM),
        ("Your verification code", "auth@example.com", Platform.SYSTEM),
    ],
)
def test_platform_detected(subject, sender, expected):
    assert classify_platform(subject, sender) is expected


@pytest.mark.parametrize(
    "subject",
    [
        "Rate your experience at Andheri",
        "How was your game?",
        "We'd love your feedback",
        "Leave a review for Baner Arena",
        "Share your experience with us",
    ],
)
def test_review_requests_rejected_even_from_platform(subject):
    """Review keywords override platform matching."""
    assert classify_platform(subject, "Playo <noreply@playo.co>") is None


def test_first_platform_in_priority_order_wins():
    assert classify_platform("Hudle booking via District", "") is Platform.HUDLE


def test_unrelated_mail_discarded():
    assert classify_platform("Weekly newsletter", "news@example.com") is None
    assert classify_platform("", "") is None


def test_is_review_request_is_case_insensitive():
    assert is_review_request("RATE YOUR game")
    assert not is_review_request("Booking confirmed")
