"""
Booking Extraction Orchestrator

Turns one classified message body into a booking candidate.
Flow: normalize → location → slot → date/time → sport → customer/amount
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from database.models.booking import NO_SUBJECT, BookingAlert, Platform
from mailsync.booking_parsers import get_platform_extractor
from mailsync.logging_config import get_logger

from .slot_extraction import (
    discover_slot_fragments,
    project_game_date,
    project_game_time,
    select_slot,
)
from .utilities import find_location, find_sport, normalize_body

logger = get_logger(__name__)


@dataclass
class MessageBody:
    """Decoded body parts of one message."""
    html: str = ""
    text: str = ""


@dataclass
class BookingCandidate:
    """Extracted booking facts; id and timestamp come from the message envelope."""
    platform: Platform
    location: str
    booking_slot: str
    game_date: str
    game_time: str
    sport: str
    customer_name: str
    paid_amount: str

    def to_alert(self, uid: str, subject: str, received_at: datetime) -> BookingAlert:
        return BookingAlert(
            id=str(uid),
            platform=self.platform,
            location=self.location,
            booking_slot=self.booking_slot,
            game_date=self.game_date,
            game_time=self.game_time,
            sport=self.sport,
            customer_name=self.customer_name,
            paid_amount=self.paid_amount,
            message=(subject or "").strip() or NO_SUBJECT,
            timestamp=received_at,
        )


def extract_booking(
    body: MessageBody,
    platform: Platform,
    subject: str = "",
    received_at: Optional[datetime] = None,
) -> BookingCandidate:
    """
    Extract booking facts from a message body.

    Args:
        body: HTML and/or plain-text parts
        platform: Platform the message was classified as
        subject: Subject line (searched for location and sport)
        received_at: Receipt time, used to resolve relative and year-less dates

    Returns:
        BookingCandidate with every field resolved or at its sentinel
    """
    platform = Platform(platform)
    lines = normalize_body(body.html, body.text)
    body_text = "\n".join(lines)
    searchable = f"{subject or ''}\n{body_text}"

    location = find_location(searchable, platform)

    fragments = discover_slot_fragments(lines)
    booking_slot = select_slot(fragments)
    game_date = project_game_date(booking_slot, lines, received_at)
    game_time = project_game_time(booking_slot)

    sport = find_sport(searchable)

    extractor = get_platform_extractor(platform)
    customer_name, paid_amount = extractor.extract_customer_info(body.html or "", body_text)

    logger.debug(
        f"Extracted {platform.value} booking: slot={booking_slot!r} date={game_date} "
        f"time={game_time} location={location}"
    )

    return BookingCandidate(
        platform=platform,
        location=location,
        booking_slot=booking_slot,
        game_date=game_date,
        game_time=game_time,
        sport=sport,
        customer_name=customer_name,
        paid_amount=paid_amount,
    )
