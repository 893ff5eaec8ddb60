"""
Slot Time Merger

Combines the time ranges found in a booking slot into the smallest set of
non-overlapping intervals, e.g. two consecutive hour bookings
'8:00 PM - 9:00 PM' and '9:00 PM - 10:00 PM' become '8:00 PM - 10:00 PM'.
Slots that run past midnight merge with the early-morning ranges that
follow them.
"""

import re
from datetime import datetime, timedelta
from typing import Iterable, Optional

# All times are placed on this date so they can be compared
REFERENCE_DATE = datetime(2000, 1, 1)
NOON = REFERENCE_DATE.replace(hour=12)
NEXT_MIDNIGHT = REFERENCE_DATE + timedelta(days=1)

SEGMENT_SEPARATOR = ' | '

_TIME_OF_DAY_RE = re.compile(r'\s*(\d{1,2}):(\d{2})\s*([AaPp])\.?[Mm]\.?\s*')
_RANGE_SPLIT_RE = re.compile(r'\s*(?:-|–|—|\bto\b)\s*', re.IGNORECASE)


def parse_time_of_day(text: str) -> Optional[datetime]:
    """Parse '7:00 PM' / '7:00pm' onto the reference date. None if invalid."""
    match = _TIME_OF_DAY_RE.fullmatch(text or '')
    if not match:
        return None

    hour, minute = int(match.group(1)), int(match.group(2))
    if not 1 <= hour <= 12 or minute > 59:
        return None

    hour = hour % 12
    if match.group(3).lower() == 'p':
        hour += 12
    return REFERENCE_DATE.replace(hour=hour, minute=minute)


def parse_time_range(text: str) -> Optional[tuple[datetime, datetime]]:
    """
    Parse a time or time range into (start, end).

    A bare time gives start == end. An end earlier than its start is taken
    to be on the following day.
    """
    parts = _RANGE_SPLIT_RE.split(text.strip(), maxsplit=1)

    start = parse_time_of_day(parts[0])
    if start is None:
        return None

    end = parse_time_of_day(parts[1]) if len(parts) > 1 else None
    if end is None:
        end = start
    elif end < start:
        end += timedelta(days=1)

    return start, end


def format_time(value: datetime) -> str:
    return value.strftime('%I:%M %p').lstrip('0')


def merge_time_ranges(matches: Iterable[str]) -> str:
    """
    Merge time/time-range strings into canonical non-overlapping segments.

    Args:
        matches: Raw matches such as ['8:00 PM - 9:00 PM', '9:00 PM - 10:00 PM']

    Returns:
        Segments joined by ' | ' (empty string if nothing parsed)
    """
    ranges = []
    for text in dict.fromkeys(m.strip() for m in matches if m and m.strip()):
        parsed = parse_time_range(text)
        if parsed:
            ranges.append(parsed)

    # A slot running past midnight continues into the next morning
    if any(end >= NEXT_MIDNIGHT for _, end in ranges):
        ranges = [
            (start + timedelta(days=1), end + timedelta(days=1)) if start < NOON else (start, end)
            for start, end in ranges
        ]

    ranges.sort()

    merged: list[list[datetime]] = []
    for start, end in ranges:
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])

    return SEGMENT_SEPARATOR.join(
        format_time(start) if start == end else f"{format_time(start)} - {format_time(end)}"
        for start, end in merged
    )
