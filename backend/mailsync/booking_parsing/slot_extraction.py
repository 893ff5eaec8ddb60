"""
Booking Slot Extraction

Finds the booked date/time slot in a normalized email body:
1. Keyword-anchored window scan (first keyword yielding fragments wins)
2. Global date...time scan over all lines as a fallback
3. Cleanup and selection of the fragments into one slot string
4. Projection of the slot onto game_date and game_time
"""

import re
from typing import Optional

from database.models.booking import MISSING, TBD
from mailsync.logging_config import get_logger

from .slot_merger import SEGMENT_SEPARATOR, merge_time_ranges
from .utilities import (
    FULL_DATE_PATTERN,
    RANGE_SEPARATOR,
    TIME_PATTERN,
    canonical_date,
    find_date,
    find_times,
    has_time_range,
)

logger = get_logger(__name__)


# Anchor keywords, in priority order
SLOT_KEYWORDS = [
    'slot', 'booking date', 'match date', 'start time', 'booking time',
    'venue', 'purchase', 'event date', 'match time', 'transaction',
    'invoice', 'date of play', 'booking details', 'booked for',
]

SLOT_WINDOW = 15
DATE_LOOKBEHIND = 4
TIME_LOOKAHEAD = 3

# Forwarded/quoted mail headers; their dates are not the booking date
TRANSPORT_HEADER_RE = re.compile(r'^\s*(?:date|sent|from|to|subject|received)\s*:', re.IGNORECASE)

# Audit trail lines carry the action date, not the game date
AUDIT_PHRASES = ['cancelled on', 'canceled on', 'booked on', 'created on', 'paid on']

PLACEHOLDER = '__:'

GLOBAL_SLOT_RE = re.compile(
    rf"(?:{FULL_DATE_PATTERN}).*?{TIME_PATTERN}(?:{RANGE_SEPARATOR}{TIME_PATTERN})?",
    re.IGNORECASE,
)

_MARKER_RE = re.compile(r'__:?|MISSING')
_EDGE_PUNCTUATION_RE = re.compile(r'^[\s,\-.;:|]+|[\s,\-.;:|]+$')


def is_transport_header(line: str) -> bool:
    return bool(TRANSPORT_HEADER_RE.match(line))


def is_noise_line(line: str) -> bool:
    """Lines never used as slot evidence."""
    if is_transport_header(line) or PLACEHOLDER in line:
        return True
    lowered = line.lower()
    return any(phrase in lowered for phrase in AUDIT_PHRASES)


def _date_before(lines: list[str], index: int) -> Optional[str]:
    for k in range(index - 1, max(0, index - DATE_LOOKBEHIND) - 1, -1):
        if is_noise_line(lines[k]):
            continue
        hit = find_date(lines[k])
        if hit:
            return hit.text
    return None


def _times_after(lines: list[str], index: int) -> list[str]:
    for k in range(index + 1, min(len(lines), index + 1 + TIME_LOOKAHEAD)):
        if is_noise_line(lines[k]):
            continue
        times = find_times(lines[k])
        if times:
            return times
    return []


def scan_window(lines: list[str], anchor: int) -> list[str]:
    """Collect date+time fragments from the window starting at the anchor line."""
    fragments = []
    last_date = None

    for i in range(anchor, min(len(lines), anchor + SLOT_WINDOW)):
        line = lines[i]
        if is_noise_line(line):
            continue

        date_hit = find_date(line)
        times = find_times(line)

        if date_hit and times:
            fragments.append(line)
        elif times:
            date_text = last_date or _date_before(lines, i)
            if date_text:
                fragments.append(f"{date_text}, {', '.join(times)}")
        elif date_hit:
            following = _times_after(lines, i)
            if following:
                fragments.append(f"{date_hit.text}, {', '.join(following)}")

        if date_hit:
            last_date = date_hit.text

    return list(dict.fromkeys(fragments))


def global_scan(lines: list[str]) -> list[str]:
    fragments = []
    for line in lines:
        if is_transport_header(line):
            continue
        fragments.extend(
            m.group(0) for m in GLOBAL_SLOT_RE.finditer(line) if PLACEHOLDER not in m.group(0)
        )
    return fragments


def discover_slot_fragments(lines: list[str]) -> list[str]:
    """
    Find slot fragments in body lines.

    Each keyword anchors on the first line containing it; the first keyword
    whose window yields fragments wins. Falls back to a global scan.
    """
    for keyword in SLOT_KEYWORDS:
        anchor = next((i for i, line in enumerate(lines) if keyword in line.lower()), None)
        if anchor is None:
            continue
        fragments = scan_window(lines, anchor)
        if fragments:
            logger.debug(f"Slot anchored on '{keyword}' (line {anchor}): {len(fragments)} fragments")
            return fragments

    return global_scan(lines)


def clean_slot(fragment: str) -> str:
    cleaned = _MARKER_RE.sub('', fragment)
    cleaned = re.sub(r'\s+', ' ', cleaned)
    return _EDGE_PUNCTUATION_RE.sub('', cleaned)


def select_slot(fragments: list[str]) -> str:
    """Join the usable fragments into one slot string, or MISSING."""
    cleaned = list(dict.fromkeys(c for c in (clean_slot(f) for f in fragments) if c))
    if not cleaned:
        return MISSING

    preferred = [c for c in cleaned if has_time_range(c) or find_date(c)]
    if preferred:
        return SEGMENT_SEPARATOR.join(preferred)
    return cleaned[0]


def project_game_date(slot: str, lines: list[str], received_at=None) -> str:
    """
    Canonical game date from the slot, else from a broad whole-body pass.

    Returns:
        'DD Mon YYYY' string or TBD
    """
    if slot != MISSING:
        hit = find_date(slot)
        if hit:
            return canonical_date(hit, received_at)

    for line in lines:
        if is_noise_line(line):
            continue
        hit = find_date(line, broad=True, relative=False)
        if hit:
            return canonical_date(hit, received_at)

    return TBD


def project_game_time(slot: str) -> str:
    if slot == MISSING:
        return TBD
    return merge_time_ranges(find_times(slot)) or TBD
