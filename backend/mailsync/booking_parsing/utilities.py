"""
Booking Parser Utilities

Common utility functions for parsing booking emails.
Includes:
- HTML/text body normalization into ordered lines
- Location gazetteer and sport lookup
- Date pattern cascade and canonical date rendering
- Time and time-range patterns
"""

import re
from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional

from bs4 import BeautifulSoup

from database.models.booking import (
    ADMIN_LOCATION,
    DEFAULT_SPORT,
    UNKNOWN_LOCATION,
    Platform,
)

# Facility names recognised in booking emails, in match priority order
GAZETTEER = [
    'Matoshree', 'Matoshri', 'Baner', 'Model Colony', 'Model Coloney',
    'Dahisar', 'Borivali', 'Andheri', 'Thane', 'Ghatkopar', 'Powai',
]

# Spelling variants collapsed to one canonical facility name
LOCATION_SYNONYMS = {
    'Matoshri': 'Matoshree',
    'Model Coloney': 'Model Colony',
}

SPORTS = ['Badminton', 'Cricket', 'Pickleball', 'Football', 'Tennis', 'Squash']

# Tags whose boundaries become line breaks
BLOCK_TAGS = [
    'p', 'div', 'tr', 'li', 'ul', 'ol', 'table', 'tbody', 'thead', 'tfoot',
    'section', 'article', 'header', 'footer', 'blockquote', 'center',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
]

MONTH_PATTERN = (
    r'(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|'
    r'Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)'
)
WEEKDAY_PATTERN = r'(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)[a-z]*'
ORDINAL = r'(?:st|nd|rd|th)?'

# Date cascade: (kind, pattern), tried in order
DATE_PATTERNS = [
    # 06 Feb 2026, 6th February, 2026
    ('DMY_NAME', rf"\b(\d{{1,2}}){ORDINAL}\s+({MONTH_PATTERN})\b,?\s*(\d{{4}})\b"),
    # 06 Feb '26
    ('DMY_NAME_SHORT', rf"\b(\d{{1,2}}){ORDINAL}\s+({MONTH_PATTERN})\b,?\s*['’](\d{{2}})\b"),
    # Feb 6, 2026
    ('MDY_NAME', rf"\b({MONTH_PATTERN})\b\.?\s+(\d{{1,2}}){ORDINAL},?\s*(\d{{4}})\b"),
    # 2026-02-06
    ('YMD', r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b"),
    # 06-02-2026, 06/02/26
    ('DMY_NUM', r"\b(\d{1,2})[-/](\d{1,2})[-/](\d{2,4})\b"),
    # Friday, 6 Feb
    ('WEEKDAY_DM', rf"\b{WEEKDAY_PATTERN},?\s+(\d{{1,2}}){ORDINAL}\s+({MONTH_PATTERN})\b"),
    # Today / Tomorrow
    ('RELATIVE', r"\b(today|tomorrow)\b"),
]

# Year-less forms, only used for the last-resort whole-body date search
BROAD_DATE_PATTERNS = [
    ('DM_NAME', rf"\b(\d{{1,2}}){ORDINAL}\s+({MONTH_PATTERN})\b"),
    ('MD_NAME', rf"\b({MONTH_PATTERN})\b\.?\s+(\d{{1,2}}){ORDINAL}\b"),
]

_COMPILED_DATES = [(kind, re.compile(p, re.IGNORECASE)) for kind, p in DATE_PATTERNS]
_COMPILED_BROAD = [(kind, re.compile(p, re.IGNORECASE)) for kind, p in BROAD_DATE_PATTERNS]

# Dates that carry a year, used by the whole-text date+time fallback
FULL_DATE_PATTERN = '|'.join(
    f'(?:{p})' for kind, p in DATE_PATTERNS if kind in ('DMY_NAME', 'DMY_NAME_SHORT', 'MDY_NAME')
)

TIME_PATTERN = r"\d{1,2}:\d{2}\s*(?:AM|PM)"
RANGE_SEPARATOR = r"\s*(?:-|–|—|\bto\b)\s*"
TIME_RANGE_PATTERN = rf"{TIME_PATTERN}(?:{RANGE_SEPARATOR}{TIME_PATTERN})?"

TIME_RE = re.compile(TIME_PATTERN, re.IGNORECASE)
TIME_RANGE_RE = re.compile(TIME_RANGE_PATTERN, re.IGNORECASE)
EXPLICIT_RANGE_RE = re.compile(rf"{TIME_PATTERN}{RANGE_SEPARATOR}{TIME_PATTERN}", re.IGNORECASE)

MONTH_MAP = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}


class DateHit(NamedTuple):
    text: str
    kind: str
    groups: tuple


def text_to_lines(text: str) -> list[str]:
    """Split text into trimmed, whitespace-collapsed, non-empty lines."""
    if not text:
        return []
    lines = []
    for raw in text.replace('\r\n', '\n').replace('\r', '\n').split('\n'):
        line = re.sub(r'\s+', ' ', raw).strip()
        if line:
            lines.append(line)
    return lines


def html_to_lines(html: str) -> list[str]:
    """
    Convert HTML to ordered plain-text lines.

    Block-level boundaries and <br> become line breaks, table cells are
    separated by spaces, script/style/head content is dropped.
    """
    if not html:
        return []

    try:
        soup = BeautifulSoup(html, 'lxml')
    except Exception:
        soup = BeautifulSoup(html, 'html.parser')

    for element in soup(['script', 'style', 'head', 'meta', 'noscript', 'title']):
        element.decompose()

    for br in soup.find_all('br'):
        br.replace_with('\n')

    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before('\n')
        tag.insert_after('\n')

    for cell in soup.find_all(['td', 'th']):
        cell.insert_after(' ')

    return text_to_lines(soup.get_text())


def looks_like_html(text: str) -> bool:
    return bool(re.search(r'<(?:br|p|div|td|tr|table|span|strong|html|body)\b', text or '', re.IGNORECASE))


def normalize_body(html: str, text: str) -> list[str]:
    """
    Produce the ordered line list used by every extraction step.

    The plain-text part wins when present (markup inside it is still
    stripped); the HTML part is used otherwise.
    """
    if text and text.strip():
        return html_to_lines(text) if looks_like_html(text) else text_to_lines(text)
    return html_to_lines(html)


def find_location(text: str, platform) -> str:
    """First gazetteer facility found in text, else the platform's default location."""
    for name in GAZETTEER:
        if re.search(rf"\b{re.escape(name)}\b", text, re.IGNORECASE):
            return LOCATION_SYNONYMS.get(name, name)

    if platform == Platform.SYSTEM:
        return ADMIN_LOCATION
    return UNKNOWN_LOCATION


def find_sport(text: str) -> str:
    for sport in SPORTS:
        if re.search(rf"\b{sport}\b", text, re.IGNORECASE):
            return sport
    return DEFAULT_SPORT


def find_date(text: str, broad: bool = False, relative: bool = True) -> Optional[DateHit]:
    """
    Find the first date-shaped substring using the pattern cascade.

    Args:
        text: Text to search
        broad: Also accept year-less dates ("6 Feb", "Feb 6")
        relative: Accept "Today"/"Tomorrow"

    Returns:
        DateHit or None
    """
    if not text:
        return None

    cascade = list(_COMPILED_DATES)
    if not relative:
        cascade = [(kind, p) for kind, p in cascade if kind != 'RELATIVE']
    if broad:
        cascade += _COMPILED_BROAD

    for kind, pattern in cascade:
        match = pattern.search(text)
        if match:
            return DateHit(match.group(0), kind, match.groups())
    return None


def _month_number(name: str) -> int:
    return MONTH_MAP[name.lower()[:3]]


def _reference_date(reference) -> Optional[date]:
    if reference is None:
        return None
    if isinstance(reference, datetime):
        return reference.date()
    return reference


def canonical_date(hit: DateHit, reference=None) -> str:
    """
    Render a date hit as 'DD Mon YYYY' (e.g. '06 Feb 2026').

    Two-digit years are 20xx, numeric dates are day-first, and relative or
    year-less dates resolve against the reference (message receipt) date.
    Falls back to the matched text when the date cannot be resolved.
    """
    ref = _reference_date(reference)
    g = hit.groups

    try:
        if hit.kind == 'DMY_NAME':
            resolved = date(int(g[2]), _month_number(g[1]), int(g[0]))
        elif hit.kind == 'DMY_NAME_SHORT':
            resolved = date(2000 + int(g[2]), _month_number(g[1]), int(g[0]))
        elif hit.kind == 'MDY_NAME':
            resolved = date(int(g[2]), _month_number(g[0]), int(g[1]))
        elif hit.kind == 'YMD':
            resolved = date(int(g[0]), int(g[1]), int(g[2]))
        elif hit.kind == 'DMY_NUM':
            year = int(g[2])
            if year < 100:
                year += 2000
            resolved = date(year, int(g[1]), int(g[0]))
        elif ref is None:
            return hit.text
        elif hit.kind == 'RELATIVE':
            resolved = ref if g[0].lower() == 'today' else ref + timedelta(days=1)
        elif hit.kind in ('WEEKDAY_DM', 'DM_NAME'):
            resolved = date(ref.year, _month_number(g[1]), int(g[0]))
        elif hit.kind == 'MD_NAME':
            resolved = date(ref.year, _month_number(g[0]), int(g[1]))
        else:
            return hit.text
    except (ValueError, KeyError):
        return hit.text

    return resolved.strftime('%d %b %Y')


def find_times(text: str) -> list[str]:
    """All times or time ranges in text, in order of appearance."""
    return [m.group(0) for m in TIME_RANGE_RE.finditer(text or '')]


def has_time_range(text: str) -> bool:
    return bool(EXPLICIT_RANGE_RE.search(text or ''))
