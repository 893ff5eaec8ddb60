"""
Booking Parser Base - Shared Utilities and Registry

Contains:
- Extractor registry and decorator for platform-specific extractors
- Generic customer name / paid amount patterns used as the fallback
- Name and amount validation shared by all platforms
"""

import re
from typing import Optional

from database.models.booking import NOT_AVAILABLE, Platform


# Registry of platform -> extractor class
PLATFORM_EXTRACTORS: dict[Platform, type] = {}

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 30

MIN_AMOUNT = 1
MAX_AMOUNT = 100000

# A "name" containing any of these is a venue or company, not a customer
NAME_NOISE_WORDS = {
    'venue', 'arena', 'sports', 'turf', 'club', 'academy', 'court', 'ground',
    'team', 'booking', 'pvt', 'ltd',
    'playo', 'hudle', 'district', 'khelomore',
}

GENERIC_NAME_PATTERNS = [
    r'(?:Name|Customer|Booked By)\s*[:\-]\s*([A-Za-z][A-Za-z .]*)',
]

GENERIC_AMOUNT_PATTERNS = [
    r'(?:Amount|Paid|Total)\s*[:\-]\s*(?:₹|INR|Rs\.?)\s*([\d,]+(?:\.\d{1,2})?)',
]


def register_platform(platforms: list):
    """Decorator to register an extractor class for specific platforms."""
    def decorator(cls):
        for platform in platforms:
            PLATFORM_EXTRACTORS[Platform(platform)] = cls
        return cls
    return decorator


def parse_amount(text: str) -> Optional[float]:
    """Extract numeric amount from text like '₹1,200.00', 'INR 450' or '1200'."""
    if not text:
        return None

    cleaned = re.sub(r'[₹\s]|INR|Rs\.?', '', text).replace(',', '')

    match = re.search(r'(\d+(?:\.\d+)?)', cleaned)
    if match:
        try:
            return float(match.group(1))
        except ValueError:
            pass
    return None


def format_amount(value: float) -> str:
    """'1200' for whole amounts, '450.50' otherwise."""
    if value == int(value):
        return str(int(value))
    return f"{value:.2f}"


def is_plausible_amount(value: Optional[float]) -> bool:
    return value is not None and MIN_AMOUNT <= value <= MAX_AMOUNT


def clean_customer_name(raw: str) -> str:
    name = re.sub(r'\s+', ' ', raw or '').strip()
    return name.strip(' .,:;-')


def is_valid_customer_name(name: str) -> bool:
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return False
    if not re.search(r'[A-Za-z]', name):
        return False
    words = set(re.findall(r'[a-z]+', name.lower()))
    return not (words & NAME_NOISE_WORDS)


class PlatformExtractor:
    """
    Customer name and paid amount extraction for one platform.

    Subclasses list their dedicated patterns; these run against the raw
    HTML (then the normalized text). The generic patterns always run last
    against the normalized text.
    """

    name_patterns: list[str] = []
    amount_patterns: list[str] = []

    def _candidates(self, html: str, text: str, dedicated: list[str], generic: list[str]):
        sources = [
            (html, dedicated),
            (text, dedicated),
            (text, generic),
        ]
        for source, patterns in sources:
            if not source:
                continue
            for pattern in patterns:
                for match in re.finditer(pattern, source, re.IGNORECASE):
                    yield match.group(1)

    def extract_customer_name(self, html: str, text: str) -> str:
        for raw in self._candidates(html, text, self.name_patterns, GENERIC_NAME_PATTERNS):
            name = clean_customer_name(raw)
            if is_valid_customer_name(name):
                return name
        return NOT_AVAILABLE

    def extract_amount(self, html: str, text: str) -> str:
        for raw in self._candidates(html, text, self.amount_patterns, GENERIC_AMOUNT_PATTERNS):
            value = parse_amount(raw)
            if is_plausible_amount(value):
                return format_amount(value)
        return NOT_AVAILABLE

    def extract_customer_info(self, html: str, text: str) -> tuple[str, str]:
        """
        Args:
            html: Raw HTML body (may be empty)
            text: Normalized body text, one line per line

        Returns:
            (customer_name, paid_amount), each resolved or N/A
        """
        return self.extract_customer_name(html, text), self.extract_amount(html, text)


def get_platform_extractor(platform) -> PlatformExtractor:
    """Extractor instance for a platform; the generic extractor if none is registered."""
    cls = PLATFORM_EXTRACTORS.get(Platform(platform), PlatformExtractor)
    return cls()
