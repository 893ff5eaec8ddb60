"""
Booking Parsers - Platform-Specific Customer/Amount Extractors

This package contains one extractor class per booking platform:
- playo.py: Playo confirmations
- hudle.py: Hudle confirmations
- khelomore.py: Khelomore confirmations
- generic.py: District and System mail (generic patterns only)

Usage:
    from mailsync.booking_parsers import get_platform_extractor

    extractor = get_platform_extractor(Platform.PLAYO)
    customer_name, paid_amount = extractor.extract_customer_info(html_body, text_body)
"""

# Import registry and utilities from base
from .base import (
    PLATFORM_EXTRACTORS,
    PlatformExtractor,
    get_platform_extractor,
    is_valid_customer_name,
    parse_amount,
)

# Import all platform modules to trigger @register_platform decorators
from . import playo
from . import hudle
from . import khelomore
from . import generic

__all__ = [
    'PLATFORM_EXTRACTORS',
    'PlatformExtractor',
    'get_platform_extractor',
    'is_valid_customer_name',
    'parse_amount',
]
