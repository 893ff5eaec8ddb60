"""
Khelomore Parser
"""

from database.models.booking import Platform

from .base import PlatformExtractor, register_platform


@register_platform([Platform.KHELOMORE])
class KhelomoreExtractor(PlatformExtractor):
    name_patterns = [
        r'Name:\s*</span>\s*([^<\n]+)',
        r'Booked by\s+([A-Za-z][A-Za-z ]*)',
    ]

    amount_patterns = [
        r'(?:&#8377;|₹)\s*([\d,]+(?:\.\d{2})?)',
    ]
