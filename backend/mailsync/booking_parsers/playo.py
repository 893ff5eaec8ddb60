"""
Playo Parser

Playo confirmations greet the customer by name and list the amount paid
(full or advance) in INR.
"""

from database.models.booking import Platform

from .base import PlatformExtractor, register_platform


@register_platform([Platform.PLAYO])
class PlayoExtractor(PlatformExtractor):
    name_patterns = [
        r'\bHey\s+([^,<\n]+),',
    ]

    # Total paid wins over the advance when both are present
    amount_patterns = [
        r'Total Amount Paid[\s\S]{0,200}?INR\s*([\d,]+(?:\.\d+)?)',
        r'Advance Paid[\s\S]{0,200}?INR\s*([\d,]+(?:\.\d+)?)',
    ]
