"""
Hudle Parser

Hudle confirmations use a labelled table: <strong>Name</strong>: ... and
<strong>Amount Paid</strong>: ₹ ... The rupee sign sometimes arrives
quoted-printable encoded (=E2=82=B9) or as an HTML entity.
"""

from database.models.booking import Platform

from .base import PlatformExtractor, register_platform


@register_platform([Platform.HUDLE])
class HudleExtractor(PlatformExtractor):
    name_patterns = [
        r'Name\s*</strong>\s*:\s*([^<\n]+)',
    ]

    amount_patterns = [
        r'Amount Paid\s*</strong>\s*:\s*(?:&#8377;|₹|=E2=82=B9)\s*([\d,]+(?:\.\d{2})?)',
        r'Amount Paid\s*</strong>\s*:[^\d<]{0,40}([\d,]+(?:\.\d{2})?)',
        r'Amount Paid\s*:\s*(?:₹|INR|Rs\.?)?\s*([\d,]+(?:\.\d{2})?)',
    ]
