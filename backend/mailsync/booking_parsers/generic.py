"""
Generic Parser

District and System mail have no dedicated layout; only the generic
Name/Customer and Amount/Paid/Total patterns apply.
"""

from database.models.booking import Platform

from .base import PlatformExtractor, register_platform


@register_platform([Platform.DISTRICT, Platform.SYSTEM])
class GenericExtractor(PlatformExtractor):
    pass
