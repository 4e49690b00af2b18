"""
Content processing components for FishTales

This package contains components for processing crawled content including:
- Report date extraction and filtering
- Token-bounded chunking
- Shop website details extraction
"""

from fishtales.processors.content import ContentFilter, DateExtractor
from fishtales.processors.chunker import Chunker, estimate_token_count
from fishtales.processors.shop_details import ShopDetailsExtractor

__all__ = [
    'ContentFilter',
    'DateExtractor',
    'Chunker',
    'estimate_token_count',
    'ShopDetailsExtractor'
]
