"""
Reference Price Sources
"""

from .price_source import (
    PriceSource,
    StaticPriceSource,
    VenueMarkPriceSource,
    FallbackPriceSource
)

__all__ = [
    'PriceSource',
    'StaticPriceSource',
    'VenueMarkPriceSource',
    'FallbackPriceSource'
]
