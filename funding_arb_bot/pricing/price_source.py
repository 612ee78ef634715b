"""
Price Sources - Reference price used to size orders
===================================================

The position manager converts the configured USD notional into a base
amount with ``amount = size_usd / reference_price``. Where that price
comes from is pluggable: a static table, a venue mark price, or a chain
of sources tried in order.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Union
import asyncio
import logging

from ..exchange.base_connector import BaseVenueConnector, ExchangeError
from ..utils.async_utils import call_with_timeout
from ..utils.math_utils import safe_decimal


class PriceSource(ABC):
    """Reference price capability"""

    @abstractmethod
    async def reference_price(self, market: str) -> Optional[Decimal]:
        """Price of one unit of the market's base asset, None when unavailable"""
        pass


class StaticPriceSource(PriceSource):
    """Prices from a fixed table, typically the ``pricing.static_prices`` config"""

    def __init__(self, prices: Optional[Mapping[str, Union[str, int, float, Decimal]]] = None):
        self._prices: Dict[str, Decimal] = {}
        for market, value in (prices or {}).items():
            price = safe_decimal(value)
            if price is not None and price > 0:
                self._prices[market] = price

    async def reference_price(self, market: str) -> Optional[Decimal]:
        return self._prices.get(market)


class VenueMarkPriceSource(PriceSource):
    """Mark price quoted by a venue"""

    def __init__(self, venue: BaseVenueConnector, timeout: Optional[float] = None):
        self.venue = venue
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def reference_price(self, market: str) -> Optional[Decimal]:
        try:
            price = await call_with_timeout(
                self.venue.get_mark_price(market), self.timeout, f"{self.venue.name} mark price {market}"
            )
        except (ExchangeError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Mark price unavailable for {market} on {self.venue.name}: {e}")
            return None

        if price is None or not price.is_finite() or price <= 0:
            return None
        return price


class FallbackPriceSource(PriceSource):
    """First non-None price of several sources, tried in order"""

    def __init__(self, sources: List[PriceSource]):
        if not sources:
            raise ValueError("FallbackPriceSource needs at least one source")
        self.sources = sources
        self.logger = logging.getLogger(__name__)

    async def reference_price(self, market: str) -> Optional[Decimal]:
        for source in self.sources:
            try:
                price = await source.reference_price(market)
            except Exception as e:
                self.logger.warning(f"{source.__class__.__name__} failed for {market}, trying next source: {e}")
                continue
            if price is not None:
                return price
        return None
