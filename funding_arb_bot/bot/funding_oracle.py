"""
Funding Rate Oracle - Per-cycle rate snapshot
=============================================

Fetches current funding rates from both venues and assembles the per-market
lookups the opportunity evaluator works on. A failure on either venue
aborts the whole cycle: partial data never reaches the evaluator.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..exchange.base_connector import BaseVenueConnector
from ..models.funding_rate import FundingRate
from ..utils.async_utils import call_with_timeout
from ..utils.time_utils import get_utc_datetime


class RateFetchError(Exception):
    """Funding rates could not be fetched from one venue"""

    def __init__(self, venue_name: str, cause: Exception):
        super().__init__(f"Failed to fetch funding rates from {venue_name}: {cause}")
        self.venue_name = venue_name
        self.cause = cause


@dataclass
class FundingSnapshot:
    """Funding rates of both venues at one moment"""
    rates_a: Dict[str, Decimal]
    rates_b: Dict[str, Decimal]
    timestamp: datetime = field(default_factory=get_utc_datetime)

    def pair(self, market: str) -> Optional[Tuple[Decimal, Decimal]]:
        """(rate_a, rate_b), None when either venue does not quote the market"""
        if market not in self.rates_a or market not in self.rates_b:
            return None
        return self.rates_a[market], self.rates_b[market]

    @property
    def common_markets(self) -> List[str]:
        return sorted(set(self.rates_a) & set(self.rates_b))


class FundingRateOracle:
    """
    Collects funding rates from venue A and venue B.

    Both venues are queried concurrently, each call bounded by its own
    timeout.
    """

    def __init__(self, venue_a: BaseVenueConnector, venue_b: BaseVenueConnector,
                 timeout: Optional[float] = None):
        self.venue_a = venue_a
        self.venue_b = venue_b
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        self.current_snapshot: Optional[FundingSnapshot] = None
        self.total_updates = 0
        self.failed_updates = 0

    async def fetch_snapshot(self) -> FundingSnapshot:
        """
        Fetch both venues' rates.

        Raises:
            RateFetchError: either venue raised or timed out
        """
        results = await asyncio.gather(
            self._fetch(self.venue_a),
            self._fetch(self.venue_b),
            return_exceptions=True,
        )

        for venue, result in zip((self.venue_a, self.venue_b), results):
            if isinstance(result, Exception):
                self.failed_updates += 1
                raise RateFetchError(venue.name, result) from result
            if isinstance(result, BaseException):
                raise result

        snapshot = FundingSnapshot(
            rates_a=self._to_lookup(results[0]),
            rates_b=self._to_lookup(results[1]),
        )
        self.current_snapshot = snapshot
        self.total_updates += 1
        self.logger.debug(f"Funding snapshot: {len(snapshot.rates_a)} {self.venue_a.name} rates, "
                          f"{len(snapshot.rates_b)} {self.venue_b.name} rates")
        return snapshot

    async def _fetch(self, venue: BaseVenueConnector) -> List[FundingRate]:
        return await call_with_timeout(venue.get_funding_rates(), self.timeout,
                                       f"{venue.name} funding rates")

    @staticmethod
    def _to_lookup(rates: List[FundingRate]) -> Dict[str, Decimal]:
        # A market listed twice keeps its last rate
        lookup: Dict[str, Decimal] = {}
        for rate in rates:
            lookup[rate.market] = rate.rate
        return lookup
