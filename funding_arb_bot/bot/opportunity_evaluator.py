"""
Opportunity Evaluator - Open / close / hold decisions
=====================================================

Turns one market's rate pair and the position currently held on it into at
most one decision. The evaluator never places orders itself.

Rules, with ``diff = rate_a - rate_b``:

- no position and ``|diff| > min_funding_rate_diff``: open, long on the
  lower-rate venue and short on the higher-rate venue
- position held short on venue A: close when ``diff <= 0``
- position held short on venue B: close when ``diff >= 0``
- anything else: hold
"""

import logging
from decimal import Decimal
from typing import Optional

from .funding_oracle import FundingSnapshot
from .position_ledger import PositionLedger
from ..exchange.base_connector import BaseVenueConnector
from ..models.opportunity import ArbitrageDecision, DecisionAction
from ..models.position import PositionInfo


class OpportunityEvaluator:
    """Decision logic for the two configured venues"""

    def __init__(self, venue_a: BaseVenueConnector, venue_b: BaseVenueConnector,
                 ledger: PositionLedger, min_funding_rate_diff: Decimal):
        self.venue_a = venue_a
        self.venue_b = venue_b
        self.ledger = ledger
        self.min_funding_rate_diff = min_funding_rate_diff
        self.logger = logging.getLogger(__name__)

    async def evaluate_market(self, market: str, snapshot: FundingSnapshot) -> Optional[ArbitrageDecision]:
        """Decision for ``market``, None for a skip or a hold"""
        pair = snapshot.pair(market)
        if pair is None:
            self.logger.debug(f"Skipping {market}: not quoted by both {self.venue_a.name} and {self.venue_b.name}")
            return None

        rate_a, rate_b = pair
        position = await self.ledger.get(market)
        return self.decide(market, rate_a, rate_b, position)

    def decide(self, market: str, rate_a: Decimal, rate_b: Decimal,
               position: Optional[PositionInfo]) -> Optional[ArbitrageDecision]:
        diff = rate_a - rate_b

        if position is None:
            if abs(diff) <= self.min_funding_rate_diff:
                return None
            if diff > 0:
                long_venue, short_venue = self.venue_b, self.venue_a
            else:
                long_venue, short_venue = self.venue_a, self.venue_b
            return ArbitrageDecision(
                action=DecisionAction.OPEN,
                market=market,
                rate_a=rate_a,
                rate_b=rate_b,
                long_venue=long_venue,
                short_venue=short_venue,
                magnitude=abs(diff),
            )

        if self._should_close(position, diff):
            return ArbitrageDecision(
                action=DecisionAction.CLOSE,
                market=market,
                rate_a=rate_a,
                rate_b=rate_b,
                long_venue=position.long_venue,
                short_venue=position.short_venue,
                magnitude=abs(diff),
                position=position,
            )
        return None

    def _should_close(self, position: PositionInfo, diff: Decimal) -> bool:
        # The short leg earns funding only while its venue quotes the higher rate
        if position.short_venue is self.venue_a:
            return diff <= 0
        return diff >= 0
