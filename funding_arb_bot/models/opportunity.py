"""
Opportunity Model - Decisions produced by the opportunity evaluator
===================================================================

An evaluation cycle turns each configured market into at most one
decision: open a new long/short pair, or close the pair already held.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING

from .position import PositionInfo

if TYPE_CHECKING:
    from funding_arb_bot.exchange.base_connector import BaseVenueConnector


class DecisionAction(Enum):
    """What the coordinator is asked to do"""
    OPEN = "open"
    CLOSE = "close"


@dataclass
class ArbitrageDecision:
    """
    Open or close instruction for one market.

    For OPEN, ``long_venue``/``short_venue`` carry the direction and
    ``magnitude`` is ``|rate_a - rate_b|``. For CLOSE, ``position`` is the
    ledger entry observed during evaluation.
    """
    action: DecisionAction
    market: str
    rate_a: Decimal
    rate_b: Decimal
    long_venue: Optional["BaseVenueConnector"] = None
    short_venue: Optional["BaseVenueConnector"] = None
    magnitude: Decimal = Decimal("0")
    position: Optional[PositionInfo] = None

    @property
    def diff(self) -> Decimal:
        return self.rate_a - self.rate_b

    @property
    def is_open(self) -> bool:
        return self.action == DecisionAction.OPEN

    def __str__(self) -> str:
        if self.is_open:
            return (f"OPEN {self.market}: LONG {self.long_venue.name} / SHORT {self.short_venue.name} "
                    f"spread={self.magnitude:.6f}")
        return f"CLOSE {self.market}: diff={self.diff:.6f}"
