"""
Funding rate data model.
"""

from dataclasses import dataclass
from decimal import Decimal
from datetime import datetime
from typing import Optional

from funding_arb_bot.utils.time_utils import get_utc_datetime


@dataclass
class FundingRate:
    """
    Funding rate quoted by one venue for one market.

    Rates are compared as quoted, per funding period, without normalizing
    venues with different funding intervals.
    """
    venue: str
    market: str
    rate: Decimal
    next_funding_time: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.updated_at is None:
            self.updated_at = get_utc_datetime()
