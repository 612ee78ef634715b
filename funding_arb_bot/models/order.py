"""
Order data model.
Attribution: Based on Hummingbot's order structure (Apache 2.0)
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from dataclasses import dataclass
from typing import Optional

from funding_arb_bot.utils.time_utils import get_utc_datetime


class OrderStatus(Enum):
    """Order status enumeration"""
    NEW = "NEW"
    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    REJECTED = "REJECTED"
    SIMULATED = "SIMULATED"


class OrderType(Enum):
    """Order type enumeration"""
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderSide(Enum):
    """Order side enumeration. BUY opens a long leg, SELL opens a short leg."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass
class Order:
    """
    Acknowledgement returned by a venue for a placement or close call.

    The arbitrage core never tracks orders after the call returns.
    """
    order_id: str
    venue: str
    market: str
    side: OrderSide
    order_type: OrderType
    amount: Decimal
    price: Optional[Decimal]
    status: OrderStatus = OrderStatus.NEW
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = get_utc_datetime()

    @property
    def is_simulated(self) -> bool:
        return self.status == OrderStatus.SIMULATED
