from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from funding_arb_bot.utils.time_utils import get_utc_datetime

if TYPE_CHECKING:
    from funding_arb_bot.exchange.base_connector import BaseVenueConnector


class PositionSide(Enum):
    """Position side enumeration"""
    LONG = "LONG"
    SHORT = "SHORT"


@dataclass(frozen=True)
class PositionInfo:
    """
    One open two-leg arbitrage position.

    Only the position ledger creates and removes these; the record is never
    mutated in place.
    """
    market: str
    long_venue: "BaseVenueConnector"
    short_venue: "BaseVenueConnector"
    size_usd: Decimal
    base_amount: Decimal = Decimal("0")
    created_at: datetime = field(default_factory=get_utc_datetime)

    def __post_init__(self):
        if self.size_usd <= 0:
            raise ValueError(f"size_usd must be positive, got {self.size_usd}")

    @property
    def age_hours(self) -> float:
        return (get_utc_datetime() - self.created_at).total_seconds() / 3600

    def __str__(self) -> str:
        return (f"{self.market} LONG@{self.long_venue.name} / SHORT@{self.short_venue.name} "
                f"${self.size_usd}")
