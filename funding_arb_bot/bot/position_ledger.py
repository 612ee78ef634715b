"""
Position Ledger - Authoritative record of open positions
========================================================

At most one position per market. Every read and write, including the
aggregate exposure sum, happens under a single asyncio lock so that no
caller ever observes a half-updated map.

Opening uses a two-step reservation: ``reserve`` claims the market and
its notional before any order is sent, then ``commit`` turns the claim
into a ``PositionInfo`` or ``release`` drops it. Pending reservations
count as occupied and as exposure.
"""

import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from ..models.position import PositionInfo


class ReservationResult(Enum):
    """Outcome of a reservation request"""
    RESERVED = "reserved"
    DUPLICATE = "duplicate"
    EXPOSURE_EXCEEDED = "exposure_exceeded"


class PositionLedger:
    """In-memory market -> PositionInfo map with exclusive access"""

    def __init__(self):
        self._positions: Dict[str, PositionInfo] = {}
        self._pending: Dict[str, Decimal] = {}
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(__name__)

    # =============================================================================
    # BASIC ACCESS
    # =============================================================================

    async def try_insert(self, market: str, info: PositionInfo) -> bool:
        """Insert ``info`` unless the market is held or reserved"""
        async with self._lock:
            if market in self._positions or market in self._pending:
                return False
            self._positions[market] = info
            return True

    async def remove_if_present(self, market: str) -> Optional[PositionInfo]:
        """Remove and return the entry; None when there was nothing to remove"""
        async with self._lock:
            return self._positions.pop(market, None)

    async def get(self, market: str) -> Optional[PositionInfo]:
        async with self._lock:
            return self._positions.get(market)

    async def total_exposure(self) -> Decimal:
        """Sum of size_usd over committed positions"""
        async with self._lock:
            return sum((p.size_usd for p in self._positions.values()), Decimal("0"))

    async def snapshot(self) -> List[PositionInfo]:
        async with self._lock:
            return list(self._positions.values())

    async def count(self) -> int:
        async with self._lock:
            return len(self._positions)

    # =============================================================================
    # RESERVATIONS
    # =============================================================================

    async def reserve(self, market: str, size_usd: Decimal, max_total_usd: Decimal) -> ReservationResult:
        """
        Claim ``market`` for an opening sequence.

        The cap check and the claim are one atomic step: committed plus
        pending exposure plus ``size_usd`` must not exceed ``max_total_usd``.
        """
        async with self._lock:
            if market in self._positions or market in self._pending:
                return ReservationResult.DUPLICATE

            exposure = sum((p.size_usd for p in self._positions.values()), Decimal("0"))
            exposure += sum(self._pending.values(), Decimal("0"))
            if exposure + size_usd > max_total_usd:
                self.logger.debug(f"Reservation refused for {market}: exposure {exposure} + {size_usd} "
                                  f"> {max_total_usd}")
                return ReservationResult.EXPOSURE_EXCEEDED

            self._pending[market] = size_usd
            return ReservationResult.RESERVED

    async def commit(self, market: str, info: PositionInfo) -> bool:
        """Turn the reservation for ``market`` into a committed position"""
        async with self._lock:
            if market not in self._pending or market in self._positions:
                return False
            del self._pending[market]
            self._positions[market] = info
            return True

    async def release(self, market: str) -> None:
        """Drop a reservation; no-op when none is held"""
        async with self._lock:
            self._pending.pop(market, None)

    async def is_pending(self, market: str) -> bool:
        async with self._lock:
            return market in self._pending
