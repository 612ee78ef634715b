"""
Position Manager - Two-leg opening and closing sequences
========================================================

Carries out the decisions of the opportunity evaluator against the venues
and keeps the position ledger in step:

- opening reserves the market in the ledger, places the long leg, then the
  short leg, and records the position only when both legs went through
- closing removes the ledger entry first, then closes both legs
  independently

Every venue call has its own timeout. Outcomes are returned as
``ExecutionResult`` values rather than raised.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from .position_ledger import PositionLedger, ReservationResult
from ..exchange.base_connector import BaseVenueConnector
from ..models.execution import ExecutionResult, ExecutionStatus
from ..models.order import Order, OrderSide, OrderType
from ..models.position import PositionInfo, PositionSide
from ..notifications.notifier import Notifier
from ..pricing.price_source import PriceSource
from ..utils.async_utils import call_with_timeout
from ..utils.math_utils import usd_to_base_amount


class PositionManager:
    """
    Execution coordinator for arbitrage positions

    Responsibilities:
    - Reserve, open and commit long/short pairs
    - Close pairs leg by leg
    - Enforce the aggregate notional cap
    - Report every leg to the notifier
    """

    def __init__(self, ledger: PositionLedger, price_source: PriceSource,
                 position_size_usd: Decimal, max_position_usd: Decimal,
                 notifier: Optional[Notifier] = None,
                 venue_timeout: Optional[float] = None,
                 notifier_timeout: Optional[float] = None):
        """
        Args:
            ledger: Shared position ledger
            price_source: Reference price used to size both legs
            position_size_usd: USD notional of each new position
            max_position_usd: Cap on the summed notional of all positions
            notifier: Optional trade event receiver
            venue_timeout: Deadline for each venue call, in seconds
            notifier_timeout: Deadline for each notifier call, in seconds
        """
        self.ledger = ledger
        self.price_source = price_source
        self.position_size_usd = position_size_usd
        self.max_position_usd = max_position_usd
        self.notifier = notifier
        self.venue_timeout = venue_timeout
        self.notifier_timeout = notifier_timeout
        self.logger = logging.getLogger(__name__)

        # Metrics
        self.total_positions_opened = 0
        self.total_positions_closed = 0
        self.total_failures = 0

    # =============================================================================
    # POSITION OPENING
    # =============================================================================

    async def open_position(self, market: str, long_venue: BaseVenueConnector,
                            short_venue: BaseVenueConnector, magnitude: Decimal) -> ExecutionResult:
        """
        Open a long/short pair on ``market``.

        Args:
            market: Market identifier
            long_venue: Venue receiving the BUY leg (lower funding rate)
            short_venue: Venue receiving the SELL leg (higher funding rate)
            magnitude: Absolute rate differential that triggered the open
        """
        size_usd = self.position_size_usd

        reservation = await self.ledger.reserve(market, size_usd, self.max_position_usd)
        if reservation == ReservationResult.DUPLICATE:
            self.logger.info(f"Position for {market} already open or opening, skipping")
            return ExecutionResult("open", market, ExecutionStatus.DUPLICATE,
                                   reason="position already open or being opened")
        if reservation == ReservationResult.EXPOSURE_EXCEEDED:
            self.logger.info(f"Max position size reached, skipping {market} "
                             f"(size ${size_usd}, cap ${self.max_position_usd})")
            return ExecutionResult("open", market, ExecutionStatus.ABORTED_EXPOSURE,
                                   reason="max position size reached")

        self.logger.info(f"🔄 Opening {market}: LONG {long_venue.name} / SHORT {short_venue.name} "
                         f"spread={magnitude:.6f} size=${size_usd}")

        try:
            return await self._open_reserved(market, long_venue, short_venue, size_usd)
        finally:
            # releasing after commit is a no-op; this also runs when the task is cancelled
            await self.ledger.release(market)

    async def _open_reserved(self, market: str, long_venue: BaseVenueConnector,
                             short_venue: BaseVenueConnector, size_usd: Decimal) -> ExecutionResult:
        price = await self._reference_price(market)
        if price is None:
            self.total_failures += 1
            self.logger.error(f"❌ No reference price for {market}, not opening")
            return ExecutionResult("open", market, ExecutionStatus.ABORTED_PRICING,
                                   reason="reference price unavailable")

        amount = usd_to_base_amount(size_usd, price)

        # 1. Long leg
        try:
            long_order = await self._place(long_venue, market, OrderSide.BUY, amount)
        except Exception as e:
            self.total_failures += 1
            self.logger.error(f"❌ Failed to open long position on {long_venue.name} for {market}: {e}")
            await self._notify("OPEN LONG", long_venue.name, market, size_usd, str(e))
            return ExecutionResult("open", market, ExecutionStatus.LONG_LEG_FAILED,
                                   reason="long leg failed", errors=[f"{long_venue.name}: {e}"])
        await self._notify("OPEN LONG", long_venue.name, market, size_usd)

        # 2. Short leg
        try:
            short_order = await self._place(short_venue, market, OrderSide.SELL, amount)
        except Exception as e:
            self.total_failures += 1
            message = (f"Short leg on {short_venue.name} failed after long leg {long_order.order_id} "
                       f"filled on {long_venue.name}; {amount} {market} long is unhedged: {e}")
            self.logger.critical(f"🚨 {message}")
            await self._notify("OPEN SHORT", short_venue.name, market, size_usd, str(e))
            await self._notify_critical(market, message)
            return ExecutionResult("open", market, ExecutionStatus.SHORT_LEG_FAILED_ASYMMETRIC,
                                   reason="short leg failed, long leg left open",
                                   long_order=long_order, errors=[f"{short_venue.name}: {e}"])
        await self._notify("OPEN SHORT", short_venue.name, market, size_usd)

        # 3. Record
        info = PositionInfo(
            market=market,
            long_venue=long_venue,
            short_venue=short_venue,
            size_usd=size_usd,
            base_amount=amount,
        )
        if not await self.ledger.commit(market, info):
            # The reservation is ours until commit or release; losing it is a bug
            self.logger.error(f"Reservation for {market} vanished before commit")

        self.total_positions_opened += 1
        self.logger.info(f"✅ Opened {info}")
        return ExecutionResult("open", market, ExecutionStatus.OPENED,
                               long_order=long_order, short_order=short_order)

    async def _place(self, venue: BaseVenueConnector, market: str, side: OrderSide,
                     amount: Decimal) -> Order:
        return await call_with_timeout(
            venue.place_order(market, side, OrderType.MARKET, amount),
            self.venue_timeout,
            f"{venue.name} {side.value} {market}",
        )

    # =============================================================================
    # POSITION CLOSING
    # =============================================================================

    async def close_position(self, position: PositionInfo) -> ExecutionResult:
        """
        Close both legs of ``position``.

        The ledger entry is removed before any order is sent and is not
        restored if a leg fails.
        """
        market = position.market
        removed = await self.ledger.remove_if_present(market)
        if removed is None:
            self.logger.info(f"Position for {market} already closed")
            return ExecutionResult("close", market, ExecutionStatus.ALREADY_CLOSED,
                                   reason="no position recorded")

        self.logger.info(f"🔄 Closing {removed}")

        price = await self._reference_price(market)
        if price is not None:
            amount = usd_to_base_amount(removed.size_usd, price)
        else:
            amount = removed.base_amount
            self.logger.warning(f"No reference price for {market}, closing the {amount} recorded at open")

        errors: List[str] = []
        long_order = await self._close_leg(removed, removed.long_venue, PositionSide.LONG, amount, errors)
        short_order = await self._close_leg(removed, removed.short_venue, PositionSide.SHORT, amount, errors)

        if errors:
            self.total_failures += 1
            self.logger.error(f"⚠️ Partial close of {market}: {'; '.join(errors)}")
            return ExecutionResult("close", market, ExecutionStatus.CLOSE_PARTIAL_FAILURE,
                                   reason="one or more legs failed to close",
                                   long_order=long_order, short_order=short_order, errors=errors)

        self.total_positions_closed += 1
        self.logger.info(f"✅ Closed {market} after {removed.age_hours:.2f}h")
        return ExecutionResult("close", market, ExecutionStatus.CLOSED,
                               long_order=long_order, short_order=short_order)

    async def _close_leg(self, position: PositionInfo, venue: BaseVenueConnector, side: PositionSide,
                         amount: Decimal, errors: List[str]) -> Optional[Order]:
        action = f"CLOSE {side.value}"
        try:
            order = await call_with_timeout(
                venue.close_position(position.market, side, amount),
                self.venue_timeout,
                f"{venue.name} close {side.value.lower()} {position.market}",
            )
        except Exception as e:
            self.logger.error(f"❌ Failed to close {side.value.lower()} position on {venue.name} "
                              f"for {position.market}: {e}")
            errors.append(f"{venue.name}: {e}")
            await self._notify(action, venue.name, position.market, position.size_usd, str(e))
            return None

        await self._notify(action, venue.name, position.market, position.size_usd)
        return order

    async def close_all_positions(self, reason: str = "shutdown") -> List[ExecutionResult]:
        """Close every recorded position"""
        positions = await self.ledger.snapshot()
        if positions:
            self.logger.info(f"Closing {len(positions)} positions ({reason})")

        results = []
        for position in positions:
            results.append(await self.close_position(position))
        return results

    # =============================================================================
    # COLLABORATORS
    # =============================================================================

    async def _reference_price(self, market: str) -> Optional[Decimal]:
        try:
            price = await call_with_timeout(
                self.price_source.reference_price(market), self.venue_timeout, f"reference price {market}"
            )
        except Exception as e:
            self.logger.warning(f"Reference price lookup for {market} failed: {e}")
            return None
        if price is None or price <= 0:
            return None
        return price

    async def _notify(self, action: str, venue_name: str, market: str, size_usd: Decimal,
                      error: Optional[str] = None) -> None:
        if self.notifier is None:
            return
        try:
            await call_with_timeout(
                self.notifier.notify(action, venue_name, market, size_usd, error),
                self.notifier_timeout,
                f"notify {action} {market}",
            )
        except Exception as e:
            self.logger.warning(f"Failed to send notification: {e}")

    async def _notify_critical(self, market: str, message: str) -> None:
        if self.notifier is None:
            return
        try:
            await call_with_timeout(
                self.notifier.notify_critical(market, message),
                self.notifier_timeout,
                f"critical notification {market}",
            )
        except Exception as e:
            self.logger.warning(f"Failed to send critical notification: {e}")

    def get_stats(self) -> dict:
        return {
            "positions_opened": self.total_positions_opened,
            "positions_closed": self.total_positions_closed,
            "failures": self.total_failures,
        }
