"""
Base Venue Connector - Common interface for every venue
=======================================================

Abstract contract the arbitrage core depends on. The evaluator and the
position manager only ever talk to venues through this class, so venue
implementations are injected rather than hard-coded.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional
import itertools
import logging
import time

from ..models.funding_rate import FundingRate
from ..models.order import Order, OrderSide, OrderStatus, OrderType
from ..models.position import PositionSide
from ..utils.math_utils import round_down


class ExchangeError(Exception):
    """Base exception for venue errors"""
    pass


class ExchangeConnectionError(ExchangeError):
    """The venue could not be reached"""
    pass


class TradingError(ExchangeError):
    """An order could not be placed, closed or cancelled"""
    pass


class InsufficientBalanceError(TradingError):
    """Not enough margin for the order"""
    pass


class RateLimitError(ExchangeError):
    """API rate limit reached"""
    pass


class BaseVenueConnector(ABC):
    """
    Base interface for all venue connectors.

    Subclasses implement the network calls. ``place_order`` and
    ``close_position`` are concrete here so that dry-run simulation and the
    "close = opposite market order" rule behave the same on every venue.
    """

    _order_sequence = itertools.count(1)

    def __init__(self, venue_name: str, testnet: bool = False, dry_run: bool = False,
                 amount_decimals: int = 6):
        """
        Args:
            venue_name: Display name used in logs and notifications
            testnet: Route requests to the venue's test environment
            dry_run: Simulate orders instead of sending them
            amount_decimals: Base amount precision used when sending orders
        """
        self._name = venue_name
        self.testnet = testnet
        self.dry_run = dry_run
        self.amount_decimals = amount_decimals
        self.is_connected = False
        self.logger = logging.getLogger(f"{__name__}.{venue_name.lower()}")

    @property
    def name(self) -> str:
        return self._name

    def set_testnet(self, testnet: bool) -> None:
        """Switch between mainnet and testnet endpoints"""
        self.testnet = testnet

    # =============================================================================
    # CONNECTION MANAGEMENT
    # =============================================================================

    @abstractmethod
    async def connect(self) -> bool:
        """Open the venue session"""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the venue session"""
        pass

    # =============================================================================
    # MARKET DATA
    # =============================================================================

    @abstractmethod
    async def get_funding_rates(self) -> List[FundingRate]:
        """Current funding rate for every market the venue lists"""
        pass

    @abstractmethod
    async def get_mark_price(self, market: str) -> Optional[Decimal]:
        """Current mark price, None when the venue does not quote the market"""
        pass

    @abstractmethod
    async def get_orderbook(self, market: str) -> Dict[str, Any]:
        """Raw order book snapshot"""
        pass

    # =============================================================================
    # ACCOUNT
    # =============================================================================

    @abstractmethod
    async def get_balance(self, asset: str = "USD") -> Decimal:
        """Available balance for ``asset``"""
        pass

    @abstractmethod
    async def get_order_status(self, order_id: str, market: str) -> Order:
        """Latest state of an order"""
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str, market: str) -> None:
        """Cancel an open order"""
        pass

    # =============================================================================
    # TRADING
    # =============================================================================

    @abstractmethod
    async def _submit_order(self, market: str, side: OrderSide, order_type: OrderType,
                            amount: Decimal, price: Optional[Decimal],
                            reduce_only: bool = False) -> Order:
        """Send a real order to the venue"""
        pass

    async def place_order(self, market: str, side: OrderSide, order_type: OrderType,
                          amount: Decimal, price: Optional[Decimal] = None) -> Order:
        """
        Place an order.

        Raises:
            TradingError: invalid parameters or the venue rejected the order
        """
        return await self._send(market, side, order_type, amount, price, reduce_only=False)

    async def close_position(self, market: str, side: PositionSide, amount: Decimal) -> Order:
        """
        Close ``amount`` of the leg held on ``side``.

        Closing is a reduce-only market order on the opposite side.
        """
        close_side = OrderSide.SELL if side == PositionSide.LONG else OrderSide.BUY
        self.logger.info(f"Closing {side.value} {amount} {market} on {self.name}")
        return await self._send(market, close_side, OrderType.MARKET, amount, None, reduce_only=True)

    async def _send(self, market: str, side: OrderSide, order_type: OrderType,
                    amount: Decimal, price: Optional[Decimal], reduce_only: bool) -> Order:
        if amount <= 0:
            raise TradingError(f"Order amount must be positive, got {amount}")
        if order_type == OrderType.LIMIT and (price is None or price <= 0):
            raise TradingError("Limit orders require a positive price")

        amount = round_down(amount, self.amount_decimals)
        if amount <= 0:
            raise TradingError(f"Order amount rounds to zero at {self.amount_decimals} decimals")

        if self.dry_run:
            return self._simulate_order(market, side, order_type, amount, price)

        return await self._submit_order(market, side, order_type, amount, price, reduce_only)

    def _simulate_order(self, market: str, side: OrderSide, order_type: OrderType,
                        amount: Decimal, price: Optional[Decimal]) -> Order:
        """Acknowledge an order without sending it"""
        order_id = f"{self.name.lower()}-simulated-{int(time.time() * 1000)}-{next(self._order_sequence)}"
        self.logger.info(f"🧪 [SIMULATED] {self.name}: {order_type.value} {side.value} {amount} {market} "
                         f"(no real order was sent)")
        return Order(
            order_id=order_id,
            venue=self.name,
            market=market,
            side=side,
            order_type=order_type,
            amount=amount,
            price=price,
            status=OrderStatus.SIMULATED,
        )

    def __str__(self):
        return f"{self.__class__.__name__}({self._name})"

    def __repr__(self):
        return self.__str__()
