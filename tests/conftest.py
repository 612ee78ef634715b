"""Pytest configuration and shared fakes for the funding arbitrage tests."""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from funding_arb_bot.bot.opportunity_evaluator import OpportunityEvaluator
from funding_arb_bot.bot.position_ledger import PositionLedger
from funding_arb_bot.bot.position_manager import PositionManager
from funding_arb_bot.exchange.base_connector import BaseVenueConnector, ExchangeError
from funding_arb_bot.models.funding_rate import FundingRate
from funding_arb_bot.models.order import Order, OrderSide, OrderStatus
from funding_arb_bot.notifications.notifier import Notifier
from funding_arb_bot.pricing.price_source import StaticPriceSource


class FakeVenue(BaseVenueConnector):
    """In-memory venue: configurable rates, failures and delays, records every order attempt"""

    def __init__(self, name: str, rates: Optional[Dict[str, str]] = None):
        super().__init__(name)
        self.rates: Dict[str, str] = dict(rates or {})
        self.mark_prices: Dict[str, Decimal] = {}
        self.fetch_error: Optional[Exception] = None
        self.fetch_delay = 0.0
        self.order_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.order_delay = 0.0
        self.attempts: List[tuple] = []
        self.orders: List[Order] = []
        self.fetch_calls = 0

    async def connect(self) -> bool:
        self.is_connected = True
        return True

    async def disconnect(self) -> None:
        self.is_connected = False

    async def get_funding_rates(self) -> List[FundingRate]:
        self.fetch_calls += 1
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_error:
            raise self.fetch_error
        return [FundingRate(venue=self.name, market=m, rate=Decimal(r)) for m, r in self.rates.items()]

    async def get_mark_price(self, market: str) -> Optional[Decimal]:
        return self.mark_prices.get(market)

    async def get_orderbook(self, market: str):
        return {}

    async def get_balance(self, asset: str = "USD") -> Decimal:
        return Decimal("10000")

    async def get_order_status(self, order_id: str, market: str) -> Order:
        raise ExchangeError("not tracked")

    async def cancel_order(self, order_id: str, market: str) -> None:
        return None

    async def _submit_order(self, market, side, order_type, amount, price, reduce_only=False) -> Order:
        self.attempts.append((market, side, amount, reduce_only))
        if self.order_delay:
            await asyncio.sleep(self.order_delay)
        error = self.close_error if reduce_only else self.order_error
        if error:
            raise error
        order = Order(
            order_id=f"{self.name}-{len(self.attempts)}",
            venue=self.name,
            market=market,
            side=side,
            order_type=order_type,
            amount=amount,
            price=price,
            status=OrderStatus.FILLED,
        )
        self.orders.append(order)
        return order

    def sides(self, reduce_only: Optional[bool] = None) -> List[OrderSide]:
        return [a[1] for a in self.attempts if reduce_only is None or a[3] == reduce_only]


class RecordingNotifier(Notifier):
    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0):
        self.events: List[tuple] = []
        self.critical: List[tuple] = []
        self.error = error
        self.delay = delay

    async def notify(self, action, venue_name, market, size_usd, error=None) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.events.append((action, venue_name, market, size_usd, error))

    async def notify_critical(self, market, message) -> None:
        if self.error:
            raise self.error
        self.critical.append((market, message))

    @property
    def actions(self) -> List[str]:
        return [e[0] for e in self.events]


@pytest.fixture
def venue_a():
    return FakeVenue("VenueA")


@pytest.fixture
def venue_b():
    return FakeVenue("VenueB")


@pytest.fixture
def ledger():
    return PositionLedger()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def price_source():
    return StaticPriceSource({"BTC-USD": "50000", "ETH-USD": "2500", "SOL-USD": "100"})


@pytest.fixture
def make_manager(ledger, price_source, notifier):
    def _make(position_size_usd="100", max_position_usd="1000", **kwargs):
        kwargs.setdefault("notifier", notifier)
        kwargs.setdefault("venue_timeout", 1.0)
        kwargs.setdefault("notifier_timeout", 1.0)
        return PositionManager(
            ledger,
            kwargs.pop("price_source", price_source),
            position_size_usd=Decimal(position_size_usd),
            max_position_usd=Decimal(max_position_usd),
            **kwargs,
        )
    return _make


@pytest.fixture
def evaluator(venue_a, venue_b, ledger):
    return OpportunityEvaluator(venue_a, venue_b, ledger, Decimal("0.0001"))


