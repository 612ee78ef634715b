"""
CCXT Connector - Any ccxt perpetual-futures venue
=================================================

Wraps a ``ccxt.async_support`` exchange behind the venue contract.
Canonical market names (``BTC-USD``) are mapped to ccxt linear swap
symbols (``BTC/USDT:USDT``) using the configured settle currency.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import ccxt.async_support as ccxt
from ccxt.base.errors import (
    ExchangeError as CcxtExchangeError,
    InsufficientFunds,
    NetworkError,
    RateLimitExceeded,
)

from .base_connector import (
    BaseVenueConnector, ExchangeConnectionError, ExchangeError,
    InsufficientBalanceError, RateLimitError, TradingError
)
from ..models.funding_rate import FundingRate
from ..models.order import Order, OrderSide, OrderStatus, OrderType
from ..utils.math_utils import safe_decimal
from ..utils.time_utils import parse_venue_timestamp

_CCXT_STATUS = {
    "open": OrderStatus.OPEN,
    "closed": OrderStatus.FILLED,
    "canceled": OrderStatus.CANCELED,
    "cancelled": OrderStatus.CANCELED,
    "rejected": OrderStatus.REJECTED,
    "expired": OrderStatus.CANCELED,
}


class CcxtConnector(BaseVenueConnector):
    """Connector for any venue ccxt supports with linear perpetual swaps"""

    def __init__(self, exchange_id: str, api_key: str = "", api_secret: str = "",
                 password: str = "", testnet: bool = False, dry_run: bool = False,
                 quote: str = "USD", settle: str = "USDT", name: Optional[str] = None,
                 request_timeout: float = 10.0, amount_decimals: int = 6,
                 client: Optional[Any] = None):
        super().__init__(name or exchange_id.capitalize(), testnet=testnet, dry_run=dry_run,
                         amount_decimals=amount_decimals)
        if client is None and not hasattr(ccxt, exchange_id):
            raise ValueError(f"Unknown ccxt exchange id: {exchange_id}")
        self.exchange_id = exchange_id
        self.quote = quote
        self.settle = settle
        self.request_timeout = request_timeout
        self._credentials = {"apiKey": api_key, "secret": api_secret, "password": password}
        self.client = client

    def set_testnet(self, testnet: bool) -> None:
        super().set_testnet(testnet)
        if self.client is not None:
            self.client.set_sandbox_mode(testnet)

    # =============================================================================
    # SYMBOL MAPPING
    # =============================================================================

    def to_symbol(self, market: str) -> str:
        """``BTC-USD`` -> ``BTC/USDT:USDT``"""
        base = market.split("-")[0].upper()
        return f"{base}/{self.settle}:{self.settle}"

    def to_market(self, symbol: str) -> Optional[str]:
        """``BTC/USDT:USDT`` -> ``BTC-USD``; None for other settle currencies"""
        if "/" not in symbol:
            return None
        base, rest = symbol.split("/", 1)
        settle = rest.split(":")[-1]
        if settle != self.settle:
            return None
        return f"{base.upper()}-{self.quote}"

    # =============================================================================
    # CONNECTION MANAGEMENT
    # =============================================================================

    async def connect(self) -> bool:
        if self.client is None:
            exchange_class = getattr(ccxt, self.exchange_id)
            self.client = exchange_class({
                **{k: v for k, v in self._credentials.items() if v},
                "enableRateLimit": True,
                "timeout": int(self.request_timeout * 1000),
                "options": {"defaultType": "swap"},
            })
            if self.testnet:
                self.client.set_sandbox_mode(True)
        try:
            await self.client.load_markets()
        except NetworkError as e:
            raise ExchangeConnectionError(f"{self.name} connection failed: {e}") from e

        self.is_connected = True
        self.logger.info(f"Connected to {self.name} via ccxt {'Testnet' if self.testnet else 'Mainnet'}")
        return True

    async def disconnect(self) -> None:
        if self.client is not None:
            await self.client.close()
        self.is_connected = False
        self.logger.info(f"Disconnected from {self.name}")

    async def _call(self, method: str, *args, **kwargs) -> Any:
        """Invoke a ccxt method, translating ccxt errors into venue errors"""
        if self.client is None:
            await self.connect()
        try:
            return await getattr(self.client, method)(*args, **kwargs)
        except RateLimitExceeded as e:
            raise RateLimitError(f"{self.name} {method}: {e}") from e
        except NetworkError as e:
            raise ExchangeConnectionError(f"{self.name} {method}: {e}") from e
        except InsufficientFunds as e:
            raise InsufficientBalanceError(f"{self.name} {method}: {e}") from e
        except CcxtExchangeError as e:
            raise ExchangeError(f"{self.name} {method}: {e}") from e

    # =============================================================================
    # MARKET DATA
    # =============================================================================

    async def get_funding_rates(self) -> List[FundingRate]:
        raw = await self._call("fetch_funding_rates")

        rates = []
        for symbol, entry in (raw or {}).items():
            market = self.to_market(entry.get("symbol") or symbol)
            rate = safe_decimal(entry.get("fundingRate"))
            if market is None or rate is None:
                continue
            next_time = entry.get("nextFundingTimestamp") or entry.get("fundingTimestamp")
            rates.append(FundingRate(
                venue=self.name,
                market=market,
                rate=rate,
                next_funding_time=parse_venue_timestamp(next_time),
            ))

        self.logger.debug(f"Fetched {len(rates)} {self.name} funding rates")
        return rates

    async def get_mark_price(self, market: str) -> Optional[Decimal]:
        ticker = await self._call("fetch_ticker", self.to_symbol(market))
        return safe_decimal(ticker.get("markPrice") or ticker.get("last"))

    async def get_orderbook(self, market: str) -> Dict[str, Any]:
        return await self._call("fetch_order_book", self.to_symbol(market))

    # =============================================================================
    # ACCOUNT
    # =============================================================================

    async def get_balance(self, asset: str = "USDT") -> Decimal:
        balance = await self._call("fetch_balance")
        free = (balance.get("free") or {}).get(asset)
        return safe_decimal(free) or Decimal("0")

    async def get_order_status(self, order_id: str, market: str) -> Order:
        raw = await self._call("fetch_order", order_id, self.to_symbol(market))
        return self._parse_order(raw, market)

    async def cancel_order(self, order_id: str, market: str) -> None:
        if self.dry_run:
            self.logger.info(f"🧪 [SIMULATED] {self.name}: cancel order {order_id} on {market}")
            return
        await self._call("cancel_order", order_id, self.to_symbol(market))

    # =============================================================================
    # TRADING
    # =============================================================================

    async def _submit_order(self, market: str, side: OrderSide, order_type: OrderType,
                            amount: Decimal, price: Optional[Decimal],
                            reduce_only: bool = False) -> Order:
        params = {"reduceOnly": True} if reduce_only else {}
        try:
            raw = await self._call(
                "create_order",
                self.to_symbol(market),
                order_type.value.lower(),
                side.value.lower(),
                float(amount),
                float(price) if price is not None else None,
                params,
            )
        except (InsufficientBalanceError, RateLimitError, ExchangeConnectionError):
            raise
        except ExchangeError as e:
            raise TradingError(str(e)) from e

        order = self._parse_order(raw, market, fallback_side=side, fallback_type=order_type,
                                  fallback_amount=amount, fallback_price=price)
        self.logger.info(f"✅ {self.name} order {order.order_id}: {side.value} {amount} {market}")
        return order

    def _parse_order(self, raw: Dict[str, Any], market: str,
                     fallback_side: Optional[OrderSide] = None,
                     fallback_type: Optional[OrderType] = None,
                     fallback_amount: Decimal = Decimal("0"),
                     fallback_price: Optional[Decimal] = None) -> Order:
        side = raw.get("side")
        order_type = raw.get("type")
        return Order(
            order_id=str(raw.get("id")),
            venue=self.name,
            market=market,
            side=OrderSide(side.upper()) if side else (fallback_side or OrderSide.BUY),
            order_type=OrderType(order_type.upper()) if order_type else (fallback_type or OrderType.MARKET),
            amount=safe_decimal(raw.get("amount")) or fallback_amount,
            price=safe_decimal(raw.get("average") or raw.get("price")) or fallback_price,
            status=_CCXT_STATUS.get(str(raw.get("status")).lower(), OrderStatus.NEW),
        )
