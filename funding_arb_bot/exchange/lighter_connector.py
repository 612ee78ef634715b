"""
Lighter connector.

Lighter is a zk-rollup perp DEX. Market data comes from its public REST
API; order placement needs a signed L2 transaction which this connector
does not produce, so orders only run in dry-run mode.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import aiohttp

from .base_connector import (
    BaseVenueConnector, ExchangeConnectionError, ExchangeError, RateLimitError, TradingError
)
from ..models.funding_rate import FundingRate
from ..models.order import Order, OrderSide, OrderType
from ..utils.math_utils import safe_decimal

LIGHTER_MAINNET_BASE_URL = "https://mainnet.zklighter.elliot.ai"
LIGHTER_TESTNET_BASE_URL = "https://testnet.zklighter.elliot.ai"


class LighterConnector(BaseVenueConnector):
    """Lighter perpetuals connector (REST market data, simulated orders)"""

    def __init__(self, api_key: str = "", private_key: str = "", testnet: bool = False,
                 dry_run: bool = True, quote: str = "USD", account_index: Optional[int] = None,
                 base_url: Optional[str] = None, request_timeout: float = 10.0,
                 amount_decimals: int = 6):
        super().__init__("Lighter", testnet=testnet, dry_run=dry_run, amount_decimals=amount_decimals)
        self._api_key = api_key
        self._private_key = private_key
        self.quote = quote
        self.account_index = account_index
        self._base_url_override = base_url
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        # canonical market -> Lighter market_id
        self._market_ids: Dict[str, int] = {}

    @property
    def base_url(self) -> str:
        if self._base_url_override:
            return self._base_url_override.rstrip("/")
        return LIGHTER_TESTNET_BASE_URL if self.testnet else LIGHTER_MAINNET_BASE_URL

    # =============================================================================
    # CONNECTION MANAGEMENT
    # =============================================================================

    async def connect(self) -> bool:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers={"Content-Type": "application/json", "User-Agent": "FundingRateArbBot/1.0"},
            )
        self.is_connected = True
        self.logger.info(f"Connected to Lighter {'Testnet' if self.testnet else 'Mainnet'} ({self.base_url})")
        return True

    async def disconnect(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None
        self.is_connected = False
        self.logger.info("Disconnected from Lighter")

    async def _request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self._session is None or self._session.closed:
            await self.connect()

        url = f"{self.base_url}{endpoint}"
        try:
            async with self._session.request(method, url, params=params) as response:
                if response.status == 429:
                    raise RateLimitError(f"Lighter rate limit hit on {endpoint}")
                if response.status >= 400:
                    body = await response.text()
                    raise ExchangeError(f"Lighter API error {response.status} on {endpoint}: {body}")
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise ExchangeConnectionError(f"Lighter request to {endpoint} failed: {e}") from e

    def _to_market(self, symbol: str) -> str:
        return f"{symbol.upper()}-{self.quote}"

    # =============================================================================
    # MARKET DATA
    # =============================================================================

    async def get_funding_rates(self) -> List[FundingRate]:
        data = await self._request("GET", "/api/v1/funding-rates")

        rates = []
        # The endpoint also reports other exchanges' rates for comparison
        for entry in data.get("funding_rates", []):
            if str(entry.get("exchange", "lighter")).lower() != "lighter":
                continue
            rate = safe_decimal(entry.get("rate"))
            symbol = entry.get("symbol")
            if rate is None or not symbol:
                continue
            market = self._to_market(symbol)
            if entry.get("market_id") is not None:
                self._market_ids[market] = int(entry["market_id"])
            rates.append(FundingRate(venue=self.name, market=market, rate=rate))

        self.logger.debug(f"Fetched {len(rates)} Lighter funding rates")
        return rates

    async def _order_book_details(self, market: Optional[str] = None) -> List[Dict[str, Any]]:
        params = None
        if market is not None and market in self._market_ids:
            params = {"market_id": self._market_ids[market]}
        data = await self._request("GET", "/api/v1/orderBookDetails", params=params)
        return data.get("order_book_details", [])

    async def get_mark_price(self, market: str) -> Optional[Decimal]:
        for details in await self._order_book_details(market):
            if self._to_market(details.get("symbol", "")) == market:
                return safe_decimal(details.get("last_trade_price"))
        return None

    async def get_orderbook(self, market: str) -> Dict[str, Any]:
        for details in await self._order_book_details(market):
            if self._to_market(details.get("symbol", "")) == market:
                return details
        raise ExchangeError(f"Market {market} not found on Lighter")

    # =============================================================================
    # ACCOUNT
    # =============================================================================

    async def get_balance(self, asset: str = "USD") -> Decimal:
        if self.account_index is None:
            raise ExchangeError("Lighter balance lookup requires an account_index credential")
        data = await self._request("GET", "/api/v1/account", params={"by": "index", "value": self.account_index})
        accounts = data.get("accounts", [])
        if not accounts:
            raise ExchangeError(f"Lighter account {self.account_index} not found")
        balance = safe_decimal(accounts[0].get("collateral"))
        if balance is None:
            raise ExchangeError("Lighter account response carries no collateral")
        return balance

    async def get_order_status(self, order_id: str, market: str) -> Order:
        raise ExchangeError("Order status lookup is not available on Lighter's public API")

    async def cancel_order(self, order_id: str, market: str) -> None:
        if self.dry_run:
            self.logger.info(f"🧪 [SIMULATED] Lighter: cancel order {order_id} on {market}")
            return
        raise TradingError("Cancelling on Lighter requires a signed transaction")

    # =============================================================================
    # TRADING
    # =============================================================================

    async def _submit_order(self, market: str, side: OrderSide, order_type: OrderType,
                            amount: Decimal, price: Optional[Decimal],
                            reduce_only: bool = False) -> Order:
        raise TradingError("Lighter orders require a signed L2 transaction; enable dry_run for this venue")
