"""
Extended connector.

Extended (Starknet perp DEX) exposes market data and account endpoints
over REST authenticated with an ``X-Api-Key`` header. Order submission
needs a Stark-key signed settlement payload, which is not produced here,
so orders run in dry-run mode.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import aiohttp

from .base_connector import (
    BaseVenueConnector, ExchangeConnectionError, ExchangeError, RateLimitError, TradingError
)
from ..models.funding_rate import FundingRate
from ..models.order import Order, OrderSide, OrderStatus, OrderType
from ..utils.math_utils import safe_decimal
from ..utils.time_utils import parse_venue_timestamp

EXTENDED_MAINNET_BASE_URL = "https://api.starknet.extended.exchange"
EXTENDED_TESTNET_BASE_URL = "https://api.starknet.sepolia.extended.exchange"


class ExtendedConnector(BaseVenueConnector):
    """Extended perpetuals connector"""

    def __init__(self, api_key: str = "", testnet: bool = False, dry_run: bool = True,
                 base_url: Optional[str] = None, request_timeout: float = 10.0,
                 amount_decimals: int = 6):
        super().__init__("Extended", testnet=testnet, dry_run=dry_run, amount_decimals=amount_decimals)
        self._api_key = api_key
        self._base_url_override = base_url
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def base_url(self) -> str:
        if self._base_url_override:
            return self._base_url_override.rstrip("/")
        return EXTENDED_TESTNET_BASE_URL if self.testnet else EXTENDED_MAINNET_BASE_URL

    # =============================================================================
    # CONNECTION MANAGEMENT
    # =============================================================================

    async def connect(self) -> bool:
        if self._session is None or self._session.closed:
            headers = {"Content-Type": "application/json", "User-Agent": "FundingRateArbBot/1.0"}
            if self._api_key:
                headers["X-Api-Key"] = self._api_key
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
                headers=headers,
            )
        self.is_connected = True
        self.logger.info(f"Connected to Extended {'Testnet' if self.testnet else 'Mainnet'} ({self.base_url})")
        return True

    async def disconnect(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None
        self.is_connected = False
        self.logger.info("Disconnected from Extended")

    async def _request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and return the ``data`` member of an OK response"""
        if self._session is None or self._session.closed:
            await self.connect()

        url = f"{self.base_url}{endpoint}"
        try:
            async with self._session.request(method, url, params=params) as response:
                if response.status == 429:
                    raise RateLimitError(f"Extended rate limit hit on {endpoint}")
                if response.status >= 400:
                    body = await response.text()
                    raise ExchangeError(f"Extended API error {response.status} on {endpoint}: {body}")
                payload = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise ExchangeConnectionError(f"Extended request to {endpoint} failed: {e}") from e

        if payload.get("status") != "OK":
            raise ExchangeError(f"Extended returned non-OK status on {endpoint}: {payload}")
        return payload.get("data")

    # =============================================================================
    # MARKET DATA
    # =============================================================================

    async def get_funding_rates(self) -> List[FundingRate]:
        markets = await self._request("GET", "/api/v1/info/markets") or []

        rates = []
        for market in markets:
            stats = market.get("marketStats") or {}
            rate = safe_decimal(stats.get("fundingRate"))
            name = market.get("name")
            if rate is None or not name:
                continue
            rates.append(FundingRate(
                venue=self.name,
                market=name,
                rate=rate,
                next_funding_time=parse_venue_timestamp(stats.get("nextFundingRate")),
            ))

        self.logger.debug(f"Fetched {len(rates)} Extended funding rates")
        return rates

    async def get_mark_price(self, market: str) -> Optional[Decimal]:
        stats = await self._request("GET", f"/api/v1/info/markets/{market}/stats") or {}
        return safe_decimal(stats.get("markPrice"))

    async def get_orderbook(self, market: str) -> Dict[str, Any]:
        return await self._request("GET", f"/api/v1/info/markets/{market}/orderbook") or {}

    # =============================================================================
    # ACCOUNT
    # =============================================================================

    async def get_balance(self, asset: str = "USD") -> Decimal:
        data = await self._request("GET", "/api/v1/user/balance") or {}
        balance = safe_decimal(data.get("balance"))
        if balance is None:
            raise ExchangeError(f"Extended balance response carries no balance: {data}")
        return balance

    async def get_order_status(self, order_id: str, market: str) -> Order:
        data = await self._request("GET", f"/api/v1/user/orders/{order_id}") or {}
        try:
            status = OrderStatus(str(data.get("status", "NEW")).upper())
        except ValueError:
            status = OrderStatus.OPEN
        return Order(
            order_id=str(data.get("id", order_id)),
            venue=self.name,
            market=data.get("market", market),
            side=OrderSide(str(data.get("side", "BUY")).upper()),
            order_type=OrderType(str(data.get("type", "MARKET")).upper()),
            amount=safe_decimal(data.get("qty")) or Decimal("0"),
            price=safe_decimal(data.get("price")),
            status=status,
        )

    async def cancel_order(self, order_id: str, market: str) -> None:
        if self.dry_run:
            self.logger.info(f"🧪 [SIMULATED] Extended: cancel order {order_id} on {market}")
            return
        await self._request("DELETE", f"/api/v1/user/order/{order_id}")

    # =============================================================================
    # TRADING
    # =============================================================================

    async def _submit_order(self, market: str, side: OrderSide, order_type: OrderType,
                            amount: Decimal, price: Optional[Decimal],
                            reduce_only: bool = False) -> Order:
        raise TradingError("Extended orders require a Stark-signed settlement; enable dry_run for this venue")
