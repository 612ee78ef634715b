"""
Configuration Models - Pydantic-validated bot configuration
===========================================================

Models for the bot configuration with automatic validation, defaults and
inline documentation. ``config/settings.py`` builds a ``FundingBotConfig``
from YAML, a ``.env`` file and environment variables.
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class VenueType(str, Enum):
    """Supported venue connectors"""
    LIGHTER = "lighter"
    EXTENDED = "extended"
    CCXT = "ccxt"


class PriceSourceType(str, Enum):
    """Where reference prices come from"""
    STATIC = "static"
    MARK = "mark"
    FALLBACK = "fallback"


def _float_to_str(value):
    # YAML floats go through str() so Decimal keeps the written digits
    if isinstance(value, float):
        return str(value)
    return value


# =============================================================================
# BOT CONFIGURATION
# =============================================================================

class BotConfig(BaseModel):
    """General bot settings"""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    name: str = Field(default="FundingArbitrageBot", description="Bot name")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    evaluation_interval_seconds: float = Field(
        default=60,
        gt=0,
        le=86400,
        description="Seconds between evaluation cycles"
    )

    venue_timeout_seconds: float = Field(
        default=15,
        gt=0,
        le=300,
        description="Deadline for each individual venue call"
    )

    notifier_timeout_seconds: float = Field(
        default=10,
        gt=0,
        le=300,
        description="Deadline for each notification"
    )

    close_positions_on_exit: bool = Field(
        default=False,
        description="Close every open position when the bot shuts down"
    )


# =============================================================================
# TRADING CONFIGURATION
# =============================================================================

class TradingConfig(BaseModel):
    """Trading parameters"""

    markets: List[str] = Field(
        default_factory=lambda: ["BTC-USD", "ETH-USD"],
        min_length=1,
        description="Markets to evaluate, in evaluation order"
    )

    min_funding_rate_diff: Decimal = Field(
        default=Decimal("0.0001"),
        ge=0,
        description="Rate differential that must be exceeded to open"
    )

    position_size_usd: Decimal = Field(
        default=Decimal("100"),
        gt=0,
        description="USD notional of each position"
    )

    max_position_usd: Decimal = Field(
        default=Decimal("1000"),
        gt=0,
        description="Cap on the summed notional of all open positions"
    )

    testnet: bool = Field(default=False, description="Route venues to their test environments")

    @field_validator("min_funding_rate_diff", "position_size_usd", "max_position_usd", mode="before")
    @classmethod
    def decimal_from_float(cls, v):
        return _float_to_str(v)

    @field_validator("markets")
    @classmethod
    def validate_markets(cls, v):
        """Strip, uppercase and de-duplicate markets, keeping their order"""
        markets = []
        for market in v:
            market = market.strip().upper()
            if not market:
                raise ValueError("Market names must not be empty")
            if market not in markets:
                markets.append(market)
        if not markets:
            raise ValueError("At least one market is required")
        return markets

    @model_validator(mode="after")
    def validate_sizes(self):
        if self.position_size_usd > self.max_position_usd:
            raise ValueError(f"position_size_usd ({self.position_size_usd}) exceeds "
                             f"max_position_usd ({self.max_position_usd})")
        return self


# =============================================================================
# VENUE CONFIGURATION
# =============================================================================

class VenueConfig(BaseModel):
    """One venue connector"""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    type: VenueType = Field(..., description="Connector type")
    exchange_id: Optional[str] = Field(default=None, description="ccxt exchange id (ccxt only)")
    name: Optional[str] = Field(default=None, description="Display name override (ccxt only)")
    quote: str = Field(default="USD", description="Quote currency of canonical market names")
    settle: str = Field(default="USDT", description="Settle currency of ccxt swap symbols")
    dry_run: Optional[bool] = Field(
        default=None,
        description="Simulate orders; defaults to true for lighter and extended, false for ccxt"
    )
    credentials: Dict[str, str] = Field(default_factory=dict, description="API credentials")
    account_index: Optional[int] = Field(default=None, ge=0, description="Lighter account index")
    base_url: Optional[str] = Field(default=None, description="REST base URL override")
    request_timeout: float = Field(default=10.0, gt=0, le=120, description="HTTP timeout in seconds")
    amount_decimals: int = Field(default=6, ge=0, le=18, description="Order amount precision")

    @model_validator(mode="after")
    def validate_venue(self):
        if self.type == VenueType.CCXT.value:
            if not self.exchange_id:
                raise ValueError("ccxt venues need an exchange_id")
            if self.dry_run is None:
                self.dry_run = False
        else:
            if self.dry_run is False:
                raise ValueError(f"{self.type} order signing is not supported, dry_run must stay enabled")
            self.dry_run = True
        return self

    @property
    def identity(self) -> tuple:
        return (self.type, self.exchange_id, self.base_url)


class ExchangesConfig(BaseModel):
    """The two venues the bot arbitrages between"""

    venue_a: VenueConfig = Field(default_factory=lambda: VenueConfig(type=VenueType.LIGHTER))
    venue_b: VenueConfig = Field(default_factory=lambda: VenueConfig(type=VenueType.EXTENDED))

    @model_validator(mode="after")
    def validate_distinct(self):
        if self.venue_a.identity == self.venue_b.identity:
            raise ValueError("venue_a and venue_b must be different venues")
        return self


# =============================================================================
# PRICING
# =============================================================================

class PricingConfig(BaseModel):
    """Reference price used to size orders"""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    source: PriceSourceType = Field(
        default=PriceSourceType.FALLBACK,
        description="static table, venue mark price, or mark price falling back to the table"
    )
    mark_venue: str = Field(default="venue_a", description="Venue quoting mark prices (venue_a|venue_b)")
    static_prices: Dict[str, Decimal] = Field(default_factory=dict, description="market -> price")

    @field_validator("static_prices", mode="before")
    @classmethod
    def prices_from_float(cls, v):
        if isinstance(v, dict):
            return {str(k).upper(): _float_to_str(p) for k, p in v.items()}
        return v

    @field_validator("static_prices")
    @classmethod
    def validate_prices(cls, v):
        for market, price in v.items():
            if price <= 0:
                raise ValueError(f"Static price for {market} must be positive")
        return v

    @field_validator("mark_venue")
    @classmethod
    def validate_mark_venue(cls, v):
        if v not in ("venue_a", "venue_b"):
            raise ValueError("mark_venue must be venue_a or venue_b")
        return v

    @model_validator(mode="after")
    def validate_source(self):
        if self.source == PriceSourceType.STATIC.value and not self.static_prices:
            raise ValueError("pricing.source 'static' needs pricing.static_prices")
        return self


# =============================================================================
# MONITORING & NOTIFICATIONS
# =============================================================================

class TelegramConfig(BaseModel):
    """Telegram notifications"""

    enabled: bool = Field(default=False, description="Telegram notifications enabled")
    bot_token: str = Field(default="", description="Bot API token")
    chat_id: str = Field(default="", description="Destination chat id")

    @field_validator("chat_id", mode="before")
    @classmethod
    def chat_id_to_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @model_validator(mode="after")
    def validate_credentials(self):
        if self.enabled and not (self.bot_token and self.chat_id):
            raise ValueError("Telegram notifications need bot_token and chat_id")
        return self


class MonitoringConfig(BaseModel):
    """Monitoring settings"""

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)


class LoggingConfig(BaseModel):
    """Log output"""

    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file: Optional[str] = Field(default="logs/bot.log", description="Log file, empty for console only")
    max_size_mb: int = Field(default=100, ge=1, le=10000)
    backup_count: int = Field(default=10, ge=0, le=100)


# =============================================================================
# MAIN CONFIGURATION
# =============================================================================

class FundingBotConfig(BaseModel):
    """Complete bot configuration"""

    bot: BotConfig = Field(default_factory=BotConfig)
    trading: TradingConfig = Field(default_factory=TradingConfig)
    exchanges: ExchangesConfig = Field(default_factory=ExchangesConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def get_venue_config(self, slot: str) -> VenueConfig:
        """Venue configuration for ``venue_a`` or ``venue_b``"""
        if slot not in ("venue_a", "venue_b"):
            raise KeyError(slot)
        return getattr(self.exchanges, slot)
