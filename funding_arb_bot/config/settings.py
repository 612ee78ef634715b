"""
Configuration management system.

Sources, lowest to highest precedence:

1. model defaults
2. YAML config file
3. environment variables, optionally loaded from a ``.env`` file
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..models.config import FundingBotConfig, VenueType

logger = logging.getLogger("config")

DEFAULT_CONFIG_LOCATIONS = [
    "config.yaml",
    "conf/config.yaml",
    os.path.expanduser("~/.funding-arb-bot/config.yaml"),
]

DEFAULT_VENUES = {
    "venue_a": {"type": "lighter"},
    "venue_b": {"type": "extended"},
}


class ConfigValidationError(Exception):
    """The configuration cannot be used; the bot must not start"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self):
        if not self.errors:
            return super().__str__()
        return super().__str__() + "\n" + "\n".join(f"  - {error}" for error in self.errors)


def find_config_file(config_file: Optional[str] = None) -> Optional[Path]:
    """
    Locate the YAML config file.

    An explicitly given path must exist; otherwise the default locations
    are searched and None is returned when none exists.
    """
    if config_file:
        path = Path(config_file)
        if not path.exists():
            raise ConfigValidationError(f"Config file not found: {config_file}")
        return path

    for location in DEFAULT_CONFIG_LOCATIONS:
        path = Path(location)
        if path.exists():
            return path
    return None


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(f"Cannot read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{path} must contain a mapping at the top level")
    return data


def load_config(config_file: Optional[str] = None, env_file: Optional[str] = None,
                use_env: bool = True) -> FundingBotConfig:
    """
    Build and validate the bot configuration.

    Args:
        config_file: YAML file; default locations are searched when None
        env_file: ``.env`` file loaded into the environment before overrides
            are read; ``.env`` in the working directory when None
        use_env: Apply environment variable overrides

    Raises:
        ConfigValidationError: unreadable file or invalid values
    """
    raw: Dict[str, Any] = {}

    path = find_config_file(config_file)
    if path:
        raw = load_yaml(path)
        logger.info(f"Loaded configuration from {path}")
    else:
        logger.warning("No config file found, using default configuration")

    if use_env:
        if env_file and not Path(env_file).exists():
            raise ConfigValidationError(f"Env file not found: {env_file}")
        dotenv_path = Path(env_file) if env_file else Path(".env")
        if dotenv_path.exists():
            load_dotenv(dotenv_path, override=False)
            logger.info(f"Loaded environment from {dotenv_path}")
        raw = merge_configs(raw, load_config_from_env(raw))

    return build_config(raw)


def build_config(raw: Mapping[str, Any]) -> FundingBotConfig:
    """Validate a raw configuration mapping"""
    try:
        return FundingBotConfig.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigValidationError("Invalid configuration", _format_errors(e)) from e


def validate_config(raw: Mapping[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate configuration and return validation result.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    try:
        build_config(raw)
    except ConfigValidationError as e:
        return False, e.errors or [str(e)]
    return True, []


def _format_errors(error: ValidationError) -> List[str]:
    errors = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        errors.append(f"{location}: {item['msg']}" if location else item["msg"])
    return errors


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two configuration dictionaries"""
    result = dict(base_config)

    for key, value in override_config.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


# ========== Environment Variable Support ==========

def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def load_config_from_env(base: Optional[Mapping[str, Any]] = None,
                         environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Configuration overrides read from environment variables.

    Venue credentials are routed to whichever slot (venue_a / venue_b) holds
    the matching venue type, so ``base`` (the YAML mapping) is needed to know
    the layout.
    """
    env = os.environ if environ is None else environ
    base = base or {}
    config: Dict[str, Any] = {}

    # Bot
    if env.get("LOG_LEVEL"):
        config.setdefault("bot", {})["log_level"] = env["LOG_LEVEL"].upper()
    if env.get("EVALUATION_INTERVAL_SECONDS"):
        config.setdefault("bot", {})["evaluation_interval_seconds"] = env["EVALUATION_INTERVAL_SECONDS"]

    # Trading
    trading_vars = {
        "MIN_FUNDING_RATE_DIFF": "min_funding_rate_diff",
        "POSITION_SIZE_USD": "position_size_usd",
        "MAX_POSITION_USD": "max_position_usd",
    }
    for env_key, config_key in trading_vars.items():
        if env.get(env_key):
            config.setdefault("trading", {})[config_key] = env[env_key].strip()

    if env.get("MARKETS"):
        markets = [m.strip() for m in env["MARKETS"].split(",") if m.strip()]
        config.setdefault("trading", {})["markets"] = markets

    if env.get("TESTNET"):
        config.setdefault("trading", {})["testnet"] = _env_bool(env["TESTNET"])

    # Venue credentials
    venues = merge_configs(DEFAULT_VENUES, dict(base.get("exchanges") or {}))
    for slot in ("venue_a", "venue_b"):
        venue = venues.get(slot) or {}
        credentials = _venue_credentials_from_env(venue, env)
        overrides: Dict[str, Any] = {}
        if credentials:
            overrides["credentials"] = credentials
        if venue.get("type") == VenueType.LIGHTER.value and env.get("LIGHTER_ACCOUNT_INDEX"):
            overrides["account_index"] = int(env["LIGHTER_ACCOUNT_INDEX"])
        if overrides:
            # carry the venue type so the slot validates without a YAML file
            config.setdefault("exchanges", {})[slot] = merge_configs(venue, overrides)

    # Telegram
    token = env.get("TELEGRAM_BOT_TOKEN")
    chat_id = env.get("TELEGRAM_CHAT_ID")
    if token or chat_id:
        telegram: Dict[str, Any] = {}
        if token:
            telegram["bot_token"] = token
        if chat_id:
            telegram["chat_id"] = chat_id
        if token and chat_id:
            telegram["enabled"] = True
        config["monitoring"] = {"telegram": telegram}

    return config


def _venue_credentials_from_env(venue: Mapping[str, Any], env: Mapping[str, str]) -> Dict[str, str]:
    venue_type = venue.get("type")
    if venue_type == VenueType.LIGHTER.value:
        env_vars = {"api_key": "LIGHTER_API_KEY", "private_key": "LIGHTER_PRIVATE_KEY"}
    elif venue_type == VenueType.EXTENDED.value:
        env_vars = {"api_key": "EXTENDED_API_KEY"}
    elif venue_type == VenueType.CCXT.value and venue.get("exchange_id"):
        prefix = str(venue["exchange_id"]).upper()
        env_vars = {
            "api_key": f"{prefix}_API_KEY",
            "api_secret": f"{prefix}_API_SECRET",
            "password": f"{prefix}_PASSWORD",
        }
    else:
        return {}

    return {key: env[var] for key, var in env_vars.items() if env.get(var)}


# ========== Sample Configuration ==========

SAMPLE_CONFIG = """# Funding Rate Arbitrage Bot Configuration
# Copy this file to config.yaml and update with your settings.
# Secrets are best kept in a .env file (see the variables noted below).

bot:
  name: "FundingArbitrageBot"
  log_level: "INFO"                  # LOG_LEVEL
  evaluation_interval_seconds: 60    # Seconds between evaluation cycles
  venue_timeout_seconds: 15          # Deadline for each venue call
  notifier_timeout_seconds: 10
  close_positions_on_exit: false     # Close all positions on shutdown

trading:
  markets:                           # MARKETS (comma separated)
    - "BTC-USD"
    - "ETH-USD"
  min_funding_rate_diff: "0.0001"    # MIN_FUNDING_RATE_DIFF, open when |rate_a - rate_b| exceeds it
  position_size_usd: "100"           # POSITION_SIZE_USD, notional of each position
  max_position_usd: "1000"           # MAX_POSITION_USD, cap on total open notional
  testnet: true                      # TESTNET

exchanges:
  venue_a:
    type: "lighter"                  # LIGHTER_API_KEY, LIGHTER_PRIVATE_KEY, LIGHTER_ACCOUNT_INDEX
    quote: "USD"
  venue_b:
    type: "extended"                 # EXTENDED_API_KEY
  # Any ccxt venue with linear swaps, credentials from <EXCHANGE_ID>_API_KEY / _API_SECRET:
  # venue_b:
  #   type: "ccxt"
  #   exchange_id: "binance"
  #   settle: "USDT"
  #   dry_run: true

pricing:
  source: "fallback"                 # static | mark | fallback
  mark_venue: "venue_b"
  static_prices:
    BTC-USD: "60000"
    ETH-USD: "3000"

monitoring:
  telegram:
    enabled: false                   # TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID enable it
    bot_token: ""
    chat_id: ""

logging:
  file: "logs/bot.log"
  max_size_mb: 100
  backup_count: 10
"""


def create_sample_config(filename: str = "config.sample.yaml", overwrite: bool = False) -> Path:
    """Write a commented sample configuration file"""
    path = Path(filename)
    if path.exists() and not overwrite:
        raise FileExistsError(f"{filename} already exists")

    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_CONFIG)
    logger.info(f"Sample configuration created: {path}")
    return path


def save_config(config: FundingBotConfig, config_file: str = "config.yaml") -> Path:
    """Save a configuration as YAML"""
    path = Path(config_file)
    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
    logger.info(f"Configuration saved to {path}")
    return path
