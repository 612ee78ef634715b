import os
from decimal import Decimal

import pytest
import yaml

from funding_arb_bot.config.settings import (
    ConfigValidationError,
    build_config,
    create_sample_config,
    load_config,
    load_config_from_env,
    save_config,
    validate_config
)


def _write(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


def test_defaults_are_valid():
    config = build_config({})

    assert config.bot.evaluation_interval_seconds == 60
    assert config.bot.venue_timeout_seconds == 15
    assert config.exchanges.venue_a.type == "lighter"
    assert config.exchanges.venue_b.type == "extended"
    assert config.exchanges.venue_a.dry_run is True


def test_yaml_floats_become_exact_decimals(tmp_path):
    path = _write(tmp_path, {"trading": {"min_funding_rate_diff": 0.0001, "position_size_usd": 20.1,
                                         "max_position_usd": 100}})

    config = load_config(str(path), use_env=False)

    assert config.trading.min_funding_rate_diff == Decimal("0.0001")
    assert config.trading.position_size_usd == Decimal("20.1")


def test_markets_are_normalised():
    config = build_config({"trading": {"markets": [" btc-usd", "ETH-USD", "BTC-USD"]}})

    assert config.trading.markets == ["BTC-USD", "ETH-USD"]


@pytest.mark.parametrize("trading", [
    {"markets": []},
    {"position_size_usd": "0"},
    {"min_funding_rate_diff": "-0.1"},
    {"position_size_usd": "500", "max_position_usd": "100"},
])
def test_invalid_trading_values_are_rejected(trading):
    with pytest.raises(ConfigValidationError):
        build_config({"trading": trading})


def test_identical_venues_are_rejected():
    is_valid, errors = validate_config({"exchanges": {"venue_a": {"type": "extended"},
                                                      "venue_b": {"type": "extended"}}})

    assert not is_valid
    assert any("different" in e for e in errors)


def test_ccxt_venue_needs_exchange_id():
    with pytest.raises(ConfigValidationError) as exc_info:
        build_config({"exchanges": {"venue_b": {"type": "ccxt"}}})

    assert any("exchange_id" in e for e in exc_info.value.errors)


def test_signing_venues_cannot_disable_dry_run():
    with pytest.raises(ConfigValidationError):
        build_config({"exchanges": {"venue_a": {"type": "lighter", "dry_run": False}}})


def test_enabled_telegram_needs_credentials():
    with pytest.raises(ConfigValidationError):
        build_config({"monitoring": {"telegram": {"enabled": True}}})


def test_missing_explicit_file_is_fatal(tmp_path):
    with pytest.raises(ConfigValidationError):
        load_config(str(tmp_path / "nope.yaml"), use_env=False)


def test_invalid_yaml_is_fatal(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("trading: [unclosed")

    with pytest.raises(ConfigValidationError):
        load_config(str(path), use_env=False)


def test_env_overrides():
    env = {
        "MARKETS": "BTC-USD, SOL-USD",
        "MIN_FUNDING_RATE_DIFF": "0.0002",
        "POSITION_SIZE_USD": "50",
        "MAX_POSITION_USD": "500",
        "TESTNET": "true",
        "LIGHTER_API_KEY": "lk",
        "LIGHTER_PRIVATE_KEY": "lp",
        "EXTENDED_API_KEY": "ek",
        "TELEGRAM_BOT_TOKEN": "token",
        "TELEGRAM_CHAT_ID": "42",
    }

    config = build_config(load_config_from_env({}, environ=env))

    assert config.trading.markets == ["BTC-USD", "SOL-USD"]
    assert config.trading.min_funding_rate_diff == Decimal("0.0002")
    assert config.trading.testnet is True
    assert config.exchanges.venue_a.credentials == {"api_key": "lk", "private_key": "lp"}
    assert config.exchanges.venue_b.credentials == {"api_key": "ek"}
    assert config.monitoring.telegram.enabled is True
    assert config.monitoring.telegram.chat_id == "42"


def test_load_config_from_environment_only(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("MARKETS", "POSITION_SIZE_USD", "MAX_POSITION_USD", "LIGHTER_PRIVATE_KEY",
                "LIGHTER_ACCOUNT_INDEX", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("LIGHTER_API_KEY", "lk")
    monkeypatch.setenv("EXTENDED_API_KEY", "ek")
    monkeypatch.setattr("funding_arb_bot.config.settings.DEFAULT_CONFIG_LOCATIONS", [])

    config = load_config()

    assert config.exchanges.venue_a.type == "lighter"
    assert config.exchanges.venue_a.credentials == {"api_key": "lk"}
    assert config.exchanges.venue_b.type == "extended"
    assert config.exchanges.venue_b.credentials == {"api_key": "ek"}


def test_env_credentials_follow_venue_slots():
    base = {"exchanges": {"venue_a": {"type": "ccxt", "exchange_id": "binance"},
                          "venue_b": {"type": "lighter"}}}
    env = {"BINANCE_API_KEY": "bk", "BINANCE_API_SECRET": "bs", "LIGHTER_API_KEY": "lk"}

    overrides = load_config_from_env(base, environ=env)

    assert overrides["exchanges"]["venue_a"]["credentials"] == {"api_key": "bk", "api_secret": "bs"}
    assert overrides["exchanges"]["venue_b"]["credentials"] == {"api_key": "lk"}


def test_env_file_overrides_yaml(tmp_path, monkeypatch):
    for var in ("MARKETS", "POSITION_SIZE_USD", "MAX_POSITION_USD"):
        monkeypatch.delenv(var, raising=False)
    path = _write(tmp_path, {"trading": {"markets": ["BTC-USD"], "position_size_usd": "10"}})
    env_file = tmp_path / ".env"
    env_file.write_text("MARKETS=ETH-USD\nPOSITION_SIZE_USD=25\n")

    try:
        config = load_config(str(path), env_file=str(env_file))
    finally:
        os.environ.pop("MARKETS", None)
        os.environ.pop("POSITION_SIZE_USD", None)

    assert config.trading.markets == ["ETH-USD"]
    assert config.trading.position_size_usd == Decimal("25")


def test_sample_config_is_valid(tmp_path):
    path = create_sample_config(str(tmp_path / "sample.yaml"))

    config = load_config(str(path), use_env=False)

    assert config.trading.markets == ["BTC-USD", "ETH-USD"]
    assert config.pricing.static_prices["BTC-USD"] == Decimal("60000")

    with pytest.raises(FileExistsError):
        create_sample_config(str(path))


def test_saved_config_loads_back(tmp_path):
    config = build_config({
        "trading": {"markets": ["SOL-USD"], "min_funding_rate_diff": "0.0003"},
        "pricing": {"source": "static", "static_prices": {"SOL-USD": "150"}},
    })

    path = save_config(config, str(tmp_path / "saved" / "config.yaml"))
    loaded = load_config(str(path), use_env=False)

    assert loaded.model_dump() == config.model_dump()
    assert loaded.trading.min_funding_rate_diff == Decimal("0.0003")
