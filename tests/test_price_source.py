from decimal import Decimal

import pytest

from funding_arb_bot.exchange.base_connector import ExchangeError
from funding_arb_bot.pricing.price_source import (
    FallbackPriceSource,
    StaticPriceSource,
    VenueMarkPriceSource
)


@pytest.mark.asyncio
async def test_static_prices_ignore_invalid_entries():
    source = StaticPriceSource({"BTC-USD": "50000", "BAD-USD": "0", "ETH-USD": 2500.5})

    assert await source.reference_price("BTC-USD") == Decimal("50000")
    assert await source.reference_price("ETH-USD") == Decimal("2500.5")
    assert await source.reference_price("BAD-USD") is None
    assert await source.reference_price("SOL-USD") is None


@pytest.mark.asyncio
async def test_mark_price_source_swallows_venue_errors(venue_a):
    async def broken(market):
        raise ExchangeError("no ticker")

    venue_a.get_mark_price = broken
    source = VenueMarkPriceSource(venue_a, timeout=1)

    assert await source.reference_price("BTC-USD") is None


@pytest.mark.asyncio
async def test_fallback_uses_first_available_price(venue_a):
    venue_a.mark_prices = {"BTC-USD": Decimal("51000")}
    source = FallbackPriceSource([
        VenueMarkPriceSource(venue_a),
        StaticPriceSource({"BTC-USD": "50000", "ETH-USD": "2500"}),
    ])

    assert await source.reference_price("BTC-USD") == Decimal("51000")
    assert await source.reference_price("ETH-USD") == Decimal("2500")
    assert await source.reference_price("SOL-USD") is None


def test_fallback_needs_sources():
    with pytest.raises(ValueError):
        FallbackPriceSource([])


@pytest.mark.asyncio
async def test_fallback_skips_a_raising_source(venue_a):
    async def malformed(market):
        raise ValueError("bad json")

    venue_a.get_mark_price = malformed
    source = FallbackPriceSource([
        VenueMarkPriceSource(venue_a),
        StaticPriceSource({"BTC-USD": "60000"}),
    ])

    assert await source.reference_price("BTC-USD") == Decimal("60000")


@pytest.mark.asyncio
async def test_mark_price_source_ignores_nan(venue_a):
    venue_a.mark_prices = {"BTC-USD": Decimal("NaN")}
    source = FallbackPriceSource([
        VenueMarkPriceSource(venue_a),
        StaticPriceSource({"BTC-USD": "60000"}),
    ])

    assert await VenueMarkPriceSource(venue_a).reference_price("BTC-USD") is None
    assert await source.reference_price("BTC-USD") == Decimal("60000")
