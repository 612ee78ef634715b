from decimal import Decimal

import pytest

from funding_arb_bot.bot.funding_oracle import FundingRateOracle, RateFetchError
from funding_arb_bot.exchange.base_connector import ExchangeConnectionError
from funding_arb_bot.models.funding_rate import FundingRate


@pytest.mark.asyncio
async def test_snapshot_pairs_rates_by_market(venue_a, venue_b):
    venue_a.rates = {"BTC-USD": "0.0005", "ETH-USD": "0.0001"}
    venue_b.rates = {"BTC-USD": "0.0001", "SOL-USD": "0.0002"}
    oracle = FundingRateOracle(venue_a, venue_b, timeout=1)

    snapshot = await oracle.fetch_snapshot()

    assert snapshot.pair("BTC-USD") == (Decimal("0.0005"), Decimal("0.0001"))
    assert snapshot.pair("ETH-USD") is None
    assert snapshot.pair("SOL-USD") is None
    assert snapshot.common_markets == ["BTC-USD"]
    assert oracle.current_snapshot is snapshot


@pytest.mark.asyncio
async def test_fetch_failure_on_either_venue_raises(venue_a, venue_b):
    venue_a.rates = {"BTC-USD": "0.0005"}
    venue_b.fetch_error = ExchangeConnectionError("unreachable")
    oracle = FundingRateOracle(venue_a, venue_b, timeout=1)

    with pytest.raises(RateFetchError) as exc_info:
        await oracle.fetch_snapshot()

    assert exc_info.value.venue_name == "VenueB"
    assert oracle.current_snapshot is None
    assert oracle.failed_updates == 1


@pytest.mark.asyncio
async def test_fetch_timeout_raises(venue_a, venue_b):
    venue_a.fetch_delay = 5
    oracle = FundingRateOracle(venue_a, venue_b, timeout=0.01)

    with pytest.raises(RateFetchError) as exc_info:
        await oracle.fetch_snapshot()

    assert exc_info.value.venue_name == "VenueA"


@pytest.mark.asyncio
async def test_repeated_market_keeps_last_rate(venue_a, venue_b):
    async def duplicated():
        return [
            FundingRate(venue="VenueA", market="BTC-USD", rate=Decimal("0.1")),
            FundingRate(venue="VenueA", market="BTC-USD", rate=Decimal("0.2")),
        ]

    venue_a.get_funding_rates = duplicated
    venue_b.rates = {"BTC-USD": "0"}
    oracle = FundingRateOracle(venue_a, venue_b)

    snapshot = await oracle.fetch_snapshot()

    assert snapshot.rates_a["BTC-USD"] == Decimal("0.2")
