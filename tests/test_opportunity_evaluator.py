from decimal import Decimal

import pytest

from funding_arb_bot.bot.funding_oracle import FundingSnapshot
from funding_arb_bot.models.opportunity import DecisionAction
from funding_arb_bot.models.position import PositionInfo


def _snapshot(rates_a, rates_b):
    return FundingSnapshot(
        rates_a={m: Decimal(r) for m, r in rates_a.items()},
        rates_b={m: Decimal(r) for m, r in rates_b.items()},
    )


@pytest.mark.asyncio
async def test_positive_diff_opens_long_on_venue_b_short_on_venue_a(evaluator, venue_a, venue_b):
    decision = await evaluator.evaluate_market(
        "BTC-USD", _snapshot({"BTC-USD": "0.0005"}, {"BTC-USD": "0.0001"})
    )

    assert decision.action == DecisionAction.OPEN
    assert decision.long_venue is venue_b
    assert decision.short_venue is venue_a
    assert decision.magnitude == Decimal("0.0004")


@pytest.mark.asyncio
async def test_negative_diff_opens_long_on_venue_a_short_on_venue_b(evaluator, venue_a, venue_b):
    decision = await evaluator.evaluate_market(
        "BTC-USD", _snapshot({"BTC-USD": "-0.0003"}, {"BTC-USD": "0.0002"})
    )

    assert decision.action == DecisionAction.OPEN
    assert decision.long_venue is venue_a
    assert decision.short_venue is venue_b
    assert decision.magnitude == Decimal("0.0005")


@pytest.mark.asyncio
async def test_open_requires_strictly_exceeding_threshold(evaluator):
    at_threshold = _snapshot({"BTC-USD": "0.0002"}, {"BTC-USD": "0.0001"})
    below = _snapshot({"BTC-USD": "0.00015"}, {"BTC-USD": "0.0001"})
    just_above = _snapshot({"BTC-USD": "0.00020001"}, {"BTC-USD": "0.0001"})

    assert await evaluator.evaluate_market("BTC-USD", at_threshold) is None
    assert await evaluator.evaluate_market("BTC-USD", below) is None
    assert (await evaluator.evaluate_market("BTC-USD", just_above)).is_open


@pytest.mark.asyncio
async def test_market_missing_from_either_venue_is_skipped(evaluator):
    snapshot = _snapshot({"BTC-USD": "0.01", "ETH-USD": "0.01"}, {"ETH-USD": "0", "SOL-USD": "0"})

    assert await evaluator.evaluate_market("BTC-USD", snapshot) is None
    assert await evaluator.evaluate_market("SOL-USD", snapshot) is None


@pytest.mark.asyncio
async def test_short_on_venue_a_closes_when_diff_not_positive(evaluator, ledger, venue_a, venue_b):
    position = PositionInfo("BTC-USD", long_venue=venue_b, short_venue=venue_a, size_usd=Decimal("100"))
    await ledger.try_insert("BTC-USD", position)

    still_favorable = _snapshot({"BTC-USD": "0.00001"}, {"BTC-USD": "0"})
    equal = _snapshot({"BTC-USD": "0.0001"}, {"BTC-USD": "0.0001"})
    reversed_ = _snapshot({"BTC-USD": "-0.0001"}, {"BTC-USD": "0.0001"})

    assert await evaluator.evaluate_market("BTC-USD", still_favorable) is None
    decision = await evaluator.evaluate_market("BTC-USD", equal)
    assert decision.action == DecisionAction.CLOSE
    assert decision.position is position
    assert (await evaluator.evaluate_market("BTC-USD", reversed_)).action == DecisionAction.CLOSE


@pytest.mark.asyncio
async def test_short_on_venue_b_closes_when_diff_not_negative(evaluator, ledger, venue_a, venue_b):
    position = PositionInfo("BTC-USD", long_venue=venue_a, short_venue=venue_b, size_usd=Decimal("100"))
    await ledger.try_insert("BTC-USD", position)

    still_favorable = _snapshot({"BTC-USD": "-0.00001"}, {"BTC-USD": "0"})
    equal = _snapshot({"BTC-USD": "0.0003"}, {"BTC-USD": "0.0003"})

    assert await evaluator.evaluate_market("BTC-USD", still_favorable) is None
    assert (await evaluator.evaluate_market("BTC-USD", equal)).action == DecisionAction.CLOSE


@pytest.mark.asyncio
async def test_existing_position_never_produces_open(evaluator, ledger, venue_a, venue_b):
    position = PositionInfo("BTC-USD", long_venue=venue_b, short_venue=venue_a, size_usd=Decimal("100"))
    await ledger.try_insert("BTC-USD", position)

    # Same spread that opened the position: hold, no duplicate open
    decision = await evaluator.evaluate_market(
        "BTC-USD", _snapshot({"BTC-USD": "0.0005"}, {"BTC-USD": "0.0001"})
    )

    assert decision is None


def test_decide_is_pure(evaluator, venue_a):
    decision = evaluator.decide("ETH-USD", Decimal("0.001"), Decimal("0"), None)

    assert decision.market == "ETH-USD"
    assert decision.short_venue is venue_a
    assert decision.diff == Decimal("0.001")
