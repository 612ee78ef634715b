"""
Arbitrage Engine - Evaluation loop of the funding arbitrage bot
===============================================================

Runs one evaluation cycle per clock tick:

1. fetch a funding snapshot from both venues
2. evaluate every configured market in order
3. hand each open or close decision to the position manager right away

Cycles never overlap. A stop request is honoured between cycles; the cycle
in progress always runs to completion.
"""

import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .funding_oracle import FundingRateOracle, RateFetchError
from .opportunity_evaluator import OpportunityEvaluator
from .position_manager import PositionManager
from ..core.clock import CycleClock
from ..models.execution import CycleReport, ExecutionResult
from ..models.opportunity import ArbitrageDecision
from ..utils.time_utils import get_utc_datetime


class EngineState(Enum):
    """Engine lifecycle states"""
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


class ArbitrageEngine:
    """
    Scheduler loop of the bot

    An engine runs once: after it stopped, build a new one.
    """

    def __init__(self, oracle: FundingRateOracle, evaluator: OpportunityEvaluator,
                 position_manager: PositionManager, markets: List[str],
                 evaluation_interval: float = 60.0, clock: Optional[CycleClock] = None):
        """
        Args:
            oracle: Funding snapshot source
            evaluator: Decision logic
            position_manager: Executes decisions
            markets: Markets to evaluate, in evaluation order
            evaluation_interval: Seconds between cycle starts
            clock: Tick schedule, defaults to a monotonic clock at ``evaluation_interval``
        """
        self.oracle = oracle
        self.evaluator = evaluator
        self.position_manager = position_manager
        self.markets = list(markets)
        self.clock = clock or CycleClock(evaluation_interval)
        self.logger = logging.getLogger(__name__)

        self.state = EngineState.STOPPED
        self._stop_event = asyncio.Event()
        self._has_run = False
        self.start_time = None
        self.last_report: Optional[CycleReport] = None

        # Metrics
        self.total_cycles = 0
        self.aborted_cycles = 0
        self.failed_cycles = 0
        self.decisions_dispatched = 0

    # =============================================================================
    # LIFECYCLE MANAGEMENT
    # =============================================================================

    async def run(self) -> None:
        """Run cycles until ``request_stop`` is called"""
        if self._has_run:
            raise RuntimeError("ArbitrageEngine instances are single-use")
        self._has_run = True

        self.state = EngineState.RUNNING
        self.start_time = get_utc_datetime()
        self.clock.start()
        self.logger.info(f"🚀 Arbitrage engine started: {len(self.markets)} markets, "
                         f"every {self.clock.interval:g}s")

        try:
            while self.state == EngineState.RUNNING:
                cycle_started = self.clock.time_fn()
                try:
                    await self.run_cycle()
                except Exception as e:
                    self.failed_cycles += 1
                    self.logger.error(f"❌ Unexpected error in trading cycle: {e}", exc_info=True)

                if self.state != EngineState.RUNNING:
                    break

                delay = self.clock.seconds_until_next_tick(cycle_started)
                if await self.clock.wait(delay, self._stop_event):
                    break
        finally:
            self.state = EngineState.STOPPED
            self.logger.info(f"🛑 Arbitrage engine stopped after {self.total_cycles} cycles")

    def request_stop(self) -> None:
        """Ask the loop to stop after the current cycle; safe to call from a signal handler"""
        if self.state == EngineState.RUNNING:
            self.logger.info("Stop requested, finishing current cycle")
            self.state = EngineState.STOPPING
        self._stop_event.set()

    # =============================================================================
    # TRADING CYCLE
    # =============================================================================

    async def run_cycle(self) -> CycleReport:
        """One fetch / evaluate / execute pass"""
        report = CycleReport()
        self.total_cycles += 1

        try:
            snapshot = await self.oracle.fetch_snapshot()
        except RateFetchError as e:
            self.aborted_cycles += 1
            report.fetch_error = str(e)
            report.finished_at = get_utc_datetime()
            self.last_report = report
            self.logger.error(f"❌ {e}; skipping cycle")
            return report

        for market in self.markets:
            decision = await self.evaluator.evaluate_market(market, snapshot)
            report.evaluated += 1
            if snapshot.pair(market) is None:
                report.skipped.append(market)
            if decision is None:
                continue
            report.results.append(await self._dispatch(decision))

        report.finished_at = get_utc_datetime()
        self.last_report = report
        self.logger.debug(f"Cycle {self.total_cycles} done in {report.duration_seconds:.2f}s: "
                          f"{sum(1 for r in report.results if r.success)}/{len(report.results)} actions succeeded, "
                          f"{len(report.skipped)} skipped")
        return report

    async def _dispatch(self, decision: ArbitrageDecision) -> ExecutionResult:
        self.decisions_dispatched += 1
        self.logger.info(f"📊 {decision}")
        if decision.is_open:
            return await self.position_manager.open_position(
                decision.market, decision.long_venue, decision.short_venue, decision.magnitude
            )
        return await self.position_manager.close_position(decision.position)

    # =============================================================================
    # MONITORING
    # =============================================================================

    async def get_status(self) -> Dict[str, Any]:
        positions = await self.position_manager.ledger.snapshot()
        exposure = sum((p.size_usd for p in positions), Decimal("0"))
        return {
            "state": self.state.value,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "total_cycles": self.total_cycles,
            "aborted_cycles": self.aborted_cycles,
            "failed_cycles": self.failed_cycles,
            "missed_ticks": self.clock.missed_ticks,
            "decisions_dispatched": self.decisions_dispatched,
            "open_positions": [str(p) for p in positions],
            "total_exposure_usd": str(exposure),
            **self.position_manager.get_stats(),
        }
