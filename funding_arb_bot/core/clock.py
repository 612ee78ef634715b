"""
Cycle clock.

Fixed-period tick schedule for the arbitrage engine. Ticks are anchored to
the moment the clock starts; when a cycle overruns one or more periods the
ticks it missed are dropped and the next cycle runs on the first boundary
still in the future.
"""

import asyncio
import logging
import math
import time
from typing import Callable, Optional


class CycleClock:
    """Tick boundaries at ``origin + k * interval``"""

    def __init__(self, interval: float, time_fn: Callable[[], float] = time.monotonic):
        if interval <= 0:
            raise ValueError(f"Clock interval must be positive, got {interval}")
        self.interval = interval
        self.time_fn = time_fn
        self.origin: Optional[float] = None
        self.missed_ticks = 0
        self.logger = logging.getLogger(self.__class__.__name__)

    def start(self, now: Optional[float] = None) -> float:
        """Anchor the schedule; the first tick is ``now`` itself"""
        self.origin = self.time_fn() if now is None else now
        self.missed_ticks = 0
        return self.origin

    def next_tick(self, now: Optional[float] = None) -> float:
        """First tick boundary strictly after ``now``"""
        if self.origin is None:
            raise RuntimeError("Clock not started")
        now = self.time_fn() if now is None else now
        elapsed = max(0.0, now - self.origin)
        index = math.floor(elapsed / self.interval) + 1
        return self.origin + index * self.interval

    def seconds_until_next_tick(self, cycle_started: float, now: Optional[float] = None) -> float:
        """
        Delay before the next cycle, counting ticks skipped by an overrun.

        Args:
            cycle_started: Clock time at which the cycle that just ended began
            now: Current clock time
        """
        now = self.time_fn() if now is None else now
        next_tick = self.next_tick(now)
        expected = self.next_tick(cycle_started)
        skipped = int(round((next_tick - expected) / self.interval))
        if skipped > 0:
            self.missed_ticks += skipped
            self.logger.warning(f"Cycle overran by {skipped} tick(s), coalescing to the next boundary")
        return max(0.0, next_tick - now)

    @staticmethod
    async def wait(delay: float, stop_event: asyncio.Event) -> bool:
        """Sleep ``delay`` seconds or until ``stop_event`` is set; True if stopped"""
        if stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False
