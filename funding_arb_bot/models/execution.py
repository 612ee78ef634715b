"""
Execution outcome models.

Every opening or closing sequence returns an ``ExecutionResult`` whose
status names exactly one outcome of the error taxonomy, so callers and
tests never have to parse log lines.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .order import Order
from funding_arb_bot.utils.time_utils import get_utc_datetime


class ExecutionStatus(Enum):
    """Outcome of an opening or closing sequence"""
    OPENED = "opened"
    DUPLICATE = "duplicate"
    ABORTED_EXPOSURE = "aborted_exposure"
    ABORTED_PRICING = "aborted_pricing"
    LONG_LEG_FAILED = "long_leg_failed"
    SHORT_LEG_FAILED_ASYMMETRIC = "short_leg_failed_asymmetric"
    CLOSED = "closed"
    CLOSE_PARTIAL_FAILURE = "close_partial_failure"
    ALREADY_CLOSED = "already_closed"

    @property
    def is_critical(self) -> bool:
        return self is ExecutionStatus.SHORT_LEG_FAILED_ASYMMETRIC


@dataclass
class ExecutionResult:
    """Result of one coordinator call"""
    action: str
    market: str
    status: ExecutionStatus
    reason: str = ""
    long_order: Optional[Order] = None
    short_order: Optional[Order] = None
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in (ExecutionStatus.OPENED, ExecutionStatus.CLOSED)


@dataclass
class CycleReport:
    """Summary of one evaluation cycle"""
    started_at: datetime = field(default_factory=get_utc_datetime)
    finished_at: Optional[datetime] = None
    fetch_error: Optional[str] = None
    evaluated: int = 0
    skipped: List[str] = field(default_factory=list)
    results: List[ExecutionResult] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.fetch_error is not None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()
