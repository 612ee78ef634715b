"""
Arbitrage core: snapshot, evaluation, execution and scheduling
"""

from .arbitrage_engine import ArbitrageEngine, EngineState
from .funding_oracle import FundingRateOracle, FundingSnapshot, RateFetchError
from .opportunity_evaluator import OpportunityEvaluator
from .position_ledger import PositionLedger, ReservationResult
from .position_manager import PositionManager

__all__ = [
    'ArbitrageEngine',
    'EngineState',
    'FundingRateOracle',
    'FundingSnapshot',
    'RateFetchError',
    'OpportunityEvaluator',
    'PositionLedger',
    'ReservationResult',
    'PositionManager'
]
