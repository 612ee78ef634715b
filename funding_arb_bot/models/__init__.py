"""
Data models for the funding rate arbitrage bot.
"""

from .order import Order, OrderStatus, OrderType, OrderSide
from .funding_rate import FundingRate
from .position import PositionInfo, PositionSide
from .opportunity import ArbitrageDecision, DecisionAction
from .execution import CycleReport, ExecutionResult, ExecutionStatus

__all__ = [
    "Order", "OrderStatus", "OrderType", "OrderSide",
    "FundingRate",
    "PositionInfo", "PositionSide",
    "ArbitrageDecision", "DecisionAction",
    "CycleReport", "ExecutionResult", "ExecutionStatus"
]
