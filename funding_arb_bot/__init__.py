"""
Funding Rate Arbitrage Bot
"""

__version__ = "1.0.0"
__description__ = "Funding rate arbitrage bot for perpetual futures venues"

from .bot.arbitrage_engine import ArbitrageEngine, EngineState
from .models.config import FundingBotConfig

__all__ = [
    'ArbitrageEngine',
    'EngineState',
    'FundingBotConfig'
]
