"""
Venue Connectors Package
"""

from .base_connector import (
    BaseVenueConnector,
    ExchangeError,
    ExchangeConnectionError,
    TradingError,
    InsufficientBalanceError,
    RateLimitError
)

from .lighter_connector import LighterConnector
from .extended_connector import ExtendedConnector
from .ccxt_connector import CcxtConnector
from .factory import create_connector

__all__ = [
    'BaseVenueConnector',
    'ExchangeError',
    'ExchangeConnectionError',
    'TradingError',
    'InsufficientBalanceError',
    'RateLimitError',
    'LighterConnector',
    'ExtendedConnector',
    'CcxtConnector',
    'create_connector'
]
