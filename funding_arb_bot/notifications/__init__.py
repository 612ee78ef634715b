"""
Trade Event Notifications
"""

from .notifier import Notifier, LoggingNotifier, CompositeNotifier, format_trade_event
from .telegram_notifier import TelegramNotifier, TelegramError

__all__ = [
    'Notifier',
    'LoggingNotifier',
    'CompositeNotifier',
    'TelegramNotifier',
    'TelegramError',
    'format_trade_event'
]
