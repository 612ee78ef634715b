"""
Notifier - Fire-and-forget trade event reporting
================================================

The position manager calls a notifier after every leg it opens or closes.
Delivery problems are the notifier's own business: the caller bounds the
call with a timeout and logs failures, trading state never depends on it.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional
import asyncio
import logging


def code_span(value) -> str:
    """Inline code span; its content is not parsed as Markdown"""
    return "`" + str(value).replace("`", "'") + "`"


def format_trade_event(action: str, venue_name: str, market: str, size_usd: Decimal,
                       error: Optional[str] = None) -> str:
    """Markdown message for one leg event"""
    status = "❌ FAILED" if error else "✅ SUCCESS"
    lines = [
        f"*{action} Position Event*",
        "",
        f"Status: {status}",
        f"Exchange: {code_span(venue_name)}",
        f"Market: {code_span(market)}",
        f"Position Size: {code_span(f'{float(size_usd):.2f} USD')}",
    ]
    if error:
        lines.append(f"Error: {code_span(error)}")
    return "\n".join(lines)


class Notifier(ABC):
    """Receives trade events from the position manager"""

    @abstractmethod
    async def notify(self, action: str, venue_name: str, market: str, size_usd: Decimal,
                     error: Optional[str] = None) -> None:
        """
        Report one leg event.

        Args:
            action: OPEN LONG, OPEN SHORT, CLOSE LONG or CLOSE SHORT
            venue_name: Venue the leg was sent to
            market: Market identifier
            size_usd: USD notional of the leg
            error: Failure description, None on success
        """
        pass

    @abstractmethod
    async def notify_critical(self, market: str, message: str) -> None:
        """Report a condition that needs manual intervention"""
        pass

    async def close(self) -> None:
        """Release resources held by the notifier"""
        pass


class LoggingNotifier(Notifier):
    """Writes trade events to the log"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def notify(self, action: str, venue_name: str, market: str, size_usd: Decimal,
                     error: Optional[str] = None) -> None:
        if error:
            self.logger.warning(f"❌ {action} {market} on {venue_name} (${size_usd}) failed: {error}")
        else:
            self.logger.info(f"📣 {action} {market} on {venue_name} (${size_usd})")

    async def notify_critical(self, market: str, message: str) -> None:
        self.logger.critical(f"🚨 {market}: {message}")


class CompositeNotifier(Notifier):
    """Fans each event out to several notifiers; one failing does not stop the others"""

    def __init__(self, notifiers: List[Notifier]):
        self.notifiers = list(notifiers)
        self.logger = logging.getLogger(__name__)

    async def _fan_out(self, calls) -> None:
        results = await asyncio.gather(*calls, return_exceptions=True)
        for notifier, result in zip(self.notifiers, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Notifier {notifier.__class__.__name__} failed: {result}")

    async def notify(self, action: str, venue_name: str, market: str, size_usd: Decimal,
                     error: Optional[str] = None) -> None:
        await self._fan_out([n.notify(action, venue_name, market, size_usd, error) for n in self.notifiers])

    async def notify_critical(self, market: str, message: str) -> None:
        await self._fan_out([n.notify_critical(market, message) for n in self.notifiers])

    async def close(self) -> None:
        await self._fan_out([n.close() for n in self.notifiers])
