"""
Telegram notifier.

Sends trade events through the Telegram Bot API ``sendMessage`` method.
"""

from decimal import Decimal
from typing import Optional
import logging

import aiohttp

from .notifier import Notifier, code_span, format_trade_event

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramError(Exception):
    """Telegram rejected or did not receive a message"""
    pass


class TelegramNotifier(Notifier):
    """Posts Markdown trade events to one Telegram chat"""

    def __init__(self, bot_token: str, chat_id: str, api_url: str = TELEGRAM_API_URL,
                 request_timeout: float = 10.0):
        if not bot_token or not chat_id:
            raise ValueError("Telegram notifier needs a bot token and a chat id")
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(__name__)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.request_timeout))
        return self._session

    async def send_message(self, text: str) -> None:
        session = await self._get_session()
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"}
        try:
            async with session.post(url, json=payload) as response:
                if response.status != 200:
                    body = await response.text()
                    raise TelegramError(f"Telegram sendMessage returned {response.status}: {body}")
        except aiohttp.ClientError as e:
            raise TelegramError(f"Telegram request failed: {e}") from e

    async def notify(self, action: str, venue_name: str, market: str, size_usd: Decimal,
                     error: Optional[str] = None) -> None:
        await self.send_message(format_trade_event(action, venue_name, market, size_usd, error))

    async def notify_critical(self, market: str, message: str) -> None:
        await self.send_message(f"🚨 *CRITICAL* {code_span(market)}\n\n{code_span(message)}")

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None
