from decimal import Decimal

import pytest

from funding_arb_bot.notifications import (
    CompositeNotifier,
    LoggingNotifier,
    TelegramError,
    TelegramNotifier,
    format_trade_event
)

from conftest import RecordingNotifier


class FakeResponse:
    def __init__(self, status=200, body="{}"):
        self.status = status
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    closed = False

    def __init__(self, response):
        self.response = response
        self.posts = []

    def post(self, url, json=None):
        self.posts.append((url, json))
        return self.response

    async def close(self):
        self.closed = True


def test_trade_event_format():
    success = format_trade_event("OPEN LONG", "Lighter", "BTC-USD", Decimal("100"))
    failure = format_trade_event("CLOSE SHORT", "Extended", "ETH-USD", Decimal("12.5"), "rejected")

    assert "*OPEN LONG Position Event*" in success
    assert "✅ SUCCESS" in success
    assert "Position Size: `100.00 USD`" in success
    assert "Error" not in success
    assert "❌ FAILED" in failure
    assert "Position Size: `12.50 USD`" in failure
    assert "Error: `rejected`" in failure


@pytest.mark.asyncio
async def test_telegram_posts_markdown_message():
    notifier = TelegramNotifier("TOKEN", "123")
    session = FakeSession(FakeResponse())
    notifier._session = session

    await notifier.notify("OPEN SHORT", "Extended", "BTC-USD", Decimal("100"))

    url, payload = session.posts[0]
    assert url == "https://api.telegram.org/botTOKEN/sendMessage"
    assert payload["chat_id"] == "123"
    assert payload["parse_mode"] == "Markdown"
    assert "OPEN SHORT" in payload["text"]


@pytest.mark.asyncio
async def test_telegram_message_keeps_venue_errors_out_of_markdown():
    notifier = TelegramNotifier("TOKEN", "123")
    session = FakeSession(FakeResponse())
    notifier._session = session

    await notifier.notify("OPEN SHORT", "Bybit", "BTC-USD", Decimal("100"), "Bybit create_order: insufficient margin")
    await notifier.notify_critical("BTC-USD", "short leg failed: Bybit create_order: `rejected`")

    event_text = session.posts[0][1]["text"]
    critical_text = session.posts[1][1]["text"]
    assert "Error: `Bybit create_order: insufficient margin`" in event_text
    assert "`short leg failed: Bybit create_order: 'rejected'`" in critical_text
    # outside code spans no underscore is left for the Markdown parser
    for text in (event_text, critical_text):
        assert "_" not in "".join(text.split("`")[0::2])


@pytest.mark.asyncio
async def test_telegram_error_status_raises():
    notifier = TelegramNotifier("TOKEN", "123")
    notifier._session = FakeSession(FakeResponse(status=400, body="bad chat"))

    with pytest.raises(TelegramError):
        await notifier.notify_critical("BTC-USD", "unhedged long")


@pytest.mark.asyncio
async def test_telegram_close_releases_session():
    notifier = TelegramNotifier("TOKEN", "123")
    session = FakeSession(FakeResponse())
    notifier._session = session

    await notifier.close()

    assert session.closed is True


def test_telegram_needs_credentials():
    with pytest.raises(ValueError):
        TelegramNotifier("", "123")


@pytest.mark.asyncio
async def test_composite_isolates_failing_notifier():
    good = RecordingNotifier()
    composite = CompositeNotifier([RecordingNotifier(error=RuntimeError("down")), good, LoggingNotifier()])

    await composite.notify("CLOSE LONG", "Lighter", "BTC-USD", Decimal("100"))
    await composite.notify_critical("BTC-USD", "check it")

    assert good.actions == ["CLOSE LONG"]
    assert good.critical == [("BTC-USD", "check it")]
