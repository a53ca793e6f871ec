import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

import config
import signal_logic
import telegram_handler
from conftest import make_candles
from models import DataUnavailable, StrategyConfig
from telegram_handler import SignalBot

RISING = [100 * 1.01 ** i for i in range(120)]


class FakeMessage:
    def __init__(self):
        self.replies = []

    async def reply_text(self, text, **kwargs):
        self.replies.append(text)


class FakeBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text, **kwargs):
        self.sent.append((chat_id, text))


def make_update(chat_id=42):
    return SimpleNamespace(message=FakeMessage(), effective_chat=SimpleNamespace(id=chat_id))


def make_bot(closes=None):
    candles = make_candles(closes) if closes else []
    return SignalBot("TOKEN", fetch=lambda symbol, tf, limit: candles, strategy=StrategyConfig())


def test_normalize_symbol():
    assert telegram_handler.normalize_symbol("btc") == "BTCUSDT"
    assert telegram_handler.normalize_symbol("/ETH") == "ETHUSDT"
    assert telegram_handler.normalize_symbol("solusdt") == "SOLUSDT"


def test_parse_args_defaults_and_timeframe():
    bot = make_bot()
    assert bot.parse_args(["eth", "4h"]) == ("ETHUSDT", 240)
    with pytest.raises(ValueError):
        bot.parse_args(["eth", "soon"])


def test_format_long_signal_message():
    sig = signal_logic.build_signal(make_candles(RISING), StrategyConfig())
    text = telegram_handler.format_signal_message(
        "BTCUSDT", 60, sig, StrategyConfig(), rendered_at=datetime(2024, 1, 2, 3, 4, tzinfo=timezone.utc),
    )

    assert "BTCUSDT — 1h Technical Signal" in text
    assert "LONG SIGNAL" in text
    assert "TP1:" in text
    assert "Stop Loss:" in text
    assert "2024-01-02 03:04 UTC" in text
    assert text.count("\n  ") == len(sig.commentary)


def test_format_neutral_signal_has_no_levels():
    sig = signal_logic.build_signal(make_candles([100.0, 100.0]), StrategyConfig())
    text = telegram_handler.format_signal_message("BTCUSDT", 60, sig, StrategyConfig())

    assert "NO CLEAR SIGNAL" in text
    assert "Stop Loss" not in text
    assert "n/a" in text


def test_signal_text_data_unavailable():
    text = make_bot().signal_text("BTCUSDT", 60)
    assert text == telegram_handler.format_unavailable_message("BTCUSDT", DataUnavailable("no candles received"))


def test_signal_command_replies_twice():
    bot = make_bot(RISING)
    update = make_update()
    asyncio.run(bot.signal(update, SimpleNamespace(args=["btc", "1h"])))

    assert update.message.replies[0].startswith("🔄 Fetching signal for BTCUSDT")
    assert "LONG SIGNAL" in update.message.replies[1]


def test_signal_command_bad_timeframe():
    bot = make_bot(RISING)
    update = make_update()
    asyncio.run(bot.signal(update, SimpleNamespace(args=["btc", "forever"])))

    assert len(update.message.replies) == 1
    assert "Usage: /signal" in update.message.replies[0]


def test_pair_shortcut_uses_default_timeframe():
    bot = make_bot(RISING)
    update = make_update()
    asyncio.run(bot.pair_command("ETH")(update, SimpleNamespace(args=[])))

    assert "ETHUSDT" in update.message.replies[1]


def test_fetch_failure_is_reported_to_user():
    def broken(symbol, tf, limit):
        raise RuntimeError("boom")

    bot = SignalBot("TOKEN", fetch=broken, strategy=StrategyConfig())
    update = make_update()
    asyncio.run(bot.signal(update, SimpleNamespace(args=["btc"])))

    assert update.message.replies[-1].startswith("❌ Failed to build signal for BTCUSDT")


def test_auto_and_stop_manage_subscription():
    bot = make_bot(RISING)
    update = make_update(chat_id=7)

    asyncio.run(bot.auto(update, SimpleNamespace(args=["eth", "4h"])))
    assert bot.subscriptions.get(7).symbol == "ETHUSDT"
    assert bot.subscriptions.get(7).timeframe_minutes == 240

    asyncio.run(bot.stop(update, SimpleNamespace(args=[])))
    assert 7 not in bot.subscriptions
    assert "stopped" in update.message.replies[-1]


def test_stop_without_subscription():
    bot = make_bot()
    update = make_update()
    asyncio.run(bot.stop(update, SimpleNamespace(args=[])))
    assert update.message.replies == ["No active auto-updates in this chat."]


def test_push_updates_sends_to_every_subscriber():
    bot = make_bot(RISING)
    bot.subscriptions.subscribe(1, "BTCUSDT", 60)
    bot.subscriptions.subscribe(2, "ETHUSDT", 240)
    fake = FakeBot()

    asyncio.run(bot.push_updates(fake))

    assert [chat_id for chat_id, _ in fake.sent] == [1, 2]
    assert "ETHUSDT — 4h" in fake.sent[1][1]


def test_signal_command_rejects_timeframe_as_symbol():
    bot = make_bot(RISING)
    update = make_update()
    asyncio.run(bot.signal(update, SimpleNamespace(args=["4h"])))

    assert len(update.message.replies) == 1
    assert "Usage: /signal" in update.message.replies[0]


def test_parse_args_allows_symbols_starting_with_digits(monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_TIMEFRAME", "1h")
    assert make_bot().parse_args(["1inch"]) == ("1INCHUSDT", 60)


@pytest.mark.parametrize("seconds, expected", [(30, "30 sec"), (60, "1 min"), (3600, "60 min")])
def test_format_interval(seconds, expected):
    assert telegram_handler.format_interval(seconds) == expected


def test_auto_reply_shows_short_interval_in_seconds():
    bot = SignalBot("TOKEN", fetch=lambda symbol, tf, limit: make_candles(RISING), strategy=StrategyConfig(), auto_update_interval=30)
    update = make_update()
    asyncio.run(bot.auto(update, SimpleNamespace(args=["btc"])))

    assert "every 30 sec" in update.message.replies[0]
    assert "every 0 min" not in update.message.replies[0]
