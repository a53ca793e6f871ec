import math

import pytest

from models import Candle


def make_candles(closes, volume=10.0, spread=1.0):
    """Свечи по ряду закрытий: open = предыдущее закрытие, high/low = +-spread"""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        candles.append(Candle(
            open_time=1_700_000_000_000 + i * 3_600_000,
            open=prev,
            high=max(prev, close) + spread,
            low=min(prev, close) - spread,
            close=close,
            volume=volume,
        ))
        prev = close
    return candles


def wave_closes(n=200):
    """Детерминированный ряд с трендом и колебаниями (замена сохраненной истории BTC/USDT)"""
    return [100 + 10 * math.sin(i / 7) + 0.3 * i + 2 * math.cos(i / 3) for i in range(n)]


@pytest.fixture
def wave_candles():
    closes = wave_closes()
    candles = []
    for i, close in enumerate(closes):
        prev = closes[i - 1] if i else close
        candles.append(Candle(
            open_time=1_700_000_000_000 + i * 3_600_000,
            open=prev,
            high=max(prev, close) + 0.5 + abs(math.sin(i)),
            low=min(prev, close) - 0.5 - abs(math.cos(i)),
            close=close,
            volume=1000 + 100 * math.sin(i / 5),
        ))
    return candles
