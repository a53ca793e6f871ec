"""Модуль для работы с публичным Binance Spot API (свечи)"""
import logging
from typing import List, Optional

import requests

import config
from models import Candle

# Минуты -> интервал Binance
INTERVALS = {
    1: "1m",
    3: "3m",
    5: "5m",
    15: "15m",
    30: "30m",
    60: "1h",
    120: "2h",
    240: "4h",
    360: "6h",
    480: "8h",
    720: "12h",
    1440: "1d",
    4320: "3d",
    10080: "1w",
}


def parse_klines(raw: list) -> List[Candle]:
    """Разбирает ответ /api/v3/klines: [openTime, open, high, low, close, volume, ...]"""
    return [
        Candle(
            open_time=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
        )
        for row in raw
    ]


def get_klines(symbol: str, timeframe_minutes: int, limit: int = 150, endpoints: Optional[List[str]] = None) -> List[Candle]:
    """Получает свечи, перебирая запасные хосты. При неудаче возвращает пустой список"""
    interval = INTERVALS.get(timeframe_minutes)
    if interval is None:
        logging.warning("Binance не поддерживает таймфрейм %d мин", timeframe_minutes)
        return []

    params = {
        "symbol": symbol,
        "interval": interval,
        "limit": limit,
    }
    headers = {"User-Agent": config.USER_AGENT}

    for base in endpoints or config.BINANCE_ENDPOINTS:
        url = f"{base}/api/v3/klines"
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=config.HTTP_TIMEOUT)
            resp.raise_for_status()
            raw = resp.json()
            if not raw:
                logging.warning("Пустой ответ klines от %s для %s %s", base, symbol, interval)
                continue
            return parse_klines(raw)
        except (requests.RequestException, ValueError, TypeError, IndexError) as e:
            logging.warning("Binance fetch failed: %s %s", url, e)
            continue

    logging.error("Все эндпоинты Binance недоступны для %s %s", symbol, interval)
    return []
