"""Модуль для работы с CryptoCompare API (исторические свечи)"""
import logging
from typing import List, Tuple

import requests

import config
from models import Candle

KNOWN_QUOTES = ("USDT", "USDC", "BUSD", "USD", "EUR", "BTC", "ETH")


def split_symbol(symbol: str) -> Tuple[str, str]:
    """BTCUSDT -> ("BTC", "USDT"). Сначала пробуем настроенную котируемую валюту"""
    symbol = symbol.upper()
    for quote in (config.QUOTE_ASSET,) + KNOWN_QUOTES:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[:-len(quote)], quote
    return symbol, config.QUOTE_ASSET


def endpoint_for(timeframe_minutes: int) -> Tuple[str, int]:
    """Выбирает histominute/histohour/histoday и параметр aggregate"""
    if timeframe_minutes % 1440 == 0:
        return "histoday", timeframe_minutes // 1440
    if timeframe_minutes % 60 == 0:
        return "histohour", timeframe_minutes // 60
    return "histominute", timeframe_minutes


def parse_history(data: dict) -> List[Candle]:
    """Разбирает ответ /data/v2/histo*; время в секундах переводится в миллисекунды"""
    rows = data.get("Data", {}).get("Data", [])
    return [
        Candle(
            open_time=int(row["time"]) * 1000,
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=float(row["volumefrom"]),
        )
        for row in rows
    ]


def get_history(symbol: str, timeframe_minutes: int, limit: int = 150) -> List[Candle]:
    """Получает свечи для символа. При неудаче возвращает пустой список"""
    fsym, tsym = split_symbol(symbol)
    path, aggregate = endpoint_for(timeframe_minutes)

    url = f"{config.CRYPTOCOMPARE_BASE}/data/v2/{path}"
    params = {
        "fsym": fsym,
        "tsym": tsym,
        "aggregate": aggregate,
        "limit": limit,
    }
    headers = {"User-Agent": config.USER_AGENT}
    if config.CRYPTOCOMPARE_API_KEY:
        headers["authorization"] = f"Apikey {config.CRYPTOCOMPARE_API_KEY}"

    try:
        resp = requests.get(url, params=params, headers=headers, timeout=config.HTTP_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
        if data.get("Response") != "Success":
            logging.warning("CryptoCompare API error для %s: %s", symbol, data.get("Message", "Unknown error"))
            return []
        candles = parse_history(data)
    except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
        logging.warning("CryptoCompare fetch failed: %s %s", url, e)
        return []

    # API отдает limit + 1 свечей
    return candles[-limit:] if limit > 0 else candles
