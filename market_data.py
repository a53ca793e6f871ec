"""Выбор источника свечей по настройке MARKET_DATA_SOURCE"""
import logging
from typing import List

import binance_api
import config
import cryptocompare_api
from models import Candle


def fetch_candles(symbol: str, timeframe_minutes: int, limit: int) -> List[Candle]:
    """Свечи от настроенного источника, старые первыми; пустой список - данных нет"""
    if config.MARKET_DATA_SOURCE == "cryptocompare":
        candles = cryptocompare_api.get_history(symbol, timeframe_minutes, limit)
    else:
        candles = binance_api.get_klines(symbol, timeframe_minutes, limit)

    logging.info("Получено %d свечей %s (%d мин) от %s", len(candles), symbol, timeframe_minutes, config.MARKET_DATA_SOURCE)
    return candles
