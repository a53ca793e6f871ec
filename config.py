"""Модуль конфигурации - загрузка настроек из переменных окружения"""
import os
import logging
from dotenv import load_dotenv

from models import StopPolicy, StrategyConfig

# Загрузка переменных окружения
load_dotenv()

# Настройка логирования
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)


def _float_list(raw: str) -> tuple:
    """Разбирает строку вида "2.0,3.0" в кортеж чисел"""
    return tuple(float(x) for x in raw.split(",") if x.strip())


# Telegram настройки
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "").rstrip("/")  # пусто = polling
PORT = int(os.getenv("PORT", "3000"))

# Источник свечей: "binance" или "cryptocompare" (по умолчанию binance)
MARKET_DATA_SOURCE = os.getenv("MARKET_DATA_SOURCE", "binance").lower()

if MARKET_DATA_SOURCE not in ["binance", "cryptocompare"]:
    logging.warning(f"Неизвестный источник данных '{MARKET_DATA_SOURCE}', используем 'binance' по умолчанию")
    MARKET_DATA_SOURCE = "binance"

# Binance публичный API: запасные хосты перебираются по порядку
BINANCE_ENDPOINTS = [
    x.strip().rstrip("/")
    for x in os.getenv(
        "BINANCE_ENDPOINTS",
        "https://api.binance.com,https://api1.binance.com,https://api2.binance.com,https://api-gcp.binance.com",
    ).split(",")
    if x.strip()
]

# CryptoCompare API (ключ необязателен для публичных эндпоинтов)
CRYPTOCOMPARE_BASE = os.getenv("CRYPTOCOMPARE_BASE", "https://min-api.cryptocompare.com").rstrip("/")
CRYPTOCOMPARE_API_KEY = os.getenv("CRYPTOCOMPARE_API_KEY", "")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))
USER_AGENT = os.getenv("USER_AGENT", "Mozilla/5.0 TelegramCryptoBot")

# Пары и таймфрейм
QUOTE_ASSET = os.getenv("QUOTE_ASSET", "USDT").upper()
PAIRS = [x.strip().upper() for x in os.getenv("PAIRS", "BTC,ETH,LINK,DOT,SUI").split(",") if x.strip()]
DEFAULT_TIMEFRAME = os.getenv("DEFAULT_TIMEFRAME", "1h")
CANDLE_LIMIT = int(os.getenv("CANDLE_LIMIT", "150"))

# Автообновления для подписанных чатов
AUTO_UPDATE_INTERVAL_SECONDS = int(os.getenv("AUTO_UPDATE_INTERVAL_SECONDS", "3600"))

# Политика стопов: "percent" или "atr"
stop_policy_raw = os.getenv("STOP_POLICY", "percent").lower()
try:
    STOP_POLICY = StopPolicy(stop_policy_raw)
except ValueError:
    logging.warning(f"Неизвестная политика стопов '{stop_policy_raw}', используем 'percent' по умолчанию")
    STOP_POLICY = StopPolicy.PERCENT

# Стратегия по умолчанию
STRATEGY = StrategyConfig(
    ema_fast=int(os.getenv("EMA_FAST", "9")),
    ema_slow=int(os.getenv("EMA_SLOW", "21")),
    rsi_midline=float(os.getenv("RSI_MIDLINE", "50")),
    rsi_overbought=float(os.getenv("RSI_OVERBOUGHT", "70")),
    rsi_oversold=float(os.getenv("RSI_OVERSOLD", "30")),
    adx_trend_min=float(os.getenv("ADX_TREND_MIN", "25")),
    stop_policy=STOP_POLICY,
    stop_percent=float(os.getenv("STOP_PERCENT", "3.0")),
    take_profit_percents=_float_list(os.getenv("TAKE_PROFIT_PERCENTS", "3.0")),
    atr_stop_multiplier=float(os.getenv("ATR_SL_MULTIPLIER", "1.5")),
    atr_take_profit_multipliers=_float_list(os.getenv("ATR_TP_MULTIPLIERS", "2.0,3.0")),
    min_candles=int(os.getenv("MIN_CANDLES", "1")),
)

logging.info(
    "Загружены настройки: source=%s, timeframe=%s, limit=%d, stop_policy=%s, EMA %d/%d",
    MARKET_DATA_SOURCE, DEFAULT_TIMEFRAME, CANDLE_LIMIT, STRATEGY.stop_policy.value,
    STRATEGY.ema_fast, STRATEGY.ema_slow,
)
