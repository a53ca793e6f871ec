"""Модели данных для бота"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Candle:
    """Свеча OHLCV (open_time в миллисекундах)"""
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float


class IndicatorName(str, Enum):
    """Фиксированный набор поддерживаемых индикаторов"""
    EMA = "EMA"
    RSI = "RSI"
    MACD = "MACD"
    BOLLINGER = "Bollinger"
    ADX = "ADX"
    ATR = "ATR"
    OBV = "OBV"
    STOCH_RSI = "StochRSI"
    FIBONACCI = "Fibonacci"


class Verdict(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class StopPolicy(str, Enum):
    """Способ расчета SL/TP"""
    PERCENT = "percent"
    ATR = "atr"


FIB_RATIOS = (0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0)


@dataclass(frozen=True)
class FibonacciLevels:
    """Уровни коррекции Фибоначчи, отсчитанные от максимума окна"""
    high: float
    low: float
    levels: Tuple[Tuple[float, float], ...]

    def price_at(self, ratio: float) -> float:
        return self.high - (self.high - self.low) * ratio


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Последние значения индикаторов; None - недостаточно истории"""
    ema_fast: Optional[float] = None
    ema_slow: Optional[float] = None
    rsi: Optional[float] = None
    rsi_sma: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_hist: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_middle: Optional[float] = None
    bb_lower: Optional[float] = None
    adx: Optional[float] = None
    plus_di: Optional[float] = None
    minus_di: Optional[float] = None
    atr: Optional[float] = None
    obv: Optional[float] = None
    obv_sma: Optional[float] = None
    stoch_rsi_k: Optional[float] = None
    stoch_rsi_d: Optional[float] = None
    fibonacci: Optional[FibonacciLevels] = None


@dataclass(frozen=True)
class StrategyConfig:
    """Параметры индикаторов и пороги стратегии"""
    ema_fast: int = 9
    ema_slow: int = 21
    rsi_period: int = 14
    rsi_sma_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bb_period: int = 20
    bb_std: float = 2.0
    adx_period: int = 14
    atr_period: int = 14
    obv_sma_period: int = 20
    stoch_rsi_period: int = 14
    stoch_period: int = 14
    stoch_k_smooth: int = 3
    stoch_d_smooth: int = 3
    fib_lookback: Optional[int] = None  # None = все окно свечей

    rsi_midline: float = 50.0
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    adx_trend_min: float = 25.0
    stoch_overbought: float = 80.0
    stoch_oversold: float = 20.0

    stop_policy: StopPolicy = StopPolicy.PERCENT
    stop_percent: float = 3.0
    take_profit_percents: Tuple[float, ...] = (3.0,)
    atr_stop_multiplier: float = 1.5
    atr_take_profit_multipliers: Tuple[float, ...] = (2.0, 3.0)

    min_candles: int = 1


@dataclass(frozen=True)
class IndicatorComment:
    """Вердикт отдельного индикатора (только для отображения)"""
    name: IndicatorName
    verdict: Verdict
    note: str


@dataclass(frozen=True)
class Signal:
    """Структура данных для торгового сигнала"""
    direction: Direction
    entry_price: float
    stop_loss: Optional[float]
    take_profits: Tuple[float, ...]
    commentary: Tuple[IndicatorComment, ...]
    snapshot: IndicatorSnapshot = field(default_factory=IndicatorSnapshot)


@dataclass(frozen=True)
class DataUnavailable:
    """Свечи не получены или их слишком мало - сигнал не строится"""
    reason: str
