"""Модуль технических индикаторов"""
import math
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from models import FIB_RATIOS, Candle, FibonacciLevels, IndicatorSnapshot, StrategyConfig


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Преобразует список свечей в DataFrame (старые свечи первыми)"""
    df = pd.DataFrame(
        [(c.open_time, c.open, c.high, c.low, c.close, c.volume) for c in candles],
        columns=["open_time", "open", "high", "low", "close", "volume"],
    )
    for col in ["open", "high", "low", "close", "volume"]:
        df[col] = df[col].astype(float)
    return df


def _seeded_smoothing(series: pd.Series, period: int, alpha: float) -> pd.Series:
    """Рекурсивное сглаживание с затравкой SMA по первым `period` валидным значениям.

    Значения до затравки - NaN. Ведущие NaN во входном ряду пропускаются,
    поэтому функция подходит и для производных рядов (линия MACD, DX).
    """
    values = series.astype(float)
    result = pd.Series(np.nan, index=values.index)
    valid = values.notna().to_numpy()
    if period <= 0 or valid.sum() < period:
        return result

    start = int(valid.argmax())
    seed_pos = start + period - 1
    seeded = values.copy()
    seeded.iloc[:seed_pos] = np.nan
    seeded.iloc[seed_pos] = values.iloc[start:seed_pos + 1].mean()
    return seeded.ewm(alpha=alpha, adjust=False).mean()


def sma(series: pd.Series, period: int) -> pd.Series:
    """Простая скользящая средняя (SMA)"""
    return series.rolling(window=period, min_periods=period).mean()


def ema(series: pd.Series, period: int) -> pd.Series:
    """Вычисляет экспоненциальную скользящую среднюю (EMA), затравка - SMA первых period значений"""
    return _seeded_smoothing(series, period, 2.0 / (period + 1))


def wilder(series: pd.Series, period: int) -> pd.Series:
    """Сглаживание Уайлдера (RMA)"""
    return _seeded_smoothing(series, period, 1.0 / period)


def rsi(series: pd.Series, period: int = 14) -> pd.Series:
    """Вычисляет индекс относительной силы (RSI) по Уайлдеру"""
    delta = series.diff()
    gain = delta.clip(lower=0)
    loss = (-delta).clip(lower=0)

    avg_gain = wilder(gain, period)
    avg_loss = wilder(loss, period)

    rs = avg_gain / avg_loss
    rsi_series = 100 - (100 / (1 + rs))
    # Нет потерь - 100, нет движения вообще - 50
    rsi_series = rsi_series.where(avg_loss != 0, 100.0)
    rsi_series = rsi_series.where((avg_gain != 0) | (avg_loss != 0), 50.0)
    return rsi_series


def macd(series: pd.Series, fast: int = 12, slow: int = 26, signal: int = 9) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Вычисляет MACD: возвращает (macd_line, signal_line, histogram)"""
    macd_line = ema(series, fast) - ema(series, slow)
    signal_line = ema(macd_line, signal)
    histogram = macd_line - signal_line
    return macd_line, signal_line, histogram


def bollinger_bands(series: pd.Series, period: int = 20, num_std: float = 2.0) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Полосы Боллинджера: возвращает (upper, middle, lower)"""
    middle = sma(series, period)
    std = series.rolling(window=period, min_periods=period).std(ddof=0)
    upper = middle + num_std * std
    lower = middle - num_std * std
    return upper, middle, lower


def true_range(df: pd.DataFrame) -> pd.Series:
    """Истинный диапазон; для первой свечи не определен (нет предыдущего закрытия)"""
    high = df["high"]
    low = df["low"]
    prev_close = df["close"].shift(1)
    tr1 = high - low
    tr2 = (high - prev_close).abs()
    tr3 = (low - prev_close).abs()
    return pd.concat([tr1, tr2, tr3], axis=1).max(axis=1, skipna=False)


def atr(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """Вычисляет средний истинный диапазон (ATR)"""
    return wilder(true_range(df), period)


def adx(df: pd.DataFrame, period: int = 14) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Вычисляет ADX по Уайлдеру: возвращает (adx, plus_di, minus_di)"""
    high = df["high"]
    low = df["low"]

    # Directional Movement
    up = high.diff()
    down = -low.diff()
    plus_dm = up.where((up > down) & (up > 0), 0.0).where(up.notna())
    minus_dm = down.where((down > up) & (down > 0), 0.0).where(down.notna())

    # Smoothing
    tr_smooth = wilder(true_range(df), period).replace(0, np.nan)
    plus_di = 100 * wilder(plus_dm, period) / tr_smooth
    minus_di = 100 * wilder(minus_dm, period) / tr_smooth

    # ADX
    di_sum = plus_di + minus_di
    dx = 100 * (plus_di - minus_di).abs() / di_sum.replace(0, np.nan)
    dx = dx.where(di_sum != 0, 0.0)
    adx_series = wilder(dx, period)

    return adx_series, plus_di, minus_di


def obv(df: pd.DataFrame) -> pd.Series:
    """On-Balance Volume: объем прибавляется на росте закрытия и вычитается на падении"""
    direction = np.sign(df["close"].diff()).fillna(0)
    return (direction * df["volume"]).cumsum()


def stoch_rsi(
    series: pd.Series,
    rsi_period: int = 14,
    stoch_period: int = 14,
    k_smooth: int = 3,
    d_smooth: int = 3,
) -> Tuple[pd.Series, pd.Series]:
    """Stochastic RSI: возвращает (%K, %D)"""
    rsi_series = rsi(series, rsi_period)
    min_rsi = rsi_series.rolling(window=stoch_period, min_periods=stoch_period).min()
    max_rsi = rsi_series.rolling(window=stoch_period, min_periods=stoch_period).max()
    raw = 100 * (rsi_series - min_rsi) / (max_rsi - min_rsi).replace(0, np.nan)
    k = sma(raw, k_smooth)
    d = sma(k, d_smooth)
    return k, d


def fibonacci_levels(df: pd.DataFrame, lookback: Optional[int] = None) -> Optional[FibonacciLevels]:
    """Уровни коррекции Фибоначчи по максимуму/минимуму последних lookback свечей"""
    window = df.tail(lookback) if lookback else df
    if window.empty:
        return None

    high = float(window["high"].max())
    low = float(window["low"].min())
    if math.isnan(high) or math.isnan(low):
        return None

    levels = tuple((ratio, high - (high - low) * ratio) for ratio in FIB_RATIOS)
    return FibonacciLevels(high=high, low=low, levels=levels)


def _last(series: pd.Series) -> Optional[float]:
    """Последнее значение ряда или None, если его еще нет"""
    if series.empty:
        return None
    value = float(series.iloc[-1])
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def compute_snapshot(candles: Sequence[Candle], strategy: StrategyConfig) -> IndicatorSnapshot:
    """Считает весь набор индикаторов и возвращает их последние значения"""
    if not candles:
        return IndicatorSnapshot()

    df = candles_to_frame(candles)
    close = df["close"]
    s = strategy

    rsi_series = rsi(close, s.rsi_period)
    macd_line, macd_signal_line, macd_hist = macd(close, s.macd_fast, s.macd_slow, s.macd_signal)
    bb_upper, bb_middle, bb_lower = bollinger_bands(close, s.bb_period, s.bb_std)
    adx_series, plus_di, minus_di = adx(df, s.adx_period)
    obv_series = obv(df)
    stoch_k, stoch_d = stoch_rsi(close, s.stoch_rsi_period, s.stoch_period, s.stoch_k_smooth, s.stoch_d_smooth)

    return IndicatorSnapshot(
        ema_fast=_last(ema(close, s.ema_fast)),
        ema_slow=_last(ema(close, s.ema_slow)),
        rsi=_last(rsi_series),
        rsi_sma=_last(sma(rsi_series, s.rsi_sma_period)),
        macd=_last(macd_line),
        macd_signal=_last(macd_signal_line),
        macd_hist=_last(macd_hist),
        bb_upper=_last(bb_upper),
        bb_middle=_last(bb_middle),
        bb_lower=_last(bb_lower),
        adx=_last(adx_series),
        plus_di=_last(plus_di),
        minus_di=_last(minus_di),
        atr=_last(atr(df, s.atr_period)),
        obv=_last(obv_series),
        obv_sma=_last(sma(obv_series, s.obv_sma_period)),
        stoch_rsi_k=_last(stoch_k),
        stoch_rsi_d=_last(stoch_d),
        fibonacci=fibonacci_levels(df, s.fib_lookback),
    )
