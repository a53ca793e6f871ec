"""Модуль логики генерации торговых сигналов"""
import logging
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import config
import indicators
from models import (
    Candle,
    DataUnavailable,
    Direction,
    IndicatorComment,
    IndicatorName,
    IndicatorSnapshot,
    Signal,
    StopPolicy,
    StrategyConfig,
    Verdict,
)

NO_DATA_NOTE = "insufficient history"


def _compare(a: float, b: float) -> Verdict:
    if a > b:
        return Verdict.BULLISH
    if a < b:
        return Verdict.BEARISH
    return Verdict.NEUTRAL


def _no_data(name: IndicatorName) -> IndicatorComment:
    return IndicatorComment(name, Verdict.NEUTRAL, NO_DATA_NOTE)


# ========== КОММЕНТАРИИ ПО ИНДИКАТОРАМ ==========

def _comment_ema(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.ema_fast is None or snap.ema_slow is None:
        return _no_data(IndicatorName.EMA)
    verdict = _compare(snap.ema_fast, snap.ema_slow)
    relation = {Verdict.BULLISH: "above", Verdict.BEARISH: "below", Verdict.NEUTRAL: "at"}[verdict]
    return IndicatorComment(IndicatorName.EMA, verdict, f"EMA{s.ema_fast} {relation} EMA{s.ema_slow}")


def _comment_rsi(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.rsi is None:
        return _no_data(IndicatorName.RSI)
    if snap.rsi >= s.rsi_overbought:
        return IndicatorComment(IndicatorName.RSI, Verdict.BEARISH, f"overbought ({snap.rsi:.1f})")
    if snap.rsi <= s.rsi_oversold:
        return IndicatorComment(IndicatorName.RSI, Verdict.BULLISH, f"oversold ({snap.rsi:.1f})")
    verdict = _compare(snap.rsi, s.rsi_midline)
    note = f"{snap.rsi:.1f} vs midline {s.rsi_midline:g}"
    if snap.rsi_sma is not None:
        note += f", {'rising' if snap.rsi > snap.rsi_sma else 'falling'} vs its SMA"
    return IndicatorComment(IndicatorName.RSI, verdict, note)


def _comment_macd(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.macd is None or snap.macd_signal is None:
        return _no_data(IndicatorName.MACD)
    verdict = _compare(snap.macd, snap.macd_signal)
    hist = snap.macd_hist if snap.macd_hist is not None else snap.macd - snap.macd_signal
    return IndicatorComment(IndicatorName.MACD, verdict, f"histogram {hist:+.4f}")


def _comment_bollinger(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.bb_upper is None or snap.bb_lower is None:
        return _no_data(IndicatorName.BOLLINGER)
    if close > snap.bb_upper:
        return IndicatorComment(IndicatorName.BOLLINGER, Verdict.BEARISH, "price above upper band")
    if close < snap.bb_lower:
        return IndicatorComment(IndicatorName.BOLLINGER, Verdict.BULLISH, "price below lower band")
    width = snap.bb_upper - snap.bb_lower
    if width <= 0:
        return IndicatorComment(IndicatorName.BOLLINGER, Verdict.NEUTRAL, "bands collapsed")
    position = (close - snap.bb_lower) / width * 100
    return IndicatorComment(IndicatorName.BOLLINGER, Verdict.NEUTRAL, f"inside bands ({position:.0f}% of width)")


def _comment_adx(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.adx is None:
        return _no_data(IndicatorName.ADX)
    if snap.adx < s.adx_trend_min or snap.plus_di is None or snap.minus_di is None:
        return IndicatorComment(IndicatorName.ADX, Verdict.NEUTRAL, f"weak trend ({snap.adx:.1f})")
    verdict = _compare(snap.plus_di, snap.minus_di)
    return IndicatorComment(IndicatorName.ADX, verdict, f"strong trend ({snap.adx:.1f}), +DI {snap.plus_di:.1f} / -DI {snap.minus_di:.1f}")


def _comment_atr(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.atr is None:
        return _no_data(IndicatorName.ATR)
    if close == 0:
        return IndicatorComment(IndicatorName.ATR, Verdict.NEUTRAL, f"ATR {snap.atr:.6g}")
    return IndicatorComment(IndicatorName.ATR, Verdict.NEUTRAL, f"volatility {snap.atr / close * 100:.2f}% of price")


def _comment_obv(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    if snap.obv is None or snap.obv_sma is None:
        return _no_data(IndicatorName.OBV)
    verdict = _compare(snap.obv, snap.obv_sma)
    note = {
        Verdict.BULLISH: "volume inflow (OBV above its SMA)",
        Verdict.BEARISH: "volume outflow (OBV below its SMA)",
        Verdict.NEUTRAL: "OBV flat",
    }[verdict]
    return IndicatorComment(IndicatorName.OBV, verdict, note)


def _comment_stoch_rsi(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    k, d = snap.stoch_rsi_k, snap.stoch_rsi_d
    if k is None or d is None:
        return _no_data(IndicatorName.STOCH_RSI)
    if k <= s.stoch_oversold:
        return IndicatorComment(IndicatorName.STOCH_RSI, Verdict.BULLISH, f"oversold (K {k:.1f})")
    if k >= s.stoch_overbought:
        return IndicatorComment(IndicatorName.STOCH_RSI, Verdict.BEARISH, f"overbought (K {k:.1f})")
    return IndicatorComment(IndicatorName.STOCH_RSI, _compare(k, d), f"K {k:.1f} / D {d:.1f}")


def _comment_fibonacci(snap: IndicatorSnapshot, close: float, s: StrategyConfig) -> IndicatorComment:
    fib = snap.fibonacci
    if fib is None or fib.high == fib.low:
        return _no_data(IndicatorName.FIBONACCI)
    ratio, level = min(fib.levels, key=lambda item: abs(item[1] - close))
    note = f"nearest level {ratio * 100:.1f}% at {level:.6g}"
    # Коррекция меньше 38.2% от максимума - тренд держится, глубже 61.8% - слабость
    if close >= fib.price_at(0.382):
        return IndicatorComment(IndicatorName.FIBONACCI, Verdict.BULLISH, f"shallow pullback, {note}")
    if close <= fib.price_at(0.618):
        return IndicatorComment(IndicatorName.FIBONACCI, Verdict.BEARISH, f"deep retracement, {note}")
    return IndicatorComment(IndicatorName.FIBONACCI, Verdict.NEUTRAL, note)


Commentator = Callable[[IndicatorSnapshot, float, StrategyConfig], IndicatorComment]

COMMENTATORS: Dict[IndicatorName, Commentator] = {
    IndicatorName.EMA: _comment_ema,
    IndicatorName.RSI: _comment_rsi,
    IndicatorName.MACD: _comment_macd,
    IndicatorName.BOLLINGER: _comment_bollinger,
    IndicatorName.ADX: _comment_adx,
    IndicatorName.ATR: _comment_atr,
    IndicatorName.OBV: _comment_obv,
    IndicatorName.STOCH_RSI: _comment_stoch_rsi,
    IndicatorName.FIBONACCI: _comment_fibonacci,
}


# ========== НАПРАВЛЕНИЕ И УРОВНИ ==========

def detect_direction(snap: IndicatorSnapshot, strategy: StrategyConfig) -> Direction:
    """Long/Short только при согласии EMA, RSI и MACD; любой None - Neutral"""
    required = (snap.ema_fast, snap.ema_slow, snap.rsi, snap.macd, snap.macd_signal)
    if any(x is None for x in required):
        return Direction.NEUTRAL

    if snap.ema_fast > snap.ema_slow and snap.rsi > strategy.rsi_midline and snap.macd > snap.macd_signal:
        return Direction.LONG
    if snap.ema_fast < snap.ema_slow and snap.rsi < strategy.rsi_midline and snap.macd < snap.macd_signal:
        return Direction.SHORT
    return Direction.NEUTRAL


def compute_levels(
    direction: Direction,
    entry: float,
    atr_value: Optional[float],
    strategy: StrategyConfig,
) -> Tuple[Optional[float], Tuple[float, ...]]:
    """Возвращает (stop_loss, take_profits) для выбранной политики стопов"""
    if direction == Direction.NEUTRAL:
        return None, ()

    side = 1.0 if direction == Direction.LONG else -1.0

    if strategy.stop_policy == StopPolicy.ATR:
        if atr_value is None:
            logging.warning("ATR недоступен - уровни SL/TP не рассчитаны")
            return None, ()
        sl = entry - side * strategy.atr_stop_multiplier * atr_value
        tps = tuple(entry + side * m * atr_value for m in strategy.atr_take_profit_multipliers)
        return sl, tps

    sl = entry * (1 - side * strategy.stop_percent / 100)
    tps = tuple(entry * (1 + side * p / 100) for p in strategy.take_profit_percents)
    return sl, tps


def evaluate(snapshot: IndicatorSnapshot, last_close: float, strategy: Optional[StrategyConfig] = None) -> Signal:
    """Строит сигнал по снимку индикаторов и последней цене закрытия"""
    strategy = strategy or config.STRATEGY

    direction = detect_direction(snapshot, strategy)
    sl, tps = compute_levels(direction, last_close, snapshot.atr, strategy)
    commentary = tuple(COMMENTATORS[name](snapshot, last_close, strategy) for name in IndicatorName)

    return Signal(
        direction=direction,
        entry_price=last_close,
        stop_loss=sl,
        take_profits=tps,
        commentary=commentary,
        snapshot=snapshot,
    )


def build_signal(
    candles: Sequence[Candle],
    strategy: Optional[StrategyConfig] = None,
) -> Union[Signal, DataUnavailable]:
    """Свечи -> индикаторы -> сигнал. Пустой или слишком короткий ряд дает DataUnavailable"""
    strategy = strategy or config.STRATEGY

    if not candles:
        return DataUnavailable("no candles received")
    if len(candles) < strategy.min_candles:
        return DataUnavailable(f"only {len(candles)} candles, need at least {strategy.min_candles}")

    snapshot = indicators.compute_snapshot(candles, strategy)
    return evaluate(snapshot, candles[-1].close, strategy)
