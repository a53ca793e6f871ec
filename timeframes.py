"""Перевод таймфреймов между строковой меткой и минутами"""
import re

_UNIT_MINUTES = {
    "m": 1,
    "h": 60,
    "d": 1440,
    "w": 10080,
}

_TF_RE = re.compile(r"^(\d+)([mhdw]?)$")


def to_minutes(timeframe: str) -> int:
    """Переводит "15m", "1h", "4h", "1d" в минуты. Число без единицы - минуты."""
    match = _TF_RE.match(timeframe.strip().lower())
    if not match:
        raise ValueError(f"Неизвестный таймфрейм: {timeframe}")
    value = int(match.group(1))
    if value <= 0:
        raise ValueError(f"Таймфрейм должен быть положительным: {timeframe}")
    return value * _UNIT_MINUTES[match.group(2) or "m"]


def to_label(minutes: int) -> str:
    """Обратное преобразование: 60 -> "1h", 1440 -> "1d" """
    for unit in ("w", "d", "h"):
        size = _UNIT_MINUTES[unit]
        if minutes % size == 0:
            return f"{minutes // size}{unit}"
    return f"{minutes}m"
