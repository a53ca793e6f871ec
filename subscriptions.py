"""Хранилище подписок чатов на автообновления сигналов"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Subscription:
    symbol: str
    timeframe_minutes: int


class AutoUpdateStore:
    """Чат -> подписка. Запись создается командой /auto и удаляется командой /stop"""

    def __init__(self):
        self._items: Dict[int, Subscription] = {}

    def subscribe(self, chat_id: int, symbol: str, timeframe_minutes: int) -> Subscription:
        sub = Subscription(symbol=symbol, timeframe_minutes=timeframe_minutes)
        self._items[chat_id] = sub
        return sub

    def unsubscribe(self, chat_id: int) -> Optional[Subscription]:
        return self._items.pop(chat_id, None)

    def get(self, chat_id: int) -> Optional[Subscription]:
        return self._items.get(chat_id)

    def items(self) -> List[Tuple[int, Subscription]]:
        # Копия: подписки могут меняться, пока идет рассылка
        return list(self._items.items())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._items
