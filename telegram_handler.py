"""Модуль для работы с Telegram API: форматирование сигналов и команды бота"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from telegram import Bot, Update
from telegram.error import RetryAfter
from telegram.ext import Application, CommandHandler, ContextTypes

import config
import market_data
import signal_logic
import timeframes
from models import Candle, DataUnavailable, Direction, Signal, StrategyConfig, Verdict
from subscriptions import AutoUpdateStore

DISCLAIMER = "⚠️ Это не финансовый совет. Сигнал эвристический, торгуй головой."

VERDICT_ICONS = {
    Verdict.BULLISH: "🟢",
    Verdict.BEARISH: "🔴",
    Verdict.NEUTRAL: "⚪",
}

DIRECTION_HEADERS = {
    Direction.LONG: ("✅ LONG SIGNAL", "📈 BUY"),
    Direction.SHORT: ("🔻 SHORT SIGNAL", "📉 SELL"),
    Direction.NEUTRAL: ("⚠️ NO CLEAR SIGNAL — WAIT", ""),
}

CandleFetcher = Callable[[str, int, int], List[Candle]]


def _fmt(value: Optional[float], spec: str = ".6g") -> str:
    return "n/a" if value is None else format(value, spec)


def normalize_symbol(raw: str) -> str:
    """btc -> BTCUSDT, ethusdt -> ETHUSDT"""
    symbol = raw.strip().upper().lstrip("/")
    if symbol.endswith(config.QUOTE_ASSET) and len(symbol) > len(config.QUOTE_ASSET):
        return symbol
    return f"{symbol}{config.QUOTE_ASSET}"


def _is_timeframe(raw: str) -> bool:
    try:
        timeframes.to_minutes(raw)
    except ValueError:
        return False
    return True


def format_signal_message(
    symbol: str,
    timeframe_minutes: int,
    sig: Signal,
    strategy: Optional[StrategyConfig] = None,
    rendered_at: Optional[datetime] = None,
) -> str:
    """Форматирует сигнал в текст сообщения (без parse_mode)"""
    s = strategy or config.STRATEGY
    snap = sig.snapshot
    tf_label = timeframes.to_label(timeframe_minutes)
    rendered_at = rendered_at or datetime.now(timezone.utc)
    headline, action = DIRECTION_HEADERS[sig.direction]

    lines = []
    lines.append(f"📊 {symbol} — {tf_label} Technical Signal")
    lines.append("━━━━━━━━━━━━━━━━━━")
    lines.append(headline)
    if action:
        lines.append(f"➡️ Recommended: {action}")
    lines.append("━━━━━━━━━━━━━━━━━━")
    lines.append(f"💰 Price: {sig.entry_price:.6g}")
    lines.append(f"EMA{s.ema_fast}: {_fmt(snap.ema_fast)} | EMA{s.ema_slow}: {_fmt(snap.ema_slow)}")
    lines.append(f"RSI ({s.rsi_period}): {_fmt(snap.rsi, '.1f')} | SMA: {_fmt(snap.rsi_sma, '.1f')}")
    lines.append(f"MACD: {_fmt(snap.macd, '.4f')} | Signal: {_fmt(snap.macd_signal, '.4f')} | Hist: {_fmt(snap.macd_hist, '.4f')}")
    lines.append(f"BB: {_fmt(snap.bb_lower)} / {_fmt(snap.bb_middle)} / {_fmt(snap.bb_upper)}")
    lines.append(f"ADX: {_fmt(snap.adx, '.1f')} | ATR: {_fmt(snap.atr)}")
    lines.append(f"OBV: {_fmt(snap.obv, '.0f')}")
    lines.append(f"StochRSI K/D: {_fmt(snap.stoch_rsi_k, '.1f')} / {_fmt(snap.stoch_rsi_d, '.1f')}")

    if sig.stop_loss is not None or sig.take_profits:
        lines.append("")
        for i, tp in enumerate(sig.take_profits, 1):
            rr = abs((tp - sig.entry_price) / (sig.entry_price - sig.stop_loss)) if sig.stop_loss not in (None, sig.entry_price) else 0
            lines.append(f"🎯 TP{i}: {tp:.6g} (RR≈{rr:.1f})")
        lines.append(f"🛑 Stop Loss: {_fmt(sig.stop_loss)}")

    lines.append("")
    lines.append("📈 Indicators:")
    for comment in sig.commentary:
        lines.append(f"  {VERDICT_ICONS[comment.verdict]} {comment.name.value}: {comment.note}")

    lines.append("")
    lines.append(f"⏱️ Timeframe: {tf_label} | {rendered_at:%Y-%m-%d %H:%M} UTC")
    lines.append(DISCLAIMER)
    return "\n".join(lines)


def format_unavailable_message(symbol: str, result: DataUnavailable) -> str:
    return f"⚠️ Data unavailable for {symbol} ({result.reason}). Try again later."


def format_interval(seconds: int) -> str:
    """Интервал автообновлений для пользователя: 30 -> 30 sec, 3600 -> 60 min"""
    if seconds < 60:
        return f"{seconds} sec"
    return f"{seconds // 60} min"


def format_help_message() -> str:
    shortcuts = " ".join(f"/{p}" for p in config.PAIRS)
    return (
        "👋 Welcome to Crypto Signal Bot\n"
        "\n"
        f"{shortcuts} — signal on {config.DEFAULT_TIMEFRAME}\n"
        "/signal SYMBOL [TIMEFRAME] — e.g. /signal BTC 4h\n"
        "/auto SYMBOL [TIMEFRAME] — periodic updates in this chat\n"
        "/stop — stop periodic updates\n"
        "/help — this message"
    )


async def send_message_with_retry(bot: Bot, chat_id: int, text: str, max_retries: int = 3):
    """Отправка сообщения с обработкой Flood control"""
    for attempt in range(max_retries):
        try:
            await bot.send_message(chat_id=chat_id, text=text)
            return
        except RetryAfter as e:
            if attempt >= max_retries - 1:
                logging.error("Превышено количество попыток отправки в chat_id %s из-за Flood control", chat_id)
                raise
            retry_after = e.retry_after.total_seconds() if hasattr(e.retry_after, "total_seconds") else float(e.retry_after)
            logging.warning("Flood control для chat_id %s. Ожидание %.0f секунд, попытка %d/%d", chat_id, retry_after + 1, attempt + 2, max_retries)
            await asyncio.sleep(retry_after + 1)


class SignalBot:
    """Команды Telegram поверх конвейера сигналов"""

    def __init__(
        self,
        token: str,
        fetch: CandleFetcher = market_data.fetch_candles,
        strategy: Optional[StrategyConfig] = None,
        auto_update_interval: int = config.AUTO_UPDATE_INTERVAL_SECONDS,
    ):
        self.token = token
        self.fetch = fetch
        self.strategy = strategy or config.STRATEGY
        self.auto_update_interval = auto_update_interval
        self.subscriptions = AutoUpdateStore()
        self._auto_task: Optional[asyncio.Task] = None

    # -------- Конвейер --------

    def signal_text(self, symbol: str, timeframe_minutes: int) -> str:
        """Свечи -> сигнал -> текст. Блокирующий вызов (HTTP), запускать в потоке"""
        candles = self.fetch(symbol, timeframe_minutes, config.CANDLE_LIMIT)
        result = signal_logic.build_signal(candles, self.strategy)
        if isinstance(result, DataUnavailable):
            logging.warning("Нет данных для %s: %s", symbol, result.reason)
            return format_unavailable_message(symbol, result)

        logging.info("Сигнал %s %s: %s", symbol, timeframes.to_label(timeframe_minutes), result.direction.value)
        return format_signal_message(symbol, timeframe_minutes, result, self.strategy)

    def parse_args(self, args: List[str]):
        """[SYMBOL] [TIMEFRAME] -> (symbol, минуты). ValueError при неверном таймфрейме"""
        if args and _is_timeframe(args[0]):
            raise ValueError(f"'{args[0]}' looks like a timeframe, the symbol goes first")
        symbol = normalize_symbol(args[0]) if args else normalize_symbol(config.PAIRS[0])
        tf = args[1] if len(args) >= 2 else config.DEFAULT_TIMEFRAME
        return symbol, timeframes.to_minutes(tf)

    async def _reply_signal(self, update: Update, symbol: str, timeframe_minutes: int):
        await update.message.reply_text(f"🔄 Fetching signal for {symbol} ...")
        try:
            text = await asyncio.to_thread(self.signal_text, symbol, timeframe_minutes)
        except Exception as e:
            logging.error("Ошибка расчета сигнала %s: %s", symbol, e, exc_info=True)
            text = f"❌ Failed to build signal for {symbol}. Try again later."
        await update.message.reply_text(text)

    # -------- Команды --------

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await update.message.reply_text(format_help_message())

    async def signal(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        try:
            symbol, tf_minutes = self.parse_args(context.args or [])
        except ValueError as e:
            await update.message.reply_text(f"{e}\nUsage: /signal SYMBOL [TIMEFRAME]")
            return
        await self._reply_signal(update, symbol, tf_minutes)

    def pair_command(self, pair: str):
        """Обработчик команды-ярлыка вида /BTC"""
        symbol = normalize_symbol(pair)

        async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
            await self._reply_signal(update, symbol, timeframes.to_minutes(config.DEFAULT_TIMEFRAME))

        return handler

    async def auto(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not context.args:
            await update.message.reply_text("Usage: /auto SYMBOL [TIMEFRAME]")
            return
        try:
            symbol, tf_minutes = self.parse_args(context.args)
        except ValueError as e:
            await update.message.reply_text(f"{e}\nUsage: /auto SYMBOL [TIMEFRAME]")
            return

        chat_id = update.effective_chat.id
        self.subscriptions.subscribe(chat_id, symbol, tf_minutes)
        logging.info("Чат %s подписан на %s %s", chat_id, symbol, timeframes.to_label(tf_minutes))
        await update.message.reply_text(
            f"🔔 Auto-updates for {symbol} {timeframes.to_label(tf_minutes)} "
            f"every {format_interval(self.auto_update_interval)}. Use /stop to cancel."
        )
        await self._reply_signal(update, symbol, tf_minutes)

    async def stop(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        chat_id = update.effective_chat.id
        removed = self.subscriptions.unsubscribe(chat_id)
        if removed is None:
            await update.message.reply_text("No active auto-updates in this chat.")
            return
        logging.info("Чат %s отписан от %s", chat_id, removed.symbol)
        await update.message.reply_text(f"🔕 Auto-updates for {removed.symbol} stopped.")

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logging.error("Ошибка обработки апдейта %s: %s", update, context.error, exc_info=context.error)

    # -------- Автообновления --------

    async def push_updates(self, bot: Bot):
        """Один проход рассылки по всем подпискам"""
        for chat_id, sub in self.subscriptions.items():
            try:
                text = await asyncio.to_thread(self.signal_text, sub.symbol, sub.timeframe_minutes)
                await send_message_with_retry(bot, chat_id, text)
            except Exception as e:
                logging.error("Не удалось отправить автообновление %s в chat_id %s: %s", sub.symbol, chat_id, e, exc_info=True)

    async def _auto_update_loop(self, bot: Bot):
        while True:
            await asyncio.sleep(self.auto_update_interval)
            if len(self.subscriptions):
                logging.info("Рассылка автообновлений: %d чатов", len(self.subscriptions))
                await self.push_updates(bot)

    async def _post_init(self, application: Application):
        self._auto_task = asyncio.create_task(self._auto_update_loop(application.bot))

    async def _post_shutdown(self, application: Application):
        if self._auto_task is not None:
            self._auto_task.cancel()
            self._auto_task = None

    def build_application(self) -> Application:
        application = (
            Application.builder()
            .token(self.token)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )
        application.add_handler(CommandHandler("start", self.start))
        application.add_handler(CommandHandler("help", self.start))
        application.add_handler(CommandHandler("signal", self.signal))
        application.add_handler(CommandHandler("auto", self.auto))
        application.add_handler(CommandHandler("stop", self.stop))
        for pair in config.PAIRS:
            application.add_handler(CommandHandler(pair.lower(), self.pair_command(pair)))
        application.add_error_handler(self.on_error)
        return application
