"""Точка входа: запуск Telegram-бота в режиме polling или webhook"""
import logging

from telegram import Update

import config
import webhook_server
from telegram_handler import SignalBot


def main():
    if not config.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("Не задан TELEGRAM_BOT_TOKEN в .env")

    bot = SignalBot(token=config.TELEGRAM_BOT_TOKEN)
    application = bot.build_application()

    if config.WEBHOOK_URL:
        url_path = f"bot{config.TELEGRAM_BOT_TOKEN}"
        logging.info("Запуск в режиме webhook на порту %d", config.PORT)
        webhook_server.run(application, url_path, f"{config.WEBHOOK_URL}/{url_path}", config.PORT)
    else:
        logging.info("Запуск в режиме polling")
        application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:
        logging.exception("Не удалось запустить бота: %s", exc)
        raise
