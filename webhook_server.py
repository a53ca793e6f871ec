"""HTTP-сервер для режима webhook: прием апдейтов Telegram и health check на /"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from telegram import Update
from telegram.ext import Application

HEALTH_TEXT = "Crypto Bot Running ✅"


def create_app(application: Application, url_path: str, webhook_url: str) -> FastAPI:
    """FastAPI-приложение, которое управляет жизненным циклом бота"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with application:
            await application.bot.set_webhook(url=webhook_url, allowed_updates=Update.ALL_TYPES)
            logging.info("Webhook установлен: %s", webhook_url.replace(url_path, "bot***"))
            if application.post_init:
                await application.post_init(application)
            await application.start()
            try:
                yield
            finally:
                await application.stop()
                if application.post_shutdown:
                    await application.post_shutdown(application)

    app = FastAPI(lifespan=lifespan)

    @app.get("/", response_class=PlainTextResponse)
    async def health():
        return HEALTH_TEXT

    @app.post(f"/{url_path}")
    async def telegram_webhook(request: Request):
        update = Update.de_json(await request.json(), application.bot)
        await application.update_queue.put(update)
        return Response(status_code=200)

    return app


def run(application: Application, url_path: str, webhook_url: str, port: int):
    uvicorn.run(create_app(application, url_path, webhook_url), host="0.0.0.0", port=port)
