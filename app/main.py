"""Webhook entry point: a FastAPI app feeding Telegram updates to the bot."""
from __future__ import annotations

import logging
import os
import signal

from fastapi import FastAPI, Request
from telegram import Update
from telegram.ext import ApplicationBuilder

from app.config import normalize_webhook_base
from app.services import register_handlers, start_game_services, stop_game_services


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

token = os.getenv("BOT_TOKEN")
if not token:
    raise RuntimeError("BOT_TOKEN environment variable is not set")

webhook_url_raw = os.getenv("WEBHOOK_URL")
if not webhook_url_raw:
    raise RuntimeError("WEBHOOK_URL environment variable is not set")
webhook_url = normalize_webhook_base(webhook_url_raw)
logger.info("Sea battle webhook base is %s", webhook_url)


def _log_signal(sig: int, frame: object | None) -> None:
    logger.info("Received signal %s, waiting for the server to shut down", sig)


signal.signal(signal.SIGTERM, _log_signal)
signal.signal(signal.SIGINT, _log_signal)

# no Updater: every update arrives through POST /webhook
bot_app = ApplicationBuilder().token(token).updater(None).concurrent_updates(True).build()
register_handlers(bot_app)

app = FastAPI()


@app.on_event("startup")
async def on_startup() -> None:
    try:
        await bot_app.initialize()
        await bot_app.start()
        await start_game_services(bot_app)
        await bot_app.bot.set_webhook(f"{webhook_url}/webhook")
    except Exception:
        logger.exception("Sea battle bot failed to start")
        raise
    logger.info("Sea battle bot is listening on %s/webhook", webhook_url)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    try:
        await bot_app.bot.delete_webhook()
        # live games are told about the shutdown before the bot stops
        await stop_game_services(bot_app)
        await bot_app.stop()
        await bot_app.shutdown()
    except Exception:
        logger.exception("Sea battle bot failed to stop cleanly")
        raise
    logger.info("Sea battle bot stopped")


@app.post("/webhook")
async def telegram_webhook(request: Request) -> dict[str, bool]:
    update = Update.de_json(await request.json(), bot_app.bot)
    await bot_app.process_update(update)
    return {"ok": True}


@app.api_route("/", methods=["GET", "HEAD"])
async def root() -> dict[str, str]:
    return {"status": "running"}


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Health check for the hosting platform."""
    return {"status": "ok"}
