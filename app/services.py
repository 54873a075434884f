"""Wiring shared by the webhook and polling entry points."""
from __future__ import annotations

import logging

from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

import storage
from app.config import STATS_FILE_PATH, USE_SUPABASE, load_settings
from handlers.commands import start
from handlers.router import INBOX_KEY, router_text
from handlers.transport import TelegramTransport
from logic.dispatcher import Dispatcher
from logic.inbox import CommandInbox


logger = logging.getLogger(__name__)

DISPATCHER_KEY = "dispatcher"


async def log_update_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Exception while handling update %s", update, exc_info=context.error)


def register_handlers(application: Application) -> None:
    """``/start`` and ``/help`` answer directly, every other text goes to the inbox."""
    application.add_handler(CommandHandler(["start", "help"], start))
    application.add_handler(MessageHandler(filters.TEXT, router_text))
    application.add_error_handler(log_update_error)


async def start_game_services(application: Application) -> CommandInbox:
    """Create the dispatcher and its inbox and expose them to the handlers."""
    settings = load_settings()
    stats = storage.create_statistics_store(USE_SUPABASE, STATS_FILE_PATH)
    dispatcher = Dispatcher(TelegramTransport(application.bot), stats, settings)
    inbox = CommandInbox(dispatcher, maxsize=settings.inbox_size)
    inbox.start(settings.inbox_workers)
    application.bot_data[DISPATCHER_KEY] = dispatcher
    application.bot_data[INBOX_KEY] = inbox
    return inbox


async def stop_game_services(application: Application) -> None:
    """Stop taking commands, then dispose every live session."""
    inbox = application.bot_data.pop(INBOX_KEY, None)
    dispatcher = application.bot_data.pop(DISPATCHER_KEY, None)
    if inbox is not None:
        await inbox.stop()
    if dispatcher is not None:
        await dispatcher.dispose(notify=True)
    logger.info("Game services stopped")
