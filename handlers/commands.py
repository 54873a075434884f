from __future__ import annotations
from telegram import Update
from telegram.ext import ContextTypes

from logic import phrases


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(phrases.HELP)
