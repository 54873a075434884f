from __future__ import annotations
import logging
from telegram import Update
from telegram.ext import ContextTypes

from models import PlayerRef


logger = logging.getLogger(__name__)


INBOX_KEY = "inbox"


async def router_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Queue any text message for the game dispatcher."""
    message = update.message
    if not message or not message.text:
        return
    user = update.effective_user
    if user is None:
        return
    inbox = context.bot_data.get(INBOX_KEY)
    if inbox is None:
        logger.warning("Command inbox is not running, dropping message from %s", user.id)
        return
    await inbox.submit(PlayerRef.from_user(user), message.text)
