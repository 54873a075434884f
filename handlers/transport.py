from __future__ import annotations

import logging
from typing import Any, List, Sequence

from telegram import KeyboardButton, ReplyKeyboardMarkup, ReplyKeyboardRemove

from logic.transport import GridSnapshot
from models import PlayerRef


logger = logging.getLogger(__name__)

BUTTONS_IN_ROW = 5


def hit_keyboard(available_targets: Sequence[str]) -> ReplyKeyboardMarkup:
    """Build a one-time keyboard with a ``/hit`` button per free cell."""
    buttons = [KeyboardButton(f"/hit {cell}") for cell in available_targets]
    rows: List[List[KeyboardButton]] = [
        buttons[i:i + BUTTONS_IN_ROW] for i in range(0, len(buttons), BUTTONS_IN_ROW)
    ]
    return ReplyKeyboardMarkup(rows, one_time_keyboard=True, resize_keyboard=True)


class TelegramTransport:
    """Deliver game notifications through a python-telegram-bot ``Bot``.

    Players are addressed by their user id, which is also the id of their
    private chat with the bot.  Message ids are used as handles.
    """

    def __init__(self, bot) -> None:
        self.bot = bot

    async def notify(self, player: PlayerRef, text: str) -> Any:
        message = await self.bot.send_message(player.id, text)
        return message.message_id

    async def notify_with_board_view(
        self,
        player: PlayerRef,
        snapshot: GridSnapshot,
        caption: str,
        available_targets: Sequence[str],
    ) -> Any:
        if available_targets:
            markup = hit_keyboard(available_targets)
        else:
            markup = ReplyKeyboardRemove()
        message = await self.bot.send_message(player.id, caption, reply_markup=markup)
        return message.message_id

    async def delete(self, player: PlayerRef, handle: Any) -> None:
        logger.debug("Deleting message %s of %s", handle, player.id)
        await self.bot.delete_message(player.id, handle)
