"""Long-polling entry point for local runs: ``python -m app.polling``."""
from __future__ import annotations

import logging
import os

from telegram.ext import ApplicationBuilder

from app.services import register_handlers, start_game_services, stop_game_services


def main() -> None:
    token = os.getenv('BOT_TOKEN')
    if not token:
        raise RuntimeError('BOT_TOKEN environment variable is not set')
    logging.basicConfig(level=logging.INFO)
    application = (
        ApplicationBuilder()
        .token(token)
        .concurrent_updates(True)
        .post_init(start_game_services)
        .post_stop(stop_game_services)
        .build()
    )
    register_handlers(application)
    application.run_polling()


if __name__ == '__main__':
    main()
