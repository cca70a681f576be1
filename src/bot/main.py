"""Bot process entrypoint."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.types import BotCommand

from src.app import create_app
from src.bot.router import router
from src.config.logging import configure_logging
from src.config.settings import load_settings

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="commit", description="Commit every line of the notepad"),
    BotCommand(command="clear", description="Discard every line of the notepad"),
]


async def main() -> None:
    """Run the Telegram bot polling loop."""

    settings = load_settings()
    configure_logging(settings.log_level)
    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is required to run the bot")

    app = create_app(settings)
    logger.info(
        "starting bot llm_enabled=%s base_currency=%s throttle_s=%.2f settle_s=%.2f",
        settings.llm_enabled,
        settings.base_currency,
        settings.throttle_s,
        settings.settle_s,
    )

    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=None))
    dp = Dispatcher()
    dp.include_router(router)

    try:
        await bot.set_my_commands(BOT_COMMANDS)
        await dp.start_polling(bot, app=app)
    finally:
        logger.info("shutting down notepads=%d", len(app.notepads))
        for notepad in app.notepads.values():
            notepad.cancel_all()
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
