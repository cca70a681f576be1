"""Bot router composition."""

from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command

from src.bot.handlers import handle_clear, handle_commit, handle_edited_message, handle_message

router = Router(name="root")
router.message.register(handle_commit, Command("commit"))
router.message.register(handle_clear, Command("clear"))
router.message.register(handle_message, ~F.text.startswith("/"))
router.edited_message.register(handle_edited_message)
