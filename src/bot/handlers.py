"""aiogram message handlers.

Each chat owns one notepad. Every text message becomes one line (or several, for multi-line
messages), editing the message edits the line, `/commit` commits all lines and `/clear` discards
them. Every incoming update produces exactly one reply; internal errors are logged and answered
with a generic message.
"""

from __future__ import annotations

import logging
from time import monotonic

from aiogram.filters import CommandObject
from aiogram.types import Message

from src.app import App
from src.intent.schema import LineStatus
from src.notepad.orchestrator import Notepad

logger = logging.getLogger(__name__)

INTERNAL_ERROR_REPLY = "Something went wrong. Please try again."
EMPTY_REPLY = "Send a line of text to add it to your notepad."


def _render_line(notepad: Notepad, line_id: str, status: LineStatus | None) -> str:
    if status == LineStatus.success:
        summary = notepad.summary_for(line_id)
        if summary:
            return summary
        return "; ".join(f"{slot.field}: {slot.value}" for slot in notepad.results_for(line_id))
    if status == LineStatus.error:
        invalid = next((s for s in notepad.results_for(line_id) if not s.is_valid), None)
        if invalid is not None and invalid.error_message:
            return f"{invalid.field}: {invalid.error_message}"
        return "Could not understand this line."
    return "Too short to parse."


async def _apply_text(message: Message, app: App, text: str, *, line_id: str | None) -> str:
    notepad = app.notepad_for(message.chat.id)
    if line_id is None or notepad.lines.get(line_id) is None:
        line_id = notepad.add_line().line_id
        app.message_lines[(message.chat.id, message.message_id)] = line_id

    line_ids = notepad.split_line(line_id, text)
    replies = []
    for current in line_ids:
        status = await notepad.settled(current)
        replies.append(_render_line(notepad, current, status))
    return "\n".join(replies)


async def handle_message(message: Message, app: App) -> None:
    """Add the message text as a new notepad line and reply with its preview."""

    started = monotonic()
    reply = INTERNAL_ERROR_REPLY

    # noinspection PyBroadException
    try:
        raw_text = message.text or message.caption or ""
        if not raw_text.strip():
            reply = EMPTY_REPLY
        else:
            reply = await _apply_text(message, app, raw_text, line_id=None)
        latency_ms = int((monotonic() - started) * 1000)
        logger.info("handled chat_id=%s latency_ms=%d", message.chat.id, latency_ms)
    except Exception:
        logger.exception("handler failed")

    await message.answer(reply)


async def handle_edited_message(message: Message, app: App) -> None:
    """Re-parse the line that was created from the edited message."""

    reply = INTERNAL_ERROR_REPLY

    # noinspection PyBroadException
    try:
        line_id = app.message_lines.get((message.chat.id, message.message_id))
        raw_text = message.text or message.caption or ""
        if not raw_text.strip():
            if line_id is not None:
                app.notepad_for(message.chat.id).delete_line(line_id)
                app.prune_message_lines(message.chat.id)
            reply = "Line removed."
        else:
            reply = await _apply_text(message, app, raw_text, line_id=line_id)
    except Exception:
        logger.exception("edit handler failed")

    await message.answer(reply)


async def handle_commit(message: Message, app: App, command: CommandObject | None = None) -> None:
    """Commit every line of the chat's notepad. `/commit replace` replaces an active work session."""

    reply = INTERNAL_ERROR_REPLY

    # noinspection PyBroadException
    try:
        replace = bool(command and command.args and command.args.strip().lower() == "replace")
        report = await app.notepad_for(message.chat.id).commit_all(replace_active_session=replace)
        app.prune_message_lines(message.chat.id)
        reply = f"{report.title}: {report.message}"
    except Exception:
        logger.exception("commit handler failed")

    await message.answer(reply)


async def handle_clear(message: Message, app: App) -> None:
    """Discard every line of the chat's notepad."""

    app.notepad_for(message.chat.id).clear()
    app.prune_message_lines(message.chat.id)
    await message.answer("Notepad cleared.")
