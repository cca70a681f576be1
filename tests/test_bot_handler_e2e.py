"""Tests for the aiogram handlers' reply contract.

Every incoming update results in exactly one reply: the preview of each line the message produced,
the commit outcome, or a short acknowledgement.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from src.app import App, create_app
from src.bot.handlers import EMPTY_REPLY, handle_clear, handle_commit, handle_edited_message, handle_message
from src.config.settings import Settings
from src.services.calendar import InMemoryCalendar


class _FakeMessage:
    def __init__(self, text: str | None, *, message_id: int = 1, chat_id: int = 1) -> None:
        self.text = text
        self.caption = None
        self.message_id = message_id
        self.chat = SimpleNamespace(id=chat_id)
        self.answers: list[str] = []

    async def answer(self, text: str) -> None:
        """Record the outgoing bot reply (aiogram's `Message.answer` substitute)."""
        self.answers.append(text)


@pytest.fixture
def app(instant_settings: Settings) -> App:
    return create_app(instant_settings, calendar=InMemoryCalendar())


@pytest.mark.asyncio
async def test_handler_replies_with_preview(app: App) -> None:
    message = _FakeMessage(text="Meeting tomorrow at 3pm")

    await handle_message(message, app)  # type: ignore[arg-type]

    assert message.answers == ["Event will be created on Tomorrow at 15:00 - Meeting"]


@pytest.mark.asyncio
async def test_handler_replies_once_for_empty_text(app: App) -> None:
    message = _FakeMessage(text=None)

    await handle_message(message, app)  # type: ignore[arg-type]

    assert message.answers == [EMPTY_REPLY]


@pytest.mark.asyncio
async def test_multi_line_message_previews_every_line(app: App) -> None:
    message = _FakeMessage(text="lunch 12 euro\nhi\nhello there")

    await handle_message(message, app)  # type: ignore[arg-type]

    assert message.answers == ["- 12.00 EUR\nToo short to parse.\nCould not understand this line."]
    assert len(app.notepad_for(1).lines.non_empty()) == 3


@pytest.mark.asyncio
async def test_edited_message_reparses_its_line(app: App) -> None:
    await handle_message(_FakeMessage(text="hello there", message_id=7), app)  # type: ignore[arg-type]

    edited = _FakeMessage(text="lunch 12 euro", message_id=7)
    await handle_edited_message(edited, app)  # type: ignore[arg-type]

    assert edited.answers == ["- 12.00 EUR"]
    assert [line.text for line in app.notepad_for(1).lines.non_empty()] == ["lunch 12 euro"]

    removed = _FakeMessage(text="", message_id=7)
    await handle_edited_message(removed, app)  # type: ignore[arg-type]
    assert removed.answers == ["Line removed."]
    assert app.notepad_for(1).lines.non_empty() == []


@pytest.mark.asyncio
async def test_commit_reports_outcome(app: App) -> None:
    await handle_message(_FakeMessage(text="Meeting tomorrow at 3pm"), app)  # type: ignore[arg-type]

    message = _FakeMessage(text="/commit")
    await handle_commit(message, app)  # type: ignore[arg-type]

    assert message.answers == ["Processing Complete: Processed 1 item(s). All succeeded."]
    assert app.calendar.items[0].title == "Meeting"


@pytest.mark.asyncio
async def test_commit_replace_work_session(app: App) -> None:
    await handle_message(_FakeMessage(text="started working"), app)  # type: ignore[arg-type]
    await handle_commit(_FakeMessage(text="/commit"), app)  # type: ignore[arg-type]

    await handle_message(_FakeMessage(text="started working", message_id=2), app)  # type: ignore[arg-type]
    failed = _FakeMessage(text="/commit")
    await handle_commit(failed, app)  # type: ignore[arg-type]
    assert failed.answers == ["Processing Failed: No items processed. 1 failed."]

    replaced = _FakeMessage(text="/commit replace")
    await handle_commit(replaced, app, SimpleNamespace(args="replace"))  # type: ignore[arg-type]
    assert replaced.answers == ["Processing Complete: Processed 1 item(s). All succeeded."]
    assert len(app.work_sessions.finished) == 1


@pytest.mark.asyncio
async def test_clear_discards_lines(app: App) -> None:
    await handle_message(_FakeMessage(text="lunch 12 euro"), app)  # type: ignore[arg-type]

    message = _FakeMessage(text="/clear")
    await handle_clear(message, app)  # type: ignore[arg-type]

    assert message.answers == ["Notepad cleared."]
    assert app.notepad_for(1).lines.non_empty() == []
    assert app.message_lines == {}


@pytest.mark.asyncio
async def test_commit_and_delete_drop_message_mappings(app: App) -> None:
    await handle_message(_FakeMessage(text="Meeting tomorrow at 3pm", message_id=1), app)  # type: ignore[arg-type]
    await handle_message(_FakeMessage(text="hello there", message_id=2), app)  # type: ignore[arg-type]
    await handle_message(_FakeMessage(text="lunch 12 euro", message_id=3), app)  # type: ignore[arg-type]

    await handle_edited_message(_FakeMessage(text="", message_id=3), app)  # type: ignore[arg-type]
    assert set(app.message_lines) == {(1, 1), (1, 2)}

    await handle_commit(_FakeMessage(text="/commit"), app)  # type: ignore[arg-type]
    assert set(app.message_lines) == {(1, 2)}
    assert [line.text for line in app.notepad_for(1).lines.non_empty()] == ["hello there"]


@pytest.mark.asyncio
async def test_configured_rates_convert_the_preview(instant_settings: Settings) -> None:
    settings = instant_settings.model_copy(update={"currency_rates": {"EUR": 0.5}})
    app = create_app(settings, calendar=InMemoryCalendar())
    message = _FakeMessage(text="lunch 12 euro")

    await handle_message(message, app)  # type: ignore[arg-type]

    assert message.answers == ["- 24.00 USD"]
    report = await app.notepad_for(1).commit_all()
    assert report.committed[0].amount == 12.0
    assert report.committed[0].currency == "EUR"
