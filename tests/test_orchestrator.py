"""Tests for the debounced notepad: status flow, stale suppression and bulk commit."""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime
from functools import partial

import pytest

from src.entries.variables import VariableBook
from src.entries.work_sessions import WorkSessionError
from src.handlers.base import HandlerContext
from src.handlers.registry import default_registry
from src.intent import parser
from src.intent.schema import Guess, Intent, LineStatus, ModelResult, Override, SlotField, Variable, VariableType
from src.notepad.errors import InvalidSlot, UnparseableInput
from src.notepad.events import LineParsed, Notification, NotificationLevel
from src.notepad.orchestrator import Notepad, Timings
from src.services.calendar import CalendarItemKind, CalendarPermissionError, InMemoryCalendar

NOW = datetime(2025, 11, 26, 10, 0)
FAST = Timings(throttle_s=0.01, settle_s=0.01, min_length=3)


def _g(value: str | float) -> Guess:
    return Guess(value=value, confidence=0.95)


RESULTS = {
    "Meeting tomorrow at 15:00": ModelResult(
        intent=Intent.event,
        confidence=0.9,
        subject=_g("Meeting"),
        event_day=_g("tomorrow"),
        event_time=_g("15:00"),
    ),
    "party": ModelResult(intent=Intent.event, confidence=0.9, subject=_g("Party")),
    "call mom": ModelResult(intent=Intent.reminder, confidence=0.9, subject=_g("Call mom")),
    "start 09:00": ModelResult(intent=Intent.work_start, confidence=0.9, event_time=_g("09:00")),
    "stop 17:30": ModelResult(intent=Intent.work_end, confidence=0.9, event_time=_g("17:30")),
    "rent": ModelResult(intent=Intent.expense, confidence=0.9, subject=_g("Rent")),
}


class _FakeModel:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, text: str) -> ModelResult:
        self.calls.append(text)
        return RESULTS.get(text, ModelResult())


def _notepad(
        predict=None,
        *,
        timings: Timings = FAST,
        calendar: InMemoryCalendar | None = None,
        variables: VariableBook | None = None,
) -> Notepad:
    variables = variables if variables is not None else VariableBook()
    registry = default_registry(HandlerContext(variables=variables, clock=lambda: NOW))
    return Notepad(
        predict=predict or _FakeModel(),
        registry=registry,
        variables=variables,
        calendar=calendar or InMemoryCalendar(),
        timings=timings,
        clock=lambda: NOW,
    )


def _parsed(events: list) -> list[LineParsed]:
    return [e for e in events if isinstance(e, LineParsed)]


@pytest.mark.asyncio
async def test_rapid_edits_parse_once() -> None:
    model = _FakeModel()
    notepad = _notepad(model)
    events: list = []
    notepad.events.subscribe(events.append)

    line = notepad.add_line("Mee")
    notepad.edit_line(line.line_id, "Meeting tomo")
    notepad.edit_line(line.line_id, "Meeting tomorrow at 15:00")

    assert await notepad.settled(line.line_id) == LineStatus.success
    assert model.calls == ["Meeting tomorrow at 15:00"]
    parsed = _parsed(events)
    assert len(parsed) == 1
    assert parsed[0].summary == "Event will be created on Tomorrow at 15:00 - Meeting"


@pytest.mark.asyncio
async def test_short_text_stays_idle_and_clears_results() -> None:
    model = _FakeModel()
    notepad = _notepad(model)

    line = notepad.add_line("Meeting tomorrow at 15:00")
    await notepad.settled(line.line_id)
    assert notepad.results_for(line.line_id)

    notepad.edit_line(line.line_id, "hi")
    assert line.status == LineStatus.idle
    assert notepad.results_for(line.line_id) == []
    assert await notepad.settled(line.line_id) == LineStatus.idle


@pytest.mark.asyncio
async def test_edit_while_loading_restarts_parse() -> None:
    model = _FakeModel()
    notepad = _notepad(model, timings=Timings(throttle_s=0.01, settle_s=0.2, min_length=3))
    events: list = []
    notepad.events.subscribe(events.append)

    line = notepad.add_line("party")
    await asyncio.sleep(0.05)
    assert line.status == LineStatus.loading

    notepad.edit_line(line.line_id, "Meeting tomorrow at 15:00")
    assert line.status == LineStatus.idle

    assert await notepad.settled(line.line_id) == LineStatus.success
    assert model.calls == ["Meeting tomorrow at 15:00"]
    assert [e.summary for e in _parsed(events)] == ["Event will be created on Tomorrow at 15:00 - Meeting"]


@pytest.mark.asyncio
async def test_deleted_line_never_reports() -> None:
    notepad = _notepad(timings=Timings(throttle_s=0.01, settle_s=0.2, min_length=3))
    events: list = []
    notepad.events.subscribe(events.append)

    line = notepad.add_line("Meeting tomorrow at 15:00")
    await asyncio.sleep(0.05)
    notepad.delete_line(line.line_id)
    await asyncio.sleep(0.3)

    assert _parsed(events) == []
    assert notepad.lines.get(line.line_id) is None


@pytest.mark.asyncio
async def test_shortcut_skips_the_model() -> None:
    model = _FakeModel()
    notepad = _notepad(model)

    line = notepad.add_line("+200 try - 50 try")
    assert await notepad.settled(line.line_id) == LineStatus.success
    assert model.calls == []

    amount = next(s for s in notepad.results_for(line.line_id) if s.field == SlotField.amount)
    assert amount.raw_value == "150.00"


@pytest.mark.asyncio
async def test_unknown_intent_is_an_error() -> None:
    notepad = _notepad()
    line = notepad.add_line("hello there")
    assert await notepad.settled(line.line_id) == LineStatus.error
    assert notepad.summary_for(line.line_id) is None


@pytest.mark.asyncio
async def test_split_line_creates_lines_below() -> None:
    notepad = _notepad()
    first = notepad.add_line()
    ids = notepad.split_line(first.line_id, "Meeting tomorrow at 15:00\ncall mom")
    assert ids[0] == first.line_id
    assert [notepad.lines.get(i).text for i in ids] == ["Meeting tomorrow at 15:00", "call mom"]
    for line_id in ids:
        assert await notepad.settled(line_id) == LineStatus.success


@pytest.mark.asyncio
async def test_override_replaces_subject_and_instant() -> None:
    notepad = _notepad()
    events: list = []
    notepad.events.subscribe(events.append)
    line = notepad.add_line("Meeting tomorrow at 15:00")
    await notepad.settled(line.line_id)

    notepad.set_override(line.line_id, Override(subject="Dentist", at=datetime(2025, 12, 1, 9, 30)))
    assert notepad.summary_for(line.line_id) == "Event will be created on Dec 1, 2025 at 09:30 - Dentist"
    assert len(_parsed(events)) == 2

    report = await notepad.commit_all()
    assert report.committed[0].subject == "Dentist"


@pytest.mark.asyncio
async def test_real_model_event_commit() -> None:
    calendar = InMemoryCalendar()
    notepad = _notepad(partial(parser.predict, llm_enabled=False), calendar=calendar)

    line = notepad.add_line("Meeting tomorrow at 3pm")
    assert await notepad.settled(line.line_id) == LineStatus.success
    assert notepad.summary_for(line.line_id) == "Event will be created on Tomorrow at 15:00 - Meeting"

    report = await notepad.commit_all()
    assert report.succeeded == 1
    assert report.title == "Processing Complete"
    item = calendar.items[0]
    assert item.kind == CalendarItemKind.event
    assert item.title == "Meeting"
    assert item.start == datetime(2025, 11, 27, 15, 0)


@pytest.mark.asyncio
async def test_commit_keeps_failed_lines_and_focuses_first() -> None:
    calendar = InMemoryCalendar()
    notepad = _notepad(calendar=calendar)
    notifications: list = []
    notepad.events.subscribe(lambda e: notifications.append(e) if isinstance(e, Notification) else None)

    ok = notepad.add_line("Meeting tomorrow at 15:00")
    bad = notepad.add_line("party")
    await notepad.settled(ok.line_id)
    assert await notepad.settled(bad.line_id) == LineStatus.error

    report = await notepad.commit_all()

    assert report.succeeded == 1
    assert report.failed == 1
    assert isinstance(report.failures[0].error, InvalidSlot)
    assert report.title == "Validation Error"
    assert report.message == "Please specify a time"
    assert report.focus_line_id == bad.line_id
    assert notepad.focused_line_id == bad.line_id
    assert notepad.lines.get(ok.line_id) is None
    assert [line.text for line in notepad.lines.non_empty()] == ["party"]
    assert len(calendar.items) == 1
    assert notifications[-1].level == NotificationLevel.error


@pytest.mark.asyncio
async def test_commit_reports_unparseable_and_collaborator_failures() -> None:
    notepad = _notepad(calendar=InMemoryCalendar(granted=False))
    notepad.add_line("hello there")
    notepad.add_line("call mom")

    report = await notepad.commit_all()

    assert report.succeeded == 0
    assert isinstance(report.failures[0].error, UnparseableInput)
    assert isinstance(report.failures[1].error, CalendarPermissionError)
    assert report.title == "Processing Failed"
    assert report.message == "No items processed. 2 failed."


@pytest.mark.asyncio
async def test_commit_with_nothing_to_process() -> None:
    notepad = _notepad()
    report = await notepad.commit_all()
    assert report.title == "Nothing to process"
    assert report.message == "No items to process."


@pytest.mark.asyncio
async def test_undated_reminder_and_clear_after_success() -> None:
    calendar = InMemoryCalendar()
    notepad = _notepad(calendar=calendar)
    notepad.add_line("call mom")

    report = await notepad.commit_all()

    assert report.message == "Processed 1 item(s). All succeeded."
    assert calendar.items[0].kind == CalendarItemKind.reminder
    assert calendar.items[0].start is None
    assert notepad.lines.non_empty() == []


@pytest.mark.asyncio
async def test_work_sessions_start_and_end() -> None:
    notepad = _notepad()
    notepad.add_line("start 09:00")
    await notepad.commit_all()
    assert notepad.work_sessions.active is not None
    assert notepad.work_sessions.active.start == datetime(2025, 11, 26, 9, 0)

    notepad.add_line("start 09:00")
    report = await notepad.commit_all()
    assert isinstance(report.failures[0].error, WorkSessionError)

    notepad.clear()
    notepad.add_line("stop 17:30")
    await notepad.commit_all()
    assert notepad.work_sessions.active is None
    assert notepad.work_sessions.finished[0].elapsed_minutes() == 510


@pytest.mark.asyncio
async def test_replace_active_session() -> None:
    notepad = _notepad()
    notepad.add_line("start 09:00")
    await notepad.commit_all()
    notepad.add_line("start 09:00")
    report = await notepad.commit_all(replace_active_session=True)
    assert report.failed == 0
    assert len(notepad.work_sessions.finished) == 1


@pytest.mark.asyncio
async def test_clear_override_restores_prediction() -> None:
    notepad = _notepad()
    line = notepad.add_line("Meeting tomorrow at 15:00")
    await notepad.settled(line.line_id)

    notepad.set_override(line.line_id, Override(subject="Dentist"))
    notepad.clear_override(line.line_id)
    assert notepad.summary_for(line.line_id) == "Event will be created on Tomorrow at 15:00 - Meeting"


@pytest.mark.asyncio
async def test_revalidate_all_picks_up_new_variables() -> None:
    variables = VariableBook()
    notepad = _notepad(variables=variables)
    line = notepad.add_line("rent")
    assert await notepad.settled(line.line_id) == LineStatus.error

    variables.add(Variable(name="rent", type=VariableType.expense, amount=900, currency="EUR"))
    notepad.revalidate_all()

    assert await notepad.settled(line.line_id) == LineStatus.success
    assert notepad.summary_for(line.line_id) == "- 900.00 EUR"


class _GatedModel(_FakeModel):
    """Blocks inside the worker thread until released."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def __call__(self, text: str) -> ModelResult:
        self.calls.append(text)
        self.release.wait(timeout=2)
        return RESULTS.get(text, ModelResult())


class _ExplodingHandler:
    async def handle(self, result: ModelResult, text: str, line_id: str) -> list:
        raise RuntimeError("handler bug")


async def _wait_for_call(model: _FakeModel, count: int = 1) -> None:
    for _ in range(200):
        if len(model.calls) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("model was never called")


@pytest.mark.asyncio
async def test_model_timeout_ends_in_error() -> None:
    def timing_out(text: str) -> ModelResult:
        raise TimeoutError("read timed out")

    notepad = _notepad(timing_out)
    events: list = []
    notepad.events.subscribe(events.append)

    line = notepad.add_line("Meeting tomorrow at 15:00")

    assert await notepad.settled(line.line_id) == LineStatus.error
    assert notepad.results_for(line.line_id) == []
    assert [e.status for e in _parsed(events)] == [LineStatus.error]


@pytest.mark.asyncio
async def test_handler_crash_ends_in_error() -> None:
    variables = VariableBook()
    registry = default_registry(HandlerContext(variables=variables, clock=lambda: NOW))
    registry.register(Intent.event, _ExplodingHandler())
    notepad = Notepad(
        predict=_FakeModel(),
        registry=registry,
        variables=variables,
        calendar=InMemoryCalendar(),
        timings=FAST,
        clock=lambda: NOW,
    )

    line = notepad.add_line("Meeting tomorrow at 15:00")

    assert await notepad.settled(line.line_id) == LineStatus.error
    report = await notepad.commit_all()
    assert isinstance(report.failures[0].error, UnparseableInput)


@pytest.mark.asyncio
async def test_text_changed_during_model_call_is_dropped() -> None:
    model = _GatedModel()
    notepad = _notepad(model)
    events: list = []
    notepad.events.subscribe(events.append)

    line = notepad.add_line("party")
    await _wait_for_call(model)
    line.text = "call mom"
    model.release.set()
    await notepad.settled(line.line_id)

    assert _parsed(events) == []
    assert notepad.results_for(line.line_id) == []


@pytest.mark.asyncio
async def test_edit_during_model_call_reports_only_latest_text() -> None:
    model = _GatedModel()
    notepad = _notepad(model)
    events: list = []
    notepad.events.subscribe(events.append)

    line = notepad.add_line("party")
    await _wait_for_call(model)
    notepad.edit_line(line.line_id, "call mom")
    model.release.set()

    assert await notepad.settled(line.line_id) == LineStatus.success
    assert model.calls == ["party", "call mom"]
    parsed = _parsed(events)
    assert len(parsed) == 1
    assert parsed[0].status == LineStatus.success
    subject = next(s for s in notepad.results_for(line.line_id) if s.field == SlotField.subject)
    assert subject.value == "Call mom"


@pytest.mark.asyncio
async def test_commit_keeps_lines_added_while_waiting() -> None:
    calendar = InMemoryCalendar()
    notepad = _notepad(calendar=calendar, timings=Timings(throttle_s=0.01, settle_s=0.1, min_length=3))

    first = notepad.add_line("call mom")
    commit = asyncio.create_task(notepad.commit_all())
    await asyncio.sleep(0.03)
    late = notepad.add_line("buy milk later")
    report = await commit

    assert report.succeeded == 1
    assert notepad.lines.get(first.line_id) is None
    assert [line.text for line in notepad.lines.non_empty()] == ["buy milk later"]
    assert notepad.lines.get(late.line_id) is not None
    assert len(calendar.items) == 1
    await notepad.settled(late.line_id)
