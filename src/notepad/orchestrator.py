"""Per-line debounced parsing and bulk commit.

Each edit cancels the line's in-flight parse and schedules a new one:

    idle --(throttle)--> loading --(settle, parse)--> success | error

The parse itself runs the arithmetic shortcut first and only then the intent model (in a worker
thread) plus the intent's handler. A result is committed only if the line still exists and its
text is unchanged; otherwise it is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import ValidationError

from src.entries.convert import EntryConversionError, apply_override, build_entry
from src.entries.summary import build_summary
from src.entries.variables import VariableBook
from src.entries.work_sessions import WorkSessionLog
from src.handlers.registry import HandlerRegistry
from src.intent.dates import parse_clock, resolve_instant
from src.intent.normalize import normalize_time_phrases
from src.intent.parser import IntentModelError
from src.intent.schema import Intent, LineStatus, ModelResult, Override, ParsedEntry, SlotPrediction
from src.intent.shortcut import evaluate_shortcut
from src.notepad.errors import InvalidSlot, NotepadError, StaleResult, UnparseableInput
from src.notepad.events import EventChannel, LineParsed, Notification, NotificationLevel, StatusChanged
from src.notepad.lines import Line, LineStore
from src.notepad.tasks import TaskSlots
from src.services.calendar import CalendarService

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_TIME = "12:00"

Predictor = Callable[[str], ModelResult]


@dataclass(frozen=True)
class Timings:
    throttle_s: float = 0.3
    settle_s: float = 0.8
    min_length: int = 3


@dataclass(frozen=True)
class CommitFailure:
    line_id: str
    text: str
    error: NotepadError


@dataclass
class CommitReport:
    """Outcome of `Notepad.commit_all`."""

    committed: list[ParsedEntry] = field(default_factory=list)
    failures: list[CommitFailure] = field(default_factory=list)
    focus_line_id: str | None = None
    title: str = ""
    message: str = ""

    @property
    def succeeded(self) -> int:
        return len(self.committed)

    @property
    def failed(self) -> int:
        return len(self.failures)


class Notepad:
    """Lines, their parse results and the tasks that produce them.

    All methods must be called from the event loop that runs the parse tasks. Background work
    (the model call) only returns values; every mutation of lines and results happens here.
    """

    def __init__(
            self,
            *,
            predict: Predictor,
            registry: HandlerRegistry,
            calendar: CalendarService,
            variables: VariableBook | None = None,
            work_sessions: WorkSessionLog | None = None,
            timings: Timings = Timings(),
            clock: Callable[[], datetime] = datetime.now,
            base_currency: str = "USD",
            weight_kg: float | None = 70.0,
            twelve_hour: bool = False,
            events: EventChannel | None = None,
    ) -> None:
        self.lines = LineStore()
        self.variables = variables if variables is not None else VariableBook()
        self.work_sessions = work_sessions if work_sessions is not None else WorkSessionLog()
        self.events = events if events is not None else EventChannel()
        self.focused_line_id: str | None = None

        self._predict = predict
        self._registry = registry
        self._calendar = calendar
        self._timings = timings
        self._clock = clock
        self._base_currency = base_currency
        self._weight_kg = weight_kg
        self._twelve_hour = twelve_hour

        self._results: dict[str, list[SlotPrediction]] = {}
        self._overrides: dict[str, Override] = {}
        self._tasks = TaskSlots()

    # Line editing

    def add_line(self, text: str = "", *, after: str | None = None) -> Line:
        line = self.lines.insert(after=after)
        if text:
            self.edit_line(line.line_id, text)
        return line

    def edit_line(self, line_id: str, text: str) -> None:
        """Replace a line's text and (re)schedule its parse.

        Raises:
            KeyError: If the line does not exist.
        """

        line = self._require(line_id)
        self._tasks.cancel(line_id)
        line.text = text

        if len(line.stripped) < self._timings.min_length:
            self._results.pop(line_id, None)
            self._set_status(line, LineStatus.idle)
            return

        if line.status == LineStatus.loading:
            self._set_status(line, LineStatus.idle)
        self._tasks.replace(line_id, self._debounced_parse(line_id, text))

    def split_line(self, line_id: str, text: str) -> list[str]:
        """Apply multi-line text to a line: the first part edits it, the rest become new lines below.

        Returns:
            Ids of the affected lines, in order.
        """

        first, *rest = text.split("\n")
        self.edit_line(line_id, first)
        ids = [line_id]
        after = line_id
        for part in rest:
            after = self.add_line(part, after=after).line_id
            ids.append(after)
        return ids

    def delete_line(self, line_id: str) -> None:
        self._tasks.cancel(line_id)
        self._forget(line_id)
        self.lines.remove(line_id)
        if self.focused_line_id == line_id:
            self.focused_line_id = None

    def revalidate_all(self) -> None:
        """Re-parse every non-empty line, e.g. after variables changed."""

        for line in self.lines.non_empty():
            self.edit_line(line.line_id, line.text)

    def cancel_all(self) -> None:
        self._tasks.cancel_all()
        for line in self.lines:
            if line.status == LineStatus.loading:
                self._set_status(line, LineStatus.idle)

    def clear(self) -> None:
        """Discard every line and its results."""

        self._tasks.cancel_all()
        self._results.clear()
        self._overrides.clear()
        self.lines.reset()
        self.focused_line_id = None

    # Results

    def set_override(self, line_id: str, override: Override) -> None:
        line = self._require(line_id)
        self._overrides[line_id] = override
        if line_id in self._results:
            self._emit_parsed(line)

    def clear_override(self, line_id: str) -> None:
        self._overrides.pop(line_id, None)
        line = self.lines.get(line_id)
        if line is not None and line_id in self._results:
            self._emit_parsed(line)

    def results_for(self, line_id: str) -> list[SlotPrediction]:
        """Slots of the last committed parse, with the line's override applied."""

        return apply_override(self._results.get(line_id, []), self._overrides.get(line_id))

    def summary_for(self, line_id: str) -> str | None:
        line = self.lines.get(line_id)
        slots = self._results.get(line_id)
        if line is None or not slots:
            return None
        return build_summary(
            slots,
            line.text,
            override=self._overrides.get(line_id),
            now=self._clock(),
            twelve_hour=self._twelve_hour,
        )

    async def settled(self, line_id: str) -> LineStatus | None:
        """Wait for the line's pending parse.

        Returns:
            The line's status afterwards, or `None` if the parse was cancelled or the line is gone.
        """

        task = self._tasks.get(line_id)
        if task is not None:
            await asyncio.wait({task})
            if task.cancelled():
                return None
        line = self.lines.get(line_id)
        return line.status if line is not None else None

    # Parsing

    async def _debounced_parse(self, line_id: str, text: str) -> None:
        try:
            await asyncio.sleep(self._timings.throttle_s)
            self._set_status(self._require(line_id), LineStatus.loading)
            await asyncio.sleep(self._timings.settle_s)

            try:
                slots = await self._produce_slots(text, line_id)
            except (IntentModelError, NotepadError) as exc:
                logger.warning("parse failed line_id=%s reason=%s", line_id, exc)
                slots = []
            # noinspection PyBroadException
            except Exception:
                logger.exception("parse crashed line_id=%s", line_id)
                slots = []

            self._commit_results(line_id, text, slots)
        except StaleResult:
            logger.debug("stale parse dropped line_id=%s", line_id)
        except asyncio.CancelledError:
            # A replaced task leaves status to its successor.
            owner = self._tasks.get(line_id)
            line = self.lines.get(line_id)
            if (owner is None or owner is asyncio.current_task()) and line is not None:
                if line.status == LineStatus.loading:
                    self._set_status(line, LineStatus.idle)
            raise

    async def _produce_slots(self, text: str, line_id: str) -> list[SlotPrediction]:
        prepared = normalize_time_phrases(text, now=self._clock())

        shortcut = evaluate_shortcut(
            prepared,
            variables=self.variables,
            base_currency=self._base_currency,
            weight_kg=self._weight_kg,
        )
        if shortcut is not None:
            return shortcut.slots()

        result = await asyncio.to_thread(self._predict, prepared)
        if result.intent is None:
            return []
        handler = self._registry.resolve(result.intent)
        return await handler.handle(result, prepared, line_id)

    def _commit_results(self, line_id: str, text: str, slots: list[SlotPrediction]) -> None:
        """Store a finished parse.

        Raises:
            StaleResult: If the line was removed or its text changed since the parse started.
        """

        line = self.lines.get(line_id)
        if line is None or line.text != text:
            raise StaleResult(line_id)

        self._results[line_id] = slots
        ok = bool(slots) and all(slot.is_valid for slot in slots)
        self._set_status(line, LineStatus.success if ok else LineStatus.error)
        self._emit_parsed(line)

    # Commit

    async def commit_all(self, *, replace_active_session: bool = False) -> CommitReport:
        """Commit every non-empty line.

        Succeeded lines are removed, failed ones are kept (the first gets focus). A failure never
        undoes earlier successes.
        """

        report = CommitReport()
        pending = self.lines.non_empty()
        for line in pending:
            await self.settled(line.line_id)

        succeeded: list[str] = []
        for line in pending:
            if self.lines.get(line.line_id) is None:
                continue
            try:
                entry = self._entry_for(line)
                await self._dispatch(entry, replace_active_session=replace_active_session)
            except NotepadError as exc:
                logger.warning("commit failed line_id=%s error=%s", line.line_id, exc)
                self._set_status(line, LineStatus.error)
                report.failures.append(CommitFailure(line_id=line.line_id, text=line.text, error=exc))
                continue
            report.committed.append(entry)
            succeeded.append(line.line_id)

        # Lines added while the commit awaited stay untouched.
        for line_id in succeeded:
            self.delete_line(line_id)
        if report.failures:
            report.focus_line_id = report.failures[0].line_id
            self.focused_line_id = report.focus_line_id

        level = self._describe(report)
        logger.info("commit done succeeded=%d failed=%d", report.succeeded, report.failed)
        self.events.emit(
            Notification(level=level, title=report.title, message=report.message, line_id=report.focus_line_id)
        )
        return report

    def _entry_for(self, line: Line) -> ParsedEntry:
        """Rebuild the committed entry for a line.

        Raises:
            UnparseableInput: If the line produced no intent.
            InvalidSlot: If any slot is invalid.
        """

        slots = self.results_for(line.line_id)
        if not slots:
            raise UnparseableInput(f"Could not understand: {line.stripped}")
        for slot in slots:
            if not slot.is_valid:
                raise InvalidSlot(slot.error_message or f"Invalid {slot.field}", field=slot.field)
        try:
            return build_entry(self._results[line.line_id], line.text, override=self._overrides.get(line.line_id),
                               now=self._clock())
        except EntryConversionError as exc:
            raise UnparseableInput(str(exc)) from exc
        except ValidationError as exc:
            raise InvalidSlot(str(exc)) from exc

    async def _dispatch(self, entry: ParsedEntry, *, replace_active_session: bool) -> None:
        now = self._clock()
        title = entry.subject or entry.original_text

        if entry.intent == Intent.event:
            if entry.event_day is None and entry.event_time is None:
                raise InvalidSlot("Please specify a time", field="Event Time")
            start = resolve_instant(entry.event_day, entry.event_time or DEFAULT_CALENDAR_TIME, now=now)
            if start is None:
                raise InvalidSlot("Invalid date format", field="Event Day")
            await self._calendar.create_event(
                title=title, start=start, notes=entry.original_text, location=entry.location, url=entry.url
            )
        elif entry.intent == Intent.reminder:
            due = None
            if entry.reminder_day is not None or entry.reminder_time is not None:
                due = resolve_instant(entry.reminder_day, entry.reminder_time or DEFAULT_CALENDAR_TIME, now=now)
                if due is None:
                    raise InvalidSlot("Invalid date format", field="Reminder Day")
            await self._calendar.create_reminder(
                title=title, due=due, notes=entry.original_text, location=entry.location, url=entry.url
            )
        elif entry.intent == Intent.work_start:
            self.work_sessions.start(
                _today_at(entry.event_time, now), label=entry.subject, replace_active=replace_active_session
            )
        elif entry.intent == Intent.work_end:
            self.work_sessions.end(_today_at(entry.event_time, now))

    @staticmethod
    def _describe(report: CommitReport) -> NotificationLevel:
        """Fill the report's title/message; prefers the most specific validator message."""

        if not report.failures:
            if report.succeeded == 0:
                report.title, report.message = "Nothing to process", "No items to process."
                return NotificationLevel.info
            report.title = "Processing Complete"
            report.message = f"Processed {report.succeeded} item(s). All succeeded."
            return NotificationLevel.success

        specific = next((f.error for f in report.failures if isinstance(f.error, InvalidSlot)), None)
        if specific is not None:
            report.title, report.message = "Validation Error", str(specific)
        elif report.succeeded:
            total = report.succeeded + report.failed
            report.title = "Partial Success"
            report.message = f"Processed {total} items: {report.succeeded} succeeded, {report.failed} failed."
        else:
            report.title = "Processing Failed"
            report.message = f"No items processed. {report.failed} failed."
        return NotificationLevel.error

    # Internals

    def _require(self, line_id: str) -> Line:
        line = self.lines.get(line_id)
        if line is None:
            raise KeyError(f"Unknown line: {line_id}")
        return line

    def _forget(self, line_id: str) -> None:
        self._results.pop(line_id, None)
        self._overrides.pop(line_id, None)

    def _set_status(self, line: Line, status: LineStatus) -> None:
        if line.status == status:
            return
        line.status = status
        self.events.emit(StatusChanged(line_id=line.line_id, status=status))

    def _emit_parsed(self, line: Line) -> None:
        self.events.emit(
            LineParsed(
                line_id=line.line_id,
                status=line.status,
                slots=tuple(self.results_for(line.line_id)),
                summary=self.summary_for(line.line_id),
            )
        )


def _today_at(time_string: str | None, now: datetime) -> datetime:
    clock = parse_clock(time_string)
    if clock is None:
        return now
    return now.replace(hour=clock[0], minute=clock[1], second=0, microsecond=0)
