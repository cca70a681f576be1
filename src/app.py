"""Application composition root.

This module wires configuration, the intent model, the handler registry and the shared services
(variables, work sessions, calendar) into notepads. The bot keeps one notepad per chat.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from functools import partial

from src.config.settings import Settings
from src.entries.variables import VariableBook
from src.entries.work_sessions import WorkSessionLog
from src.handlers.base import HandlerContext
from src.handlers.registry import HandlerRegistry, default_registry
from src.intent.parser import predict
from src.notepad.orchestrator import Notepad, Timings
from src.services.calendar import CalendarService, InMemoryCalendar
from src.services.rates import InMemoryRates, RateProvider


@dataclass
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    registry: HandlerRegistry
    calendar: CalendarService
    variables: VariableBook
    work_sessions: WorkSessionLog
    notepads: dict[int, Notepad] = field(default_factory=dict)
    message_lines: dict[tuple[int, int], str] = field(default_factory=dict)

    def new_notepad(self) -> Notepad:
        settings = self.settings
        return Notepad(
            predict=partial(predict, llm_enabled=settings.llm_enabled, llm_api_key=settings.llm_api_key),
            registry=self.registry,
            calendar=self.calendar,
            variables=self.variables,
            work_sessions=self.work_sessions,
            timings=Timings(
                throttle_s=settings.throttle_s,
                settle_s=settings.settle_s,
                min_length=settings.min_parse_length,
            ),
            base_currency=settings.base_currency,
            weight_kg=settings.body_weight_kg,
            twelve_hour=settings.twelve_hour_clock,
        )

    def notepad_for(self, chat_id: int) -> Notepad:
        """Return the chat's notepad, creating it on first use."""

        notepad = self.notepads.get(chat_id)
        if notepad is None:
            notepad = self.notepads[chat_id] = self.new_notepad()
        return notepad

    def prune_message_lines(self, chat_id: int) -> None:
        """Drop message mappings of the chat whose line no longer exists."""

        notepad = self.notepads.get(chat_id)
        for key in [k for k in self.message_lines if k[0] == chat_id]:
            if notepad is None or notepad.lines.get(self.message_lines[key]) is None:
                del self.message_lines[key]


def create_app(
        settings: Settings,
        *,
        calendar: CalendarService | None = None,
        variables: VariableBook | None = None,
        rates: RateProvider | None = None,
) -> App:
    """Create the application container.

    Variables and work sessions are shared by every notepad the app creates. Without an explicit
    rate provider, amounts are converted only when `CURRENCY_RATES` is configured.
    """

    variables = variables if variables is not None else VariableBook()
    if rates is None and settings.currency_rates:
        max_age = settings.currency_rates_max_age_h
        rates = InMemoryRates(
            settings.currency_rates,
            max_age=timedelta(hours=max_age) if max_age is not None else None,
        )
    context = HandlerContext(
        variables=variables,
        confidence_threshold=settings.confidence_threshold,
        weight_kg=settings.body_weight_kg,
        base_currency=settings.base_currency,
        twelve_hour=settings.twelve_hour_clock,
        rates=rates,
    )
    return App(
        settings=settings,
        registry=default_registry(context),
        calendar=calendar if calendar is not None else InMemoryCalendar(),
        variables=variables,
        work_sessions=WorkSessionLog(),
    )
