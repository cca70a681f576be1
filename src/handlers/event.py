"""Reminder and event slot assembly."""

from __future__ import annotations

from src.entries.formatting import format_day_for_display, format_time_for_display
from src.handlers.base import (
    HandlerContext,
    guess_text,
    intent_slot,
    make_slot,
    passthrough_slots,
    subject_slot,
)
from src.intent.dates import canonical_time
from src.intent.schema import Intent, ModelResult, SlotField, SlotPrediction
from src.intent.validation import Verdict, check_day, check_time

DEFAULT_TIME = "12:00"
MISSING_TIME_MESSAGE = "Please specify a time"


class EventHandler:
    """Day/time slots for reminders and events.

    A day without a time defaults to noon. An event with neither day nor time is flagged; a
    reminder may be undated.
    """

    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        ctx = self._context
        threshold = ctx.confidence_threshold
        intent = result.intent or Intent.reminder
        is_event = intent == Intent.event

        if is_event:
            day_field, time_field = SlotField.event_day, SlotField.event_time
            day_guess = result.event_day or result.reminder_day
            time_guess = result.event_time or result.reminder_time
        else:
            day_field, time_field = SlotField.reminder_day, SlotField.reminder_time
            day_guess = result.reminder_day or result.event_day
            time_guess = result.reminder_time or result.event_time

        slots = [intent_slot(intent, result, threshold=threshold)]
        subject = subject_slot(result, threshold=threshold)
        if subject is not None:
            slots.append(subject)

        day_label = guess_text(day_guess)
        time_label = guess_text(time_guess)

        if time_label:
            clock = canonical_time(time_label)
            display = format_time_for_display(clock or time_label, twelve_hour=ctx.twelve_hour)
            slots.append(
                make_slot(
                    time_field,
                    display,
                    result=result,
                    guess=time_guess,
                    raw_value=clock or time_label,
                    verdict=check_time(time_label),
                    threshold=threshold,
                )
            )
        elif day_label:
            slots.append(
                make_slot(
                    time_field,
                    format_time_for_display(DEFAULT_TIME, twelve_hour=ctx.twelve_hour),
                    result=result,
                    raw_value=DEFAULT_TIME,
                )
            )
        elif is_event:
            slots.append(
                make_slot(
                    time_field,
                    "Not set",
                    result=result,
                    verdict=Verdict(is_valid=False, message=MISSING_TIME_MESSAGE),
                )
            )

        if day_label:
            verdict = check_day(day_label, now=ctx.clock())
            display = format_day_for_display(day_label, now=ctx.clock()) if verdict.is_valid else day_label
            slots.append(
                make_slot(
                    day_field,
                    display,
                    result=result,
                    guess=day_guess,
                    raw_value=day_label,
                    verdict=verdict,
                    threshold=threshold,
                )
            )

        slots.extend(passthrough_slots(result, threshold=threshold))
        return slots
