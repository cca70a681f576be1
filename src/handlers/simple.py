"""Handlers for intents with few slots: work sessions, journal, calorie adjustments, fallback."""

from __future__ import annotations

from src.entries.formatting import format_time_for_display
from src.handlers.base import (
    HandlerContext,
    guess_number,
    guess_text,
    intent_slot,
    make_slot,
    passthrough_slots,
    subject_slot,
)
from src.intent.dates import canonical_time
from src.intent.dictionaries import MOOD_EMOJIS
from src.intent.schema import Intent, ModelResult, SlotField, SlotPrediction
from src.intent.validation import Verdict, check_time


class WorkSessionHandler:
    """Work start/end; the time is the one mentioned in the line, else now."""

    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        ctx = self._context
        threshold = ctx.confidence_threshold
        intent = result.intent or Intent.work_start
        slots = [intent_slot(intent, result, threshold=threshold)]
        subject = subject_slot(result, threshold=threshold)
        if subject is not None:
            slots.append(subject)

        time_guess = result.event_time or result.reminder_time
        label = guess_text(time_guess)
        clock = canonical_time(label) if label else f"{ctx.clock():%H:%M}"
        slots.append(
            make_slot(
                SlotField.event_time,
                format_time_for_display(clock or label or "", twelve_hour=ctx.twelve_hour),
                result=result,
                guess=time_guess,
                raw_value=clock or label,
                verdict=check_time(clock or label),
                threshold=threshold,
            )
        )
        return slots


class JournalHandler:
    """Mood journal lines; the subject keeps its mood emoji as a prefix."""

    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        threshold = self._context.confidence_threshold
        slots = [intent_slot(Intent.journal, result, threshold=threshold)]

        mood = guess_text(result.mood)
        if mood is None:
            mood = next((e for e in MOOD_EMOJIS if text.strip().startswith(e)), None)
        body = guess_text(result.subject)
        if body and mood and not body.startswith(mood):
            body = f"{mood} {body}"

        if mood:
            slots.append(make_slot(SlotField.mood, mood, result=result, guess=result.mood, threshold=threshold))
        subject = subject_slot(result, threshold=threshold, value=body)
        if subject is not None:
            slots.append(subject)
        return slots


class CalorieAdjustmentHandler:
    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        threshold = self._context.confidence_threshold
        slots = [intent_slot(Intent.calorie_adjustment, result, threshold=threshold)]
        subject = subject_slot(result, threshold=threshold)
        if subject is not None:
            slots.append(subject)

        calories = guess_number(result.calories)
        if calories is None or calories == 0:
            slots.append(
                make_slot(
                    SlotField.calories,
                    "Not found",
                    result=result,
                    verdict=Verdict(is_valid=False, message="Calories not found"),
                )
            )
        else:
            slots.append(
                make_slot(
                    SlotField.calories,
                    f"{calories:+.0f} kcal",
                    result=result,
                    guess=result.calories,
                    raw_value=f"{calories:g}",
                    threshold=threshold,
                )
            )
        return slots


class DefaultHandler:
    """Fallback for intents without a dedicated handler: intent and subject only."""

    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        threshold = self._context.confidence_threshold
        if result.intent is None:
            return []
        slots = [intent_slot(result.intent, result, threshold=threshold)]
        subject = subject_slot(result, threshold=threshold)
        if subject is not None:
            slots.append(subject)
        slots.extend(passthrough_slots(result, threshold=threshold))
        return slots
