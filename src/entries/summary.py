"""One-line preview of what committing a parsed line will do."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from src.entries.convert import apply_override
from src.entries.formatting import format_day_for_display, format_time_for_display, normalize_intent
from src.intent.schema import (
    MEAL_ITEM_DELIMITER,
    Intent,
    Override,
    SlotField,
    SlotPrediction,
    item_calories_field,
)

NOT_FOUND = "Not found"


def _valid(slots: dict[str, SlotPrediction], field: str) -> SlotPrediction | None:
    slot = slots.get(field)
    if slot is None or not slot.is_valid or not slot.value.strip():
        return None
    return slot


def _work_summary(slots: dict[str, SlotPrediction], original_text: str, now: datetime, twelve_hour: bool) -> str:
    time_slot = _valid(slots, SlotField.reminder_time) or _valid(slots, SlotField.event_time)
    clock = time_slot.value if time_slot else format_time_for_display(f"{now:%H:%M}", twelve_hour=twelve_hour)
    return f"{original_text.strip()} - {clock}"


def _money_summary(intent: Intent, slots: dict[str, SlotPrediction]) -> str | None:
    amount = _valid(slots, SlotField.amount)
    if amount is None:
        return None
    value = amount.value.strip().lstrip("+-").strip()
    sign = "+" if intent == Intent.income else "-"
    return f"{sign} {value}"


def _meal_summary(slots: dict[str, SlotPrediction]) -> str | None:
    subject = _valid(slots, SlotField.subject)
    if subject is None:
        return None

    items = [item.strip() for item in subject.value.split(MEAL_ITEM_DELIMITER.strip()) if item.strip()]
    if len(items) > 1:
        parts = []
        for item in items:
            calories = _valid(slots, item_calories_field(item))
            if calories is None or calories.value == NOT_FOUND:
                parts.append(item)
            else:
                parts.append(f"{item} {calories.value}")
        return ", ".join(parts)

    calories = _valid(slots, SlotField.calories)
    if calories is None or calories.value == NOT_FOUND:
        return subject.value
    return f"{subject.value} {calories.value}"


def _calendar_summary(
        intent: Intent,
        slots: dict[str, SlotPrediction],
        *,
        now: datetime,
) -> str:
    if intent == Intent.event:
        noun, day_field, time_field = "Event", SlotField.event_day, SlotField.event_time
    else:
        noun, day_field, time_field = "Reminder", SlotField.reminder_day, SlotField.reminder_time

    text = f"{noun} will be created"
    day = _valid(slots, day_field)
    if day is not None:
        text += f" on {format_day_for_display(day.raw_value or day.value, now=now)}"
    clock = _valid(slots, time_field)
    if clock is not None:
        text += f" at {clock.value}"
    subject = _valid(slots, SlotField.subject)
    if subject is not None:
        text += f" - {subject.value}"
    return text


def build_summary(
        slots: Iterable[SlotPrediction],
        original_text: str,
        *,
        override: Override | None = None,
        now: datetime | None = None,
        twelve_hour: bool = False,
) -> str | None:
    """Build the preview sentence for a line.

    Templates:
        - work_start/work_end: "<original text> - <time>" (time from the slots, else now);
        - income/expense: "+ <amount>" / "- <amount>";
        - meal: "<subject> <calories>", multi-item "A 100 kcal, B" (items without calories by name);
        - reminder/event: "<Noun> will be created[ on <day>][ at <time>][ - <subject>]".

    Returns:
        The sentence, or `None` when the intent has no template or required slots are invalid.
    """

    now = now or datetime.now()
    by_field = {s.field: s for s in apply_override(slots, override)}
    intent_slot = _valid(by_field, SlotField.intent)
    if intent_slot is None:
        return None
    intent = normalize_intent(intent_slot.raw_value or intent_slot.value)

    if intent in {Intent.work_start, Intent.work_end}:
        return _work_summary(by_field, original_text, now, twelve_hour)
    if intent in {Intent.income, Intent.expense}:
        return _money_summary(intent, by_field)
    if intent == Intent.meal:
        return _meal_summary(by_field)
    if intent in {Intent.reminder, Intent.event}:
        return _calendar_summary(intent, by_field, now=now)
    return None
