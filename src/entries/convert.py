"""Slot predictions -> canonical `ParsedEntry`.

Only valid slots contribute. Day and time values are canonicalized so a committed entry never
carries display text: times become "HH:MM" and natural dates become "YYYY-MM-DD".
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from src.entries.formatting import normalize_intent
from src.intent.dates import absolute_day_string, canonical_time, resolve_day
from src.intent.dictionaries import is_relative_day_token
from src.intent.quantities import extract_currency, extract_first_number, normalize_currency_code
from src.intent.schema import (
    Override,
    ParsedEntry,
    SlotField,
    SlotPrediction,
    SlotSource,
    is_item_calories_field,
)


class EntryConversionError(ValueError):
    """Raised when slots cannot form an entry (no valid intent)."""


_DAY_FIELDS = (SlotField.reminder_day, SlotField.event_day)
_TIME_FIELDS = (SlotField.reminder_time, SlotField.event_time)
_ENTRY_ATTRS: dict[str, str] = {
    SlotField.reminder_day: "reminder_day",
    SlotField.event_day: "event_day",
    SlotField.reminder_time: "reminder_time",
    SlotField.event_time: "event_time",
}


def _slot_text(slot: SlotPrediction) -> str:
    return slot.raw_value if slot.raw_value is not None else slot.value


def canonical_day(value: str | None, *, now: datetime | None = None) -> str | None:
    """Keep closed relative tokens; resolve anything else to "YYYY-MM-DD"."""

    text = (value or "").strip().lower()
    if not text:
        return None
    if is_relative_day_token(text):
        return text
    resolved = resolve_day(text, now=now)
    if resolved is None:
        return None
    return absolute_day_string(resolved)


def apply_override(slots: Iterable[SlotPrediction], override: Override | None) -> list[SlotPrediction]:
    """Replace subject and day/time slots with the manual override.

    The instant is written to both reminder and event fields so the override applies whatever
    shape the entry ends up with.
    """

    result = list(slots)
    if override is None:
        return result

    replaced: set[str] = set()
    manual: list[SlotPrediction] = []
    if override.subject:
        replaced.add(SlotField.subject)
        manual.append(
            SlotPrediction(field=SlotField.subject, value=override.subject, confidence=1.0, source=SlotSource.manual)
        )
    if override.at is not None:
        day = absolute_day_string(override.at)
        clock = f"{override.at:%H:%M}"
        replaced.update((*_DAY_FIELDS, *_TIME_FIELDS))
        for field in _DAY_FIELDS:
            manual.append(SlotPrediction(field=field, value=day, confidence=1.0, source=SlotSource.manual))
        for field in _TIME_FIELDS:
            manual.append(SlotPrediction(field=field, value=clock, confidence=1.0, source=SlotSource.manual))

    return [s for s in result if s.field not in replaced] + manual


def build_entry(
        slots: Iterable[SlotPrediction],
        original_text: str,
        *,
        override: Override | None = None,
        now: datetime | None = None,
) -> ParsedEntry:
    """Convert a line's slot predictions into a committed entry.

    Raises:
        EntryConversionError: If no valid intent slot is present.
    """

    now = now or datetime.now()
    values: dict[str, object] = {}
    item_calories: list[float] = []
    amount_text: str | None = None

    for slot in apply_override(slots, override):
        if not slot.is_valid:
            continue
        text = _slot_text(slot).strip()
        field = slot.field

        if field == SlotField.intent:
            values["intent"] = normalize_intent(text) or normalize_intent(slot.value)
        elif field == SlotField.subject:
            values["subject"] = text or None
        elif field in _TIME_FIELDS:
            values[_ENTRY_ATTRS[field]] = canonical_time(text)
        elif field in _DAY_FIELDS:
            values[_ENTRY_ATTRS[field]] = canonical_day(text, now=now)
        elif field == SlotField.amount:
            number = extract_first_number(text)
            values["amount"] = abs(number) if number is not None else None
            amount_text = slot.value
        elif field == SlotField.currency:
            values["currency"] = normalize_currency_code(text)
        elif field == SlotField.calories:
            values["calories"] = extract_first_number(text)
        elif is_item_calories_field(field):
            number = extract_first_number(text)
            if number is not None:
                item_calories.append(number)
        elif field == SlotField.duration:
            values["duration_minutes"] = extract_first_number(text)
        elif field == SlotField.distance:
            values["distance_km"] = extract_first_number(text)
        elif field == SlotField.location:
            values["location"] = text or None
        elif field == SlotField.url:
            values["url"] = text or None
        elif field == SlotField.mood:
            values["mood"] = text or None

    if values.get("intent") is None:
        raise EntryConversionError("No valid intent")
    if values.get("currency") is None and amount_text:
        values["currency"] = extract_currency(amount_text) or normalize_currency_code(amount_text.split()[-1])
    if values.get("calories") is None and item_calories:
        values["calories"] = sum(item_calories)

    return ParsedEntry(
        original_text=original_text,
        created_at=now,
        **{k: v for k, v in values.items() if v is not None},
    )
