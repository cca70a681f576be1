"""Display formatting for slot values and titles."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from src.intent.dates import parse_clock, resolve_day
from src.intent.dictionaries import WEEKDAY_NAMES, day_tokens, find_weekday, has_next_marker
from src.intent.schema import Intent

_INTENT_ALIASES: dict[str, Intent] = {
    "work start": Intent.work_start,
    "work end": Intent.work_end,
    "calorie adjustment": Intent.calorie_adjustment,
    "calories": Intent.calorie_adjustment,
    "food": Intent.meal,
    "spending": Intent.expense,
}

_RELATIVE_DAY_LABELS: dict[str, dict[str, str]] = {
    "en": {"today": "Today", "tomorrow": "Tomorrow", "next_week": "Next week", "next": "Next"},
    "tr": {"today": "Bugün", "tomorrow": "Yarın", "next_week": "Haftaya", "next": "Gelecek"},
}
_WEEKDAY_LABELS: dict[str, tuple[str, ...]] = {
    "en": tuple(name.title() for name in WEEKDAY_NAMES),
    "tr": ("Pazar", "Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi"),
}


def normalize_intent(value: str | None) -> Intent | None:
    """Map a display or raw intent label ("Work Start", "work_start") to the enum."""

    text = " ".join((value or "").strip().lower().replace("_", " ").split())
    if not text:
        return None
    if text in _INTENT_ALIASES:
        return _INTENT_ALIASES[text]
    try:
        return Intent(text.replace(" ", "_"))
    except ValueError:
        return None


def format_intent_for_display(value: Intent | str) -> str:
    intent = normalize_intent(value) if isinstance(value, str) else value
    if intent is None:
        return format_title(str(value))
    return intent.label


def format_title(value: str) -> str:
    """Underscores become spaces and the first letter is capitalized."""

    text = (value or "").replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def format_time_for_display(value: str, *, twelve_hour: bool = False) -> str:
    """Format "HH:MM" for display; non-clock values (e.g. "evening") are title-cased."""

    clock = parse_clock(value)
    if clock is None:
        return format_title(value)
    hour, minute = clock
    if not twelve_hour:
        return f"{hour:02d}:{minute:02d}"
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def format_date_medium(value: date | datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def format_day_for_display(value: str, *, locale: str = "en", now: datetime | None = None) -> str:
    """Format a day label ("tomorrow", "next_friday", "2025-11-28") for display."""

    labels = _RELATIVE_DAY_LABELS.get(locale, _RELATIVE_DAY_LABELS["en"])
    weekdays = _WEEKDAY_LABELS.get(locale, _WEEKDAY_LABELS["en"])
    text = (value or "").strip().lower()

    if text in labels:
        return labels[text]
    weekday = find_weekday(text)
    if weekday is not None and all(t in {"next", "weekday"} or find_weekday(t) for t in day_tokens(text)):
        name = weekdays[weekday - 1]
        return f"{labels['next']} {name}" if has_next_marker(text) else name

    resolved = resolve_day(text, now=now)
    if resolved is None:
        return format_title(value)
    now = now or datetime.now()
    if resolved.date() == now.date():
        return labels["today"]
    if resolved.date() == now.date() + timedelta(days=1):
        return labels["tomorrow"]
    return format_date_medium(resolved)
