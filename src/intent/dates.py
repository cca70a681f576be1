"""Temporal resolution for notepad lines (host local calendar).

A line names a day ("tomorrow", "next_friday", "22 november", "2025-11-28") and/or a clock time
("15:00"). This module turns such a pair into one concrete local instant.

Rules:
    - an explicit day is honored verbatim, even if the result is in the past;
    - with no day, a time already behind `now` rolls over to tomorrow;
    - `next_<weekday>` always lands in the following week (never today).
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

import dateparser
from dateparser.conf import Settings as DateparserSettings

from src.intent.dictionaries import (
    DAY_PART_CLOCK,
    NEXT_WEEK_PHRASES,
    TODAY_TERMS,
    TOMORROW_TERMS,
    day_tokens,
    find_day_part,
    find_weekday,
    has_next_marker,
)

_DATEPARSER_SETTINGS = DateparserSettings().replace(
    DATE_ORDER="DMY",
    PREFER_DATES_FROM="future",
    RETURN_AS_TIMEZONE_AWARE=False,
    REQUIRE_PARTS=["day", "month"],
)
_DATEPARSER_LANGUAGES: list[str] = ["en", "tr", "de", "fr", "es"]

_ABSOLUTE_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")
_YEAR_RE = re.compile(r"\b\d{4}\b")

# "22 november [2025]" or "november 22[nd][, 2025]"; month names in any supported locale.
_NATURAL_DATE_RE = re.compile(
    r"^(?:\d{1,2}\.?\s+[^\W\d_]+\.?(?:,?\s+\d{4})?"
    r"|[^\W\d_]+\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?)$"
)
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{1,2})$")


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def weekday_index(value: date) -> int:
    """Weekday index with 1 = Sunday ... 7 = Saturday."""

    return (value.weekday() + 1) % 7 + 1


def absolute_day_string(value: datetime | date) -> str:
    """Format a day as the absolute "YYYY-MM-DD" label accepted by `resolve_day`."""

    return value.strftime("%Y-%m-%d")


def parse_clock(value: str | None) -> tuple[int, int] | None:
    """Parse "H:MM"/"HH:MM" into `(hour, minute)`.

    Returns:
        The pair if there are exactly two numeric components in range; otherwise `None`.
    """

    match = _CLOCK_RE.fullmatch((value or "").strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def canonical_time(value: str | None) -> str | None:
    """Canonicalize a clock time or day-part word into zero-padded "HH:MM"."""

    clock = parse_clock(value)
    if clock is not None:
        return f"{clock[0]:02d}:{clock[1]:02d}"
    part = find_day_part(value or "")
    if part is not None:
        return DAY_PART_CLOCK[part]
    return None


def _parse_absolute(label: str) -> datetime | None:
    value = label.strip()
    if _ABSOLUTE_DAY_RE.fullmatch(value):
        try:
            return datetime.combine(date.fromisoformat(value), time.min)
        except ValueError:
            return None
    if _ISO_TIMESTAMP_RE.match(value):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return start_of_day(parsed)
    return None


def _parse_natural_date(label: str, *, now: datetime) -> datetime | None:
    value = label.strip().lower()
    if not _NATURAL_DATE_RE.fullmatch(value):
        return None

    parsed = dateparser.parse(
        value,
        languages=_DATEPARSER_LANGUAGES,
        settings=_DATEPARSER_SETTINGS.replace(RELATIVE_BASE=now),
    )
    if parsed is None:
        return None
    if _YEAR_RE.search(value):
        return start_of_day(parsed)

    # No year given: this year, unless that day is already behind us.
    try:
        candidate = date(now.year, parsed.month, parsed.day)
        if candidate < now.date():
            candidate = date(now.year + 1, parsed.month, parsed.day)
    except ValueError:
        return None
    return datetime.combine(candidate, time.min)


def next_weekday(
        target: int,
        *,
        from_day: datetime,
        allow_today: bool,
        force_following_week: bool = False,
) -> datetime:
    """Return the start of the next day with weekday index `target` (1 = Sunday).

    With `force_following_week`, exactly 7 days are added on top of the minimal forward delta
    (today counting as 0), so the result is always 7 to 13 days ahead.
    """

    delta = (target - weekday_index(from_day.date())) % 7
    if force_following_week:
        delta += 7
    elif delta == 0 and not allow_today:
        delta = 7
    return start_of_day(from_day) + timedelta(days=delta)


def resolve_day(label: str, *, now: datetime | None = None) -> datetime | None:
    """Resolve a day label to the start of that local day.

    Strategies, in order: absolute date, natural date with a month name, then the relative and
    weekday vocabulary.

    Returns:
        Start of the resolved day; `None` if no strategy matches.
    """

    now = now or datetime.now()
    value = (label or "").strip().lower()
    if not value:
        return None

    resolved = _parse_absolute(value) or _parse_natural_date(value, now=now)
    if resolved is not None:
        return resolved

    today = start_of_day(now)
    normalized = " ".join(day_tokens(value))
    if normalized in {"next week", "next_week"} or normalized in NEXT_WEEK_PHRASES:
        return today + timedelta(days=7)

    weekday = find_weekday(value)
    if weekday is not None:
        following = has_next_marker(value)
        return next_weekday(
            weekday,
            from_day=now,
            allow_today=not following,
            force_following_week=following,
        )

    if normalized in TODAY_TERMS:
        return today
    if normalized in TOMORROW_TERMS:
        return today + timedelta(days=1)
    return None


def resolve_instant(
        day_label: str | None,
        time_string: str | None,
        *,
        now: datetime | None = None,
) -> datetime | None:
    """Combine an optional day label and an optional "H:MM" time into a local instant.

    Returns:
        The instant, or `None` if the day label matches no strategy or the time is malformed.
    """

    now = now or datetime.now()
    has_day = bool(day_label and day_label.strip())

    if has_day:
        day = resolve_day(day_label or "", now=now)
        if day is None:
            return None
    else:
        day = start_of_day(now)

    if time_string and time_string.strip():
        clock = parse_clock(time_string)
        if clock is None:
            return None
        instant = day.replace(hour=clock[0], minute=clock[1])
    else:
        instant = day

    if not has_day and instant < now:
        instant += timedelta(days=1)
    return instant


def can_parse_time(value: str | None) -> bool:
    """Whether the string could represent a time of day (clock or day-part word)."""

    text = (value or "").strip()
    if not text:
        return False
    return parse_clock(text) is not None or find_day_part(text) is not None


def can_parse_date(value: str | None, *, now: datetime | None = None) -> bool:
    """Whether the string could represent a day."""

    return bool(value and value.strip()) and resolve_day(value or "", now=now) is not None


def calculate_elapsed_time(start_time: str, *, now: datetime | None = None) -> str | None:
    """Elapsed time since a "HH:MM" start today, formatted as "1h 5m" or "12m".

    A start later than `now` is treated as yesterday (the session crossed midnight).
    """

    clock = parse_clock(start_time)
    if clock is None:
        return None
    now = now or datetime.now()
    minutes = (now.hour * 60 + now.minute) - (clock[0] * 60 + clock[1])
    if minutes < 0:
        minutes += 24 * 60
    return format_minutes(minutes)


def format_minutes(minutes: int) -> str:
    hours, rest = divmod(max(0, minutes), 60)
    if hours > 0:
        return f"{hours}h {rest}m"
    return f"{rest}m"
