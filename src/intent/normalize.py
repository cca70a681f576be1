"""Text normalization for notepad lines.

Two normalizations live here:
    - `normalize_time_phrases` rewrites spoken time expressions into canonical "HH:MM" before any
      model sees the text ("3pm" -> "15:00", "quarter to 8" -> "19:45").
    - `normalize_text` is the conservative tokenization used by the rules-based intent model.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime, timedelta

from src.intent.dictionaries import NUMBER_WORDS

_NUMBER_WORD_PATTERN = "|".join(sorted(NUMBER_WORDS, key=len, reverse=True))
_HOUR_PATTERN = rf"(?:1[0-2]|0?[1-9]|{_NUMBER_WORD_PATTERN})"
_MERIDIEM_PATTERN = r"(?:[ap]\.?m\.?)"

_RELATIVE_EN_RE = re.compile(
    rf"\bin\s+(?P<n>\d{{1,3}}|{_NUMBER_WORD_PATTERN})\s+(?P<unit>hours?|hrs?|minutes?|mins?)\b"
    rf"(?:\s*{_MERIDIEM_PATTERN}(?!\w))?",
    flags=re.IGNORECASE,
)
_RELATIVE_TR_RE = re.compile(
    rf"\b(?P<n>\d{{1,3}}|{_NUMBER_WORD_PATTERN})\s+(?P<unit>saat|dakika)\s+sonra\b"
    rf"(?:\s*{_MERIDIEM_PATTERN}(?!\w))?",
    flags=re.IGNORECASE,
)
_HALF_PAST_RE = re.compile(
    rf"\bhalf\s+past\s+(?P<h>{_HOUR_PATTERN})\b(?:\s*(?P<mer>{_MERIDIEM_PATTERN})(?!\w))?",
    flags=re.IGNORECASE,
)
_QUARTER_PAST_RE = re.compile(
    rf"\bquarter\s+past\s+(?P<h>{_HOUR_PATTERN})\b(?:\s*(?P<mer>{_MERIDIEM_PATTERN})(?!\w))?",
    flags=re.IGNORECASE,
)
_QUARTER_TO_RE = re.compile(
    rf"\bquarter\s+to\s+(?P<h>{_HOUR_PATTERN})\b(?:\s*(?P<mer>{_MERIDIEM_PATTERN})(?!\w))?",
    flags=re.IGNORECASE,
)
_AM_PM_RE = re.compile(
    rf"\b(?P<h>1[0-2]|0?[1-9])(?::(?P<m>[0-5]\d))?\s*(?P<mer>{_MERIDIEM_PATTERN})(?!\w)",
    flags=re.IGNORECASE,
)
_LOOKAHEAD_MERIDIEM_RE = re.compile(r"\b([ap])\.?m\b\.?", flags=re.IGNORECASE)

# Characters after a phrase searched for a detached am/pm marker.
_LOOKAHEAD_WINDOW = 10
# Without a marker, these hours are read as evening ("half past 7" -> 19:30); others as morning.
_DEFAULT_PM_HOURS = range(6, 12)

_NON_WORD_RE = re.compile(r"[^\w\s:.,'+\-$€£₺¥]+")
_MULTISPACE_RE = re.compile(r"\s+")


def _to_int(token: str) -> int:
    value = token.strip().lower()
    if value.isdigit():
        return int(value)
    return NUMBER_WORDS[value]


def _format_clock(hour: int, minute: int) -> str:
    return f"{hour % 24:02d}:{minute:02d}"


def _to_24h(hour: int, *, is_pm: bool) -> int:
    if is_pm:
        return 12 if hour == 12 else hour + 12
    return 0 if hour == 12 else hour


def _meridiem_is_pm(match: re.Match[str], hour: int) -> bool:
    """Decide AM/PM for a spoken phrase: attached marker, nearby marker, else the hour default."""

    attached = match.group("mer")
    if attached:
        return attached.lower().startswith("p")

    window = match.string[match.end(): match.end() + _LOOKAHEAD_WINDOW]
    nearby = _LOOKAHEAD_MERIDIEM_RE.search(window)
    if nearby:
        return nearby.group(1).lower() == "p"
    return hour in _DEFAULT_PM_HOURS


def _replace_relative(now: datetime) -> Callable[[re.Match[str]], str]:
    def replace(match: re.Match[str]) -> str:
        amount = _to_int(match.group("n"))
        unit = match.group("unit").lower()
        if unit.startswith(("h", "saat")):
            target = now + timedelta(hours=amount)
        else:
            target = now + timedelta(minutes=amount)
        return _format_clock(target.hour, target.minute)

    return replace


def _replace_spoken(minute: int, *, hour_offset: int = 0) -> Callable[[re.Match[str]], str]:
    def replace(match: re.Match[str]) -> str:
        hour = _to_int(match.group("h"))
        if hour_offset:
            hour = 12 if hour == 1 else hour + hour_offset
        is_pm = _meridiem_is_pm(match, hour)
        return _format_clock(_to_24h(hour, is_pm=is_pm), minute)

    return replace


def _replace_am_pm(match: re.Match[str]) -> str:
    hour = int(match.group("h")) % 12
    minute = int(match.group("m") or 0)
    if match.group("mer").lower().startswith("p"):
        hour += 12
    return _format_clock(hour, minute)


def normalize_time_phrases(text: str, *, now: datetime | None = None) -> str:
    """Rewrite time expressions in `text` into canonical "HH:MM".

    Rules run once, in this order:
        1. relative offsets ("in 2 hours", "30 dakika sonra") from `now`, swallowing a trailing
           am/pm marker so rule 3 never sees the rewritten clock;
        2. "half past H", "quarter past H", "quarter to H" (AM/PM from an attached or nearby
           marker, else hours 6-11 are PM);
        3. bare "H[:MM] am/pm".

    The output contains no pattern any rule matches, so applying it twice is a no-op.
    """

    if not text:
        return text

    now = now or datetime.now()
    value = _RELATIVE_EN_RE.sub(_replace_relative(now), text)
    value = _RELATIVE_TR_RE.sub(_replace_relative(now), value)
    value = _HALF_PAST_RE.sub(_replace_spoken(30), value)
    value = _QUARTER_PAST_RE.sub(_replace_spoken(15), value)
    value = _QUARTER_TO_RE.sub(_replace_spoken(45, hour_offset=-1), value)
    value = _AM_PM_RE.sub(_replace_am_pm, value)
    return value


def normalize_text(text: str) -> str:
    """Normalize user text for rules-based parsing.

    Normalization is intentionally conservative:
        - Lowercase.
        - Replace punctuation with spaces (keeping clock colons, decimal separators, signs and
          currency symbols).
        - Collapse whitespace.

    The goal is deterministic tokenization, not linguistic lemmatization.
    """

    value = (text or "").strip().lower()

    # Normalize common unicode dashes to ASCII hyphen.
    value = value.replace("—", "-").replace("–", "-")

    # Treat quotes/backticks as separators but preserve the contents.
    value = value.replace("`", " ").replace('"', " ")

    value = _NON_WORD_RE.sub(" ", value)
    value = _MULTISPACE_RE.sub(" ", value).strip()
    return value
