"""Rules-based intent and slot model (baseline).

This model is intentionally deterministic:
    - the intent comes from the longest matching keyword phrase, or from the quantities in the line
      (a calorie amount, a money amount, a distance) when no phrase matches;
    - day and time guesses are emitted as labels for the resolver ("tomorrow", "next_friday",
      "15:00"), never as resolved instants;
    - the subject is what remains after removing recognized tokens and filler words.

Input is expected to be time-normalized already ("3pm" -> "15:00").
"""

from __future__ import annotations

import re

from src.intent.dictionaries import (
    CALORIE_UNITS,
    CURRENCY_WORDS,
    INTENT_SYNONYMS,
    MONTH_NAMES,
    MOOD_EMOJIS,
    NEXT_MARKERS,
    NEXT_WEEK_PHRASES,
    TODAY_TERMS,
    TOMORROW_TERMS,
    WEEKDAY_NAMES,
    WEEKDAY_TERM_TO_INDEX,
    detect_activity,
    detect_intent,
    find_day_part,
    find_weekday,
    has_next_marker,
)
from src.intent.normalize import normalize_text
from src.intent.quantities import (
    NUMBER_PATTERN,
    extract_currency,
    extract_grams,
    extract_money,
    parse_distance,
    parse_duration,
    to_float,
)
from src.intent.schema import Guess, Intent, ModelResult, SlotSource


class RulesModelError(ValueError):
    """Raised when the rules model is given unusable input."""


PHRASE_CONFIDENCE = 0.9
QUANTITY_CONFIDENCE = 0.75
DEFAULT_SLOT_CONFIDENCE = 0.95
SUBJECT_CONFIDENCE = 0.8

_MONTH_PATTERN = "|".join(sorted(MONTH_NAMES, key=len, reverse=True))

_ABSOLUTE_DAY_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_NATURAL_DAY_RE = re.compile(
    rf"\b(?:\d{{1,2}}\s+(?:{_MONTH_PATTERN})|(?:{_MONTH_PATTERN})\s+\d{{1,2}}(?:st|nd|rd|th)?)(?:,?\s+\d{{4}})?\b"
)
_CLOCK_RE = re.compile(r"\b(?:[01]?\d|2[0-3]):[0-5]\d\b")
_CALORIES_RE = re.compile(
    rf"(?P<sign>[+-])?\s*(?P<n>{NUMBER_PATTERN})\s*(?:{'|'.join(sorted(CALORIE_UNITS, key=len, reverse=True))})\b"
)
_BARE_NUMBER_RE = re.compile(rf"(?<![\d:.,-])(?P<n>{NUMBER_PATTERN})(?![\d:.,]|\s*(?:g|kg|km|min|h)\b)")
_URL_RE = re.compile(r"https?://\S+", flags=re.IGNORECASE)
_LOCATION_RE = re.compile(r"(?:\bat|@)\s+(?P<loc>[A-ZÇĞİÖŞÜ][\w'&-]*(?:\s+[A-ZÇĞİÖŞÜ][\w'&-]*)*)")
_UNIT_WORDS = (
    *CALORIE_UNITS, *CURRENCY_WORDS, "kg", "g", "gr", "gram", "grams", "oz", "lb", "lbs", "km", "mi", "mile",
    "miles", "meters", "min", "mins", "minute", "minutes", "hour", "hours", "hr", "hrs", "h", "saat", "dakika", "dk",
)
_QUANTITY_TOKEN_RE = re.compile(
    rf"[+-]?\s*(?:[$€£₺¥]\s*)?{NUMBER_PATTERN}\s*(?:[$€£₺¥]|(?:{'|'.join(sorted(_UNIT_WORDS, key=len, reverse=True))})\b)?"
)

_FILLER_WORDS: frozenset[str] = frozenset(
    {
        "at", "on", "in", "to", "me", "the", "a", "an", "for", "i", "my", "of", "and", "this",
        "by", "from", "until", "about", "will", "i'll", "i'm", "was", "week", "hafta", "saat", "de",
        "da", "ile", "için", "bu",
        "remind", "remember", "forget", "don't", "dont", "ate", "eat", "spent", "paid", "bought",
        "got", "received", "earned", "yedim", "harcadım", "ödedim", "hatırlat", "unutma",
        "kcal", "cal", "calorie", "calories", "kalori",
        *NEXT_MARKERS, *TODAY_TERMS, *TOMORROW_TERMS, *WEEKDAY_TERM_TO_INDEX,
    }
)


def _guess(value: str | float, confidence: float = DEFAULT_SLOT_CONFIDENCE) -> Guess:
    return Guess(value=value, confidence=confidence)


def _detect_day(text: str) -> tuple[str, str] | None:
    """Return `(day_label, matched_span)` for the first day expression in normalized text."""

    match = _ABSOLUTE_DAY_RE.search(text)
    if match:
        return match.group(0), match.group(0)

    match = _NATURAL_DAY_RE.search(text)
    if match:
        return match.group(0), match.group(0)

    padded = f" {text} "
    for phrase in NEXT_WEEK_PHRASES:
        if f" {phrase} " in padded and find_weekday(text, allow_abbreviations=False) is None:
            return "next_week", phrase

    weekday = find_weekday(text, allow_abbreviations=False)
    if weekday is not None:
        name = WEEKDAY_NAMES[weekday - 1]
        if has_next_marker(text):
            return f"next_{name}", name
        return name, name

    tokens = text.split()
    if any(t in TOMORROW_TERMS for t in tokens):
        return "tomorrow", "tomorrow"
    if any(t in TODAY_TERMS for t in tokens):
        return "today", "today"
    return None


def _detect_time(text: str) -> str | None:
    match = _CLOCK_RE.search(text)
    if match:
        return match.group(0)
    return find_day_part(text)


def _detect_calories(text: str) -> float | None:
    match = _CALORIES_RE.search(text)
    if not match:
        return None
    value = to_float(match.group("n"))
    return -value if match.group("sign") == "-" else value


def _detect_amount(text: str) -> float | None:
    """Return the money amount: a currency-tagged number, else a lone bare number."""

    money = extract_money(text)
    if money is not None:
        return money[0]

    without_times = _CLOCK_RE.sub(" ", _ABSOLUTE_DAY_RE.sub(" ", text))
    numbers = [m.group("n") for m in _BARE_NUMBER_RE.finditer(without_times)]
    if len(numbers) == 1:
        return to_float(numbers[0])
    return None


def _intent_from_quantities(text: str, raw: str) -> Intent | None:
    if _detect_calories(text) is not None:
        return Intent.calorie_adjustment if raw.lstrip().startswith(("+", "-")) else Intent.meal
    if parse_distance(text) is not None and detect_activity(text) is not None:
        return Intent.activity
    if extract_money(text) is not None:
        return Intent.expense
    if _detect_day(text) is not None or _CLOCK_RE.search(text):
        return Intent.reminder
    return None


def _extract_subject(text: str, *, remove: list[str], intent: Intent | None) -> str | None:
    value = f" {text} "
    for span in sorted((s for s in remove if s), key=len, reverse=True):
        value = value.replace(f" {span} ", " ")

    if intent is not None:
        for phrase in INTENT_SYNONYMS.get(intent, ()):
            # Multi-word triggers ("remind me", "clocked in") carry no subject.
            if " " in phrase:
                value = value.replace(f" {phrase} ", " ")

    value = _URL_RE.sub(" ", value)
    value = _QUANTITY_TOKEN_RE.sub(" ", value)
    words = [w for w in value.split() if w not in _FILLER_WORDS]
    while words and words[-1] in {"+", "-"}:
        words.pop()
    while words and words[0] in {"+", "-"}:
        words.pop(0)
    if not words:
        return None
    subject = " ".join(words)
    return subject[:1].upper() + subject[1:]


def predict(text: str) -> ModelResult:
    """Predict an intent and typed slot guesses for one line.

    Raises:
        RulesModelError: If the text is empty.
    """

    raw = (text or "").strip()
    if not raw:
        raise RulesModelError("Empty text")

    for emoji in MOOD_EMOJIS:
        if raw.startswith(emoji):
            body = raw[len(emoji):].strip()
            return ModelResult(
                intent=Intent.journal,
                confidence=PHRASE_CONFIDENCE,
                source=SlotSource.pattern,
                mood=_guess(emoji),
                subject=_guess(body, SUBJECT_CONFIDENCE) if body else None,
            )

    norm = normalize_text(raw)
    intent = detect_intent(norm)
    confidence = PHRASE_CONFIDENCE
    if intent is None:
        intent = _intent_from_quantities(norm, raw)
        confidence = QUANTITY_CONFIDENCE
    if intent is None:
        return ModelResult(intent=None, source=SlotSource.pattern)
    if intent == Intent.meal and _detect_calories(norm) is None and extract_money(norm) is not None:
        # "lunch 12 euro" is money spent on a meal, not a meal log.
        intent = Intent.expense

    fields: dict[str, Guess] = {}
    remove: list[str] = []

    day = _detect_day(norm)
    if day is not None:
        label, span = day
        remove.append(span)
        fields["event_day" if intent == Intent.event else "reminder_day"] = _guess(label)

    clock = _detect_time(norm)
    if clock is not None:
        remove.append(clock)
        fields["event_time" if intent == Intent.event else "reminder_time"] = _guess(clock)

    if intent in {Intent.expense, Intent.income}:
        amount = _detect_amount(norm)
        if amount is not None:
            fields["amount"] = _guess(amount)
        money = extract_money(raw)
        currency = money[1] if money is not None else extract_currency(raw)
        if currency is not None:
            fields["currency"] = _guess(currency)

    if intent in {Intent.meal, Intent.calorie_adjustment}:
        calories = _detect_calories(norm)
        if calories is not None:
            fields["calories"] = _guess(calories)
        grams = extract_grams(norm)
        if grams is not None:
            fields["quantity"] = _guess(grams)

    if intent == Intent.activity:
        distance = parse_distance(norm)
        if distance is not None:
            fields["distance"] = _guess(distance)
        duration = parse_duration(norm)
        if duration is not None:
            fields["duration"] = _guess(duration)
        activity = detect_activity(norm)
        if activity is not None:
            fields["subject"] = _guess(activity.name.title(), SUBJECT_CONFIDENCE)

    url = _URL_RE.search(raw)
    if url:
        fields["url"] = _guess(url.group(0))
    location = _LOCATION_RE.search(raw)
    if location:
        fields["location"] = _guess(location.group("loc"), SUBJECT_CONFIDENCE)
        remove.append(normalize_text(location.group("loc")))

    if "subject" not in fields:
        subject = _extract_subject(norm, remove=remove, intent=intent)
        if subject is not None:
            fields["subject"] = _guess(subject, SUBJECT_CONFIDENCE)

    return ModelResult(intent=intent, confidence=confidence, source=SlotSource.pattern, **fields)
