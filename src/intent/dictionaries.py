"""Multi-locale dictionaries for days, times, currencies, activities and intents.

These mappings are used by the resolver, the normalizer and the rules-based intent model and
should remain small and deterministic. English and Turkish are covered fully; German, French and
Spanish only for weekday names and a few day words.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.intent.schema import Intent

# Weekday index uses 1 = Sunday ... 7 = Saturday.
WEEKDAY_NAMES: tuple[str, ...] = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

WEEKDAY_SYNONYMS: dict[int, tuple[str, ...]] = {
    1: ("sunday", "pazar", "sonntag", "dimanche", "domingo"),
    2: ("monday", "pazartesi", "montag", "lundi", "lunes"),
    3: ("tuesday", "salı", "sali", "dienstag", "mardi", "martes"),
    4: ("wednesday", "çarşamba", "carsamba", "mittwoch", "mercredi", "miércoles", "miercoles"),
    5: ("thursday", "perşembe", "persembe", "donnerstag", "jeudi", "jueves"),
    6: ("friday", "cuma", "freitag", "vendredi", "viernes"),
    7: ("saturday", "cumartesi", "samstag", "samedi", "sábado", "sabado"),
}

WEEKDAY_ABBREVIATIONS: dict[str, int] = {
    "sun": 1,
    "mon": 2,
    "tue": 3,
    "tues": 3,
    "wed": 4,
    "thu": 5,
    "thur": 5,
    "thurs": 5,
    "fri": 6,
    "sat": 7,
}

WEEKDAY_TERM_TO_INDEX: dict[str, int] = {
    term: index for index, terms in WEEKDAY_SYNONYMS.items() for term in terms
}

MONTH_NAMES: tuple[str, ...] = (
    "january", "february", "march", "april", "may", "june", "july", "august", "september",
    "october", "november", "december",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
    "ocak", "şubat", "subat", "mart", "nisan", "mayıs", "mayis", "haziran", "temmuz", "ağustos",
    "agustos", "eylül", "eylul", "ekim", "kasım", "kasim", "aralık", "aralik",
)

NEXT_MARKERS: tuple[str, ...] = ("next", "coming", "haftaya", "gelecek", "önümüzdeki", "onumuzdeki")

TODAY_TERMS: tuple[str, ...] = ("today", "tonight", "bugün", "bugun", "heute", "aujourd'hui", "hoy")
TOMORROW_TERMS: tuple[str, ...] = ("tomorrow", "yarın", "yarin", "morgen", "demain", "mañana", "manana")
NEXT_WEEK_PHRASES: tuple[str, ...] = ("next week", "gelecek hafta", "haftaya", "önümüzdeki hafta")

# Closed vocabulary accepted as a day label on slots and entries.
RELATIVE_DAY_TOKENS: frozenset[str] = frozenset(
    {"today", "tomorrow", "next_week", *WEEKDAY_NAMES}
    | {f"next_{name}" for name in WEEKDAY_NAMES}
    | {f"weekday_{name}" for name in WEEKDAY_NAMES}
)

# Day-part words and the clock time they stand for when a concrete time is required.
DAY_PART_CLOCK: dict[str, str] = {
    "morning": "09:00",
    "sabah": "09:00",
    "dawn": "06:00",
    "şafak": "06:00",
    "noon": "12:00",
    "midday": "12:00",
    "öğle": "12:00",
    "öğlen": "12:00",
    "afternoon": "15:00",
    "öğleden sonra": "15:00",
    "evening": "19:00",
    "tonight": "20:00",
    "akşam": "19:00",
    "aksam": "19:00",
    "night": "21:00",
    "gece": "21:00",
    "midnight": "00:00",
    "gece yarısı": "00:00",
}

_DAY_PART_MATCHES: list[str] = sorted(DAY_PART_CLOCK, key=lambda p: (-len(p), p))

NUMBER_WORDS: dict[str, int] = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "bir": 1,
    "iki": 2,
    "üç": 3,
    "dört": 4,
    "beş": 5,
    "altı": 6,
    "yedi": 7,
    "sekiz": 8,
    "dokuz": 9,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "₺": "TRY",
    "¥": "JPY",
}

CURRENCY_WORDS: dict[str, str] = {
    "dollar": "USD",
    "dollars": "USD",
    "dolar": "USD",
    "usd": "USD",
    "euro": "EUR",
    "euros": "EUR",
    "avro": "EUR",
    "eur": "EUR",
    "pound": "GBP",
    "pounds": "GBP",
    "sterlin": "GBP",
    "gbp": "GBP",
    "lira": "TRY",
    "tl": "TRY",
    "ytl": "TRY",
    "try": "TRY",
    "yen": "JPY",
    "yuan": "CNY",
    "jpy": "JPY",
    "cny": "CNY",
    "cad": "CAD",
    "aud": "AUD",
}

CALORIE_UNITS: tuple[str, ...] = ("kcal", "cal", "calorie", "calories", "kalori")

MOOD_EMOJIS: tuple[str, ...] = ("😢", "😕", "😐", "🙂", "😊")


@dataclass(frozen=True)
class ActivityProfile:
    """Calorie model parameters for one activity family."""

    name: str
    keywords: tuple[str, ...]
    distance_coefficient: float
    met: float


ACTIVITY_PROFILES: tuple[ActivityProfile, ...] = (
    ActivityProfile(
        "run", ("run", "runs", "ran", "running", "jog", "jogged", "jogging", "koşu", "koştum", "kostum"), 1.03, 10.0
    ),
    ActivityProfile("walk", ("walk", "walks", "walked", "walking", "yürüyüş", "yürüdüm", "yuruyus"), 0.5, 3.5),
    ActivityProfile("cycle", ("cycle", "cycled", "cycling", "bike", "biked", "biking", "bisiklet"), 0.35, 7.0),
)
GENERIC_ACTIVITY = ActivityProfile("exercise", (), 0.8, 5.0)

INTENT_SYNONYMS: dict[Intent, tuple[str, ...]] = {
    Intent.work_start: (
        "started working",
        "start work",
        "work begin",
        "clocked in",
        "clock in",
        "işe başladım",
        "çalışmaya başladım",
    ),
    Intent.work_end: (
        "finished working",
        "work done",
        "clocked out",
        "clock out",
        "stop work",
        "işi bitirdim",
        "çalışmayı bitirdim",
    ),
    Intent.reminder: (
        "remind me",
        "remind",
        "remember",
        "don't forget",
        "dont forget",
        "hatırlat",
        "unutma",
    ),
    Intent.event: (
        "meeting",
        "appointment",
        "dinner with",
        "lunch with",
        "call with",
        "party",
        "toplantı",
        "randevu",
        "görüşme",
    ),
    Intent.income: ("got", "received", "earned", "salary", "maaş", "kazandım"),
    Intent.expense: ("spent", "paid", "bought", "harcadım", "ödedim"),
    Intent.activity: ("ran", "run", "walked", "jogged", "cycling", "cycled", "workout", "koştum", "yürüdüm"),
    Intent.meal: ("ate", "eat", "breakfast", "lunch", "dinner", "snack", "yedim", "kahvaltı"),
}


@dataclass(frozen=True)
class IntentMatch:
    """A concrete phrase matched to an intent."""

    intent: Intent
    phrase: str


_INTENT_MATCHES: list[IntentMatch] = sorted(
    (IntentMatch(intent=i, phrase=p) for i, phrases in INTENT_SYNONYMS.items() for p in phrases),
    key=lambda m: (-len(m.phrase), m.phrase),
)

_TOKEN_SPLIT_RE = re.compile(r"[^\w']+")


def day_tokens(text: str) -> list[str]:
    """Split a day label into lowercase word tokens ("next_monday" -> ["next", "monday"])."""

    return [t for t in _TOKEN_SPLIT_RE.split((text or "").lower().replace("_", " ")) if t]


def find_weekday(text: str, *, allow_abbreviations: bool = True) -> int | None:
    """Return the weekday index (1 = Sunday) named in the text, if any.

    Abbreviations ("mon", "sat") are only safe on short day labels; free text ("sat down") must
    pass `allow_abbreviations=False`.
    """

    for token in day_tokens(text):
        if token in WEEKDAY_TERM_TO_INDEX:
            return WEEKDAY_TERM_TO_INDEX[token]
        if allow_abbreviations and token in WEEKDAY_ABBREVIATIONS:
            return WEEKDAY_ABBREVIATIONS[token]
    return None


def has_next_marker(text: str) -> bool:
    return any(t in NEXT_MARKERS for t in day_tokens(text))


def is_relative_day_token(value: str) -> bool:
    return (value or "").strip().lower() in RELATIVE_DAY_TOKENS


def find_day_part(text: str) -> str | None:
    """Return the longest day-part word contained in the text ("öğleden sonra" beats "öğle")."""

    padded = f" {(text or '').lower()} "
    for phrase in _DAY_PART_MATCHES:
        if f" {phrase} " in padded:
            return phrase
    return None


def detect_intent(text: str) -> Intent | None:
    """Detect the intent of a normalized line by its longest matching phrase."""

    padded = f" {text} "
    for match in _INTENT_MATCHES:
        if f" {match.phrase} " in padded:
            return match.intent
    return None


def detect_activity(text: str) -> ActivityProfile | None:
    """Return the activity family named by a token of the text."""

    tokens = set(day_tokens(text))
    for profile in ACTIVITY_PROFILES:
        if tokens.intersection(profile.keywords):
            return profile
    return None
