"""Quantity, unit and currency extraction from free text.

All helpers are pure and return `None` when the quantity is absent. Decimal separators may be
either "." or ",".
"""

from __future__ import annotations

import re

from src.intent.dictionaries import (
    CURRENCY_SYMBOLS,
    CURRENCY_WORDS,
    GENERIC_ACTIVITY,
    ActivityProfile,
)
from src.intent.schema import SUPPORTED_CURRENCIES

NUMBER_PATTERN = r"\d+(?:[.,]\d+)?"

GRAMS_PER_UNIT: dict[str, float] = {
    "g": 1.0,
    "gr": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "kg": 1000.0,
    "oz": 28.3495,
    "ounce": 28.3495,
    "ounces": 28.3495,
    "lb": 453.592,
    "lbs": 453.592,
}
LB_PER_KG = 2.20462
KM_PER_MILE = 1.609344
CM_PER_INCH = 2.54
CM_PER_FOOT = 30.48

_FIRST_NUMBER_RE = re.compile(rf"[-+]?{NUMBER_PATTERN}")
_GRAMS_RE = re.compile(
    rf"(?P<n>{NUMBER_PATTERN})\s*(?P<unit>kg|grams|gram|gr|g|ounces|ounce|oz|lbs|lb)\b",
    flags=re.IGNORECASE,
)
_WEIGHT_RE = re.compile(
    rf"(?P<n>{NUMBER_PATTERN})\s*(?P<unit>kgs?|kilograms?|kilos?|lbs?|pounds?)?\b",
    flags=re.IGNORECASE,
)
_FEET_INCHES_RE = re.compile(
    rf"(?P<ft>\d+)\s*(?:'|feet|foot|ft)\s*(?:(?P<inch>{NUMBER_PATTERN})\s*(?:\"|inches|inch|in)?)?",
    flags=re.IGNORECASE,
)
_METRIC_HEIGHT_RE = re.compile(
    rf"(?P<n>{NUMBER_PATTERN})\s*(?P<unit>cm|m)?\b",
    flags=re.IGNORECASE,
)
_DISTANCE_RE = re.compile(
    rf"(?P<n>{NUMBER_PATTERN})\s*(?P<unit>km|kilometers?|kilometres?|mi|miles?|meters?|metres?)\b",
    flags=re.IGNORECASE,
)
_DURATION_RE = re.compile(
    rf"(?P<n>{NUMBER_PATTERN})\s*(?P<unit>hours?|hrs?|h|saat|minutes?|mins?|min|dakika|dk)\b",
    flags=re.IGNORECASE,
)

_CURRENCY_WORD_PATTERN = "|".join(sorted(CURRENCY_WORDS, key=len, reverse=True))
_CURRENCY_SYMBOL_PATTERN = "|".join(re.escape(s) for s in CURRENCY_SYMBOLS)
# Currency words only count next to a number ("I'll try" is not Turkish lira).
_CURRENCY_WORD_RE = re.compile(
    rf"(?:{NUMBER_PATTERN})\s*(?P<after>{_CURRENCY_WORD_PATTERN})\b"
    rf"|\b(?P<before>{_CURRENCY_WORD_PATTERN})\s*(?:{NUMBER_PATTERN})",
    flags=re.IGNORECASE,
)
_CURRENCY_SYMBOL_RE = re.compile(_CURRENCY_SYMBOL_PATTERN)
_MONEY_RE = re.compile(
    rf"(?P<sym1>{_CURRENCY_SYMBOL_PATTERN})\s*(?P<n1>{NUMBER_PATTERN})"
    rf"|(?<![\d:.,])(?P<n2>{NUMBER_PATTERN})\s*(?:(?P<sym2>{_CURRENCY_SYMBOL_PATTERN})|(?P<word2>{_CURRENCY_WORD_PATTERN})\b)"
    rf"|\b(?P<word3>{_CURRENCY_WORD_PATTERN})\s*(?P<n3>{NUMBER_PATTERN})",
    flags=re.IGNORECASE,
)


def to_float(value: str) -> float:
    """Parse a number that may use "," as decimal separator."""

    return float(value.replace(",", "."))


def extract_first_number(text: str | None) -> float | None:
    """Return the first (optionally signed) number in the text."""

    match = _FIRST_NUMBER_RE.search(text or "")
    if not match:
        return None
    return to_float(match.group(0))


def extract_grams(text: str | None) -> float | None:
    """Return a mass quantity converted to grams ("200g", "1.5 kg", "8 oz")."""

    match = _GRAMS_RE.search(text or "")
    if not match:
        return None
    return to_float(match.group("n")) * GRAMS_PER_UNIT[match.group("unit").lower()]


def parse_weight(text: str | None) -> float | None:
    """Return a body weight in kilograms; a bare number is read as kilograms."""

    match = _WEIGHT_RE.search(text or "")
    if not match:
        return None
    value = to_float(match.group("n"))
    unit = (match.group("unit") or "kg").lower()
    if unit.startswith(("lb", "pound")):
        value /= LB_PER_KG
    return value


def parse_height(text: str | None) -> float | None:
    """Return a height in centimeters.

    A feet-and-inches form (`5'11"`, "5 ft 11 in") is tried first, then "180 cm" / "1.8 m"; a bare
    number is read as centimeters.
    """

    value = text or ""
    match = _FEET_INCHES_RE.search(value)
    if match:
        inches = to_float(match.group("inch")) if match.group("inch") else 0.0
        return int(match.group("ft")) * CM_PER_FOOT + inches * CM_PER_INCH

    match = _METRIC_HEIGHT_RE.search(value)
    if not match:
        return None
    number = to_float(match.group("n"))
    if (match.group("unit") or "").lower() == "m":
        return number * 100
    return number


def parse_distance(text: str | None) -> float | None:
    """Return a distance in kilometers ("5km", "3 miles", "800 meters")."""

    match = _DISTANCE_RE.search(text or "")
    if not match:
        return None
    value = to_float(match.group("n"))
    unit = match.group("unit").lower()
    if unit.startswith("mi"):
        return value * KM_PER_MILE
    if unit.startswith("met"):
        return value / 1000
    return value


def parse_duration(text: str | None) -> float | None:
    """Return a duration in minutes; all parts are summed ("1h 30min" -> 90)."""

    total = None
    for match in _DURATION_RE.finditer(text or ""):
        value = to_float(match.group("n"))
        unit = match.group("unit").lower()
        if unit.startswith(("h", "saat")):
            value *= 60
        total = (total or 0.0) + value
    return total


def normalize_currency_code(value: str | None) -> str | None:
    """Map a symbol, word or code to a supported ISO code ("$" -> "USD", "tl" -> "TRY")."""

    token = (value or "").strip()
    if not token:
        return None
    if token in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[token]
    code = CURRENCY_WORDS.get(token.lower(), token.upper())
    if code in SUPPORTED_CURRENCIES:
        return code
    return None


def extract_currency(text: str | None) -> str | None:
    """Detect the currency of an amount: symbols first, then words/codes next to a number."""

    value = text or ""
    match = _CURRENCY_SYMBOL_RE.search(value)
    if match:
        return CURRENCY_SYMBOLS[match.group(0)]

    match = _CURRENCY_WORD_RE.search(value)
    if match:
        return normalize_currency_code(match.group("after") or match.group("before"))
    return None


def extract_money(text: str | None) -> tuple[float, str] | None:
    """Return `(amount, currency)` for the first currency-tagged number ("12 euro", "$4.50")."""

    for match in _MONEY_RE.finditer(text or ""):
        number = match.group("n1") or match.group("n2") or match.group("n3")
        token = match.group("sym1") or match.group("sym2") or match.group("word2") or match.group("word3")
        currency = normalize_currency_code(token)
        if currency is not None:
            return to_float(number), currency
    return None


def estimate_activity_calories(
        *,
        weight_kg: float | None,
        distance_km: float | None = None,
        duration_minutes: float | None = None,
        activity: ActivityProfile | None = None,
) -> float | None:
    """Estimate calories burned by an activity.

    The distance formula (`distance * weight * coefficient`) is preferred; otherwise the MET
    formula (`weight * MET * hours`) is used.

    Returns:
        Calories, or `None` without a positive weight and a positive distance or duration.
    """

    if not weight_kg or weight_kg <= 0:
        return None

    profile = activity or GENERIC_ACTIVITY
    if distance_km and distance_km > 0:
        return distance_km * weight_kg * profile.distance_coefficient
    if duration_minutes and duration_minutes > 0:
        return weight_kg * profile.met * (duration_minutes / 60)
    return None
