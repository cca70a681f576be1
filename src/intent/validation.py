"""Slot value validation.

Validation never raises: each check returns a `Verdict` carrying a user-facing message when the
value is rejected. Handlers attach verdicts to slot predictions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from src.intent.dates import can_parse_date, can_parse_time, parse_clock
from src.intent.dictionaries import is_relative_day_token
from src.intent.quantities import extract_first_number
from src.intent.schema import SUPPORTED_CURRENCIES

LOW_CONFIDENCE_MESSAGE = "Low confidence prediction"

_HH_MM_RE = re.compile(r"^\d{1,2}:\d{2}$")


@dataclass(frozen=True)
class Verdict:
    """Validity flag plus a user-facing message for rejected values."""

    is_valid: bool
    message: str | None = None


VALID = Verdict(is_valid=True)


def is_valid_time(value: str | None) -> bool:
    """Valid iff "HH:MM" in range, or the string is a feasible natural time ("evening")."""

    text = (value or "").strip()
    if _HH_MM_RE.fullmatch(text):
        return parse_clock(text) is not None
    return can_parse_time(text)


def is_valid_day(value: str | None, *, now: datetime | None = None) -> bool:
    """Valid iff a closed relative/weekday token or a resolvable absolute/natural date."""

    text = (value or "").strip()
    if not text:
        return False
    return is_relative_day_token(text) or can_parse_date(text, now=now)


def is_valid_currency(value: str | None) -> bool:
    """Valid iff the upper-cased code is supported ("try" and "TRY" are equivalent)."""

    return (value or "").strip().upper() in SUPPORTED_CURRENCIES


def is_valid_positive_number(value: float | None, *, minimum: float = 0.0) -> bool:
    return value is not None and value > minimum


def is_valid_amount(value: float | None) -> bool:
    return value is not None and value != 0


def check_time(value: str | None) -> Verdict:
    if is_valid_time(value):
        return VALID
    return Verdict(is_valid=False, message="Invalid time format")


def check_day(value: str | None, *, now: datetime | None = None) -> Verdict:
    if is_valid_day(value, now=now):
        return VALID
    return Verdict(is_valid=False, message="Invalid date format")


def check_currency(value: str | None) -> Verdict:
    if is_valid_currency(value):
        return VALID
    return Verdict(is_valid=False, message="Unsupported currency")


def check_amount(value: str | float | None) -> Verdict:
    """Check an amount given as a number or as display text ("-12.50 EUR")."""

    number = extract_first_number(value) if isinstance(value, str) else value
    if number is None:
        return Verdict(is_valid=False, message="Amount not found")
    if not is_valid_amount(number):
        return Verdict(is_valid=False, message="Amount cannot be zero")
    return VALID


def check_positive(value: float | None, *, label: str, minimum: float = 0.0) -> Verdict:
    if is_valid_positive_number(value, minimum=minimum):
        return VALID
    return Verdict(is_valid=False, message=f"{label} must be greater than {minimum:g}")


def check_confidence(confidence: float | None, *, threshold: float) -> Verdict:
    """Reject guesses whose confidence is known and below the threshold."""

    if confidence is not None and confidence < threshold:
        return Verdict(is_valid=False, message=LOW_CONFIDENCE_MESSAGE)
    return VALID
