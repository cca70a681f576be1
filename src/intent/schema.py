"""Notepad entry schema (Pydantic models).

These models are the contract between the intent model (rules/LLM), the per-intent handlers and
the entry converter. Slot predictions may be invalid (that is how the UI explains problems), but a
`ParsedEntry` is always canonical: times are zero-padded "HH:MM", days are "YYYY-MM-DD" or a
closed relative token.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SUPPORTED_CURRENCIES: tuple[str, ...] = ("USD", "EUR", "TRY", "GBP", "JPY", "CNY", "CAD", "AUD")

ITEM_CALORIES_PREFIX = "Calories - "
MEAL_ITEM_DELIMITER = " + "

_CANONICAL_TIME_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")
_ABSOLUTE_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Intent(StrEnum):
    """Closed set of entry intents."""

    reminder = "reminder"
    event = "event"
    expense = "expense"
    income = "income"
    meal = "meal"
    activity = "activity"
    work_start = "work_start"
    work_end = "work_end"
    journal = "journal"
    calorie_adjustment = "calorie_adjustment"

    @property
    def label(self) -> str:
        """Human-facing label ("work_start" -> "Work Start")."""

        return self.value.replace("_", " ").title()


class SlotField(StrEnum):
    """Named slot fields shown to the user for a parsed line."""

    intent = "Intent"
    subject = "Subject"
    reminder_time = "Reminder Time"
    reminder_day = "Reminder Day"
    event_time = "Event Time"
    event_day = "Event Day"
    amount = "Amount"
    currency = "Currency"
    calories = "Calories"
    duration = "Duration"
    distance = "Distance"
    location = "Location"
    url = "URL"
    mood = "Mood"


class SlotSource(StrEnum):
    """Where a slot value came from."""

    pattern = "pattern"
    model = "model"
    manual = "manual"


class LineStatus(StrEnum):
    """Per-line parse status."""

    idle = "idle"
    loading = "loading"
    success = "success"
    error = "error"


class VariableType(StrEnum):
    """Kinds of user-defined variables."""

    meal = "meal"
    expense = "expense"
    income = "income"


def is_item_calories_field(field: str) -> bool:
    """Whether the field is a per-item meal calorie slot (`Calories - <item>`)."""

    return field.startswith(ITEM_CALORIES_PREFIX) and len(field) > len(ITEM_CALORIES_PREFIX)


def item_calories_field(item: str) -> str:
    return f"{ITEM_CALORIES_PREFIX}{item}"


class SlotPrediction(BaseModel):
    """A single named field extracted from a line, with its validity."""

    model_config = ConfigDict(extra="forbid")

    field: str
    value: str
    raw_value: str | None = None
    is_valid: bool = True
    error_message: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    source: SlotSource = SlotSource.pattern

    @field_validator("field")
    @classmethod
    def validate_field(cls, value: str) -> str:
        """Restrict fields to the closed set plus per-item calorie fields."""

        if value in {f.value for f in SlotField} or is_item_calories_field(value):
            return value
        raise ValueError(f"unsupported slot field: {value!r}")

    @model_validator(mode="after")
    def validate_error_message(self) -> SlotPrediction:
        """A valid slot never carries an error message."""

        if self.is_valid and self.error_message is not None:
            raise ValueError("valid slots must not carry an error_message")
        return self


class Guess(BaseModel):
    """A typed slot guess produced by an intent model."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    value: str | float
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @property
    def text(self) -> str:
        return str(self.value)


class ModelResult(BaseModel):
    """Output of an intent/slot model for one line of text."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    intent: Intent | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    source: SlotSource = SlotSource.pattern

    subject: Guess | None = None
    reminder_day: Guess | None = None
    reminder_time: Guess | None = None
    event_day: Guess | None = None
    event_time: Guess | None = None
    amount: Guess | None = None
    currency: Guess | None = None
    calories: Guess | None = None
    duration: Guess | None = None
    distance: Guess | None = None
    quantity: Guess | None = None
    location: Guess | None = None
    url: Guess | None = None
    mood: Guess | None = None

    @field_validator("intent", mode="before")
    @classmethod
    def validate_intent(cls, value: Any) -> Any:
        """Treat "none"/empty labels from models as "no intent"."""

        if isinstance(value, str) and value.strip().lower() in {"", "none", "null"}:
            return None
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ParsedEntry(BaseModel):
    """A committed, canonical entry produced from one line."""

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    intent: Intent
    original_text: str
    created_at: datetime

    subject: str | None = None
    reminder_day: str | None = None
    reminder_time: str | None = None
    event_day: str | None = None
    event_time: str | None = None
    amount: float | None = Field(default=None, ge=0.0)
    currency: str | None = None
    calories: float | None = None
    duration_minutes: float | None = Field(default=None, ge=0.0)
    distance_km: float | None = Field(default=None, ge=0.0)
    location: str | None = None
    url: str | None = None
    mood: str | None = None

    @field_validator("reminder_time", "event_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        """Times must be canonical zero-padded 24-hour "HH:MM"."""

        if value is not None and not _CANONICAL_TIME_RE.fullmatch(value):
            raise ValueError(f"time must be HH:MM, got {value!r}")
        return value

    @field_validator("reminder_day", "event_day")
    @classmethod
    def validate_day(cls, value: str | None) -> str | None:
        """Days must be absolute "YYYY-MM-DD" or a closed relative/weekday token."""

        # Local import: dictionaries depend on this module for the Intent enum.
        from src.intent.dictionaries import is_relative_day_token

        if value is None:
            return value
        if _ABSOLUTE_DAY_RE.fullmatch(value) or is_relative_day_token(value):
            return value
        raise ValueError(f"day must be YYYY-MM-DD or a relative token, got {value!r}")

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, value: str | None) -> str | None:
        if value is not None and value not in SUPPORTED_CURRENCIES:
            raise ValueError(f"unsupported currency: {value!r}")
        return value

    @model_validator(mode="after")
    def validate_amount(self) -> ParsedEntry:
        """Amounts are only meaningful when non-zero."""

        if self.amount is not None and self.amount == 0:
            raise ValueError("amount must be non-zero")
        return self


class Variable(BaseModel):
    """A user-named token usable in arithmetic lines (e.g. "coffee" = 4.5 EUR)."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    type: VariableType
    calories: float | None = None
    grams: float | None = Field(default=None, gt=0.0)
    amount: float | None = None
    currency: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return " ".join(value.lower().split())

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        if value is None:
            return value
        code = value.upper()
        if code not in SUPPORTED_CURRENCIES:
            raise ValueError(f"unsupported currency: {value!r}")
        return code

    @model_validator(mode="after")
    def validate_payload(self) -> Variable:
        """Meal variables carry calories; money variables carry an amount."""

        if self.type == VariableType.meal:
            if self.calories is None:
                raise ValueError("meal variables require calories")
        elif self.amount is None:
            raise ValueError("expense/income variables require an amount")
        return self


class WorkSession(BaseModel):
    """A work interval; open while `end` is None."""

    model_config = ConfigDict(extra="forbid")

    start: datetime
    end: datetime | None = None
    label: str | None = None

    @model_validator(mode="after")
    def validate_range(self) -> WorkSession:
        if self.end is not None and self.end < self.start:
            raise ValueError("end must be >= start")
        return self

    @property
    def is_active(self) -> bool:
        return self.end is None

    def elapsed_minutes(self, now: datetime | None = None) -> int:
        """Elapsed whole minutes (up to `now` for an open session)."""

        until = self.end or now or datetime.now()
        return max(0, int((until - self.start).total_seconds() // 60))


class Override(BaseModel):
    """A manual subject and/or instant chosen by the user for one line."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    subject: str | None = None
    at: datetime | None = None

    @model_validator(mode="after")
    def validate_not_empty(self) -> Override:
        if self.subject is None and self.at is None:
            raise ValueError("override requires a subject or an instant")
        return self


def model_result_from_obj(obj: Any) -> ModelResult:
    """Validate and parse a ModelResult from an arbitrary decoded JSON object."""

    return ModelResult.model_validate(obj)
