"""Shared handler plumbing: context, protocol and slot helpers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from src.entries.variables import VariableBook
from src.intent.quantities import extract_first_number
from src.intent.schema import Guess, Intent, ModelResult, SlotField, SlotPrediction
from src.intent.validation import VALID, Verdict, check_confidence
from src.services.rates import RateProvider


@dataclass(frozen=True)
class HandlerContext:
    """Services and tunables shared by all handlers."""

    variables: VariableBook = field(default_factory=VariableBook)
    confidence_threshold: float = 0.6
    weight_kg: float | None = 70.0
    base_currency: str = "USD"
    twelve_hour: bool = False
    clock: Callable[[], datetime] = datetime.now
    rates: RateProvider | None = None


class IntentHandler(Protocol):
    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]: ...


def guess_number(guess: Guess | None) -> float | None:
    if guess is None:
        return None
    if isinstance(guess.value, float | int):
        return float(guess.value)
    return extract_first_number(guess.value)


def guess_text(guess: Guess | None) -> str | None:
    if guess is None:
        return None
    text = guess.text.strip()
    return text or None


def make_slot(
        field_name: str,
        value: str,
        *,
        result: ModelResult,
        guess: Guess | None = None,
        raw_value: str | None = None,
        verdict: Verdict = VALID,
        threshold: float = 0.0,
) -> SlotPrediction:
    """Build a slot, rejecting low-confidence guesses before applying `verdict`."""

    confidence = guess.confidence if guess is not None else None
    confident = check_confidence(confidence, threshold=threshold)
    final = confident if not confident.is_valid else verdict
    return SlotPrediction(
        field=field_name,
        value=value,
        raw_value=raw_value,
        is_valid=final.is_valid,
        error_message=final.message,
        confidence=confidence,
        source=result.source,
    )


def intent_slot(intent: Intent, result: ModelResult, *, threshold: float) -> SlotPrediction:
    confidence = check_confidence(result.confidence, threshold=threshold)
    return SlotPrediction(
        field=SlotField.intent,
        value=intent.label,
        raw_value=intent.value,
        is_valid=confidence.is_valid,
        error_message=confidence.message,
        confidence=result.confidence,
        source=result.source,
    )


def subject_slot(
        result: ModelResult,
        *,
        threshold: float,
        value: str | None = None,
) -> SlotPrediction | None:
    text = value or guess_text(result.subject)
    if not text:
        return None
    return make_slot(SlotField.subject, text, result=result, guess=result.subject, threshold=threshold)


def passthrough_slots(result: ModelResult, *, threshold: float) -> list[SlotPrediction]:
    """Location and URL slots, shared by every intent."""

    slots = []
    for field_name, guess in ((SlotField.location, result.location), (SlotField.url, result.url)):
        text = guess_text(guess)
        if text:
            slots.append(make_slot(field_name, text, result=result, guess=guess, threshold=threshold))
    return slots
