"""Tests for the per-intent slot handlers and the registry."""

from __future__ import annotations

from datetime import datetime

import pytest

from src.handlers.activity import ActivityHandler
from src.handlers.base import HandlerContext
from src.handlers.event import DEFAULT_TIME, MISSING_TIME_MESSAGE, EventHandler
from src.handlers.meal import MealHandler
from src.handlers.money import MoneyHandler
from src.handlers.registry import default_registry
from src.handlers.simple import CalorieAdjustmentHandler, DefaultHandler, JournalHandler, WorkSessionHandler
from src.entries.variables import VariableBook
from src.intent.schema import Guess, Intent, ModelResult, SlotField, SlotPrediction, Variable, VariableType
from src.intent.validation import LOW_CONFIDENCE_MESSAGE
from src.services.rates import InMemoryRates

NOW = datetime(2025, 11, 26, 10, 0)


def _context(**kwargs) -> HandlerContext:
    return HandlerContext(clock=lambda: NOW, **kwargs)


def _g(value: str | float, confidence: float = 0.95) -> Guess:
    return Guess(value=value, confidence=confidence)


def _by_field(slots: list[SlotPrediction]) -> dict[str, SlotPrediction]:
    return {s.field: s for s in slots}


@pytest.mark.asyncio
async def test_event_handler_day_and_time() -> None:
    result = ModelResult(
        intent=Intent.event,
        confidence=0.9,
        subject=_g("Meeting"),
        event_day=_g("tomorrow"),
        event_time=_g("15:00"),
    )
    slots = _by_field(await EventHandler(_context()).handle(result, "Meeting tomorrow at 15:00", "l1"))

    assert slots[SlotField.intent].value == "Event"
    assert slots[SlotField.event_time].value == "15:00"
    assert slots[SlotField.event_day].value == "Tomorrow"
    assert slots[SlotField.event_day].raw_value == "tomorrow"
    assert all(s.is_valid for s in slots.values())


@pytest.mark.asyncio
async def test_event_handler_defaults_to_noon_when_only_day() -> None:
    result = ModelResult(intent=Intent.reminder, confidence=0.9, reminder_day=_g("friday"))
    slots = _by_field(await EventHandler(_context()).handle(result, "dentist friday", "l1"))
    assert slots[SlotField.reminder_time].raw_value == DEFAULT_TIME


@pytest.mark.asyncio
async def test_event_without_day_or_time_is_flagged() -> None:
    result = ModelResult(intent=Intent.event, confidence=0.9, subject=_g("Party"))
    slots = _by_field(await EventHandler(_context()).handle(result, "party", "l1"))
    assert not slots[SlotField.event_time].is_valid
    assert slots[SlotField.event_time].error_message == MISSING_TIME_MESSAGE


@pytest.mark.asyncio
async def test_event_handler_rejects_bad_day_and_low_confidence() -> None:
    result = ModelResult(
        intent=Intent.reminder,
        confidence=0.9,
        reminder_day=_g("someday"),
        reminder_time=_g("15:00", confidence=0.3),
    )
    slots = _by_field(await EventHandler(_context()).handle(result, "x", "l1"))
    assert slots[SlotField.reminder_day].error_message == "Invalid date format"
    assert slots[SlotField.reminder_time].error_message == LOW_CONFIDENCE_MESSAGE


@pytest.mark.asyncio
async def test_twelve_hour_display() -> None:
    result = ModelResult(intent=Intent.event, confidence=0.9, event_time=_g("15:00"))
    slots = _by_field(await EventHandler(_context(twelve_hour=True)).handle(result, "x", "l1"))
    assert slots[SlotField.event_time].value == "3:00 PM"
    assert slots[SlotField.event_time].raw_value == "15:00"


@pytest.mark.asyncio
async def test_money_handler_signs_amount() -> None:
    result = ModelResult(intent=Intent.expense, confidence=0.9, amount=_g(12.0), currency=_g("EUR"))
    slots = _by_field(await MoneyHandler(_context()).handle(result, "lunch 12 euro", "l1"))
    assert slots[SlotField.amount].value == "-12.00 EUR"
    assert slots[SlotField.amount].raw_value == "12.00"
    assert slots[SlotField.currency].value == "EUR"


@pytest.mark.asyncio
async def test_money_handler_uses_variable_and_base_currency() -> None:
    variables = VariableBook([Variable(name="rent", type=VariableType.expense, amount=900)])
    result = ModelResult(intent=Intent.expense, confidence=0.9, subject=_g("Rent"))
    slots = _by_field(await MoneyHandler(_context(variables=variables, base_currency="GBP")).handle(result, "rent", "l1"))
    assert slots[SlotField.amount].value == "-900.00 GBP"
    assert slots[SlotField.currency].is_valid


@pytest.mark.asyncio
async def test_money_handler_converts_to_base_currency() -> None:
    rates = InMemoryRates({"EUR": 0.5, "TRY": 40.0})
    expense = ModelResult(intent=Intent.expense, confidence=0.9, amount=_g(12.0), currency=_g("EUR"))
    slots = _by_field(await MoneyHandler(_context(rates=rates)).handle(expense, "lunch 12 euro", "l1"))
    assert slots[SlotField.amount].value == "-24.00 USD"
    assert slots[SlotField.amount].raw_value == "12.00"
    assert slots[SlotField.currency].value == "EUR"

    income = ModelResult(intent=Intent.income, confidence=0.9, amount=_g(200.0), currency=_g("TRY"))
    slots = _by_field(await MoneyHandler(_context(rates=rates)).handle(income, "got 200 lira", "l1"))
    assert slots[SlotField.amount].value == "+5.00 USD"


@pytest.mark.asyncio
async def test_money_handler_flags_missing_rate() -> None:
    result = ModelResult(intent=Intent.expense, confidence=0.9, amount=_g(1000.0), currency=_g("JPY"))
    slots = _by_field(await MoneyHandler(_context(rates=InMemoryRates({"EUR": 0.5}))).handle(result, "sushi 1000 yen", "l1"))
    assert slots[SlotField.amount].value == "-1000.00 JPY"
    assert not slots[SlotField.amount].is_valid
    assert slots[SlotField.amount].error_message == "Failed to convert currency JPY to USD"

@pytest.mark.asyncio
async def test_money_handler_missing_amount() -> None:
    result = ModelResult(intent=Intent.income, confidence=0.9, subject=_g("Bonus"))
    slots = _by_field(await MoneyHandler(_context()).handle(result, "got a bonus", "l1"))
    assert not slots[SlotField.amount].is_valid
    assert slots[SlotField.amount].error_message == "Amount not found"


@pytest.mark.asyncio
async def test_meal_handler_scales_variable_by_grams() -> None:
    variables = VariableBook([Variable(name="oats", type=VariableType.meal, calories=380, grams=100)])
    result = ModelResult(intent=Intent.meal, confidence=0.9, subject=_g("Oats"), quantity=_g(50.0))
    slots = _by_field(await MealHandler(_context(variables=variables)).handle(result, "50g oats", "l1"))
    assert slots[SlotField.calories].value == "190 kcal"


@pytest.mark.asyncio
async def test_meal_handler_multi_item() -> None:
    variables = VariableBook(
        [
            Variable(name="pizza", type=VariableType.meal, calories=800),
            Variable(name="apple", type=VariableType.meal, calories=95),
        ]
    )
    result = ModelResult(intent=Intent.meal, confidence=0.9, subject=_g("Pizza + Apple + Tea"))
    slots = _by_field(await MealHandler(_context(variables=variables)).handle(result, "pizza + apple + tea", "l1"))
    assert slots["Calories - Pizza"].value == "800 kcal"
    assert slots["Calories - Apple"].value == "95 kcal"
    assert "Calories - Tea" not in slots
    assert slots[SlotField.calories].raw_value == "895"


@pytest.mark.asyncio
async def test_activity_handler_estimates_burn() -> None:
    result = ModelResult(intent=Intent.activity, confidence=0.9, subject=_g("Run"), distance=_g(5.0))
    slots = _by_field(await ActivityHandler(_context(weight_kg=70)).handle(result, "ran 5km", "l1"))
    assert slots[SlotField.distance].value == "5.00 km"
    assert slots[SlotField.calories].raw_value == "360.5"


@pytest.mark.asyncio
async def test_activity_handler_needs_distance_or_duration() -> None:
    result = ModelResult(intent=Intent.activity, confidence=0.9, subject=_g("Workout"))
    slots = _by_field(await ActivityHandler(_context()).handle(result, "workout", "l1"))
    assert not slots[SlotField.duration].is_valid


@pytest.mark.asyncio
async def test_work_session_handler_defaults_to_now() -> None:
    result = ModelResult(intent=Intent.work_start, confidence=0.9)
    slots = _by_field(await WorkSessionHandler(_context()).handle(result, "started working", "l1"))
    assert slots[SlotField.intent].value == "Work Start"
    assert slots[SlotField.event_time].raw_value == "10:00"


@pytest.mark.asyncio
async def test_journal_and_calorie_adjustment() -> None:
    journal = ModelResult(intent=Intent.journal, confidence=0.9, mood=_g("🙂"), subject=_g("fine day"))
    slots = _by_field(await JournalHandler(_context()).handle(journal, "🙂 fine day", "l1"))
    assert slots[SlotField.subject].value == "🙂 fine day"
    assert slots[SlotField.mood].value == "🙂"

    adjustment = ModelResult(intent=Intent.calorie_adjustment, confidence=0.9, calories=_g(-150.0))
    slots = _by_field(await CalorieAdjustmentHandler(_context()).handle(adjustment, "-150 kcal", "l1"))
    assert slots[SlotField.calories].value == "-150 kcal"


@pytest.mark.asyncio
async def test_default_handler_without_intent_produces_nothing() -> None:
    assert await DefaultHandler(_context()).handle(ModelResult(), "hello", "l1") == []


def test_registry_covers_every_intent() -> None:
    registry = default_registry(_context())
    assert isinstance(registry.resolve(Intent.event), EventHandler)
    assert isinstance(registry.resolve(Intent.reminder), EventHandler)
    assert isinstance(registry.resolve(Intent.income), MoneyHandler)
    assert isinstance(registry.resolve(Intent.meal), MealHandler)
    assert isinstance(registry.resolve(Intent.activity), ActivityHandler)
    assert isinstance(registry.resolve(Intent.work_end), WorkSessionHandler)
    assert isinstance(registry.resolve(Intent.journal), JournalHandler)
    assert isinstance(registry.resolve(Intent.calorie_adjustment), CalorieAdjustmentHandler)
    assert isinstance(registry.resolve(None), DefaultHandler)
