"""Meal slot assembly."""

from __future__ import annotations

from src.handlers.base import (
    HandlerContext,
    guess_number,
    guess_text,
    intent_slot,
    make_slot,
    passthrough_slots,
    subject_slot,
)
from src.intent.quantities import extract_grams
from src.intent.schema import (
    MEAL_ITEM_DELIMITER,
    Intent,
    ModelResult,
    SlotField,
    SlotPrediction,
    Variable,
    VariableType,
    item_calories_field,
)
from src.intent.validation import check_positive


def _scaled_calories(variable: Variable, grams: float | None) -> float | None:
    if variable.calories is None:
        return None
    if grams is not None and variable.grams:
        return variable.calories * grams / variable.grams
    return variable.calories


def _split_items(subject: str) -> list[str]:
    return [item.strip() for item in subject.split(MEAL_ITEM_DELIMITER.strip()) if item.strip()]


class MealHandler:
    """Calorie slots for meals.

    Calories come from the line itself ("pizza 800 kcal") or from meal variables; a multi-item
    subject ("Pizza + Apple") gets one `Calories - <item>` slot per known item.
    """

    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        ctx = self._context
        threshold = ctx.confidence_threshold
        slots = [intent_slot(Intent.meal, result, threshold=threshold)]

        subject_text = guess_text(result.subject)
        items = _split_items(subject_text) if subject_text else []
        subject = subject_slot(result, threshold=threshold, value=MEAL_ITEM_DELIMITER.join(items))
        if subject is not None:
            slots.append(subject)

        grams = guess_number(result.quantity) or extract_grams(text)
        calories = guess_number(result.calories)

        if len(items) > 1:
            found: list[float] = []
            for item in items:
                variable = ctx.variables.find(item, type=VariableType.meal)
                item_calories = _scaled_calories(variable, None) if variable is not None else None
                if item_calories is None:
                    continue
                found.append(item_calories)
                slots.append(
                    make_slot(
                        item_calories_field(item),
                        f"{item_calories:.0f} kcal",
                        result=result,
                        raw_value=f"{item_calories:g}",
                    )
                )
            if calories is None and found:
                calories = sum(found)
        elif calories is None and items:
            variable = ctx.variables.find(items[0], type=VariableType.meal)
            if variable is not None:
                calories = _scaled_calories(variable, grams)

        if calories is not None:
            slots.append(
                make_slot(
                    SlotField.calories,
                    f"{calories:.0f} kcal",
                    result=result,
                    guess=result.calories,
                    raw_value=f"{calories:g}",
                    verdict=check_positive(calories, label="Calories"),
                    threshold=threshold,
                )
            )

        slots.extend(passthrough_slots(result, threshold=threshold))
        return slots
