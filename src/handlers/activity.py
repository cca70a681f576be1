"""Activity slot assembly with a calories-burned estimate."""

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
from src.intent.dictionaries import detect_activity
from src.intent.quantities import estimate_activity_calories, parse_distance, parse_duration
from src.intent.schema import Intent, ModelResult, SlotField, SlotPrediction
from src.intent.validation import Verdict, check_positive


class ActivityHandler:
    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        ctx = self._context
        threshold = ctx.confidence_threshold
        slots = [intent_slot(Intent.activity, result, threshold=threshold)]

        profile = detect_activity(f"{guess_text(result.subject) or ''} {text}")
        subject = subject_slot(result, threshold=threshold, value=profile.name.title() if profile else None)
        if subject is not None:
            slots.append(subject)

        distance = guess_number(result.distance) or parse_distance(text)
        duration = guess_number(result.duration) or parse_duration(text)

        if distance is None and duration is None:
            slots.append(
                make_slot(
                    SlotField.duration,
                    "Not found",
                    result=result,
                    verdict=Verdict(is_valid=False, message="Specify a distance or duration"),
                )
            )
            return slots

        if duration is not None:
            slots.append(
                make_slot(
                    SlotField.duration,
                    f"{duration:g} min",
                    result=result,
                    guess=result.duration,
                    raw_value=f"{duration:g}",
                    verdict=check_positive(duration, label="Duration"),
                    threshold=threshold,
                )
            )
        if distance is not None:
            slots.append(
                make_slot(
                    SlotField.distance,
                    f"{distance:.2f} km",
                    result=result,
                    guess=result.distance,
                    raw_value=f"{distance:g}",
                    verdict=check_positive(distance, label="Distance"),
                    threshold=threshold,
                )
            )

        burned = estimate_activity_calories(
            weight_kg=ctx.weight_kg,
            distance_km=distance,
            duration_minutes=duration,
            activity=profile,
        )
        if burned is not None:
            slots.append(
                make_slot(
                    SlotField.calories,
                    f"{burned:.0f} kcal",
                    result=result,
                    raw_value=f"{burned:g}",
                )
            )

        slots.extend(passthrough_slots(result, threshold=threshold))
        return slots
