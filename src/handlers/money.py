"""Expense and income slot assembly."""

from __future__ import annotations

import logging

from src.handlers.base import (
    HandlerContext,
    guess_number,
    guess_text,
    intent_slot,
    make_slot,
    passthrough_slots,
    subject_slot,
)
from src.intent.quantities import extract_currency, normalize_currency_code
from src.intent.schema import Guess, Intent, ModelResult, SlotField, SlotPrediction, VariableType
from src.intent.validation import Verdict, check_amount, check_currency
from src.services.rates import convert_amount

logger = logging.getLogger(__name__)


class MoneyHandler:
    """Amount and currency slots; a subject naming a money variable supplies both."""

    def __init__(self, context: HandlerContext) -> None:
        self._context = context

    async def handle(self, result: ModelResult, text: str, line_id: str) -> list[SlotPrediction]:
        ctx = self._context
        threshold = ctx.confidence_threshold
        intent = result.intent or Intent.expense

        slots = [intent_slot(intent, result, threshold=threshold)]
        subject = subject_slot(result, threshold=threshold)
        if subject is not None:
            slots.append(subject)

        amount = guess_number(result.amount)
        currency_text = guess_text(result.currency)
        amount_guess = result.amount

        name = guess_text(result.subject)
        variable = None
        if name:
            variable = ctx.variables.find(name, type=VariableType(intent.value)) or ctx.variables.find(name)
        if variable is not None and variable.amount is not None and variable.type != VariableType.meal:
            amount = variable.amount
            currency_text = variable.currency or currency_text
            amount_guess = None

        currency = (
            normalize_currency_code(currency_text)
            or extract_currency(text)
            or (currency_text.upper() if currency_text else None)
            or ctx.base_currency
        )

        if amount is None:
            slots.append(
                make_slot(
                    SlotField.amount,
                    "Not found",
                    result=result,
                    verdict=Verdict(is_valid=False, message="Amount not found"),
                )
            )
        else:
            slots.append(await self._amount_slot(intent, amount, currency, result, amount_guess))

        slots.append(
            make_slot(
                SlotField.currency,
                currency,
                result=result,
                guess=result.currency,
                verdict=check_currency(currency),
                threshold=threshold,
            )
        )
        slots.extend(passthrough_slots(result, threshold=threshold))
        return slots

    async def _amount_slot(
            self,
            intent: Intent,
            amount: float,
            currency: str,
            result: ModelResult,
            guess: Guess | None,
    ) -> SlotPrediction:
        """Signed amount slot; shown in the base currency when a rate provider is configured.

        The raw value always keeps the typed amount, so the committed entry records what was
        written together with the Currency slot.
        """

        ctx = self._context
        sign = -1 if intent == Intent.expense else 1
        signed = sign * abs(amount)
        raw = f"{abs(amount):.2f}"
        base = ctx.base_currency

        if ctx.rates is None or currency == base or not check_currency(currency).is_valid:
            return make_slot(
                SlotField.amount,
                f"{signed:+.2f} {currency}",
                result=result,
                guess=guess,
                raw_value=raw,
                verdict=check_amount(signed),
                threshold=ctx.confidence_threshold,
            )

        converted = await convert_amount(ctx.rates, abs(amount), source=currency, target=base)
        if converted is None:
            logger.warning("currency conversion failed source=%s target=%s", currency, base)
            return make_slot(
                SlotField.amount,
                f"{signed:+.2f} {currency}",
                result=result,
                guess=guess,
                raw_value=raw,
                verdict=Verdict(is_valid=False, message=f"Failed to convert currency {currency} to {base}"),
            )

        return make_slot(
            SlotField.amount,
            f"{sign * converted:+.2f} {base}",
            result=result,
            guess=guess,
            raw_value=raw,
            verdict=check_amount(sign * converted),
            threshold=ctx.confidence_threshold,
        )
