"""Deterministic arithmetic shortcut for signed lines.

Lines made only of signed quantities ("+200 try - 50 try", "+300 kcal -50", "-coffee") bypass the
intent model entirely. The shortcut fires only when every term is recognized: any leftover word
("+300 kcal -50 and buy milk") means the line is natural language and must go to the model.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from src.intent.dictionaries import (
    CALORIE_UNITS,
    CURRENCY_SYMBOLS,
    CURRENCY_WORDS,
    detect_activity,
)
from src.intent.quantities import (
    NUMBER_PATTERN,
    estimate_activity_calories,
    normalize_currency_code,
    parse_distance,
    to_float,
)
from src.intent.schema import (
    Intent,
    SlotField,
    SlotPrediction,
    SlotSource,
    Variable,
    VariableType,
    item_calories_field,
)

logger = logging.getLogger(__name__)

# Text left after removing every recognized term; anything beyond whitespace disables the shortcut.
RESIDUE_ALLOWED_RE = re.compile(r"\s*")

_SYMBOL_PATTERN = "|".join(re.escape(s) for s in CURRENCY_SYMBOLS)
_WORD_PATTERN = "|".join(sorted(CURRENCY_WORDS, key=len, reverse=True))
_CALORIE_PATTERN = "|".join(sorted(CALORIE_UNITS, key=len, reverse=True))

_TERM_RE = re.compile(r"(?P<sign>[+-])\s*(?P<body>[^+-]*)")
_MONEY_RE = re.compile(
    rf"(?P<sym>{_SYMBOL_PATTERN})\s*(?P<n1>{NUMBER_PATTERN})"
    rf"|(?P<n2>{NUMBER_PATTERN})\s*(?P<cur>{_SYMBOL_PATTERN}|(?:{_WORD_PATTERN})\b)",
    flags=re.IGNORECASE,
)
_CALORIE_RE = re.compile(rf"(?P<n>{NUMBER_PATTERN})\s*(?:{_CALORIE_PATTERN})\b", flags=re.IGNORECASE)
_BARE_RE = re.compile(rf"(?P<n>{NUMBER_PATTERN})")
_DISTANCE_TERM_RE = re.compile(
    rf"(?:{NUMBER_PATTERN})\s*(?:km|mi|miles?)\s+[^\W\d_]+|[^\W\d_]+\s+(?:{NUMBER_PATTERN})\s*(?:km|mi|miles?)",
    flags=re.IGNORECASE,
)
_GRAMS_PREFIX_RE = re.compile(rf"^(?P<n>{NUMBER_PATTERN})\s*(?:g|gr|gram|grams)\s+(?P<rest>.+)$", flags=re.IGNORECASE)


@dataclass(frozen=True)
class _Term:
    kind: str  # "money", "calories", "bare", "activity", "variable"
    value: float
    currency: str | None = None
    variable: Variable | None = None


@dataclass(frozen=True)
class ShortcutResult:
    """Outcome of a fired shortcut: a net quantity and the intent it implies."""

    intent: Intent
    net: float
    currency: str | None = None
    items: tuple[tuple[str, float], ...] = field(default_factory=tuple)
    names: tuple[str, ...] = field(default_factory=tuple)

    @property
    def subject(self) -> str | None:
        if not self.names:
            return None
        delimiter = " + " if self.intent == Intent.meal else ", "
        return delimiter.join(name.title() for name in self.names)

    def slots(self) -> list[SlotPrediction]:
        """Slot predictions shown for the line (pattern source, full confidence)."""

        slots = [
            SlotPrediction(
                field=SlotField.intent,
                value=self.intent.label,
                raw_value=self.intent.value,
                confidence=1.0,
                source=SlotSource.pattern,
            )
        ]
        if self.subject:
            slots.append(
                SlotPrediction(field=SlotField.subject, value=self.subject, confidence=1.0)
            )

        if self.intent == Intent.meal:
            slots.append(
                SlotPrediction(
                    field=SlotField.calories,
                    value=f"{self.net:+.0f} kcal",
                    raw_value=f"{self.net:g}",
                    confidence=1.0,
                )
            )
            for name, calories in self.items:
                slots.append(
                    SlotPrediction(
                        field=item_calories_field(name.title()),
                        value=f"{calories:.0f} kcal",
                        raw_value=f"{calories:g}",
                        confidence=1.0,
                    )
                )
            return slots

        amount_ok = self.net != 0
        slots.append(
            SlotPrediction(
                field=SlotField.amount,
                value=f"{self.net:+.2f} {self.currency}",
                raw_value=f"{abs(self.net):.2f}",
                is_valid=amount_ok,
                error_message=None if amount_ok else "Amount cannot be zero",
                confidence=1.0,
            )
        )
        slots.append(SlotPrediction(field=SlotField.currency, value=self.currency or "", confidence=1.0))
        return slots


def _find_variable(body: str, variables: dict[str, Variable]) -> tuple[Variable, float | None] | None:
    grams: float | None = None
    name = " ".join(body.lower().split())
    match = _GRAMS_PREFIX_RE.match(name)
    if match and match.group("rest") in variables:
        grams = to_float(match.group("n"))
        name = match.group("rest")
    variable = variables.get(name)
    if variable is None:
        return None
    return variable, grams


def _classify_term(
        body: str,
        *,
        variables: dict[str, Variable],
        weight_kg: float | None,
) -> _Term | None:
    found = _find_variable(body, variables)
    if found is not None:
        variable, grams = found
        if variable.type == VariableType.meal:
            calories = variable.calories or 0.0
            if grams is not None and variable.grams:
                calories *= grams / variable.grams
            return _Term(kind="variable", value=calories, variable=variable)
        # The operator in the line decides direction, not the variable type.
        amount = abs(variable.amount or 0.0)
        return _Term(kind="variable", value=amount, currency=variable.currency, variable=variable)

    match = _MONEY_RE.fullmatch(body)
    if match:
        number = match.group("n1") or match.group("n2")
        currency = normalize_currency_code(match.group("sym") or match.group("cur"))
        if currency is None:
            return None
        return _Term(kind="money", value=to_float(number), currency=currency)

    match = _CALORIE_RE.fullmatch(body)
    if match:
        return _Term(kind="calories", value=to_float(match.group("n")))

    if _DISTANCE_TERM_RE.fullmatch(body):
        activity = detect_activity(body)
        if activity is None:
            return None
        burned = estimate_activity_calories(
            weight_kg=weight_kg,
            distance_km=parse_distance(body),
            activity=activity,
        )
        if burned is None:
            return None
        return _Term(kind="activity", value=burned)

    match = _BARE_RE.fullmatch(body)
    if match:
        return _Term(kind="bare", value=to_float(match.group("n")))
    return None


def _split_terms(text: str) -> list[tuple[str, str]] | None:
    value = text.strip()
    if not value:
        return None
    prepared = value if value[0] in "+-" else f"+{value}"

    terms: list[tuple[str, str]] = []
    consumed = 0
    for match in _TERM_RE.finditer(prepared):
        gap = prepared[consumed:match.start()]
        if not RESIDUE_ALLOWED_RE.fullmatch(gap):
            return None
        body = match.group("body").strip()
        if not body:
            return None
        terms.append((match.group("sign"), body))
        consumed = match.end()
    if not terms or not RESIDUE_ALLOWED_RE.fullmatch(prepared[consumed:]):
        return None
    return terms


def evaluate_shortcut(
        text: str,
        *,
        variables: Iterable[Variable] = (),
        base_currency: str = "USD",
        weight_kg: float | None = None,
) -> ShortcutResult | None:
    """Evaluate a line made only of signed quantities.

    Money lines need one shared currency across every term and resolve to income (net > 0) or
    expense (net < 0, amount reported unsigned by the entry). Calorie lines (a calorie unit, a meal
    variable or an activity term present, no currency) resolve to a meal with the net calories;
    activity terms burn calories, so "+ 5km run" subtracts.

    Returns:
        The result, or `None` if the line is not a pure arithmetic line.
    """

    if "+" not in text and "-" not in text:
        return None

    terms = _split_terms(text)
    if terms is None:
        return None

    by_name = {v.name: v for v in variables}
    classified: list[tuple[str, _Term]] = []
    for sign, body in terms:
        term = _classify_term(body, variables=by_name, weight_kg=weight_kg)
        if term is None:
            return None
        classified.append((sign, term))

    kinds = {t.kind for _, t in classified}
    meal_vars = [t for _, t in classified if t.variable is not None and t.variable.type == VariableType.meal]
    money_vars = [t for _, t in classified if t.variable is not None and t.variable.type != VariableType.meal]
    is_calorie_line = bool(kinds & {"calories", "activity"} or meal_vars)
    names = tuple(t.variable.name for _, t in classified if t.variable is not None)

    if is_calorie_line:
        if "money" in kinds or money_vars:
            return None
        net = 0.0
        items: list[tuple[str, float]] = []
        for sign, term in classified:
            # Burned calories count against intake.
            value = -term.value if term.kind == "activity" else term.value
            net += -value if sign == "-" else value
            if term.variable is not None:
                items.append((term.variable.name, term.value))
        logger.debug("shortcut fired kind=calories terms=%d", len(classified))
        return ShortcutResult(intent=Intent.meal, net=net, items=tuple(items), names=names)

    if "bare" in kinds or not (kinds & {"money", "variable"}):
        return None

    currencies = {t.currency or base_currency for _, t in classified}
    if len(currencies) != 1:
        return None

    net = sum(-t.value if sign == "-" else t.value for sign, t in classified)
    logger.debug("shortcut fired kind=money terms=%d", len(classified))
    return ShortcutResult(
        intent=Intent.income if net > 0 else Intent.expense,
        net=net,
        currency=currencies.pop(),
        names=names,
    )
