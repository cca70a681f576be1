"""Intent model orchestration (LLM optional; rules-based fallback)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from src.intent import llm_model, rules_model
from src.intent.llm_model import LLMModelError, llm_config_from_env
from src.intent.rules_model import RulesModelError
from src.intent.schema import ModelResult

logger = logging.getLogger(__name__)


class IntentModelError(ValueError):
    """Raised when no model can produce a result for the text."""


ParseSource = Literal["llm", "rules"]


@dataclass(frozen=True)
class ParseResult:
    """Model output plus information about which model produced it."""

    result: ModelResult
    source: ParseSource


def predict_with_source(
        text: str,
        *,
        llm_enabled: bool,
        llm_api_key: str | None = None,
        now: datetime | None = None,
) -> ParseResult:
    """Predict intent and slots for one line.

    Strategy:
        1) If LLM mode is enabled, ask the LLM for slot JSON and validate it.
        2) On any failure/invalid JSON, fall back to the deterministic rules model.
        3) If the rules model fails too, raise `IntentModelError`.
    """

    if llm_enabled:
        try:
            cfg = llm_config_from_env(api_key=llm_api_key)
            return ParseResult(result=llm_model.predict(text, config=cfg, now=now), source="llm")
        except (LLMModelError, ValueError) as exc:
            # Invalid LLM output (pydantic errors are ValueErrors) must never crash the pipeline.
            logger.warning("llm model failed, falling back to rules reason=%s", exc)

    try:
        return ParseResult(result=rules_model.predict(text), source="rules")
    except RulesModelError as exc:
        raise IntentModelError(str(exc)) from exc


def predict(
        text: str,
        *,
        llm_enabled: bool = False,
        llm_api_key: str | None = None,
        now: datetime | None = None,
) -> ModelResult:
    """Predict a validated ModelResult (convenience wrapper)."""

    return predict_with_source(text, llm_enabled=llm_enabled, llm_api_key=llm_api_key, now=now).result
