"""Optional LLM-based intent and slot model (feature-flagged).

The LLM only classifies and extracts: it returns a JSON object shaped like `ModelResult`, which is
validated before use. Day and time values must be labels ("tomorrow", "15:00"); resolution into
instants always happens locally.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from src.intent.schema import ModelResult, SlotSource, model_result_from_obj


class LLMModelError(RuntimeError):
    """Raised when the LLM call fails or returns something that is not JSON."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "gpt-4o-mini"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 15.0


def _load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_notepad_v1.md"
    return prompt_path.read_text(encoding="utf-8")


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


def _context_line(now: datetime) -> str:
    return f"Current date and time: {now:%A, %B %d, %Y at %H:%M}"


def request_slots_json(user_text: str, *, config: LLMConfig, now: datetime | None = None) -> dict[str, Any]:
    """Call an LLM and return the decoded JSON object.

    The call is compatible with OpenAI-style `/v1/chat/completions` APIs.

    Raises:
        LLMModelError: On transport errors or a non-JSON answer.
    """

    payload = {
        "model": config.model,
        "temperature": 0,
        "messages": [
            {"role": "system", "content": _load_prompt()},
            {"role": "user", "content": f"{_context_line(now or datetime.now())}\nUser input: {user_text}"},
        ],
    }

    req = Request(
        _chat_completions_url(config.api_base),
        method="POST",
        headers={
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        },
        data=json.dumps(payload).encode(),
    )

    try:
        with urlopen(req, timeout=config.timeout_s) as resp:  # noqa: S310 (explicit, feature-flagged network call)
            body = resp.read()
    except HTTPError as exc:
        raise LLMModelError(f"LLM HTTP error: {exc.code}") from exc
    except URLError as exc:
        raise LLMModelError("LLM connection error") from exc
    except (TimeoutError, OSError) as exc:
        raise LLMModelError(f"LLM transport error: {exc}") from exc

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise LLMModelError("Unexpected LLM response format") from exc

    try:
        obj = json.loads(_strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise LLMModelError("LLM did not return valid JSON") from exc
    if not isinstance(obj, dict):
        raise LLMModelError("LLM JSON must be an object")
    return obj


def predict(user_text: str, *, config: LLMConfig, now: datetime | None = None) -> ModelResult:
    """Predict intent and slots via the LLM.

    Raises:
        LLMModelError: On transport or format errors.
        pydantic.ValidationError: If the JSON does not match `ModelResult`.
    """

    obj = request_slots_json(user_text, config=config, now=now)
    obj["source"] = SlotSource.model.value
    return model_result_from_obj(obj)


def llm_config_from_env(*, api_key: str | None = None) -> LLMConfig:
    """Build LLM config from environment variables.

    Environment variables (optional):
        - LLM_MODEL
        - LLM_API_BASE
        - LLM_TIMEOUT_S
    """

    key = api_key or os.getenv("LLM_API_KEY") or ""
    if not key:
        raise LLMModelError("LLM_API_KEY is required")

    return LLMConfig(
        api_key=key,
        model=os.getenv("LLM_MODEL") or "gpt-4o-mini",
        api_base=os.getenv("LLM_API_BASE") or "https://api.openai.com/v1",
        timeout_s=float(os.getenv("LLM_TIMEOUT_S") or "15"),
    )
