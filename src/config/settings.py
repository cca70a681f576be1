"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file): notepad timings, parsing defaults and the optional LLM and
Telegram credentials.
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.intent.schema import SUPPORTED_CURRENCIES


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: str | None = Field(default=None, alias="TELEGRAM_BOT_TOKEN")

    throttle_s: float = Field(default=0.3, ge=0, alias="NOTEPAD_THROTTLE_S")
    settle_s: float = Field(default=0.8, ge=0, alias="NOTEPAD_SETTLE_S")
    min_parse_length: int = Field(default=3, ge=1, alias="NOTEPAD_MIN_PARSE_LENGTH")
    confidence_threshold: float = Field(default=0.6, ge=0, le=1, alias="NOTEPAD_CONFIDENCE_THRESHOLD")

    body_weight_kg: float | None = Field(default=70.0, gt=0, alias="BODY_WEIGHT_KG")
    base_currency: str = Field(default="USD", alias="BASE_CURRENCY")
    twelve_hour_clock: bool = Field(default=False, alias="TWELVE_HOUR_CLOCK")

    # Units of each currency per 1 USD, as JSON: {"EUR": 0.92, "TRY": 34.1}.
    currency_rates: dict[str, float] = Field(default_factory=dict, alias="CURRENCY_RATES")
    currency_rates_max_age_h: float | None = Field(default=None, gt=0, alias="CURRENCY_RATES_MAX_AGE_H")

    llm_enabled: bool = Field(default=False, alias="LLM_ENABLED")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("base_currency")
    @classmethod
    def validate_base_currency(cls, value: str) -> str:
        """Base currency must be one of the supported codes (any casing)."""

        code = value.strip().upper()
        if code not in SUPPORTED_CURRENCIES:
            raise ValueError(f"BASE_CURRENCY must be one of {sorted(SUPPORTED_CURRENCIES)}")
        return code

    @field_validator("currency_rates")
    @classmethod
    def validate_currency_rates(cls, value: dict[str, float]) -> dict[str, float]:
        """Rate keys must be supported codes and every rate must be positive."""

        rates = {}
        for code, rate in value.items():
            key = code.strip().upper()
            if key not in SUPPORTED_CURRENCIES:
                raise ValueError(f"CURRENCY_RATES has an unsupported currency: {code!r}")
            if rate <= 0:
                raise ValueError(f"CURRENCY_RATES rate for {key} must be positive")
            rates[key] = rate
        return rates

    @model_validator(mode="after")
    def validate_llm_config(self) -> Settings:
        """Validate the optional LLM model configuration.

        If LLM intent prediction is enabled, an API key must be provided.
        """

        if self.llm_enabled and not self.llm_api_key:
            raise ValueError("LLM_API_KEY is required when LLM_ENABLED=true")
        return self


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
