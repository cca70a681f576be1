"""Logging configuration for the bot and the CLI."""

from __future__ import annotations

import logging
import os

# Third-party loggers that are chatty at INFO/DEBUG.
NOISY_LOGGERS: tuple[str, ...] = ("aiogram.event", "asyncio", "dateparser", "tzlocal")


def configure_logging(level: str | None = None) -> None:
    """Configure Python logging for the process.

    Line text is user content: log line ids and outcomes, never the text itself at INFO. Calling
    this again replaces the previous configuration.
    """

    log_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        force=True,
    )

    noisy_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
