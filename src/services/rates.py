"""Exchange-rate service.

`RateProvider` is what the money handler converts non-base amounts through. `InMemoryRates` holds
USD-based rates (units of each currency per 1 USD) loaded at startup, optionally expiring after a
maximum age.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Protocol

logger = logging.getLogger(__name__)

RATE_BASE = "USD"


class RateProvider(Protocol):
    async def rate(self, source: str, target: str) -> float | None: ...


async def convert_amount(provider: RateProvider, amount: float, *, source: str, target: str) -> float | None:
    """Convert `amount` from `source` to `target`.

    Returns:
        The converted amount, or `None` when no rate is available.
    """

    rate = await provider.rate(source, target)
    if rate is None:
        return None
    return amount * rate


class InMemoryRates:
    """USD-based rate table with an optional maximum age."""

    def __init__(
            self,
            rates: Mapping[str, float] | None = None,
            *,
            max_age: timedelta | None = None,
            clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._rates: dict[str, float] = {}
        self._loaded_at: datetime | None = None
        self._max_age = max_age
        self._clock = clock
        if rates:
            self.load(rates)

    def load(self, rates: Mapping[str, float]) -> None:
        """Replace the table.

        Raises:
            ValueError: If a rate is not positive.
        """

        table = {RATE_BASE: 1.0}
        for code, value in rates.items():
            if value <= 0:
                raise ValueError(f"rate for {code} must be positive")
            table[code.strip().upper()] = float(value)
        self._rates = table
        self._loaded_at = self._clock()
        logger.info("rates loaded currencies=%d", len(table))

    @property
    def is_fresh(self) -> bool:
        if self._loaded_at is None:
            return False
        if self._max_age is None:
            return True
        return self._clock() - self._loaded_at < self._max_age

    async def rate(self, source: str, target: str) -> float | None:
        src, dst = source.strip().upper(), target.strip().upper()
        if src == dst:
            return 1.0
        if not self.is_fresh:
            logger.warning("rates unavailable or expired source=%s target=%s", src, dst)
            return None

        from_rate = self._rates.get(src)
        to_rate = self._rates.get(dst)
        if from_rate is None or to_rate is None:
            logger.warning("no rate source=%s target=%s", src, dst)
            return None
        return to_rate / from_rate
