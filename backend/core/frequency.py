"""Normalize frequency-tagged amounts onto a monthly or annual basis."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable

from backend.config import WEEKS_PER_MONTH


class Frequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value: Any) -> "Frequency":
        """Read a stored frequency string; anything unrecognised is monthly."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        return _ALIASES.get(text, cls.MONTHLY)


_ALIASES = {
    "weekly": Frequency.WEEKLY,
    "monthly": Frequency.MONTHLY,
    "quarterly": Frequency.QUARTERLY,
    "annual": Frequency.ANNUAL,
    "annually": Frequency.ANNUAL,
    "yearly": Frequency.ANNUAL,
}

# weekly uses 4.33 weeks a month, an approximation of 52/12 (~4.333) that
# biases weekly totals about 0.08% low.
PERIODS_PER_YEAR = {
    Frequency.WEEKLY: WEEKS_PER_MONTH * 12,
    Frequency.MONTHLY: 12.0,
    Frequency.QUARTERLY: 4.0,
    Frequency.ANNUAL: 1.0,
}


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Return value as a finite float, or default when it is missing or malformed."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def annual_equivalent(amount: Any, frequency: Any) -> float:
    return coerce_number(amount) * PERIODS_PER_YEAR[Frequency.parse(frequency)]


def monthly_equivalent(amount: Any, frequency: Any) -> float:
    return annual_equivalent(amount, frequency) / 12


def occurrences_per_year(frequency: Any) -> float:
    """How many times a recurring amount lands in one year."""
    return PERIODS_PER_YEAR[Frequency.parse(frequency)]


def normalize(records: Iterable[Any]) -> float:
    """Sum records carrying ``amount`` and ``frequency`` as a monthly total.

    Records may be mappings (raw rows) or objects with those attributes.
    """
    total = 0.0
    for record in records:
        if isinstance(record, dict):
            amount, frequency = record.get("amount"), record.get("frequency")
        else:
            amount = getattr(record, "amount", None)
            frequency = getattr(record, "frequency", None)
        total += monthly_equivalent(amount, frequency)
    return total
