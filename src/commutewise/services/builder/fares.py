"""Fare input parsing and the automatic discount rule."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal

DISCOUNT_RATIO = 0.8  # discounted riders pay 80% of the base fare


@dataclass(frozen=True, slots=True)
class AmountInput:
    """Outcome of parsing a user-entered amount."""

    kind: Literal["empty", "valid", "invalid"]
    value: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.kind == "valid"


def parse_amount(raw: Any) -> AmountInput:
    """Parse a form value into a non-negative amount.

    Blank strings and None are ``empty``; anything non-numeric, non-finite or
    negative is ``invalid`` (the offending number is kept in ``value``).
    """
    if raw is None:
        return AmountInput("empty")
    if isinstance(raw, bool):
        return AmountInput("invalid")
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return AmountInput("empty")
        try:
            number = float(text)
        except ValueError:
            return AmountInput("invalid")
    elif isinstance(raw, (int, float)):
        number = float(raw)
    else:
        return AmountInput("invalid")

    if not math.isfinite(number) or number < 0:
        return AmountInput("invalid", number if math.isfinite(number) else 0.0)
    return AmountInput("valid", number)


def clamp_fare(raw: Any) -> float:
    """Base fare input never fails: blank or garbage becomes 0, negatives clamp to 0."""
    parsed = parse_amount(raw)
    if parsed.is_valid:
        return parsed.value
    return 0.0


def calculate_discount(fare: float) -> float:
    if not math.isfinite(fare) or fare <= 0:
        return 0.0
    return round(fare * DISCOUNT_RATIO, 2)
