"""
Amount Rules

This module contains the logic for contribution amounts:
- Parsing single values ("65") and inclusive ranges ("65-65.5")
- Amount format validation
- Range matching
- Bi-weekly to monthly conversion and two-decimal formatting
"""

import math
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Optional, Tuple

from .base import BaseRule


class AmountRule(BaseRule):
    """Handles amount parsing, range matching and pay-period conversion."""

    RANGE_SEPARATOR = "-"
    NOT_A_NUMBER = "NaN"

    def parse_amount(self, text: Optional[str]) -> Optional[float]:
        """Parse a single amount. None when unparseable."""
        return self._num(text)

    def range_bounds(self, text: str) -> Optional[Tuple[float, float]]:
        """Split a "min-max" range into its bounds, in the order written."""
        parts = str(text).split(self.RANGE_SEPARATOR)
        if len(parts) != 2:
            return None
        low, high = self._num(parts[0]), self._num(parts[1])
        if low is None or high is None:
            return None
        return low, high

    def is_valid_amount(self, text: str) -> bool:
        """Empty, a single number, or exactly two numbers joined by one hyphen."""
        if not text:
            return True
        if self._num(text) is not None:
            return True
        return self.range_bounds(text) is not None

    def is_within_range(self, value: float, rule_amount: str) -> bool:
        """
        Without a hyphen the amount is an exact value; with one it is an inclusive
        min-max range. Bounds are never reordered, so a range written max-min
        matches nothing, and a hyphenated single value ("-3", "1e-05") never matches.
        """
        rule_amount = rule_amount or ""
        if self.RANGE_SEPARATOR not in rule_amount:
            return value == self._num(rule_amount)

        bounds = self.range_bounds(rule_amount)
        if bounds is None:
            return False
        low, high = bounds
        return low <= value <= high

    def convert_bi_weekly_to_monthly(self, amount: float) -> float:
        """26 pay periods over 12 months. Not rounded."""
        return amount * (self.PAY_PERIODS_PER_YEAR / self.MONTHS_PER_YEAR)

    def format_amount(self, value: Optional[float]) -> str:
        """Two decimals, halves rounded away from zero."""
        if value is None or not math.isfinite(value):
            return self.NOT_A_NUMBER
        if value == 0:
            # -0.0 renders as 0.00
            value = 0.0
        with localcontext() as ctx:
            # wide enough for any finite double
            ctx.prec = 400
            return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
