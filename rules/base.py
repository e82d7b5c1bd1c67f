"""
Base Rule Class

This module provides the foundation for all enrichment rule classes.
Contains the well-known column names, pay-period constants and shared helpers.
"""

import math
from typing import Optional


class BaseRule:
    """Base class for all enrichment rules with common helper methods and constants."""

    # Columns the engine reads
    DEDUCTION = "Deduction"
    BI_WEEKLY_AMOUNT = "Empe Amt/Pct"

    # Replaces BI_WEEKLY_AMOUNT in place on output
    MONTHLY_AMOUNT = "Empe Amt/Pct Montly"

    # Health insurance columns populated from the matching rule
    CARRIER = "Hlth Ins Carrie"
    COVERAGE = "Hlth Ins Cvrage"
    LEVEL = "Hlth Ins Level"
    PLAN = "Hlth Ins Plan"

    INSURANCE_FIELDS = {
        CARRIER: "carrier",
        COVERAGE: "coverage",
        LEVEL: "level",
        PLAN: "plan",
    }

    PAY_PERIODS_PER_YEAR = 26
    MONTHS_PER_YEAR = 12

    def _num(self, text: Optional[str]) -> Optional[float]:
        """Parse a plain decimal string. None when it is not a finite number."""
        if text is None:
            return None
        text = str(text)
        if "_" in text:
            return None
        try:
            val = float(text)
        except (TypeError, ValueError):
            return None
        return val if math.isfinite(val) else None
