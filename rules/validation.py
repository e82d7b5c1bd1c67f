"""
Rule Validation

Structural checks for a single rule plus an optional lint for ranges that can
never match. Overlap between rules is allowed; the matcher resolves it by order.
"""

from typing import List, Optional

from stream.schema import InsuranceRule
from .amount import AmountRule
from .base import BaseRule


class ValidationRule(BaseRule):
    """Validates rule completeness and amount format."""

    DEDUCTION_REQUIRED = "Deduction code is required"
    AMOUNT_INVALID = 'Amount must be a number or range (e.g., "65" or "65-65.5")'
    CARRIER_REQUIRED = "Carrier is required"
    COVERAGE_REQUIRED = "Coverage is required"

    RANGE_INVERTED = "Amount range minimum exceeds maximum"

    def __init__(self, amount_rule: Optional[AmountRule] = None):
        self.amount_rule = amount_rule or AmountRule()

    def validate_rule(self, rule: InsuranceRule) -> List[str]:
        """Return every error for the rule, empty when it is valid."""
        errors = []
        if not rule.deduction:
            errors.append(self.DEDUCTION_REQUIRED)
        if not self.amount_rule.is_valid_amount(rule.emp_amount):
            errors.append(self.AMOUNT_INVALID)
        if not rule.carrier:
            errors.append(self.CARRIER_REQUIRED)
        if not rule.coverage:
            errors.append(self.COVERAGE_REQUIRED)
        return errors

    def lint_rule(self, rule: InsuranceRule) -> List[str]:
        """Non-fatal warnings. Never blocks processing."""
        warnings = []
        bounds = self.amount_rule.range_bounds(rule.emp_amount) if rule.emp_amount else None
        if bounds is not None:
            low, high = bounds
            if low > high:
                warnings.append(self.RANGE_INVERTED)
        return warnings
