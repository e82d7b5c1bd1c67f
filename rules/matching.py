from typing import Optional, Sequence

from stream.schema import InsuranceRule
from .amount import AmountRule
from .base import BaseRule


class MatchingRule(BaseRule):
    """Finds the rule that applies to a deduction code and monthly amount."""

    def __init__(self, amount_rule: Optional[AmountRule] = None):
        self.amount_rule = amount_rule or AmountRule()

    def find_rule_index(
        self,
        rules: Sequence[InsuranceRule],
        deduction_code: str,
        monthly_amount: Optional[float],
    ) -> Optional[int]:
        """
        Ordered linear scan; the first rule with the same deduction code whose
        amount covers monthly_amount wins. Table order decides between overlaps.
        """
        if monthly_amount is None:
            return None

        for index, rule in enumerate(rules):
            if rule.deduction == deduction_code and self.amount_rule.is_within_range(monthly_amount, rule.emp_amount):
                return index
        return None

    def find_rule(
        self,
        rules: Sequence[InsuranceRule],
        deduction_code: str,
        monthly_amount: Optional[float],
    ) -> Optional[InsuranceRule]:
        index = self.find_rule_index(rules, deduction_code, monthly_amount)
        return rules[index] if index is not None else None
