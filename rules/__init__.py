"""
Enrichment Rules Package

This package contains the rule logic for the deduction enrichment service.
Each rule class handles a specific aspect of the matching:

- AmountRule: Parses amounts and ranges, converts bi-weekly to monthly
- ValidationRule: Checks a rule's required fields and amount format
- MatchingRule: Picks the first rule covering a deduction code and amount
- BaseRule: Column names, constants and helper methods
- RuleSet: The ordered rule table and its add/remove/edit operations

Usage:
    from rules import MatchingRule, RuleSet

    matcher = MatchingRule()
    rule = matcher.find_rule(RuleSet.default().rules, "2400", 65.0)
"""

from .base import BaseRule
from .amount import AmountRule
from .validation import ValidationRule
from .matching import MatchingRule
from .defaults import DEFAULT_RULES
from .ruleset import RuleSet, EDITABLE_FIELDS

__all__ = [
    'BaseRule',
    'AmountRule',
    'ValidationRule',
    'MatchingRule',
    'DEFAULT_RULES',
    'RuleSet',
    'EDITABLE_FIELDS',
]
