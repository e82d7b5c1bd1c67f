"""
Rule table

An ordered, immutable table of insurance rules. Every change returns a new
RuleSet; only the edited rule is re-validated, and each rule keeps its own
error list so removing one never disturbs the others.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from stream.errors import RuleEditError, RuleIndexError
from stream.schema import InsuranceRule, RuleEntry
from .defaults import DEFAULT_RULES
from .validation import ValidationRule

EDITABLE_FIELDS = tuple(InsuranceRule.model_fields)

_validation_rule = ValidationRule()


class RuleSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    entries: Tuple[RuleEntry, ...] = ()

    @classmethod
    def from_rules(cls, rules: Iterable[InsuranceRule]) -> "RuleSet":
        return cls(entries=tuple(RuleEntry(rule=rule) for rule in rules))

    @classmethod
    def default(cls) -> "RuleSet":
        return cls.from_rules(DEFAULT_RULES)

    @property
    def rules(self) -> Tuple[InsuranceRule, ...]:
        return tuple(entry.rule for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.entries):
            raise RuleIndexError(index, len(self.entries))

    def add_rule(self, rule: Optional[InsuranceRule] = None) -> "RuleSet":
        """Append a rule, blank (level "1") when none is given."""
        entry = RuleEntry(rule=rule or InsuranceRule())
        return RuleSet(entries=self.entries + (entry,))

    def remove_rule(self, index: int) -> "RuleSet":
        self._check_index(index)
        return RuleSet(entries=self.entries[:index] + self.entries[index + 1:])

    def edit_rule(self, index: int, field: str, value: str) -> Tuple["RuleSet", List[str]]:
        """Set one field on one rule and re-validate that rule only."""
        self._check_index(index)
        if field not in EDITABLE_FIELDS:
            raise RuleEditError(
                f"Unknown rule field '{field}'",
                details={"field": field, "allowed": list(EDITABLE_FIELDS)},
            )

        rule = self.entries[index].rule.model_copy(update={field: str(value)})
        errors = _validation_rule.validate_rule(rule)
        entries = list(self.entries)
        entries[index] = RuleEntry(rule=rule, errors=tuple(errors))
        return RuleSet(entries=tuple(entries)), errors

    def errors_for(self, index: int) -> List[str]:
        self._check_index(index)
        return list(self.entries[index].errors)

    def validation_errors(self) -> Dict[int, List[str]]:
        """Recorded edit errors by 0-based rule index."""
        return {i: list(entry.errors) for i, entry in enumerate(self.entries) if entry.errors}
