"""
Row transformation and batch processing for payroll deduction CSV data
"""
import logging
from typing import List, Optional, Sequence, Tuple

from .schema import BatchResult, CsvRecord, InsuranceRule, RowIssue, RuleFailure, RuleWarning, TransformedRow
from rules import AmountRule, BaseRule, MatchingRule, ValidationRule

logger = logging.getLogger(__name__)


class RowTransformer:
    """Turns one payroll deduction row into an enriched output row"""

    def __init__(self, amount_rule: Optional[AmountRule] = None, matching_rule: Optional[MatchingRule] = None):
        self.amount_rule = amount_rule or AmountRule()
        self.matching_rule = matching_rule or MatchingRule(amount_rule=self.amount_rule)

    def transform(self, row: CsvRecord, rules: Sequence[InsuranceRule]) -> TransformedRow:
        """
        Replace the bi-weekly amount with the monthly one (same position, two
        decimals), then fill the insurance columns from the first matching rule.
        Matching uses the amount as written to the output, not the raw product.
        """
        pairs: List[Tuple[str, str]] = []
        monthly_text = None

        for key, value in row.items():
            if key == BaseRule.BI_WEEKLY_AMOUNT:
                monthly_text = self._monthly_text(value)
                pairs.append((BaseRule.MONTHLY_AMOUNT, monthly_text))
            else:
                pairs.append((key, value))

        if monthly_text is None:
            status = "missing"
            monthly_amount = None
        else:
            monthly_amount = self.amount_rule.parse_amount(monthly_text)
            status = "ok" if monthly_amount is not None else "unparseable"

        rule_index = self.matching_rule.find_rule_index(rules, row.get(BaseRule.DEDUCTION, ""), monthly_amount)
        if rule_index is not None:
            rule = rules[rule_index]
            for column, attr in BaseRule.INSURANCE_FIELDS.items():
                pairs.append((column, getattr(rule, attr)))

        return TransformedRow(
            record=CsvRecord.from_pairs(pairs),
            amount_status=status,
            monthly_amount=monthly_amount,
            rule_index=rule_index,
        )

    def _monthly_text(self, bi_weekly_text: str) -> str:
        bi_weekly = self.amount_rule.parse_amount(bi_weekly_text)
        if bi_weekly is None:
            return self.amount_rule.format_amount(None)
        return self.amount_rule.format_amount(self.amount_rule.convert_bi_weekly_to_monthly(bi_weekly))


class BatchProcessor:
    """Validates the rule table, then enriches every row in input order"""

    SUCCESS_MESSAGE = "Processed {count} rows of data. Bi-weekly amounts were converted to monthly for matching."

    def __init__(self, row_transformer: Optional[RowTransformer] = None, validation_rule: Optional[ValidationRule] = None):
        self.row_transformer = row_transformer or RowTransformer()
        self.validation_rule = validation_rule or ValidationRule(amount_rule=self.row_transformer.amount_rule)

    def validate_rules(self, rules: Sequence[InsuranceRule]) -> List[RuleFailure]:
        failures = []
        for index, rule in enumerate(rules):
            errors = self.validation_rule.validate_rule(rule)
            if errors:
                failures.append(RuleFailure(index=index, position=index + 1, errors=errors))
        return failures

    def lint_rules(self, rules: Sequence[InsuranceRule]) -> List[RuleWarning]:
        warnings = []
        for index, rule in enumerate(rules):
            found = self.validation_rule.lint_rule(rule)
            if found:
                warnings.append(RuleWarning(index=index, position=index + 1, warnings=found))
        return warnings

    @staticmethod
    def format_failures(failures: Sequence[RuleFailure]) -> str:
        lines = [f"Rule {f.position}: {', '.join(f.errors)}" for f in failures]
        return "Validation errors:\n" + "\n".join(lines)

    def process_all(self, rows: Sequence[CsvRecord], rules: Sequence[InsuranceRule]) -> BatchResult:
        """
        All-or-nothing on rules: any invalid rule refuses the whole batch and no
        rows are produced. Lenient on rows: an unparseable amount is reported as
        a row issue and the row is still emitted.
        """
        rules = tuple(rules)

        failures = self.validate_rules(rules)
        if failures:
            message = self.format_failures(failures)
            logger.warning("Rule validation failed for %d of %d rules", len(failures), len(rules))
            return BatchResult(ok=False, failures=failures, message=message)

        output: List[CsvRecord] = []
        issues: List[RowIssue] = []
        matched = 0

        for index, row in enumerate(rows):
            result = self.row_transformer.transform(row, rules)
            output.append(result.record)
            if result.matched:
                matched += 1
            if result.amount_status != "ok":
                issues.append(self._amount_issue(index, row, result.amount_status))

        if issues:
            logger.warning("%d rows have an unparseable bi-weekly amount", len(issues))
        logger.info("Processed %d rows: %d matched, %d unmatched", len(output), matched, len(output) - matched)

        return BatchResult(
            ok=True,
            rows=output,
            row_issues=issues,
            warnings=self.lint_rules(rules),
            matched=matched,
            unmatched=len(output) - matched,
            message=self.SUCCESS_MESSAGE.format(count=len(output)),
        )

    def _amount_issue(self, index: int, row: CsvRecord, status: str) -> RowIssue:
        value = row.get(BaseRule.BI_WEEKLY_AMOUNT, None)
        if status == "missing":
            message = f"Row {index + 1}: no '{BaseRule.BI_WEEKLY_AMOUNT}' column"
        else:
            message = f"Row {index + 1}: bi-weekly amount '{value}' is not a number"
        return RowIssue(
            row_index=index,
            row_number=index + 1,
            column=BaseRule.BI_WEEKLY_AMOUNT,
            value=value,
            message=message,
        )
