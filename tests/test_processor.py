from rules import DEFAULT_RULES
from stream.processor import BatchProcessor, RowTransformer
from stream.schema import CsvRecord, InsuranceRule

transformer = RowTransformer()
processor = BatchProcessor()

INSURANCE_COLUMNS = ["Hlth Ins Carrie", "Hlth Ins Cvrage", "Hlth Ins Level", "Hlth Ins Plan"]


def _row(deduction, amount, **extra):
    data = {"SSN": "123-45-6789", "Empe Amt/Pct": amount, "Deduction": deduction}
    data.update({column: "" for column in INSURANCE_COLUMNS})
    data.update(extra)
    return CsvRecord.from_dict(data)


def test_amount_column_renamed_in_place():
    out = transformer.transform(_row("2400", "300"), DEFAULT_RULES).record
    assert out.columns == ("SSN", "Empe Amt/Pct Montly", "Deduction", *INSURANCE_COLUMNS)
    assert out.get("Empe Amt/Pct Montly") == "650.00"
    assert not out.has("Empe Amt/Pct")
    assert out.get("SSN") == "123-45-6789"


def test_unmatched_row_keeps_insurance_fields():
    row = _row("2400", "150", **{"Hlth Ins Plan": "KEEP"})
    result = transformer.transform(row, DEFAULT_RULES)
    assert result.record.get("Empe Amt/Pct Montly") == "325.00"
    assert not result.matched
    assert result.record.get("Hlth Ins Carrie") == ""
    assert result.record.get("Hlth Ins Plan") == "KEEP"


def test_matched_row_gets_insurance_fields():
    result = transformer.transform(_row("2400", "30"), DEFAULT_RULES)
    out = result.record
    assert result.rule_index == 0
    assert out.get("Empe Amt/Pct Montly") == "65.00"
    assert [out.get(c) for c in INSURANCE_COLUMNS] == ["AETN", "1", "1", "HLTH"]
    assert out.columns[-4:] == tuple(INSURANCE_COLUMNS)


def test_insurance_columns_appended_when_absent():
    row = CsvRecord.from_dict({"Deduction": "2401", "Empe Amt/Pct": "150"})
    out = transformer.transform(row, DEFAULT_RULES).record
    assert out.columns == ("Deduction", "Empe Amt/Pct Montly", *INSURANCE_COLUMNS)
    assert out.get("Hlth Ins Cvrage") == "91"


def test_matching_uses_the_rounded_monthly_amount():
    # 30.0005 * 26 / 12 = 65.00108..., written and matched as 65.00
    rules = [InsuranceRule(deduction="2400", emp_amount="65.001-65.5", carrier="C", coverage="1")]
    result = transformer.transform(_row("2400", "30.0005"), rules)
    assert result.record.get("Empe Amt/Pct Montly") == "65.00"
    assert result.monthly_amount == 65.0
    assert not result.matched

    # 30.004 * 26 / 12 = 65.0086..., rounds to exactly 65.01
    rules = [InsuranceRule(deduction="2400", emp_amount="65.01", carrier="C", coverage="1")]
    assert transformer.transform(_row("2400", "30.004"), rules).matched


def test_unparseable_amount_renders_nan():
    result = transformer.transform(_row("2400", "abc"), DEFAULT_RULES)
    assert result.amount_status == "unparseable"
    assert result.monthly_amount is None
    assert result.record.get("Empe Amt/Pct Montly") == "NaN"
    assert not result.matched


def test_transform_does_not_touch_input():
    row = _row("2400", "30")
    transformer.transform(row, DEFAULT_RULES)
    assert row.get("Empe Amt/Pct") == "30"
    assert row.get("Hlth Ins Carrie") == ""


def test_process_all_keeps_row_order_and_counts():
    rows = [_row("2400", "30"), _row("2400", "150"), _row("2411", "9.25")]
    result = processor.process_all(rows, DEFAULT_RULES)
    assert result.ok
    assert [r.get("Empe Amt/Pct Montly") for r in result.rows] == ["65.00", "325.00", "20.04"]
    assert result.matched == 2
    assert result.unmatched == 1
    assert result.row_issues == []
    assert result.message.startswith("Processed 3 rows of data")


def test_invalid_rule_refuses_whole_batch():
    rules = list(DEFAULT_RULES[:2]) + [InsuranceRule(deduction="2400", emp_amount="1", coverage="1")]
    result = processor.process_all([_row("2400", "30")], rules)
    assert not result.ok
    assert result.rows == []
    assert len(result.failures) == 1
    assert result.failures[0].index == 2
    assert result.failures[0].position == 3
    assert result.failures[0].errors == ["Carrier is required"]
    assert result.message == "Validation errors:\nRule 3: Carrier is required"


def test_every_invalid_rule_is_listed():
    rules = [InsuranceRule(), DEFAULT_RULES[0], InsuranceRule(deduction="1", emp_amount="x", carrier="c", coverage="c")]
    result = processor.process_all([], rules)
    assert [f.position for f in result.failures] == [1, 3]
    assert "Rule 1: Deduction code is required, Carrier is required, Coverage is required" in result.message


def test_bad_row_amount_does_not_abort_batch():
    rows = [_row("2400", "30"), _row("2400", "n/a"), _row("2400", "150")]
    result = processor.process_all(rows, DEFAULT_RULES)
    assert result.ok
    assert len(result.rows) == 3
    assert result.rows[1].get("Empe Amt/Pct Montly") == "NaN"
    assert len(result.row_issues) == 1
    issue = result.row_issues[0]
    assert issue.kind == "AmountParseDefect"
    assert issue.row_index == 1
    assert issue.row_number == 2
    assert issue.value == "n/a"


def test_missing_amount_column_is_reported():
    row = CsvRecord.from_dict({"Deduction": "2400"})
    result = processor.process_all([row], DEFAULT_RULES)
    assert result.ok
    assert result.rows[0].columns == ("Deduction",)
    assert result.row_issues[0].value is None


def test_lint_warnings_are_reported_not_fatal():
    result = processor.process_all([_row("2400", "300")], DEFAULT_RULES)
    assert result.ok
    assert [w.position for w in result.warnings] == [4]


def test_rules_and_rows_may_be_any_iterable():
    rows = (_row("2400", "30") for _ in range(2))
    result = processor.process_all(rows, iter(DEFAULT_RULES))
    assert result.matched == 2
