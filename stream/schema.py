from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Iterable, List, Literal, Optional, Tuple


class InsuranceRule(BaseModel):
    """Maps a deduction code and monthly amount to health insurance attributes."""
    model_config = ConfigDict(frozen=True)

    deduction: str = Field(default="", description="Deduction code from the CSV")
    emp_amount: str = Field(default="", description='Monthly amount, exact ("65") or range ("65-65.5")')
    carrier: str = Field(default="", description="Insurance carrier to populate")
    coverage: str = Field(default="", description="Coverage type to populate")
    level: str = Field(default="1", description="Insurance level")
    plan: str = Field(default="", description="Insurance plan")


class RuleEntry(BaseModel):
    """A rule in the table together with the errors from its last edit."""
    model_config = ConfigDict(frozen=True)

    rule: InsuranceRule
    errors: Tuple[str, ...] = ()


class CsvRecord(BaseModel):
    """One CSV row: an explicit column order alongside the column -> value mapping."""
    model_config = ConfigDict(frozen=True)

    columns: Tuple[str, ...] = ()
    values: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "CsvRecord":
        # A repeated column keeps its first position and takes the last value
        columns: List[str] = []
        values: Dict[str, str] = {}
        for key, value in pairs:
            if key not in values:
                columns.append(key)
            values[key] = value
        return cls(columns=tuple(columns), values=values)

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "CsvRecord":
        return cls.from_pairs(data.items())

    def get(self, key: str, default: Optional[str] = "") -> Optional[str]:
        return self.values.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.values

    def items(self) -> List[Tuple[str, str]]:
        return [(column, self.values[column]) for column in self.columns]

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())

    def is_empty(self) -> bool:
        return all(value == "" for value in self.values.values())


class TransformedRow(BaseModel):
    """Output of a single row transformation."""
    record: CsvRecord
    amount_status: Literal["ok", "unparseable", "missing"] = "ok"
    monthly_amount: Optional[float] = Field(None, description="Rounded monthly amount used for matching")
    rule_index: Optional[int] = Field(None, description="0-based position of the matching rule")

    @property
    def matched(self) -> bool:
        return self.rule_index is not None


class RowIssue(BaseModel):
    """Non-fatal per-row problem reported alongside the output."""
    kind: Literal["AmountParseDefect"] = "AmountParseDefect"
    row_index: int
    row_number: int
    column: str
    value: Optional[str] = None
    message: str


class RuleFailure(BaseModel):
    index: int
    position: int
    errors: List[str]


class RuleWarning(BaseModel):
    index: int
    position: int
    warnings: List[str]


class BatchResult(BaseModel):
    """Result of processing every row against a rule table"""
    ok: bool
    rows: List[CsvRecord] = Field(default_factory=list)
    failures: List[RuleFailure] = Field(default_factory=list)
    row_issues: List[RowIssue] = Field(default_factory=list)
    warnings: List[RuleWarning] = Field(default_factory=list)
    matched: int = 0
    unmatched: int = 0
    message: str = ""


class LoadSummary(BaseModel):
    rows: int
    deductions: List[str] = Field(default_factory=list)
    amounts: List[str] = Field(default_factory=list)
    message: str = ""


class Notification(BaseModel):
    title: str
    message: str
    type: Literal["success", "error"] = "success"
    source: Optional[str] = Field(None, description="Upload name or gs:// path")
    details: Dict[str, int] = Field(default_factory=dict)


class RuleEdit(BaseModel):
    field: str
    value: str
