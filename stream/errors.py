"""
Exception hierarchy for CSV enrichment.

Everything raised on purpose derives from ProcessingError and carries a
`kind` plus structured details so the API can return it as data.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from .schema import RuleFailure


class ProcessingError(Exception):
    """Base exception for all processing errors."""

    kind = "ProcessingError"

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.details}


class RuleValidationError(ProcessingError):
    """One or more rules are structurally invalid; the whole batch is refused."""

    kind = "RuleValidationError"

    def __init__(self, message: str, *, failures: Sequence[RuleFailure]) -> None:
        self.failures: List[RuleFailure] = list(failures)
        super().__init__(
            message,
            details={
                "rules": [f.position for f in self.failures],
                "failures": [f.model_dump() for f in self.failures],
            },
        )


class FileFormatError(ProcessingError):
    """The uploaded CSV could not be read."""

    kind = "FileFormatError"


class RuleIndexError(ProcessingError):
    """No rule at the requested position."""

    kind = "RuleIndexError"

    def __init__(self, index: int, size: int) -> None:
        self.index = index
        super().__init__(
            f"No rule at index {index} (table has {size} rules)",
            details={"index": index, "size": size},
        )


class RuleEditError(ProcessingError):
    """A rule edit named a field rules do not have."""

    kind = "RuleEditError"
