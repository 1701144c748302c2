"""Form input validation."""

from debt_ledger.validation.validator import (
    LedgerValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = ["LedgerValidator", "ValidationIssue", "ValidationResult"]
