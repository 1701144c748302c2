"""
Form Input Validation

DESIGN DECISION: Form input is checked before any store call.
A bad name or amount never costs a round trip, and the user gets a
message about the field rather than a generic "Failed to ..." string.

IMPORTANT: Validation NEVER silently fixes issues beyond trimming
whitespace. It reports them.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, Field

from debt_ledger.config import AppSettings, get_settings
from debt_ledger.models.ledger import TransactionKind


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str
    issue_type: str = Field(
        ...,
        description="e.g. 'missing', 'invalid_format', 'out_of_range'"
    )
    message: str


class ValidationResult(BaseModel):
    """Outcome of validating one form submission."""

    issues: list[ValidationIssue] = Field(default_factory=list)
    cleaned: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def first_message(self) -> Optional[str]:
        return self.issues[0].message if self.issues else None


class LedgerValidator:
    """Validates person and transaction form input."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate_name(self, raw: Optional[str]) -> ValidationResult:
        result = ValidationResult()
        name = (raw or "").strip()
        if not name:
            result.issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter a name",
            ))
        elif len(name) > self._settings.max_name_length:
            result.issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"Name must be at most {self._settings.max_name_length} characters",
            ))
        else:
            result.cleaned["name"] = name
        return result

    def parse_amount(self, raw: Any) -> tuple[Optional[Decimal], Optional[ValidationIssue]]:
        """Parse a form amount; must be a finite number greater than zero."""
        text = str(raw).strip() if raw is not None else ""
        if not text:
            return None, ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Please enter an amount",
            )
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None, ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount is not a number: {text}",
            )
        if not amount.is_finite() or amount <= 0:
            return None, ValidationIssue(
                field="amount",
                issue_type="out_of_range",
                message="Amount must be greater than zero",
            )
        if amount > self._settings.max_transaction_amount:
            return None, ValidationIssue(
                field="amount",
                issue_type="out_of_range",
                message="Amount is unrealistically large",
            )
        return amount, None

    def validate_transaction(
        self,
        amount: Any,
        kind: Any,
        description: Optional[str] = None,
    ) -> ValidationResult:
        """
        Check the fields of the add/edit transaction form.

        ``cleaned`` receives ``amount`` (Decimal), ``kind`` and
        ``description`` for every field that passed.
        """
        result = ValidationResult()

        parsed, issue = self.parse_amount(amount)
        if issue:
            result.issues.append(issue)
        else:
            result.cleaned["amount"] = parsed

        try:
            result.cleaned["kind"] = TransactionKind(kind)
        except ValueError:
            result.issues.append(ValidationIssue(
                field="kind",
                issue_type="invalid_value",
                message=f"Unknown transaction type: {kind}",
            ))

        text = (description or "").strip()
        if len(text) > 500:
            result.issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message="Description must be at most 500 characters",
            ))
        else:
            result.cleaned["description"] = text

        return result
