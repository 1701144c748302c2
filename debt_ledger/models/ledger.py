"""
Core Data Models for Debt Ledger

These models define the strict schemas for the two entities the ledger
tracks, plus the input shapes used to create and edit them.

DESIGN DECISION: Money is Decimal everywhere. The store returns numerics
as JSON numbers or strings; Pydantic coerces both, and nothing ever passes
through float on the way to a total.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    A debt increases what the person owes; a payment reduces it.
    Stored in the ``type`` column.
    """
    DEBT = "debt"
    PAYMENT = "payment"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionKind.DEBT else -1

    @property
    def label(self) -> str:
        return "Debt" if self is TransactionKind.DEBT else "Payment"


# =============================================================================
# PERSON
# =============================================================================

class Person(BaseModel):
    """
    A tracked debtor.

    ``total_debt`` is stored redundantly on the person row and kept in
    step with the transaction history by the store. The app never
    recomputes it; it re-fetches.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique person ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Display name"
    )
    total_debt: Decimal = Field(
        default=Decimal("0"),
        description="Running balance (debts minus payments)"
    )

    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def initial(self) -> str:
        """First letter of the name, upper-cased, for list avatars."""
        return self.name[:1].upper()

    @property
    def has_debt(self) -> bool:
        return self.total_debt > 0


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """A dated debt or payment recorded against one person."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    person_id: UUID = Field(
        ...,
        description="Owning person"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount, always non-negative; direction comes from kind"
    )
    kind: TransactionKind = Field(
        ...,
        description="debt or payment"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free-text note"
    )
    transaction_date: date = Field(
        ...,
        description="Date the debt or payment happened"
    )

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this transaction to the person's total."""
        return self.amount * self.kind.sign


class TransactionCreate(BaseModel):
    """Input for recording a new transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    person_id: UUID
    amount: Decimal = Field(..., ge=0)
    kind: TransactionKind = TransactionKind.DEBT
    description: str = Field(default="", max_length=500)
    transaction_date: date = Field(default_factory=date.today)


class TransactionUpdate(BaseModel):
    """
    Partial update for an existing transaction.

    Only the fields that were explicitly set are sent to the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(default=None, ge=0)
    kind: Optional[TransactionKind] = None
    description: Optional[str] = Field(default=None, max_length=500)
    transaction_date: Optional[date] = None

    def changes(self) -> dict[str, Any]:
        """Fields that were set and are not None."""
        return self.model_dump(exclude_unset=True, exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.changes()


class PersonCreate(BaseModel):
    """Input for adding a person (also used as the rename payload)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=500)
