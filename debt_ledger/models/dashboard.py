"""Read-only view models for the dashboard cards."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from debt_ledger.models.ledger import TransactionKind


class LeaderboardEntry(BaseModel):
    """One row of the debt leaderboard."""

    rank: int = Field(ge=1)
    person_id: UUID
    name: str
    total_debt: Decimal


class RecentActivityItem(BaseModel):
    """A transaction joined to the name of the person it belongs to."""

    transaction_id: UUID
    person_id: UUID
    person_name: str
    amount: Decimal
    kind: TransactionKind
    transaction_date: date
    description: str = ""


class DashboardSummary(BaseModel):
    """Everything the overview, leaderboard and recent cards display."""

    total_debt: Decimal = Decimal("0")
    people_with_debt: int = Field(default=0, ge=0)
    average_debt: Decimal = Decimal("0")
    max_debt: Decimal = Decimal("0")
    leaderboard: list[LeaderboardEntry] = Field(default_factory=list)
    recent_activity: list[RecentActivityItem] = Field(default_factory=list)
