"""
Dashboard Aggregates

Pure functions over the in-memory lists of people and transactions.
They are recomputed on every render and never touch storage.

All totals come from ``Person.total_debt`` as stored; nothing here
re-derives a balance from the transaction history.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from debt_ledger.models.dashboard import (
    DashboardSummary,
    LeaderboardEntry,
    RecentActivityItem,
)
from debt_ledger.models.ledger import Person, Transaction


DEFAULT_RECENT_LIMIT = 5
UNKNOWN_PERSON = "Unknown"

_CENTS = Decimal("0.01")


def total_debt(people: Iterable[Person]) -> Decimal:
    return sum((p.total_debt for p in people), Decimal("0"))


def people_with_debt(people: Iterable[Person]) -> int:
    return sum(1 for p in people if p.total_debt > 0)


def average_debt(people: Sequence[Person]) -> Decimal:
    """Total divided by the number of people; 0 for an empty list."""
    if not people:
        return Decimal("0")
    return (total_debt(people) / len(people)).quantize(_CENTS)


def max_debt(people: Sequence[Person]) -> Decimal:
    """Highest stored total; 0 for an empty list."""
    if not people:
        return Decimal("0")
    return max(p.total_debt for p in people)


def leaderboard(people: Iterable[Person]) -> list[LeaderboardEntry]:
    """People ranked by total debt, highest first. Ties keep input order."""
    ranked = sorted(people, key=lambda p: p.total_debt, reverse=True)
    return [
        LeaderboardEntry(
            rank=idx,
            person_id=p.id,
            name=p.name,
            total_debt=p.total_debt,
        )
        for idx, p in enumerate(ranked, start=1)
    ]


def person_history(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest date first; same-day entries newest-created first."""
    return sorted(
        transactions,
        key=lambda t: (
            t.transaction_date,
            t.created_at.timestamp() if t.created_at else 0.0,
        ),
        reverse=True,
    )


def recent_activity(
    transactions: Iterable[Transaction],
    people: Iterable[Person],
    limit: int = DEFAULT_RECENT_LIMIT,
) -> list[RecentActivityItem]:
    """
    The ``limit`` newest transactions across everyone, each joined to
    the owner's name ("Unknown" if the owner is not in ``people``).
    """
    names: dict[UUID, str] = {p.id: p.name for p in people}
    newest = person_history(transactions)[:max(limit, 0)]
    return [
        RecentActivityItem(
            transaction_id=t.id,
            person_id=t.person_id,
            person_name=names.get(t.person_id, UNKNOWN_PERSON),
            amount=t.amount,
            kind=t.kind,
            transaction_date=t.transaction_date,
            description=t.description,
        )
        for t in newest
    ]


def summarize(
    people: Sequence[Person],
    transactions: Iterable[Transaction],
    recent_limit: Optional[int] = None,
) -> DashboardSummary:
    """Bundle every card's numbers into one model."""
    return DashboardSummary(
        total_debt=total_debt(people),
        people_with_debt=people_with_debt(people),
        average_debt=average_debt(people),
        max_debt=max_debt(people),
        leaderboard=leaderboard(people),
        recent_activity=recent_activity(
            transactions,
            people,
            limit=recent_limit or DEFAULT_RECENT_LIMIT,
        ),
    )
