"""Derived dashboard numbers and their formatting."""

from debt_ledger.dashboard.aggregates import (
    DEFAULT_RECENT_LIMIT,
    UNKNOWN_PERSON,
    average_debt,
    leaderboard,
    max_debt,
    people_with_debt,
    person_history,
    recent_activity,
    summarize,
    total_debt,
)
from debt_ledger.dashboard.formatting import format_day, format_money, format_signed

__all__ = [
    "DEFAULT_RECENT_LIMIT",
    "UNKNOWN_PERSON",
    "average_debt",
    "format_day",
    "format_money",
    "format_signed",
    "leaderboard",
    "max_debt",
    "people_with_debt",
    "person_history",
    "recent_activity",
    "summarize",
    "total_debt",
]
