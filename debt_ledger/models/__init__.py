"""
Data Models Package

This package contains all Pydantic models used in the Debt Ledger system.
All data flowing through the system must conform to these schemas.
"""

from debt_ledger.models.ledger import (
    Person,
    PersonCreate,
    Transaction,
    TransactionCreate,
    TransactionKind,
    TransactionUpdate,
)
from debt_ledger.models.dashboard import (
    DashboardSummary,
    LeaderboardEntry,
    RecentActivityItem,
)
from debt_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Person",
    "PersonCreate",
    "Transaction",
    "TransactionCreate",
    "TransactionKind",
    "TransactionUpdate",
    # Dashboard models
    "DashboardSummary",
    "LeaderboardEntry",
    "RecentActivityItem",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
