"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability of balances
2. Debugging capability when a store call fails
3. A way to explain a total that looks wrong

The audit logger:
- Is async so it fits the storage call pattern
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to tie a write to its total refresh
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

import structlog

from debt_ledger.models.audit import AuditEvent, AuditEventBuilder
from debt_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and so structlog) to stderr at ``level``."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("debt_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def _log_built(self, build: Callable[..., AuditEvent], *args: Any, **kwargs: Any) -> bool:
        """Build an event and log it; a build failure is logged, never raised."""
        try:
            event = build(*args, **kwargs)
        except ValueError as e:
            self._logger.error("audit_event_invalid", builder=build.__name__, error=str(e))
            return False
        return await self.log(event)

    async def log_person_created(
        self,
        person_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(AuditEventBuilder.person_created, person_id, name, correlation_id)

    async def log_person_renamed(
        self,
        person_id: UUID,
        old_name: str,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.person_renamed, person_id, old_name, new_name, correlation_id
        )

    async def log_person_deleted(
        self,
        person_id: UUID,
        name: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.person_deleted, person_id, name, transaction_count, correlation_id
        )

    async def log_transaction_created(
        self,
        transaction_id: UUID,
        person_id: UUID,
        kind: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.transaction_created,
            transaction_id=transaction_id,
            person_id=person_id,
            kind=kind,
            amount=str(amount),
            correlation_id=correlation_id,
        )

    async def log_transaction_updated(
        self,
        transaction_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.transaction_updated, transaction_id, changes, correlation_id
        )

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        person_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._log_built(
            AuditEventBuilder.transaction_deleted, transaction_id, person_id, correlation_id
        )

    async def log_edit_mode(self, granted: bool) -> None:
        await self._log_built(AuditEventBuilder.edit_mode_changed, granted)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed store call."""
        await self._log_built(
            AuditEventBuilder.storage_error, operation, error_message, correlation_id
        )

    async def recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """
        Newest persisted events first; empty when only logging locally.

        Raises:
            StorageError: If the audit store cannot be read
        """
        if self._storage is None:
            return []
        return await self._storage.get_recent_events(limit)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g. adding a transaction)
    and pass it through the write and the total refresh.
    """
    return uuid4()
