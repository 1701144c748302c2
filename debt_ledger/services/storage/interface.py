"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against Supabase in production
2. Keep a Google Sheets backend for people who want to see the raw ledger
3. Use in-memory storage for testing

Every operation is exactly one round trip to the backend. Nothing here
retries, and nothing spans two calls atomically: a transaction write and
the re-fetch of the owning person's total are separate calls.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from debt_ledger.models.audit import AuditEvent
from debt_ledger.models.ledger import (
    Person,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for people and transaction storage.

    Any storage implementation (Supabase, Google Sheets, etc.)
    must implement these methods. Implementations keep
    ``Person.total_debt`` equal to the signed sum of that person's
    transactions.
    """

    # -- people ---------------------------------------------------------

    @abstractmethod
    async def list_people(self) -> list[Person]:
        """
        List every person, sorted by name.

        Raises:
            StorageError: If the backend call fails
        """
        pass

    @abstractmethod
    async def get_person(self, person_id: UUID) -> Optional[Person]:
        """
        Retrieve a person by ID.

        Returns:
            The person if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_person(self, name: str) -> Person:
        """
        Add a person with a zero balance.

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def rename_person(self, person_id: UUID, name: str) -> Person:
        """
        Change a person's display name.

        Raises:
            NotFoundError: If the person doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_person(self, person_id: UUID) -> bool:
        """
        Delete a person and, with them, their transactions.

        Returns:
            True if a row was deleted
        """
        pass

    # -- transactions ---------------------------------------------------

    @abstractmethod
    async def list_transactions(
        self,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        List transactions, newest date first.

        Args:
            person_id: Only return this person's transactions

        Raises:
            StorageError: If the backend call fails
        """
        pass

    @abstractmethod
    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        """
        Record a debt or payment.

        Raises:
            StorageError: If the insert fails (e.g. unknown person)
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: UUID,
        changes: TransactionUpdate,
    ) -> Transaction:
        """
        Apply a partial update to a transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """
        Delete a single transaction.

        Returns:
            True if a row was deleted
        """
        pass

    # -- diagnostics ----------------------------------------------------

    @abstractmethod
    async def ping(self) -> bool:
        """
        Check the backend is reachable and the people table readable.

        Raises:
            ConnectionError: If the backend cannot be reached
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
