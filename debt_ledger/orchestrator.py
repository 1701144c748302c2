"""
Main Orchestrator for the Debt Ledger

This module ties the store, the audit logger and the validator together
behind one object, ``LedgerShell``, which the UI drives:

1. Load (ping → people → all transactions)
2. Select a person (→ that person's history)
3. Mutate (request → await → patch local lists → refresh totals)

DESIGN DECISION: The shell enforces the boundaries:
- No write happens while edit mode is locked
- No bad form input reaches the store
- A failed call leaves exactly one static message in ``error``

Faults are logged with their detail; the user only ever sees the
static message.
"""

import hmac
from datetime import date
from enum import Enum
from typing import Any, Optional
from uuid import UUID

import structlog

from debt_ledger.audit import AuditLogger, create_correlation_id
from debt_ledger.config import AppSettings, Settings, get_settings
from debt_ledger.dashboard import person_history, summarize
from debt_ledger.models.dashboard import DashboardSummary
from debt_ledger.models.ledger import (
    Person,
    Transaction,
    TransactionCreate,
    TransactionKind,
    TransactionUpdate,
)
from debt_ledger.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
    SupabaseAuditStorage,
    SupabaseClient,
    SupabaseLedgerStorage,
)
from debt_ledger.services.storage.rows import sort_people
from debt_ledger.validation import LedgerValidator


logger = structlog.get_logger(__name__)


ERROR_INITIALIZE = "Failed to initialize app"
ERROR_LOAD_PEOPLE = "Failed to load people"
ERROR_LOAD_TRANSACTIONS = "Failed to load transactions"
ERROR_ADD_PERSON = "Failed to add person"
ERROR_UPDATE_PERSON = "Failed to update person"
ERROR_DELETE_PERSON = "Failed to delete person"
ERROR_ADD_TRANSACTION = "Failed to add transaction"
ERROR_EDIT_TRANSACTION = "Failed to edit transaction"
ERROR_DELETE_TRANSACTION = "Failed to delete transaction"
ERROR_NO_CHANGES = "No changes to save"
ERROR_NO_SELECTION = "Select a person first"


class ShellStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class EditModeLockedError(Exception):
    """Raised when a mutation is attempted while edit mode is locked."""
    pass


class LedgerShell:
    """
    Holds everything the UI renders and performs every user action.

    State:
        people: all people, sorted by name
        all_transactions: every transaction, newest first (Recent card)
        selected_person: the person whose panel is open, if any
        transactions: the selected person's history, newest first
        edit_mode: whether create/update/delete controls are unlocked
        error: the single user-facing error message, or None
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or LedgerValidator(self._settings)

        self.status = ShellStatus.UNINITIALIZED
        self.people: list[Person] = []
        self.all_transactions: list[Transaction] = []
        self.selected_person: Optional[Person] = None
        self.transactions: list[Transaction] = []
        self.edit_mode = False
        self.error: Optional[str] = None

        # Bumped on every selection change; a history response whose
        # token no longer matches belongs to an older selection.
        self._selection_token = 0

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fail(self, message: str, operation: str, error: Exception) -> None:
        """Record a failed store call: static message for the user, detail for the log."""
        self.error = message
        logger.warning("ledger_call_failed", operation=operation, error=str(error))
        await self._audit_logger.log_storage_error(operation, str(error))

    def _require_edit_mode(self) -> None:
        if not self.edit_mode:
            raise EditModeLockedError("Unlock edit mode to make changes")

    def _require_selection(self) -> Optional[Person]:
        if self.selected_person is None:
            self.error = ERROR_NO_SELECTION
        return self.selected_person

    def _replace_person(self, person: Person) -> None:
        self.people = [person if p.id == person.id else p for p in self.people]
        if self.selected_person and self.selected_person.id == person.id:
            self.selected_person = person

    async def _refresh_total(self, person_id: UUID, message: str) -> bool:
        """Re-read one person so their stored total is current."""
        try:
            person = await self._storage.get_person(person_id)
        except StorageError as e:
            await self._fail(message, "refresh_total", e)
            return False
        if person is not None:
            self._replace_person(person)
        return True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """
        Check the store and load people plus every transaction.

        Returns True when all three steps succeeded. The shell becomes
        ready either way; a failure leaves ``error`` set.
        """
        self.status = ShellStatus.LOADING
        self.error = None
        try:
            try:
                await self._storage.ping()
            except StorageError as e:
                await self._fail(ERROR_INITIALIZE, "ping", e)
                return False
            if not await self.load_people():
                return False
            return await self.load_all_transactions()
        finally:
            self.status = ShellStatus.READY

    async def load_people(self) -> bool:
        try:
            self.people = await self._storage.list_people()
        except StorageError as e:
            await self._fail(ERROR_LOAD_PEOPLE, "list_people", e)
            return False
        if self.selected_person is not None:
            current = next(
                (p for p in self.people if p.id == self.selected_person.id), None
            )
            if current is None:
                self.deselect()
            else:
                self.selected_person = current
        return True

    async def load_all_transactions(self) -> bool:
        try:
            self.all_transactions = await self._storage.list_transactions()
        except StorageError as e:
            await self._fail(ERROR_LOAD_TRANSACTIONS, "list_transactions", e)
            return False
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def select_person(self, person_id: UUID) -> bool:
        """
        Open a person's panel and load their history.

        If the selection changes while the request is in flight, the
        response is dropped.
        """
        person = next((p for p in self.people if p.id == person_id), None)
        if person is None:
            return False

        self._selection_token += 1
        token = self._selection_token
        self.selected_person = person
        self.transactions = []

        try:
            history = await self._storage.list_transactions(person_id)
        except StorageError as e:
            if token == self._selection_token:
                await self._fail(ERROR_LOAD_TRANSACTIONS, "list_transactions", e)
            return False

        if token != self._selection_token:
            logger.debug("stale_history_discarded", person_id=str(person_id))
            return False
        self.transactions = person_history(history)
        return True

    def deselect(self) -> None:
        self._selection_token += 1
        self.selected_person = None
        self.transactions = []

    # ------------------------------------------------------------------
    # Edit mode
    # ------------------------------------------------------------------

    async def unlock_edit_mode(self, pin: str) -> bool:
        """Unlock edit mode if ``pin`` matches the configured PIN."""
        granted = False
        if self._settings.edit_mode_available and pin:
            expected = self._settings.edit_pin.get_secret_value()
            granted = hmac.compare_digest(
                pin.strip().encode("utf-8"), expected.encode("utf-8")
            )
        self.edit_mode = granted or self.edit_mode
        await self._audit_logger.log_edit_mode(granted)
        return granted

    def lock_edit_mode(self) -> None:
        self.edit_mode = False

    def dismiss_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    async def add_person(self, name: str) -> Optional[Person]:
        self._require_edit_mode()
        check = self._validator.validate_name(name)
        if not check.is_valid:
            self.error = check.first_message
            return None

        try:
            person = await self._storage.create_person(check.cleaned["name"])
        except StorageError as e:
            await self._fail(ERROR_ADD_PERSON, "create_person", e)
            return None

        self.people = sort_people([*self.people, person])
        await self._audit_logger.log_person_created(person.id, person.name)
        return person

    async def rename_person(self, name: str) -> Optional[Person]:
        """Rename the selected person."""
        self._require_edit_mode()
        current = self._require_selection()
        if current is None:
            return None
        check = self._validator.validate_name(name)
        if not check.is_valid:
            self.error = check.first_message
            return None

        try:
            person = await self._storage.rename_person(current.id, check.cleaned["name"])
        except StorageError as e:
            await self._fail(ERROR_UPDATE_PERSON, "rename_person", e)
            return None

        self._replace_person(person)
        self.people = sort_people(self.people)
        await self._audit_logger.log_person_renamed(person.id, current.name, person.name)
        return person

    async def delete_person(self) -> bool:
        """Delete the selected person together with their transactions."""
        self._require_edit_mode()
        current = self._require_selection()
        if current is None:
            return False

        try:
            await self._storage.delete_person(current.id)
        except StorageError as e:
            await self._fail(ERROR_DELETE_PERSON, "delete_person", e)
            return False

        removed = [t for t in self.all_transactions if t.person_id == current.id]
        self.people = [p for p in self.people if p.id != current.id]
        self.all_transactions = [
            t for t in self.all_transactions if t.person_id != current.id
        ]
        self.deselect()
        await self._audit_logger.log_person_deleted(current.id, current.name, len(removed))
        return True

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def add_transaction(
        self,
        amount: Any,
        kind: Any = TransactionKind.DEBT,
        description: Optional[str] = None,
        transaction_date: Optional[date] = None,
    ) -> Optional[Transaction]:
        """
        Record a debt or payment against the selected person, then
        re-read that person's total.

        If the total refresh fails, the new entry stays in the history
        and ``error`` is set; the shown total may be stale.
        """
        self._require_edit_mode()
        current = self._require_selection()
        if current is None:
            return None
        check = self._validator.validate_transaction(amount, kind, description)
        if not check.is_valid:
            self.error = check.first_message
            return None

        correlation_id = create_correlation_id()
        data = TransactionCreate(
            person_id=current.id,
            amount=check.cleaned["amount"],
            kind=check.cleaned["kind"],
            description=check.cleaned["description"],
            transaction_date=transaction_date or date.today(),
        )
        try:
            created = await self._storage.create_transaction(data)
        except StorageError as e:
            await self._fail(ERROR_ADD_TRANSACTION, "create_transaction", e)
            return None

        if self.selected_person and self.selected_person.id == created.person_id:
            self.transactions = person_history([created, *self.transactions])
        self.all_transactions = person_history([created, *self.all_transactions])

        await self._audit_logger.log_transaction_created(
            created.id, created.person_id, created.kind.value, created.amount, correlation_id
        )
        await self._refresh_total(created.person_id, ERROR_ADD_TRANSACTION)
        return created

    async def edit_transaction(
        self,
        transaction_id: UUID,
        changes: TransactionUpdate,
    ) -> Optional[Transaction]:
        """Apply a partial update, then reload people for fresh totals."""
        self._require_edit_mode()
        if changes.is_empty:
            self.error = ERROR_NO_CHANGES
            return None
        if changes.amount is not None:
            _, issue = self._validator.parse_amount(changes.amount)
            if issue:
                self.error = issue.message
                return None

        correlation_id = create_correlation_id()
        try:
            updated = await self._storage.update_transaction(transaction_id, changes)
        except StorageError as e:
            await self._fail(ERROR_EDIT_TRANSACTION, "update_transaction", e)
            return None

        def patch(items: list[Transaction]) -> list[Transaction]:
            return person_history(
                [updated if t.id == updated.id else t for t in items]
            )

        self.transactions = patch(self.transactions)
        self.all_transactions = patch(self.all_transactions)

        await self._audit_logger.log_transaction_updated(
            updated.id, changes.changes(), correlation_id
        )
        try:
            self.people = await self._storage.list_people()
        except StorageError as e:
            await self._fail(ERROR_EDIT_TRANSACTION, "list_people", e)
            return updated
        if self.selected_person is not None:
            self.selected_person = next(
                (p for p in self.people if p.id == self.selected_person.id),
                self.selected_person,
            )
        return updated

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """Delete one transaction, then re-read its owner's total."""
        self._require_edit_mode()
        existing = next(
            (t for t in self.all_transactions if t.id == transaction_id),
            next((t for t in self.transactions if t.id == transaction_id), None),
        )

        try:
            await self._storage.delete_transaction(transaction_id)
        except StorageError as e:
            await self._fail(ERROR_DELETE_TRANSACTION, "delete_transaction", e)
            return False

        self.transactions = [t for t in self.transactions if t.id != transaction_id]
        self.all_transactions = [
            t for t in self.all_transactions if t.id != transaction_id
        ]

        owner_id = existing.person_id if existing else None
        await self._audit_logger.log_transaction_deleted(transaction_id, owner_id)
        if owner_id is not None:
            await self._refresh_total(owner_id, ERROR_DELETE_TRANSACTION)
        return True

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def summary(self) -> DashboardSummary:
        return summarize(
            self.people,
            self.all_transactions,
            recent_limit=self._settings.recent_activity_limit,
        )


def create_storage(
    settings: Optional[Settings] = None,
) -> tuple[LedgerStorageInterface, AuditStorageInterface]:
    """
    Build the ledger store and audit store for the configured backend.

    Returns:
        (ledger_storage, audit_storage)
    """
    settings = settings or get_settings()
    backend = settings.app.storage_backend

    if backend == "supabase":
        client = SupabaseClient(settings.supabase)
        return SupabaseLedgerStorage(client), SupabaseAuditStorage(client)
    if backend == "google_sheets":
        client = GoogleSheetsClient(settings.google_sheets)
        return GoogleSheetsLedgerStorage(client), GoogleSheetsAuditStorage(client)
    return InMemoryLedgerStorage(), InMemoryAuditStorage()


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[LedgerShell, AuditLogger]:
    """
    Factory function to create all application components.

    A backend that is not configured falls back to in-memory storage
    so the UI still starts; the fallback is logged.

    Returns:
        (ledger_shell, audit_logger)
    """
    settings = settings or get_settings()

    try:
        storage, audit_storage = create_storage(settings)
    except Exception as e:
        logger.warning(
            "storage_not_configured",
            backend=settings.app.storage_backend,
            error=str(e),
        )
        storage, audit_storage = InMemoryLedgerStorage(), InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    shell = LedgerShell(
        storage=storage,
        audit_logger=audit_logger,
        settings=settings.app,
    )
    return shell, audit_logger
