"""
Supabase Storage Implementation

DESIGN DECISION: Supabase is the primary backend because:
1. It's a hosted Postgres - the ledger survives any single device
2. The running total can be kept by a trigger, next to the data
3. The anon key is all the app needs (row-level security does the rest)

TRADEOFFS:
- Every call is a network round trip; nothing is cached
- A transaction write and the refresh of the owner's total are two calls
- No retries on data calls; a failure surfaces immediately

See supabase/schema.sql for the tables and the total_debt trigger.
"""

from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from debt_ledger.config import SupabaseSettings, get_settings
from debt_ledger.models.audit import AuditEvent
from debt_ledger.models.ledger import (
    Person,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)
from debt_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from debt_ledger.services.storage.rows import (
    person_from_row,
    person_insert_payload,
    transaction_from_row,
    transaction_insert_payload,
    transaction_update_payload,
)


logger = structlog.get_logger(__name__)

AUDIT_TABLE = "audit_log"


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Handles client construction (with retry) and hands out
    query builders for the configured tables.
    """

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        client: Optional[Client] = None,
    ):
        self._client: Optional[Client] = client
        self._settings = settings or get_settings().supabase

    @property
    def url(self) -> str:
        return self._settings.url

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Client:
        """Create the Supabase client on first use."""
        if self._client is None:
            try:
                self._client = create_client(
                    self._settings.url,
                    self._settings.anon_key,
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}")
        return self._client

    def table(self, name: str):
        return self.connect().table(name)

    def people(self):
        return self.table(self._settings.people_table)

    def transactions(self):
        return self.table(self._settings.transactions_table)


def _run(operation: str, build_query: Callable[[], Any]) -> list[dict]:
    """Execute one query; any backend fault becomes a StorageError."""
    try:
        response = build_query().execute()
    except StorageError:
        raise
    except Exception as e:
        logger.error("supabase_call_failed", operation=operation, error=str(e))
        raise StorageError(f"Failed to {operation}: {e}") from e
    return list(response.data or [])


def _convert_one(operation: str, convert: Callable[[dict], Any], row: dict) -> Any:
    """Turn one returned row into a model; a row the model rejects is a StorageError."""
    try:
        return convert(row)
    except (ValueError, KeyError) as e:
        logger.error("supabase_row_invalid", operation=operation, row_id=row.get("id"), error=str(e))
        raise StorageError(f"Failed to {operation}: invalid row {row.get('id')}") from e


def _convert_all(table: str, convert: Callable[[dict], Any], rows: list[dict]) -> list:
    """Turn listed rows into models, skipping any the model rejects."""
    items = []
    for row in rows:
        try:
            items.append(convert(row))
        except (ValueError, KeyError):
            logger.warning("skipping_malformed_row", table=table, row_id=row.get("id"))
    return items


class SupabaseLedgerStorage(LedgerStorageInterface):
    """
    Supabase implementation of ledger storage.

    The ``people.total_debt`` column is maintained by a database trigger
    on ``transactions``; this class never writes it after creation.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def list_people(self) -> list[Person]:
        rows = _run(
            "list people",
            lambda: self._client.people().select("*").order("name").order("id"),
        )
        return _convert_all("people", person_from_row, rows)

    async def get_person(self, person_id: UUID) -> Optional[Person]:
        rows = _run(
            "get person",
            lambda: self._client.people().select("*").eq("id", str(person_id)).limit(1),
        )
        return _convert_one("get person", person_from_row, rows[0]) if rows else None

    async def create_person(self, name: str) -> Person:
        rows = _run(
            "add person",
            lambda: self._client.people().insert(person_insert_payload(name)),
        )
        if not rows:
            raise StorageError("Failed to add person: insert returned no row")
        return _convert_one("add person", person_from_row, rows[0])

    async def rename_person(self, person_id: UUID, name: str) -> Person:
        rows = _run(
            "rename person",
            lambda: self._client.people().update({"name": name}).eq("id", str(person_id)),
        )
        if not rows:
            raise NotFoundError(f"Person not found: {person_id}")
        return _convert_one("rename person", person_from_row, rows[0])

    async def delete_person(self, person_id: UUID) -> bool:
        # transactions.person_id is ON DELETE CASCADE
        rows = _run(
            "delete person",
            lambda: self._client.people().delete().eq("id", str(person_id)),
        )
        return bool(rows)

    async def list_transactions(
        self,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        def build():
            query = (
                self._client.transactions()
                .select("*")
                .order("date", desc=True)
                .order("created_at", desc=True)
            )
            if person_id:
                query = query.eq("person_id", str(person_id))
            return query

        rows = _run("list transactions", build)
        return _convert_all("transactions", transaction_from_row, rows)

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        rows = _run(
            "add transaction",
            lambda: self._client.transactions().insert(transaction_insert_payload(data)),
        )
        if not rows:
            raise StorageError("Failed to add transaction: insert returned no row")
        return _convert_one("add transaction", transaction_from_row, rows[0])

    async def update_transaction(
        self,
        transaction_id: UUID,
        changes: TransactionUpdate,
    ) -> Transaction:
        payload = transaction_update_payload(changes)
        if not payload:
            raise ValueError("No fields to update")
        rows = _run(
            "edit transaction",
            lambda: self._client.transactions().update(payload).eq("id", str(transaction_id)),
        )
        if not rows:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return _convert_one("edit transaction", transaction_from_row, rows[0])

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        rows = _run(
            "delete transaction",
            lambda: self._client.transactions().delete().eq("id", str(transaction_id)),
        )
        return bool(rows)

    async def ping(self) -> bool:
        try:
            _run("reach Supabase", lambda: self._client.people().select("id").limit(1))
        except StorageError as e:
            raise ConnectionError(str(e)) from e
        return True


class SupabaseAuditStorage(AuditStorageInterface):
    """
    Supabase implementation of audit log storage.

    Events go to the ``audit_log`` table as one row each; ``details`` is a
    jsonb column.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    @staticmethod
    def _event_to_row(event: AuditEvent) -> dict[str, Any]:
        return event.to_log_dict()

    @staticmethod
    def _row_to_event(row: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_id=row["event_id"],
            timestamp=row["timestamp"],
            event_type=row["event_type"],
            severity=row["severity"],
            entity_type=row.get("entity_type"),
            entity_id=row.get("entity_id"),
            correlation_id=row.get("correlation_id"),
            description=row["description"],
            details=row.get("details") or {},
            error_message=row.get("error_message"),
            is_user_action=bool(row.get("is_user_action")),
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            _run(
                "write audit event",
                lambda: self._client.table(AUDIT_TABLE).insert(self._event_to_row(event)),
            )
            return True
        except StorageError as e:
            # Audit logging must not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        rows = _run(
            "read audit events",
            lambda: (
                self._client.table(AUDIT_TABLE)
                .select("*")
                .order("timestamp", desc=True)
                .limit(limit)
            ),
        )
        return _convert_all(AUDIT_TABLE, self._row_to_event, rows)
