"""
In-Memory Storage Implementation

Used by the test suite and by ``APP_STORAGE_BACKEND=memory`` for an
offline demo. Rows are kept in the same shape the hosted tables use and
``total_debt`` is recomputed on every transaction write, the way the
Supabase trigger does it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from debt_ledger.models.audit import AuditEvent
from debt_ledger.models.ledger import (
    Person,
    Transaction,
    TransactionCreate,
    TransactionKind,
    TransactionUpdate,
)
from debt_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from debt_ledger.services.storage.rows import (
    person_from_row,
    sort_people,
    sort_transactions,
    to_decimal,
    transaction_from_row,
    transaction_insert_payload,
    transaction_update_payload,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger storage."""

    def __init__(self):
        self._people: dict[str, dict] = {}
        self._transactions: dict[str, dict] = {}

    def _recompute_total(self, person_id: str) -> None:
        person = self._people.get(person_id)
        if person is None:
            return
        total = Decimal("0")
        for row in self._transactions.values():
            if row["person_id"] == person_id:
                sign = TransactionKind(row["type"]).sign
                total += to_decimal(row["amount"]) * sign
        person["total_debt"] = str(total)
        person["last_updated"] = _now()

    async def list_people(self) -> list[Person]:
        return sort_people([person_from_row(row) for row in self._people.values()])

    async def get_person(self, person_id: UUID) -> Optional[Person]:
        row = self._people.get(str(person_id))
        return person_from_row(row) if row else None

    async def create_person(self, name: str) -> Person:
        now = _now()
        row = {
            "id": str(uuid4()),
            "name": name,
            "total_debt": "0",
            "last_updated": now,
            "created_at": now,
            "updated_at": now,
        }
        self._people[row["id"]] = row
        return person_from_row(row)

    async def rename_person(self, person_id: UUID, name: str) -> Person:
        row = self._people.get(str(person_id))
        if row is None:
            raise NotFoundError(f"Person not found: {person_id}")
        row["name"] = name
        row["updated_at"] = _now()
        return person_from_row(row)

    async def delete_person(self, person_id: UUID) -> bool:
        key = str(person_id)
        if self._people.pop(key, None) is None:
            return False
        self._transactions = {
            tid: row for tid, row in self._transactions.items()
            if row["person_id"] != key
        }
        return True

    async def list_transactions(
        self,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        rows = self._transactions.values()
        if person_id:
            rows = [row for row in rows if row["person_id"] == str(person_id)]
        return sort_transactions([transaction_from_row(row) for row in rows])

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        person_key = str(data.person_id)
        if person_key not in self._people:
            # Mirrors the foreign key violation the hosted store reports
            raise StorageError(f"Failed to add transaction: unknown person {data.person_id}")
        now = _now()
        row = transaction_insert_payload(data)
        row.update(id=str(uuid4()), created_at=now, updated_at=now)
        self._transactions[row["id"]] = row
        self._recompute_total(person_key)
        return transaction_from_row(row)

    async def update_transaction(
        self,
        transaction_id: UUID,
        changes: TransactionUpdate,
    ) -> Transaction:
        payload = transaction_update_payload(changes)
        if not payload:
            raise ValueError("No fields to update")
        row = self._transactions.get(str(transaction_id))
        if row is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        row.update(payload)
        row["updated_at"] = _now()
        self._recompute_total(row["person_id"])
        return transaction_from_row(row)

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        row = self._transactions.pop(str(transaction_id), None)
        if row is None:
            return False
        self._recompute_total(row["person_id"])
        return True

    async def ping(self) -> bool:
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed, append-only audit storage."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
