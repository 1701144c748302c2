"""
Shared fixtures and fakes.

No test talks to Supabase or Google: the stores are exercised against
in-memory fakes that record the calls made on them.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from debt_ledger.audit import AuditLogger
from debt_ledger.config import AppSettings
from debt_ledger.models import Person, Transaction, TransactionKind
from debt_ledger.orchestrator import LedgerShell
from debt_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    StorageError,
)


TEST_PIN = "2468"


def make_person(name: str, total: str = "0", **kwargs) -> Person:
    return Person(name=name, total_debt=Decimal(total), **kwargs)


def make_transaction(
    person: Person,
    amount: str,
    kind: TransactionKind = TransactionKind.DEBT,
    day: date = date(2024, 1, 1),
    description: str = "",
) -> Transaction:
    return Transaction(
        person_id=person.id,
        amount=Decimal(amount),
        kind=kind,
        transaction_date=day,
        description=description,
    )


# =============================================================================
# Failing store
# =============================================================================

class FlakyStorage(InMemoryLedgerStorage):
    """In-memory store whose named operations can be made to fail."""

    def __init__(self):
        super().__init__()
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def fail(self, *operations: str) -> None:
        self.failing.update(operations)

    def heal(self) -> None:
        self.failing.clear()

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failing:
            raise StorageError(f"{operation} unavailable")

    async def ping(self):
        self._enter("ping")
        return await super().ping()

    async def list_people(self):
        self._enter("list_people")
        return await super().list_people()

    async def get_person(self, person_id):
        self._enter("get_person")
        return await super().get_person(person_id)

    async def create_person(self, name):
        self._enter("create_person")
        return await super().create_person(name)

    async def rename_person(self, person_id, name):
        self._enter("rename_person")
        return await super().rename_person(person_id, name)

    async def delete_person(self, person_id):
        self._enter("delete_person")
        return await super().delete_person(person_id)

    async def list_transactions(self, person_id=None):
        self._enter("list_transactions")
        return await super().list_transactions(person_id)

    async def create_transaction(self, data):
        self._enter("create_transaction")
        return await super().create_transaction(data)

    async def update_transaction(self, transaction_id, changes):
        self._enter("update_transaction")
        return await super().update_transaction(transaction_id, changes)

    async def delete_transaction(self, transaction_id):
        self._enter("delete_transaction")
        return await super().delete_transaction(transaction_id)


# =============================================================================
# Supabase fakes
# =============================================================================

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable query builder that records every call and returns scripted rows."""

    def __init__(self, table: str, data=None, error: Exception = None):
        self.table = table
        self.calls: list[tuple] = []
        self._data = data
        self._error = error

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return record

    def execute(self):
        if self._error is not None:
            raise self._error
        return FakeResponse(self._data)

    def called(self, name: str) -> list[tuple]:
        return [(args, kwargs) for n, args, kwargs in self.calls if n == name]


class FakeSupabaseClient:
    """Stands in for SupabaseClient; each table hands out a scripted query."""

    def __init__(self):
        self.scripts: dict[str, tuple] = {}
        self.queries: list[FakeQuery] = []

    def script(self, table: str, data=None, error: Exception = None) -> None:
        self.scripts[table] = (data, error)

    def table(self, name: str) -> FakeQuery:
        data, error = self.scripts.get(name, ([], None))
        query = FakeQuery(name, data, error)
        self.queries.append(query)
        return query

    def people(self) -> FakeQuery:
        return self.table("people")

    def transactions(self) -> FakeQuery:
        return self.table("transactions")

    @property
    def last_query(self) -> FakeQuery:
        return self.queries[-1]


# =============================================================================
# Google Sheets fakes
# =============================================================================

class FakeWorksheet:
    """The subset of gspread.Worksheet the Sheets store uses."""

    def __init__(self, header: list[str]):
        self.rows: list[list[str]] = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self, people_columns, transaction_columns, audit_columns):
        self.people = FakeWorksheet(people_columns)
        self.transactions = FakeWorksheet(transaction_columns)
        self.audit = FakeWorksheet(audit_columns)

    def get_people_sheet(self):
        return self.people

    def get_transactions_sheet(self):
        return self.transactions

    def get_audit_sheet(self):
        return self.audit


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        edit_pin=TEST_PIN,
        storage_backend="memory",
    )


@pytest.fixture
def locked_settings() -> AppSettings:
    """Settings with no edit PIN configured."""
    return AppSettings(_env_file=None, edit_pin=None, storage_backend="memory")


@pytest.fixture
def storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def shell(storage, audit_storage, app_settings) -> LedgerShell:
    return LedgerShell(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        settings=app_settings,
    )


@pytest.fixture
def supabase_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def person_row() -> dict:
    return {
        "id": str(uuid4()),
        "name": "Ann",
        "total_debt": 50000,
        "last_updated": "2024-03-01T10:00:00+00:00",
        "created_at": "2024-01-01T10:00:00+00:00",
        "updated_at": "2024-03-01T10:00:00+00:00",
    }
