"""
Row <-> model translation shared by the storage backends.

Store rows use the table's column names (``total_debt``, ``type``,
``date``); the application models use ``kind`` and ``transaction_date``.
All translation between the two shapes lives here.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from debt_ledger.models.ledger import (
    Person,
    Transaction,
    TransactionCreate,
    TransactionUpdate,
)


PERSON_COLUMNS = [
    "id",
    "name",
    "total_debt",
    "last_updated",
    "created_at",
    "updated_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "person_id",
    "amount",
    "type",
    "description",
    "date",
    "created_at",
    "updated_at",
]

# application field -> store column
_TRANSACTION_FIELD_COLUMNS = {
    "amount": "amount",
    "kind": "type",
    "description": "description",
    "transaction_date": "date",
}


def to_decimal(value: Any) -> Decimal:
    """Parse a numeric column; blanks and None are zero."""
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def parse_row_date(value: Any) -> date:
    """
    Parse the ``date`` column.

    Older rows hold a full ISO timestamp; only the calendar date (UTC) is kept.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _timestamp(value: Any) -> Optional[Any]:
    return value or None


def person_from_row(row: dict[str, Any]) -> Person:
    return Person(
        id=row["id"],
        name=row["name"],
        total_debt=to_decimal(row.get("total_debt")),
        last_updated=_timestamp(row.get("last_updated")),
        created_at=_timestamp(row.get("created_at")),
        updated_at=_timestamp(row.get("updated_at")),
    )


def transaction_from_row(row: dict[str, Any]) -> Transaction:
    return Transaction(
        id=row["id"],
        person_id=row["person_id"],
        amount=to_decimal(row.get("amount")),
        kind=row["type"],
        description=row.get("description") or "",
        transaction_date=parse_row_date(row["date"]),
        created_at=_timestamp(row.get("created_at")),
        updated_at=_timestamp(row.get("updated_at")),
    )


def person_insert_payload(name: str) -> dict[str, Any]:
    return {"name": name, "total_debt": 0}


def transaction_insert_payload(data: TransactionCreate) -> dict[str, Any]:
    return {
        "person_id": str(data.person_id),
        "amount": str(data.amount),
        "type": data.kind.value,
        "description": data.description,
        "date": data.transaction_date.isoformat(),
    }


def transaction_update_payload(changes: TransactionUpdate) -> dict[str, Any]:
    """Only the columns for fields that were actually set."""
    payload: dict[str, Any] = {}
    for field, value in changes.changes().items():
        column = _TRANSACTION_FIELD_COLUMNS[field]
        if field == "amount":
            value = str(value)
        elif field == "kind":
            value = value.value
        elif field == "transaction_date":
            value = value.isoformat()
        payload[column] = value
    return payload


def sort_people(people: list[Person]) -> list[Person]:
    """Name order, case-insensitive; people sharing a name keep id order."""
    return sorted(people, key=lambda p: (p.name.casefold(), str(p.id)))


def sort_transactions(transactions: list[Transaction]) -> list[Transaction]:
    """Newest date first; same-day entries newest-created first."""
    return sorted(
        transactions,
        key=lambda t: (
            t.transaction_date,
            t.created_at.timestamp() if t.created_at else 0.0,
        ),
        reverse=True,
    )
