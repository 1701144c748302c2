"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is kept as an alternative backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No triggers, so total_debt is recomputed here after every
  transaction write (a separate API call, not atomic with the write)
- Limited query capabilities (we filter and sort in Python)
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from debt_ledger.config import GoogleSheetsSettings, get_settings
from debt_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from debt_ledger.models.ledger import (
    Person,
    Transaction,
    TransactionCreate,
    TransactionKind,
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
    PERSON_COLUMNS,
    TRANSACTION_COLUMNS,
    person_from_row,
    sort_people,
    sort_transactions,
    to_decimal,
    transaction_from_row,
    transaction_insert_payload,
    transaction_update_payload,
)


logger = structlog.get_logger(__name__)

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the connection.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_people_sheet(self) -> gspread.Worksheet:
        """Get or create the People worksheet."""
        return self._get_or_create(self._settings.people_sheet_name, PERSON_COLUMNS, 500)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


def _row_to_dict(columns: list[str], row: list) -> dict:
    """Pad short rows (Sheets drops trailing blanks) and key them by column."""
    padded = list(row) + [""] * (len(columns) - len(row))
    return dict(zip(columns, padded))


def _dict_to_row(columns: list[str], data: dict) -> list:
    return ["" if data.get(col) is None else str(data.get(col)) for col in columns]


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    People and transactions live in two worksheets, one entity per row,
    row 1 holding the column headers.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -- helpers --------------------------------------------------------

    @staticmethod
    def _records(sheet: gspread.Worksheet, columns: list[str]) -> list[tuple[int, dict]]:
        """(sheet row number, record) for every non-empty data row."""
        records = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0]:
                records.append((idx, _row_to_dict(columns, row)))
        return records

    @staticmethod
    def _write_row(sheet: gspread.Worksheet, idx: int, columns: list[str], data: dict) -> None:
        for col_idx, value in enumerate(_dict_to_row(columns, data), start=1):
            sheet.update_cell(idx, col_idx, value)

    def _find(self, sheet, columns, entity_id: UUID) -> tuple[int, dict]:
        for idx, record in self._records(sheet, columns):
            if record["id"] == str(entity_id):
                return idx, record
        raise NotFoundError(f"Row not found: {entity_id}")

    def _refresh_total(self, person_id: str) -> None:
        """Recompute one person's total from the Transactions sheet."""
        tx_sheet = self._client.get_transactions_sheet()
        total = Decimal("0")
        for _, record in self._records(tx_sheet, TRANSACTION_COLUMNS):
            if record["person_id"] == person_id:
                total += to_decimal(record["amount"]) * TransactionKind(record["type"]).sign

        people_sheet = self._client.get_people_sheet()
        try:
            idx, record = self._find(people_sheet, PERSON_COLUMNS, UUID(person_id))
        except NotFoundError:
            return
        record["total_debt"] = str(total)
        record["last_updated"] = _now()
        self._write_row(people_sheet, idx, PERSON_COLUMNS, record)

    # -- people ---------------------------------------------------------

    async def list_people(self) -> list[Person]:
        try:
            sheet = self._client.get_people_sheet()
            people = []
            for _, record in self._records(sheet, PERSON_COLUMNS):
                try:
                    people.append(person_from_row(record))
                except ValueError:
                    logger.warning("skipping_malformed_row", sheet="people", row_id=record["id"])
            return sort_people(people)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list people: {e}")

    async def get_person(self, person_id: UUID) -> Optional[Person]:
        try:
            sheet = self._client.get_people_sheet()
            _, record = self._find(sheet, PERSON_COLUMNS, person_id)
            return person_from_row(record)
        except NotFoundError:
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get person: {e}")

    async def create_person(self, name: str) -> Person:
        try:
            sheet = self._client.get_people_sheet()
            now = _now()
            record = {
                "id": str(uuid4()),
                "name": name,
                "total_debt": "0",
                "last_updated": now,
                "created_at": now,
                "updated_at": now,
            }
            sheet.append_row(_dict_to_row(PERSON_COLUMNS, record), value_input_option="RAW")
            return person_from_row(record)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add person: {e}")

    async def rename_person(self, person_id: UUID, name: str) -> Person:
        try:
            sheet = self._client.get_people_sheet()
            idx, record = self._find(sheet, PERSON_COLUMNS, person_id)
            record["name"] = name
            record["updated_at"] = _now()
            self._write_row(sheet, idx, PERSON_COLUMNS, record)
            return person_from_row(record)
        except NotFoundError:
            raise NotFoundError(f"Person not found: {person_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to rename person: {e}")

    async def delete_person(self, person_id: UUID) -> bool:
        try:
            people_sheet = self._client.get_people_sheet()
            try:
                idx, _ = self._find(people_sheet, PERSON_COLUMNS, person_id)
            except NotFoundError:
                return False
            people_sheet.delete_rows(idx)

            # Cascade; delete from the bottom so row numbers stay valid
            tx_sheet = self._client.get_transactions_sheet()
            owned = [
                tx_idx for tx_idx, record in self._records(tx_sheet, TRANSACTION_COLUMNS)
                if record["person_id"] == str(person_id)
            ]
            for tx_idx in sorted(owned, reverse=True):
                tx_sheet.delete_rows(tx_idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete person: {e}")

    # -- transactions ---------------------------------------------------

    async def list_transactions(
        self,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            transactions = []
            for _, record in self._records(sheet, TRANSACTION_COLUMNS):
                if person_id and record["person_id"] != str(person_id):
                    continue
                try:
                    transactions.append(transaction_from_row(record))
                except ValueError:
                    logger.warning(
                        "skipping_malformed_row", sheet="transactions", row_id=record["id"]
                    )
            return sort_transactions(transactions)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        try:
            people_sheet = self._client.get_people_sheet()
            try:
                self._find(people_sheet, PERSON_COLUMNS, data.person_id)
            except NotFoundError:
                raise StorageError(f"Failed to add transaction: unknown person {data.person_id}")

            sheet = self._client.get_transactions_sheet()
            now = _now()
            record = transaction_insert_payload(data)
            record.update(id=str(uuid4()), created_at=now, updated_at=now)
            sheet.append_row(_dict_to_row(TRANSACTION_COLUMNS, record), value_input_option="RAW")
            self._refresh_total(record["person_id"])
            return transaction_from_row(record)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add transaction: {e}")

    async def update_transaction(
        self,
        transaction_id: UUID,
        changes: TransactionUpdate,
    ) -> Transaction:
        payload = transaction_update_payload(changes)
        if not payload:
            raise ValueError("No fields to update")
        try:
            sheet = self._client.get_transactions_sheet()
            idx, record = self._find(sheet, TRANSACTION_COLUMNS, transaction_id)
            record.update(payload)
            record["updated_at"] = _now()
            self._write_row(sheet, idx, TRANSACTION_COLUMNS, record)
            self._refresh_total(record["person_id"])
            return transaction_from_row(record)
        except NotFoundError:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to edit transaction: {e}")

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            try:
                idx, record = self._find(sheet, TRANSACTION_COLUMNS, transaction_id)
            except NotFoundError:
                return False
            sheet.delete_rows(idx)
            self._refresh_total(record["person_id"])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def ping(self) -> bool:
        try:
            self._client.get_people_sheet()
        except ConnectionError:
            raise
        except Exception as e:
            raise ConnectionError(f"Failed to reach Google Sheets: {e}")
        return True


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        record = _row_to_dict(AUDIT_COLUMNS, row)
        return AuditEvent(
            event_id=UUID(record["event_id"]),
            timestamp=datetime.fromisoformat(record["timestamp"]),
            event_type=AuditEventType(record["event_type"]),
            severity=AuditSeverity(record["severity"]),
            entity_type=record["entity_type"] or None,
            entity_id=UUID(record["entity_id"]) if record["entity_id"] else None,
            correlation_id=UUID(record["correlation_id"]) if record["correlation_id"] else None,
            description=record["description"],
            details=json.loads(record["details_json"]) if record["details_json"] else {},
            error_message=record["error_message"] or None,
            is_user_action=record["is_user_action"].lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event)
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
