"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the cloud backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions, so balance read-modify-write is last-write-wins
- No server push: subscribers are notified after our own writes and
  whenever `refresh()` re-reads the sheets

Each user gets one worksheet per entity kind, titled
"users/{user_id}/{kind}", with one record per row.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from smartwealth.config import get_settings
from smartwealth.models.audit import AuditEvent, AuditEventType, AuditSeverity
from smartwealth.models.ledger import ENTITY_MODELS, EntityKind
from smartwealth.services.storage.interface import (
    AuditStorageInterface,
    LedgerRecord,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

logger = structlog.get_logger(__name__)


# Column order per entity kind; the id column is always first
ENTITY_COLUMNS: dict[EntityKind, list[str]] = {
    EntityKind.ACCOUNTS: ["id", "name", "type", "balance", "currency"],
    EntityKind.TRANSACTIONS: [
        "id",
        "account_id",
        "date",
        "amount",
        "type",
        "category",
        "description",
    ],
    EntityKind.STOCKS: [
        "id",
        "symbol",
        "name",
        "shares",
        "average_cost",
        "current_price",
        "currency",
    ],
}

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def sheet_title(user_id: str, kind: EntityKind) -> str:
    return f"users/{user_id}/{kind.value}"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        """Get a worksheet by title, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_ledger_sheet(self, user_id: str, kind: EntityKind) -> gspread.Worksheet:
        """Get or create one user's worksheet for an entity kind."""
        return self.get_or_create_sheet(
            sheet_title(user_id, kind),
            ENTITY_COLUMNS[kind],
            self._settings.rows_per_sheet,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self.get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            5000,  # More rows for audit log
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Values are written as strings (RAW) so Decimals and dates round-trip
    without spreadsheet reformatting.
    """

    def __init__(self, user_id: str, client: Optional[GoogleSheetsClient] = None):
        super().__init__(user_id)
        self._client = client or GoogleSheetsClient()

    def _sheet(self, kind: EntityKind) -> gspread.Worksheet:
        return self._client.get_ledger_sheet(self.user_id, kind)

    def _record_to_row(self, kind: EntityKind, record: LedgerRecord) -> list:
        """Convert a record to a spreadsheet row."""
        data = record.model_dump(mode="json")
        return [str(data.get(column, "")) for column in ENTITY_COLUMNS[kind]]

    def _row_to_record(self, kind: EntityKind, row: list) -> LedgerRecord:
        """Convert a spreadsheet row to a record."""
        columns = ENTITY_COLUMNS[kind]
        # Handle missing trailing columns gracefully
        padded = list(row) + [""] * (len(columns) - len(row))
        data = {column: value for column, value in zip(columns, padded) if value != ""}
        return ENTITY_MODELS[kind].model_validate(data)

    def _find_row(self, all_rows: list[list], record_id: str) -> Optional[int]:
        """1-based sheet row index of a record, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == record_id:
                return idx
        return None

    async def list_records(self, kind: EntityKind) -> list[LedgerRecord]:
        try:
            all_rows = self._sheet(kind).get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list {kind.value}: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(self._row_to_record(kind, row))
            except Exception as e:
                logger.warning("malformed_row_skipped", kind=kind.value, row_id=row[0], error=str(e))
        return records

    async def get_record(self, kind: EntityKind, record_id: str) -> Optional[LedgerRecord]:
        try:
            all_rows = self._sheet(kind).get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to get {kind.value} record: {e}")

        idx = self._find_row(all_rows, record_id)
        if idx is None:
            return None
        try:
            return self._row_to_record(kind, all_rows[idx - 1])
        except Exception as e:
            # Same rule as list_records: a malformed row is not a record
            logger.warning("malformed_row_skipped", kind=kind.value, row_id=record_id, error=str(e))
            return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, kind: EntityKind, row: list) -> None:
        try:
            self._sheet(kind).append_row(row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save {kind.value} record: {e}")

    async def create_record(self, kind: EntityKind, record: LedgerRecord) -> str:
        record_id = uuid4().hex
        stored = record.model_copy(update={"id": record_id})
        await self._append(kind, self._record_to_row(kind, stored))
        await self._publish(kind)
        return record_id

    async def replace_record(self, kind: EntityKind, record_id: str, record: LedgerRecord) -> None:
        try:
            sheet = self._sheet(kind)
            idx = self._find_row(sheet.get_all_values(), record_id)
            if idx is None:
                raise NotFoundError(f"{kind.value} record not found: {record_id}")

            row = self._record_to_row(kind, record.model_copy(update={"id": record_id}))
            sheet.update(
                range_name=f"A{idx}",
                values=[row],
                value_input_option="RAW",
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to replace {kind.value} record: {e}")

        await self._publish(kind)

    async def delete_record(self, kind: EntityKind, record_id: str) -> bool:
        try:
            sheet = self._sheet(kind)
            idx = self._find_row(sheet.get_all_values(), record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value} record: {e}")

        await self._publish(kind)
        return True

    async def refresh(self, kind: Optional[EntityKind] = None) -> None:
        """
        Re-read the sheets and push to subscribers.

        Picks up edits made elsewhere (another device, the Sheets UI).
        """
        kinds = [kind] if kind else list(EntityKind)
        for k in kinds:
            await self._publish(k)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            user_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("malformed_audit_row_skipped", row_id=row[0], error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.error("audit_append_failed", event_id=str(event.event_id), error=str(e))
            return False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(row, value_input_option="RAW")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
