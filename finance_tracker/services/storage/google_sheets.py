"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets backs the record store when no hosted
database is available:
1. Users can inspect their data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- No transactions (last write wins, which the entitlement cache accepts)
- Limited query capabilities (we filter and order in Python)

Each collection lives in its own worksheet named after the collection.
A row holds the record id, owner, and the record as JSON, so the sheet
layout never has to change when a model gains a field.
"""

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.entitlement import EntitlementSource, EntitlementState
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    EntitlementStore,
    NotFoundError,
    RecordStore,
    StorageConnectionError,
    StorageError,
    sort_rows,
)


# Column mappings for record sheets
RECORD_COLUMNS = [
    "id",
    "user_id",
    "updated_at",
    "payload_json",
]

# Column mappings for the entitlement cache sheet
ENTITLEMENT_COLUMNS = [
    "user_id",
    "subscribed",
    "product_id",
    "subscription_end",
    "source",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
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

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
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

    def get_collection_sheet(self, collection: Collection) -> gspread.Worksheet:
        return self.get_sheet(collection.value, RECORD_COLUMNS)

    def get_entitlement_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.entitlement_sheet_name, ENTITLEMENT_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsRecordStore(RecordStore):
    """
    Google Sheets implementation of the record store.

    One record per row; the record itself is JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: BaseModel) -> list:
        return [
            str(record.id),
            record.user_id,
            _now_iso(),
            record.model_dump_json(),
        ]

    def _row_to_record(self, collection: Collection, row: list) -> BaseModel:
        return collection.model.model_validate_json(row[3])

    def _find_row(self, sheet: gspread.Worksheet, record_id: UUID, user_id: str) -> Optional[tuple[int, list]]:
        """1-based sheet row index and values of a record, if present."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # row 1 is header
            if len(row) >= 4 and row[0] == str(record_id) and row[1] == user_id:
                return idx, row
        return None

    async def insert(self, collection, record):
        try:
            sheet = self._client.get_collection_sheet(collection)
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {collection.value}: {e}")

    async def update(self, collection, record):
        try:
            sheet = self._client.get_collection_sheet(collection)
            found = self._find_row(sheet, record.id, record.user_id)
            if found is None:
                raise NotFoundError(f"{collection.value} record not found: {record.id}")

            idx, _ = found
            sheet.update(
                range_name=f"A{idx}:D{idx}",
                values=[self._record_to_row(record)],
                value_input_option="RAW",
            )
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection.value}: {e}")

    async def delete(self, collection: Collection, record_id: UUID, user_id: str) -> bool:
        try:
            sheet = self._client.get_collection_sheet(collection)
            found = self._find_row(sheet, record_id, user_id)
            if found is None:
                return False
            sheet.delete_rows(found[0])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {collection.value}: {e}")

    async def get(
        self,
        collection: Collection,
        record_id: UUID,
        user_id: str,
    ) -> Optional[BaseModel]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            found = self._find_row(sheet, record_id, user_id)
            return self._row_to_record(collection, found[1]) if found else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {collection.value}: {e}")

    async def list_records(
        self,
        collection: Collection,
        user_id: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list:
        try:
            sheet = self._client.get_collection_sheet(collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {collection.value}: {e}")

        records = []
        for row in all_rows:
            if len(row) < 4 or row[1] != user_id:
                continue
            try:
                records.append(self._row_to_record(collection, row))
            except ValueError:
                continue  # Skip malformed rows

        return sort_rows(records, order_by, descending)


class GoogleSheetsEntitlementStore(EntitlementStore):
    """Entitlement cache, one row per user, overwritten on every resolve."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _state_to_row(self, user_id: str, state: EntitlementState) -> list:
        return [
            user_id,
            str(state.subscribed),
            state.product_id or "",
            state.subscription_end.isoformat() if state.subscription_end else "",
            state.source.value,
            _now_iso(),
        ]

    def _row_to_state(self, row: list) -> EntitlementState:
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return EntitlementState(
            subscribed=safe_get(1).lower() == "true",
            product_id=safe_get(2) or None,
            subscription_end=datetime.fromisoformat(safe_get(3)) if safe_get(3) else None,
            source=EntitlementSource(safe_get(4, EntitlementSource.NONE.value)),
        )

    async def get(self, user_id: str) -> Optional[EntitlementState]:
        try:
            sheet = self._client.get_entitlement_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == user_id:
                    return self._row_to_state(row)
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read entitlement: {e}")

    async def upsert(self, user_id: str, state: EntitlementState) -> None:
        try:
            sheet = self._client.get_entitlement_sheet()
            new_row = self._state_to_row(user_id, state)
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == user_id:
                    sheet.update(
                        range_name=f"A{idx}:F{idx}",
                        values=[new_row],
                        value_input_option="RAW",
                    )
                    return
            sheet.append_row(new_row, value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write entitlement: {e}")


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
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except ValueError:
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
