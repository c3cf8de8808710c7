"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Household members can view their data directly in Sheets
2. No database setup required
3. Built-in backup and sharing (Google's infrastructure)

TRADEOFFS:
- No transactions (the offline queue replays writes one at a time anyway)
- Limited query capabilities (we filter by household in Python)
- No change feed; realtime updates must come from elsewhere

Each table is one worksheet with three columns: id, household_id and the
rest of the row as JSON. Adding a field to an entity needs no sheet change.
"""

import json
from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from household_ledger.config import get_settings
from household_ledger.models.audit import AuditEvent
from household_ledger.models.entities import EntityType
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    RemoteStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

TABLE_COLUMNS = ["id", "household_id", "data_json"]

MEMBERS_SHEET_NAME = "users"
MEMBER_COLUMNS = ["id", "household_id", "email", "name"]

HOUSEHOLDS_SHEET_NAME = "households"
HOUSEHOLD_COLUMNS = ["id", "name", "created_at"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "household_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


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

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=self._settings.worksheet_rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_table_sheet(self, entity_type: EntityType) -> gspread.Worksheet:
        return self.get_worksheet(entity_type.table, TABLE_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS)


def _row_to_record(row: list) -> dict:
    """Convert a spreadsheet row to a table record."""
    data = json.loads(row[2]) if len(row) > 2 and row[2] else {}
    data["id"] = row[0]
    data["household_id"] = row[1] if len(row) > 1 else ""
    return data


def _record_to_row(record: dict) -> list:
    data = {k: v for k, v in record.items() if k not in ("id", "household_id")}
    return [
        record["id"],
        record.get("household_id", ""),
        json.dumps(data, default=str),
    ]


class GoogleSheetsRemoteStore(RemoteStoreInterface):
    """
    Google Sheets implementation of the remote household store.

    One row per entity; the sheet's row order is insertion order and
    `select` re-sorts by the entity type's natural order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, entity_id: str) -> tuple[int, list]:
        all_rows = sheet.get_all_values()
        # Row 1 is the header
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == entity_id:
                return idx, row
        return -1, []

    async def select(self, entity_type: EntityType, household_id: str) -> list[dict]:
        try:
            sheet = self._client.get_table_sheet(entity_type)
            all_rows = sheet.get_all_values()[1:]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {entity_type.table}: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0] or len(row) < 2 or row[1] != household_id:
                continue
            try:
                records.append(_row_to_record(row))
            except ValueError:
                logger.warning(
                    "malformed_row_skipped",
                    table=entity_type.table,
                    row_id=row[0],
                )
        return entity_type.sort_rows(records)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def insert(self, entity_type: EntityType, record: dict) -> dict:
        stored = dict(record)
        stored["id"] = str(uuid4())
        try:
            sheet = self._client.get_table_sheet(entity_type)
            sheet.append_row(_record_to_row(stored), value_input_option="RAW")
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {entity_type.table}: {e}")
        return stored

    async def update(self, entity_type: EntityType, entity_id: str, updates: dict) -> dict:
        try:
            sheet = self._client.get_table_sheet(entity_type)
            idx, row = self._find_row(sheet, entity_id)
            if idx < 0:
                raise NotFoundError(f"{entity_type.table} row not found: {entity_id}")

            record = _row_to_record(row)
            record.update(updates)
            record["id"] = entity_id
            new_row = _record_to_row(record)
            for col_idx, value in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return record
        except (NotFoundError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {entity_type.table}: {e}")

    async def delete(self, entity_type: EntityType, entity_id: str) -> None:
        try:
            sheet = self._client.get_table_sheet(entity_type)
            idx, _ = self._find_row(sheet, entity_id)
            if idx >= 0:
                sheet.delete_rows(idx)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {entity_type.table}: {e}")

    async def list_members(self, household_id: str) -> list[dict]:
        try:
            sheet = self._client.get_worksheet(MEMBERS_SHEET_NAME, MEMBER_COLUMNS)
            all_rows = sheet.get_all_values()[1:]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list household members: {e}")

        members = [
            dict(zip(MEMBER_COLUMNS, row))
            for row in all_rows
            if len(row) >= len(MEMBER_COLUMNS) and row[1] == household_id
        ]
        members.sort(key=lambda m: m["name"])
        return members

    def _members_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(MEMBERS_SHEET_NAME, MEMBER_COLUMNS)

    async def find_member_by_email(self, email: str) -> Optional[dict]:
        try:
            all_rows = self._members_sheet().get_all_values()[1:]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to look up user: {e}")

        for row in all_rows:
            if len(row) >= len(MEMBER_COLUMNS) and row[2] == email:
                return dict(zip(MEMBER_COLUMNS, row))
        return None

    async def update_member(self, member_id: str, updates: dict) -> dict:
        try:
            sheet = self._members_sheet()
            idx, row = self._find_row(sheet, member_id)
            if idx < 0:
                raise NotFoundError(f"User not found: {member_id}")

            member = dict(zip(MEMBER_COLUMNS, row))
            member.update(updates)
            for col_idx, column in enumerate(MEMBER_COLUMNS, start=1):
                sheet.update_cell(idx, col_idx, member.get(column) or "")
            return member
        except (NotFoundError, ConnectionError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update user: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def insert_household(self, record: dict) -> dict:
        stored = dict(record)
        stored["id"] = str(uuid4())
        try:
            sheet = self._client.get_worksheet(HOUSEHOLDS_SHEET_NAME, HOUSEHOLD_COLUMNS)
            sheet.append_row(
                [str(stored.get(column) or "") for column in HOUSEHOLD_COLUMNS],
                value_input_option="RAW",
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create household: {e}")
        return stored

    async def get_household(self, household_id: str) -> Optional[dict]:
        try:
            sheet = self._client.get_worksheet(HOUSEHOLDS_SHEET_NAME, HOUSEHOLD_COLUMNS)
            _, row = self._find_row(sheet, household_id)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read household: {e}")

        if not row:
            return None
        household = dict(zip(HOUSEHOLD_COLUMNS, row))
        return {k: v for k, v in household.items() if v}


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False
