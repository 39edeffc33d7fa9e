"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted document store because:
1. The user can view their debts and incomes directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No push notifications, so subscriptions poll and diff
- Limited query capabilities (we filter in Python)

Each collection name gets its own worksheet. A row holds one document:
the owning scope (the collection path minus its last segment), the
document id, a write timestamp and the document body as JSON.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    CollectionSnapshot,
    ConnectionError,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    PersistenceError,
    StorageError,
    Subscription,
)


logger = structlog.get_logger(__name__)


# Column mappings for document sheets
DOCUMENT_COLUMNS = [
    "scope",
    "id",
    "updated_at",
    "data_json",
]

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


def split_collection_path(collection_path: str) -> tuple[str, str]:
    """Split "a/b/debts" into ("a/b", "debts")."""
    scope, _, name = collection_path.rstrip("/").rpartition("/")
    if not name:
        raise ValueError(f"Invalid collection path: {collection_path!r}")
    return scope, name


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
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

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        if title not in self._worksheets:
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
            self._worksheets[title] = sheet
        return self._worksheets[title]

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet for a collection name."""
        return self.get_worksheet(
            self._settings.sheet_name_for(collection),
            DOCUMENT_COLUMNS,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Subscriptions poll the worksheet every ``poll_seconds`` and push a new
    snapshot only when the decoded contents changed.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_seconds: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._poll_seconds = poll_seconds or get_settings().app.snapshot_poll_seconds

    def _sheet_for(self, collection_path: str) -> tuple[gspread.Worksheet, str]:
        scope, name = split_collection_path(collection_path)
        return self._client.get_collection_sheet(name), scope

    def _find_row(
        self,
        sheet: gspread.Worksheet,
        scope: str,
        doc_id: str,
    ) -> Optional[tuple[int, list]]:
        """Locate a document row. Returns (1-based row index, row)."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if len(row) >= 4 and row[0] == scope and row[1] == doc_id:
                return idx, row
        return None

    def _read_collection(self, collection_path: str) -> CollectionSnapshot:
        try:
            sheet, scope = self._sheet_for(collection_path)
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read {collection_path}: {e}")

        documents: CollectionSnapshot = {}
        for row in all_rows:
            if len(row) < 4 or row[0] != scope or not row[1]:
                continue
            try:
                documents[row[1]] = json.loads(row[3]) if row[3] else {}
            except json.JSONDecodeError:
                logger.warning(
                    "malformed_document_row",
                    collection=collection_path,
                    doc_id=row[1],
                )
        return documents

    def _read_document(self, collection_path: str, doc_id: str) -> Optional[Document]:
        try:
            sheet, scope = self._sheet_for(collection_path)
            found = self._find_row(sheet, scope, doc_id)
        except StorageError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to read {collection_path}/{doc_id}: {e}")

        if found is None:
            return None
        _, row = found
        return json.loads(row[3]) if row[3] else {}

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    async def add_document(self, collection_path: str, data: Document) -> str:
        """
        Store a new document under a fresh id.

        The id is fixed before the retried write, so a retry after an append
        that landed overwrites that row instead of adding a second one.
        """
        doc_id = uuid4().hex
        await self.set_document(collection_path, doc_id, data)
        return doc_id

    async def get_document(
        self,
        collection_path: str,
        doc_id: str,
    ) -> Optional[Document]:
        return self._read_document(collection_path, doc_id)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(NotFoundError),
        reraise=True,
    )
    async def update_document(
        self,
        collection_path: str,
        doc_id: str,
        fields: Document,
    ) -> None:
        """Merge fields into the stored JSON body."""
        try:
            sheet, scope = self._sheet_for(collection_path)
            found = self._find_row(sheet, scope, doc_id)
            if found is None:
                raise NotFoundError(f"Document not found: {collection_path}/{doc_id}")

            idx, row = found
            data = json.loads(row[3]) if row[3] else {}
            data.update(fields)
            sheet.update_cell(idx, 3, self._now())
            sheet.update_cell(idx, 4, json.dumps(data))
        except NotFoundError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update {collection_path}/{doc_id}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set_document(
        self,
        collection_path: str,
        doc_id: str,
        data: Document,
    ) -> None:
        """Overwrite the document body, creating the row if needed."""
        try:
            sheet, scope = self._sheet_for(collection_path)
            found = self._find_row(sheet, scope, doc_id)
            if found is None:
                sheet.append_row(
                    [scope, doc_id, self._now(), json.dumps(data)],
                    value_input_option="RAW",
                )
            else:
                idx, _ = found
                sheet.update_cell(idx, 3, self._now())
                sheet.update_cell(idx, 4, json.dumps(data))
        except Exception as e:
            raise PersistenceError(f"Failed to set {collection_path}/{doc_id}: {e}")

    async def delete_document(self, collection_path: str, doc_id: str) -> bool:
        try:
            sheet, scope = self._sheet_for(collection_path)
            found = self._find_row(sheet, scope, doc_id)
            if found is None:
                return False
            sheet.delete_rows(found[0])
            return True
        except Exception as e:
            raise PersistenceError(f"Failed to delete {collection_path}/{doc_id}: {e}")

    def _watch(self, source: str, read: Callable[[], object]) -> Subscription:
        async def start(subscription: Subscription) -> None:
            last = read()
            subscription.push(last)
            task = asyncio.create_task(self._poll(subscription, read, last))

            async def stop() -> None:
                task.cancel()
                # wait() never raises the task's own CancelledError
                await asyncio.wait([task])

            subscription.add_release(stop)

        return Subscription(source, start)

    async def _poll(
        self,
        subscription: Subscription,
        read: Callable[[], object],
        last: object,
    ) -> None:
        while True:
            await asyncio.sleep(self._poll_seconds)
            try:
                current = read()
            except Exception as e:
                logger.error("snapshot_poll_failed", source=subscription.source, error=str(e))
                subscription.fail(e)
                return
            if current != last:
                subscription.push(current)
                last = current

    def watch_collection(
        self,
        collection_path: str,
    ) -> Subscription[CollectionSnapshot]:
        return self._watch(
            collection_path,
            lambda: self._read_collection(collection_path),
        )

    def watch_document(
        self,
        collection_path: str,
        doc_id: str,
    ) -> Subscription[Optional[Document]]:
        return self._watch(
            f"{collection_path}/{doc_id}",
            lambda: self._read_document(collection_path, doc_id),
        )


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
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False
