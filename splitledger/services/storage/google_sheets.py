"""
Google Sheets Document Store

DESIGN DECISION: Google Sheets is offered as a zero-setup persistent
backend because:
1. Group members can inspect the raw ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for a flat or a trip)
- No transactions (the ledger already tolerates non-atomic writes)
- Limited query capabilities (we filter in Python)

Layout: one worksheet per collection, one row per document:
    id | data_json
"""

import json
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from splitledger.config import get_settings
from splitledger.services.storage.interface import (
    DocumentStore,
    Filter,
    NotFoundError,
    StorageError,
    StoreConnectionError,
    matches_filters,
)


DOCUMENT_COLUMNS = ["id", "data_json"]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._sheets: dict[str, gspread.Worksheet] = {}
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
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._sheets:
            return self._sheets[collection]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(collection)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=collection,
                rows=self._settings.worksheet_rows,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)

        self._sheets[collection] = sheet
        return sheet


class GoogleSheetsDocumentStore(DocumentStore):
    """
    Google Sheets implementation of the document store.

    Document bodies are JSON-serialized into a single cell.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _doc_to_row(self, doc_id: str, data: dict) -> list:
        body = {k: v for k, v in data.items() if k != "id"}
        return [doc_id, json.dumps(body, default=str)]

    def _row_to_doc(self, row: list) -> dict:
        body = json.loads(row[1]) if len(row) > 1 and row[1] else {}
        return {**body, "id": row[0]}

    def _find_row(self, sheet: gspread.Worksheet, doc_id: str) -> tuple[int, Optional[list]]:
        """Return (1-based row index, row) for a document, or (0, None)."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == doc_id:
                return idx, row
        return 0, None

    async def create_doc(self, collection: str, data: dict) -> str:
        doc_id = uuid4().hex
        await self.set_doc(collection, doc_id, data)
        return doc_id

    async def get_doc(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            _, row = self._find_row(sheet, doc_id)
            return self._row_to_doc(row) if row else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get {collection}/{doc_id}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set_doc(self, collection: str, doc_id: str, data: dict) -> None:
        try:
            sheet = self._client.get_collection_sheet(collection)
            idx, _ = self._find_row(sheet, doc_id)
            row = self._doc_to_row(doc_id, data)
            if idx:
                sheet.update(
                    range_name=f"A{idx}:B{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
            else:
                sheet.append_row(row, value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {collection}/{doc_id}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(NotFoundError),
        reraise=True,
    )
    async def update_doc(self, collection: str, doc_id: str, partial: dict) -> None:
        try:
            sheet = self._client.get_collection_sheet(collection)
            idx, row = self._find_row(sheet, doc_id)
            if not idx:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            merged = {**self._row_to_doc(row), **partial}
            sheet.update(
                range_name=f"A{idx}:B{idx}",
                values=[self._doc_to_row(doc_id, merged)],
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection}/{doc_id}: {e}")

    async def delete_doc(self, collection: str, doc_id: str) -> bool:
        try:
            sheet = self._client.get_collection_sheet(collection)
            idx, _ = self._find_row(sheet, doc_id)
            if not idx:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {collection}/{doc_id}: {e}")

    async def query_docs(
        self,
        collection: str,
        filters: Optional[list[Filter]] = None,
    ) -> list[dict]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to query {collection}: {e}")

        docs = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                doc = self._row_to_doc(row)
            except json.JSONDecodeError:
                continue  # Skip malformed rows
            if matches_filters(doc, filters):
                docs.append(doc)
        return docs
