"""Typed adapter over the spreadsheet service used as the datastore.

The rest of the package only talks to :class:`TabularStore`; the Google
implementation translates each operation into Drive v3 / Sheets v4 calls and
wraps every upstream failure in :class:`~clubreg_core.errors.StoreError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import ConfigurationError, StoreError
from .settings import GOOGLE_SCOPES, Settings

logger = logging.getLogger(__name__)

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"

Grid = List[List[str]]


@dataclass(frozen=True)
class DocumentRef:
    id: str
    name: str


@dataclass(frozen=True)
class DocumentMetadata:
    id: str
    title: str
    sheet_titles: List[str]


@dataclass(frozen=True)
class ValueRange:
    """A rectangular block of values addressed in A1 notation."""

    range: str
    values: Grid


@dataclass(frozen=True)
class AppendResult:
    updated_range: str
    updated_rows: int


@dataclass(frozen=True)
class GridRange:
    """Zero-based, end-exclusive cell rectangle on one tab (tab 0 by default)."""

    start_row: int
    end_row: int
    start_column: int
    end_column: int
    sheet_id: int = 0

    def as_request(self) -> Dict[str, int]:
        return {
            "sheetId": self.sheet_id,
            "startRowIndex": self.start_row,
            "endRowIndex": self.end_row,
            "startColumnIndex": self.start_column,
            "endColumnIndex": self.end_column,
        }


class TabularStore(Protocol):
    """Operations the core needs from the remote spreadsheet service."""

    def create_document(self, name: str, kind: str = SPREADSHEET_MIME_TYPE) -> DocumentRef: ...

    def find_documents(self, name: str, kind: str = SPREADSHEET_MIME_TYPE) -> List[DocumentRef]: ...

    def delete_document(self, document_id: str) -> None: ...

    def get_document(self, document_id: str) -> DocumentMetadata: ...

    def get_values(self, document_id: str, cell_range: str) -> Grid: ...

    def set_values(self, document_id: str, cell_range: str, values: Grid) -> None: ...

    def append_values(self, document_id: str, cell_range: str, values: Grid) -> AppendResult: ...

    def batch_set_values(self, document_id: str, data: Sequence[ValueRange]) -> None: ...

    def bold_range(self, document_id: str, grid_range: GridRange) -> None: ...


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _as_grid(raw: Any) -> Grid:
    if not isinstance(raw, list):
        return []
    grid: Grid = []
    for row in raw:
        if isinstance(row, list):
            grid.append(["" if cell is None else str(cell) for cell in row])
        else:
            grid.append([])
    return grid


def _http_error_message(exc: HttpError) -> str:
    reason = getattr(exc, "reason", None)
    if reason:
        return str(reason)
    return str(exc)


class GoogleTabularStore:
    """:class:`TabularStore` backed by google-api-python-client discovery services."""

    def __init__(self, drive: Any, sheets: Any) -> None:
        self._drive = drive
        self._sheets = sheets

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleTabularStore":
        if not settings.has_credentials:
            raise ConfigurationError(
                "GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY must both be set"
            )
        try:
            credentials = service_account.Credentials.from_service_account_info(
                settings.service_account_info(), scopes=list(GOOGLE_SCOPES)
            )
        except (ValueError, GoogleAuthError) as exc:
            raise ConfigurationError(f"Service account credentials are invalid: {exc}") from exc

        drive = build("drive", "v3", credentials=credentials, cache_discovery=False)
        sheets = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return cls(drive, sheets)

    def _execute(self, operation: str, request: Any) -> Dict[str, Any]:
        try:
            response = request.execute()
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            message = _http_error_message(exc)
            logger.warning("Google API %s failed (status=%s): %s", operation, status, message)
            raise StoreError(message, operation=operation, status=status) from exc
        except Exception as exc:
            logger.warning("Google API %s failed: %s", operation, exc)
            raise StoreError(str(exc) or type(exc).__name__, operation=operation) from exc
        return response if isinstance(response, dict) else {}

    def create_document(self, name: str, kind: str = SPREADSHEET_MIME_TYPE) -> DocumentRef:
        request = self._drive.files().create(
            body={"name": name, "mimeType": kind},
            fields="id,name",
            supportsAllDrives=True,
        )
        created = self._execute("create_document", request)
        document_id = str(created.get("id") or "")
        if not document_id:
            raise StoreError(f"Failed to create document '{name}'", operation="create_document")
        logger.info("Created document %s (%s)", name, document_id)
        return DocumentRef(id=document_id, name=str(created.get("name") or name))

    def find_documents(self, name: str, kind: str = SPREADSHEET_MIME_TYPE) -> List[DocumentRef]:
        query = f"name='{_quote(name)}' and mimeType='{_quote(kind)}' and trashed=false"
        request = self._drive.files().list(
            q=query,
            fields="files(id,name)",
            pageSize=10,
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        )
        response = self._execute("find_documents", request)
        files = response.get("files") or []
        return [
            DocumentRef(id=str(item["id"]), name=str(item.get("name") or ""))
            for item in files
            if isinstance(item, dict) and item.get("id")
        ]

    def delete_document(self, document_id: str) -> None:
        request = self._drive.files().delete(fileId=document_id, supportsAllDrives=True)
        self._execute("delete_document", request)

    def get_document(self, document_id: str) -> DocumentMetadata:
        request = self._sheets.spreadsheets().get(
            spreadsheetId=document_id,
            fields="spreadsheetId,properties.title,sheets.properties.title",
        )
        payload = self._execute("get_document", request)
        tabs = payload.get("sheets") or []
        return DocumentMetadata(
            id=str(payload.get("spreadsheetId") or document_id),
            title=str((payload.get("properties") or {}).get("title") or ""),
            sheet_titles=[
                str((tab.get("properties") or {}).get("title") or "")
                for tab in tabs
                if isinstance(tab, dict)
            ],
        )

    def get_values(self, document_id: str, cell_range: str) -> Grid:
        request = self._sheets.spreadsheets().values().get(
            spreadsheetId=document_id, range=cell_range
        )
        return _as_grid(self._execute("get_values", request).get("values"))

    def set_values(self, document_id: str, cell_range: str, values: Grid) -> None:
        request = self._sheets.spreadsheets().values().update(
            spreadsheetId=document_id,
            range=cell_range,
            valueInputOption="RAW",
            body={"values": values},
        )
        self._execute("set_values", request)

    def append_values(self, document_id: str, cell_range: str, values: Grid) -> AppendResult:
        request = self._sheets.spreadsheets().values().append(
            spreadsheetId=document_id,
            range=cell_range,
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": values},
        )
        updates = self._execute("append_values", request).get("updates") or {}
        return AppendResult(
            updated_range=str(updates.get("updatedRange") or ""),
            updated_rows=int(updates.get("updatedRows") or 0),
        )

    def batch_set_values(self, document_id: str, data: Sequence[ValueRange]) -> None:
        if not data:
            return
        request = self._sheets.spreadsheets().values().batchUpdate(
            spreadsheetId=document_id,
            body={
                "valueInputOption": "RAW",
                "data": [{"range": item.range, "values": item.values} for item in data],
            },
        )
        self._execute("batch_set_values", request)

    def bold_range(self, document_id: str, grid_range: GridRange) -> None:
        request = self._sheets.spreadsheets().batchUpdate(
            spreadsheetId=document_id,
            body={
                "requests": [
                    {
                        "repeatCell": {
                            "range": grid_range.as_request(),
                            "cell": {"userEnteredFormat": {"textFormat": {"bold": True}}},
                            "fields": "userEnteredFormat.textFormat.bold",
                        }
                    }
                ]
            },
        )
        self._execute("bold_range", request)


def first_document(documents: Sequence[DocumentRef]) -> Optional[DocumentRef]:
    return documents[0] if documents else None
