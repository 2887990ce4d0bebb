from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pytest

from clubreg_core.errors import StoreError
from clubreg_core.tabular import (
    SPREADSHEET_MIME_TYPE,
    AppendResult,
    DocumentMetadata,
    DocumentRef,
    Grid,
    GridRange,
    ValueRange,
)

_A1 = re.compile(r"^([A-Z]+)(\d*)(?::([A-Z]+)(\d*))?$")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def _parse_range(cell_range: str) -> Tuple[int, int, Optional[int]]:
    """Return (first column, first row, last row or None); rows are 1-based."""
    match = _A1.match(cell_range)
    if not match:
        raise AssertionError(f"unsupported range {cell_range!r}")
    start_col, start_row, _, end_row = match.groups()
    first_row = int(start_row) if start_row else 1
    last_row = int(end_row) if end_row else None
    return _column_index(start_col), first_row, last_row


class _FakeDocument:
    def __init__(self, document_id: str, name: str, kind: str) -> None:
        self.id = document_id
        self.name = name
        self.kind = kind
        self.rows: Grid = []
        self.bold: List[GridRange] = []

    def _ensure_row(self, row_number: int) -> List[str]:
        while len(self.rows) < row_number:
            self.rows.append([])
        return self.rows[row_number - 1]

    def write(self, first_col: int, first_row: int, values: Grid) -> None:
        for offset, values_row in enumerate(values):
            row = self._ensure_row(first_row + offset)
            while len(row) < first_col + len(values_row):
                row.append("")
            for col, value in enumerate(values_row):
                row[first_col + col] = str(value)

    def last_used_row(self) -> int:
        for index in range(len(self.rows), 0, -1):
            if any(cell for cell in self.rows[index - 1]):
                return index
        return 0


class FakeTabularStore:
    """In-memory stand-in for the spreadsheet service that records every call."""

    def __init__(self) -> None:
        self.documents: Dict[str, _FakeDocument] = {}
        self.calls: List[Tuple[str, str]] = []
        self.failing_documents: Set[str] = set()
        self._next_id = 1

    def add_document(self, name: str, rows: Optional[Grid] = None, kind: str = SPREADSHEET_MIME_TYPE) -> str:
        document_id = f"doc-{self._next_id}"
        self._next_id += 1
        document = _FakeDocument(document_id, name, kind)
        document.rows = [list(row) for row in (rows or [])]
        self.documents[document_id] = document
        return document_id

    def calls_named(self, operation: str) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] == operation]

    def _document(self, operation: str, document_id: str) -> _FakeDocument:
        self.calls.append((operation, document_id))
        if document_id in self.failing_documents:
            raise StoreError(f"{operation} failed for {document_id}", operation=operation, status=403)
        document = self.documents.get(document_id)
        if document is None:
            raise StoreError("Requested entity was not found.", operation=operation, status=404)
        return document

    def create_document(self, name: str, kind: str = SPREADSHEET_MIME_TYPE) -> DocumentRef:
        self.calls.append(("create_document", name))
        return DocumentRef(id=self.add_document(name, kind=kind), name=name)

    def find_documents(self, name: str, kind: str = SPREADSHEET_MIME_TYPE) -> List[DocumentRef]:
        self.calls.append(("find_documents", name))
        return [
            DocumentRef(id=doc.id, name=doc.name)
            for doc in self.documents.values()
            if doc.name == name and doc.kind == kind
        ]

    def delete_document(self, document_id: str) -> None:
        self._document("delete_document", document_id)
        del self.documents[document_id]

    def get_document(self, document_id: str) -> DocumentMetadata:
        document = self._document("get_document", document_id)
        return DocumentMetadata(id=document.id, title=document.name, sheet_titles=["Sheet1"])

    def get_values(self, document_id: str, cell_range: str) -> Grid:
        document = self._document("get_values", document_id)
        first_col, first_row, last_row = _parse_range(cell_range)
        end = document.last_used_row() if last_row is None else min(last_row, len(document.rows))
        return [list(row[first_col:]) for row in document.rows[first_row - 1 : end]]

    def set_values(self, document_id: str, cell_range: str, values: Grid) -> None:
        document = self._document("set_values", document_id)
        first_col, first_row, _ = _parse_range(cell_range)
        document.write(first_col, first_row, values)

    def append_values(self, document_id: str, cell_range: str, values: Grid) -> AppendResult:
        document = self._document("append_values", document_id)
        first_col, _, _ = _parse_range(cell_range)
        start = document.last_used_row() + 1
        document.write(first_col, start, values)
        return AppendResult(updated_range=f"Sheet1!A{start}", updated_rows=len(values))

    def batch_set_values(self, document_id: str, data: Sequence[ValueRange]) -> None:
        document = self._document("batch_set_values", document_id)
        for item in data:
            first_col, first_row, _ = _parse_range(item.range)
            document.write(first_col, first_row, item.values)

    def bold_range(self, document_id: str, grid_range: GridRange) -> None:
        self._document("bold_range", document_id).bold.append(grid_range)


@pytest.fixture
def fake_store() -> FakeTabularStore:
    return FakeTabularStore()
