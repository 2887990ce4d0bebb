from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, List, Optional, Sequence

from .errors import ConfigurationError, StoreError
from .locks import NamedLocks
from .models import CONFIG_HEADERS, ConfigRow, ConfigUpdate, UpsertSummary, composite_key
from .settings import Settings
from .tabular import SPREADSHEET_MIME_TYPE, TabularStore, ValueRange, first_document

logger = logging.getLogger(__name__)

HEADER_RANGE = "A1:E1"
DATA_RANGE = "A2:E"
APPEND_RANGE = "A:E"
# Row 1 holds the header, so data index 0 lives on sheet row 2.
FIRST_DATA_ROW = 2


def format_timestamp(moment: dt.datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2025-09-01T12:00:00.000Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    moment = moment.astimezone(dt.timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class ConfigStore:
    """Club → spreadsheet bindings, one row per ``(clubId, academicYear)``.

    Rows live in a single "config" spreadsheet. The spreadsheet service has no
    unique constraint, so the composite key is enforced here by reading the
    full sheet before every write.
    """

    def __init__(self, store: TabularStore, settings: Settings, locks: Optional[NamedLocks] = None) -> None:
        self.store = store
        self.settings = settings
        self.locks = locks or NamedLocks()
        self._document_id: Optional[str] = None

    def ensure_config_document(self) -> str:
        """Return the id of the config spreadsheet, creating it if needed.

        A configured ``CONFIG_SPREADSHEET_ID`` is validated with a metadata
        fetch; otherwise the spreadsheet is located by name or created with
        the header row.
        """
        if self._document_id is not None:
            return self._document_id

        fixed_id = self.settings.config_spreadsheet_id
        if fixed_id:
            try:
                self.store.get_document(fixed_id)
            except StoreError as exc:
                raise ConfigurationError(
                    "CONFIG_SPREADSHEET_ID is invalid or not shared with the service account"
                ) from exc
            self._document_id = fixed_id
            return fixed_id

        name = self.settings.config_spreadsheet_name
        with self.locks.hold(name):
            if self._document_id is not None:
                return self._document_id

            found = first_document(self.store.find_documents(name, SPREADSHEET_MIME_TYPE))
            if found is not None:
                document_id = found.id
            else:
                created = self.store.create_document(name, SPREADSHEET_MIME_TYPE)
                self.store.set_values(created.id, HEADER_RANGE, [list(CONFIG_HEADERS)])
                logger.info("Initialised config spreadsheet %s", created.id)
                document_id = created.id

            self._document_id = document_id
            return document_id

    def _load_all_rows(self, document_id: str) -> List[ConfigRow]:
        return [ConfigRow.from_cells(cells) for cells in self.store.get_values(document_id, DATA_RANGE)]

    def read_rows(self, document_id: str, academic_year: str) -> List[ConfigRow]:
        return [row for row in self._load_all_rows(document_id) if row.academic_year == academic_year]

    def upsert_rows(
        self,
        document_id: str,
        updates: Sequence[ConfigUpdate],
        academic_year: str,
        now: Optional[dt.datetime] = None,
    ) -> UpsertSummary:
        """Insert or overwrite rows for ``academic_year``.

        Existing keys are rewritten in place with one batched values update;
        new keys go out in one append. Every row written by a call carries the
        same ``updatedAt``.
        """
        if not updates:
            return UpsertSummary()

        existing = self._load_all_rows(document_id)
        stamp = format_timestamp(now or dt.datetime.now(dt.timezone.utc))

        index_by_key: Dict[str, int] = {}
        for index, row in enumerate(existing):
            # Duplicate keys already in storage: the last one wins.
            index_by_key[row.key] = index

        in_place: Dict[int, ConfigRow] = {}
        appends: Dict[str, ConfigRow] = {}
        for update in updates:
            row = ConfigRow(
                club_id=update.club_id,
                club_name=update.club_name,
                sheet_id=update.sheet_id,
                academic_year=academic_year,
                updated_at=stamp,
            )
            key = composite_key(update.club_id, academic_year)
            existing_index = index_by_key.get(key)
            if existing_index is not None:
                in_place[existing_index] = row
            else:
                appends[key] = row

        if in_place:
            data = []
            for index, row in in_place.items():
                row_number = index + FIRST_DATA_ROW
                data.append(ValueRange(range=f"A{row_number}:E{row_number}", values=[row.to_cells()]))
            self.store.batch_set_values(document_id, data)

        if appends:
            self.store.append_values(document_id, APPEND_RANGE, [row.to_cells() for row in appends.values()])

        summary = UpsertSummary(updated=len(in_place), appended=len(appends))
        logger.info(
            "Upserted config rows for %s: %d updated, %d appended",
            academic_year,
            summary.updated,
            summary.appended,
        )
        return summary
