from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .config_store import ConfigStore
from .errors import StoreError, ValidationError
from .locks import NamedLocks
from .models import (
    REGISTRATION_HEADERS,
    ConfigUpdate,
    DestinationResult,
    FanOutResult,
    RegistrationSubmission,
    SheetCreation,
)
from .tabular import SPREADSHEET_MIME_TYPE, GridRange, TabularStore, first_document

logger = logging.getLogger(__name__)

REGISTRATION_HEADER_RANGE = "A1:F1"
REGISTRATION_APPEND_RANGE = "A:F"

_WHITESPACE = re.compile(r"\s+")


def derive_club_id(club_name: str) -> str:
    """Stable slug for a club: lowercase, whitespace runs become ``-``."""
    return _WHITESPACE.sub("-", club_name.strip().lower())


def registration_sheet_name(club_name: str, academic_year: str) -> str:
    return f"{club_name} Registration {academic_year}"


class RegistrationSink:
    """Writes registrations into per-club spreadsheets."""

    def __init__(self, store: TabularStore, locks: Optional[NamedLocks] = None) -> None:
        self.store = store
        self.locks = locks or NamedLocks()

    def submit_to_one(self, sheet_id: str, submission: RegistrationSubmission) -> None:
        if not (sheet_id or "").strip():
            raise ValidationError("sheetId is required")
        self.store.append_values(sheet_id, REGISTRATION_APPEND_RANGE, [submission.to_cells()])

    def submit_to_many(self, sheet_ids: Sequence[str], submission: RegistrationSubmission) -> FanOutResult:
        """Append ``submission`` to every sheet in ``sheet_ids``.

        A failing destination is recorded and never stops the others.
        """
        if not sheet_ids:
            raise ValidationError("sheetIds[] required")

        row = submission.to_cells()
        results: List[DestinationResult] = []
        for sheet_id in sheet_ids:
            try:
                self.store.append_values(sheet_id, REGISTRATION_APPEND_RANGE, [row])
            except StoreError as exc:
                logger.warning("Append failed for %s: %s", sheet_id, exc)
                results.append(DestinationResult(sheet_id=sheet_id, ok=False, error=str(exc) or "Unknown error"))
                continue
            results.append(DestinationResult(sheet_id=sheet_id, ok=True))

        outcome = FanOutResult(results=results)
        if outcome.ok < outcome.total:
            logger.info("Registration fan-out partially failed: %d/%d ok", outcome.ok, outcome.total)
        return outcome

    def create_registration_sheet(
        self,
        club_name: str,
        academic_year: str,
        config_store: ConfigStore,
    ) -> SheetCreation:
        """Find or create the club's registration spreadsheet for the year and record it in the config."""
        club_name = (club_name or "").strip()
        if not club_name:
            raise ValidationError("clubName is required")

        club_id = derive_club_id(club_name)
        name = registration_sheet_name(club_name, academic_year)

        with self.locks.hold(name):
            found = first_document(self.store.find_documents(name, SPREADSHEET_MIME_TYPE))
            if found is not None:
                sheet_id = found.id
                existing = True
            else:
                created = self.store.create_document(name, SPREADSHEET_MIME_TYPE)
                sheet_id = created.id
                existing = False
                self.store.set_values(sheet_id, REGISTRATION_HEADER_RANGE, [list(REGISTRATION_HEADERS)])
                self.store.bold_range(
                    sheet_id,
                    GridRange(start_row=0, end_row=1, start_column=0, end_column=len(REGISTRATION_HEADERS)),
                )

        config_id = config_store.ensure_config_document()
        config_store.upsert_rows(
            config_id,
            [ConfigUpdate(club_id=club_id, club_name=club_name, sheet_id=sheet_id)],
            academic_year,
        )

        return SheetCreation(
            sheet_id=sheet_id,
            club_id=club_id,
            club_name=club_name,
            academic_year=academic_year,
            existing=existing,
        )
