from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

CONFIG_HEADERS: List[str] = ["clubId", "clubName", "sheetId", "academicYear", "updatedAt"]

REGISTRATION_HEADERS: List[str] = [
    "Timestamp",
    "Email Address",
    "What is your name (First and Last)?",
    "What grade are you in this year?",
    "We will be taking photos of club activities this year. These photos may also be used in the "
    "yearbook and club media. Do you agree to being subject of photography?",
    "Discord Username (Optional)",
]

DISCORD_NOT_PROVIDED = "Not provided"
VALID_GRADES = ("9", "10", "11", "12")


def _cell(row: Sequence[object], index: int) -> str:
    if index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value)


@dataclass(frozen=True)
class ConfigUpdate:
    """Admin-supplied binding of a club to a spreadsheet."""

    club_id: str
    club_name: str
    sheet_id: str


@dataclass(frozen=True)
class ConfigRow:
    """One club's spreadsheet binding for one academic year."""

    club_id: str
    club_name: str
    sheet_id: str
    academic_year: str
    updated_at: str

    @property
    def key(self) -> str:
        return composite_key(self.club_id, self.academic_year)

    @classmethod
    def from_cells(cls, row: Sequence[object]) -> "ConfigRow":
        """Build a row from raw cells; missing trailing cells become empty strings."""
        return cls(
            club_id=_cell(row, 0),
            club_name=_cell(row, 1),
            sheet_id=_cell(row, 2),
            academic_year=_cell(row, 3),
            updated_at=_cell(row, 4),
        )

    def to_cells(self) -> List[str]:
        return [self.club_id, self.club_name, self.sheet_id, self.academic_year, self.updated_at]

    def as_dict(self) -> dict[str, str]:
        return {
            "clubId": self.club_id,
            "clubName": self.club_name,
            "sheetId": self.sheet_id,
            "academicYear": self.academic_year,
            "updatedAt": self.updated_at,
        }


def composite_key(club_id: str, academic_year: str) -> str:
    return f"{club_id}|{academic_year}"


@dataclass(frozen=True)
class UpsertSummary:
    updated: int = 0
    appended: int = 0


@dataclass(frozen=True)
class RegistrationSubmission:
    """A student's club application as sent by the browser form."""

    timestamp: str
    email: str
    full_name: str
    grade: str
    photo_consent: bool
    discord_handle: Optional[str] = None

    def to_cells(self) -> List[str]:
        discord = (self.discord_handle or "").strip() or DISCORD_NOT_PROVIDED
        return [
            self.timestamp,
            self.email,
            self.full_name,
            self.grade,
            "Yes" if self.photo_consent else "No",
            discord,
        ]


@dataclass(frozen=True)
class DestinationResult:
    sheet_id: str
    ok: bool
    error: Optional[str] = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"sheetId": self.sheet_id, "ok": self.ok}
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class FanOutResult:
    """Outcome of appending one submission to several sheets.

    Partial failure is a normal result: ``ok`` may be anywhere from 0 to ``total``.
    """

    results: List[DestinationResult] = field(default_factory=list)

    @property
    def ok(self) -> int:
        return sum(1 for item in self.results if item.ok)

    @property
    def total(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class SheetCreation:
    sheet_id: str
    club_id: str
    club_name: str
    academic_year: str
    existing: bool

    @property
    def message(self) -> str:
        if self.existing:
            return f"Sheet for {self.club_name} {self.academic_year} already exists"
        return f"Created new sheet for {self.club_name} {self.academic_year}"
