from __future__ import annotations

import datetime as dt
from typing import Optional

# First month (1-based) that belongs to the forward-looking label.
ACADEMIC_YEAR_START_MONTH = 8


def resolve_academic_year(moment: Optional[dt.datetime] = None) -> str:
    """Return the academic year label (e.g. ``"2025/2026"``) for ``moment``.

    August onwards belongs to the year that starts in that calendar year;
    January through July belongs to the year that started the previous
    calendar year.
    """
    moment = moment or dt.datetime.now()
    year = moment.year
    if moment.month >= ACADEMIC_YEAR_START_MONTH:
        return f"{year}/{year + 1}"
    return f"{year - 1}/{year}"
