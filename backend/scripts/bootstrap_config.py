"""CLI helper that resolves (or creates) the config spreadsheet and prints this year's bindings.

Run once after provisioning the service account and copy the printed id into
``CONFIG_SPREADSHEET_ID`` so the API never has to search Drive.
"""

from __future__ import annotations

import sys
from typing import List

from clubreg_core import ConfigRow, ConfigStore, Settings, resolve_academic_year
from clubreg_core.errors import ConfigurationError, StoreError
from clubreg_core.tabular import GoogleTabularStore


def _format_rows(rows: List[ConfigRow]) -> str:
    if not rows:
        return "  (no clubs configured)"
    return "\n".join(f"  - {row.club_id}: {row.club_name} -> {row.sheet_id} ({row.updated_at})" for row in rows)


def main() -> int:
    settings = Settings.from_env()
    try:
        config = ConfigStore(GoogleTabularStore.from_settings(settings), settings)
        config_id = config.ensure_config_document()
        year = resolve_academic_year()
        rows = config.read_rows(config_id, year)
    except (ConfigurationError, StoreError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(f"Config spreadsheet: {config_id}")
    print(f"Academic year {year}:")
    print(_format_rows(rows))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
