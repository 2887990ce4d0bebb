from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

DEFAULT_CONFIG_SPREADSHEET_NAME = "Club Registration Config"

GOOGLE_SCOPES: Tuple[str, ...] = (
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
)


def normalise_private_key(raw: str) -> str:
    """Turn literal ``\\n`` escapes (as stored in most env files) into real newlines."""
    return raw.replace("\\n", "\n")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup and never mutated."""

    service_account_email: str = ""
    private_key: str = field(default="", repr=False)
    config_spreadsheet_id: Optional[str] = None
    config_spreadsheet_name: str = DEFAULT_CONFIG_SPREADSHEET_NAME
    admin_secret: str = field(default="", repr=False)
    cors_allow_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        origins = tuple(
            origin.strip()
            for origin in (env.get("CORS_ALLOW_ORIGINS") or "*").split(",")
            if origin.strip()
        )

        return cls(
            service_account_email=(env.get("GOOGLE_SERVICE_ACCOUNT_EMAIL") or "").strip(),
            private_key=normalise_private_key(env.get("GOOGLE_PRIVATE_KEY") or ""),
            config_spreadsheet_id=(env.get("CONFIG_SPREADSHEET_ID") or "").strip() or None,
            config_spreadsheet_name=(
                (env.get("CONFIG_SPREADSHEET_NAME") or "").strip() or DEFAULT_CONFIG_SPREADSHEET_NAME
            ),
            admin_secret=env.get("ADMIN_SECRET") or "",
            cors_allow_origins=origins or ("*",),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.service_account_email and self.private_key)

    def service_account_info(self) -> dict[str, str]:
        """Minimal service-account payload accepted by google-auth."""
        return {
            "type": "service_account",
            "client_email": self.service_account_email,
            "private_key": self.private_key,
            "token_uri": "https://oauth2.googleapis.com/token",
        }
