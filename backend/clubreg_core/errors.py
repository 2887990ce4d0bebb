"""Error taxonomy shared by the core and the API layer."""

from __future__ import annotations


class ClubRegistrationError(Exception):
    """Base class for every error raised by :mod:`clubreg_core`."""


class ConfigurationError(ClubRegistrationError, RuntimeError):
    """The process configuration cannot be used (missing credentials, bad config sheet id)."""


class StoreError(ClubRegistrationError, RuntimeError):
    """A call to the remote tabular store failed."""

    def __init__(self, message: str, *, operation: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.status = status


class ValidationError(ClubRegistrationError, ValueError):
    """Caller supplied malformed input."""


class AuthorizationError(ClubRegistrationError, PermissionError):
    """Shared admin secret missing or mismatched."""
