from __future__ import annotations

import hmac

from .errors import AuthorizationError
from .settings import Settings


def verify_admin_secret(settings: Settings, provided: str | None) -> None:
    """Raise :class:`AuthorizationError` unless ``provided`` matches the configured admin secret.

    An unset server secret rejects every caller.
    """
    expected = settings.admin_secret
    if not expected:
        raise AuthorizationError("Admin secret is not configured")
    if not provided:
        raise AuthorizationError("Missing admin secret")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthorizationError("Invalid admin secret")
