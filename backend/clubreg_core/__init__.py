"""Club registration domain: config sheet bookkeeping and registration fan-out."""

from .academic_year import resolve_academic_year
from .config_store import ConfigStore
from .models import ConfigRow, ConfigUpdate, FanOutResult, RegistrationSubmission
from .registration import RegistrationSink
from .settings import Settings

__all__ = [
    "ConfigRow",
    "ConfigStore",
    "ConfigUpdate",
    "FanOutResult",
    "RegistrationSink",
    "RegistrationSubmission",
    "Settings",
    "resolve_academic_year",
]
