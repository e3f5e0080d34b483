"""flowaudit utilities package."""

from .constants import (
    DEFAULT_ARTIFACT_NAME,
    ERROR_LOG_FILE,
    PRIVILEGED_TRIGGERS,
    PUBLIC_TRIGGERS,
    STATE_DIR,
)
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .finding_priority import (
    PRIORITY_ORDER,
    SEVERITY_MAPPINGS,
    get_sort_key,
    normalize_severity,
    sort_findings,
)
from .logging import logger

__all__ = [
    "STATE_DIR",
    "ERROR_LOG_FILE",
    "DEFAULT_ARTIFACT_NAME",
    "PRIVILEGED_TRIGGERS",
    "PUBLIC_TRIGGERS",
    "handle_exceptions",
    "ExitCodes",
    "PRIORITY_ORDER",
    "SEVERITY_MAPPINGS",
    "get_sort_key",
    "normalize_severity",
    "sort_findings",
    "logger",
]
