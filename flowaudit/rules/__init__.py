"""Finding contracts shared by detectors, the analysis core and renderers."""

from .base import (
    AdjustedFinding,
    Category,
    CodeSnippet,
    Finding,
    Location,
    Severity,
    SeverityAlreadyAdjustedError,
)

__all__ = [
    "AdjustedFinding",
    "Category",
    "CodeSnippet",
    "Finding",
    "Location",
    "Severity",
    "SeverityAlreadyAdjustedError",
]
