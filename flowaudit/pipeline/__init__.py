"""Analysis pipeline and console presentation."""

from .engine import (
    DocumentReport,
    ReachabilitySummary,
    ReportSummary,
    analyze_document,
    analyze_documents,
    failure_report,
    summarize,
)

__all__ = [
    "DocumentReport",
    "ReachabilitySummary",
    "ReportSummary",
    "analyze_document",
    "analyze_documents",
    "failure_report",
    "summarize",
]
