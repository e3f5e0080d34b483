"""Finding ordering for console and JSON output."""

PRIORITY_ORDER = {
    "error": 0,
    "warning": 1,
    "info": 2,
    "unknown": 3,
}


CATEGORY_IMPORTANCE = {
    "security": 0,
    "structure": 1,
    "dependency": 2,
    "performance": 3,
    "best-practice": 4,
}


SEVERITY_MAPPINGS = {
    "error": "error",
    "critical": "error",
    "high": "error",
    "fatal": "error",
    "warning": "warning",
    "warn": "warning",
    "medium": "warning",
    "info": "info",
    "low": "info",
    "note": "info",
    "notice": "info",
}


def normalize_severity(severity_value) -> str:
    """Map foreign severity spellings onto error/warning/info."""
    if severity_value is None:
        return "warning"

    key = str(severity_value).strip().lower()
    return SEVERITY_MAPPINGS.get(key, "warning")


def get_sort_key(finding) -> tuple:
    """Sort key: severity first, then category, then location line."""
    severity = finding.severity.value
    category = finding.category.value
    line = finding.location.line if finding.location and finding.location.line else 0

    return (
        PRIORITY_ORDER.get(severity, PRIORITY_ORDER["unknown"]),
        CATEGORY_IMPORTANCE.get(category, len(CATEGORY_IMPORTANCE)),
        line,
        finding.id,
    )


def sort_findings(findings: list) -> list:
    """Return findings ordered for display. The input list is not modified."""
    return sorted(findings, key=get_sort_key)
