"""Contextual severity: rescore a raw finding from its reachability verdict."""

from flowaudit.rules.base import AdjustedFinding, Finding, Severity, SeverityAlreadyAdjustedError

from .context import RiskLevel
from .evaluator import ReachabilityInfo

UNREACHABLE_NOTE = " (Note: This issue may not be reachable under normal execution conditions)"


def contextual_severity(original: Severity, reachability: ReachabilityInfo) -> Severity:
    if not reachability.is_reachable:
        return Severity.INFO

    risk = reachability.risk_level
    if risk is RiskLevel.HIGH:
        return Severity.ERROR
    if risk is RiskLevel.MEDIUM:
        return Severity.WARNING if original is Severity.ERROR else original
    return Severity.INFO


def apply_contextual_severity(finding: Finding, reachability: ReachabilityInfo) -> AdjustedFinding:
    """
    Wrap a raw finding with its contextual severity.

    Raises:
        SeverityAlreadyAdjustedError: if finding was already adjusted
    """
    if isinstance(finding, AdjustedFinding):
        raise SeverityAlreadyAdjustedError(f"Finding '{finding.id}' already carries a contextual severity")

    description = finding.description
    if not reachability.is_reachable:
        description += UNREACHABLE_NOTE

    suggestion = finding.suggestion
    if reachability.mitigating_factors:
        suffix = f" Mitigating factors: {', '.join(reachability.mitigating_factors)}."
        suggestion = f"{suggestion}{suffix}" if suggestion else suffix.lstrip()

    return AdjustedFinding(
        finding=finding,
        reachability=reachability,
        original_severity=finding.severity,
        contextual_severity=contextual_severity(finding.severity, reachability),
        description=description,
        suggestion=suggestion,
    )
