"""Aggregate statistics and informational findings over adjusted security findings."""

from dataclasses import dataclass
from typing import Any

from flowaudit.rules.base import AdjustedFinding, Category, Finding, Severity
from flowaudit.utils.finding_priority import PRIORITY_ORDER

from .context import ExecutionContext, RiskLevel


@dataclass(frozen=True)
class ReachabilityStats:
    total_issues: int = 0
    reachable_issues: int = 0
    high_risk_issues: int = 0
    mitigated_issues: int = 0
    # Share of findings whose effective severity went down, in percent
    false_positive_reduction: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalIssues": self.total_issues,
            "reachableIssues": self.reachable_issues,
            "highRiskIssues": self.high_risk_issues,
            "mitigatedIssues": self.mitigated_issues,
            "falsePositiveReduction": self.false_positive_reduction,
        }


def _downgraded(finding: AdjustedFinding) -> bool:
    return PRIORITY_ORDER[finding.contextual_severity.value] > PRIORITY_ORDER[finding.original_severity.value]


def compute_stats(adjusted: list[AdjustedFinding]) -> ReachabilityStats:
    if not adjusted:
        return ReachabilityStats()

    downgraded = sum(1 for f in adjusted if _downgraded(f))
    return ReachabilityStats(
        total_issues=len(adjusted),
        reachable_issues=sum(1 for f in adjusted if f.reachability.is_reachable),
        high_risk_issues=sum(1 for f in adjusted if f.reachability.risk_level is RiskLevel.HIGH),
        mitigated_issues=sum(1 for f in adjusted if f.reachability.mitigating_factors),
        false_positive_reduction=round(downgraded * 100.0 / len(adjusted), 1),
    )


def reachability_insights(adjusted: list[AdjustedFinding], context: ExecutionContext, file_name: str) -> list[Finding]:
    insights: list[Finding] = []

    if context.factors.has_privileged_trigger:
        privileged = [
            f for f in adjusted
            if f.reachability.is_reachable and f.reachability.risk_level is RiskLevel.HIGH
        ]
        if privileged:
            insights.append(Finding(
                id="privileged-trigger-risk",
                category=Category.SECURITY,
                severity=Severity.WARNING,
                title="High-Risk Issues with Privileged Triggers",
                description=(
                    f"{len(privileged)} security issues are reachable through privileged triggers "
                    "(workflow_run, pull_request_target, repository_dispatch)"
                ),
                file=file_name,
                suggestion=(
                    "Review all issues marked as high-risk and consider implementing additional "
                    "safeguards for privileged trigger workflows."
                ),
            ))

    conditional = [f for f in adjusted if f.reachability.required_conditions]
    if conditional:
        insights.append(Finding(
            id="conditional-security-issues",
            category=Category.SECURITY,
            severity=Severity.INFO,
            title="Conditional Security Issues",
            description=(
                f"{len(conditional)} security issues are subject to execution conditions, "
                "reducing their immediate risk"
            ),
            file=file_name,
            suggestion="Monitor condition changes that might affect the reachability of these security issues.",
        ))

    mitigated = [f for f in adjusted if f.reachability.mitigating_factors]
    if mitigated:
        insights.append(Finding(
            id="mitigated-security-issues",
            category=Category.SECURITY,
            severity=Severity.INFO,
            title="Issues with Mitigating Factors",
            description=(
                f"{len(mitigated)} security issues have mitigating factors that reduce their effective risk"
            ),
            file=file_name,
            suggestion="Continue to maintain these mitigating factors and ensure they remain effective over time.",
        ))

    return insights
