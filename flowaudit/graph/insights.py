"""Informational findings summarizing the dependency graph."""

from collections import Counter

from flowaudit.rules.base import Category, Finding, Severity

from .types import ActionUsage, PathAnalysis

HEAVY_USAGE_THRESHOLD = 3
TOP_ACTIONS = 3


def graph_insights(paths: PathAnalysis, action_usage: tuple[ActionUsage, ...] | list[ActionUsage], file_name: str) -> list[Finding]:
    insights: list[Finding] = []

    longest = paths.longest_path
    if longest:
        insights.append(Finding(
            id="critical-path-analysis",
            category=Category.PERFORMANCE,
            severity=Severity.INFO,
            title="Critical Path Analysis",
            description=f"Longest execution path: {' -> '.join(longest)} ({len(longest)} jobs)",
            file=file_name,
            suggestion="Consider parallelizing jobs in the critical path to reduce overall execution time",
        ))

    if paths.isolated:
        insights.append(Finding(
            id="isolated-jobs",
            category=Category.STRUCTURE,
            severity=Severity.INFO,
            title="Isolated Jobs Detected",
            description=f"Jobs with no dependencies: {', '.join(paths.isolated)}",
            file=file_name,
            suggestion="These jobs can run in parallel and may complete quickly",
        ))

    counts = Counter(usage.action for usage in action_usage)
    # most_common keeps first-seen order among equal counts
    heavy = [(action, count) for action, count in counts.most_common() if count > HEAVY_USAGE_THRESHOLD]
    if heavy:
        summary = ", ".join(f"{action} ({count}x)" for action, count in heavy[:TOP_ACTIONS])
        insights.append(Finding(
            id="action-usage-summary",
            category=Category.STRUCTURE,
            severity=Severity.INFO,
            title="Action Usage Summary",
            description=f"Most used actions: {summary}",
            file=file_name,
            suggestion="Consider creating composite actions for frequently used action sequences",
        ))

    return insights
