"""Per-document analysis pipeline and the multi-document runner.

analyze_document() runs the stages for one workflow strictly in sequence:

    extract dependencies -> build graph -> cycles -> paths
    execution context -> reachability -> contextual severity
    insights -> summary

Every stage returns an immutable value; this module is the only place they
are folded together. analyze_documents() runs one pipeline per document on
a thread pool. Documents share nothing, and a document that fails or runs
past its time budget yields a report with a single error finding instead of
aborting the batch. A document's budget starts when a worker picks it up, so
documents queued behind a slow one are never charged for the wait.
"""

import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flowaudit.config_runtime import DEFAULTS, get_limit
from flowaudit.graph import (
    GraphSummary,
    JobGraph,
    analyze_paths,
    cycle_findings,
    detect_cycles,
    extract_dependencies,
    graph_insights,
)
from flowaudit.reachability import (
    ExecutionContext,
    ReachabilityStats,
    analyze_path_sensitivity,
    apply_contextual_severity,
    build_execution_context,
    compute_stats,
    evaluate_reachability,
    reachability_insights,
)
from flowaudit.rules.base import AdjustedFinding, Category, Finding, Severity
from flowaudit.utils.constants import PRODUCTION_MARKERS
from flowaudit.utils.deadline import check_deadline, deadline_after
from flowaudit.utils.logging import logger
from flowaudit.workflow.loader import WorkflowParseError, load_document
from flowaudit.workflow.models import Workflow, WorkflowDocument


@dataclass(frozen=True)
class ReachabilitySummary:
    stats: ReachabilityStats = field(default_factory=ReachabilityStats)
    triggers: tuple[str, ...] = ()
    has_privileged_triggers: bool = False
    has_secrets: bool = False
    conditional_jobs: int = 0

    @classmethod
    def from_context(cls, stats: ReachabilityStats, context: ExecutionContext) -> "ReachabilitySummary":
        return cls(
            stats=stats,
            triggers=context.triggers,
            has_privileged_triggers=context.factors.has_privileged_trigger,
            has_secrets=context.factors.has_secrets,
            conditional_jobs=context.conditional_jobs,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "executionContext": {
                "triggers": list(self.triggers),
                "hasPrivilegedTriggers": self.has_privileged_triggers,
                "hasSecrets": self.has_secrets,
                "conditionalJobs": self.conditional_jobs,
            },
        }


@dataclass(frozen=True)
class ReportSummary:
    total_issues: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    score: int = 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalIssues": self.total_issues,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "infoCount": self.info_count,
            "score": self.score,
        }


@dataclass(frozen=True)
class DocumentReport:
    """Everything the core derives from one workflow document."""

    file_name: str
    findings: tuple = ()
    graph: GraphSummary = field(default_factory=GraphSummary)
    reachability: ReachabilitySummary = field(default_factory=ReachabilitySummary)
    summary: ReportSummary = field(default_factory=ReportSummary)

    @property
    def has_errors(self) -> bool:
        return self.summary.error_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "results": [finding.to_dict() for finding in self.findings],
            "callGraphData": self.graph.to_dict(),
            "reachabilityData": self.reachability.to_dict(),
            "summary": self.summary.to_dict(),
        }


def is_complex(workflow: Workflow) -> bool:
    total_steps = sum(len(job.steps) for job in workflow.jobs.values())
    return len(workflow.jobs) > 2 or total_steps > 10


def has_production_indicators(content: str) -> bool:
    return any(marker in content for marker in PRODUCTION_MARKERS)


def summarize(findings, complex_workflow: bool = False, production: bool = False) -> ReportSummary:
    """Severity counts and a 0..100 quality score.

    Errors weigh 3, warnings 2, info 0.5; the weighted sum is scaled by
    workflow complexity and production indicators. Clean results get a bonus.
    """
    errors = sum(1 for f in findings if f.severity is Severity.ERROR)
    warnings = sum(1 for f in findings if f.severity is Severity.WARNING)
    infos = sum(1 for f in findings if f.severity is Severity.INFO)

    score = 100
    if findings:
        complexity_factor = 1.2 if complex_workflow else 0.8
        production_factor = 1.3 if production else 1.0
        weighted = (errors * 3 + warnings * 2 + infos * 0.5) * complexity_factor * production_factor
        max_issues = 30 if complex_workflow else 15

        # round half up; the builtin round() would round half to even
        score = max(0, int(100 - (weighted / max_issues) * 100 + 0.5))
        if errors == 0:
            score = min(100, score + 5)
        if errors == 0 and warnings == 0:
            score = min(100, score + 5)

    return ReportSummary(
        total_issues=len(findings),
        error_count=errors,
        warning_count=warnings,
        info_count=infos,
        score=score,
    )


def _coerce_finding(item: Any, file_name: str) -> Finding | AdjustedFinding:
    if isinstance(item, (Finding, AdjustedFinding)):
        return item
    return Finding.from_dict(item, default_file=file_name)


def adjust_security_findings(
    findings: list[Finding], context: ExecutionContext, document: WorkflowDocument
) -> list[AdjustedFinding]:
    """Evaluate reachability for each raw security finding and rescore it once."""
    adjusted = []
    for finding in findings:
        reachability = evaluate_reachability(finding, context, document.workflow)

        sensitivity = analyze_path_sensitivity(document.content, finding)
        if sensitivity.sensitive_to_input and sensitivity.input_sources:
            reachability = reachability.with_required_condition(
                f"Input-dependent: {', '.join(sensitivity.input_sources)}"
            )

        adjusted.append(apply_contextual_severity(finding, reachability))
    return adjusted


def analyze_document(
    document: WorkflowDocument,
    findings=(),
    cfg: dict[str, Any] | None = None,
    deadline: float | None = None,
) -> DocumentReport:
    """
    Run the full pipeline over one parsed document.

    Args:
        document: Parsed workflow and its raw text
        findings: Prior findings for this document (Finding, AdjustedFinding or dicts)
        cfg: Runtime configuration; built-in defaults when omitted
        deadline: time.monotonic() value past which analysis stops with
            AnalysisTimeoutError; no budget when omitted

    Returns:
        DocumentReport with structural findings, adjusted security findings,
        pass-through findings, insights, graph data and summary
    """
    cfg = cfg or DEFAULTS
    name = document.name
    workflow = document.workflow

    extraction = extract_dependencies(
        workflow, document.content, name, context_lines=get_limit(cfg, "snippet_context_lines")
    )
    graph = JobGraph(workflow.job_ids, extraction.edges)
    cycles = detect_cycles(graph, deadline)
    paths = analyze_paths(
        graph, exhaustive_limit=get_limit(cfg, "max_jobs_for_exhaustive_paths"), deadline=deadline
    )

    check_deadline(deadline, "graph analysis")
    context = build_execution_context(workflow, document.content)

    prior = [_coerce_finding(item, name) for item in findings]
    raw_security = [f for f in prior if isinstance(f, Finding) and f.is_security]
    adjusted = adjust_security_findings(raw_security, context, document)
    check_deadline(deadline, "reachability")

    adjusted_iter = iter(adjusted)
    folded_prior = []
    for finding in prior:
        # Raw security findings are replaced in place by their adjusted form
        if isinstance(finding, Finding) and finding.is_security:
            folded_prior.append(next(adjusted_iter))
        else:
            folded_prior.append(finding)

    stats = compute_stats(adjusted)
    results = [
        *extraction.findings,
        *cycle_findings(cycles, name, document.content),
        *folded_prior,
        *graph_insights(paths, extraction.action_usage, name),
        *reachability_insights(adjusted, context, name),
    ]

    logger.debug(
        f"{name}: {len(extraction.edges)} edges, {len(cycles)} cycles, "
        f"{len(adjusted)} security findings adjusted, {len(results)} results"
    )

    return DocumentReport(
        file_name=name,
        findings=tuple(results),
        graph=GraphSummary(
            edges=extraction.edges,
            cycles=tuple(cycles),
            paths=paths,
            action_usage=extraction.action_usage,
        ),
        reachability=ReachabilitySummary.from_context(stats, context),
        summary=summarize(results, is_complex(workflow), has_production_indicators(document.content)),
    )


def failure_report(file_name: str, finding_id: str, title: str, description: str, suggestion: str | None = None) -> DocumentReport:
    """Report for a document that could not be analyzed."""
    finding = Finding(
        id=finding_id,
        category=Category.STRUCTURE,
        severity=Severity.ERROR,
        title=title,
        description=description,
        file=file_name,
        suggestion=suggestion,
    )
    return DocumentReport(
        file_name=file_name,
        findings=(finding,),
        summary=summarize([finding]),
    )


def _analyze_source(
    source: WorkflowDocument | Path | str, findings, cfg: dict[str, Any], deadline: float | None = None
) -> DocumentReport:
    if isinstance(source, WorkflowDocument):
        document = source
    else:
        try:
            document = load_document(source)
        except WorkflowParseError as e:
            logger.warning(f"Could not parse {e.document}: {e}")
            return failure_report(
                e.document,
                "yaml-parse-error",
                "YAML Parsing Error",
                str(e),
                "Fix the YAML syntax or structure so the workflow can be parsed",
            )
    return analyze_document(document, findings, cfg, deadline)


def source_name(source: WorkflowDocument | Path | str) -> str:
    if isinstance(source, WorkflowDocument):
        return source.name
    return Path(source).as_posix()


QUEUE_POLL_INTERVAL = 0.05


def _await_report(future: Future, started: dict[int, float], index: int, timeout: float) -> DocumentReport:
    """Wait for one document, charging its budget from the moment a worker started it."""
    while index not in started and not future.done():
        wait([future], timeout=QUEUE_POLL_INTERVAL)
    if future.done():
        return future.result()
    remaining = started[index] + timeout - time.monotonic()
    return future.result(timeout=max(remaining, 0.0))


def analyze_documents(
    sources: list[WorkflowDocument | Path | str],
    findings_by_file: dict[str, list] | None = None,
    max_workers: int | None = None,
    timeout: float | None = None,
    cfg: dict[str, Any] | None = None,
) -> list[DocumentReport]:
    """
    Analyze many documents concurrently.

    Sources are parsed documents or paths to load. Results come back in
    input order regardless of completion order.

    Each document gets `timeout` seconds from the moment a worker starts
    it; time spent queued does not count. The graph searches check the
    deadline as they run and stop the worker. Other stages cannot be
    interrupted: a document stuck in one is reported as timed out and its
    worker finishes in the background.

    Args:
        sources: Documents or file paths
        findings_by_file: Prior findings keyed by document name
        max_workers: Thread pool size (limits.max_workers when omitted)
        timeout: Per-document time budget in seconds (limits.document_timeout when omitted)
        cfg: Runtime configuration
    """
    cfg = cfg or DEFAULTS
    findings_by_file = findings_by_file or {}
    max_workers = max_workers or get_limit(cfg, "max_workers")
    timeout = timeout if timeout is not None else get_limit(cfg, "document_timeout")

    if not sources:
        return []

    logger.info(f"Analyzing {len(sources)} workflow document(s) with {max_workers} worker(s)")

    started: dict[int, float] = {}

    def run(index: int, source: WorkflowDocument | Path | str) -> DocumentReport:
        started[index] = time.monotonic()
        findings = findings_by_file.get(source_name(source), ())
        return _analyze_source(source, findings, cfg, deadline_after(timeout))

    reports: list[DocumentReport] = []
    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = [executor.submit(run, index, source) for index, source in enumerate(sources)]

        for index, (source, future) in enumerate(zip(sources, futures)):
            name = source_name(source)
            try:
                reports.append(_await_report(future, started, index, timeout))
            except TimeoutError:
                logger.warning(f"{name}: analysis exceeded {timeout}s budget")
                reports.append(failure_report(
                    name,
                    "analysis-timeout",
                    "Analysis Time Budget Exceeded",
                    f"Analysis of '{name}' did not finish within {timeout} seconds",
                ))
            except Exception as e:
                logger.opt(exception=True).warning(f"{name}: analysis failed: {e}")
                reports.append(failure_report(
                    name,
                    "analysis-failed",
                    "Analysis Failed",
                    f"Analysis of '{name}' failed: {type(e).__name__}: {e}",
                ))
    finally:
        # Every future has been awaited or abandoned past its deadline
        executor.shutdown(wait=False, cancel_futures=True)

    return reports
