"""Dependency extraction: turns a parsed workflow into job-to-job edges.

Four edge sources are examined independently and folded by
extract_dependencies():

    needs     explicit ordering via `needs:`
    artifact  upload-artifact in one job, download-artifact in another
    output    `needs.<job>.outputs.<name>` references inside step bodies
    env       job/step env keys shadowing the global env (findings only)

Structural problems (dangling `needs`, unknown output sources) become
findings instead of edges, so every edge in the result points at two jobs
that exist.
"""

import json
import re
from collections import Counter

from flowaudit.rules.base import Category, Finding, Location, Severity
from flowaudit.utils.constants import DEFAULT_ARTIFACT_NAME, DOWNLOAD_ARTIFACT_ACTION, UPLOAD_ARTIFACT_ACTION
from flowaudit.utils.logging import logger
from flowaudit.workflow.locate import (
    extract_code_snippet,
    find_job_line_number,
    find_step_line_number,
)
from flowaudit.workflow.models import ActionStep, Workflow

from .types import ActionUsage, DependencyKind, ExtractionResult, JobDependency

OUTPUT_REFERENCE = re.compile(r"needs\.([A-Za-z_][\w-]*)\.outputs\.([A-Za-z_][\w-]*)")


def _snippet(content: str, line: int, context_lines: int):
    return extract_code_snippet(content, line, context_lines) if line else None


def extract_needs(
    workflow: Workflow, content: str, file_name: str, context_lines: int = 3
) -> tuple[list[JobDependency], list[Finding]]:
    """Edges from `needs:`; unresolved references become findings."""
    edges: list[JobDependency] = []
    findings: list[Finding] = []

    for job_id, job in workflow.jobs.items():
        for dep in job.needs:
            if dep in workflow.jobs:
                edges.append(JobDependency(source=dep, target=job_id, kind=DependencyKind.NEEDS))
                continue

            line = find_job_line_number(content, job_id)
            findings.append(Finding(
                id=f"missing-job-dependency-{job_id}-{dep}",
                category=Category.STRUCTURE,
                severity=Severity.ERROR,
                title="Missing Job Dependency",
                description=f"Job '{job_id}' depends on '{dep}' which doesn't exist",
                file=file_name,
                location=Location(line=line or None, job=job_id),
                suggestion=f"Remove the dependency on '{dep}' or create the missing job",
                snippet=_snippet(content, line, context_lines),
            ))

    return edges, findings


def _artifact_name(step: ActionStep) -> str:
    name = step.with_args.get("name")
    return str(name) if name else DEFAULT_ARTIFACT_NAME


def extract_artifacts(
    workflow: Workflow, content: str, file_name: str, context_lines: int = 2
) -> tuple[list[JobDependency], list[Finding]]:
    """Edges from artifact hand-off between different jobs.

    Uploads whose name is never downloaded anywhere are reported as dead
    output. An upload and download inside the same job produce no edge.
    """
    uploads: list[tuple[str, str, int]] = []
    downloads: list[tuple[str, str]] = []

    for job, step in workflow.iter_steps():
        if not isinstance(step, ActionStep):
            continue
        if UPLOAD_ARTIFACT_ACTION in step.uses:
            uploads.append((_artifact_name(step), job.job_id, step.index))
        elif DOWNLOAD_ARTIFACT_ACTION in step.uses:
            downloads.append((_artifact_name(step), job.job_id))

    edges: list[JobDependency] = []
    seen: set[tuple[str, str, str]] = set()
    for name, downloader in downloads:
        for upload_name, uploader, _ in uploads:
            if upload_name != name or uploader == downloader:
                continue
            key = (uploader, downloader, name)
            if key in seen:
                continue
            seen.add(key)
            edges.append(JobDependency(source=uploader, target=downloader, kind=DependencyKind.ARTIFACT, detail=name))

    downloaded = {name for name, _ in downloads}
    findings: list[Finding] = []
    reported: set[str] = set()
    for name, job_id, step_index in uploads:
        if name in downloaded or name in reported:
            continue
        reported.add(name)
        line = find_step_line_number(content, job_id, step_index)
        findings.append(Finding(
            id=f"unused-artifact-{name}",
            category=Category.PERFORMANCE,
            severity=Severity.WARNING,
            title="Unused Artifact",
            description=f"Artifact '{name}' is uploaded but never downloaded",
            file=file_name,
            location=Location(line=line or None, job=job_id, step=step_index),
            suggestion="Remove the unused artifact upload or add download steps where needed",
            snippet=_snippet(content, line, context_lines),
        ))

    return edges, findings


def extract_outputs(
    workflow: Workflow, content: str, file_name: str, context_lines: int = 2
) -> tuple[list[JobDependency], list[Finding]]:
    """Edges from `needs.<job>.outputs.<name>` references in step bodies.

    Each reference yields its own edge. References to jobs that do not
    exist are findings, never edges.
    """
    edges: list[JobDependency] = []
    findings: list[Finding] = []
    warned: set[tuple[str, str]] = set()

    for job, step in workflow.iter_steps():
        body = json.dumps(step.raw, default=str)
        for source, output in OUTPUT_REFERENCE.findall(body):
            line = find_step_line_number(content, job.job_id, step.index)
            location = Location(line=line or None, job=job.job_id, step=step.index)

            if source not in workflow.jobs:
                findings.append(Finding(
                    id=f"unknown-output-reference-{job.job_id}-{step.index}-{source}-{output}",
                    category=Category.STRUCTURE,
                    severity=Severity.ERROR,
                    title="Unknown Job Output Reference",
                    description=(
                        f"Step {step.index} of job '{job.job_id}' reads output '{output}' "
                        f"from job '{source}' which doesn't exist"
                    ),
                    file=file_name,
                    location=location,
                    suggestion=f"Create job '{source}' or fix the reference to needs.{source}.outputs.{output}",
                    snippet=_snippet(content, line, context_lines),
                ))
                continue

            edges.append(JobDependency(source=source, target=job.job_id, kind=DependencyKind.OUTPUT, detail=output))

            if source not in job.needs and (job.job_id, source) not in warned:
                warned.add((job.job_id, source))
                findings.append(Finding(
                    id=f"output-without-needs-{job.job_id}-{source}",
                    category=Category.STRUCTURE,
                    severity=Severity.WARNING,
                    title="Output Referenced Without Dependency",
                    description=(
                        f"Job '{job.job_id}' reads outputs of '{source}' but does not list it in needs; "
                        "the expression evaluates to an empty string"
                    ),
                    file=file_name,
                    location=location,
                    suggestion=f"Add '{source}' to the needs of job '{job.job_id}'",
                    snippet=_snippet(content, line, context_lines),
                ))

    return edges, findings


def extract_env_shadowing(workflow: Workflow, content: str, file_name: str) -> list[Finding]:
    """One finding per (job, variable) where job or step env redefines a global variable."""
    global_keys = set(workflow.env)
    if not global_keys:
        return []

    findings: list[Finding] = []
    for job_id, job in workflow.jobs.items():
        job_keys: dict[str, None] = dict.fromkeys(job.env)
        for step in job.steps:
            job_keys.update(dict.fromkeys(step.env))

        for var in job_keys:
            if var not in global_keys:
                continue
            line = find_job_line_number(content, job_id)
            findings.append(Finding(
                id=f"env-var-shadowing-{job_id}-{var}",
                category=Category.BEST_PRACTICE,
                severity=Severity.INFO,
                title="Environment Variable Shadowing",
                description=f"Job '{job_id}' redefines global environment variable '{var}'",
                file=file_name,
                location=Location(line=line or None, job=job_id),
                suggestion="Consider using a different variable name to avoid confusion",
            ))

    return findings


def collect_action_usage(workflow: Workflow) -> list[ActionUsage]:
    usage = []
    for job, step in workflow.iter_steps():
        if isinstance(step, ActionStep):
            usage.append(ActionUsage(
                action=step.action_name,
                version=step.action_ref or "latest",
                job_id=job.job_id,
                step_index=step.index,
                step_name=step.name,
            ))
    return usage


def extract_dependencies(
    workflow: Workflow, content: str, file_name: str, context_lines: int = 3
) -> ExtractionResult:
    """Run every edge source over one workflow and fold the results."""
    needs_edges, needs_findings = extract_needs(workflow, content, file_name, context_lines)
    artifact_edges, artifact_findings = extract_artifacts(workflow, content, file_name)
    output_edges, output_findings = extract_outputs(workflow, content, file_name)
    env_findings = extract_env_shadowing(workflow, content, file_name)
    usage = collect_action_usage(workflow)

    edges = needs_edges + artifact_edges + output_edges
    kinds = Counter(edge.kind.value for edge in edges)
    logger.debug(f"{file_name}: {len(edges)} edges {dict(kinds)}, {len(usage)} action references")

    return ExtractionResult(
        edges=tuple(edges),
        findings=tuple(needs_findings + artifact_findings + output_findings + env_findings),
        action_usage=tuple(usage),
    )
