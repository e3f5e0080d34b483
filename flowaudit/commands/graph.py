"""Job dependency graph CLI command."""

import json

import click
from rich.table import Table

from flowaudit.config_runtime import get_limit, load_runtime_config
from flowaudit.graph import (
    GraphSummary,
    JobGraph,
    analyze_paths,
    cycle_findings,
    detect_cycles,
    extract_dependencies,
)
from flowaudit.pipeline.ui import console, print_error, print_header, print_success, print_warning
from flowaudit.rules.base import Severity
from flowaudit.utils.deadline import AnalysisTimeoutError, deadline_after
from flowaudit.utils.error_handler import handle_exceptions
from flowaudit.workflow.loader import WorkflowParseError, load_document


@click.command("graph")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format"
)
@handle_exceptions
def graph(path, format):
    """Show the job dependency graph of one workflow: edges, cycles, critical paths.

    EXAMPLES:
      flowaudit graph .github/workflows/ci.yml
      flowaudit graph release.yml --format json
    """
    cfg = load_runtime_config()

    try:
        document = load_document(path)
    except WorkflowParseError as e:
        raise click.ClickException(str(e)) from e

    extraction = extract_dependencies(
        document.workflow, document.content, document.name,
        context_lines=get_limit(cfg, "snippet_context_lines"),
    )
    job_graph = JobGraph(document.workflow.job_ids, extraction.edges)
    deadline = deadline_after(get_limit(cfg, "document_timeout"))
    try:
        cycles = detect_cycles(job_graph, deadline)
        paths = analyze_paths(
            job_graph, exhaustive_limit=get_limit(cfg, "max_jobs_for_exhaustive_paths"), deadline=deadline
        )
    except AnalysisTimeoutError as e:
        raise click.ClickException(f"{document.name}: {e}") from e

    summary = GraphSummary(
        edges=extraction.edges,
        cycles=tuple(cycles),
        paths=paths,
        action_usage=extraction.action_usage,
    )
    findings = list(extraction.findings) + cycle_findings(cycles, document.name, document.content)

    if format == "json":
        payload = summary.to_dict()
        payload["fileName"] = document.name
        payload["findings"] = [f.to_dict() for f in findings]
        click.echo(json.dumps(payload, indent=2))
        return

    print_header(f"JOB GRAPH: {document.name}")

    if summary.edges:
        table = Table()
        table.add_column("From", style="cmd")
        table.add_column("To", style="cmd")
        table.add_column("Kind")
        table.add_column("Detail", style="dim")
        for edge in summary.edges:
            table.add_row(edge.source, edge.target, edge.kind.value, edge.detail or "")
        console.print(table)
    else:
        console.print("[dim]No job dependencies[/dim]")

    for critical in paths.critical_paths:
        console.print(f"Critical path: [bold]{' -> '.join(critical)}[/bold] ({len(critical)} jobs)")

    if paths.isolated:
        console.print(f"Isolated jobs: {', '.join(paths.isolated)}")

    for finding in findings:
        if finding.severity is Severity.ERROR:
            print_error(f"{finding.title}: {finding.description}")
        else:
            print_warning(f"{finding.title}: {finding.description}")

    if not cycles and not findings:
        print_success(f"{len(job_graph)} jobs, {len(summary.edges)} edges, no structural problems")
