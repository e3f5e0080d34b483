"""Workflow analysis CLI command.

Usage: flowaudit analyze .github/workflows
"""

import json
import sys
from pathlib import Path

import click
from rich.table import Table

from flowaudit.config_runtime import load_runtime_config
from flowaudit.pipeline.engine import DocumentReport, analyze_documents
from flowaudit.pipeline.ui import (
    console,
    print_error,
    print_header,
    print_status_panel,
    severity_style,
)
from flowaudit.rules.base import Finding, Severity, SeverityAlreadyAdjustedError
from flowaudit.utils.error_handler import handle_exceptions
from flowaudit.utils.exit_codes import ExitCodes
from flowaudit.utils.finding_priority import sort_findings
from flowaudit.utils.logging import get_request_id, logger

WORKFLOW_SUFFIXES = (".yml", ".yaml")


def collect_workflow_paths(paths) -> list[Path]:
    """Expand directories into the workflow files they contain, keeping argument order."""
    collected: list[Path] = []
    seen: set[Path] = set()
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            candidates = sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in WORKFLOW_SUFFIXES)
        else:
            candidates = [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                collected.append(candidate)
    return collected


def _match_document(key: str, names: list[str]) -> str:
    """Map a findings file key to a document name; exact match first, then by path suffix."""
    if key in names:
        return key
    for name in names:
        if name.endswith("/" + key):
            return name
    return key


def load_findings(findings_file: str, names: list[str]) -> dict[str, list[Finding]]:
    """
    Read prior findings from JSON.

    Accepts either a list of finding records (each naming its `file`) or an
    object mapping document names to lists of records.
    """
    with open(findings_file, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, list):
        grouped: dict[str, list] = {}
        for record in data:
            key = record.get("file", "") if isinstance(record, dict) else ""
            grouped.setdefault(key, []).append(record)
    elif isinstance(data, dict):
        grouped = {str(key): value for key, value in data.items()}
    else:
        raise click.ClickException(f"{findings_file}: expected a JSON list or object of findings")

    findings_by_file: dict[str, list[Finding]] = {}
    for key, records in grouped.items():
        if not isinstance(records, list):
            raise click.ClickException(f"{findings_file}: findings for '{key}' must be a list")
        name = _match_document(key, names)
        try:
            parsed = [Finding.from_dict(record, default_file=name) for record in records]
        except (ValueError, SeverityAlreadyAdjustedError) as e:
            raise click.ClickException(f"{findings_file}: {e}") from e
        findings_by_file.setdefault(name, []).extend(parsed)

    logger.info(f"Loaded {sum(len(v) for v in findings_by_file.values())} prior findings from {findings_file}")
    return findings_by_file


def render_report(report: DocumentReport, max_rows: int, show_info: bool) -> None:
    print_header(report.file_name)

    findings = sort_findings(list(report.findings))
    if not show_info:
        findings = [f for f in findings if f.severity is not Severity.INFO]

    if findings:
        table = Table(show_lines=False)
        table.add_column("Severity", width=9)
        table.add_column("Type", style="dim", width=13)
        table.add_column("Title")
        table.add_column("Location", style="path")

        for finding in findings[:max_rows]:
            severity = finding.severity.value
            location = ""
            if finding.location:
                parts = []
                if finding.location.job:
                    parts.append(finding.location.job)
                if finding.location.step is not None:
                    parts.append(f"step {finding.location.step}")
                if finding.location.line:
                    parts.append(f"line {finding.location.line}")
                location = " / ".join(parts)
            table.add_row(
                f"[{severity_style(severity)}]{severity.upper()}[/]",
                finding.category.value,
                finding.title,
                location,
            )
        console.print(table)

        if len(findings) > max_rows:
            console.print(f"[dim]... {len(findings) - max_rows} more not shown[/dim]")
    else:
        console.print("[success]No findings[/success]")

    summary = report.summary
    stats = report.reachability.stats
    console.print(
        f"Score: [bold]{summary.score}/100[/bold]  "
        f"errors={summary.error_count} warnings={summary.warning_count} info={summary.info_count}  "
        f"edges={len(report.graph.edges)} cycles={len(report.graph.cycles)}"
    )
    if stats.total_issues:
        console.print(
            f"[dim]Reachability: {stats.reachable_issues}/{stats.total_issues} reachable, "
            f"{stats.high_risk_issues} high risk, {stats.false_positive_reduction}% downgraded[/dim]"
        )


@click.command("analyze")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--findings", "findings_file", type=click.Path(exists=True, dir_okay=False), help="JSON file with prior detector findings")
@click.option(
    "--format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format"
)
@click.option("--save", type=click.Path(), help="Save the JSON report to file")
@click.option("--workers", type=click.IntRange(min=1), help="Documents analyzed in parallel")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Per-document time budget in seconds")
@click.option("--fail-on-error", is_flag=True, help="Exit 1 if any error severity finding remains")
@handle_exceptions
def analyze(paths, findings_file, format, save, workers, timeout, fail_on_error):
    """Analyze workflow documents: dependency graph, reachability and contextual severity.

    Each document is parsed, its job dependency graph reconstructed (needs,
    artifact hand-off, output references) and checked for dangling references
    and cycles. Prior security findings passed with --findings are rescored
    by whether the flagged job or step can actually run.

    EXAMPLES:
      flowaudit analyze .github/workflows
      flowaudit analyze ci.yml --findings detectors.json --format json
      flowaudit analyze .github/workflows --fail-on-error

    EXIT CODES:
      0 = Success (or --fail-on-error not set)
      1 = Error severity findings present AND --fail-on-error set
    """
    cfg = load_runtime_config()

    files = collect_workflow_paths(paths)
    if not files:
        raise click.ClickException("No workflow files (*.yml, *.yaml) found")

    names = [f.as_posix() for f in files]
    findings_by_file = load_findings(findings_file, names) if findings_file else {}

    reports = analyze_documents(
        files,
        findings_by_file=findings_by_file,
        max_workers=workers,
        timeout=timeout,
        cfg=cfg,
    )

    payload = {
        "requestId": get_request_id(),
        "reports": [report.to_dict() for report in reports],
    }

    # Always keep the latest JSON report in the state directory
    report_path = Path(cfg["paths"]["report_json"])
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    if format == "json":
        click.echo(json.dumps(payload, indent=2))
    else:
        for report in reports:
            render_report(report, cfg["report"]["max_rows"], cfg["report"]["show_info"])

        total_errors = sum(r.summary.error_count for r in reports)
        total_warnings = sum(r.summary.warning_count for r in reports)
        if total_errors:
            print_status_panel("ERRORS", f"{total_errors} error(s) across {len(reports)} document(s)",
                               f"{total_warnings} warning(s)", level="error")
        elif total_warnings:
            print_status_panel("WARNINGS", f"{total_warnings} warning(s) across {len(reports)} document(s)",
                               "No errors", level="warning")
        else:
            print_status_panel("CLEAN", f"{len(reports)} document(s) analyzed", "No errors or warnings",
                               level="success")

    if save:
        save_path = Path(save)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        click.echo(f"\nSaved to: {save_path}", err=True)

    if fail_on_error and any(r.has_errors for r in reports):
        if format != "json":
            print_error(ExitCodes.get_description(ExitCodes.ERROR_FINDINGS))
        sys.exit(ExitCodes.ERROR_FINDINGS)
