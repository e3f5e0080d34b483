"""Workflow document loader.

Turns workflow YAML into the structured models in flowaudit.workflow.models.
Uses yaml.safe_load() directly; no schema validation beyond the shape the
analysis core needs (a mapping with `jobs`).
"""

from pathlib import Path
from typing import Any

import yaml

from flowaudit.utils.logging import logger

from .models import ActionStep, CommandStep, Job, Step, UnspecifiedStep, Workflow, WorkflowDocument


class WorkflowParseError(Exception):
    """Raised when a workflow document cannot be turned into a Workflow.

    Attributes:
        document: Name of the document that failed
    """

    def __init__(self, message: str, document: str = ""):
        super().__init__(message)
        self.document = document


def normalize_condition(value: Any) -> str | None:
    """Coerce an `if:` value to text. YAML booleans become 'true'/'false'."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_needs(value: Any) -> tuple[str, ...]:
    """`needs:` may be a single job id or a list of them."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(str(item) for item in value if item is not None)
    return ()


def normalize_runs_on(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    if isinstance(value, dict):
        labels = value.get("labels")
        if isinstance(labels, str):
            return (labels,)
        if isinstance(labels, list):
            return tuple(str(item) for item in labels)
    return ()


def _mapping(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def build_step(index: int, data: Any) -> Step:
    """Build the tagged step variant for one entry of a job's `steps:` list."""
    if not isinstance(data, dict):
        return UnspecifiedStep(index=index)

    common = {
        "index": index,
        "name": data.get("name"),
        "step_id": str(data["id"]) if data.get("id") is not None else None,
        "condition": normalize_condition(data.get("if")),
        "env": _mapping(data.get("env")),
        "raw": dict(data),
    }

    if data.get("uses"):
        return ActionStep(uses=str(data["uses"]), with_args=_mapping(data.get("with")), **common)
    if data.get("run") is not None:
        shell = data.get("shell")
        return CommandStep(run=str(data["run"]), shell=str(shell) if shell else None, **common)
    return UnspecifiedStep(**common)


def build_job(job_id: str, data: dict[str, Any]) -> Job:
    raw_steps = data.get("steps")
    steps = tuple(build_step(i, s) for i, s in enumerate(raw_steps)) if isinstance(raw_steps, list) else ()

    strategy = data.get("strategy")

    return Job(
        job_id=job_id,
        name=data.get("name"),
        needs=normalize_needs(data.get("needs")),
        condition=normalize_condition(data.get("if")),
        env=_mapping(data.get("env")),
        strategy=dict(strategy) if isinstance(strategy, dict) else None,
        runs_on=normalize_runs_on(data.get("runs-on")),
        steps=steps,
    )


def build_workflow(data: dict[str, Any], default_name: str = "workflow") -> Workflow:
    """Build a Workflow from an already-parsed YAML mapping."""
    jobs: dict[str, Job] = {}
    for job_id, job_value in (data.get("jobs") or {}).items():
        job_key = str(job_id)
        if not isinstance(job_value, dict):
            logger.warning(f"Skipping job '{job_key}': expected a mapping, got {type(job_value).__name__}")
            continue
        jobs[job_key] = build_job(job_key, job_value)

    # YAML 1.1 parses the bare key `on` as boolean True
    triggers = data.get("on")
    if triggers is None:
        triggers = data.get(True)

    return Workflow(
        name=str(data.get("name") or default_name),
        triggers_spec=triggers,
        permissions=data.get("permissions"),
        env=_mapping(data.get("env")),
        jobs=jobs,
    )


def parse_document(name: str, content: str) -> WorkflowDocument:
    """Parse workflow text into a WorkflowDocument.

    Raises:
        WorkflowParseError: invalid YAML, or not a mapping with a `jobs` mapping.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise WorkflowParseError(f"Invalid YAML: {e}", document=name) from e

    if not data or not isinstance(data, dict):
        raise WorkflowParseError("Invalid YAML structure", document=name)

    if not isinstance(data.get("jobs"), dict):
        raise WorkflowParseError("Workflow must contain jobs", document=name)

    if data.get("on") is None and data.get(True) is None:
        raise WorkflowParseError("Workflow must specify triggers (on)", document=name)

    workflow = build_workflow(data, default_name=Path(name).stem or name)
    logger.debug(f"Parsed {name}: {len(workflow.jobs)} jobs")

    return WorkflowDocument(name=name, content=content, workflow=workflow)


def load_document(path: Path | str) -> WorkflowDocument:
    """Read and parse one workflow file. The document name is the path as given."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise WorkflowParseError(f"Could not read {path}: {e}", document=str(path)) from e

    return parse_document(path.as_posix(), content)
