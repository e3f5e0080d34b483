"""Workflow input models, loader and raw-text locator."""

from .loader import WorkflowParseError, build_workflow, load_document, parse_document
from .models import ActionStep, CommandStep, Job, Step, UnspecifiedStep, Workflow, WorkflowDocument

__all__ = [
    "ActionStep",
    "CommandStep",
    "Job",
    "Step",
    "UnspecifiedStep",
    "Workflow",
    "WorkflowDocument",
    "WorkflowParseError",
    "build_workflow",
    "load_document",
    "parse_document",
]
