"""Pytest configuration and fixtures."""

import textwrap

import pytest

from flowaudit.rules.base import Category, Finding, Location, Severity
from flowaudit.workflow.loader import parse_document


@pytest.fixture
def parse():
    """Parse dedented workflow YAML into a WorkflowDocument."""

    def _parse(text: str, name: str = "ci.yml"):
        return parse_document(name, textwrap.dedent(text))

    return _parse


@pytest.fixture
def make_finding():
    """Build a raw finding with sensible defaults for reachability tests."""

    def _make(
        title: str = "Generic Security Issue",
        category: Category = Category.SECURITY,
        severity: Severity = Severity.ERROR,
        job: str | None = None,
        step: int | None = None,
        description: str = "Something risky",
        suggestion: str | None = "Fix it.",
        finding_id: str = "finding-1",
    ) -> Finding:
        location = Location(job=job, step=step) if job is not None else None
        return Finding(
            id=finding_id,
            category=category,
            severity=severity,
            title=title,
            description=description,
            file="ci.yml",
            location=location,
            suggestion=suggestion,
        )

    return _make


@pytest.fixture
def write_workflow(tmp_path):
    """Write dedented YAML to a file under tmp_path and return its path."""

    def _write(text: str, name: str = "ci.yml"):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _write
