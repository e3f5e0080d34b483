"""Tests for the flowaudit command line interface."""

import json
import textwrap

import pytest
from click.testing import CliRunner

from flowaudit import __version__
from flowaudit.cli import cli
from flowaudit.commands import analyze as analyze_module
from flowaudit.commands.analyze import collect_workflow_paths


CLEAN = """\
    on: push
    jobs:
      build:
        runs-on: ubuntu-latest
        steps:
          - run: echo "${{ github.event.head_commit.message }}"
"""

BROKEN_NEEDS = """\
    on: push
    jobs:
      build:
        needs: ghost
        runs-on: ubuntu-latest
"""

CYCLE = """\
    on: push
    jobs:
      a:
        needs: b
        runs-on: ubuntu-latest
      b:
        needs: a
        runs-on: ubuntu-latest
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run commands from an empty directory so state files land in tmp_path."""
    monkeypatch.chdir(tmp_path)

    def _write(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _write


# ============================================================================
# Group
# ============================================================================


class TestGroup:
    """Top-level group behaviour."""

    def test_help_lists_categorized_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "ANALYSIS" in result.output
        assert "analyze" in result.output
        assert "graph" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"flowaudit, version {__version__}" in result.output


# ============================================================================
# analyze
# ============================================================================


class TestAnalyzeCommand:
    """End-to-end runs of `flowaudit analyze`."""

    def test_json_output(self, runner, workspace):
        workspace("ci.yml", CLEAN)
        result = runner.invoke(cli, ["analyze", "ci.yml", "--format", "json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["requestId"]
        assert [r["fileName"] for r in payload["reports"]] == ["ci.yml"]
        assert payload["reports"][0]["summary"]["score"] == 100

    def test_latest_report_always_written(self, runner, workspace, tmp_path):
        workspace("ci.yml", CLEAN)
        result = runner.invoke(cli, ["analyze", "ci.yml"])

        assert result.exit_code == 0, result.output
        saved = json.loads((tmp_path / ".flowaudit" / "report.json").read_text(encoding="utf-8"))
        assert saved["reports"][0]["fileName"] == "ci.yml"

    def test_text_output(self, runner, workspace):
        workspace("ci.yml", CLEAN)
        result = runner.invoke(cli, ["analyze", "ci.yml"])

        assert result.exit_code == 0, result.output
        assert "Score: 100/100" in result.output
        assert "CLEAN" in result.output

    def test_save_option(self, runner, workspace, tmp_path):
        workspace("ci.yml", CLEAN)
        result = runner.invoke(cli, ["analyze", "ci.yml", "--save", "out/report.json"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "out" / "report.json").exists()

    def test_fail_on_error(self, runner, workspace):
        workspace("ci.yml", BROKEN_NEEDS)

        lenient = runner.invoke(cli, ["analyze", "ci.yml"])
        assert lenient.exit_code == 0

        strict = runner.invoke(cli, ["analyze", "ci.yml", "--fail-on-error"])
        assert strict.exit_code == 1
        assert "Error severity findings detected" in strict.output

    def test_findings_are_rescored(self, runner, workspace):
        workspace("ci.yml", CLEAN)
        workspace("detectors.json", json.dumps({
            "ci.yml": [{
                "id": "expr-injection",
                "type": "security",
                "severity": "error",
                "title": "Potential Expression Injection",
                "location": {"job": "build", "step": 0},
            }],
        }))
        result = runner.invoke(cli, ["analyze", "ci.yml", "--findings", "detectors.json", "--format", "json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)["reports"][0]
        rescored = report["results"][0]
        assert rescored["id"] == "expr-injection"
        assert rescored["originalSeverity"] == "error"
        assert rescored["contextualSeverity"] == "info"
        assert report["reachabilityData"]["stats"]["totalIssues"] == 1

    def test_findings_list_matched_by_path_suffix(self, runner, workspace):
        workspace("wf/ci.yml", CLEAN)
        workspace("detectors.json", json.dumps([{
            "id": "secret",
            "type": "security",
            "severity": "error",
            "title": "Hardcoded Secret Detected",
            "file": "ci.yml",
        }]))
        result = runner.invoke(cli, ["analyze", "wf", "--findings", "detectors.json", "--format", "json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)["reports"][0]
        assert report["fileName"] == "wf/ci.yml"
        assert report["results"][0]["id"] == "secret"

    def test_previous_report_results_rejected_as_findings(self, runner, workspace):
        workspace("ci.yml", CLEAN)
        workspace("detectors.json", json.dumps({
            "ci.yml": [{
                "id": "expr-injection",
                "type": "security",
                "severity": "error",
                "title": "Potential Expression Injection",
                "location": {"job": "build", "step": 0},
            }],
        }))
        first = runner.invoke(cli, ["analyze", "ci.yml", "--findings", "detectors.json", "--format", "json"])
        assert first.exit_code == 0, first.output

        results = json.loads(first.output)["reports"][0]["results"]
        workspace("previous.json", json.dumps({"ci.yml": results}))
        second = runner.invoke(cli, ["analyze", "ci.yml", "--findings", "previous.json"])

        assert second.exit_code == 1
        assert "already adjusted" in second.output

    def test_malformed_findings_record(self, runner, workspace):
        workspace("ci.yml", CLEAN)
        workspace("detectors.json", json.dumps([{"title": "No id", "type": "security"}]))
        result = runner.invoke(cli, ["analyze", "ci.yml", "--findings", "detectors.json"])

        assert result.exit_code == 1
        assert "missing required fields: id" in result.output

    def test_directory_without_workflows(self, runner, workspace, tmp_path):
        (tmp_path / "empty").mkdir()
        result = runner.invoke(cli, ["analyze", "empty"])
        assert result.exit_code == 1
        assert "No workflow files" in result.output

    def test_parse_error_is_reported_not_raised(self, runner, workspace):
        workspace("bad.yml", "on: [push\njobs: {")
        result = runner.invoke(cli, ["analyze", "bad.yml", "--format", "json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)["reports"][0]
        assert report["results"][0]["id"] == "yaml-parse-error"

    def test_unexpected_failure_logged(self, runner, workspace, tmp_path, monkeypatch):
        workspace("ci.yml", CLEAN)

        def explode(*args, **kwargs):
            raise RuntimeError("pool exploded")

        monkeypatch.setattr(analyze_module, "analyze_documents", explode)
        result = runner.invoke(cli, ["analyze", "ci.yml"])

        assert result.exit_code == 1
        assert "RuntimeError: pool exploded" in result.output
        log = (tmp_path / ".flowaudit" / "error.log").read_text(encoding="utf-8")
        assert "Error in command: analyze" in log


class TestCollectWorkflowPaths:
    """Expanding command arguments into workflow files."""

    def test_directories_expand_recursively(self, tmp_path):
        (tmp_path / "wf" / "sub").mkdir(parents=True)
        (tmp_path / "wf" / "a.yml").write_text("on: push\n", encoding="utf-8")
        (tmp_path / "wf" / "sub" / "b.yaml").write_text("on: push\n", encoding="utf-8")
        (tmp_path / "wf" / "README.md").write_text("docs\n", encoding="utf-8")

        paths = collect_workflow_paths([tmp_path / "wf", tmp_path / "wf" / "a.yml"])
        assert paths == [tmp_path / "wf" / "a.yml", tmp_path / "wf" / "sub" / "b.yaml"]


# ============================================================================
# graph
# ============================================================================


class TestGraphCommand:
    """End-to-end runs of `flowaudit graph`."""

    def test_json_reports_cycle(self, runner, workspace):
        workspace("ci.yml", CYCLE)
        result = runner.invoke(cli, ["graph", "ci.yml", "--format", "json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["fileName"] == "ci.yml"
        assert len(payload["circularDependencies"]) == 1
        cycle = payload["circularDependencies"][0]
        assert len(cycle) == 3
        assert cycle[0] == cycle[-1]
        assert [f["title"] for f in payload["findings"]] == ["Circular Job Dependency"]
        assert len(payload["jobDependencies"]) == 2

    def test_text_output(self, runner, workspace):
        workspace("ci.yml", """\
            on: push
            jobs:
              build:
                runs-on: ubuntu-latest
              test:
                needs: build
                runs-on: ubuntu-latest
        """)
        result = runner.invoke(cli, ["graph", "ci.yml"])

        assert result.exit_code == 0, result.output
        assert "Critical path: build -> test (2 jobs)" in result.output
        assert "no structural problems" in result.output

    def test_error_findings_printed_as_errors(self, runner, workspace):
        workspace("ci.yml", CYCLE)
        result = runner.invoke(cli, ["graph", "ci.yml"])

        assert result.exit_code == 0, result.output
        assert "ERROR: Circular Job Dependency" in result.output
        assert "WARNING: Circular Job Dependency" not in result.output

    def test_invalid_yaml(self, runner, workspace):
        workspace("bad.yml", "on: [push\njobs: {")
        result = runner.invoke(cli, ["graph", "bad.yml"])

        assert result.exit_code == 1
        assert "Invalid YAML" in result.output
