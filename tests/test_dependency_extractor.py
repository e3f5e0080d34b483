"""Tests for job dependency extraction (needs, artifacts, outputs, env shadowing)."""

from flowaudit.graph.extractor import (
    collect_action_usage,
    extract_artifacts,
    extract_dependencies,
    extract_env_shadowing,
    extract_needs,
    extract_outputs,
)
from flowaudit.graph.types import DependencyKind, JobDependency
from flowaudit.rules.base import Category, Severity
from flowaudit.workflow.models import ActionStep


def _pairs(edges):
    return [(e.source, e.target) for e in edges]


# ============================================================================
# Explicit ordering
# ============================================================================


class TestNeeds:
    """Edges from `needs:` and dangling references."""

    def test_needs_edges_in_declared_order(self, parse):
        doc = parse("""\
            on: push
            jobs:
              build:
                runs-on: ubuntu-latest
              test:
                needs: build
                runs-on: ubuntu-latest
              deploy:
                needs: [build, test]
                runs-on: ubuntu-latest
        """)
        edges, findings = extract_needs(doc.workflow, doc.content, doc.name)

        assert _pairs(edges) == [("build", "test"), ("build", "deploy"), ("test", "deploy")]
        assert all(e.kind is DependencyKind.NEEDS for e in edges)
        assert findings == []

    def test_missing_dependency_is_a_finding_not_an_edge(self, parse):
        doc = parse("""\
            on: push
            jobs:
              build:
                runs-on: ubuntu-latest
              test:
                needs: [build, ghost]
                runs-on: ubuntu-latest
        """)
        edges, findings = extract_needs(doc.workflow, doc.content, doc.name)

        assert _pairs(edges) == [("build", "test")]
        assert len(findings) == 1

        finding = findings[0]
        assert finding.id == "missing-job-dependency-test-ghost"
        assert finding.title == "Missing Job Dependency"
        assert finding.severity is Severity.ERROR
        assert finding.category is Category.STRUCTURE
        assert finding.location.job == "test"
        assert finding.location.line == 5
        assert finding.snippet is not None
        assert "ghost" in finding.description

    def test_zero_jobs(self, parse):
        doc = parse("""\
            on: push
            jobs: {}
        """)
        result = extract_dependencies(doc.workflow, doc.content, doc.name)
        assert result.edges == ()
        assert result.findings == ()
        assert result.action_usage == ()


# ============================================================================
# Artifact hand-off
# ============================================================================


ARTIFACTS = """\
    on: push
    jobs:
      build:
        runs-on: ubuntu-latest
        steps:
          - uses: actions/upload-artifact@v4
            with:
              name: dist
          - uses: actions/upload-artifact@v4
            with:
              name: coverage
      publish:
        needs: build
        runs-on: ubuntu-latest
        steps:
          - uses: actions/download-artifact@v4
            with:
              name: dist
          - uses: actions/download-artifact@v4
            with:
              name: dist
"""


class TestArtifacts:
    """Upload/download pairs across jobs."""

    def test_artifact_edge_deduplicated(self, parse):
        doc = parse(ARTIFACTS)
        edges, _ = extract_artifacts(doc.workflow, doc.content, doc.name)

        assert edges == [
            JobDependency(source="build", target="publish", kind=DependencyKind.ARTIFACT, detail="dist")
        ]

    def test_unused_artifact_reported(self, parse):
        doc = parse(ARTIFACTS)
        _, findings = extract_artifacts(doc.workflow, doc.content, doc.name)

        assert [f.id for f in findings] == ["unused-artifact-coverage"]
        finding = findings[0]
        assert finding.severity is Severity.WARNING
        assert finding.category is Category.PERFORMANCE
        assert finding.location.job == "build"
        assert finding.location.step == 1

    def test_same_job_round_trip_yields_no_edge(self, parse):
        doc = parse("""\
            on: push
            jobs:
              build:
                runs-on: ubuntu-latest
                steps:
                  - uses: actions/upload-artifact@v4
                    with:
                      name: cache
                  - uses: actions/download-artifact@v4
                    with:
                      name: cache
        """)
        edges, findings = extract_artifacts(doc.workflow, doc.content, doc.name)
        assert edges == []
        assert findings == []

    def test_default_artifact_name(self, parse):
        doc = parse("""\
            on: push
            jobs:
              build:
                runs-on: ubuntu-latest
                steps:
                  - uses: actions/upload-artifact@v4
              use:
                runs-on: ubuntu-latest
                steps:
                  - uses: actions/download-artifact@v4
        """)
        edges, _ = extract_artifacts(doc.workflow, doc.content, doc.name)
        assert [(e.source, e.target, e.detail) for e in edges] == [("build", "use", "default-artifact")]

    def test_every_artifact_edge_matches_an_upload_and_a_download(self, parse):
        doc = parse(ARTIFACTS)
        result = extract_dependencies(doc.workflow, doc.content, doc.name)
        artifact_edges = [e for e in result.edges if e.kind is DependencyKind.ARTIFACT]
        assert artifact_edges

        def names(job_id, action):
            return {
                step.with_args.get("name")
                for step in doc.workflow.jobs[job_id].steps
                if isinstance(step, ActionStep) and action in step.uses
            }

        for edge in artifact_edges:
            assert edge.detail in names(edge.source, "upload-artifact")
            assert edge.detail in names(edge.target, "download-artifact")


# ============================================================================
# Output references
# ============================================================================


OUTPUTS = """\
    on: push
    jobs:
      set-up:
        runs-on: ubuntu-latest
        outputs:
          version: ${{ steps.v.outputs.version }}
        steps:
          - id: v
            run: echo "version=1" >> "$GITHUB_OUTPUT"
      build-app:
        needs: set-up
        runs-on: ubuntu-latest
        steps:
          - run: "echo ${{ needs.set-up.outputs.version }} ${{ needs.set-up.outputs.sha }}"
          - run: "echo ${{ needs.ghost.outputs.x }}"
      other:
        runs-on: ubuntu-latest
        steps:
          - run: "echo ${{ needs.set-up.outputs.version }}"
"""


class TestOutputs:
    """`needs.<job>.outputs.<name>` references."""

    def test_each_reference_yields_an_edge(self, parse):
        doc = parse(OUTPUTS)
        edges, _ = extract_outputs(doc.workflow, doc.content, doc.name)

        assert [(e.source, e.target, e.detail) for e in edges] == [
            ("set-up", "build-app", "version"),
            ("set-up", "build-app", "sha"),
            ("set-up", "other", "version"),
        ]
        assert all(e.kind is DependencyKind.OUTPUT for e in edges)

    def test_unknown_source_job_is_a_finding(self, parse):
        doc = parse(OUTPUTS)
        edges, findings = extract_outputs(doc.workflow, doc.content, doc.name)

        assert "ghost" not in {e.source for e in edges}
        unknown = [f for f in findings if f.title == "Unknown Job Output Reference"]
        assert len(unknown) == 1
        assert unknown[0].severity is Severity.ERROR
        assert unknown[0].location.job == "build-app"
        assert unknown[0].location.step == 1

    def test_output_without_needs_warns(self, parse):
        doc = parse(OUTPUTS)
        _, findings = extract_outputs(doc.workflow, doc.content, doc.name)

        warnings = [f for f in findings if f.title == "Output Referenced Without Dependency"]
        assert [f.id for f in warnings] == ["output-without-needs-other-set-up"]
        assert warnings[0].severity is Severity.WARNING


# ============================================================================
# Environment shadowing and action usage
# ============================================================================


class TestEnvShadowing:
    """Job and step env keys colliding with the global env."""

    def test_one_finding_per_job_and_variable(self, parse):
        doc = parse("""\
            on: push
            env:
              NODE_VERSION: "18"
              DEBUG: "0"
            jobs:
              build:
                runs-on: ubuntu-latest
                env:
                  NODE_VERSION: "20"
                steps:
                  - run: make
                    env:
                      DEBUG: "1"
                      NODE_VERSION: "21"
              test:
                runs-on: ubuntu-latest
                env:
                  OTHER: "x"
        """)
        findings = extract_env_shadowing(doc.workflow, doc.content, doc.name)

        assert [f.id for f in findings] == [
            "env-var-shadowing-build-NODE_VERSION",
            "env-var-shadowing-build-DEBUG",
        ]
        assert all(f.severity is Severity.INFO for f in findings)
        assert all(f.category is Category.BEST_PRACTICE for f in findings)

    def test_shadowing_never_creates_edges(self, parse):
        doc = parse("""\
            on: push
            env:
              A: "1"
            jobs:
              build:
                runs-on: ubuntu-latest
                env:
                  A: "2"
        """)
        result = extract_dependencies(doc.workflow, doc.content, doc.name)
        assert result.edges == ()
        assert [f.title for f in result.findings] == ["Environment Variable Shadowing"]


class TestActionUsage:
    """Every `uses:` step is recorded."""

    def test_usage_records(self, parse):
        doc = parse("""\
            on: push
            jobs:
              build:
                runs-on: ubuntu-latest
                steps:
                  - name: Checkout
                    uses: actions/checkout@v4
                  - run: make
                  - uses: docker://alpine
        """)
        usage = collect_action_usage(doc.workflow)

        assert [(u.action, u.version, u.step_index) for u in usage] == [
            ("actions/checkout", "v4", 0),
            ("docker://alpine", "latest", 2),
        ]
        assert usage[0].step_name == "Checkout"
        assert usage[0].job_id == "build"
