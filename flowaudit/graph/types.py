"""Value types for the job dependency graph.

JobGraph is an arena: job ids live in one list in declared order and edges
are stored as integer indices into it. All other types here are frozen
values produced by one analysis stage and consumed by the next.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DependencyKind(Enum):
    """Why one job depends on another."""

    NEEDS = "needs"
    ARTIFACT = "artifact"
    OUTPUT = "output"
    ENV = "env"


@dataclass(frozen=True)
class JobDependency:
    """Directed edge in execution order: source runs before target."""

    source: str
    target: str
    kind: DependencyKind
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {"from": self.source, "to": self.target, "type": self.kind.value}
        if self.detail is not None:
            result["details"] = self.detail
        return result


@dataclass(frozen=True)
class ActionUsage:
    """One `uses:` reference found in a job's steps."""

    action: str
    version: str
    job_id: str
    step_index: int
    step_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "action": self.action,
            "version": self.version,
            "jobId": self.job_id,
            "stepIndex": self.step_index,
        }
        if self.step_name is not None:
            result["stepName"] = self.step_name
        return result


class JobGraph:
    """Integer-indexed adjacency over the jobs of one workflow.

    Successor and predecessor lists are deduplicated and keep first
    occurrence order, so parallel edges of different kinds between the same
    two jobs count once for traversal purposes.
    """

    def __init__(self, job_ids: list[str], edges: list[JobDependency] | tuple[JobDependency, ...] = ()):
        self.job_ids: list[str] = list(job_ids)
        self.index: dict[str, int] = {job_id: i for i, job_id in enumerate(self.job_ids)}
        self.successors: list[list[int]] = [[] for _ in self.job_ids]
        self.predecessors: list[list[int]] = [[] for _ in self.job_ids]
        self.edges: list[JobDependency] = []

        for edge in edges:
            self.add_edge(edge)

    def add_edge(self, edge: JobDependency) -> bool:
        """Add an edge; returns whether it was kept.

        Edges touching unknown jobs are ignored, and so are environment
        shadows, which are reported as findings and never order execution.
        """
        if edge.kind is DependencyKind.ENV:
            return False
        source = self.index.get(edge.source)
        target = self.index.get(edge.target)
        if source is None or target is None:
            return False

        self.edges.append(edge)
        if target not in self.successors[source]:
            self.successors[source].append(target)
        if source not in self.predecessors[target]:
            self.predecessors[target].append(source)
        return True

    def __len__(self) -> int:
        return len(self.job_ids)

    def name(self, node: int) -> str:
        return self.job_ids[node]

    def in_degree(self, node: int) -> int:
        return len(self.predecessors[node])

    def out_degree(self, node: int) -> int:
        return len(self.successors[node])


@dataclass(frozen=True)
class Cycle:
    """A dependency cycle. nodes is the open member list in discovery order."""

    nodes: tuple[str, ...]

    @property
    def path(self) -> tuple[str, ...]:
        """Closed loop with the first node repeated at the end."""
        return self.nodes + self.nodes[:1]

    @property
    def size(self) -> int:
        return len(self.nodes)


@dataclass(frozen=True)
class PathAnalysis:
    """Roots, leaves, isolated jobs and longest root-to-leaf chains."""

    roots: tuple[str, ...] = ()
    leaves: tuple[str, ...] = ()
    isolated: tuple[str, ...] = ()
    critical_paths: tuple[tuple[str, ...], ...] = ()

    @property
    def longest_path(self) -> tuple[str, ...]:
        """Longest critical path; the first one wins on ties."""
        longest: tuple[str, ...] = ()
        for path in self.critical_paths:
            if len(path) > len(longest):
                longest = path
        return longest


@dataclass(frozen=True)
class ExtractionResult:
    """Everything the dependency extractor derives from one workflow."""

    edges: tuple[JobDependency, ...] = ()
    findings: tuple = ()
    action_usage: tuple[ActionUsage, ...] = ()


@dataclass(frozen=True)
class GraphSummary:
    """Graph-level output attached to a document report."""

    edges: tuple[JobDependency, ...] = ()
    cycles: tuple[Cycle, ...] = ()
    paths: PathAnalysis = field(default_factory=PathAnalysis)
    action_usage: tuple[ActionUsage, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobDependencies": [edge.to_dict() for edge in self.edges],
            "circularDependencies": [list(cycle.path) for cycle in self.cycles],
            "criticalPaths": [list(path) for path in self.paths.critical_paths],
            "isolatedJobs": list(self.paths.isolated),
            "roots": list(self.paths.roots),
            "leaves": list(self.paths.leaves),
            "actionUsage": [usage.to_dict() for usage in self.action_usage],
        }
