"""Job dependency graph: extraction, cycle detection and path analysis."""

from .analyzer import analyze_paths, cycle_findings, detect_cycles, topological_order
from .extractor import extract_dependencies
from .insights import graph_insights
from .types import (
    ActionUsage,
    Cycle,
    DependencyKind,
    ExtractionResult,
    GraphSummary,
    JobDependency,
    JobGraph,
    PathAnalysis,
)

__all__ = [
    "ActionUsage",
    "Cycle",
    "DependencyKind",
    "ExtractionResult",
    "GraphSummary",
    "JobDependency",
    "JobGraph",
    "PathAnalysis",
    "analyze_paths",
    "cycle_findings",
    "detect_cycles",
    "extract_dependencies",
    "graph_insights",
    "topological_order",
]
