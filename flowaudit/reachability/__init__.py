"""Reachability analysis and contextual severity for security findings."""

from .context import (
    EnvironmentalFactors,
    ExecutionContext,
    RiskLevel,
    build_execution_context,
    normalize_triggers,
)
from .evaluator import ReachabilityInfo, evaluate_reachability
from .heuristics import PathSensitivity, analyze_path_sensitivity, extract_expression_spans, looks_always_false
from .insights import ReachabilityStats, compute_stats, reachability_insights
from .severity import apply_contextual_severity, contextual_severity

__all__ = [
    "EnvironmentalFactors",
    "ExecutionContext",
    "PathSensitivity",
    "ReachabilityInfo",
    "ReachabilityStats",
    "RiskLevel",
    "analyze_path_sensitivity",
    "apply_contextual_severity",
    "build_execution_context",
    "compute_stats",
    "contextual_severity",
    "evaluate_reachability",
    "extract_expression_spans",
    "looks_always_false",
    "normalize_triggers",
    "reachability_insights",
]
