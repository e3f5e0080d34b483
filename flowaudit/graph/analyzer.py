"""Structural analysis over a JobGraph: cycles and execution paths.

Pure graph algorithms returning raw data; interpretation into findings is
limited to cycle_findings(). Every traversal iterates jobs in declared
order, so results are deterministic for a given document.
"""

from flowaudit.rules.base import Category, Finding, Location, Severity
from flowaudit.utils.deadline import check_deadline
from flowaudit.utils.logging import logger
from flowaudit.workflow.locate import find_job_line_number

from .types import Cycle, JobGraph, PathAnalysis


def _canonical(cycle: list[int]) -> tuple[int, ...]:
    """Rotation starting at the smallest index, used to deduplicate cycles."""
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:] + cycle[:pivot])


def detect_cycles(graph: JobGraph, deadline: float | None = None) -> list[Cycle]:
    """
    Detect cycles in the dependency direction (dependent -> dependency).

    Iterative DFS with an explicit recursion stack; a back edge to a node
    still on the stack yields the path suffix starting at that node. Every
    unvisited job starts a new traversal so independent cycles are all found.

    Args:
        graph: Job graph built from extracted edges
        deadline: time.monotonic() value after which the search gives up

    Returns:
        Cycles in discovery order, each reported once
    """
    visited = [False] * len(graph)
    on_stack = [False] * len(graph)
    seen: set[tuple[int, ...]] = set()
    cycles: list[Cycle] = []

    for start in range(len(graph)):
        if visited[start]:
            continue
        check_deadline(deadline, "cycle detection")

        visited[start] = on_stack[start] = True
        path = [start]
        stack = [(start, iter(graph.predecessors[start]))]

        while stack:
            node, neighbors = stack[-1]
            descended = False

            for neighbor in neighbors:
                if on_stack[neighbor]:
                    members = path[path.index(neighbor):]
                    key = _canonical(members)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(Cycle(nodes=tuple(graph.name(n) for n in members)))
                elif not visited[neighbor]:
                    visited[neighbor] = on_stack[neighbor] = True
                    path.append(neighbor)
                    stack.append((neighbor, iter(graph.predecessors[neighbor])))
                    descended = True
                    break

            if not descended:
                stack.pop()
                path.pop()
                on_stack[node] = False

    if cycles:
        logger.debug(f"Detected {len(cycles)} dependency cycle(s)")
    return cycles


def cycle_findings(cycles: list[Cycle], file_name: str, content: str | None = None) -> list[Finding]:
    """One structure/error finding per cycle."""
    findings = []
    for cycle in cycles:
        line = find_job_line_number(content, cycle.nodes[0]) if content else 0
        findings.append(Finding(
            id=f"circular-dependency-{'-'.join(cycle.path)}",
            category=Category.STRUCTURE,
            severity=Severity.ERROR,
            title="Circular Job Dependency",
            description=f"Circular dependency detected: {' -> '.join(cycle.path)}",
            file=file_name,
            location=Location(line=line or None, job=cycle.nodes[0]),
            suggestion="Restructure job dependencies to eliminate the circular reference",
        ))
    return findings


def topological_order(graph: JobGraph) -> list[int] | None:
    """Kahn's algorithm in declared order. None when the graph has a cycle."""
    remaining = [graph.in_degree(n) for n in range(len(graph))]
    ready = [n for n in range(len(graph)) if remaining[n] == 0]
    order: list[int] = []

    while ready:
        node = ready.pop(0)
        order.append(node)
        for successor in graph.successors[node]:
            remaining[successor] -= 1
            if remaining[successor] == 0:
                ready.append(successor)

    return order if len(order) == len(graph) else None


def _longest_paths_acyclic(graph: JobGraph, order: list[int]) -> list[tuple[int, ...]]:
    # best[n] = longest path from n to a leaf; first successor wins ties
    best: list[tuple[int, ...]] = [()] * len(graph)
    for node in reversed(order):
        chosen: tuple[int, ...] = ()
        for successor in graph.successors[node]:
            if len(best[successor]) > len(chosen):
                chosen = best[successor]
        best[node] = (node,) + chosen
    return best


def _longest_path_exhaustive(graph: JobGraph, root: int, deadline: float | None = None) -> tuple[int, ...]:
    """Longest simple path from root ending at a job with no successors."""
    longest: tuple[int, ...] = ()
    on_path: set[int] = set()

    def dfs(node: int, current: tuple[int, ...]) -> None:
        nonlocal longest
        if node in on_path:
            return
        check_deadline(deadline, "critical path search")
        on_path.add(node)

        current = current + (node,)
        successors = graph.successors[node]
        if not successors:
            if len(current) > len(longest):
                longest = current
        else:
            for successor in successors:
                dfs(successor, current)

        on_path.discard(node)

    dfs(root, ())
    return longest


def analyze_paths(graph: JobGraph, exhaustive_limit: int = 200, deadline: float | None = None) -> PathAnalysis:
    """
    Roots, leaves, isolated jobs and critical paths in execution direction.

    A critical path is the longest root-to-leaf chain from each root; chains
    of a single job are not recorded. Acyclic graphs are solved in linear
    time; cyclic graphs fall back to an exhaustive simple-path search, which
    is skipped for graphs larger than exhaustive_limit jobs and abandoned with
    AnalysisTimeoutError once deadline passes.
    """
    nodes = range(len(graph))
    roots = [n for n in nodes if graph.in_degree(n) == 0]
    leaves = [n for n in nodes if graph.out_degree(n) == 0]
    isolated = [n for n in nodes if graph.in_degree(n) == 0 and graph.out_degree(n) == 0]

    critical: list[tuple[int, ...]] = []
    order = topological_order(graph)
    if order is not None:
        best = _longest_paths_acyclic(graph, order)
        critical = [best[root] for root in roots if len(best[root]) > 1]
    elif len(graph) <= exhaustive_limit:
        for root in roots:
            path = _longest_path_exhaustive(graph, root, deadline)
            if len(path) > 1:
                critical.append(path)
    else:
        logger.warning(f"Skipping critical path search: cyclic graph with {len(graph)} jobs exceeds {exhaustive_limit}")

    def names(indices) -> tuple[str, ...]:
        return tuple(graph.name(n) for n in indices)

    return PathAnalysis(
        roots=names(roots),
        leaves=names(leaves),
        isolated=names(isolated),
        critical_paths=tuple(names(path) for path in critical),
    )
