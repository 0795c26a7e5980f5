"""Graph validation with cycle path reporting.

This module inspects a Graph without sorting it and collects every problem it
finds into a ValidationReport: cycles (as explicit paths), edges that point at
undeclared nodes, and duplicated nodes or edges. Unlike sort_graph, the
validator never raises for graph content.
"""

from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import Any

import structlog

from tampopo.graph.model import Graph
from tampopo.graph.sorter import UnknownNodePolicy

logger = structlog.get_logger(__name__)


@dataclass
class ValidationReport:
    """Report containing validation results for a graph.

    Attributes:
        is_valid: Whether sort_graph would succeed on the graph
        errors: List of error messages (the graph cannot be sorted)
        warnings: List of warning messages (sortable, but suspicious)
        cycles: Detected cycles, each a node path that ends where it starts
        missing_refs: Edge endpoints that are not declared nodes
        duplicate_nodes: Nodes declared more than once
        duplicate_edges: Edges declared more than once
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycles: list[list[Any]] = field(default_factory=list)
    missing_refs: list[Any] = field(default_factory=list)
    duplicate_nodes: list[Any] = field(default_factory=list)
    duplicate_edges: list[tuple[Any, Any]] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message and mark validation as failed."""
        self.errors.append(message)
        self.is_valid = False
        logger.error("validation_error", message=message)

    def add_warning(self, message: str) -> None:
        """Add a warning message without failing validation."""
        self.warnings.append(message)
        logger.warning("validation_warning", message=message)

    def summary(self) -> str:
        """Generate a human-readable summary of the validation report."""
        lines = []
        lines.append(f"Validation Status: {'PASS' if self.is_valid else 'FAIL'}")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append(f"Cycles: {len(self.cycles)}")
        lines.append(f"Missing References: {len(self.missing_refs)}")

        if self.errors:
            lines.append("\nErrors:")
            lines.extend(f"  - {error}" for error in self.errors)

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.cycles:
            lines.append("\nCycles Detected:")
            for i, cycle in enumerate(self.cycles, 1):
                lines.append(f"  {i}. {_path(cycle)}")

        return "\n".join(lines)


def _path(nodes: list[Any]) -> str:
    return " -> ".join(str(node) for node in nodes)


def _duplicates(items: list[Any]) -> list[Any]:
    seen: set[Any] = set()
    repeated: dict[Any, None] = {}
    for item in items:
        if item in seen:
            repeated[item] = None
        seen.add(item)
    return list(repeated)


class GraphValidator:
    """Validator for graphs with detailed error reporting.

    The validator applies the same unknown-node policy as sort_graph, so a
    report is valid exactly when sorting under that policy would succeed.
    Cycle search keeps per-call state on the instance; use one validator per
    thread.

    Example:
        >>> report = GraphValidator().validate(Graph(nodes=["a"], edges=[("a", "a")]))
        >>> report.cycles
        [['a', 'a']]
    """

    def __init__(self, unknown_nodes: UnknownNodePolicy = UnknownNodePolicy.REJECT):
        """Initialize the graph validator.

        Args:
            unknown_nodes: Whether undeclared edge endpoints are errors
                (REJECT) or only warnings (IMPLICIT)
        """
        self.unknown_nodes = unknown_nodes
        self._visited: set[Hashable] = set()
        self._rec_stack: set[Hashable] = set()
        self._path: list[Hashable] = []

    def validate(self, graph: Graph) -> ValidationReport:
        """Validate a graph and generate a detailed report.

        Args:
            graph: The Graph to validate

        Returns:
            ValidationReport containing all validation results
        """
        logger.info(
            "starting_graph_validation",
            node_count=len(graph.nodes),
            edge_count=len(graph.edges),
        )

        report = ValidationReport()

        duplicate_nodes = _duplicates(list(graph.nodes))
        if duplicate_nodes:
            report.duplicate_nodes = duplicate_nodes
            nodes_str = ", ".join(map(str, duplicate_nodes))
            report.add_warning(f"Nodes declared more than once: {nodes_str}")

        duplicate_edges = _duplicates(list(graph.edges))
        if duplicate_edges:
            report.duplicate_edges = duplicate_edges
            edges_str = ", ".join(_path(list(edge)) for edge in duplicate_edges)
            report.add_warning(f"Edges declared more than once: {edges_str}")

        missing = self._check_missing_refs(graph)
        if missing:
            report.missing_refs = missing
            refs_str = ", ".join(map(str, missing))
            if self.unknown_nodes is UnknownNodePolicy.REJECT:
                report.add_error(f"Edges reference undeclared nodes: {refs_str}")
            else:
                report.add_warning(f"Undeclared nodes will be added implicitly: {refs_str}")

        cycles = self._detect_cycles(graph)
        if cycles:
            report.cycles = cycles
            for cycle in cycles:
                report.add_error(f"Cycle detected: {_path(cycle)}")

        logger.info(
            "graph_validation_complete",
            is_valid=report.is_valid,
            error_count=len(report.errors),
            warning_count=len(report.warnings),
        )

        return report

    def _check_missing_refs(self, graph: Graph) -> list[Hashable]:
        """Find edge endpoints that are not declared nodes.

        Args:
            graph: The graph to inspect

        Returns:
            Undeclared nodes in order of first appearance in the edges
        """
        declared = set(graph.nodes)
        missing = dict.fromkeys(
            node for edge in graph.edges for node in edge if node not in declared
        )

        if missing:
            logger.debug("missing_references_found", count=len(missing))

        return list(missing)

    def _detect_cycles(self, graph: Graph) -> list[list[Hashable]]:
        """Detect cycles in the graph using DFS.

        Searches start from each unvisited node in declaration order (then
        undeclared endpoints), and each search reports at most one cycle.

        Args:
            graph: The graph to inspect

        Returns:
            List of cycles, each a path whose last node repeats its first
        """
        successors: dict[Hashable, list[Hashable]] = {}
        for node in graph.nodes:
            successors.setdefault(node, [])
        for src, dst in graph.edges:
            successors.setdefault(src, []).append(dst)
            successors.setdefault(dst, [])

        self._visited = set()
        cycles = []

        for node in successors:
            if node not in self._visited:
                self._rec_stack = set()
                self._path = []
                cycle = self._dfs_cycle_detect(node, successors)
                if cycle:
                    cycles.append(cycle)

        return cycles

    def _enter(self, node: Hashable) -> None:
        self._visited.add(node)
        self._rec_stack.add(node)
        self._path.append(node)

    def _dfs_cycle_detect(
        self,
        start: Hashable,
        successors: dict[Hashable, list[Hashable]],
    ) -> list[Hashable] | None:
        """DFS-based cycle detection that returns the cycle path.

        The search keeps an explicit stack of successor iterators, one per
        node on the current path, so chain depth is not bounded by the
        interpreter's recursion limit.

        Args:
            start: Node the search starts from
            successors: Mapping from each node to its edge targets

        Returns:
            List representing the cycle path if found, None otherwise
        """
        self._enter(start)
        work = [iter(successors[start])]

        while work:
            for target in work[-1]:
                if target not in self._visited:
                    self._enter(target)
                    work.append(iter(successors[target]))
                    break
                if target in self._rec_stack:
                    cycle_start_idx = self._path.index(target)
                    return [*self._path[cycle_start_idx:], target]
            else:
                # Backtrack
                work.pop()
                self._rec_stack.remove(self._path.pop())

        return None
