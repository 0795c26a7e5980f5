"""Topological sorting with Kahn's algorithm.

This module provides sort_graph, which orders the nodes of a Graph so that
every edge's source comes before its target, and the errors it raises when no
such order exists or when edges reference nodes the graph never declared.
"""

from collections import deque
from collections.abc import Hashable, Iterable, Sequence
from enum import Enum
from typing import Generic, TypeVar

import structlog

from tampopo.graph.model import Graph

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Hashable)


class UnknownNodePolicy(str, Enum):
    """How the sorter treats edge endpoints missing from ``Graph.nodes``."""

    REJECT = "reject"
    IMPLICIT = "implicit"


class GraphSortError(Exception, Generic[T]):
    """Base exception for graphs that cannot be topologically sorted."""

    def __init__(self, message: str):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the sorting error
        """
        super().__init__(message)
        self.message = message


class CycleDetectedError(GraphSortError[T]):
    """Exception raised when the graph contains at least one cycle.

    Attributes:
        nodes: Nodes that lie on a cycle, in node order
        unresolved: Every node that could not be ordered, including nodes that
            only sit downstream of a cycle
        edges: Edges between cycle nodes, in edge order
    """

    def __init__(
        self,
        nodes: Sequence[T],
        unresolved: Sequence[T],
        edges: Sequence[tuple[T, T]],
    ):
        self.nodes = tuple(nodes)
        self.unresolved = tuple(unresolved)
        self.edges = tuple(edges)
        super().__init__(f"Cycle detected among nodes: {_join(self.nodes)}")

    def report(self) -> str:
        """Render the nodes and edges of the cycle as readable text."""
        lines = ["Cycle detected in the following graph:", "Nodes:"]
        lines.append(f"  {_join(self.nodes)}")
        lines.append("Edges:")
        lines.extend(f"  {src} -> {dst}" for src, dst in self.edges)

        cycle_nodes = set(self.nodes)
        downstream = [node for node in self.unresolved if node not in cycle_nodes]
        if downstream:
            lines.append(f"Blocked by the cycle: {_join(downstream)}")

        return "\n".join(lines)


class UnknownNodeError(GraphSortError[T]):
    """Exception raised when edges reference nodes absent from the graph.

    Attributes:
        nodes: Undeclared nodes, in order of first appearance in the edges
        edges: Edges that reference at least one undeclared node
    """

    def __init__(self, nodes: Sequence[T], edges: Sequence[tuple[T, T]]):
        self.nodes = tuple(nodes)
        self.edges = tuple(edges)
        super().__init__(f"Edges reference undeclared nodes: {_join(self.nodes)}")


def _join(nodes: Iterable[object]) -> str:
    return ", ".join(str(node) for node in nodes)


def _unknown_endpoints(edges: Iterable[tuple[T, T]], declared: dict[T, None]) -> list[T]:
    unknown: dict[T, None] = {}
    for edge in edges:
        for node in edge:
            if node not in declared:
                unknown[node] = None
    return list(unknown)


def _cycle_members(nodes: list[T], successors: dict[T, list[T]]) -> list[T]:
    """Return the nodes that lie on a cycle of the residual graph.

    Runs an iterative Tarjan strongly-connected-components pass restricted to
    ``nodes``. A component is cyclic when it has more than one member or its
    only member has a self-loop.
    """
    remaining = set(nodes)
    index: dict[T, int] = {}
    lowlink: dict[T, int] = {}
    stack: list[T] = []
    on_stack: set[T] = set()
    members: set[T] = set()

    for root in nodes:
        if root in index:
            continue

        index[root] = lowlink[root] = len(index)
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(successors[root]))]

        while work:
            node, targets = work[-1]
            descended = False
            for target in targets:
                if target not in remaining:
                    continue
                if target not in index:
                    index[target] = lowlink[target] = len(index)
                    stack.append(target)
                    on_stack.add(target)
                    work.append((target, iter(successors[target])))
                    descended = True
                    break
                if target in on_stack:
                    lowlink[node] = min(lowlink[node], index[target])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            if lowlink[node] == index[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                if len(component) > 1 or node in successors[node]:
                    members.update(component)

    return [node for node in nodes if node in members]


def sort_graph(
    graph: Graph[T],
    *,
    unknown_nodes: UnknownNodePolicy = UnknownNodePolicy.REJECT,
) -> list[T]:
    """Return the nodes of ``graph`` in topological order.

    Nodes with no predecessors are emitted first, in the order they were
    declared, and ties are always broken by declaration order, so the same
    graph always sorts to the same list. Duplicate nodes are collapsed to
    their first occurrence. Each call works on its own copies of the indegree
    and adjacency maps; the graph is never modified.

    Args:
        graph: The graph to sort
        unknown_nodes: What to do with edge endpoints missing from
            ``graph.nodes``

    Returns:
        Every distinct node exactly once, each edge's source before its target

    Raises:
        UnknownNodeError: If an edge references an undeclared node under the
            REJECT policy
        CycleDetectedError: If the graph (including a self-loop) has a cycle

    Example:
        >>> graph = Graph(nodes=["b", "a"], edges=[("a", "b")])
        >>> sort_graph(graph)
        ['a', 'b']
    """
    declared = dict.fromkeys(graph.nodes)
    if len(declared) != len(graph.nodes):
        logger.warning(
            "duplicate_nodes_ignored",
            declared_count=len(graph.nodes),
            distinct_count=len(declared),
        )

    unknown = _unknown_endpoints(graph.edges, declared)
    if unknown:
        if unknown_nodes is UnknownNodePolicy.REJECT:
            unknown_set = set(unknown)
            offending = [
                edge for edge in graph.edges if edge[0] in unknown_set or edge[1] in unknown_set
            ]
            logger.warning("unknown_nodes_in_graph", nodes=[str(node) for node in unknown])
            raise UnknownNodeError(unknown, offending)

        logger.debug("implicit_nodes_added", nodes=[str(node) for node in unknown])
        declared.update(dict.fromkeys(unknown))

    indegree = dict.fromkeys(declared, 0)
    successors: dict[T, list[T]] = {node: [] for node in declared}
    for src, dst in graph.edges:
        successors[src].append(dst)
        indegree[dst] += 1

    queue = deque(node for node, degree in indegree.items() if degree == 0)
    order: list[T] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for target in successors[node]:
            indegree[target] -= 1
            if indegree[target] == 0:
                queue.append(target)

    if len(order) == len(indegree):
        logger.debug("graph_sorted", node_count=len(order), edge_count=len(graph.edges))
        return order

    unresolved = [node for node, degree in indegree.items() if degree > 0]
    cycle = _cycle_members(unresolved, successors)
    cycle_set = set(cycle)
    cycle_edges = [edge for edge in graph.edges if edge[0] in cycle_set and edge[1] in cycle_set]

    logger.warning(
        "cycle_detected_in_graph",
        cycle_nodes=[str(node) for node in cycle],
        unresolved_count=len(unresolved),
    )
    raise CycleDetectedError(cycle, unresolved, cycle_edges)
