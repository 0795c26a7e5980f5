"""Topological sorting of dependency graphs.

Example:
    >>> from tampopo import Graph, sort_graph
    >>> sort_graph(Graph(nodes=["pants", "shoes"], edges=[("pants", "shoes")]))
    ['pants', 'shoes']
"""

from tampopo.graph import (
    CycleDetectedError,
    Graph,
    GraphSortError,
    GraphValidator,
    UnknownNodeError,
    UnknownNodePolicy,
    ValidationReport,
    sort_graph,
)

__version__ = "0.1.0"

__all__ = [
    "CycleDetectedError",
    "Graph",
    "GraphSortError",
    "GraphValidator",
    "UnknownNodeError",
    "UnknownNodePolicy",
    "ValidationReport",
    "sort_graph",
]
