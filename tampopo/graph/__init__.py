"""Graph module for topological sorting.

This module provides the Graph value type, Kahn's-algorithm sorting with
cycle reporting, and a validator that explains why a graph cannot be sorted.
"""

from tampopo.graph.model import Graph
from tampopo.graph.sorter import (
    CycleDetectedError,
    GraphSortError,
    UnknownNodeError,
    UnknownNodePolicy,
    sort_graph,
)
from tampopo.graph.validator import GraphValidator, ValidationReport

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
