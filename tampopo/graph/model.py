"""Graph value type consumed by the topological sorter.

A Graph is a plain, immutable pair of node and edge sequences. It performs no
validation of its own: undeclared edge endpoints, duplicates and cycles are
reported by the sorter or the validator.
"""

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T", bound=Hashable)


@dataclass(frozen=True)
class Graph(Generic[T]):
    """A directed graph over hashable nodes.

    An edge ``(a, b)`` means "a must precede b" in any topological order.

    Attributes:
        nodes: Nodes in insertion order
        edges: Directed edges in insertion order

    Example:
        >>> graph = Graph(nodes=["a", "b"], edges=[("a", "b")])
        >>> graph.nodes
        ('a', 'b')
    """

    nodes: tuple[T, ...] = ()
    edges: tuple[tuple[T, T], ...] = ()

    def __post_init__(self) -> None:
        # Copy into tuples so the caller's lists can't change the graph later
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(tuple(edge) for edge in self.edges))

    @classmethod
    def from_dependencies(cls, dependencies: Mapping[T, Iterable[T]]) -> "Graph[T]":
        """Build a graph from a mapping of node to the nodes it depends on.

        Args:
            dependencies: Mapping from each node to its prerequisites

        Returns:
            Graph whose nodes are the mapping keys and whose edges run from
            each prerequisite to its dependent

        Example:
            >>> graph = Graph.from_dependencies({"name": [], "license": ["name"]})
            >>> graph.edges
            (('name', 'license'),)
        """
        edges = [(dep, node) for node, deps in dependencies.items() for dep in deps]
        return cls(nodes=tuple(dependencies), edges=edges)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]]) -> "Graph[T]":
        """Build a graph whose nodes are inferred from its edges.

        Nodes are listed in order of first appearance, source before target.

        Args:
            edges: Directed ``(source, target)`` pairs

        Returns:
            Graph containing every edge endpoint as a node
        """
        edges = [tuple(edge) for edge in edges]
        nodes = dict.fromkeys(node for edge in edges for node in edge)
        return cls(nodes=tuple(nodes), edges=edges)
