"""Unit tests for sort_graph.

Tests cover:
- Ordering guarantees on acyclic graphs
- Deterministic tie-breaking by declaration order
- Cycle detection, including self-loops
- Exact cycle membership versus nodes blocked downstream of a cycle
- The unknown-node policy in both modes
- Duplicate nodes and duplicate edges
"""

import pytest

from tampopo.graph.model import Graph
from tampopo.graph.sorter import (
    CycleDetectedError,
    GraphSortError,
    UnknownNodeError,
    UnknownNodePolicy,
    sort_graph,
)

WARDROBE_NODES = [
    "shirt",
    "hoodie",
    "socks",
    "underwear",
    "pants",
    "shoes",
    "glasses",
    "watch",
    "school",
]
WARDROBE_EDGES = [
    ("shirt", "hoodie"),
    ("hoodie", "school"),
    ("underwear", "pants"),
    ("pants", "shoes"),
    ("socks", "shoes"),
    ("shoes", "school"),
]

INTEGER_NODES = [2, 3, 5, 7, 8, 9, 10, 11]
INTEGER_EDGES = [
    (5, 11),
    (7, 8),
    (7, 11),
    (3, 8),
    (3, 10),
    (11, 2),
    (11, 9),
    (11, 10),
    (8, 9),
]

ACYCLIC_GRAPHS = [
    Graph(nodes=WARDROBE_NODES, edges=WARDROBE_EDGES),
    Graph(nodes=INTEGER_NODES, edges=INTEGER_EDGES),
    Graph(nodes=["a", "b", "c", "d"], edges=[("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]),
    Graph(nodes=["d", "c", "b", "a"], edges=[("a", "b"), ("b", "c"), ("c", "d")]),
    Graph(nodes=[("pkg", 1), ("pkg", 2)], edges=[(("pkg", 2), ("pkg", 1))]),
]


def assert_topological(graph: Graph, order: list) -> None:
    """Assert that order is a permutation of the nodes respecting every edge."""
    assert sorted(map(repr, order)) == sorted(map(repr, set(graph.nodes)))
    assert len(order) == len(set(order))
    position = {node: index for index, node in enumerate(order)}
    for src, dst in graph.edges:
        assert position[src] < position[dst], f"{src} must precede {dst}"


class TestAcyclicGraphs:
    """Test ordering of graphs without cycles."""

    def test_empty_graph(self):
        """Test that an empty graph sorts to an empty list."""
        assert sort_graph(Graph()) == []

    def test_nodes_without_edges_keep_declared_order(self):
        """Test that isolated nodes come back exactly as declared."""
        graph = Graph(nodes=["c", "a", "b"], edges=[])

        assert sort_graph(graph) == ["c", "a", "b"]

    def test_wardrobe_graph(self):
        """Test the dressing-for-school graph."""
        graph = Graph(nodes=WARDROBE_NODES, edges=WARDROBE_EDGES)

        order = sort_graph(graph)
        position = {node: index for index, node in enumerate(order)}

        assert position["shirt"] < position["hoodie"] < position["school"]
        assert position["underwear"] < position["pants"] < position["shoes"] < position["school"]
        assert position["socks"] < position["shoes"]
        assert "glasses" in order
        assert "watch" in order
        assert len(order) == len(WARDROBE_NODES)

    def test_wardrobe_graph_exact_order(self):
        """Test that roots come first in declared order, then FIFO order."""
        graph = Graph(nodes=WARDROBE_NODES, edges=WARDROBE_EDGES)

        assert sort_graph(graph) == [
            "shirt",
            "socks",
            "underwear",
            "glasses",
            "watch",
            "hoodie",
            "pants",
            "shoes",
            "school",
        ]

    def test_integer_nodes(self):
        """Test sorting a graph of integers."""
        graph = Graph(nodes=INTEGER_NODES, edges=INTEGER_EDGES)

        assert_topological(graph, sort_graph(graph))

    @pytest.mark.parametrize("graph", ACYCLIC_GRAPHS)
    def test_order_respects_every_edge(self, graph):
        """Test that the output is a permutation honoring every edge."""
        assert_topological(graph, sort_graph(graph))

    @pytest.mark.parametrize("graph", ACYCLIC_GRAPHS)
    def test_sorting_is_deterministic(self, graph):
        """Test that sorting the same graph twice gives the same list."""
        assert sort_graph(graph) == sort_graph(graph)

    def test_ties_broken_by_declaration_order(self):
        """Test that reordering declared nodes reorders independent nodes."""
        edges = [("base", "top")]

        first = sort_graph(Graph(nodes=["x", "base", "y", "top"], edges=edges))
        second = sort_graph(Graph(nodes=["y", "base", "x", "top"], edges=edges))

        assert first == ["x", "base", "y", "top"]
        assert second == ["y", "base", "x", "top"]

    def test_roots_precede_dependents(self):
        """Test that every root node is emitted before any non-root."""
        graph = Graph(nodes=["c", "b", "a"], edges=[("a", "b"), ("b", "c")])

        assert sort_graph(graph) == ["a", "b", "c"]

    def test_graph_not_modified(self):
        """Test that sorting leaves the graph untouched."""
        graph = Graph(nodes=WARDROBE_NODES, edges=WARDROBE_EDGES)
        before = (graph.nodes, graph.edges)

        sort_graph(graph)

        assert (graph.nodes, graph.edges) == before

    def test_from_dependencies_round_trip(self):
        """Test sorting a graph built from a dependency mapping."""
        graph = Graph.from_dependencies(
            {
                "license": ["author"],
                "author": [],
                "year": [],
                "readme": ["license", "year"],
            },
        )

        assert sort_graph(graph) == ["author", "year", "license", "readme"]


class TestCycleDetection:
    """Test cycle detection and reporting."""

    def test_three_node_cycle(self):
        """Test that a -> b -> c -> a is reported with all three nodes."""
        graph = Graph(nodes=["a", "b", "c"], edges=[("a", "b"), ("b", "c"), ("c", "a")])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert set(exc_info.value.nodes) == {"a", "b", "c"}
        assert set(exc_info.value.unresolved) == {"a", "b", "c"}
        assert "Cycle detected" in str(exc_info.value)

    def test_self_loop_is_a_cycle(self):
        """Test that a node depending on itself is a one-node cycle."""
        graph = Graph(nodes=["a", "x"], edges=[("x", "x")])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert exc_info.value.nodes == ("x",)
        assert exc_info.value.edges == (("x", "x"),)

    def test_self_loop_with_other_incoming_edges(self):
        """Test a self-loop on a node that also has a normal predecessor."""
        graph = Graph(nodes=["a", "x"], edges=[("a", "x"), ("x", "x")])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert exc_info.value.nodes == ("x",)

    def test_integer_graph_with_cycle(self):
        """Test that closing a loop in the integer graph is detected."""
        graph = Graph(nodes=INTEGER_NODES, edges=[*INTEGER_EDGES, (9, 11)])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert set(exc_info.value.nodes) == {9, 11}

    def test_wardrobe_graph_with_cycle(self):
        """Test that school -> shirt closes a cycle through the hoodie."""
        graph = Graph(nodes=WARDROBE_NODES, edges=[*WARDROBE_EDGES, ("school", "shirt")])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert exc_info.value.nodes == ("shirt", "hoodie", "school")

    def test_downstream_nodes_are_unresolved_but_not_cycle_members(self):
        """Test that nodes blocked by a cycle are reported separately."""
        graph = Graph(
            nodes=["a", "b", "c", "d", "e"],
            edges=[("a", "b"), ("b", "c"), ("c", "b"), ("c", "d")],
        )

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        error = exc_info.value
        assert error.nodes == ("b", "c")
        assert error.unresolved == ("b", "c", "d")
        assert error.edges == (("b", "c"), ("c", "b"))

    def test_node_between_two_cycles_is_not_a_member(self):
        """Test that a node linking two cycles is unresolved only."""
        graph = Graph(
            nodes=["a", "b", "link", "c", "d"],
            edges=[("a", "b"), ("b", "a"), ("b", "link"), ("link", "c"), ("c", "d"), ("d", "c")],
        )

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert exc_info.value.nodes == ("a", "b", "c", "d")
        assert "link" in exc_info.value.unresolved

    def test_cycle_error_is_graph_sort_error(self):
        """Test that callers can catch both failure kinds with one class."""
        graph = Graph(nodes=["a"], edges=[("a", "a")])

        with pytest.raises(GraphSortError):
            sort_graph(graph)

    def test_report_lists_nodes_and_edges(self):
        """Test the multi-line cycle report."""
        graph = Graph(
            nodes=["a", "b", "c"],
            edges=[("a", "b"), ("b", "a"), ("b", "c")],
        )

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        report = exc_info.value.report()
        assert "Nodes:\n  a, b" in report
        assert "  a -> b" in report
        assert "  b -> a" in report
        assert "b -> c" not in report
        assert "Blocked by the cycle: c" in report


class TestUnknownNodes:
    """Test handling of edges that reference undeclared nodes."""

    def test_reject_is_default(self):
        """Test that undeclared endpoints raise UnknownNodeError by default."""
        graph = Graph(nodes=["a"], edges=[("a", "ghost"), ("phantom", "a")])

        with pytest.raises(UnknownNodeError) as exc_info:
            sort_graph(graph)

        assert exc_info.value.nodes == ("ghost", "phantom")
        assert exc_info.value.edges == (("a", "ghost"), ("phantom", "a"))

    def test_unknown_node_is_not_a_cycle_error(self):
        """Test that the two failure kinds stay distinct."""
        graph = Graph(nodes=["a", "b"], edges=[("a", "b"), ("b", "a"), ("b", "ghost")])

        with pytest.raises(UnknownNodeError) as exc_info:
            sort_graph(graph)

        assert not isinstance(exc_info.value, CycleDetectedError)

    def test_implicit_policy_adds_nodes(self):
        """Test that undeclared endpoints are ordered after declared roots."""
        graph = Graph(nodes=["b"], edges=[("a", "b"), ("b", "c")])

        order = sort_graph(graph, unknown_nodes=UnknownNodePolicy.IMPLICIT)

        assert order == ["a", "b", "c"]

    def test_implicit_policy_appends_isolated_declared_roots_first(self):
        """Test that implicit roots follow declared roots."""
        graph = Graph(nodes=["x", "b"], edges=[("a", "b")])

        order = sort_graph(graph, unknown_nodes=UnknownNodePolicy.IMPLICIT)

        assert order == ["x", "a", "b"]

    def test_implicit_policy_still_detects_cycles(self):
        """Test that implicit nodes take part in cycle detection."""
        graph = Graph(nodes=["a"], edges=[("a", "ghost"), ("ghost", "a")])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph, unknown_nodes=UnknownNodePolicy.IMPLICIT)

        assert exc_info.value.nodes == ("a", "ghost")

    def test_from_dependencies_with_undeclared_prerequisite(self):
        """Test a dependency on a key that was never declared."""
        graph = Graph.from_dependencies({"readme": ["license"]})

        with pytest.raises(UnknownNodeError):
            sort_graph(graph)

        assert sort_graph(graph, unknown_nodes=UnknownNodePolicy.IMPLICIT) == [
            "license",
            "readme",
        ]


class TestDuplicates:
    """Test duplicate nodes and duplicate edges."""

    def test_duplicate_nodes_collapse_to_first_occurrence(self):
        """Test that a repeated node is emitted once."""
        graph = Graph(nodes=["a", "b", "a"], edges=[("b", "a")])

        assert sort_graph(graph) == ["b", "a"]

    def test_duplicate_edges_are_harmless(self):
        """Test that repeating an edge does not look like a cycle."""
        graph = Graph(nodes=["a", "b", "c"], edges=[("a", "b"), ("a", "b"), ("b", "c")])

        assert sort_graph(graph) == ["a", "b", "c"]

    def test_duplicate_edges_in_cycle(self):
        """Test that duplicated cycle edges are all reported."""
        graph = Graph(nodes=["a", "b"], edges=[("a", "b"), ("a", "b"), ("b", "a")])

        with pytest.raises(CycleDetectedError) as exc_info:
            sort_graph(graph)

        assert exc_info.value.edges == (("a", "b"), ("a", "b"), ("b", "a"))
