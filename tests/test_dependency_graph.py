"""
Tests for Dependency Graph
==========================

Tests for node upserts, edges and impact traversal.
"""

import pytest

from codebakers.dependency_graph import DependencyGraph, EdgeType, NodeType
from codebakers.errors import InvalidArgumentError, NotFoundError


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def graph():
    return DependencyGraph()


@pytest.fixture
def chain(graph):
    """A <- B <- C: B depends on A, C depends on B."""
    a = graph.add_node("schema", "users", "src/db/users.ts")
    b = graph.add_node("api", "users-route", "src/api/users.ts")
    c = graph.add_node("page", "users-page", "src/app/users/page.tsx")
    graph.add_edge(b.id, a.id)
    graph.add_edge(c.id, b.id, "api-call")
    return graph, a, b, c


# =============================================================================
# Node Tests
# =============================================================================

class TestNodes:
    def test_add_node(self, graph):
        node = graph.add_node(NodeType.UTIL, "format", "src/lib/format.ts")
        assert node.type == "util"
        assert graph.find_node_by_path("src/lib/format.ts") is node
        assert graph.get_node(node.id) is node

    def test_same_path_updates_in_place(self, graph):
        first = graph.add_node("util", "format", "src/lib/format.ts")
        second = graph.add_node("service", "formatter", "src/lib/format.ts")
        assert second.id == first.id
        assert len(graph.nodes) == 1
        assert second.type == "service"
        assert second.name == "formatter"

    def test_invalid_node_type(self, graph):
        with pytest.raises(InvalidArgumentError) as exc:
            graph.add_node("widget", "x", "x.ts")
        assert "schema" in exc.value.hint

    def test_empty_path_rejected(self, graph):
        with pytest.raises(InvalidArgumentError):
            graph.add_node("util", "x", "")

    def test_nodes_by_type(self, chain):
        graph, a, b, c = chain
        grouped = graph.nodes_by_type()
        assert grouped["schema"] == [a]
        assert grouped["api"] == [b]
        assert grouped["page"] == [c]


# =============================================================================
# Edge Tests
# =============================================================================

class TestEdges:
    def test_edge_direction(self, chain):
        graph, a, b, c = chain
        assert graph.dependencies_of(b.id) == [a]
        assert graph.dependents_of(a.id) == [b]
        assert graph.dependents_of(c.id) == []

    def test_duplicate_edge_not_added(self, chain):
        graph, a, b, _ = chain
        again = graph.add_edge(b.id, a.id, EdgeType.IMPORT)
        assert len(graph.edges) == 2
        assert again in graph.edges

    def test_different_type_is_separate_edge(self, chain):
        graph, a, b, _ = chain
        graph.add_edge(b.id, a.id, "db-query")
        assert len(graph.edges) == 3
        assert graph.dependents_of(a.id) == [b]

    def test_invalid_edge_type(self, chain):
        graph, a, b, _ = chain
        with pytest.raises(InvalidArgumentError):
            graph.add_edge(b.id, a.id, "inherits")


# =============================================================================
# Impact Traversal Tests
# =============================================================================

class TestFindAffected:
    def test_transitive_chain(self, chain):
        graph, a, b, c = chain
        affected = graph.find_affected_nodes(a.id)
        assert affected.direct == [b]
        assert affected.transitive == [c]
        assert affected.total == 2

    def test_leaf_has_no_dependents(self, chain):
        graph, _, _, c = chain
        affected = graph.find_affected_nodes(c.id)
        assert affected.total == 0

    def test_diamond_counts_each_node_once(self, graph):
        base = graph.add_node("util", "base", "base.ts")
        left = graph.add_node("service", "left", "left.ts")
        right = graph.add_node("service", "right", "right.ts")
        top = graph.add_node("page", "top", "top.tsx")
        graph.add_edge(left.id, base.id)
        graph.add_edge(right.id, base.id)
        graph.add_edge(top.id, left.id)
        graph.add_edge(top.id, right.id)

        affected = graph.find_affected_nodes(base.id)
        assert {n.id for n in affected.direct} == {left.id, right.id}
        assert affected.transitive == [top]

    def test_direct_wins_over_transitive(self, graph):
        a = graph.add_node("util", "a", "a.ts")
        b = graph.add_node("util", "b", "b.ts")
        c = graph.add_node("util", "c", "c.ts")
        graph.add_edge(b.id, a.id)
        graph.add_edge(c.id, b.id)
        graph.add_edge(c.id, a.id)

        affected = graph.find_affected_nodes(a.id)
        assert {n.id for n in affected.direct} == {b.id, c.id}
        assert affected.transitive == []

    def test_cycle_terminates_without_origin(self, graph):
        a = graph.add_node("util", "a", "a.ts")
        b = graph.add_node("util", "b", "b.ts")
        c = graph.add_node("util", "c", "c.ts")
        graph.add_edge(a.id, b.id)
        graph.add_edge(b.id, c.id)
        graph.add_edge(c.id, a.id)

        affected = graph.find_affected_nodes(a.id)
        assert affected.direct == [c]
        assert affected.transitive == [b]
        assert a not in affected.direct + affected.transitive

    def test_unknown_node(self, graph):
        with pytest.raises(NotFoundError):
            graph.find_affected_nodes("missing")


# =============================================================================
# Serialization Tests
# =============================================================================

class TestSerialization:
    def test_round_trip(self, chain):
        graph, a, _, c = chain
        restored = DependencyGraph.from_dict(graph.to_dict())
        assert [n.id for n in restored.nodes] == [n.id for n in graph.nodes]
        assert restored.find_affected_nodes(a.id).transitive[0].id == c.id

    def test_from_none(self):
        assert DependencyGraph.from_dict(None).nodes == []
