"""
Dependency Graph
================

Directed graph of the project's source files, used for impact analysis.

Edges point from the dependent node to the node it depends on: an edge
``source -> target`` reads "source imports / calls / queries target". Impact
analysis walks the edges backwards: given a node, who depends on it, and who
depends on those, and so on.

Nodes are keyed by file path. Adding a node for a path that is already
tracked updates that node in place (same id), so every path maps to exactly
one node.
"""

import uuid
from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from codebakers.errors import InvalidArgumentError, NotFoundError


class NodeType(str, Enum):
    SCHEMA = "schema"
    API = "api"
    COMPONENT = "component"
    SERVICE = "service"
    PAGE = "page"
    UTIL = "util"
    CONFIG = "config"


class EdgeType(str, Enum):
    IMPORT = "import"
    API_CALL = "api-call"
    DB_QUERY = "db-query"
    EVENT = "event"
    CONFIG = "config"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _enum_value(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)
        raise InvalidArgumentError(f"Unknown {label}: {value!r}", hint=f"Use one of: {valid}") from None


@dataclass
class GraphNode:
    id: str
    type: str
    name: str
    file_path: str
    created_at: str = field(default_factory=_now)
    modified_at: str = field(default_factory=_now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "GraphNode":
        return cls(**data)

    def label(self) -> str:
        return f"{self.name} ({self.type}) - {self.file_path}"


@dataclass
class GraphEdge:
    id: str
    source_id: str      # the dependent
    target_id: str      # the dependency
    type: str = EdgeType.IMPORT.value

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "GraphEdge":
        return cls(**data)


@dataclass
class AffectedNodes:
    """Result of an impact query."""
    direct: list[GraphNode] = field(default_factory=list)
    transitive: list[GraphNode] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.direct) + len(self.transitive)


class DependencyGraph:
    """Nodes and edges for one project."""

    def __init__(
        self,
        nodes: Optional[list[GraphNode]] = None,
        edges: Optional[list[GraphEdge]] = None,
    ):
        self.nodes: list[GraphNode] = list(nodes or [])
        self.edges: list[GraphEdge] = list(edges or [])

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_node_by_path(self, file_path: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.file_path == file_path:
                return node
        return None

    def dependents_of(self, node_id: str) -> list[GraphNode]:
        """Nodes with an edge pointing at ``node_id``, without duplicates."""
        return self._unique_nodes(e.source_id for e in self.edges if e.target_id == node_id)

    def dependencies_of(self, node_id: str) -> list[GraphNode]:
        """Nodes that ``node_id`` points at, without duplicates."""
        return self._unique_nodes(e.target_id for e in self.edges if e.source_id == node_id)

    def _unique_nodes(self, ids) -> list[GraphNode]:
        seen: set[str] = set()
        result: list[GraphNode] = []
        for node_id in ids:
            if node_id in seen:
                continue
            seen.add(node_id)
            node = self.get_node(node_id)
            if node is not None:
                result.append(node)
        return result

    def nodes_by_type(self) -> dict[str, list[GraphNode]]:
        grouped: dict[str, list[GraphNode]] = {}
        for node in self.nodes:
            grouped.setdefault(node.type, []).append(node)
        return grouped

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_node(self, node_type: NodeType | str, name: str, file_path: str) -> GraphNode:
        """Add a node, or update the node already tracked at ``file_path``."""
        kind = _enum_value(NodeType, node_type, "node type")
        if not file_path:
            raise InvalidArgumentError("A file path is required for a graph node.")

        existing = self.find_node_by_path(file_path)
        if existing is not None:
            existing.type = kind.value
            existing.name = name
            existing.modified_at = _now()
            return existing

        node = GraphNode(id=_new_id(), type=kind.value, name=name, file_path=file_path)
        self.nodes.append(node)
        return node

    def add_edge(self, source_id: str, target_id: str, edge_type: EdgeType | str = EdgeType.IMPORT) -> GraphEdge:
        """Add ``source -> target``; an identical edge is returned, not duplicated."""
        kind = _enum_value(EdgeType, edge_type, "dependency type")
        for edge in self.edges:
            if edge.source_id == source_id and edge.target_id == target_id and edge.type == kind.value:
                return edge

        edge = GraphEdge(id=_new_id(), source_id=source_id, target_id=target_id, type=kind.value)
        self.edges.append(edge)
        return edge

    # ------------------------------------------------------------------
    # Impact analysis
    # ------------------------------------------------------------------

    def find_affected_nodes(self, node_id: str) -> AffectedNodes:
        """
        Everything that depends on ``node_id``, split by distance.

        ``direct`` holds nodes one hop away along incoming edges,
        ``transitive`` everything reachable beyond that. The origin never
        appears and no node appears twice, whatever the number of paths or
        cycles leading to it.
        """
        if self.get_node(node_id) is None:
            raise NotFoundError(f"Node not in dependency graph: {node_id}")

        incoming: dict[str, list[str]] = {}
        for edge in self.edges:
            incoming.setdefault(edge.target_id, []).append(edge.source_id)

        direct = self._unique_nodes(
            source for source in incoming.get(node_id, []) if source != node_id
        )

        visited: set[str] = {node_id}
        visited.update(n.id for n in direct)
        queue: deque[str] = deque(n.id for n in direct)
        transitive_ids: list[str] = []

        while queue:
            current = queue.popleft()
            for source in incoming.get(current, []):
                if source in visited:
                    continue
                visited.add(source)
                transitive_ids.append(source)
                queue.append(source)

        return AffectedNodes(direct=direct, transitive=self._unique_nodes(transitive_ids))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DependencyGraph":
        data = data or {}
        return cls(
            nodes=[GraphNode.from_dict(n) for n in data.get("nodes") or []],
            edges=[GraphEdge.from_dict(e) for e in data.get("edges") or []],
        )
