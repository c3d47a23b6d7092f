"""
Directed graph of project structure and file dependencies.

Nodes are unique by id: the first insert wins and later inserts with the same
id are ignored, metadata included. Edges are unique by (source, target, type)
and may only join nodes already in the graph. The graph is append-only and
knows nothing about the file system.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .node_types import GraphEdge, GraphNode, LinkType, NodeType

logger = logging.getLogger(__name__)


class DependencyGraph:
    def __init__(self) -> None:
        self._nodes: Dict[str, GraphNode] = {}
        self._edges: List[GraphEdge] = []
        self._edge_keys: Set[Tuple[str, str, LinkType]] = set()
        self._out: Dict[str, List[GraphEdge]] = {}
        self._in: Dict[str, List[GraphEdge]] = {}

    # --- mutation ---
    def add_node(self, node: GraphNode) -> GraphNode:
        """Insert ``node`` unless its id is taken; return the stored node."""
        existing = self._nodes.get(node.id)
        if existing is not None:
            return existing
        self._nodes[node.id] = node
        self._out[node.id] = []
        self._in[node.id] = []
        logger.debug("Adding node (%s): %s", node.type.value, node.id)
        return node

    def add_edge(self, source: str, target: str, type: LinkType) -> bool:
        """Add a typed edge. Returns True only when a new edge was stored."""
        if source not in self._nodes or target not in self._nodes:
            logger.warning("Attempted to add link between non-existent nodes: %s -> %s", source, target)
            return False
        key = (source, target, type)
        if key in self._edge_keys:
            return False
        edge = GraphEdge(source, target, type)
        self._edge_keys.add(key)
        self._edges.append(edge)
        self._out[source].append(edge)
        self._in[target].append(edge)
        logger.debug("Adding link (%s): %s -> %s", type.value, source, target)
        return True

    # --- queries ---
    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._nodes.get(node_id)

    def has_edge(self, source: str, target: str, type: Optional[LinkType] = None) -> bool:
        if type is not None:
            return (source, target, type) in self._edge_keys
        return any(e.target == target for e in self._out.get(source, []))

    def nodes(self) -> List[GraphNode]:
        return list(self._nodes.values())

    def edges(self) -> List[GraphEdge]:
        return list(self._edges)

    def out_edges(self, node_id: str) -> List[GraphEdge]:
        return list(self._out.get(node_id, []))

    def in_edges(self, node_id: str) -> List[GraphEdge]:
        return list(self._in.get(node_id, []))

    def out_degree(self, node_id: str) -> int:
        return len(self._out.get(node_id, []))

    def in_degree(self, node_id: str) -> int:
        return len(self._in.get(node_id, []))

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def nodes_of_type(self, node_type: NodeType) -> Iterator[GraphNode]:
        return (n for n in self._nodes.values() if n.type == node_type)

    def module_paths(self) -> Set[str]:
        """Absolute paths of every Module node."""
        out: Set[str] = set()
        for node in self.nodes_of_type(NodeType.MODULE):
            path = node.absolute_path
            if path:
                out.add(path)
        return out

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable ``{"nodes": [...], "links": [...]}`` projection."""
        return {
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "links": [e.to_dict() for e in self._edges],
        }
