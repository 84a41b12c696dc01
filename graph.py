"""Factory graph: nodes, belts/pipes and the per-node handle -> edge adjacency."""

import json
import logging
from dataclasses import dataclass, field

from errors import MalformedHandle, MissingNeighborResult
from handles import split_handle_id
from node_data import NODE_KINDS

_LOGGER = logging.getLogger("satisflow")

# adjacency keys for edges saved without a handle id
_MISSING_SOURCE_HANDLE = "output"
_MISSING_TARGET_HANDLE = "input"


@dataclass
class EdgeAnnotation:
    """What the engine found on a belt/pipe, for display"""

    start_label: str | None = None
    center_label: str | None = None
    end_label: str | None = None
    color_mode: str = "default"  # "default" | "info" | "warning" | "error"
    balances: dict[str, int] = field(default_factory=dict)  # item key -> source + target rate
    message: str | None = None  # why the edge is in error


@dataclass
class Node:
    """A machine, item source/sink or logistic node"""

    id: str
    kind: str
    data: dict = field(default_factory=dict)
    position: tuple[float, float] = (0.0, 0.0)
    edges: dict[str, str] = field(default_factory=dict)  # handle id -> edge id


@dataclass
class Edge:
    """A belt or pipe from an out handle to an in handle"""

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    annotation: EdgeAnnotation | None = None

    @property
    def source_key(self) -> str:
        return self.source_handle or _MISSING_SOURCE_HANDLE

    @property
    def target_key(self) -> str:
        return self.target_handle or _MISSING_TARGET_HANDLE


def _connection_error(source_id: str, source_handle: str | None, target_id: str, target_handle: str | None) -> str | None:
    """Check the handle-level connection rules.

    Precondition:
        handles are None or handle id strings

    Postcondition:
        returns None if the pair may be connected, else the reason
    """
    if source_id == target_id:
        return "Cannot connect a node to itself"
    if not source_handle or not target_handle:
        return "Invalid node: missing handle id"
    try:
        source = split_handle_id(source_handle, validate=True)
        target = split_handle_id(target_handle, validate=True)
    except MalformedHandle as exc:
        return str(exc)
    if source.port_type == target.port_type:
        return f"Cannot connect {source.port_type}put to {target.port_type}put"
    if source.port_type != "out":
        return "Connections must go from an output to an input"
    if source.form != target.form:
        return f"Cannot connect {source.form} to {target.form}"
    return None


class FlowGraph:
    """Nodes and edges of one factory, with adjacency kept in sync"""

    def __init__(self):
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, Edge] = {}

    def add_node(self, node: Node) -> Node:
        """Add or replace a node, keeping its existing adjacency on replace.

        Raises:
            ValueError: if node.kind is unknown
        """
        if node.kind not in NODE_KINDS:
            raise ValueError(f"Invalid node kind '{node.kind}'. Must be one of {NODE_KINDS}")
        previous = self.nodes.get(node.id)
        if previous is not None and not node.edges:
            node.edges = previous.edges
        self.nodes[node.id] = node
        return node

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge attached to it."""
        node = self.nodes.pop(node_id, None)
        if node is None:
            return
        for edge_id in list(node.edges.values()):
            self.remove_edge(edge_id)

    def validate_connection(
        self,
        source_id: str,
        source_handle: str | None,
        target_id: str,
        target_handle: str | None,
        docs=None,
    ) -> str | None:
        """Check whether a new edge would be allowed.

        Precondition:
            source_id/target_id may or may not exist in the graph

        Postcondition:
            returns None if the edge is allowed, otherwise a human readable reason
            when docs is given, both handles must be offered by their node

        Args:
            source_id: node the edge starts at
            source_handle: out handle on the source
            target_id: node the edge ends at
            target_handle: in handle on the target
            docs: optional DocsMapped to check handles against the node interfaces

        Returns:
            reason string or None
        """
        reason = _connection_error(source_id, source_handle, target_id, target_handle)
        if reason:
            return reason

        source = self.nodes.get(source_id)
        target = self.nodes.get(target_id)
        if source is None or target is None:
            return "Source or target node does not exist"
        if source_handle in source.edges:
            return "Source already connected"
        if target_handle in target.edges:
            return "Target already connected"

        if docs is not None:
            from interfaces import node_handle_ids

            try:
                source_handles = node_handle_ids(source, docs)
                target_handles = node_handle_ids(target, docs)
            except LookupError as exc:
                return str(exc)
            if source_handle not in source_handles:
                return f"Source node has no handle {source_handle}"
            if target_handle not in target_handles:
                return f"Target node has no handle {target_handle}"
        return None

    def add_edge(self, edge: Edge, validate: bool = True, docs=None) -> Edge:
        """Add an edge and register it on both endpoints.

        Raises:
            ValueError: if validate and the connection is not allowed
        """
        if validate:
            reason = self.validate_connection(edge.source, edge.source_handle, edge.target, edge.target_handle, docs)
            if reason:
                raise ValueError(reason)
        self.edges[edge.id] = edge
        source = self.nodes.get(edge.source)
        if source is not None:
            source.edges[edge.source_key] = edge.id
        target = self.nodes.get(edge.target)
        if target is not None:
            target.edges[edge.target_key] = edge.id
        return edge

    def remove_edge(self, edge_id: str) -> None:
        """Remove an edge and drop it from both endpoints' adjacency."""
        edge = self.edges.pop(edge_id, None)
        if edge is None:
            return
        for node_id, key in ((edge.source, edge.source_key), (edge.target, edge.target_key)):
            node = self.nodes.get(node_id)
            if node is not None and node.edges.get(key) == edge_id:
                del node.edges[key]

    def nodes_of_kind(self, kind: str) -> list[Node]:
        return [node for node in self.nodes.values() if node.kind == kind]

    def neighbor(self, node_id: str, handle_id: str) -> tuple[Edge, str, str]:
        """Follow the edge attached to a handle.

        Precondition:
            node_id exists and handle_id is in its adjacency

        Postcondition:
            returns (edge, other node id, other node's handle id)

        Raises:
            MissingNeighborResult: if the edge, the other node or its handle is missing
        """
        edge_id = self.nodes[node_id].edges[handle_id]
        edge = self.edges.get(edge_id)
        if edge is None:
            raise MissingNeighborResult(f"Edge {edge_id} on {node_id}/{handle_id} not found")
        if edge.source == node_id and edge.source_key == handle_id:
            other_id, other_handle = edge.target, edge.target_handle
        else:
            other_id, other_handle = edge.source, edge.source_handle
        if other_id not in self.nodes:
            raise MissingNeighborResult(f"Node {other_id} of edge {edge_id} not found")
        if not other_handle:
            raise MissingNeighborResult(f"Edge {edge_id} has no handle id on node {other_id}")
        return edge, other_id, other_handle

    @classmethod
    def from_dict(cls, raw: dict) -> "FlowGraph":
        """Build a graph from the editor's {"nodes": [...], "edges": [...]} document.

        Edges are not validated; stored flows may contain edges an editor would
        no longer allow, and the engine reports those instead.

        Raises:
            ValueError: if a node has an unknown type
        """
        graph = cls()
        for raw_node in raw.get("nodes", []):
            position = raw_node.get("position") or {}
            graph.add_node(
                Node(
                    raw_node["id"],
                    raw_node["type"],
                    dict(raw_node.get("data") or {}),
                    (position.get("x", 0.0), position.get("y", 0.0)),
                )
            )
        for raw_edge in raw.get("edges", []):
            edge = Edge(
                raw_edge["id"],
                raw_edge["source"],
                raw_edge["target"],
                raw_edge.get("sourceHandle"),
                raw_edge.get("targetHandle"),
            )
            if edge.source not in graph.nodes or edge.target not in graph.nodes:
                _LOGGER.warning("Edge %s references a missing node, skipped", edge.id)
                continue
            graph.add_edge(edge, validate=False)
        return graph


def load_flow(path: str) -> FlowGraph:
    """Read a flow JSON file into a FlowGraph."""
    with open(path, "r", encoding="utf-8") as f:
        return FlowGraph.from_dict(json.load(f))
