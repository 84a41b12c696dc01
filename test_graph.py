"""Tests for graph module"""

import json

import pytest
from pytest import raises

from errors import MissingNeighborResult
from graph import Edge, FlowGraph, Node, load_flow

OUT = "right-solid-out-0"
IN = "left-solid-in-0"


@pytest.fixture
def graph():
    """Ingot source feeding a splitter, plus a rod constructor left unconnected"""
    graph = FlowGraph()
    graph.add_node(Node("ingots", "item", {"itemKey": "Desc_IronIngot_C", "speedThou": 30000, "interfaceKind": "out"}))
    graph.add_node(Node("splitter", "logistic", {"type": "splitter"}))
    graph.add_node(Node("rods", "recipe", {"recipeKey": "Recipe_IronRod_C"}))
    graph.add_edge(Edge("e1", "ingots", "splitter", OUT, IN))
    return graph


def test_add_edge_updates_adjacency(graph):
    """both endpoints should know the edge by their handle id"""
    assert graph.nodes["ingots"].edges == {OUT: "e1"}
    assert graph.nodes["splitter"].edges == {IN: "e1"}


def test_add_node_unknown_kind(graph):
    """nodes of an unknown kind should be rejected"""
    with raises(ValueError, match="Invalid node kind"):
        graph.add_node(Node("x", "teleporter"))


def test_replacing_node_keeps_edges(graph):
    """replacing node data should keep its connections"""
    graph.add_node(Node("splitter", "logistic", {"type": "merger"}))
    assert graph.nodes["splitter"].edges == {IN: "e1"}


def test_validate_connection_reasons(graph):
    """every broken rule should give its own reason"""
    assert graph.validate_connection("rods", OUT, "rods", IN) == "Cannot connect a node to itself"
    assert graph.validate_connection("splitter", None, "rods", IN) == "Invalid node: missing handle id"
    assert graph.validate_connection("splitter", "top-solid-out-0", "rods", "right-solid-out-0") == "Cannot connect output to output"
    assert graph.validate_connection("splitter", "top-solid-out-0", "rods", "left-fluid-in-0") == "Cannot connect solid to fluid"
    assert graph.validate_connection("splitter", "top-solid-out-0", "nowhere", IN) == "Source or target node does not exist"
    assert graph.validate_connection("ingots", OUT, "rods", IN) == "Source already connected"
    assert graph.validate_connection("rods", OUT, "splitter", IN) == "Target already connected"
    assert graph.validate_connection("splitter", "top-solid-out-0", "rods", IN) is None


def test_validate_connection_input_to_output(graph):
    """edges must start on an out handle"""
    assert graph.validate_connection("rods", IN, "splitter", "top-solid-out-0") == "Connections must go from an output to an input"


def test_validate_connection_malformed_handle(graph):
    """malformed handle ids should be reported, not raised"""
    assert graph.validate_connection("splitter", "top-solid-out-x", "rods", IN) == "Invalid handle index 'x'"


def test_validate_connection_with_docs(graph, docs):
    """with docs, handles must exist on the node"""
    assert graph.validate_connection("splitter", "top-solid-out-0", "rods", IN, docs) is None
    assert graph.validate_connection("splitter", "top-solid-out-0", "rods", "left-solid-in-1", docs) == (
        "Target node has no handle left-solid-in-1"
    )
    graph.add_node(Node("junk", "item", {"itemKey": "Desc_Nothing_C"}))
    assert graph.validate_connection("splitter", "top-solid-out-0", "junk", IN, docs) == "Item Desc_Nothing_C not found"


def test_add_edge_rejects_invalid(graph):
    """add_edge should raise with the reason and leave the graph untouched"""
    with raises(ValueError, match="Target already connected"):
        graph.add_edge(Edge("e2", "rods", "splitter", OUT, IN))
    assert "e2" not in graph.edges
    assert graph.nodes["rods"].edges == {}


def test_remove_node_drops_edges(graph):
    """removing a node should remove its edges from the other endpoint"""
    graph.remove_node("splitter")
    assert graph.edges == {}
    assert graph.nodes["ingots"].edges == {}
    graph.remove_node("splitter")


def test_neighbor(graph):
    """neighbor should follow the edge from either side"""
    edge, other_id, other_handle = graph.neighbor("ingots", OUT)
    assert (edge.id, other_id, other_handle) == ("e1", "splitter", IN)
    _, other_id, other_handle = graph.neighbor("splitter", IN)
    assert (other_id, other_handle) == ("ingots", OUT)


def test_neighbor_missing_other_node(graph):
    """a dangling edge should raise MissingNeighborResult"""
    del graph.nodes["splitter"]
    with raises(MissingNeighborResult):
        graph.neighbor("ingots", OUT)


def test_nodes_of_kind(graph):
    """nodes_of_kind should filter by kind in insertion order"""
    assert [node.id for node in graph.nodes_of_kind("item")] == ["ingots"]
    assert graph.nodes_of_kind("generator") == []


def test_from_dict_and_load_flow(tmp_path):
    """saved flows should load without validating edges and skip dangling ones"""
    raw = {
        "nodes": [
            {"id": "a", "type": "item", "position": {"x": 10, "y": 20}, "data": {"itemKey": "Desc_IronIngot_C"}},
            {"id": "b", "type": "item"},
        ],
        "edges": [
            {"id": "e1", "source": "a", "target": "b", "sourceHandle": OUT, "targetHandle": OUT},
            {"id": "e2", "source": "a", "target": "gone", "sourceHandle": OUT, "targetHandle": IN},
        ],
    }
    path = tmp_path / "flow.json"
    path.write_text(json.dumps(raw), encoding="utf-8")

    graph = load_flow(str(path))
    assert graph.nodes["a"].position == (10, 20)
    assert graph.nodes["b"].data == {}
    assert list(graph.edges) == ["e1"]
    assert graph.nodes["b"].edges == {OUT: "e1"}
    print("✓ Flow loaded with 1 of 2 edges")


def test_edge_without_handles_uses_fallback_keys():
    """edges saved without handles should still be tracked on both nodes"""
    graph = FlowGraph.from_dict({
        "nodes": [{"id": "a", "type": "item"}, {"id": "b", "type": "item"}],
        "edges": [{"id": "e1", "source": "a", "target": "b"}],
    })
    assert graph.nodes["a"].edges == {"output": "e1"}
    assert graph.nodes["b"].edges == {"input": "e1"}
    graph.remove_edge("e1")
    assert graph.nodes["a"].edges == {}
