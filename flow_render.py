"""Graphviz rendering of a computed factory graph."""

import graphviz

from docs import DocsMapped
from engine import ComputeContext
from graph import Edge, Node
from handles import split_handle_id
from parsing_utils import THOU, clock_speed_thou_to_percent_string, speed_thou_to_string

_CONVEYOR_SPEEDS = [60, 120, 270, 480]
_PIPELINE_SPEEDS = [300, 600]
_PIPE_COLOR = "steelblue"

_STATE_COLORS = {
    "info": "blue",
    "warning": "orange",
    "error": "red",
}

_LOGISTIC_FILL = {
    "splitter": "lightyellow",
    "splitterSmart": "khaki",
    "splitterPro": "gold",
    "merger": "thistle",
    "pipeJunc": "lightsteelblue",
}


def _get_mark(rate_thou: int, speeds: list[int]) -> int:
    """Smallest belt/pipe mark carrying rate_thou; the top mark for anything faster.

    Precondition:
        rate_thou is a non-negative thou rate
        speeds are the per-minute capacities of marks 1..n, ascending
    """
    for mark, speed in enumerate(speeds, start=1):
        if rate_thou <= speed * THOU:
            return mark
    return len(speeds)


def _get_conveyor_stripe_color(mark: int) -> str:
    """Black stripes, one per mark, separated by white: mark 2 is "black:white:black"."""
    stripes = []
    for i in range(mark):
        stripes.append("black")
        if i < mark - 1:
            stripes.append("white")
    return ":".join(stripes)


def _get_pipeline_stripe_color(mark: int) -> str:
    """Fluid colored pipe between grey borders, one fluid stripe per mark."""
    return ":".join(["grey", *[_PIPE_COLOR] * mark, "grey"])


def _edge_rate(edge: Edge, context: ComputeContext) -> int:
    """Total rate the source puts on the edge, 0 if it is not known."""
    result = context.results.get(edge.source)
    if result is None or not edge.source_handle:
        return 0
    reading = result.reading(edge.source_handle)
    if not isinstance(reading, dict):
        return 0
    return sum(abs(rate) for rate in reading.values())


def _get_edge_color(edge: Edge, rate_thou: int) -> str:
    """Graphviz color of an edge.

    Precondition:
        edge.annotation is set by compute_graph, or None

    Postcondition:
        annotations in info/warning/error state get a plain state color
        otherwise belts get conveyor stripes and pipes pipeline stripes
        sized by rate_thou
    """
    if edge.annotation is not None and edge.annotation.color_mode in _STATE_COLORS:
        return _STATE_COLORS[edge.annotation.color_mode]
    if edge.source_handle and split_handle_id(edge.source_handle).form == "fluid":
        return _get_pipeline_stripe_color(_get_mark(rate_thou, _PIPELINE_SPEEDS))
    return _get_conveyor_stripe_color(_get_mark(rate_thou, _CONVEYOR_SPEEDS))


def _node_label(node: Node, docs: DocsMapped) -> str:
    data = node.data
    if node.kind == "item":
        key = data.get("itemKey")
        if not key:
            return "(no item)"
        return f"{docs.display_name(key)}\n{speed_thou_to_string(data.get('speedThou', 0))}/min"
    if node.kind == "recipe":
        key = data.get("recipeKey")
        recipe = docs.recipes.get(key) if key else None
        name = recipe.display_name if recipe else (key or "(no recipe)")
        clock = data.get("clockSpeedThou")
        return f"{name}\n{clock_speed_thou_to_percent_string(clock)}%" if clock is not None else name
    if node.kind == "logistic":
        return data.get("type") or "(no type)"
    return node.kind


def _add_node(dot: graphviz.Digraph, node: Node, docs: DocsMapped):
    """Add one node; shapes follow the node kind."""
    label = _node_label(node, docs)
    if node.kind == "item":
        dot.node(node.id, label, shape="ellipse", style="filled", fillcolor="lightblue")
    elif node.kind == "recipe":
        dot.node(node.id, label, shape="box", style="filled", fillcolor="white")
    elif node.kind == "logistic":
        fillcolor = _LOGISTIC_FILL.get(node.data.get("type"), "white")
        dot.node(node.id, label, shape="diamond", style="filled", fillcolor=fillcolor)
    else:
        dot.node(node.id, label, shape="box", style="dashed")


def _edge_label(edge: Edge) -> str:
    annotation = edge.annotation
    if annotation is None:
        return ""
    labels = [annotation.start_label, annotation.center_label, annotation.end_label]
    return "\n".join(label for label in labels if label)


def render_flow(context: ComputeContext) -> graphviz.Digraph:
    """Draw a factory graph after compute_graph has annotated its edges.

    Precondition:
        compute_graph(context) has run
        graph nodes and edges are consistent (edges reference existing nodes)

    Postcondition:
        returns a left to right digraph with one graphviz node per node
        and one graphviz edge per edge, labelled with the edge annotation
        and colored by state or belt/pipe mark

    Args:
        context: the computed graph, its docs and results

    Returns:
        graphviz.Digraph
    """
    dot = graphviz.Digraph(comment="Factory flow")
    dot.attr(rankdir="LR")
    for node in context.graph.nodes.values():
        _add_node(dot, node, context.docs)
    for edge in context.graph.edges.values():
        dot.edge(
            edge.source,
            edge.target,
            label=_edge_label(edge),
            color=_get_edge_color(edge, _edge_rate(edge, context)),
            penwidth="2",
        )
    return dot
