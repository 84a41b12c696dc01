"""Graph traversal and result memoization.

compute_graph runs the four passes: item nodes, recipe nodes, logistic nodes,
then edge annotations. Item and recipe results only depend on their own
data. Logistic results depend on their neighbors, which are computed on
demand: a neighbor is asked for a partial result ignoring the handle that
leads back, and the chain of nodes being computed is tracked so a loop of
logistic nodes ends with CircularDependency instead of unbounded recursion.
"""

import logging

from tarjan import tarjan

from balance import evaluate_edge
from calculators import ComputationResult, compute_item_node, compute_recipe_node
from diagnostics import DiagnosticLog
from docs import DocsMapped
from errors import CircularDependency, MissingNeighborResult
from freeze import deep_freeze
from graph import FlowGraph, Node
from handles import split_handle_id
from item_speed import ItemSpeedResult, throttle_item_node, throttle_recipe_node
from logistics import compute_logistic_node
from node_data import computation_data, resolve_item_node_data, resolve_node_data, resolve_recipe_node_data

_LOGGER = logging.getLogger("satisflow")

_NOT_CACHED = object()


class ComputeContext:
    """Everything one computation works on: graph, docs, message sink and the memo table.

    Not safe for concurrent use; callers serialize edits and computations.
    """

    def __init__(self, graph: FlowGraph, docs: DocsMapped, diagnostics: DiagnosticLog | None = None, memo: bool = True):
        self.graph = graph
        self.docs = docs
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self.memo = memo
        self.results: dict[str, ComputationResult] = {}
        # node id -> snapshot of the data that computed to "no result"
        self._null_results: dict[str, object] = {}
        # nodes computed during the running compute_graph, None outside of it
        self._pass_node_ids: set[str] | None = None
        # last reported feedback loops and edge errors, so unchanged ones are not repeated
        self._feedback_loops: frozenset = frozenset()
        self._edge_messages: dict[str, str] = {}

    def result(self, node_id: str) -> ComputationResult | None:
        return self.results.get(node_id)

    def forget(self, node_id: str) -> None:
        """Drop whatever is memoized for node_id."""
        self.results.pop(node_id, None)
        self._null_results.pop(node_id, None)


def _snapshot(node: Node, data: dict):
    """Frozen inputs of a node's computation; logistic nodes also depend on their wiring."""
    snapshot = {"data": computation_data(data)}
    if node.kind == "logistic":
        snapshot["edges"] = node.edges
    return deep_freeze(snapshot)


def _cached(node_id: str, context: ComputeContext, based_on, ignore: frozenset | None):
    """Memoized result if still valid, else _NOT_CACHED.

    A cached result is valid when it was computed from the same snapshot and
    either ignored nothing or ignored exactly the same handles.
    """
    cached = context.results.get(node_id)
    if cached is not None:
        if cached.based_on == based_on and (cached.ignored_handle_ids is None or cached.ignored_handle_ids == ignore):
            return cached
        return _NOT_CACHED
    if context._null_results.get(node_id, _NOT_CACHED) == based_on:
        return None
    return _NOT_CACHED


def _invalidate_logistic_neighbors(node_id: str, context: ComputeContext) -> None:
    """Drop memoized results of logistic nodes reachable from node_id through logistic nodes.

    Nodes already computed by the running compute_graph are kept.
    """
    graph = context.graph
    seen = {node_id}
    stack = [node_id]
    while stack:
        current = stack.pop()
        for handle_id in list(graph.nodes[current].edges):
            try:
                _, other_id, _ = graph.neighbor(current, handle_id)
            except MissingNeighborResult:
                continue
            if other_id in seen:
                continue
            seen.add(other_id)
            if graph.nodes[other_id].kind != "logistic":
                continue
            if context._pass_node_ids is not None and other_id in context._pass_node_ids:
                continue
            _LOGGER.debug("Invalidating %s after %s changed", other_id, node_id)
            context.forget(other_id)
            stack.append(other_id)


def _neighbor_reader(node_id: str, context: ComputeContext, visited_node_ids: tuple[str, ...]):
    """Accessor a logistic calculator uses to read across each of its edges."""
    path = (*visited_node_ids, node_id)

    def read_neighbor(handle_id: str):
        try:
            _, other_id, other_handle = context.graph.neighbor(node_id, handle_id)
        except MissingNeighborResult as exc:
            context.diagnostics.error(str(exc), node_id=node_id)
            return None
        other = context.graph.nodes[other_id]
        ignore = {other_handle} if other.kind == "logistic" else None
        try:
            result = compute_node(other_id, context, ignore, path)
        except CircularDependency as exc:
            context.diagnostics.warning(str(exc), node_id=node_id)
            return None
        return result.reading(other_handle) if result is not None else None

    return read_neighbor


def compute_node(
    node_id: str,
    context: ComputeContext,
    ignore_handle_ids=None,
    visited_node_ids: tuple[str, ...] = (),
) -> ComputationResult | None:
    """Compute (or reuse) the flows of one node.

    Precondition:
        context is not being used by another computation

    Postcondition:
        returns the memoized result if its snapshot still matches (see _cached)
        otherwise computes, stores and returns the result
        None means the node is unknown, not configured, or references missing data
        a changed result invalidates adjacent logistic nodes

    Args:
        node_id: node to compute
        context: graph, docs, diagnostics and memo table
        ignore_handle_ids: handles of a logistic node whose neighbor must not be read
        visited_node_ids: nodes on the current recursion path

    Returns:
        ComputationResult or None

    Raises:
        CircularDependency: if node_id is already on the recursion path and
            has no valid memoized result
    """
    node = context.graph.nodes.get(node_id)
    if node is None:
        _LOGGER.debug("Node %s not found", node_id)
        context.forget(node_id)
        return None

    data = resolve_node_data(node.kind, node.data)
    based_on = _snapshot(node, data)
    ignore = frozenset(ignore_handle_ids) if ignore_handle_ids else None

    if context.memo:
        cached = _cached(node_id, context, based_on, ignore)
        if cached is not _NOT_CACHED:
            return cached

    if node_id in visited_node_ids:
        raise CircularDependency(node_id, tuple(visited_node_ids))
    if context._pass_node_ids is not None:
        context._pass_node_ids.add(node_id)

    if node.kind == "item":
        result = compute_item_node(node_id, data, context.docs, context.diagnostics)
    elif node.kind == "recipe":
        result = compute_recipe_node(node_id, data, context.docs, context.diagnostics)
    elif node.kind == "logistic":
        result = compute_logistic_node(
            node_id,
            data,
            node.edges,
            _neighbor_reader(node_id, context, visited_node_ids),
            context.diagnostics,
            ignore,
        )
    else:
        _LOGGER.debug("Node %s of kind %s is not computed", node_id, node.kind)
        result = None

    previous = context.results.get(node_id)
    if result is None:
        context.results.pop(node_id, None)
        context._null_results[node_id] = based_on
        changed = previous is not None
    else:
        result.based_on = based_on
        context.results[node_id] = result
        context._null_results.pop(node_id, None)
        changed = not result.same_flows(previous)

    if changed:
        _invalidate_logistic_neighbors(node_id, context)
    return result


def _report_feedback_loops(context: ComputeContext) -> None:
    """Report groups of logistic nodes that feed each other."""
    successors = {node.id: [] for node in context.graph.nodes_of_kind("logistic")}
    for edge in context.graph.edges.values():
        if edge.source in successors and edge.target in successors:
            successors[edge.source].append(edge.target)

    loops = frozenset(tuple(sorted(component)) for component in tarjan(successors) if len(component) > 1)
    for loop in sorted(loops - context._feedback_loops):
        context.diagnostics.info(f"Feedback loop between logistic nodes: {', '.join(loop)}")
    context._feedback_loops = loops


def _annotate_edges(context: ComputeContext) -> None:
    """Set every edge's annotation; an edge error is reported when it first appears or changes."""
    graph = context.graph
    for edge_id in list(context._edge_messages):
        if edge_id not in graph.edges:
            del context._edge_messages[edge_id]
    for edge in graph.edges.values():
        edge.annotation = evaluate_edge(
            edge,
            context.results.get(edge.source),
            context.results.get(edge.target),
            context.docs,
        )
        message = edge.annotation.message if edge.annotation is not None else None
        if message is None:
            context._edge_messages.pop(edge.id, None)
        elif context._edge_messages.get(edge.id) != message:
            context.diagnostics.error(message, edge_id=edge.id)
            context._edge_messages[edge.id] = message


def compute_graph(context: ComputeContext) -> None:
    """Recompute every node and annotate every edge.

    Precondition:
        context.graph is not edited while this runs

    Postcondition:
        memo entries of deleted nodes are dropped
        every node has been computed (or reused) in the order items, recipes, logistics
        every edge's annotation is set from its endpoints' results
        feedback loops among logistic nodes and edge errors are reported
        once, until they change
    """
    graph = context.graph
    for node_id in [*context.results, *context._null_results]:
        if node_id not in graph.nodes:
            context.forget(node_id)

    context._pass_node_ids = set()
    try:
        for kind in ("item", "recipe"):
            for node in graph.nodes_of_kind(kind):
                compute_node(node.id, context)
        _report_feedback_loops(context)
        for node in graph.nodes_of_kind("logistic"):
            compute_node(node.id, context)
        _annotate_edges(context)
    finally:
        context._pass_node_ids = None
    _LOGGER.info("Computed %s nodes and %s edges", len(graph.nodes), len(graph.edges))


def _neighbor_rates(node: Node, context: ComputeContext):
    """(own handle id, {item key: rate} the neighbor shows at the other end) per connected handle."""
    for handle_id in node.edges:
        try:
            _, other_id, other_handle = context.graph.neighbor(node.id, handle_id)
        except MissingNeighborResult:
            continue
        other_result = context.results.get(other_id)
        reading = other_result.reading(other_handle) if other_result is not None else None
        yield handle_id, reading if isinstance(reading, dict) else {}


def item_node_speed(node_id: str, context: ComputeContext) -> ItemSpeedResult | None:
    """Throttle an item node against the rates its computed neighbors supply and request.

    Precondition:
        the node's neighbors have been computed (e.g. by compute_graph)

    Postcondition:
        returns None if the node is missing, not an item node, or not configured
        supplied is the neighbor's rate at the edge into the left handle
        the requested output is the negated neighbor rate at the edge out of
        the right handle, or None if that handle is not connected

    Raises:
        ReferencedItemNotFound: if the node's item is unknown
    """
    node = context.graph.nodes.get(node_id)
    if node is None or node.kind != "item":
        return None
    data = resolve_item_node_data(node.data)
    item_key = data.get("itemKey")
    if not item_key:
        return None

    supplied = None
    expected_output = None
    for handle_id, rates in _neighbor_rates(node, context):
        rate = rates.get(item_key, 0)
        port_type = split_handle_id(handle_id).port_type
        if port_type == "in":
            supplied = rate
        elif port_type == "out":
            expected_output = -rate
    return throttle_item_node(data, context.docs, supplied, expected_output)


def recipe_node_speed(node_id: str, context: ComputeContext) -> ItemSpeedResult | None:
    """Throttle a recipe node against what its computed neighbors supply and request.

    Precondition:
        the node's neighbors have been computed (e.g. by compute_graph)

    Postcondition:
        returns None if the node is missing, not a recipe node, or not configured
        supplied sums, per item, the neighbor rates at every connected in handle
        requested maps each connected out handle to the negated neighbor rates,
        or is None if no out handle is connected

    Raises:
        ReferencedRecipeNotFound: if the node's recipe is unknown
        ReferencedItemNotFound: if the recipe uses an unknown item
    """
    node = context.graph.nodes.get(node_id)
    if node is None or node.kind != "recipe":
        return None
    data = resolve_recipe_node_data(node.data)
    if not data.get("recipeKey"):
        return None

    supplied = {}
    requested = None
    for handle_id, rates in _neighbor_rates(node, context):
        port_type = split_handle_id(handle_id).port_type
        if port_type == "in":
            for item_key, rate in rates.items():
                supplied[item_key] = supplied.get(item_key, 0) + rate
        elif port_type == "out":
            requested = requested if requested is not None else {}
            requested[handle_id] = {item_key: -rate for item_key, rate in rates.items()}
    return throttle_recipe_node(data, context.docs, supplied, requested)
