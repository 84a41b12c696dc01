"""Balance check of one belt/pipe between two computed nodes."""

import logging

from calculators import UNCONSTRAINED, ComputationResult
from diagnostics import DiagnosticLog
from docs import DocsMapped
from graph import Edge, EdgeAnnotation
from parsing_utils import speed_thou_to_string

_LOGGER = logging.getLogger("satisflow")


def _per_item(reading) -> dict:
    """Rates of a reading; UNCONSTRAINED carries no items."""
    if reading is UNCONSTRAINED:
        return {}
    return reading


def _join(lines: list[str]) -> str | None:
    return "\n".join(lines) if lines else None


def _invalid(edge: Edge, message: str, diagnostics: DiagnosticLog | None) -> EdgeAnnotation:
    if diagnostics is not None:
        diagnostics.error(message, edge_id=edge.id)
    return EdgeAnnotation(center_label="Invalid edge", color_mode="error", message=message)


def evaluate_edge(
    edge: Edge,
    source_result: ComputationResult | None,
    target_result: ComputationResult | None,
    docs: DocsMapped,
    diagnostics: DiagnosticLog | None = None,
) -> EdgeAnnotation | None:
    """Compare what the source puts on an edge with what the target takes.

    Precondition:
        source_result/target_result are the computed results of edge.source/edge.target

    Postcondition:
        returns an "error" annotation if a handle id is missing
        returns None if either endpoint has no result
        returns an "error" annotation if an endpoint's result has no flow at
            the edge's handle (the node no longer offers that handle)
        otherwise, per item, balance = source rate + target rate:
            < 0: underproducing at the source, overconsuming at the target
            > 0: overproducing at the source, underconsuming at the target
            == 0: balanced, shown at the source rate
        any unbalanced item turns the annotation into a "warning"
        error annotations carry their message, also reported to diagnostics if given

    Args:
        edge: the belt or pipe
        source_result: result of the source node
        target_result: result of the target node
        docs: reference data, for item names
        diagnostics: optional message sink for errors

    Returns:
        EdgeAnnotation or None
    """
    if not edge.source_handle or not edge.target_handle:
        return _invalid(edge, "Invalid edge: missing handle id", diagnostics)
    if source_result is None or target_result is None:
        return None

    source_reading = source_result.reading(edge.source_handle)
    if source_reading is None:
        return _invalid(edge, f"Invalid edge: node {edge.source} has no flow at {edge.source_handle}", diagnostics)
    target_reading = target_result.reading(edge.target_handle)
    if target_reading is None:
        return _invalid(edge, f"Invalid edge: node {edge.target} has no flow at {edge.target_handle}", diagnostics)
    source_flow = _per_item(source_reading)
    target_flow = _per_item(target_reading)

    annotation = EdgeAnnotation()
    start_lines, center_lines, end_lines = [], [], []
    for item_key in dict.fromkeys([*source_flow, *target_flow]):
        source_rate = source_flow.get(item_key, 0)
        balance = source_rate + target_flow.get(item_key, 0)
        annotation.balances[item_key] = balance
        name = docs.display_name(item_key)
        amount = speed_thou_to_string(abs(balance))
        if balance < 0:
            start_lines.append(f"Underproducing {amount} {name}")
            end_lines.append(f"Overconsuming {amount} {name}")
        elif balance > 0:
            start_lines.append(f"Overproducing {amount} {name}")
            end_lines.append(f"Underconsuming {amount} {name}")
        else:
            center_lines.append(f"{speed_thou_to_string(source_rate)} {name}")

    annotation.start_label = _join(start_lines)
    annotation.center_label = _join(center_lines)
    annotation.end_label = _join(end_lines)
    if start_lines:
        annotation.color_mode = "warning"
        _LOGGER.debug("Edge %s unbalanced: %s", edge.id, annotation.balances)
    return annotation
