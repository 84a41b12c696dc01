#!/usr/bin/env python3
"""Command-line interface for computing the flows of a saved factory."""

import argparse
import logging
import sys

from diagnostics import DiagnosticLog
from docs import load_docs
from engine import ComputeContext, compute_graph, item_node_speed, recipe_node_speed
from flow_render import render_flow
from graph import FlowGraph, load_flow
from parsing_utils import parse_clock_speed_thou_from_percent_string, parse_speed_thou


def parse_override(text: str) -> tuple[str, str]:
    """Parse a "node=value" override.

    Precondition:
        text is a string from the command line

    Postcondition:
        returns (node id, value string), both stripped

    Raises:
        ValueError: if text has no "=" or an empty side
    """
    node_id, sep, value = text.partition("=")
    node_id, value = node_id.strip(), value.strip()
    if not sep or not node_id or not value:
        raise ValueError(f"Invalid override '{text}'. Expected format: node=value")
    return node_id, value


def apply_overrides(graph: FlowGraph, overrides: list[str] | None) -> None:
    """Apply command line overrides to node data in place.

    Precondition:
        overrides are "node=value" strings (or None)

    Postcondition:
        item nodes get speedThou from the value in items per minute
        recipe nodes get clockSpeedThou from the value in percent

    Raises:
        ValueError: if an override is malformed, names an unknown node,
            a node of another kind, or has a non-numeric value
    """
    for text in overrides or []:
        node_id, value = parse_override(text)
        node = graph.nodes.get(node_id)
        if node is None:
            raise ValueError(f"Unknown node '{node_id}'")
        if node.kind == "item":
            node.data["speedThou"] = parse_speed_thou(value)
        elif node.kind == "recipe":
            node.data["clockSpeedThou"] = parse_clock_speed_thou_from_percent_string(value)
        else:
            raise ValueError(f"Cannot override {node.kind} node '{node_id}'")


def _format_edge(edge) -> str:
    """One report line for an edge: its id, endpoints, state and labels.

    Precondition:
        edge.annotation was set by compute_graph (may be None)

    Postcondition:
        returns "id: source -> target: labels" on one line
        non-default color states are prefixed in capitals
        edges without annotation are shown as "not computed"
    """
    prefix = f"{edge.id}: {edge.source} -> {edge.target}:"
    annotation = edge.annotation
    if annotation is None:
        return f"{prefix} not computed"
    labels = [annotation.start_label, annotation.center_label, annotation.end_label]
    text = "; ".join(label.replace("\n", ", ") for label in labels if label) or "empty"
    if annotation.color_mode != "default":
        text = f"{annotation.color_mode.upper()} {text}"
    return f"{prefix} {text}"


_NODE_SPEEDS = (
    ("item", "Item nodes", item_node_speed),
    ("recipe", "Recipe nodes", recipe_node_speed),
)


def _format_efficiencies(context: ComputeContext, kind: str, node_speed) -> list[str]:
    """Efficiency lines for configured nodes of one kind; nodes with missing references are left out."""
    lines = []
    for node in context.graph.nodes_of_kind(kind):
        try:
            speed = node_speed(node.id, context)
        except LookupError:
            continue
        if speed is None or speed.efficiency is None:
            continue
        lines.append(f"{node.id}: efficiency {speed.efficiency:.1%}")
    return lines


def format_report(context: ComputeContext) -> str:
    """Plain text report of a computed graph.

    Precondition:
        compute_graph(context) has run

    Postcondition:
        returns sections for edges, item and recipe node efficiencies and diagnostics
        empty sections are left out

    Args:
        context: computed context

    Returns:
        report text
    """
    sections = []
    edge_lines = [_format_edge(edge) for edge in context.graph.edges.values()]
    if edge_lines:
        sections.append("Edges:\n" + "\n".join(f"  {line}" for line in edge_lines))
    for kind, title, node_speed in _NODE_SPEEDS:
        efficiency_lines = _format_efficiencies(context, kind, node_speed)
        if efficiency_lines:
            sections.append(f"{title}:\n" + "\n".join(f"  {line}" for line in efficiency_lines))
    if len(context.diagnostics):
        sections.append("Diagnostics:\n" + "\n".join(f"  {message}" for message in context.diagnostics))
    return "\n\n".join(sections)


def _write_output(text: str, output_file: str | None) -> None:
    """Write text to output_file, or to stdout if None."""
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Output written to {output_file}", file=sys.stderr)
    else:
        print(text)


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Compute belt and pipe flows of a Satisfactory factory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Balance report
  %(prog)s --docs docs.json --flow factory.json

  # Smelter at 50%% and ore supply at 45/min
  %(prog)s --docs docs.json --flow factory.json --set smelter=50 --set ore=45

  # Graphviz source written to a file
  %(prog)s --docs docs.json --flow factory.json --graphviz -f factory.dot
        """,
    )

    parser.add_argument("--docs", "-d", required=True, help="Parsed docs JSON (items, recipes, machines)")
    parser.add_argument("--flow", "-l", required=True, help='Factory JSON with "nodes" and "edges"')
    parser.add_argument("--graphviz", "-g", action="store_true", help="Output graphviz source instead of a report")
    parser.add_argument(
        "--set", "-s", action="append", metavar="NODE=VALUE", dest="overrides",
        help="Override an item node rate (items/min) or a recipe node clock speed (percent); repeatable",
    )
    parser.add_argument("--output-file", "-f", help="Write output to file instead of stdout")

    return parser


def main():
    """Main CLI function.

    Precondition:
        command-line arguments are available via sys.argv

    Postcondition:
        the factory is computed and the report or graphviz source is output
        --set overrides are applied to the loaded graph before computing
        returns 0 on success, 1 if an input file cannot be read or is invalid
        or an override is rejected

    Returns:
        exit code (0=success, 1=error)
    """
    parser = _create_argument_parser()
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(message)s')

    try:
        docs = load_docs(args.docs)
        graph = load_flow(args.flow)
        apply_overrides(graph, args.overrides)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (ValueError, KeyError, TypeError) as e:
        print(f"Error: invalid input: {e}", file=sys.stderr)
        return 1

    context = ComputeContext(graph, docs, DiagnosticLog())
    compute_graph(context)

    if args.graphviz:
        _write_output(render_flow(context).source, args.output_file)
    else:
        _write_output(format_report(context), args.output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
