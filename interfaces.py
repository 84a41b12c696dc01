"""Ports (handles) a node exposes, per direction."""

from functools import cache

from docs import DocsMapped
from freeze import freezeargs
from graph import Node
from handles import DIRECTIONS, encode_handle_id
from node_data import resolve_node_data


@freezeargs
@cache
def logistic_ports(logistic_type: str, pipe_junc_int: dict | None = None) -> tuple[tuple[str, str, str], ...]:
    """Port layout of a logistic node.

    Precondition:
        logistic_type is one of LOGISTIC_TYPES
        pipe_junc_int maps directions to "in"/"out" (pipe junctions only)

    Postcondition:
        returns one (direction, form, port_type) per direction, in DIRECTIONS order
        pipe junctions carry fluid, left is "in", others follow pipe_junc_int (default "out")
        belts carry solid, a merger's only "out" is right, everything else has only left as "in"
        result is cached for performance

    Args:
        logistic_type: splitter, merger, splitterSmart, splitterPro or pipeJunc
        pipe_junc_int: per direction port type of a pipe junction

    Returns:
        tuple of (direction, form, port_type)
    """
    pipe_junc_int = pipe_junc_int or {}
    ports = []
    for direction in DIRECTIONS:
        if logistic_type == "pipeJunc":
            form = "fluid"
            port_type = "in" if direction == "left" else pipe_junc_int.get(direction, "out")
        else:
            form = "solid"
            is_in = direction != "right" if logistic_type == "merger" else direction == "left"
            port_type = "in" if is_in else "out"
        ports.append((direction, form, port_type))
    return tuple(ports)


def get_node_interfaces(node: Node, docs: DocsMapped) -> dict[str, list[tuple[str, str]]] | None:
    """Per direction list of (port_type, form) the node exposes, in slot order.

    Precondition:
        node.data may be partial, it is resolved on a copy

    Postcondition:
        returns None while the node's item/recipe/type is not selected
        recipe nodes list solid ports before fluid ports on each side
        generator nodes expose nothing (None)

    Raises:
        ReferencedItemNotFound: item node with an unknown item
        ReferencedRecipeNotFound: recipe node with an unknown recipe
        ReferencedMachineNotFound: recipe produced in an unknown machine
    """
    data = resolve_node_data(node.kind, dict(node.data))

    if node.kind == "item":
        if not data.get("itemKey"):
            return None
        form = docs.get_item(data["itemKey"]).handle_form
        interfaces = {}
        if data["interfaceKind"] in ("both", "in"):
            interfaces["left"] = [("in", form)]
        if data["interfaceKind"] in ("both", "out"):
            interfaces["right"] = [("out", form)]
        return interfaces

    if node.kind == "recipe":
        if not data.get("recipeKey"):
            return None
        recipe = docs.get_recipe(data["recipeKey"])
        machine = docs.get_machine(recipe.produced_in)
        return {
            "left": [("in", "solid")] * machine.solid_in + [("in", "fluid")] * machine.fluid_in,
            "right": [("out", "solid")] * machine.solid_out + [("out", "fluid")] * machine.fluid_out,
        }

    if node.kind == "logistic":
        if not data.get("type"):
            return None
        return {
            direction: [(port_type, form)]
            for direction, form, port_type in logistic_ports(data["type"], data["pipeJuncInt"])
        }

    return None


def node_handle_ids(node: Node, docs: DocsMapped) -> set[str]:
    """Every handle id the node exposes; empty while the node is not configured."""
    interfaces = get_node_interfaces(node, docs) or {}
    return {
        encode_handle_id(direction, form, port_type, index)
        for direction, ports in interfaces.items()
        for index, (port_type, form) in enumerate(ports)
    }
