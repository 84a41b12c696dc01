"""Per-node flow calculators for item and recipe nodes.

Sign convention: rates on "in" handles are negative (consumed), rates on
"out" handles are positive (produced). All rates are integer thou values
(thousandths of an item per minute).
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction

from diagnostics import DiagnosticLog
from docs import DocsMapped
from errors import ReferencedItemNotFound, ReferencedRecipeNotFound
from handles import encode_handle_id

_LOGGER = logging.getLogger("satisflow")

# clockSpeedThou / 10_000 turns a per-second amount into a per-minute thou rate together with the * 60
_CLOCK_SPEED_DIVISOR = 10_000
# fluid amounts are stored in liters, rates are shown in cubic meters
_FLUID_AMOUNT_DIVISOR = 1000


class FlowKind(Enum):
    """Flow that is not a per-item rate map"""

    UNCONSTRAINED = "unconstrained"

    def __repr__(self) -> str:
        return self.name


# a handle that relays whatever its neighbors give it
UNCONSTRAINED = FlowKind.UNCONSTRAINED


@dataclass
class ComputationResult:
    """Flows computed for one node.

    expected_flow: handle id -> {item key: rate} or UNCONSTRAINED
    actual_flow: handle id -> {item key: rate} after distribution, or None
    based_on: frozen snapshot of the inputs this result was computed from
    ignored_handle_ids: handles left out of the computation, None if complete
    """

    expected_flow: dict
    actual_flow: dict | None = None
    based_on: object = None
    ignored_handle_ids: frozenset | None = None

    def reading(self, handle_id: str):
        """The flow a neighbor sees at handle_id: actual if present, else expected.

        Returns:
            {item key: rate}, UNCONSTRAINED, or None if the handle carries nothing
        """
        if self.actual_flow is not None and handle_id in self.actual_flow:
            return self.actual_flow[handle_id]
        return self.expected_flow.get(handle_id)

    def same_flows(self, other: "ComputationResult | None") -> bool:
        """True if other carries the same expected and actual flows."""
        if other is None:
            return False
        return self.expected_flow == other.expected_flow and self.actual_flow == other.actual_flow


def _exact(value) -> Fraction:
    """Fraction from an int or a float as written in the docs (0.1 stays 1/10)."""
    if isinstance(value, float):
        return Fraction(str(value))
    return Fraction(value)


def recipe_rate_thou(amount, duration, clock_speed_thou: int, fluid: bool) -> int:
    """Per-minute thou rate of one ingredient or product.

    Precondition:
        duration > 0
        amount is signed: negative for ingredients, positive for products

    Postcondition:
        returns floor(amount * 60 * clock_speed_thou / (duration * 10_000)),
        further divided by 1000 for fluids before flooring
        100% clock speed (100_00_000) yields thou units
        arithmetic is exact

    Args:
        amount: signed amount per cycle (liters for fluids)
        duration: cycle duration in seconds at 100% clock speed
        clock_speed_thou: clock speed, 100_00_000 is 100%
        fluid: whether the item travels in pipes

    Returns:
        rate in thousandths of an item (or cubic meter) per minute
    """
    divisor = _exact(duration) * _CLOCK_SPEED_DIVISOR
    if fluid:
        divisor *= _FLUID_AMOUNT_DIVISOR
    return math.floor(_exact(amount) * 60 * clock_speed_thou / divisor)


def compute_item_node(node_id: str, data: dict, docs: DocsMapped, diagnostics: DiagnosticLog) -> ComputationResult | None:
    """Flows of an item source/sink node.

    Precondition:
        data was resolved with resolve_item_node_data

    Postcondition:
        returns None if itemKey is unset or unknown (unknown is reported to diagnostics)
        "in" capable nodes get left-{form}-in-0 with -speedThou
        "out" capable nodes get right-{form}-out-0 with +speedThou

    Args:
        node_id: id of the node, used in diagnostics
        data: resolved item node data
        docs: reference data
        diagnostics: message sink

    Returns:
        ComputationResult with expected flow only, or None
    """
    item_key = data.get("itemKey")
    if not item_key:
        return None
    try:
        item = docs.get_item(item_key)
    except ReferencedItemNotFound as exc:
        diagnostics.error(str(exc), node_id=node_id)
        return None

    speed_thou = data["speedThou"]
    interface_kind = data["interfaceKind"]
    expected_flow = {}
    if interface_kind in ("both", "in"):
        expected_flow[encode_handle_id("left", item.handle_form, "in", 0)] = {item_key: -speed_thou}
    if interface_kind in ("both", "out"):
        expected_flow[encode_handle_id("right", item.handle_form, "out", 0)] = {item_key: speed_thou}
    return ComputationResult(expected_flow)


def compute_recipe_node(node_id: str, data: dict, docs: DocsMapped, diagnostics: DiagnosticLog) -> ComputationResult | None:
    """Flows of a production machine running one recipe.

    Precondition:
        data was resolved with resolve_recipe_node_data

    Postcondition:
        returns None if recipeKey is unset or unknown (unknown is reported)
        ingredients take left in handles 0, 1, ... in declaration order
        products take right out handles 0, 1, ... in declaration order
        an unknown item is reported and skipped without using up a slot
    """
    recipe_key = data.get("recipeKey")
    if not recipe_key:
        return None
    try:
        recipe = docs.get_recipe(recipe_key)
    except ReferencedRecipeNotFound as exc:
        diagnostics.error(str(exc), node_id=node_id)
        return None

    clock_speed_thou = data["clockSpeedThou"]
    expected_flow = {}
    for sign, amounts, direction, port_type in (
        (-1, recipe.ingredients, "left", "in"),
        (1, recipe.products, "right", "out"),
    ):
        index = 0
        for entry in amounts:
            try:
                item = docs.get_item(entry.item_key)
            except ReferencedItemNotFound as exc:
                diagnostics.error(str(exc), node_id=node_id)
                continue
            rate = recipe_rate_thou(
                sign * _exact(entry.amount),
                recipe.manufactoring_duration,
                clock_speed_thou,
                item.handle_form == "fluid",
            )
            handle_id = encode_handle_id(direction, item.handle_form, port_type, index)
            expected_flow[handle_id] = {entry.item_key: rate}
            index += 1

    _LOGGER.debug("Recipe node %s (%s): %s", node_id, recipe_key, expected_flow)
    return ComputationResult(expected_flow)
