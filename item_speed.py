"""Throttling of item and recipe nodes against what their neighbors supply and request."""

import math
from dataclasses import dataclass, field
from fractions import Fraction

from calculators import recipe_rate_thou
from docs import DocsMapped
from handles import encode_handle_id


@dataclass
class ItemSpeedResult:
    """Rates a node settles on, and how well it keeps up"""

    expected_input: dict[str, dict[str, int]] = field(default_factory=dict)
    output: dict[str, dict[str, int]] = field(default_factory=dict)
    efficiency: float | None = None


def _ratio(part, whole) -> float:
    if not whole:
        return 1.0
    return part / whole


def throttle_item_node(data: dict, docs: DocsMapped, supplied=None, expected_output=None) -> ItemSpeedResult | None:
    """Settle an item node's rates against its neighbors.

    Precondition:
        data was resolved with resolve_item_node_data

    Postcondition:
        returns None if itemKey is unset
        "in" capable: expected input is speedThou, efficiency is min(1, supplied / speedThou)
        "out" capable with expected_output: output is min(speedThou, expected_output)
            and efficiency is output / speedThou
        "out" capable without expected_output: output is speedThou
        a node that is both takes the lower of the two efficiencies
        a zero speedThou has efficiency 1

    Args:
        data: resolved item node data
        docs: reference data, for the item form
        supplied: rate arriving at the in handle (0 if None)
        expected_output: rate requested at the out handle, None if nothing asks

    Returns:
        ItemSpeedResult or None

    Raises:
        ReferencedItemNotFound: if itemKey is unknown
    """
    item_key = data.get("itemKey")
    if not item_key:
        return None
    form = docs.get_item(item_key).handle_form
    speed_thou = data["speedThou"]
    interface_kind = data["interfaceKind"]

    result = ItemSpeedResult()
    efficiencies = []
    if interface_kind in ("both", "in"):
        handle_id = encode_handle_id("left", form, "in", 0)
        result.expected_input[handle_id] = {item_key: speed_thou}
        efficiencies.append(min(1.0, _ratio(supplied or 0, speed_thou)))

    if interface_kind in ("both", "out"):
        handle_id = encode_handle_id("right", form, "out", 0)
        if expected_output is None:
            result.output[handle_id] = {item_key: speed_thou}
        else:
            output = min(speed_thou, expected_output)
            result.output[handle_id] = {item_key: output}
            efficiencies.append(_ratio(output, speed_thou))

    if efficiencies:
        result.efficiency = min(efficiencies)
    return result


def _ideal_rates(amounts, direction: str, port_type: str, recipe, clock_speed_thou: int, docs: DocsMapped):
    """(handle id, item key, rate at full efficiency) per amount, in slot order."""
    rates = []
    for index, entry in enumerate(amounts):
        form = docs.get_item(entry.item_key).handle_form
        rate = recipe_rate_thou(entry.amount, recipe.manufactoring_duration, clock_speed_thou, form == "fluid")
        rates.append((encode_handle_id(direction, form, port_type, index), entry.item_key, rate))
    return rates


def _capped_ratio(part, whole) -> Fraction:
    """min(1, part / whole), exactly; nothing is needed of a zero rate."""
    if not whole:
        return Fraction(1)
    return min(Fraction(1), Fraction(part) / whole)


def throttle_recipe_node(data: dict, docs: DocsMapped, supplied=None, requested=None) -> ItemSpeedResult | None:
    """Settle a production machine's rates against its neighbors.

    Precondition:
        data was resolved with resolve_recipe_node_data

    Postcondition:
        returns None if recipeKey is unset
        input efficiency is the lowest min(1, supplied / ideal) over the ingredients
        with requested, output efficiency is the lowest min(1, requested / ideal)
            over the products, and the overall efficiency is the lower of the two
        without requested, the overall efficiency is the input efficiency
        expected input is the ideal ingredient rate, scaled by the output
            efficiency when outputs are requested
        output is the ideal product rate scaled by the overall efficiency (floored)
        handle ids are numbered like compute_recipe_node numbers them

    Args:
        data: resolved recipe node data
        docs: reference data
        supplied: item key -> rate arriving over all in handles, None if nothing arrives
        requested: out handle id -> {item key: rate} asked by the consumers,
            None if no out handle is connected

    Returns:
        ItemSpeedResult or None

    Raises:
        ReferencedRecipeNotFound: if recipeKey is unknown
        ReferencedItemNotFound: if the recipe uses an unknown item
    """
    recipe_key = data.get("recipeKey")
    if not recipe_key:
        return None
    recipe = docs.get_recipe(recipe_key)
    clock_speed_thou = data["clockSpeedThou"]
    supplied = supplied or {}
    ingredients = _ideal_rates(recipe.ingredients, "left", "in", recipe, clock_speed_thou, docs)
    products = _ideal_rates(recipe.products, "right", "out", recipe, clock_speed_thou, docs)

    input_efficiency = Fraction(1)
    for _, item_key, rate in ingredients:
        input_efficiency = min(input_efficiency, _capped_ratio(supplied.get(item_key, 0), rate))

    output_efficiency = Fraction(1)
    if requested is not None:
        for handle_id, item_key, rate in products:
            asked = requested.get(handle_id, {}).get(item_key, 0)
            output_efficiency = min(output_efficiency, _capped_ratio(asked, rate))
    efficiency = min(input_efficiency, output_efficiency)

    result = ItemSpeedResult(efficiency=float(efficiency))
    for handle_id, item_key, rate in ingredients:
        result.expected_input[handle_id] = {item_key: math.floor(rate * output_efficiency)}
    for handle_id, item_key, rate in products:
        result.output[handle_id] = {item_key: math.floor(rate * efficiency)}
    return result
