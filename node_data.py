"""Node configuration data and the resolvers filling in its defaults.

Item node data:
    itemKey: key into the docs items (optional)
    speedThou: thousandths of items per minute (default 0)
    interfaceKind: "both" | "in" | "out" (default "both")

Recipe node data:
    recipeKey: key into the docs recipes (optional)
    clockSpeedThou: thousandths of a percent (default 100_00_000, i.e. 100%)

Logistic node data:
    type: "splitter" | "merger" | "splitterSmart" | "splitterPro" | "pipeJunc"
    smartProRules: direction -> list of rule tokens (default {"right": ["any"]})
    pipeJuncInt: direction -> "in" | "out" (default {}, unset directions are "out")

Every node may also carry cosmetic keys (rotIdx, bgColor) that never take
part in a computation.
"""

NODE_KINDS = ("item", "recipe", "logistic", "generator")

INTERFACE_KINDS = ("both", "in", "out")

DEFAULT_CLOCK_SPEED_THOU = 100_00_000

LOGISTIC_TYPES = ("splitter", "merger", "splitterSmart", "splitterPro", "pipeJunc")
SMART_SPLITTER_TYPES = ("splitterSmart", "splitterPro")

RULE_ANY = "any"
RULE_NONE = "none"
RULE_ANY_UNDEFINED = "anyUndefined"
RULE_OVERFLOW = "overflow"
SMART_PRO_RULES = (RULE_ANY, RULE_NONE, RULE_ANY_UNDEFINED, RULE_OVERFLOW)
ITEM_RULE_PREFIX = "item-"

PIPE_JUNCTION_INTERFACES = ("in", "out")

# keys that only affect how a node is drawn
COSMETIC_KEYS = ("rotIdx", "bgColor")


def _default(data: dict, key: str, value) -> None:
    """Set data[key] to value when it is missing or explicitly None."""
    if data.get(key) is None:
        data[key] = value


def resolve_item_node_data(data: dict | None = None) -> dict:
    """Fill in item node defaults in place.

    Precondition:
        data is None or a dict with any subset of the item node keys

    Postcondition:
        data["speedThou"] and data["interfaceKind"] are set
        keys stored as None are replaced by their default
        other existing values are left untouched

    Args:
        data: item node data

    Returns:
        the same dict (or a new one if data was None)
    """
    data = {} if data is None else data
    _default(data, "speedThou", 0)
    _default(data, "interfaceKind", "both")
    return data


def resolve_recipe_node_data(data: dict | None = None) -> dict:
    """Fill in recipe node defaults in place (clock speed 100%)."""
    data = {} if data is None else data
    _default(data, "clockSpeedThou", DEFAULT_CLOCK_SPEED_THOU)
    return data


def resolve_logistic_node_data(data: dict | None = None) -> dict:
    """Fill in logistic node defaults in place.

    Postcondition:
        data["smartProRules"] defaults to {"right": ["any"]}
        data["pipeJuncInt"] defaults to {}
    """
    data = {} if data is None else data
    _default(data, "smartProRules", {"right": [RULE_ANY]})
    _default(data, "pipeJuncInt", {})
    return data


_RESOLVERS = {
    "item": resolve_item_node_data,
    "recipe": resolve_recipe_node_data,
    "logistic": resolve_logistic_node_data,
}


def resolve_node_data(kind: str, data: dict | None = None) -> dict:
    """Dispatch to the resolver for kind; unknown kinds are returned as-is."""
    resolver = _RESOLVERS.get(kind)
    if resolver is None:
        return {} if data is None else data
    return resolver(data)


def computation_data(data: dict) -> dict:
    """The part of node data a computation depends on (cosmetic keys dropped)."""
    return {key: value for key, value in data.items() if key not in COSMETIC_KEYS}
