"""Errors raised while computing factory flows."""


class FlowComputeError(ValueError):
    """Base class for every error the flow engine reports."""


class MalformedHandle(FlowComputeError):
    """A handle id does not follow "{direction}-{form}-{type}-{index}"."""


class ReferencedItemNotFound(FlowComputeError, LookupError):
    """An item key does not resolve in the reference data."""

    def __init__(self, item_key: str):
        super().__init__(f"Item {item_key} not found")
        self.item_key = item_key


class ReferencedRecipeNotFound(FlowComputeError, LookupError):
    """A recipe key does not resolve in the reference data."""

    def __init__(self, recipe_key: str):
        super().__init__(f"Recipe {recipe_key} not found")
        self.recipe_key = recipe_key


class ReferencedMachineNotFound(FlowComputeError, LookupError):
    """A machine key does not resolve in the reference data."""

    def __init__(self, machine_key: str):
        super().__init__(f"Machine {machine_key} not found")
        self.machine_key = machine_key


class InvalidDistributionRule(FlowComputeError):
    """A smart/pro splitter rule token is not understood."""

    def __init__(self, rule: str, handle_id: str):
        super().__init__(f"Invalid distribution rule '{rule}' on {handle_id}")
        self.rule = rule
        self.handle_id = handle_id


class CircularDependency(FlowComputeError):
    """A node was revisited while computing its own neighbors."""

    def __init__(self, node_id: str, path: tuple[str, ...]):
        chain = " -> ".join((*path, node_id))
        super().__init__(f"Circular dependency: {chain}")
        self.node_id = node_id
        self.path = path


class MissingNeighborResult(FlowComputeError):
    """The node on the other end of an edge could not be resolved."""
