"""Reference data ("docs"): items, recipes and production machines.

The docs file is produced offline from the game's Docs.json and is read-only
once loaded. Sections may be given as {key: value} objects or as lists of
[key, value] pairs.
"""

import json
import logging
from dataclasses import dataclass

from frozendict import frozendict

from errors import ReferencedItemNotFound, ReferencedMachineNotFound, ReferencedRecipeNotFound

_LOGGER = logging.getLogger("satisflow")

# solidIn, solidOut, fluidIn, fluidOut, length, width
_MACHINE_PORTS = {
    "Build_SmelterMk1_C": ("Smelter", 1, 1, 0, 0, 9, 6),
    "Build_ConstructorMk1_C": ("Constructor", 1, 1, 0, 0, 10, 8),
    "Build_AssemblerMk1_C": ("Assembler", 2, 1, 0, 0, 15, 10),
    "Build_ManufacturerMk1_C": ("Manufacturer", 4, 1, 0, 0, 20, 18),
    "Build_FoundryMk1_C": ("Foundry", 2, 1, 0, 0, 9, 10),
    "Build_OilRefinery_C": ("Refinery", 1, 1, 1, 1, 20, 10),
    "Build_Packager_C": ("Packager", 1, 1, 1, 1, 8, 8),
    "Build_Blender_C": ("Blender", 2, 1, 2, 1, 16, 18),
    "Build_HadronCollider_C": ("Particle Accelerator", 2, 1, 1, 0, 38, 24),
}


@dataclass(frozen=True)
class Item:
    """an item or fluid"""

    key: str
    display_name: str
    form: str | None  # "solid", "liquid", "gas"

    @property
    def handle_form(self) -> str:
        """Belt or pipe: anything that is not solid travels in pipes."""
        return "solid" if self.form == "solid" else "fluid"


@dataclass(frozen=True)
class ItemAmount:
    """amount of an item consumed or produced by one recipe cycle"""

    item_key: str
    amount: float


@dataclass(frozen=True)
class Recipe:
    """a recipe, amounts are per cycle and fluids are in liters"""

    key: str
    display_name: str
    manufactoring_duration: float  # seconds
    ingredients: tuple[ItemAmount, ...]
    products: tuple[ItemAmount, ...]
    produced_in: str


@dataclass(frozen=True)
class Machine:
    """a production machine and its port counts"""

    key: str
    display_name: str
    solid_in: int
    solid_out: int
    fluid_in: int
    fluid_out: int
    length: float
    width: float


def _normalize_machine_key(key: str) -> str:
    """Recipes reference machines by descriptor ("Desc_") or building ("Build_") class."""
    if key.startswith("Desc_"):
        return "Build_" + key[len("Desc_"):]
    return key


def _section(raw: dict, name: str) -> dict:
    """Read one docs section, accepting either an object or a list of [key, value] pairs."""
    section = raw.get(name) or {}
    if isinstance(section, list):
        section = dict(section)
    return section


def _parse_item(key: str, raw: dict) -> Item:
    return Item(key, raw.get("displayName", key), raw.get("form"))


def _parse_amounts(raw_amounts: list) -> tuple[ItemAmount, ...]:
    return tuple(ItemAmount(entry["itemKey"], entry["amount"]) for entry in raw_amounts)


def _parse_recipe(key: str, raw: dict) -> Recipe:
    """Build a Recipe from its docs entry.

    Precondition:
        raw has "manufactoringDuration", "ingredients", "products" and "producedIn"

    Postcondition:
        returns a frozen Recipe with ingredients/products in declaration order
    """
    return Recipe(
        key,
        raw.get("displayName", key),
        raw["manufactoringDuration"],
        _parse_amounts(raw.get("ingredients", [])),
        _parse_amounts(raw.get("products", [])),
        raw["producedIn"],
    )


def _builtin_machines() -> dict[str, Machine]:
    return {
        key: Machine(key, name, solid_in, solid_out, fluid_in, fluid_out, length, width)
        for key, (name, solid_in, solid_out, fluid_in, fluid_out, length, width) in _MACHINE_PORTS.items()
    }


def _parse_machine(key: str, raw: dict, default: Machine | None) -> Machine:
    """Build a Machine from its docs entry, falling back to the built-in port counts.

    Precondition:
        key is already normalized to the "Build_" form

    Postcondition:
        every field missing from raw is taken from default (or zero)
    """
    def pick(field_name: str, attribute: str):
        if field_name in raw:
            return raw[field_name]
        return getattr(default, attribute) if default else 0

    return Machine(
        key,
        raw.get("displayName", default.display_name if default else key),
        pick("solidIn", "solid_in"),
        pick("solidOut", "solid_out"),
        pick("fluidIn", "fluid_in"),
        pick("fluidOut", "fluid_out"),
        pick("length", "length"),
        pick("width", "width"),
    )


class DocsMapped:
    """Lookup tables over the docs file"""

    def __init__(
        self,
        items: dict[str, Item],
        recipes: dict[str, Recipe],
        machines: dict[str, Machine] | None = None,
        generators: dict[str, dict] | None = None,
    ):
        self.items = frozendict(items)
        self.recipes = frozendict(recipes)
        self.machines = frozendict(_builtin_machines() if machines is None else machines)
        self.generators = frozendict(generators or {})

    @classmethod
    def from_dict(cls, raw: dict) -> "DocsMapped":
        """Build lookups from a parsed docs document.

        Precondition:
            raw is a dict with optional "items", "recipes",
            "productionMachines" and "generators" sections

        Postcondition:
            returns DocsMapped with frozen lookup tables
            built-in machine port counts are used for machines missing from raw

        Args:
            raw: parsed docs JSON

        Returns:
            DocsMapped instance
        """
        items = {key: _parse_item(key, value) for key, value in _section(raw, "items").items()}
        recipes = {key: _parse_recipe(key, value) for key, value in _section(raw, "recipes").items()}

        machines = _builtin_machines()
        for key, value in _section(raw, "productionMachines").items():
            key = _normalize_machine_key(key)
            machines[key] = _parse_machine(key, value, machines.get(key))

        generators = {key: frozendict(value) for key, value in _section(raw, "generators").items()}
        _LOGGER.debug(
            "Loaded docs: %s items, %s recipes, %s machines", len(items), len(recipes), len(machines)
        )
        return cls(items, recipes, machines, generators)

    def get_item(self, item_key: str) -> Item:
        """Look up an item.

        Raises:
            ReferencedItemNotFound: if item_key is unknown
        """
        try:
            return self.items[item_key]
        except KeyError as exc:
            raise ReferencedItemNotFound(item_key) from exc

    def get_recipe(self, recipe_key: str) -> Recipe:
        """Look up a recipe.

        Raises:
            ReferencedRecipeNotFound: if recipe_key is unknown
        """
        try:
            return self.recipes[recipe_key]
        except KeyError as exc:
            raise ReferencedRecipeNotFound(recipe_key) from exc

    def get_machine(self, machine_key: str) -> Machine:
        """Look up a production machine by its "Desc_" or "Build_" key.

        Raises:
            ReferencedMachineNotFound: if machine_key is unknown
        """
        try:
            return self.machines[_normalize_machine_key(machine_key)]
        except KeyError as exc:
            raise ReferencedMachineNotFound(machine_key) from exc

    def display_name(self, item_key: str) -> str:
        """Item display name, or the key itself for unknown items."""
        item = self.items.get(item_key)
        return item.display_name if item else item_key


def load_docs(path: str) -> DocsMapped:
    """Read a docs JSON file.

    Args:
        path: file path of the parsed docs JSON

    Returns:
        DocsMapped built from the file
    """
    with open(path, "r", encoding="utf-8") as f:
        return DocsMapped.from_dict(json.load(f))
