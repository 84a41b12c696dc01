"""Shared fixtures: a small docs data set and helpers to build factory graphs."""

import pytest

from diagnostics import DiagnosticLog
from docs import DocsMapped

DOCS_DATA = {
    "items": {
        "Desc_OreIron_C": {"displayName": "Iron Ore", "form": "solid"},
        "Desc_IronIngot_C": {"displayName": "Iron Ingot", "form": "solid"},
        "Desc_IronRod_C": {"displayName": "Iron Rod", "form": "solid"},
        "Desc_IronScrew_C": {"displayName": "Screw", "form": "solid"},
        "Desc_OreBauxite_C": {"displayName": "Bauxite", "form": "solid"},
        "Desc_Silica_C": {"displayName": "Silica", "form": "solid"},
        "Desc_Water_C": {"displayName": "Water", "form": "liquid"},
        "Desc_AluminaSolution_C": {"displayName": "Alumina Solution", "form": "liquid"},
    },
    "recipes": {
        "Recipe_IngotIron_C": {
            "displayName": "Iron Ingot",
            "manufactoringDuration": 2,
            "ingredients": [{"itemKey": "Desc_OreIron_C", "amount": 1}],
            "products": [{"itemKey": "Desc_IronIngot_C", "amount": 1}],
            "producedIn": "Desc_SmelterMk1_C",
        },
        "Recipe_IronRod_C": {
            "displayName": "Iron Rod",
            "manufactoringDuration": 4,
            "ingredients": [{"itemKey": "Desc_IronIngot_C", "amount": 1}],
            "products": [{"itemKey": "Desc_IronRod_C", "amount": 1}],
            "producedIn": "Desc_ConstructorMk1_C",
        },
        "Recipe_Screw_C": {
            "displayName": "Screw",
            "manufactoringDuration": 6,
            "ingredients": [{"itemKey": "Desc_IronRod_C", "amount": 1}],
            "products": [{"itemKey": "Desc_IronScrew_C", "amount": 4}],
            "producedIn": "Desc_ConstructorMk1_C",
        },
        "Recipe_AluminaSolution_C": {
            "displayName": "Alumina Solution",
            "manufactoringDuration": 6,
            "ingredients": [
                {"itemKey": "Desc_OreBauxite_C", "amount": 12},
                {"itemKey": "Desc_Water_C", "amount": 18000},
            ],
            "products": [
                {"itemKey": "Desc_AluminaSolution_C", "amount": 12000},
                {"itemKey": "Desc_Silica_C", "amount": 5},
            ],
            "producedIn": "Desc_OilRefinery_C",
        },
        "Recipe_Broken_C": {
            "displayName": "Broken",
            "manufactoringDuration": 4,
            "ingredients": [
                {"itemKey": "Desc_Unobtainium_C", "amount": 1},
                {"itemKey": "Desc_IronIngot_C", "amount": 1},
            ],
            "products": [{"itemKey": "Desc_IronRod_C", "amount": 1}],
            "producedIn": "Desc_ConstructorMk1_C",
        },
        "Recipe_Mystery_C": {
            "displayName": "Mystery",
            "manufactoringDuration": 1,
            "ingredients": [{"itemKey": "Desc_OreIron_C", "amount": 1}],
            "products": [{"itemKey": "Desc_IronIngot_C", "amount": 1}],
            "producedIn": "Desc_MysteryMachine_C",
        },
    },
}


@pytest.fixture
def docs():
    """Docs with iron, screw and alumina production chains"""
    return DocsMapped.from_dict(DOCS_DATA)


@pytest.fixture
def diagnostics():
    return DiagnosticLog()
