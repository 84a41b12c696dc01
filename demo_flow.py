"""Demonstration of flow computation on one small factory, at full and reduced clock speed."""

from diagnostics import DiagnosticLog
from docs import DocsMapped
from engine import ComputeContext, compute_graph
from flow_cli import format_report
from flow_render import render_flow
from graph import Edge, FlowGraph, Node

DOCS = DocsMapped.from_dict({
    "items": {
        "Desc_OreIron_C": {"displayName": "Iron Ore", "form": "solid"},
        "Desc_IronIngot_C": {"displayName": "Iron Ingot", "form": "solid"},
        "Desc_IronRod_C": {"displayName": "Iron Rod", "form": "solid"},
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
    },
})

# Example 1: one smelter split between two rod constructors
print("=" * 60)
print("Example 1: Iron Ingot split between two Iron Rod constructors")
print("=" * 60)

graph1 = FlowGraph()
graph1.add_node(Node("ore", "item", {"itemKey": "Desc_OreIron_C", "speedThou": 30000, "interfaceKind": "out"}))
graph1.add_node(Node("smelter", "recipe", {"recipeKey": "Recipe_IngotIron_C"}))
graph1.add_node(Node("splitter", "logistic", {"type": "splitter"}))
graph1.add_node(Node("rods1", "recipe", {"recipeKey": "Recipe_IronRod_C"}))
graph1.add_node(Node("rods2", "recipe", {"recipeKey": "Recipe_IronRod_C"}))
graph1.add_edge(Edge("e1", "ore", "smelter", "right-solid-out-0", "left-solid-in-0"), docs=DOCS)
graph1.add_edge(Edge("e2", "smelter", "splitter", "right-solid-out-0", "left-solid-in-0"), docs=DOCS)
graph1.add_edge(Edge("e3", "splitter", "rods1", "top-solid-out-0", "left-solid-in-0"), docs=DOCS)
graph1.add_edge(Edge("e4", "splitter", "rods2", "bottom-solid-out-0", "left-solid-in-0"), docs=DOCS)

context1 = ComputeContext(graph1, DOCS, DiagnosticLog())
compute_graph(context1)
print(format_report(context1))
print("Rendering flow_split.png...")
render_flow(context1).render("flow_split", format="png", cleanup=True)
print("Done!\n")

# Example 2: same factory with an underclocked smelter
print("=" * 60)
print("Example 2: Smelter underclocked to 50%")
print("=" * 60)

graph1.nodes["smelter"].data["clockSpeedThou"] = 50_00_000
compute_graph(context1)
print(format_report(context1))
print("Rendering flow_underclocked.png...")
render_flow(context1).render("flow_underclocked", format="png", cleanup=True)
print("Done!\n")

print("=" * 60)
print("Flow computations complete!")
print("The graphs include:")
print("  - Item nodes (light blue ellipses)")
print("  - Recipe nodes (boxes) with their clock speed")
print("  - Splitters and mergers (diamonds)")
print("  - Belts labeled with their balance, orange when unbalanced")
print("=" * 60)
