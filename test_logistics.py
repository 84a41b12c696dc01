"""Tests for logistics module"""

from pytest import raises

from calculators import UNCONSTRAINED
from errors import InvalidDistributionRule
from logistics import HandleRouting, compute_logistic_node, distribute
from node_data import resolve_logistic_node_data

INGOT = "Desc_IronIngot_C"
ROD = "Desc_IronRod_C"


def _compute(data, readings, diagnostics, ignore=None):
    """Run the calculator with every handle in readings connected."""
    adjacency = {handle_id: f"edge-{handle_id}" for handle_id in readings}
    asked = []

    def read_neighbor(handle_id):
        asked.append(handle_id)
        return readings[handle_id]

    result = compute_logistic_node("logistic-1", resolve_logistic_node_data(data), adjacency, read_neighbor, diagnostics, ignore)
    return result, asked


def test_not_configured(diagnostics):
    """a logistic node without type should have no result"""
    result, asked = _compute({}, {"left-solid-in-0": {INGOT: 100}}, diagnostics)
    assert result is None
    assert asked == []


def test_splitter_balanced(diagnostics):
    """a splitter feeding two consumers should relay exactly what they take"""
    result, _ = _compute(
        {"type": "splitter"},
        {
            "left-solid-in-0": {INGOT: 30000},
            "top-solid-out-0": {INGOT: -15000},
            "right-solid-out-0": {INGOT: -15000},
        },
        diagnostics,
    )
    assert result.actual_flow == {
        "left-solid-in-0": {INGOT: -30000},
        "top-solid-out-0": {INGOT: 15000},
        "right-solid-out-0": {INGOT: 15000},
    }
    assert result.expected_flow == {
        "left-solid-in-0": UNCONSTRAINED,
        "top-solid-out-0": UNCONSTRAINED,
        "right-solid-out-0": UNCONSTRAINED,
    }


def test_splitter_surplus_is_split_evenly(diagnostics):
    """surplus should be floor-divided over the out handles"""
    result, _ = _compute(
        {"type": "splitter"},
        {
            "left-solid-in-0": {INGOT: 30001},
            "top-solid-out-0": {INGOT: 0},
            "right-solid-out-0": {INGOT: 0},
            "bottom-solid-out-0": {INGOT: 0},
        },
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {INGOT: 10000}
    assert result.actual_flow["right-solid-out-0"] == {INGOT: 10000}
    assert result.actual_flow["bottom-solid-out-0"] == {INGOT: 10000}
    assert result.actual_flow["left-solid-in-0"] == {INGOT: -30001}


def test_splitter_deficit_goes_to_input(diagnostics):
    """a deficit should be asked from the in handle"""
    result, _ = _compute(
        {"type": "splitter"},
        {
            "left-solid-in-0": {INGOT: 10000},
            "top-solid-out-0": {INGOT: -15000},
            "right-solid-out-0": {INGOT: -15000},
        },
        diagnostics,
    )
    assert result.actual_flow["left-solid-in-0"] == {INGOT: -30000}
    assert result.actual_flow["top-solid-out-0"] == {INGOT: 15000}


def test_only_connected_handles(diagnostics):
    """unconnected handles should carry no flow at all"""
    result, _ = _compute({"type": "splitter"}, {"left-solid-in-0": {INGOT: 30000}, "top-solid-out-0": {INGOT: 0}}, diagnostics)
    assert set(result.actual_flow) == {"left-solid-in-0", "top-solid-out-0"}
    assert result.actual_flow["top-solid-out-0"] == {INGOT: 30000}


def test_merger_combines_inputs(diagnostics):
    """a merger should push the sum of its inputs out on the right"""
    result, _ = _compute(
        {"type": "merger"},
        {
            "left-solid-in-0": {INGOT: 20000},
            "top-solid-in-0": {ROD: 10000},
            "bottom-solid-in-0": {INGOT: 5000},
            "right-solid-out-0": {},
        },
        diagnostics,
    )
    assert result.actual_flow["right-solid-out-0"] == {INGOT: 25000, ROD: 10000}


def test_surplus_without_outputs_falls_back_to_inputs(diagnostics):
    """with no out handle connected, surplus should go back to the in handle"""
    result, _ = _compute({"type": "splitter"}, {"left-solid-in-0": {INGOT: 30000}}, diagnostics)
    assert result.actual_flow == {"left-solid-in-0": {INGOT: 0}}


def test_ignored_handle_is_not_read(diagnostics):
    """ignored handles should be routed to but their neighbor not asked"""
    result, asked = _compute(
        {"type": "splitter"},
        {"left-solid-in-0": {INGOT: 999}, "top-solid-out-0": {INGOT: -15000}},
        diagnostics,
        ignore=frozenset({"left-solid-in-0"}),
    )
    assert asked == ["top-solid-out-0"]
    assert result.actual_flow["left-solid-in-0"] == {INGOT: -15000}
    assert result.ignored_handle_ids == frozenset({"left-solid-in-0"})


def test_unconstrained_and_missing_readings(diagnostics):
    """UNCONSTRAINED and missing readings should contribute no items"""
    result, _ = _compute(
        {"type": "splitter"},
        {"left-solid-in-0": UNCONSTRAINED, "top-solid-out-0": None},
        diagnostics,
    )
    assert result.actual_flow == {"left-solid-in-0": {}, "top-solid-out-0": {}}


def test_splitter_pro_specific_and_any(diagnostics):
    """items with a specific rule should go there, others to "any" """
    result, _ = _compute(
        {"type": "splitterPro", "smartProRules": {"top": [f"item-{ROD}"], "right": ["any"]}},
        {"left-solid-in-0": {INGOT: 20000, ROD: 10000}, "top-solid-out-0": {}, "right-solid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {ROD: 5000}
    assert result.actual_flow["right-solid-out-0"] == {INGOT: 20000, ROD: 5000}


def test_splitter_smart_any_undefined(diagnostics):
    """with item rules and anyUndefined, unlisted items skip the item handles"""
    result, _ = _compute(
        {"type": "splitterSmart", "smartProRules": {"top": [f"item-{ROD}"], "bottom": ["anyUndefined"]}},
        {"left-solid-in-0": {INGOT: 20000, ROD: 10000}, "top-solid-out-0": {}, "bottom-solid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {ROD: 10000}
    assert result.actual_flow["bottom-solid-out-0"] == {INGOT: 20000}


def test_overflow_receives_nothing(diagnostics):
    """overflow handles are collected but never routed to"""
    result, _ = _compute(
        {"type": "splitterSmart", "smartProRules": {"top": ["overflow"], "right": ["any"]}},
        {"left-solid-in-0": {INGOT: 30000}, "top-solid-out-0": {}, "right-solid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {}
    assert result.actual_flow["right-solid-out-0"] == {INGOT: 30000}


def test_none_rule_and_missing_rule(diagnostics):
    """handles with "none" or no rules should take no surplus"""
    result, _ = _compute(
        {"type": "splitterSmart", "smartProRules": {"top": ["none"], "right": ["any"]}},
        {"left-solid-in-0": {INGOT: 30000}, "top-solid-out-0": {}, "right-solid-out-0": {}, "bottom-solid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {}
    assert result.actual_flow["bottom-solid-out-0"] == {}
    assert result.actual_flow["right-solid-out-0"] == {INGOT: 30000}


def test_invalid_rule_is_reported(diagnostics):
    """an unknown rule should be reported and its handle left out"""
    result, _ = _compute(
        {"type": "splitterPro", "smartProRules": {"top": ["sometimes"], "right": ["any"]}},
        {"left-solid-in-0": {INGOT: 30000}, "top-solid-out-0": {}, "right-solid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {}
    assert result.actual_flow["right-solid-out-0"] == {INGOT: 30000}
    assert [message.message for message in diagnostics] == ["Invalid distribution rule 'sometimes' on top-solid-out-0"]


def test_pipe_junction(diagnostics):
    """pipe junctions should use fluid handles and pipeJuncInt"""
    result, _ = _compute(
        {"type": "pipeJunc", "pipeJuncInt": {"top": "in"}},
        {"left-fluid-in-0": {"Desc_Water_C": 60000}, "top-fluid-in-0": {"Desc_Water_C": 60000}, "right-fluid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["right-fluid-out-0"] == {"Desc_Water_C": 120000}


def test_routing_every_item_rule_registers():
    """with an item rule first, every item rule in the list should register the handle"""
    routing = HandleRouting()
    routing.add_out("top-solid-out-0", [f"item-{ROD}", "any", f"item-{INGOT}"])
    assert routing.specific_out == {ROD: ["top-solid-out-0"], INGOT: ["top-solid-out-0"]}
    assert routing.any_out == []


def test_routing_single_rule_string(diagnostics):
    """a rule given as a plain string should behave like a one item list"""
    result, _ = _compute(
        {"type": "splitterSmart", "smartProRules": {"top": "any"}},
        {"left-solid-in-0": {INGOT: 30000}, "top-solid-out-0": {}},
        diagnostics,
    )
    assert result.actual_flow["top-solid-out-0"] == {INGOT: 30000}


def test_routing_invalid_first_rule():
    """add_out should raise on an unknown first rule, keeping the handle as an out handle"""
    routing = HandleRouting()
    with raises(InvalidDistributionRule):
        routing.add_out("top-solid-out-0", ["bogus"])
    assert routing.out_handles == ["top-solid-out-0"]


def test_distribute_accumulates():
    """distribute should add to existing rates and skip zero remainders"""
    routing = HandleRouting(in_handles=["in"], out_handles=["a", "b"], any_out=["a", "b"])
    actual = {"in": {}, "a": {INGOT: 1}, "b": {}}
    distribute({INGOT: 10, ROD: 0}, routing, actual)
    assert actual == {"in": {}, "a": {INGOT: 6}, "b": {INGOT: 5}}
