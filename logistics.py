"""Flow calculator for logistic nodes (splitters, mergers, pipe junctions).

A logistic node has no rates of its own. It reads what its neighbors produce
or consume at each connected handle, sums the surplus (+) or deficit (-) per
item, and spreads that remainder over its handles:

- a deficit is pushed back to the in handles (out handles if there are none)
- a surplus goes to the out handles selected by the splitter rules, falling
  back to the in handles when no out handle takes the item
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from calculators import UNCONSTRAINED, ComputationResult
from diagnostics import DiagnosticLog
from errors import InvalidDistributionRule
from handles import encode_handle_id
from interfaces import logistic_ports
from node_data import (
    ITEM_RULE_PREFIX,
    RULE_ANY,
    RULE_ANY_UNDEFINED,
    RULE_NONE,
    RULE_OVERFLOW,
    SMART_SPLITTER_TYPES,
)

_LOGGER = logging.getLogger("satisflow")


@dataclass
class HandleRouting:
    """Connected handles of one logistic node, grouped by how they take flow"""

    in_handles: list[str] = field(default_factory=list)
    out_handles: list[str] = field(default_factory=list)
    any_out: list[str] = field(default_factory=list)
    overflow_out: list[str] = field(default_factory=list)  # collected, never routed to
    any_undefined_out: list[str] = field(default_factory=list)
    specific_out: dict[str, list[str]] = field(default_factory=dict)  # item key -> handles

    @property
    def has_specific_and_undefined(self) -> bool:
        return bool(self.specific_out) and bool(self.any_undefined_out)

    def add_in(self, handle_id: str) -> None:
        self.in_handles.append(handle_id)

    def add_out(self, handle_id: str, rules: list[str] | None) -> None:
        """Register an out handle and bucket it by its rule list.

        Precondition:
            rules is None for plain splitters/mergers/junctions,
            otherwise the smart/pro rule list configured on the handle's direction

        Postcondition:
            handle is in out_handles
            with rules None it is in any_out
            otherwise the first rule picks the bucket; when it is an item rule,
            every item rule of the list adds the handle to that item's bucket

        Raises:
            InvalidDistributionRule: if the first rule is not understood
                (the handle stays in out_handles but joins no bucket)
        """
        self.out_handles.append(handle_id)
        if rules is None:
            self.any_out.append(handle_id)
            return

        first = rules[0] if rules else RULE_NONE
        if first == RULE_ANY:
            self.any_out.append(handle_id)
        elif first == RULE_OVERFLOW:
            self.overflow_out.append(handle_id)
        elif first == RULE_ANY_UNDEFINED:
            self.any_undefined_out.append(handle_id)
        elif first == RULE_NONE:
            pass
        elif first.startswith(ITEM_RULE_PREFIX):
            for rule in rules:
                if rule.startswith(ITEM_RULE_PREFIX):
                    self.specific_out.setdefault(rule[len(ITEM_RULE_PREFIX):], []).append(handle_id)
        else:
            raise InvalidDistributionRule(first, handle_id)

    def targets_for(self, item_key: str, amount) -> list[str]:
        """Handles that absorb the remaining amount of an item.

        Precondition:
            amount != 0

        Postcondition:
            deficit: in handles, or out handles if there are none
            surplus: the item's bucket plus any_out, else any_undefined_out plus
            any_out when the node has both item buckets and undefined handles,
            else any_out; in handles if that is empty
        """
        if amount < 0:
            return self.in_handles or self.out_handles

        if item_key in self.specific_out:
            targets = self.specific_out[item_key] + self.any_out
        elif self.has_specific_and_undefined:
            targets = self.any_undefined_out + self.any_out
        else:
            targets = list(self.any_out)
        return targets or self.in_handles


def _rules_for(smart_pro_rules: dict, direction: str) -> list[str]:
    """Rule list of a direction; a single rule string is accepted as a one item list."""
    rules = smart_pro_rules.get(direction) or [RULE_NONE]
    if isinstance(rules, str):
        return [rules]
    return list(rules)


def distribute(remaining: dict, routing: HandleRouting, actual_flow: dict) -> None:
    """Spread each item's remainder over its target handles, in place.

    Precondition:
        actual_flow has an entry for every handle in routing

    Postcondition:
        for every non-zero remainder, each target handle's rate for the item
        is increased by floor(remainder / number of targets)
        items with no target handle are left unassigned

    Args:
        remaining: item key -> surplus (+) or deficit (-)
        routing: connected handles of the node
        actual_flow: handle id -> {item key: rate}, updated in place
    """
    for item_key, amount in remaining.items():
        if not amount:
            continue
        targets = routing.targets_for(item_key, amount)
        if not targets:
            _LOGGER.debug("No handle takes %s of %s", amount, item_key)
            continue
        share = amount // len(targets)
        for handle_id in targets:
            flow = actual_flow[handle_id]
            flow[item_key] = flow.get(item_key, 0) + share


def compute_logistic_node(
    node_id: str,
    data: dict,
    adjacency: dict[str, str],
    read_neighbor: Callable[[str], object],
    diagnostics: DiagnosticLog,
    ignore_handle_ids: frozenset[str] | None = None,
) -> ComputationResult | None:
    """Flows of a splitter, merger, smart/pro splitter or pipe junction.

    Precondition:
        data was resolved with resolve_logistic_node_data
        read_neighbor(handle_id) returns the neighbor's reading across the edge on
        handle_id: a {item key: rate} dict, UNCONSTRAINED, or None

    Postcondition:
        returns None if data["type"] is unset
        every connected handle has expected flow UNCONSTRAINED and an actual flow dict
        an actual flow starts at the negated neighbor reading, then the per-item
        remainder is distributed (see distribute)
        handles in ignore_handle_ids are routed but their neighbor is not read
        an invalid rule is reported to diagnostics and its handle joins no bucket

    Args:
        node_id: id of the node, used in diagnostics
        data: resolved logistic node data
        adjacency: the node's handle id -> edge id map
        read_neighbor: neighbor reading accessor
        diagnostics: message sink
        ignore_handle_ids: handles whose neighbor must not be read

    Returns:
        ComputationResult with expected and actual flow, or None
    """
    logistic_type = data.get("type")
    if not logistic_type:
        return None
    ignore_handle_ids = frozenset(ignore_handle_ids or ())
    smart = logistic_type in SMART_SPLITTER_TYPES

    routing = HandleRouting()
    expected_flow = {}
    actual_flow = {}
    remaining = {}
    for direction, form, port_type in logistic_ports(logistic_type, data["pipeJuncInt"]):
        handle_id = encode_handle_id(direction, form, port_type, 0)
        if handle_id not in adjacency:
            continue
        expected_flow[handle_id] = UNCONSTRAINED
        actual_flow[handle_id] = {}

        if port_type == "in":
            routing.add_in(handle_id)
        else:
            try:
                routing.add_out(handle_id, _rules_for(data["smartProRules"], direction) if smart else None)
            except InvalidDistributionRule as exc:
                diagnostics.error(str(exc), node_id=node_id)

        if handle_id in ignore_handle_ids:
            continue
        reading = read_neighbor(handle_id)
        if reading is None or reading is UNCONSTRAINED:
            continue
        for item_key, rate in reading.items():
            actual_flow[handle_id][item_key] = -rate
            remaining[item_key] = remaining.get(item_key, 0) + rate

    distribute(remaining, routing, actual_flow)
    _LOGGER.debug("Logistic node %s (%s): %s", node_id, logistic_type, actual_flow)
    return ComputationResult(expected_flow, actual_flow, ignored_handle_ids=ignore_handle_ids or None)
