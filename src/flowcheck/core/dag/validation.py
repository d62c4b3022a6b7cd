# src/flowcheck/core/dag/validation.py
"""Graph-level structural validation.

validate_graph() checks a graph snapshot and returns every problem it
finds. It never raises for an invalid graph: each rule is reported
independently so the studio can show all problems at once.

Rules:
1. Exactly one trigger once the graph is non-empty
2. Single input: at most one inbound edge per node, none into the trigger
3. Port wiring: branching nodes use their declared ports, at most one
   edge per port; other nodes have one unnamed output
4. Node labels are present and unique (case-insensitive)
5. No cycles
6. Every node is reachable from the trigger
7. A flow with a trigger has at least one other node
8. Kind-specific required configuration is present

Rules 5-8 can be switched off through ValidationSettings.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import networkx as nx

from flowcheck.contracts.enums import IssueKind, NodeKind, TriggerType
from flowcheck.contracts.errors import ValidationIssue
from flowcheck.core.config import DEFAULT_SETTINGS, ValidationSettings
from flowcheck.core.dag.graph import port_issues, trigger_input_issue
from flowcheck.core.dag.models import (
    ActionNode,
    AutomationNode,
    ConditionNode,
    FlowEdge,
    FlowNode,
    GotoNode,
    HumanTaskNode,
    LoopNode,
    SwitchNode,
    TriggerNode,
    VariableNode,
)
from flowcheck.core.logging import get_logger

if TYPE_CHECKING:
    from flowcheck.core.config import FlowcheckSettings
    from flowcheck.core.dag.graph import FlowGraph

logger = get_logger(__name__)


def validate_graph(graph: FlowGraph, settings: FlowcheckSettings | None = None) -> list[ValidationIssue]:
    """Validate the structure of a flow graph.

    Args:
        graph: Graph snapshot to check (not mutated)
        settings: Engine settings; defaults apply when None

    Returns:
        List of issues, empty when the graph is structurally valid. The
        order is deterministic for a given graph.
    """
    options = (settings or DEFAULT_SETTINGS).validation
    if graph.node_count == 0:
        return []

    issues: list[ValidationIssue] = []
    issues.extend(_check_trigger_count(graph))
    issues.extend(_check_single_input(graph))
    issues.extend(_check_ports(graph))
    issues.extend(_check_labels(graph))
    if options.report_cycles:
        issues.extend(_check_cycles(graph))
    if options.report_orphans:
        issues.extend(_check_orphans(graph))
    if options.require_action_node:
        issues.extend(_check_has_action(graph))
    if options.check_node_config or options.require_descriptions:
        for node in graph.nodes():
            issues.extend(check_node_config(node, options))

    logger.debug("graph_validated", nodes=graph.node_count, edges=graph.edge_count, issues=len(issues))
    return issues


def _check_trigger_count(graph: FlowGraph) -> list[ValidationIssue]:
    triggers = graph.triggers()
    if len(triggers) == 1:
        return []
    if not triggers:
        return [ValidationIssue(kind=IssueKind.STRUCTURAL, message="Flow must have exactly one trigger, found none")]
    ids = ", ".join(trigger.node_id for trigger in triggers)
    return [
        ValidationIssue(
            kind=IssueKind.STRUCTURAL,
            message=f"Flow must have exactly one trigger, found {len(triggers)}: {ids}",
            node_id=triggers[1].node_id,
        )
    ]


def _check_single_input(graph: FlowGraph) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for node in graph.nodes():
        inbound = graph.incoming_edges(node.node_id)
        if node.kind == NodeKind.TRIGGER:
            issues.extend(trigger_input_issue(node, edge.source) for edge in inbound)
        elif len(inbound) > 1:
            sources = ", ".join(edge.source for edge in inbound)
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Node '{node.label or node.node_id}' has {len(inbound)} inbound edges (from {sources}); a node accepts a single input",
                    node_id=node.node_id,
                )
            )
    return issues


def _check_ports(graph: FlowGraph) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for node in graph.nodes():
        seen: list[FlowEdge] = []
        for edge in graph.outgoing_edges(node.node_id):
            issues.extend(port_issues(node, edge.source_port, seen))
            seen.append(edge)
    return issues


def _check_labels(graph: FlowGraph) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    by_label: dict[str, list[FlowNode]] = defaultdict(list)
    for node in graph.nodes():
        label = node.label.strip()
        if not label:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Node '{node.node_id}' is missing a label",
                    node_id=node.node_id,
                    field="label",
                )
            )
            continue
        by_label[label.casefold()].append(node)

    for duplicates in by_label.values():
        if len(duplicates) < 2:
            continue
        label = duplicates[0].label.strip()
        for node in duplicates[1:]:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"A node with the label '{label}' already exists",
                    node_id=node.node_id,
                    field="label",
                    subject=label,
                )
            )
    return issues


def _check_cycles(graph: FlowGraph) -> list[ValidationIssue]:
    nx_graph = graph.get_nx_graph()
    if nx.is_directed_acyclic_graph(nx_graph):
        return []
    try:
        cycle = nx.find_cycle(nx_graph)
    except nx.NetworkXNoCycle:
        return [ValidationIssue(kind=IssueKind.STRUCTURAL, message="Flow contains a cycle")]
    # MultiDiGraph returns (u, v, key) tuples; u alone traces the path
    path = " -> ".join([*(str(edge[0]) for edge in cycle), str(cycle[0][0])])
    return [
        ValidationIssue(
            kind=IssueKind.STRUCTURAL,
            message=f"Flow contains a cycle: {path}",
            node_id=str(cycle[0][0]),
        )
    ]


def _check_orphans(graph: FlowGraph) -> list[ValidationIssue]:
    trigger = graph.find_trigger()
    if trigger is None:
        # Without a single trigger there is no root to measure from; the
        # trigger-count issue already covers this.
        return []
    reachable = nx.descendants(graph.get_nx_graph(), trigger.node_id)
    reachable.add(trigger.node_id)
    return [
        ValidationIssue(
            kind=IssueKind.STRUCTURAL,
            message=f"Node '{node.label or node.node_id}' is not connected to the trigger",
            node_id=node.node_id,
        )
        for node in graph.nodes()
        if node.node_id not in reachable
    ]


def _check_has_action(graph: FlowGraph) -> list[ValidationIssue]:
    triggers = graph.triggers()
    if triggers and len(triggers) == graph.node_count:
        return [ValidationIssue(kind=IssueKind.STRUCTURAL, message="Flow must have at least one step after the trigger")]
    return []


def _missing(node: FlowNode, field: str, what: str) -> ValidationIssue:
    return ValidationIssue(
        kind=IssueKind.CONFIGURATION,
        message=f"Node '{node.label or node.node_id}' is missing {what}",
        node_id=node.node_id,
        field=field,
    )


def check_node_config(node: FlowNode, options: ValidationSettings) -> list[ValidationIssue]:
    """Kind-specific required configuration for one node.

    Unknown kinds have no requirements.
    """
    issues: list[ValidationIssue] = []
    if options.require_descriptions and not node.description.strip():
        issues.append(_missing(node, "description", "a description"))
    if not options.check_node_config:
        return issues

    match node:
        case TriggerNode(trigger_type=TriggerType.API, instance_name_template=template) if not template.strip():
            issues.append(_missing(node, "instanceNameTemplate", "an instance name template"))
        case ActionNode(subtype="http", url=url) if not url.strip():
            issues.append(_missing(node, "url", "a URL"))
        case ActionNode(subtype="email", to=to) if not to.strip():
            issues.append(_missing(node, "to", "a recipient (to)"))
        case HumanTaskNode(assignee=assignee) if not assignee.strip():
            issues.append(_missing(node, "assignee", "an assignee"))
        case VariableNode(variable_name=name, value=value):
            if not name.strip():
                issues.append(_missing(node, "variableName", "a variable name"))
            if value == "":
                issues.append(_missing(node, "value", "a value"))
        case SwitchNode(variable=variable) if not variable.strip():
            issues.append(_missing(node, "variable", "a variable to check"))
        case LoopNode(items=items) if not items.strip():
            issues.append(_missing(node, "items", "an array to loop over"))
        case ConditionNode(left=left, operator=operator, right=right):
            for field, value in (("condition.left", left), ("condition.operator", operator), ("condition.right", right)):
                if not value.strip():
                    issues.append(_missing(node, field, f"a value for {field}"))
        case GotoNode(target_id=target_id) if not target_id.strip():
            issues.append(_missing(node, "targetId", "a target node"))
        case AutomationNode(correlations=rules):
            for index, rule in enumerate(rules):
                if not rule.key.strip():
                    issues.append(_missing(node, f"correlations[{index}].key", f"a key for correlation rule {index + 1}"))
                if not rule.value_expression.strip():
                    issues.append(_missing(node, f"correlations[{index}].value", f"a value for correlation rule {index + 1}"))
    return issues
