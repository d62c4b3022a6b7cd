# src/flowcheck/core/dag/builder.py
"""Build a FlowGraph from a flow definition document.

The studio stores nodes as ``{id, type, data}`` with loosely-typed ``data``.
This module is the single place where that untyped mapping is read: each
studio type string is mapped to a NodeKind and ``data`` is converted into
the matching frozen node variant. Everything downstream works with typed
variants only.

The builder is lenient. A stored document may violate graph
invariants (two triggers, two inbound edges, an edge to a deleted node),
and validation must be able to report all of those, so nodes and edges are
inserted without the edit-time checks of FlowGraph.add_node()/add_edge().
Only things that cannot be represented at all (an edge whose endpoint does
not exist, a repeated node id, an unparseable schema entry) are dropped,
and each drop is recorded in the BuildReport.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from flowcheck.contracts.document import EdgeDocument, FlowDocument, NodeDocument
from flowcheck.contracts.enums import IssueKind, NodeKind, TriggerType
from flowcheck.contracts.errors import ValidationIssue
from flowcheck.contracts.schema import SchemaField
from flowcheck.contracts.types import NodeID, PortName
from flowcheck.contracts.webhooks import DEFAULT_EVENT_NAME
from flowcheck.core.dag.graph import FlowGraph
from flowcheck.core.dag.models import (
    ActionNode,
    AutomationNode,
    ConditionNode,
    CorrelationRule,
    FlowEdge,
    FlowNode,
    GotoNode,
    HumanTaskNode,
    LoopNode,
    SwitchCase,
    SwitchNode,
    TriggerNode,
    UnknownNode,
    VariableNode,
)
from flowcheck.core.logging import get_logger

logger = get_logger(__name__)

# Studio type string -> node kind. Several studio types are triggers.
STUDIO_TYPES: Mapping[str, NodeKind] = MappingProxyType(
    {
        "trigger": NodeKind.TRIGGER,
        "api-trigger": NodeKind.TRIGGER,
        "manual-trigger": NodeKind.TRIGGER,
        "schedule": NodeKind.TRIGGER,
        "action": NodeKind.ACTION,
        "condition": NodeKind.CONDITION,
        "switch": NodeKind.SWITCH,
        "loop": NodeKind.LOOP,
        "human-task": NodeKind.HUMAN_TASK,
        "automation": NodeKind.AUTOMATION,
        "variable": NodeKind.VARIABLE,
        "goto": NodeKind.GOTO,
    }
)

_TRIGGER_TYPES: Mapping[str, TriggerType] = MappingProxyType(
    {
        "trigger": TriggerType.MANUAL,
        "api-trigger": TriggerType.API,
        "manual-trigger": TriggerType.MANUAL,
        "schedule": TriggerType.SCHEDULE,
    }
)


@dataclass(frozen=True, slots=True)
class BuildReport:
    """What the builder could not represent and therefore dropped."""

    issues: tuple[ValidationIssue, ...] = ()


def kind_for_type(type_name: str) -> NodeKind:
    """Map a studio node type to a NodeKind (UNKNOWN when unrecognised)."""
    return STUDIO_TYPES.get(type_name, NodeKind.UNKNOWN)


def _text(value: Any) -> str:
    """Coerce a config value to the text a user edited.

    Structured values (a JSON request body, say) are serialised compactly
    so that references embedded inside them are still scanned.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)


def _first_text(data: Mapping[str, Any], *keys: str) -> str:
    """First non-empty value among several historical spellings of one setting."""
    for key in keys:
        text = _text(data.get(key))
        if text:
            return text
    return ""


def _parse_schema(node_id: str, raw: Any, issues: list[ValidationIssue]) -> tuple[SchemaField, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        issues.append(
            ValidationIssue(
                kind=IssueKind.CONFIGURATION,
                message=f"Trigger schema must be a list of fields, got {type(raw).__name__}",
                node_id=node_id,
                field="schema",
            )
        )
        return None

    fields: list[SchemaField] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            issues.append(
                ValidationIssue(
                    kind=IssueKind.CONFIGURATION,
                    message=f"Trigger schema entry {index} must be an object",
                    node_id=node_id,
                    field=f"schema[{index}]",
                )
            )
            continue
        try:
            schema_field = SchemaField.from_dict(entry)
        except ValueError as e:
            issues.append(ValidationIssue(kind=IssueKind.CONFIGURATION, message=str(e), node_id=node_id, field=f"schema[{index}]"))
            continue
        if schema_field.key in seen:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.CONFIGURATION,
                    message=f"Trigger schema declares field '{schema_field.key}' more than once",
                    node_id=node_id,
                    field=f"schema[{index}]",
                    subject=schema_field.key,
                )
            )
            continue
        seen.add(schema_field.key)
        fields.append(schema_field)
    return tuple(fields)


def _parse_headers(raw: Any) -> Mapping[str, str]:
    """Headers arrive as a mapping or as a key/value list from the studio editor."""
    headers: dict[str, str] = {}
    if isinstance(raw, Mapping):
        headers = {str(k): _text(v) for k, v in raw.items()}
    elif isinstance(raw, list):
        for entry in raw:
            if isinstance(entry, Mapping) and entry.get("key"):
                headers[str(entry["key"])] = _text(entry.get("value"))
    return MappingProxyType(headers)


def _parse_cases(raw: Any) -> tuple[SwitchCase, ...]:
    """Switch cases are ``{id, label}`` objects; legacy bare strings are both."""
    if not isinstance(raw, list):
        return ()
    cases: list[SwitchCase] = []
    for index, entry in enumerate(raw):
        if isinstance(entry, str):
            cases.append(SwitchCase(case_id=entry, label=entry))
        elif isinstance(entry, Mapping):
            label = _text(entry.get("label"))
            case_id = _text(entry.get("id")) or label or f"case-{index}"
            cases.append(SwitchCase(case_id=case_id, label=label or case_id))
    return tuple(cases)


def _parse_correlations(data: Mapping[str, Any]) -> tuple[CorrelationRule, ...]:
    """Correlation rules from the list form, or the legacy single-rule keys."""
    raw = data.get("correlations")
    if isinstance(raw, list):
        rules: list[CorrelationRule] = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                continue
            rules.append(
                CorrelationRule(
                    key=_text(entry.get("key")),
                    value_expression=_text(entry.get("value")),
                    event_name=_text(entry.get("eventName")) or DEFAULT_EVENT_NAME,
                )
            )
        return tuple(rules)

    key = _text(data.get("correlationKey"))
    value = _text(data.get("correlationValue"))
    if key or value:
        return (
            CorrelationRule(
                key=key,
                value_expression=value,
                event_name=_text(data.get("eventName")) or DEFAULT_EVENT_NAME,
            ),
        )
    return ()


def node_from_document(doc: NodeDocument, issues: list[ValidationIssue] | None = None) -> FlowNode:
    """Convert one stored node into its typed variant.

    Args:
        doc: Node as stored in the flow document
        issues: Optional list collecting config that had to be dropped

    Returns:
        The FlowNode variant for the node's kind (UnknownNode for unknown types)
    """
    collected = issues if issues is not None else []
    data = doc.data
    node_id = NodeID(doc.id)
    label = _text(data.get("label")).strip()
    description = _text(data.get("description"))
    kind = kind_for_type(doc.type)

    match kind:
        case NodeKind.TRIGGER:
            return TriggerNode(
                node_id=node_id,
                label=label,
                description=description,
                trigger_type=_TRIGGER_TYPES.get(doc.type, TriggerType.MANUAL),
                schema=_parse_schema(doc.id, data.get("schema"), collected),
                instance_name_template=_text(data.get("instanceNameTemplate")),
            )
        case NodeKind.ACTION:
            return ActionNode(
                node_id=node_id,
                label=label,
                description=description,
                subtype=_text(data.get("subtype")) or "http",
                url=_text(data.get("url")),
                method=_text(data.get("method")) or "GET",
                headers=_parse_headers(data.get("headers")),
                body=_text(data.get("body")),
                to=_text(data.get("to")),
                subject=_text(data.get("subject")),
                message=_first_text(data, "message", "emailBody"),
            )
        case NodeKind.CONDITION:
            condition = data.get("condition")
            condition = condition if isinstance(condition, Mapping) else {}
            return ConditionNode(
                node_id=node_id,
                label=label,
                description=description,
                left=_text(condition.get("left")),
                operator=_text(condition.get("operator")),
                right=_text(condition.get("right")),
            )
        case NodeKind.SWITCH:
            return SwitchNode(
                node_id=node_id,
                label=label,
                description=description,
                variable=_text(data.get("variable")),
                cases=_parse_cases(data.get("cases")),
            )
        case NodeKind.LOOP:
            return LoopNode(node_id=node_id, label=label, description=description, items=_text(data.get("items")))
        case NodeKind.HUMAN_TASK:
            return HumanTaskNode(
                node_id=node_id,
                label=label,
                description=description,
                assignee=_text(data.get("assignee")),
                title=_text(data.get("title")),
                instructions=_text(data.get("instructions")),
            )
        case NodeKind.AUTOMATION:
            return AutomationNode(
                node_id=node_id,
                label=label,
                description=description,
                correlations=_parse_correlations(data),
            )
        case NodeKind.VARIABLE:
            return VariableNode(
                node_id=node_id,
                label=label,
                description=description,
                variable_name=_text(data.get("variableName")),
                value=_text(data.get("value")),
            )
        case NodeKind.GOTO:
            return GotoNode(
                node_id=node_id,
                label=label,
                description=description,
                target_id=_first_text(data, "targetId", "target_id", "target"),
            )
        case _:
            return UnknownNode(
                node_id=node_id,
                label=label,
                description=description,
                type_name=doc.type,
                data=MappingProxyType(dict(data)),
            )


def edge_from_document(doc: EdgeDocument) -> FlowEdge:
    """Convert one stored edge. An empty handle means the default port."""
    port = PortName(doc.source_handle) if doc.source_handle else None
    return FlowEdge(source=NodeID(doc.source), target=NodeID(doc.target), source_port=port)


def build_flow_graph(document: FlowDocument) -> tuple[FlowGraph, BuildReport]:
    """Build a FlowGraph from a flow definition document.

    Args:
        document: Validated flow document envelope

    Returns:
        (graph, report) where report lists the nodes, edges and schema
        entries that were dropped because they cannot be represented.
    """
    graph = FlowGraph()
    issues: list[ValidationIssue] = []

    for node_doc in document.nodes:
        if graph.has_node(node_doc.id):
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Node id '{node_doc.id}' appears more than once; later copies are ignored",
                    node_id=node_doc.id,
                    subject=node_doc.id,
                )
            )
            continue
        graph._insert_node(node_from_document(node_doc, issues))

    for edge_doc in document.edges:
        edge = edge_from_document(edge_doc)
        missing = [endpoint for endpoint in (edge.source, edge.target) if not graph.has_node(endpoint)]
        if missing:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Edge {edge.describe()} references unknown node(s): {', '.join(missing)}",
                    node_id=missing[0],
                    subject=missing[0],
                )
            )
            continue
        graph._insert_edge(edge)

    if issues:
        logger.debug("flow_document_partially_loaded", dropped=len(issues))
    return graph, BuildReport(issues=tuple(issues))
