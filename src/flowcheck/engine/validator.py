# src/flowcheck/engine/validator.py
"""Validate entry points: one text, one node, one whole flow.

Each call composes the reference scanner, the ancestor analysis and the
schema lookups over a graph snapshot:

    text --parse_references--> references + syntax issues
    reference --is_reachable--> topology issue when not upstream or self
    reachable reference --resolve_field--> schema issue when undeclared

A reference that fails topology gets no schema check, since the node it
names may not exist. Within one text each offending alias and each
offending field is reported once.

These functions never raise for an invalid flow; they return a
ValidationResult and leave blocking-vs-warning to the caller.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from flowcheck.contracts.enums import IssueKind
from flowcheck.contracts.errors import ValidationIssue, ValidationResult
from flowcheck.core.config import DEFAULT_SETTINGS
from flowcheck.core.dag.builder import build_flow_graph
from flowcheck.core.dag.models import (
    ActionNode,
    AutomationNode,
    ConditionNode,
    FlowNode,
    HumanTaskNode,
    LoopNode,
    SwitchNode,
    TriggerNode,
    VariableNode,
)
from flowcheck.core.dag.reachability import ancestors, is_reachable
from flowcheck.core.dag.validation import validate_graph
from flowcheck.core.logging import get_logger
from flowcheck.engine.references import parse_references
from flowcheck.engine.schema_resolver import resolve_field, undefined_field_message

if TYPE_CHECKING:
    from flowcheck.contracts.document import FlowDocument, NodeDocument
    from flowcheck.contracts.types import NodeID
    from flowcheck.core.config import FlowcheckSettings
    from flowcheck.core.dag.graph import FlowGraph

logger = get_logger(__name__)


def topology_message(alias: str) -> str:
    return f"Reference to missing or future step: {alias}"


def text_fields(node: FlowNode) -> Iterator[tuple[str, str]]:
    """Yield ``(field path, text)`` for every user-editable text of a node.

    Paths use the flow document's key names so the studio can highlight
    the offending input. Goto and unknown kinds have no checked fields.
    """
    match node:
        case TriggerNode():
            yield "instanceNameTemplate", node.instance_name_template
        case ActionNode():
            yield "url", node.url
            for name, value in node.headers.items():
                yield f"headers.{name}", value
            yield "body", node.body
            yield "to", node.to
            yield "subject", node.subject
            yield "message", node.message
        case ConditionNode():
            yield "condition.left", node.left
            yield "condition.operator", node.operator
            yield "condition.right", node.right
        case SwitchNode():
            yield "variable", node.variable
        case LoopNode():
            yield "items", node.items
        case HumanTaskNode():
            yield "assignee", node.assignee
            yield "title", node.title
            yield "instructions", node.instructions
        case AutomationNode():
            for index, rule in enumerate(node.correlations):
                yield f"correlations[{index}].value", rule.value_expression
        case VariableNode():
            yield "value", node.value


def _text_issues(
    node_id: str,
    text: str,
    graph: FlowGraph,
    *,
    field: str | None,
    ancestor_set: frozenset[NodeID] | None,
    settings: FlowcheckSettings,
) -> list[ValidationIssue]:
    references, syntax_issues = parse_references(text)
    issues = [
        ValidationIssue(kind=IssueKind.SYNTAX, message=bad.message, node_id=node_id, field=field, subject=bad.raw_text)
        for bad in syntax_issues
    ]
    if not references:
        return issues

    upstream = ancestor_set if ancestor_set is not None else ancestors(node_id, graph)
    alias = settings.trigger_alias
    bad_aliases: set[str] = set()
    bad_fields: set[str] = set()

    for reference in references:
        if not is_reachable(reference.node_alias, node_id, graph, ancestor_set=upstream, trigger_alias=alias):
            if reference.node_alias in bad_aliases:
                continue
            bad_aliases.add(reference.node_alias)
            message = topology_message(reference.node_alias)
            if reference.node_alias == alias and len(graph.triggers()) > 1:
                message += f" (the flow has {len(graph.triggers())} triggers, so '{alias}' is ambiguous)"
            issues.append(
                ValidationIssue(
                    kind=IssueKind.TOPOLOGY,
                    message=message,
                    node_id=node_id,
                    field=field,
                    subject=reference.node_alias,
                )
            )
            continue

        if reference.field_name is None or reference.field_name in bad_fields:
            continue
        resolution = resolve_field(reference.node_alias, reference.field_name, graph, trigger_alias=alias)
        if resolution.checked and not resolution.found:
            bad_fields.add(reference.field_name)
            issues.append(
                ValidationIssue(
                    kind=IssueKind.SCHEMA,
                    message=undefined_field_message(reference.field_name),
                    node_id=node_id,
                    field=field,
                    subject=reference.field_name,
                )
            )
    return issues


def validate_text(
    node_id: str,
    text: str,
    graph: FlowGraph,
    settings: FlowcheckSettings | None = None,
    *,
    field: str | None = None,
) -> ValidationResult:
    """Validate the references in one text belonging to ``node_id``.

    Args:
        node_id: Node whose configuration holds the text
        text: Configuration text, possibly containing {{ ... }} blocks
        graph: Graph snapshot
        settings: Engine settings (trigger alias); defaults when None
        field: Field path recorded on the issues

    Returns:
        ValidationResult; valid when the text holds no references
    """
    resolved = settings or DEFAULT_SETTINGS
    return ValidationResult.from_issues(
        _text_issues(node_id, text, graph, field=field, ancestor_set=None, settings=resolved)
    )


def validate_node(node: FlowNode, graph: FlowGraph, settings: FlowcheckSettings | None = None) -> ValidationResult:
    """Validate every text field of one node against ``graph``.

    The ancestor walk is done once and shared across the node's fields.
    """
    resolved = settings or DEFAULT_SETTINGS
    upstream = ancestors(node.node_id, graph)
    issues: list[ValidationIssue] = []
    for field, text in text_fields(node):
        issues.extend(_text_issues(node.node_id, text, graph, field=field, ancestor_set=upstream, settings=resolved))
    return ValidationResult.from_issues(issues)


def validate_flow(
    document: FlowDocument,
    candidate: NodeDocument | None = None,
    settings: FlowcheckSettings | None = None,
) -> ValidationResult:
    """Validate-on-save for a whole flow.

    Args:
        document: Stored flow definition
        candidate: Node being saved; replaces the node with the same id (or
            is appended) before validation
        settings: Engine settings; defaults when None

    Returns:
        Builder issues, then structural issues, then per-node reference
        issues in node order.
    """
    resolved = settings or DEFAULT_SETTINGS
    if candidate is not None:
        document = document.with_node(candidate)

    graph, report = build_flow_graph(document)
    issues: list[ValidationIssue] = [*report.issues, *validate_graph(graph, resolved)]
    for node in graph.nodes():
        issues.extend(validate_node(node, graph, resolved).issues)

    result = ValidationResult.from_issues(issues)
    logger.debug(
        "flow_validated",
        nodes=graph.node_count,
        candidate=candidate.id if candidate is not None else None,
        valid=result.is_valid,
        issues=len(result.issues),
    )
    return result
