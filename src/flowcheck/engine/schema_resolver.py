# src/flowcheck/engine/schema_resolver.py
"""Trigger payload schema lookups.

Only the trigger declares a schema, so only references into the trigger's
body can be checked. Every other field reference is accepted as-is: action
and task outputs are not known until runtime.

Two callers:
- resolve_field(): is ``{{ steps.<alias>.body.<field> }}`` a declared field?
- check_trigger_payload(): does an execute-webhook body fit the schema?
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from flowcheck.contracts.enums import IssueKind
from flowcheck.contracts.errors import ValidationIssue
from flowcheck.contracts.schema import SchemaField, json_type_name
from flowcheck.core.dag.reachability import TRIGGER_ALIAS

if TYPE_CHECKING:
    from flowcheck.core.dag.graph import FlowGraph


@dataclass(frozen=True, slots=True)
class FieldResolution:
    """Result of looking up a referenced field.

    Attributes:
        found: False only when a checked lookup failed
        checked: True when a declared schema was consulted
        schema_field: The declared field, when found by a checked lookup
    """

    found: bool
    checked: bool
    schema_field: SchemaField | None = None


_UNCHECKED = FieldResolution(found=True, checked=False)


def undefined_field_message(field_name: str) -> str:
    return f"Undefined schema field: {field_name}"


def resolve_field(
    node_alias: str,
    field_name: str | None,
    graph: FlowGraph,
    *,
    trigger_alias: str = TRIGGER_ALIAS,
) -> FieldResolution:
    """Look up ``field_name`` in the schema of the node ``node_alias`` names.

    The alias counts as the trigger when it is the trigger alias or the
    trigger's literal id. Lookups are exact and case-sensitive.

    Returns an unchecked resolution (found=True, checked=False) when there is
    nothing to check against: no field name, the alias is not the trigger,
    no single trigger exists, or the trigger declares no schema.
    """
    if field_name is None:
        return _UNCHECKED
    trigger = graph.find_trigger()
    if trigger is None or node_alias not in (trigger_alias, trigger.node_id):
        return _UNCHECKED
    if trigger.schema is None:
        return _UNCHECKED

    schema_field = trigger.schema_field(field_name)
    return FieldResolution(found=schema_field is not None, checked=True, schema_field=schema_field)


def check_trigger_payload(body: Any, graph: FlowGraph) -> list[ValidationIssue]:
    """Check an execute-webhook body against the trigger's declared schema.

    Args:
        body: Decoded JSON body
        graph: Flow graph holding the trigger

    Returns:
        SCHEMA issues for a non-object body, undeclared keys, missing
        required keys and values of the wrong JSON type. Empty when no
        schema is declared.
    """
    trigger = graph.find_trigger()
    if trigger is None or trigger.schema is None:
        return []

    if not isinstance(body, Mapping):
        return [
            ValidationIssue(
                kind=IssueKind.SCHEMA,
                message=f"Request body must be a JSON object, got {json_type_name(body)}",
                node_id=trigger.node_id,
            )
        ]

    issues: list[ValidationIssue] = []
    for key, value in body.items():
        schema_field = trigger.schema_field(str(key))
        if schema_field is None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.SCHEMA,
                    message=undefined_field_message(str(key)),
                    node_id=trigger.node_id,
                    field=str(key),
                    subject=str(key),
                )
            )
        elif not schema_field.accepts(value):
            issues.append(
                ValidationIssue(
                    kind=IssueKind.SCHEMA,
                    message=(
                        f"Field '{key}' must be of type {schema_field.field_type.value}, got {json_type_name(value)}"
                    ),
                    node_id=trigger.node_id,
                    field=str(key),
                    subject=str(key),
                )
            )

    for schema_field in trigger.schema:
        if schema_field.required and schema_field.key not in body:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.SCHEMA,
                    message=f"Missing required field: {schema_field.key}",
                    node_id=trigger.node_id,
                    field=schema_field.key,
                    subject=schema_field.key,
                )
            )
    return issues
