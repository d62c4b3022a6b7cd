# src/flowcheck/core/dag/models.py
"""Node variants, edges, and exceptions for flow graphs.

Leaf module within the dag package: no imports from graph.py or builder.py
(prevents import cycles).

Every node kind is its own frozen dataclass. Code that needs per-kind
behaviour dispatches with ``match`` on the class, so adding a kind is a
type-checked change rather than a new string key in a lookup table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from flowcheck.contracts.enums import (
    SWITCH_DEFAULT_PORT,
    ConditionPort,
    LoopPort,
    NodeKind,
    TriggerType,
)
from flowcheck.contracts.schema import SchemaField
from flowcheck.contracts.types import NodeID, PortName
from flowcheck.contracts.webhooks import DEFAULT_EVENT_NAME

if TYPE_CHECKING:
    from collections.abc import Mapping

    from flowcheck.contracts.errors import ValidationIssue


class GraphValidationError(ValueError):
    """Raised when an edit would break a graph invariant.

    Carries the issues that caused the rejection so callers can surface
    them the same way as issues returned by validation.
    """

    def __init__(self, message: str, issues: tuple[ValidationIssue, ...] = ()) -> None:
        super().__init__(message)
        self.issues = issues


class NodeRejectedError(GraphValidationError):
    """Raised by FlowGraph.add_node before the graph is mutated."""


class ConnectionRejectedError(GraphValidationError):
    """Raised by FlowGraph.add_edge before the graph is mutated."""


# =============================================================================
# Node config parts
# =============================================================================


@dataclass(frozen=True, slots=True)
class SwitchCase:
    """A declared switch case. ``case_id`` doubles as the output port name."""

    case_id: str
    label: str


@dataclass(frozen=True, slots=True)
class CorrelationRule:
    """Match condition that resumes a waiting automation node.

    Attributes:
        key: Correlation key the signal must carry (e.g. "order_id")
        value_expression: Expected value; may embed {{ steps.* }} references
        event_name: Event the signal must name (case-sensitive)
    """

    key: str
    value_expression: str
    event_name: str = DEFAULT_EVENT_NAME


# =============================================================================
# Node variants
# =============================================================================


@dataclass(frozen=True, slots=True)
class FlowNode:
    """Fields shared by every node kind.

    Identity is by node_id, which is stable across edits. Variants are
    frozen; an edit replaces the variant held by the graph.
    """

    node_id: NodeID
    label: str = ""
    description: str = ""

    @property
    def kind(self) -> NodeKind:
        """Kind of this node; the base class is treated as an unknown kind."""
        return NodeKind.UNKNOWN

    @property
    def is_branching(self) -> bool:
        """True for kinds whose outgoing edges are distinguished by named ports."""
        return False

    def output_ports(self) -> frozenset[PortName] | None:
        """Declared output ports, or None when the node has a single default output."""
        return None


@dataclass(frozen=True, slots=True)
class TriggerNode(FlowNode):
    """Start of the flow. Declares the execute payload schema.

    ``schema`` is None when the trigger declares no schema at all, which
    disables field-level checking; an empty tuple declares an empty body.
    """

    trigger_type: TriggerType = TriggerType.MANUAL
    schema: tuple[SchemaField, ...] | None = None
    instance_name_template: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.TRIGGER

    def schema_field(self, key: str) -> SchemaField | None:
        """Declared field with exactly this key, if any."""
        if self.schema is None:
            return None
        for schema_field in self.schema:
            if schema_field.key == key:
                return schema_field
        return None


@dataclass(frozen=True, slots=True)
class ActionNode(FlowNode):
    """Side-effecting step (HTTP request, email, ...)."""

    subtype: str = "http"
    url: str = ""
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: str = ""
    to: str = ""
    subject: str = ""
    message: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.ACTION


@dataclass(frozen=True, slots=True)
class ConditionNode(FlowNode):
    """If/else on ``left <operator> right``."""

    left: str = ""
    operator: str = ""
    right: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.CONDITION

    @property
    def is_branching(self) -> bool:
        return True

    def output_ports(self) -> frozenset[PortName] | None:
        return frozenset(PortName(port.value) for port in ConditionPort)


@dataclass(frozen=True, slots=True)
class SwitchNode(FlowNode):
    """Multi-way branch on ``variable``; one port per case plus ``default``."""

    variable: str = ""
    cases: tuple[SwitchCase, ...] = ()

    @property
    def kind(self) -> NodeKind:
        return NodeKind.SWITCH

    @property
    def is_branching(self) -> bool:
        return True

    def output_ports(self) -> frozenset[PortName] | None:
        ports = {PortName(case.case_id) for case in self.cases}
        ports.add(PortName(SWITCH_DEFAULT_PORT))
        return frozenset(ports)


@dataclass(frozen=True, slots=True)
class LoopNode(FlowNode):
    """For-each over the array ``items`` resolves to."""

    items: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.LOOP

    @property
    def is_branching(self) -> bool:
        return True

    def output_ports(self) -> frozenset[PortName] | None:
        return frozenset(PortName(port.value) for port in LoopPort)


@dataclass(frozen=True, slots=True)
class HumanTaskNode(FlowNode):
    """Pauses the flow until a person completes a task."""

    assignee: str = ""
    title: str = ""
    instructions: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.HUMAN_TASK


@dataclass(frozen=True, slots=True)
class AutomationNode(FlowNode):
    """Pauses the flow until an external signal matches one of its rules."""

    correlations: tuple[CorrelationRule, ...] = ()

    @property
    def kind(self) -> NodeKind:
        return NodeKind.AUTOMATION


@dataclass(frozen=True, slots=True)
class VariableNode(FlowNode):
    """Sets ``variable_name`` to ``value``."""

    variable_name: str = ""
    value: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.VARIABLE


@dataclass(frozen=True, slots=True)
class GotoNode(FlowNode):
    """Jumps to ``target_id``. The jump is the runtime's concern, not the graph's."""

    target_id: str = ""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.GOTO


@dataclass(frozen=True, slots=True)
class UnknownNode(FlowNode):
    """A node kind this engine does not know. No semantic checks apply."""

    type_name: str = ""
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def kind(self) -> NodeKind:
        return NodeKind.UNKNOWN


# =============================================================================
# Edges
# =============================================================================


@dataclass(frozen=True, slots=True)
class FlowEdge:
    """Directed edge from ``source`` to ``target``.

    ``source_port`` is None for the default single output; branching nodes
    name the port (``true``/``false``, ``item``/``done``, a case id or
    ``default``).
    """

    source: NodeID
    target: NodeID
    source_port: PortName | None = None

    def describe(self) -> str:
        port = f"[{self.source_port}]" if self.source_port is not None else ""
        return f"{self.source}{port} -> {self.target}"


def _suggest_similar(name: str, candidates: list[str]) -> list[str]:
    """Suggest similar names for unknown-port and unknown-node errors."""
    import difflib

    return difflib.get_close_matches(name, candidates, n=3, cutoff=0.6)
