# src/flowcheck/core/dag/__init__.py
"""Flow graph model, reachability, and structural validation.

Package re-exports for the public graph API.
"""

from flowcheck.core.dag.graph import FlowGraph
from flowcheck.core.dag.models import (
    ActionNode,
    AutomationNode,
    ConditionNode,
    ConnectionRejectedError,
    CorrelationRule,
    FlowEdge,
    FlowNode,
    GotoNode,
    GraphValidationError,
    HumanTaskNode,
    LoopNode,
    NodeRejectedError,
    SwitchCase,
    SwitchNode,
    TriggerNode,
    UnknownNode,
    VariableNode,
)
from flowcheck.core.dag.reachability import TRIGGER_ALIAS, ancestors, is_reachable, resolve_alias
from flowcheck.core.dag.validation import validate_graph

__all__ = [
    "TRIGGER_ALIAS",
    "ActionNode",
    "AutomationNode",
    "ConditionNode",
    "ConnectionRejectedError",
    "CorrelationRule",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "GotoNode",
    "GraphValidationError",
    "HumanTaskNode",
    "LoopNode",
    "NodeRejectedError",
    "SwitchCase",
    "SwitchNode",
    "TriggerNode",
    "UnknownNode",
    "VariableNode",
    "ancestors",
    "is_reachable",
    "resolve_alias",
    "validate_graph",
]
