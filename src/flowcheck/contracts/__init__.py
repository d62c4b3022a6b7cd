"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
flowcheck.core.config.

Import patterns:
    from flowcheck.contracts import NodeKind, ValidationIssue, FlowDocument
    from flowcheck.core.config import FlowcheckSettings
"""

from flowcheck.contracts.document import EdgeDocument, FlowDocument, NodeDocument, Viewport
from flowcheck.contracts.enums import (
    SWITCH_DEFAULT_PORT,
    ConditionPort,
    FieldType,
    IssueKind,
    LoopPort,
    NodeKind,
    TriggerType,
)
from flowcheck.contracts.errors import ValidationIssue, ValidationResult
from flowcheck.contracts.schema import SchemaField
from flowcheck.contracts.types import FlowInstanceID, NodeID, PortName
from flowcheck.contracts.webhooks import DEFAULT_EVENT_NAME, Signal, SignalPayload

__all__ = [
    "DEFAULT_EVENT_NAME",
    "SWITCH_DEFAULT_PORT",
    "ConditionPort",
    "EdgeDocument",
    "FieldType",
    "FlowDocument",
    "FlowInstanceID",
    "IssueKind",
    "LoopPort",
    "NodeDocument",
    "NodeID",
    "NodeKind",
    "PortName",
    "SchemaField",
    "Signal",
    "SignalPayload",
    "TriggerType",
    "ValidationIssue",
    "ValidationResult",
    "Viewport",
]
