"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from typing import NewType

NodeID = NewType("NodeID", str)
"""Unique node identifier in a flow graph (e.g., 'node_k3j9x0a1b')"""

PortName = NewType("PortName", str)
"""Named output slot on a branching node (e.g., 'true', 'item', 'default')"""

FlowInstanceID = NewType("FlowInstanceID", str)
"""Identifier of one running instance of a flow in the external runtime"""
