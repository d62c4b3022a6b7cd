# src/flowcheck/core/dag/graph.py
"""FlowGraph class: queries, edit-time checks and snapshots.

Construction from a flow document lives in builder.py; this module contains
the graph class. The from_document() classmethod is a thin facade that
delegates to builder.build_flow_graph().

Edits follow a single-writer discipline: one owner mutates a graph through
add_node()/add_edge()/replace_node(), and validation callers work on a
snapshot taken with copy(). Query methods never mutate and never raise for
unknown node ids.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

import networkx as nx
from networkx import MultiDiGraph

from flowcheck.contracts.enums import IssueKind, NodeKind
from flowcheck.contracts.errors import ValidationIssue
from flowcheck.contracts.types import NodeID, PortName
from flowcheck.core.dag.models import (
    ConnectionRejectedError,
    FlowEdge,
    FlowNode,
    NodeRejectedError,
    TriggerNode,
    _suggest_similar,
)
from flowcheck.core.logging import get_logger

if TYPE_CHECKING:
    from flowcheck.contracts.document import FlowDocument
    from flowcheck.core.dag.builder import BuildReport

logger = get_logger(__name__)

# Edge key used for the default (unnamed) output port in the MultiDiGraph.
_DEFAULT_PORT_KEY = "__default__"


class FlowGraph:
    """In-memory flow graph.

    Wraps a NetworkX MultiDiGraph. Nodes are stored under their id with the
    FlowNode variant in the ``info`` attribute; edges are keyed by output
    port so that a branching node can have several edges to the same target.
    """

    def __init__(self) -> None:
        self._graph: MultiDiGraph[str] = nx.MultiDiGraph()

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Number of edges in the graph."""
        return self._graph.number_of_edges()

    def has_node(self, node_id: str) -> bool:
        """Check if node exists."""
        return self._graph.has_node(node_id)

    def get_node(self, node_id: str) -> FlowNode | None:
        """Get the node variant for an id, or None if absent."""
        if not self._graph.has_node(node_id):
            return None
        return cast(FlowNode, self._graph.nodes[node_id]["info"])

    def nodes(self) -> list[FlowNode]:
        """All nodes, in insertion order."""
        return [cast(FlowNode, attrs["info"]) for _node_id, attrs in self._graph.nodes(data=True)]

    def edges(self) -> list[FlowEdge]:
        """All edges, in insertion order."""
        return [cast(FlowEdge, data["edge"]) for _u, _v, _key, data in self._graph.edges(keys=True, data=True)]

    def get_nx_graph(self) -> MultiDiGraph[str]:
        """Return a frozen copy of the underlying NetworkX graph.

        Use this for topology analysis that needs NetworkX algorithms.
        Mutation attempts on the returned graph raise nx.NetworkXError.
        """
        return nx.freeze(self._graph.copy())  # type: ignore[no-any-return]

    # -------------------------------------------------------------------------
    # Trigger lookup
    # -------------------------------------------------------------------------

    def triggers(self) -> list[TriggerNode]:
        """All trigger nodes. A well-formed graph has exactly one."""
        return [node for node in self.nodes() if isinstance(node, TriggerNode)]

    def find_trigger(self) -> TriggerNode | None:
        """Get the trigger node.

        Returns:
            The trigger, or None if not exactly one trigger exists. With two
            triggers present neither is canonical, so none is returned.
        """
        triggers = self.triggers()
        return triggers[0] if len(triggers) == 1 else None

    # -------------------------------------------------------------------------
    # Edge queries
    # -------------------------------------------------------------------------

    def outgoing_edges(self, node_id: str) -> list[FlowEdge]:
        """Edges leaving ``node_id``; empty for unknown ids."""
        if not self._graph.has_node(node_id):
            return []
        return [cast(FlowEdge, data["edge"]) for _u, _v, _key, data in self._graph.out_edges(node_id, keys=True, data=True)]

    def incoming_edges(self, node_id: str) -> list[FlowEdge]:
        """Edges pointing TO ``node_id``; empty for unknown ids."""
        if not self._graph.has_node(node_id):
            return []
        return [cast(FlowEdge, data["edge"]) for _u, _v, _key, data in self._graph.in_edges(node_id, keys=True, data=True)]

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def check_node(self, node: FlowNode) -> list[ValidationIssue]:
        """Check whether ``node`` may be added, without mutating the graph.

        Rules:
        1. Node ids are unique
        2. The first node of an empty graph must be a trigger
        3. A graph holds at most one trigger
        """
        issues: list[ValidationIssue] = []
        if self._graph.has_node(node.node_id):
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Node id '{node.node_id}' already exists",
                    node_id=node.node_id,
                    subject=node.node_id,
                )
            )
            return issues

        is_trigger = node.kind == NodeKind.TRIGGER
        if self.node_count == 0 and not is_trigger:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"The first node must be a trigger, got {node.kind.value}",
                    node_id=node.node_id,
                )
            )
        if is_trigger and self.triggers():
            existing = ", ".join(trigger.node_id for trigger in self.triggers())
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Only one trigger is allowed per flow (existing trigger: {existing})",
                    node_id=node.node_id,
                )
            )
        return issues

    def add_node(self, node: FlowNode) -> None:
        """Add a node to the graph.

        Raises:
            NodeRejectedError: If check_node() reports any issue. The graph
                is left unchanged.
        """
        issues = self.check_node(node)
        if issues:
            logger.warning("node_rejected", node_id=node.node_id, kind=node.kind.value, reasons=[i.message for i in issues])
            raise NodeRejectedError("; ".join(issue.message for issue in issues), tuple(issues))
        self._insert_node(node)

    def replace_node(self, node: FlowNode) -> None:
        """Swap the variant stored for an existing id (an edit of its config).

        Raises:
            KeyError: If the node doesn't exist
        """
        if not self._graph.has_node(node.node_id):
            raise KeyError(f"Node not found: {node.node_id}")
        self._graph.nodes[node.node_id]["info"] = node

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge touching it. Unknown ids are ignored."""
        if self._graph.has_node(node_id):
            self._graph.remove_node(node_id)

    def check_connection(self, edge: FlowEdge) -> list[ValidationIssue]:
        """Check whether ``edge`` may be added, without mutating the graph.

        Rules:
        1. Both endpoints exist
        2. No self-loops
        3. The trigger accepts no input; any other target has no inbound
           edge yet (single input)
        4. The port is valid for the source kind (named port on branching
           nodes, no port on the others)
        5. At most one edge per output port
        """
        issues: list[ValidationIssue] = []
        source = self.get_node(edge.source)
        target = self.get_node(edge.target)

        for endpoint, node in (("source", source), ("target", target)):
            if node is None:
                node_id = edge.source if endpoint == "source" else edge.target
                suggestions = _suggest_similar(node_id, sorted(str(n) for n in self._graph.nodes()))
                hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.STRUCTURAL,
                        message=f"Edge {edge.describe()} references unknown {endpoint} node '{node_id}'.{hint}",
                        node_id=node_id,
                        subject=node_id,
                    )
                )
        if source is None or target is None:
            return issues

        if edge.source == edge.target:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Node '{edge.source}' cannot be connected to itself",
                    node_id=edge.source,
                )
            )

        inbound = self.incoming_edges(edge.target)
        if target.kind == NodeKind.TRIGGER:
            issues.append(trigger_input_issue(target, edge.source))
        elif inbound:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=(
                        f"Node '{target.label or target.node_id}' already has an input from '{inbound[0].source}'. "
                        "A node accepts a single inbound edge."
                    ),
                    node_id=edge.target,
                    subject=edge.source,
                )
            )

        issues.extend(port_issues(source, edge.source_port, self.outgoing_edges(edge.source)))
        return issues

    def add_edge(self, edge: FlowEdge) -> None:
        """Add an edge between nodes.

        Raises:
            ConnectionRejectedError: If check_connection() reports any issue.
                The graph is left unchanged.
        """
        issues = self.check_connection(edge)
        if issues:
            logger.warning("connection_rejected", edge=edge.describe(), reasons=[i.message for i in issues])
            raise ConnectionRejectedError("; ".join(issue.message for issue in issues), tuple(issues))
        self._insert_edge(edge)

    def remove_edge(self, edge: FlowEdge) -> None:
        """Remove one edge. Missing edges are ignored."""
        key = edge.source_port if edge.source_port is not None else _DEFAULT_PORT_KEY
        if self._graph.has_edge(edge.source, edge.target, key=key):
            self._graph.remove_edge(edge.source, edge.target, key=key)

    def copy(self) -> FlowGraph:
        """Independent snapshot. Node and edge values are frozen, so a shallow copy suffices."""
        snapshot = FlowGraph()
        snapshot._graph = self._graph.copy()
        return snapshot

    # Unchecked inserts, used by the builder so that a stored document with
    # problems still loads and validate_graph() can report every problem.

    def _insert_node(self, node: FlowNode) -> None:
        self._graph.add_node(node.node_id, info=node)

    def _insert_edge(self, edge: FlowEdge) -> None:
        key = edge.source_port if edge.source_port is not None else _DEFAULT_PORT_KEY
        # Repeated (source, target, port) triples keep distinct keys so that
        # duplicates stay visible to validation.
        while self._graph.has_edge(edge.source, edge.target, key=key):
            key = f"{key}#dup"
        self._graph.add_edge(edge.source, edge.target, key=key, edge=edge)

    @classmethod
    def from_document(cls, document: FlowDocument) -> FlowGraph:
        """Build a FlowGraph from a flow definition document.

        Problems in the document do not raise; use validate_graph() (and
        build_flow_graph() for the dropped-edge report) to find them.
        """
        graph, _report = cls.from_document_with_report(document)
        return graph

    @classmethod
    def from_document_with_report(cls, document: FlowDocument) -> tuple[FlowGraph, BuildReport]:
        """Like from_document(), also returning what the builder had to drop."""
        from flowcheck.core.dag.builder import build_flow_graph

        return build_flow_graph(document)


def trigger_input_issue(trigger: FlowNode, source: NodeID) -> ValidationIssue:
    """The trigger is the root of the flow and never has an inbound edge."""
    return ValidationIssue(
        kind=IssueKind.STRUCTURAL,
        message=f"Trigger '{trigger.label or trigger.node_id}' cannot have an input (edge from '{source}')",
        node_id=trigger.node_id,
        subject=source,
    )


def port_issues(source: FlowNode, port: PortName | None, existing: list[FlowEdge]) -> list[ValidationIssue]:
    """Port rules for one more edge leaving ``source`` on ``port``.

    ``existing`` is the list of edges already leaving ``source``. Shared by
    check_connection() and the structural validator so both apply the same
    wiring rules.
    """
    issues: list[ValidationIssue] = []
    ports = source.output_ports()
    name = source.label or source.node_id

    if ports is None:
        if port is not None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"Node '{name}' has a single output and no port named '{port}'",
                    node_id=source.node_id,
                    subject=port,
                )
            )
            return issues
    else:
        if port is None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"{source.kind.value.capitalize()} node '{name}' requires a port; expected one of: {', '.join(sorted(ports))}",
                    node_id=source.node_id,
                )
            )
            return issues
        if port not in ports:
            suggestions = _suggest_similar(port, sorted(ports))
            hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
            issues.append(
                ValidationIssue(
                    kind=IssueKind.STRUCTURAL,
                    message=f"{source.kind.value.capitalize()} node '{name}' has no port '{port}'.{hint} Available ports: {', '.join(sorted(ports))}",
                    node_id=source.node_id,
                    subject=port,
                )
            )
            return issues

    if any(edge.source_port == port for edge in existing):
        port_desc = f"port '{port}'" if port is not None else "its output"
        issues.append(
            ValidationIssue(
                kind=IssueKind.STRUCTURAL,
                message=f"Node '{name}' already has an outbound edge on {port_desc}",
                node_id=source.node_id,
                subject=port,
            )
        )
    return issues
