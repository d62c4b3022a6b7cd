"""Ancestor reachability: which nodes' outputs a node may reference.

A node may read the output of every node upstream of it (its ancestors)
and its own just-computed output. Ancestors are found by walking edges
backwards from the node. The walk keeps a visited set, so it terminates
even on graphs that transiently contain cycles while being edited.

Results are never cached: a graph edit invalidates them, and recomputing
is linear in the size of the upstream subgraph.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from flowcheck.contracts.types import NodeID

if TYPE_CHECKING:
    from flowcheck.core.dag.graph import FlowGraph

TRIGGER_ALIAS = "trigger"


def ancestors(node_id: str, graph: FlowGraph) -> frozenset[NodeID]:
    """Every node with a path to ``node_id``, excluding ``node_id`` itself.

    Breadth-first over incoming edges only. An unknown ``node_id`` has no
    ancestors.

    Examples:
        For A -> B -> C -> D: ancestors("D") == {"A", "B", "C"},
        ancestors("A") == set().
    """
    found: set[NodeID] = set()
    visited: set[str] = set()
    queue: deque[str] = deque([node_id])

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        for edge in graph.incoming_edges(current):
            found.add(edge.source)
            queue.append(edge.source)

    # A cycle through node_id would otherwise list it as its own ancestor.
    found.discard(NodeID(node_id))
    return frozenset(found)


def resolve_alias(alias: str, graph: FlowGraph, *, trigger_alias: str = TRIGGER_ALIAS) -> NodeID | None:
    """Map a reference alias to a node id.

    The trigger alias resolves to the single trigger node's id. When the
    graph has no trigger, or several, the alias does not resolve (None);
    no trigger is picked as canonical. Any other alias is taken to be a
    literal node id and returned unchanged, whether or not it exists.
    """
    if alias == trigger_alias:
        trigger = graph.find_trigger()
        return trigger.node_id if trigger is not None else None
    return NodeID(alias)


def is_reachable(
    alias: str,
    from_node: str,
    graph: FlowGraph,
    *,
    ancestor_set: frozenset[NodeID] | None = None,
    trigger_alias: str = TRIGGER_ALIAS,
) -> bool:
    """Whether ``from_node`` may reference the output of ``alias``.

    True when the resolved node is an ancestor of ``from_node`` or is
    ``from_node`` itself.

    Args:
        alias: Node id or the trigger alias, as written in the reference
        from_node: Node whose configuration contains the reference
        graph: Graph snapshot
        ancestor_set: Precomputed ancestors(from_node), to avoid repeating
            the walk when checking many references from one node
        trigger_alias: Reserved alias for the trigger
    """
    target = resolve_alias(alias, graph, trigger_alias=trigger_alias)
    if target is None:
        return False
    if target == from_node:
        return True
    upstream = ancestor_set if ancestor_set is not None else ancestors(from_node, graph)
    return target in upstream
