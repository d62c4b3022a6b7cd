# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Identifiers valid in the reference grammar
- Random flow graphs (trees rooted at the trigger, and arbitrary wirings
  that may break invariants)

Usage:
    from tests.property.conftest import identifiers, flow_trees

    @given(graph=flow_trees())
    def test_something(graph: FlowGraph) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STANDARD (100), QUICK (20)
# =============================================================================

from __future__ import annotations

from hypothesis import strategies as st

from flowcheck.contracts import NodeID
from flowcheck.core.dag import FlowGraph
from tests.fixtures.factories import TRIGGER_ID, edge, make_action, make_trigger

IDENTIFIER_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-"

identifiers = st.text(alphabet=IDENTIFIER_ALPHABET, min_size=1, max_size=16)


@st.composite
def flow_trees(draw: st.DrawFn, max_nodes: int = 12) -> FlowGraph:
    """A graph built only through add_node()/add_edge().

    Each action is either attached to an earlier node whose single output
    is still free, or left unconnected (an orphan). Every edit passes the
    edit-time checks, so the graph is acyclic and single-input.
    """
    count = draw(st.integers(min_value=0, max_value=max_nodes))
    graph = FlowGraph()
    graph.add_node(make_trigger())
    free_parents = [TRIGGER_ID]
    for index in range(count):
        node_id = f"n{index}"
        graph.add_node(make_action(node_id))
        if free_parents and draw(st.booleans()):
            parent = draw(st.sampled_from(free_parents))
            free_parents.remove(parent)
            graph.add_edge(edge(parent, node_id))
        free_parents.append(node_id)
    return graph


@st.composite
def arbitrary_wirings(draw: st.DrawFn, max_nodes: int = 8) -> FlowGraph:
    """Any set of edges between actions below one trigger, invariants ignored."""
    count = draw(st.integers(min_value=1, max_value=max_nodes))
    node_ids = [TRIGGER_ID, *(f"n{i}" for i in range(count))]
    graph = FlowGraph()
    graph._insert_node(make_trigger())
    for node_id in node_ids[1:]:
        graph._insert_node(make_action(node_id))
    pairs = draw(
        st.lists(
            st.tuples(st.sampled_from(node_ids), st.sampled_from(node_ids)).filter(lambda p: p[0] != p[1]),
            max_size=count * 2,
        )
    )
    for source, target in pairs:
        graph._insert_edge(edge(source, target))
    return graph


def node_ids_of(graph: FlowGraph) -> list[NodeID]:
    return [node.node_id for node in graph.nodes()]
