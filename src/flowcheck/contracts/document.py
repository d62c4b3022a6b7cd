"""Wire models for the flow definition document.

The studio persists a flow as ``{nodes, edges, viewport}``. These models
validate the envelope only: node ``data`` stays an opaque mapping here and
is interpreted per node kind by the graph builder.

Unknown keys (React Flow positions, selection state, animation flags) are
ignored rather than rejected, so documents saved by newer studio versions
still load.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Viewport(BaseModel):
    """Canvas viewport. Carried through untouched."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class NodeDocument(BaseModel):
    """One node as stored in the flow document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1, description="Stable node identifier")
    type: str = Field(description="Studio node type, e.g. 'api-trigger', 'condition'")
    data: dict[str, Any] = Field(default_factory=dict, description="Kind-specific configuration")


class EdgeDocument(BaseModel):
    """One edge as stored in the flow document."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    source_handle: str | None = Field(default=None, alias="sourceHandle", description="Output port on the source node")


class FlowDocument(BaseModel):
    """Complete flow definition: ``{nodes, edges, viewport}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    nodes: list[NodeDocument] = Field(default_factory=list)
    edges: list[EdgeDocument] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)

    def with_node(self, candidate: NodeDocument) -> FlowDocument:
        """Return a copy with ``candidate`` replacing the node of the same id.

        A candidate whose id is not present is appended.
        """
        replaced = False
        nodes: list[NodeDocument] = []
        for node in self.nodes:
            if node.id == candidate.id:
                nodes.append(candidate)
                replaced = True
            else:
                nodes.append(node)
        if not replaced:
            nodes.append(candidate)
        return self.model_copy(update={"nodes": nodes})
