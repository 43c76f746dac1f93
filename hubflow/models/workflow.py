"""
Workflow Graph Models

A parsed workflow: nodes keyed by id, plain or boolean-labeled edges and
the start node. Built fresh by the parser for every execution.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

from .nodes import NodeProperties, NodeType


class WorkflowNode(BaseModel):
    """One typed step of the graph"""
    model_config = ConfigDict(frozen=True)

    id: str
    type: NodeType
    properties: SerializeAsAny[NodeProperties]


class Edge(BaseModel):
    """Directed connection; label is set only on if/while outgoing edges"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    label: Optional[Literal["true", "false"]] = None


class Workflow(BaseModel):
    """Validated workflow graph"""
    name: Optional[str] = None
    nodes: Dict[str, WorkflowNode]
    edges: List[Edge] = Field(default_factory=list)
    start: str

    def get_node(self, node_id: str) -> WorkflowNode:
        return self.nodes[node_id]

    def outgoing(self, node_id: str) -> List[Edge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def successor(self, node_id: str, label: Optional[str] = None) -> Optional[str]:
        """
        Next node id after node_id, or None when the node has no such edge.

        Args:
            node_id: Node that just ran
            label: "true"/"false" for branching nodes, None otherwise
        """
        for edge in self.edges:
            if edge.source == node_id and edge.label == label:
                return edge.target
        return None
