"""
Canvas intents: plain values describing one graph mutation each.

The canvas never mutates the graph directly. It emits an intent, and
``apply_intent`` runs it through the graph operations and hands back the new
snapshot.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from workflow_core.graph import WorkflowGraph
from workflow_core.schema import Position, WorkflowDocument


class _Intent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class AddNode(_Intent):
    type: Literal["add_node"] = "add_node"
    kind: str
    position: Position = Field(default_factory=Position)
    label: Optional[str] = None


class RemoveNode(_Intent):
    type: Literal["remove_node"] = "remove_node"
    node_id: str = Field(alias="nodeId")


class UpdateNodeConfig(_Intent):
    type: Literal["update_node_config"] = "update_node_config"
    node_id: str = Field(alias="nodeId")
    changes: Dict[str, Any]


class AddEdge(_Intent):
    type: Literal["add_edge"] = "add_edge"
    source: str
    target: str


class RemoveEdge(_Intent):
    type: Literal["remove_edge"] = "remove_edge"
    source: str
    target: str


class MoveNode(_Intent):
    type: Literal["move_node"] = "move_node"
    node_id: str = Field(alias="nodeId")
    position: Position


class RenameWorkflow(_Intent):
    type: Literal["rename_workflow"] = "rename_workflow"
    name: str


GraphIntent = Annotated[
    Union[AddNode, RemoveNode, UpdateNodeConfig, AddEdge, RemoveEdge, MoveNode, RenameWorkflow],
    Field(discriminator="type"),
]

_intent_adapter: TypeAdapter[GraphIntent] = TypeAdapter(GraphIntent)


def parse_intent(payload: Dict[str, Any]) -> GraphIntent:
    """Build an intent from its JSON form, e.g. ``{"type": "add_edge", ...}``."""
    return _intent_adapter.validate_python(payload)


def apply_intent(graph: WorkflowGraph, intent: GraphIntent) -> WorkflowDocument:
    """
    Apply one intent and return the resulting snapshot.

    Errors from the graph (``GraphError``, ``ConfigValidationError``) propagate
    unchanged and the graph is left as it was.
    """
    if isinstance(intent, AddNode):
        graph.add_node(intent.kind, intent.position, label=intent.label)
    elif isinstance(intent, RemoveNode):
        graph.remove_node(intent.node_id)
    elif isinstance(intent, UpdateNodeConfig):
        graph.update_node_config(intent.node_id, intent.changes)
    elif isinstance(intent, AddEdge):
        graph.add_edge(intent.source, intent.target)
    elif isinstance(intent, RemoveEdge):
        graph.remove_edge(intent.source, intent.target)
    elif isinstance(intent, MoveNode):
        graph.move_node(intent.node_id, intent.position)
    elif isinstance(intent, RenameWorkflow):
        graph.rename(intent.name)
    else:
        raise TypeError(f"Unsupported intent: {type(intent).__name__}")
    return graph.serialize()


__all__ = [
    "AddNode",
    "RemoveNode",
    "UpdateNodeConfig",
    "AddEdge",
    "RemoveEdge",
    "MoveNode",
    "RenameWorkflow",
    "GraphIntent",
    "parse_intent",
    "apply_intent",
]
