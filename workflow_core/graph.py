"""
In-memory workflow graph.

Every mutation validates first and only then changes state, so a failed call
leaves the graph exactly as it was.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from shared.logger import get_logger
from workflow_core.errors import ConfigValidationError, GraphError, SchemaError
from workflow_core.registry import KindKey, NodeConfigRegistry, kind_key, node_registry
from workflow_core.schema import (
    EdgeDocument,
    NodeDocument,
    Position,
    WorkflowDocument,
    WorkflowEdge,
    WorkflowNode,
)

logger = get_logger(__name__)

DEFAULT_WORKFLOW_NAME = "Untitled Workflow"

PositionLike = Union[Position, Mapping[str, float], Tuple[float, float], None]


def _coerce_position(position: PositionLike) -> Position:
    if position is None:
        return Position()
    if isinstance(position, Position):
        return position
    if isinstance(position, tuple):
        if len(position) != 2:
            raise GraphError(f"Invalid position: expected (x, y), got {position!r}")
        x, y = position
        return Position(x=x, y=y)
    try:
        return Position.model_validate(dict(position))
    except ValidationError as exc:
        raise GraphError(f"Invalid position: {exc}") from exc


class WorkflowGraph:
    """Nodes in insertion order plus directed edges between them."""

    def __init__(
        self,
        name: str = DEFAULT_WORKFLOW_NAME,
        *,
        workflow_id: Optional[str] = None,
        updated_at: Any = None,
        registry: Optional[NodeConfigRegistry] = None,
    ) -> None:
        self._registry = registry or node_registry
        self._name = self._clean_name(name)
        self.workflow_id = workflow_id
        self.updated_at = updated_at
        self._nodes: Dict[str, WorkflowNode] = {}
        self._edges: List[WorkflowEdge] = []
        self._counter = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._name

    @property
    def nodes(self) -> Tuple[WorkflowNode, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> Tuple[WorkflowEdge, ...]:
        return tuple(self._edges)

    @property
    def registry(self) -> NodeConfigRegistry:
        return self._registry

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        return self._nodes.get(node_id)

    def has_edge(self, source: str, target: str) -> bool:
        return any(edge.source == source and edge.target == target for edge in self._edges)

    def edges_from(self, node_id: str) -> List[WorkflowEdge]:
        return [edge for edge in self._edges if edge.source == node_id]

    def edges_to(self, node_id: str) -> List[WorkflowEdge]:
        return [edge for edge in self._edges if edge.target == node_id]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_node(
        self,
        kind: KindKey,
        position: PositionLike = None,
        *,
        label: Optional[str] = None,
    ) -> str:
        """Add a node of ``kind`` with default config. Returns the new node id."""
        definition = self._registry.maybe_get(kind)
        if definition is None:
            raise GraphError(f"Unknown node kind '{kind_key(kind)}'")
        node_position = _coerce_position(position)
        config = self._registry.defaults_for(definition.kind)

        node_id = self._next_node_id(definition.slug)
        self._nodes[node_id] = WorkflowNode(
            id=node_id,
            kind=definition.kind,
            config=config,
            position=node_position,
            label=label,
        )
        logger.debug(f"Added node {node_id}")
        return node_id

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge touching it. Absent ids are ignored."""
        if node_id not in self._nodes:
            return
        del self._nodes[node_id]
        self._edges = [
            edge for edge in self._edges if edge.source != node_id and edge.target != node_id
        ]
        logger.debug(f"Removed node {node_id}")

    def update_node_config(self, node_id: str, partial: Mapping[str, Any]) -> WorkflowNode:
        node = self._require_node(node_id)
        config = self._registry.merge(node.kind, node.config, partial, node_id=node_id)
        updated = WorkflowNode(
            id=node.id,
            kind=node.kind,
            config=config,
            position=node.position,
            label=node.label,
        )
        self._nodes[node_id] = updated
        return updated

    def add_edge(self, source: str, target: str) -> WorkflowEdge:
        if source not in self._nodes:
            raise GraphError(f"Edge source '{source}' does not exist")
        if target not in self._nodes:
            raise GraphError(f"Edge target '{target}' does not exist")
        if source == target:
            raise GraphError(f"Self-loop on '{source}' is not allowed")
        if self.has_edge(source, target):
            raise GraphError(f"Edge {source} -> {target} already exists")
        edge = WorkflowEdge(source=source, target=target)
        self._edges.append(edge)
        return edge

    def remove_edge(self, source: str, target: str) -> None:
        self._edges = [
            edge for edge in self._edges if not (edge.source == source and edge.target == target)
        ]

    def move_node(self, node_id: str, position: PositionLike) -> WorkflowNode:
        node = self._require_node(node_id)
        moved = WorkflowNode(
            id=node.id,
            kind=node.kind,
            config=node.config,
            position=_coerce_position(position),
            label=node.label,
        )
        self._nodes[node_id] = moved
        return moved

    def rename(self, name: str) -> None:
        self._name = self._clean_name(name)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def serialize(self) -> WorkflowDocument:
        """Immutable snapshot in the persisted document shape."""
        return WorkflowDocument(
            id=self.workflow_id,
            name=self._name,
            nodes=[
                NodeDocument(
                    id=node.id,
                    kind=node.kind,
                    label=node.label,
                    position=node.position,
                    config=node.config.to_payload(),
                )
                for node in self._nodes.values()
            ],
            edges=[
                EdgeDocument(id=edge.id, source=edge.source, target=edge.target)
                for edge in self._edges
            ],
            updated_at=self.updated_at,
        )

    @classmethod
    def deserialize(
        cls,
        document: Union[WorkflowDocument, Mapping[str, Any]],
        *,
        registry: Optional[NodeConfigRegistry] = None,
    ) -> "WorkflowGraph":
        """
        Rebuild a graph from a persisted document.

        Raises:
            SchemaError: unknown kind, invalid config, duplicate node id,
                missing name, or an edge that is dangling, a self-loop or
                a duplicate
        """
        if not isinstance(document, WorkflowDocument):
            try:
                document = WorkflowDocument.model_validate(document)
            except ValidationError as exc:
                raise SchemaError(f"Malformed workflow document: {exc}") from exc

        registry = registry or node_registry
        graph = cls(document.name, workflow_id=document.id, updated_at=document.updated_at, registry=registry)

        for raw_node in document.nodes:
            if raw_node.id in graph._nodes:
                raise SchemaError(f"Duplicate node id '{raw_node.id}'")
            definition = registry.maybe_get(raw_node.kind)
            if definition is None:
                raise SchemaError(f"Node '{raw_node.id}' has unknown kind '{raw_node.kind}'")
            try:
                config = registry.validate(definition.kind, raw_node.config, node_id=raw_node.id)
            except ConfigValidationError as exc:
                raise SchemaError(str(exc)) from exc
            graph._nodes[raw_node.id] = WorkflowNode(
                id=raw_node.id,
                kind=definition.kind,
                config=config,
                position=raw_node.position,
                label=raw_node.label,
            )

        for raw_edge in document.edges:
            try:
                graph.add_edge(raw_edge.source, raw_edge.target)
            except GraphError as exc:
                raise SchemaError(f"Invalid edge {raw_edge.source} -> {raw_edge.target}: {exc}") from exc

        graph._counter = len(graph._nodes)
        return graph

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_node(self, node_id: str) -> WorkflowNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise GraphError(f"Node '{node_id}' does not exist")
        return node

    def _next_node_id(self, slug: str) -> str:
        while True:
            self._counter += 1
            candidate = f"{slug}-{self._counter}"
            if candidate not in self._nodes:
                return candidate

    @staticmethod
    def _clean_name(name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise GraphError("Workflow name must not be empty")
        return name.strip()


__all__ = ["WorkflowGraph", "DEFAULT_WORKFLOW_NAME"]
