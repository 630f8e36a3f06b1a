"""
Shared exception hierarchy for the workflow studio core.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


class WorkflowStudioError(Exception):
    """Base class for all workflow studio errors."""


@dataclass(frozen=True)
class FieldProblem:
    """A single field-level validation failure."""

    loc: str
    message: str

    def __str__(self) -> str:
        return f"{self.loc}: {self.message}" if self.loc else self.message


class ConfigValidationError(WorkflowStudioError):
    """Raised when a node configuration violates the schema of its kind."""

    def __init__(self, kind: str, problems: Sequence[FieldProblem], node_id: Optional[str] = None) -> None:
        self.kind = kind
        self.node_id = node_id
        self.problems: List[FieldProblem] = list(problems)
        where = f" (node '{node_id}')" if node_id else ""
        detail = "; ".join(str(problem) for problem in self.problems)
        super().__init__(f"Invalid {kind} config{where}: {detail}")


class GraphError(WorkflowStudioError):
    """Raised for illegal graph operations. The graph is left unchanged."""


class SchemaError(WorkflowStudioError):
    """Raised when a persisted workflow document cannot be loaded."""


class DomainError(WorkflowStudioError):
    """Raised when a deployment or session precondition is not met."""


class NotFoundError(DomainError):
    """Raised when a workflow or deployment does not exist for the current user."""


class TransportError(WorkflowStudioError):
    """Raised when the document store or deployment backend fails."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")
