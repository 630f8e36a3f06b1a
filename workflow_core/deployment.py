"""
Deployment status state machine.

    requested -> running -> success
                        \\-> failed
    requested -> failed

``requested`` and ``running`` are active (cancellable); ``success`` and
``failed`` are terminal.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from workflow_core.errors import DomainError


class DeploymentStatus(str, Enum):
    REQUESTED = "requested"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


ACTIVE_STATUSES: FrozenSet[DeploymentStatus] = frozenset(
    {DeploymentStatus.REQUESTED, DeploymentStatus.RUNNING}
)
TERMINAL_STATUSES: FrozenSet[DeploymentStatus] = frozenset(
    {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED}
)

_TRANSITIONS: Dict[DeploymentStatus, FrozenSet[DeploymentStatus]] = {
    DeploymentStatus.REQUESTED: frozenset({DeploymentStatus.RUNNING, DeploymentStatus.FAILED}),
    DeploymentStatus.RUNNING: frozenset({DeploymentStatus.SUCCESS, DeploymentStatus.FAILED}),
    DeploymentStatus.SUCCESS: frozenset(),
    DeploymentStatus.FAILED: frozenset(),
}

CANCELLED_ERROR = "cancelled"


def is_active(status: DeploymentStatus | str) -> bool:
    return DeploymentStatus(status) in ACTIVE_STATUSES


def can_transition(current: DeploymentStatus | str, target: DeploymentStatus | str) -> bool:
    return DeploymentStatus(target) in _TRANSITIONS[DeploymentStatus(current)]


def advance(current: DeploymentStatus | str, target: DeploymentStatus | str) -> DeploymentStatus:
    """Return ``target`` if moving there from ``current`` is legal, else raise ``DomainError``."""
    current_status = DeploymentStatus(current)
    target_status = DeploymentStatus(target)
    if not can_transition(current_status, target_status):
        raise DomainError(
            f"Illegal deployment transition {current_status.value} -> {target_status.value}"
        )
    return target_status


class Deployment(BaseModel):
    """One request to run a saved workflow."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    workflow_id: str = Field(..., min_length=1, alias="workflowId")
    workflow_name: Optional[str] = Field(default=None, alias="workflowName")
    status: DeploymentStatus
    requested_at: Any = Field(default=None, alias="requestedAt")
    updated_at: Any = Field(default=None, alias="updatedAt")
    error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Deployment":
        return cls.model_validate(dict(document))


__all__ = [
    "DeploymentStatus",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "CANCELLED_ERROR",
    "Deployment",
    "advance",
    "can_transition",
    "is_active",
]
