import pytest

from workflow_core.deployment import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Deployment,
    DeploymentStatus,
    advance,
    can_transition,
    is_active,
)
from workflow_core.errors import DomainError


@pytest.mark.parametrize(
    "current,target",
    [
        ("requested", "running"),
        ("requested", "failed"),
        ("running", "success"),
        ("running", "failed"),
    ],
)
def test_legal_transitions(current, target):
    assert advance(current, target) == DeploymentStatus(target)


@pytest.mark.parametrize(
    "current,target",
    [
        ("requested", "success"),
        ("requested", "requested"),
        ("running", "requested"),
        ("success", "failed"),
        ("failed", "running"),
        ("success", "success"),
    ],
)
def test_illegal_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(DomainError):
        advance(current, target)


def test_active_and_terminal_partition_statuses():
    assert ACTIVE_STATUSES | TERMINAL_STATUSES == set(DeploymentStatus)
    assert not ACTIVE_STATUSES & TERMINAL_STATUSES
    assert is_active("running")
    assert not is_active(DeploymentStatus.SUCCESS)


def test_deployment_document_accepts_both_key_styles():
    snake = Deployment.from_document(
        {"id": "dep-1", "workflow_id": "wf-1", "status": "running", "requested_at": 1714564800}
    )
    camel = Deployment.from_document(
        {"id": "dep-1", "workflowId": "wf-1", "status": "running", "requestedAt": 1714564800}
    )

    assert snake == camel
    assert snake.is_active
    assert not snake.is_terminal


def test_deployment_rejects_unknown_status():
    with pytest.raises(ValueError):
        Deployment.from_document({"id": "dep-1", "workflow_id": "wf-1", "status": "paused"})
