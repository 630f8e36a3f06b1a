"""
Presentation logic for the workflow list: recency ordering and joining each
workflow with its active deployment.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, TypeVar, Union

from api.workflows.models import ActiveDeploymentSummary, WorkflowListItem
from shared.timestamps import to_comparable_instant, to_display_string
from workflow_core.deployment import Deployment
from workflow_core.schema import WorkflowDocument

WorkflowLike = Union[WorkflowDocument, Mapping[str, Any]]
T = TypeVar("T", WorkflowDocument, Mapping[str, Any])


def _field(workflow: WorkflowLike, attribute: str, key: str) -> Any:
    if isinstance(workflow, Mapping):
        return workflow.get(key)
    return getattr(workflow, attribute, None)


def sort_by_recency(workflows: Iterable[T]) -> List[T]:
    """
    Most recently updated first. Ties keep their input order; workflows
    without a usable ``updatedAt`` sink to the end.
    """
    return sorted(
        workflows,
        key=lambda workflow: to_comparable_instant(_field(workflow, "updated_at", "updatedAt")),
        reverse=True,
    )


def active_deployment_for(
    workflow_id: Optional[str],
    deployments: Sequence[Deployment],
) -> Optional[Deployment]:
    """First deployment of ``workflow_id`` that is requested or running."""
    if not workflow_id:
        return None
    for deployment in deployments:
        if deployment.workflow_id == workflow_id and deployment.is_active:
            return deployment
    return None


def build_listing(
    workflows: Iterable[WorkflowLike],
    deployments: Optional[Sequence[Deployment]] = None,
) -> List[WorkflowListItem]:
    """
    Rows for the workflow list. Pass ``deployments=None`` when they could not
    be loaded; rows then carry no badge.
    """
    items: List[WorkflowListItem] = []
    for workflow in sort_by_recency(workflows):
        workflow_id = _field(workflow, "id", "id") or ""
        nodes = _field(workflow, "nodes", "nodes") or []
        edges = _field(workflow, "edges", "edges") or []

        active = None
        if deployments is not None:
            deployment = active_deployment_for(workflow_id, deployments)
            if deployment is not None:
                active = ActiveDeploymentSummary(
                    id=deployment.id,
                    status=deployment.status,
                    requested_at_display=to_display_string(deployment.requested_at),
                )

        items.append(
            WorkflowListItem(
                id=workflow_id,
                name=_field(workflow, "name", "name") or "",
                node_count=len(nodes),
                edge_count=len(edges),
                updated_at_display=to_display_string(_field(workflow, "updated_at", "updatedAt")),
                active_deployment=active,
                status_badge=active.status.value if active else None,
            )
        )
    return items


__all__ = ["sort_by_recency", "active_deployment_for", "build_listing"]
