from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from workflow_core.deployment import DeploymentStatus
from workflow_core.schema import EdgeDocument, NodeDocument


class ProblemError(BaseModel):
    code: str
    message: str
    node_id: Optional[str] = None
    location: Optional[str] = None


class ProblemDetails(BaseModel):
    type: str
    title: str
    status: int
    detail: str
    errors: List[ProblemError] = Field(default_factory=list)


class NodeTypeDescriptor(BaseModel):
    type: str
    title: str
    category: str
    description: str = ""
    defaults: Dict[str, Any]
    json_schema: Dict[str, Any] = Field(default_factory=dict)


class NodeTypeResponse(BaseModel):
    node_types: List[NodeTypeDescriptor]


class TemplateDescriptor(BaseModel):
    key: str
    name: str
    description: str


class WorkflowBase(BaseModel):
    name: str = Field(..., min_length=1)
    nodes: List[NodeDocument] = Field(default_factory=list)
    edges: List[EdgeDocument] = Field(default_factory=list)


class WorkflowCreateRequest(WorkflowBase):
    template: Optional[str] = None


class WorkflowUpdateRequest(WorkflowBase):
    pass


class WorkflowResponse(WorkflowBase):
    id: str
    updated_at: Optional[str] = None


class DeploymentResponse(BaseModel):
    id: str
    workflow_id: str
    workflow_name: Optional[str] = None
    status: DeploymentStatus
    requested_at: Optional[str] = None
    updated_at: Optional[str] = None
    error: Optional[str] = None


class DeploymentListResponse(BaseModel):
    items: List[DeploymentResponse] = Field(default_factory=list)


class ActiveDeploymentSummary(BaseModel):
    id: str
    status: DeploymentStatus
    requested_at_display: str


class WorkflowListItem(BaseModel):
    """One row of the workflow list."""

    id: str
    name: str
    node_count: int
    edge_count: int
    updated_at_display: str
    active_deployment: Optional[ActiveDeploymentSummary] = None
    status_badge: Optional[str] = None


class WorkflowListing(BaseModel):
    items: List[WorkflowListItem] = Field(default_factory=list)
    deployments_loaded: bool = False
    error: Optional[str] = None
