from __future__ import annotations

from typing import Any, Awaitable, Dict, List, NoReturn, Optional, Sequence

from fastapi import APIRouter, HTTPException, Request, status

from api.deployments.lifecycle import DeploymentLifecycleManager
from api.ports import DeploymentBackend, WorkflowDocumentStore, call_port
from api.workflows import models as api_models
from api.workflows.services import WorkflowListService
from shared.logger import get_logger
from shared.notifications import LoggingNotificationChannel
from shared.timestamps import to_datetime
from workflow_core.deployment import Deployment
from workflow_core.errors import (
    ConfigValidationError,
    DomainError,
    GraphError,
    NotFoundError,
    SchemaError,
    TransportError,
    WorkflowStudioError,
)
from workflow_core.graph import WorkflowGraph
from workflow_core.registry import node_registry
from workflow_core.schema import WorkflowDocument
from workflow_core.templates import create_from_template, list_templates

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["workflows"])

PROBLEM_BASE = "https://workflow-studio.errors"
VALIDATION_PROBLEM = f"{PROBLEM_BASE}/validation"
NOT_FOUND_PROBLEM = f"{PROBLEM_BASE}/not-found"
DEPLOYMENT_PROBLEM = f"{PROBLEM_BASE}/deployment"
TRANSPORT_PROBLEM = f"{PROBLEM_BASE}/transport"


def _raise_problem(
    *,
    type_uri: str,
    title: str,
    detail: str,
    status: int,
    errors: Optional[Sequence[api_models.ProblemError]] = None,
) -> NoReturn:
    payload = {
        "type": type_uri,
        "title": title,
        "status": status,
        "detail": detail,
        "errors": [error.model_dump() for error in errors] if errors else [],
    }
    raise HTTPException(status_code=status, detail=payload)


def _raise_for_error(exc: WorkflowStudioError) -> NoReturn:
    if isinstance(exc, NotFoundError):
        _raise_problem(type_uri=NOT_FOUND_PROBLEM, title="Not found", detail=str(exc), status=404)
    if isinstance(exc, ConfigValidationError):
        _raise_problem(
            type_uri=VALIDATION_PROBLEM,
            title="Invalid node configuration",
            detail=str(exc),
            status=400,
            errors=[
                api_models.ProblemError(
                    code="INVALID_CONFIG",
                    message=problem.message,
                    node_id=exc.node_id,
                    location=problem.loc or None,
                )
                for problem in exc.problems
            ],
        )
    if isinstance(exc, (GraphError, SchemaError)):
        _raise_problem(type_uri=VALIDATION_PROBLEM, title="Invalid workflow", detail=str(exc), status=400)
    if isinstance(exc, DomainError):
        _raise_problem(type_uri=DEPLOYMENT_PROBLEM, title="Request rejected", detail=str(exc), status=400)
    if isinstance(exc, TransportError):
        _raise_problem(
            type_uri=TRANSPORT_PROBLEM,
            title="Upstream failure",
            detail=str(exc),
            status=status.HTTP_502_BAD_GATEWAY,
        )
    raise exc


async def _guard(operation: str, awaitable: Awaitable[Any]) -> Any:
    try:
        return await call_port(operation, awaitable)
    except WorkflowStudioError as exc:
        _raise_for_error(exc)


def _require_user(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None) or request.headers.get("X-User-Id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id


def _store(request: Request) -> WorkflowDocumentStore:
    return request.app.state.store_factory(_require_user(request))


def _backend(request: Request) -> DeploymentBackend:
    return request.app.state.backend_factory(_require_user(request))


def _iso(raw: Any) -> Optional[str]:
    converted = to_datetime(raw)
    return converted.isoformat() if converted else None


def _workflow_response(document: Dict[str, Any]) -> api_models.WorkflowResponse:
    workflow = WorkflowDocument.model_validate(document)
    return api_models.WorkflowResponse(
        id=workflow.id or "",
        name=workflow.name,
        nodes=workflow.nodes,
        edges=workflow.edges,
        updated_at=_iso(workflow.updated_at),
    )


def _deployment_response(deployment: Deployment) -> api_models.DeploymentResponse:
    return api_models.DeploymentResponse(
        id=deployment.id,
        workflow_id=deployment.workflow_id,
        workflow_name=deployment.workflow_name,
        status=deployment.status,
        requested_at=_iso(deployment.requested_at),
        updated_at=_iso(deployment.updated_at),
        error=deployment.error,
    )


def _graph_from_payload(payload: api_models.WorkflowBase) -> WorkflowGraph:
    try:
        return WorkflowGraph.deserialize(payload.model_dump(include={"name", "nodes", "edges"}))
    except SchemaError as exc:
        if isinstance(exc.__cause__, ConfigValidationError):
            _raise_for_error(exc.__cause__)
        _raise_for_error(exc)


@router.get("/builder/node-types", response_model=api_models.NodeTypeResponse)
async def get_node_types():
    return api_models.NodeTypeResponse(
        node_types=[
            api_models.NodeTypeDescriptor(
                type=descriptor.kind,
                title=descriptor.title,
                category=descriptor.category,
                description=descriptor.description,
                defaults=descriptor.defaults,
                json_schema=descriptor.json_schema,
            )
            for descriptor in node_registry.describe()
        ]
    )


@router.get("/builder/templates", response_model=List[api_models.TemplateDescriptor])
async def get_templates():
    return [
        api_models.TemplateDescriptor(key=template.key, name=template.name, description=template.description)
        for template in list_templates()
    ]


@router.get("/workflows", response_model=api_models.WorkflowListing)
async def list_workflows(request: Request):
    service = WorkflowListService(
        _store(request),
        DeploymentLifecycleManager(_backend(request)),
        LoggingNotificationChannel(),
    )
    listing = await service.refresh()
    if listing.error:
        _raise_problem(
            type_uri=TRANSPORT_PROBLEM,
            title="Upstream failure",
            detail=listing.error,
            status=status.HTTP_502_BAD_GATEWAY,
        )
    return listing


@router.get("/workflows/{workflow_id}", response_model=api_models.WorkflowResponse)
async def get_workflow(request: Request, workflow_id: str):
    document = await _guard("load workflow", _store(request).get_workflow(workflow_id))
    if document is None:
        _raise_problem(
            type_uri=NOT_FOUND_PROBLEM,
            title="Not found",
            detail=f"Workflow '{workflow_id}' not found",
            status=404,
        )
    return _workflow_response(document)


@router.post("/workflows", response_model=api_models.WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(request: Request, payload: api_models.WorkflowCreateRequest):
    store = _store(request)
    if payload.template and not payload.nodes:
        try:
            graph = create_from_template(payload.template, payload.name)
        except WorkflowStudioError as exc:
            _raise_for_error(exc)
    else:
        graph = _graph_from_payload(payload)

    document = graph.serialize().to_payload(include_meta=False)
    workflow_id = await _guard("create workflow", store.create_workflow(document))
    stored = await _guard("load workflow", store.get_workflow(workflow_id))
    return _workflow_response(stored or {**document, "id": workflow_id})


@router.put("/workflows/{workflow_id}", response_model=api_models.WorkflowResponse)
async def update_workflow(request: Request, workflow_id: str, payload: api_models.WorkflowUpdateRequest):
    graph = _graph_from_payload(payload)
    document = graph.serialize().to_payload(include_meta=False)
    stored = await _guard("update workflow", _store(request).update_workflow(workflow_id, document))
    return _workflow_response({**stored, "id": stored.get("id") or workflow_id})


@router.delete("/workflows/{workflow_id}", status_code=status.HTTP_200_OK)
async def delete_workflow(request: Request, workflow_id: str):
    await _guard("delete workflow", _store(request).delete_workflow(workflow_id))
    return {"ok": True}


@router.get("/deployments", response_model=api_models.DeploymentListResponse)
async def list_deployments(request: Request):
    manager = DeploymentLifecycleManager(_backend(request))
    deployments = await _guard("list deployments", manager.list_deployments_for_user())
    return api_models.DeploymentListResponse(
        items=[_deployment_response(deployment) for deployment in deployments]
    )


@router.post(
    "/workflows/{workflow_id}/deployments",
    response_model=api_models.DeploymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_deployment(request: Request, workflow_id: str):
    document = await _guard("load workflow", _store(request).get_workflow(workflow_id))
    if document is None:
        _raise_problem(
            type_uri=NOT_FOUND_PROBLEM,
            title="Not found",
            detail=f"Workflow '{workflow_id}' not found",
            status=404,
        )
    manager = DeploymentLifecycleManager(_backend(request))
    deployment_id = await _guard(
        "request deployment", manager.request_deployment(workflow_id, document.get("name", ""))
    )
    deployment = await _guard("get deployment", manager.get_deployment(deployment_id))
    return _deployment_response(deployment)


@router.post("/deployments/{deployment_id}/cancel", response_model=api_models.DeploymentResponse)
async def cancel_deployment(request: Request, deployment_id: str):
    manager = DeploymentLifecycleManager(_backend(request))
    deployment = await _guard("cancel deployment", manager.cancel_deployment(deployment_id))
    return _deployment_response(deployment)
