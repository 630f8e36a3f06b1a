"""
Tortoise ORM implementations of the document store and deployment backend.

Both are scoped to one owner: every query filters on ``owner_id`` so a user
only ever sees their own workflows and deployments.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from shared.database.workflow_models import (
    DeploymentRecord,
    WorkflowRecord,
    make_workflow_public_id,
    parse_deployment_public_id,
    parse_workflow_public_id,
)
from shared.logger import get_logger
from workflow_core.deployment import CANCELLED_ERROR, TERMINAL_STATUSES, DeploymentStatus, advance
from workflow_core.errors import NotFoundError

logger = get_logger(__name__)

JsonDict = Dict[str, Any]


def workflow_to_document(record: WorkflowRecord) -> JsonDict:
    graph = record.graph or {}
    return {
        "id": record.public_id,
        "name": record.name,
        "nodes": list(graph.get("nodes", [])),
        "edges": list(graph.get("edges", [])),
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
    }


def deployment_to_document(record: DeploymentRecord) -> JsonDict:
    return {
        "id": record.public_id,
        "workflow_id": make_workflow_public_id(record.workflow_id),
        "workflow_name": record.workflow_name,
        "status": DeploymentStatus(record.status).value,
        "requested_at": record.requested_at,
        "updated_at": record.updated_at,
        "error": record.error,
    }


def _graph_payload(document: JsonDict) -> JsonDict:
    return {
        "nodes": list(document.get("nodes", [])),
        "edges": list(document.get("edges", [])),
    }


class TortoiseWorkflowStore:
    def __init__(self, owner_id: str) -> None:
        self.owner_id = owner_id

    async def _get_record(self, workflow_id: str) -> Optional[WorkflowRecord]:
        try:
            pk = parse_workflow_public_id(workflow_id)
        except ValueError:
            return None
        return await WorkflowRecord.get_or_none(id=pk, owner_id=self.owner_id)

    async def create_workflow(self, document: JsonDict) -> str:
        record = await WorkflowRecord.create(
            owner_id=self.owner_id,
            name=document["name"],
            graph=_graph_payload(document),
        )
        logger.info(f"Created workflow {record.public_id} for {self.owner_id}")
        return record.public_id

    async def get_workflow(self, workflow_id: str) -> Optional[JsonDict]:
        record = await self._get_record(workflow_id)
        return workflow_to_document(record) if record else None

    async def list_workflows_for_current_user(self) -> List[JsonDict]:
        records = await WorkflowRecord.filter(owner_id=self.owner_id).all()
        return [workflow_to_document(record) for record in records]

    async def update_workflow(self, workflow_id: str, document: JsonDict) -> JsonDict:
        record = await self._get_record(workflow_id)
        if record is None:
            raise NotFoundError(f"Workflow '{workflow_id}' not found")
        record.name = document.get("name", record.name)
        record.graph = _graph_payload(document)
        await record.save()
        return workflow_to_document(record)

    async def delete_workflow(self, workflow_id: str) -> None:
        record = await self._get_record(workflow_id)
        if record is None:
            raise NotFoundError(f"Workflow '{workflow_id}' not found")
        await record.delete()
        logger.info(f"Deleted workflow {workflow_id}")


class TortoiseDeploymentBackend:
    def __init__(self, owner_id: str) -> None:
        self.owner_id = owner_id

    async def _get_record(self, deployment_id: str) -> Optional[DeploymentRecord]:
        try:
            pk = parse_deployment_public_id(deployment_id)
        except ValueError:
            return None
        return await DeploymentRecord.get_or_none(id=pk, owner_id=self.owner_id)

    async def _require_record(self, deployment_id: str) -> DeploymentRecord:
        record = await self._get_record(deployment_id)
        if record is None:
            raise NotFoundError(f"Deployment '{deployment_id}' not found")
        return record

    async def create_deployment_request(self, workflow_id: str, workflow_name: str) -> JsonDict:
        try:
            workflow_pk = parse_workflow_public_id(workflow_id)
        except ValueError as exc:
            raise NotFoundError(f"Workflow '{workflow_id}' not found") from exc
        workflow = await WorkflowRecord.get_or_none(id=workflow_pk, owner_id=self.owner_id)
        if workflow is None:
            raise NotFoundError(f"Workflow '{workflow_id}' not found")

        record = await DeploymentRecord.create(
            owner_id=self.owner_id,
            workflow=workflow,
            workflow_name=workflow_name or workflow.name,
            status=DeploymentStatus.REQUESTED,
        )
        return deployment_to_document(record)

    async def list_deployments_for_current_user(self) -> List[JsonDict]:
        records = await DeploymentRecord.filter(owner_id=self.owner_id).all()
        return [deployment_to_document(record) for record in records]

    async def get_deployment(self, deployment_id: str) -> Optional[JsonDict]:
        record = await self._get_record(deployment_id)
        return deployment_to_document(record) if record else None

    async def cancel_deployment_request(self, deployment_id: str) -> JsonDict:
        record = await self._require_record(deployment_id)
        if DeploymentStatus(record.status) in TERMINAL_STATUSES:
            return deployment_to_document(record)
        record.status = advance(record.status, DeploymentStatus.FAILED)
        record.error = CANCELLED_ERROR
        await record.save()
        logger.info(f"Cancelled deployment {deployment_id}")
        return deployment_to_document(record)

    async def update_deployment_status(
        self,
        deployment_id: str,
        status: str,
        error: Optional[str] = None,
    ) -> JsonDict:
        record = await self._require_record(deployment_id)
        record.status = advance(record.status, status)
        record.error = error
        await record.save()
        return deployment_to_document(record)


__all__ = [
    "TortoiseWorkflowStore",
    "TortoiseDeploymentBackend",
    "workflow_to_document",
    "deployment_to_document",
]
