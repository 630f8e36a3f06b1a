"""
Deployment lifecycle: request, cancel, list and advance deployments through
the deployment backend.

Every status write is checked against the state machine in
``workflow_core.deployment`` before it reaches the backend. Backend failures
surface as ``TransportError``.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import ValidationError

from api.ports import DeploymentBackend, JsonDict, call_port
from shared.logger import get_logger
from workflow_core.deployment import Deployment, DeploymentStatus, advance
from workflow_core.errors import DomainError, NotFoundError, TransportError

logger = get_logger(__name__)


def _require_id(value: Optional[str], what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DomainError(f"{what} is required")
    return value.strip()


def _parse(operation: str, document: JsonDict) -> Deployment:
    try:
        return Deployment.from_document(document)
    except ValidationError as exc:
        raise TransportError(operation, f"malformed deployment document: {exc}") from exc


class DeploymentLifecycleManager:
    """Domain operations on deployments, backed by a ``DeploymentBackend``."""

    def __init__(self, backend: DeploymentBackend) -> None:
        self.backend = backend

    async def request_deployment(self, workflow_id: str, workflow_name: str) -> str:
        """
        Ask the backend to deploy a saved workflow.

        An existing active deployment for the same workflow is not checked;
        listings show the first active one found.

        Returns:
            The new deployment id
        """
        workflow_id = _require_id(workflow_id, "Workflow id")
        document = await call_port(
            "request deployment",
            self.backend.create_deployment_request(workflow_id, workflow_name or ""),
        )
        deployment = _parse("request deployment", document)
        logger.info(f"Deployment {deployment.id} requested for workflow {workflow_id}")
        return deployment.id

    async def get_deployment(self, deployment_id: str) -> Deployment:
        deployment_id = _require_id(deployment_id, "Deployment id")
        document = await call_port("get deployment", self.backend.get_deployment(deployment_id))
        if document is None:
            raise NotFoundError(f"Deployment '{deployment_id}' not found")
        return _parse("get deployment", document)

    async def cancel_deployment(self, deployment_id: str) -> Deployment:
        """
        Cancel an active deployment. Cancelling a finished deployment is a
        no-op that returns it unchanged.
        """
        deployment = await self.get_deployment(deployment_id)
        if deployment.is_terminal:
            logger.warning(
                f"Deployment {deployment.id} already {deployment.status.value}; nothing to cancel"
            )
            return deployment

        document = await call_port(
            "cancel deployment", self.backend.cancel_deployment_request(deployment.id)
        )
        cancelled = _parse("cancel deployment", document)
        logger.info(f"Deployment {cancelled.id} cancelled")
        return cancelled

    async def list_deployments_for_user(self) -> List[Deployment]:
        documents = await call_port(
            "list deployments", self.backend.list_deployments_for_current_user()
        )
        deployments: List[Deployment] = []
        for document in documents:
            try:
                deployments.append(Deployment.from_document(document))
            except ValidationError as exc:
                logger.warning(f"Skipping malformed deployment {document.get('id')!r}: {exc}")
        return deployments

    async def mark_running(self, deployment_id: str) -> Deployment:
        return await self._transition(deployment_id, DeploymentStatus.RUNNING)

    async def mark_succeeded(self, deployment_id: str) -> Deployment:
        return await self._transition(deployment_id, DeploymentStatus.SUCCESS)

    async def mark_failed(self, deployment_id: str, error: Optional[str] = None) -> Deployment:
        return await self._transition(deployment_id, DeploymentStatus.FAILED, error)

    async def _transition(
        self,
        deployment_id: str,
        target: DeploymentStatus,
        error: Optional[str] = None,
    ) -> Deployment:
        deployment = await self.get_deployment(deployment_id)
        advance(deployment.status, target)
        document = await call_port(
            f"mark deployment {target.value}",
            self.backend.update_deployment_status(deployment.id, target.value, error),
        )
        updated = _parse(f"mark deployment {target.value}", document)
        logger.info(f"Deployment {updated.id}: {deployment.status.value} -> {updated.status.value}")
        return updated


__all__ = ["DeploymentLifecycleManager"]
