"""
Collaborator interfaces for persistence and deployment.

Documents crossing these ports are plain JSON-like dicts. A workflow document
is the serialized ``WorkflowDocument`` plus the store-assigned ``id`` and
``updatedAt``. A deployment document carries ``id``, ``workflow_id``,
``workflow_name``, ``status``, ``requested_at``, ``updated_at`` and ``error``.
Timestamps may come back in any encoding ``shared.timestamps`` understands.
"""

from __future__ import annotations

from typing import Any, Awaitable, Dict, List, Optional, Protocol, runtime_checkable

from shared.logger import get_logger
from workflow_core.errors import TransportError, WorkflowStudioError

logger = get_logger(__name__)

JsonDict = Dict[str, Any]


@runtime_checkable
class WorkflowDocumentStore(Protocol):
    async def create_workflow(self, document: JsonDict) -> str:
        """Persist a new workflow and return its id."""

    async def get_workflow(self, workflow_id: str) -> Optional[JsonDict]:
        ...

    async def list_workflows_for_current_user(self) -> List[JsonDict]:
        ...

    async def update_workflow(self, workflow_id: str, document: JsonDict) -> JsonDict:
        """Replace the stored workflow (last writer wins) and return it with a fresh ``updatedAt``."""

    async def delete_workflow(self, workflow_id: str) -> None:
        ...


@runtime_checkable
class DeploymentBackend(Protocol):
    async def create_deployment_request(self, workflow_id: str, workflow_name: str) -> JsonDict:
        """Create a deployment in ``requested`` status."""

    async def list_deployments_for_current_user(self) -> List[JsonDict]:
        ...

    async def get_deployment(self, deployment_id: str) -> Optional[JsonDict]:
        ...

    async def cancel_deployment_request(self, deployment_id: str) -> JsonDict:
        ...

    async def update_deployment_status(
        self,
        deployment_id: str,
        status: str,
        error: Optional[str] = None,
    ) -> JsonDict:
        ...


async def call_port(operation: str, awaitable: Awaitable[Any]) -> Any:
    """Await a collaborator call, turning unexpected failures into ``TransportError``."""
    try:
        return await awaitable
    except WorkflowStudioError:
        raise
    except Exception as exc:
        logger.error(f"{operation} failed: {exc}")
        raise TransportError(operation, str(exc)) from exc


__all__ = ["JsonDict", "WorkflowDocumentStore", "DeploymentBackend", "call_port"]
