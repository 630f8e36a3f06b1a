"""
View services behind the workflow list screen and the editor.

Both catch ``TransportError`` at their boundary: the failure is logged,
reported through the notification channel, and the last good state is kept.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from api.deployments.lifecycle import DeploymentLifecycleManager
from api.ports import WorkflowDocumentStore, call_port
from api.workflows.listing import build_listing, sort_by_recency
from api.workflows.models import WorkflowListing
from shared.logger import get_logger
from shared.notifications import NotificationChannel, Severity
from workflow_core.deployment import Deployment
from workflow_core.errors import DomainError, NotFoundError, TransportError
from workflow_core.graph import WorkflowGraph
from workflow_core.intents import GraphIntent, apply_intent
from workflow_core.registry import NodeConfigRegistry
from workflow_core.schema import WorkflowDocument
from workflow_core.templates import create_from_template

logger = get_logger(__name__)

MSG_LOAD_WORKFLOWS_FAILED = "Error loading workflows"
MSG_LOAD_DEPLOYMENTS_FAILED = "Error loading deployment information"
MSG_DELETED = "Workflow deleted successfully"
MSG_DELETE_FAILED = "Error deleting workflow"
MSG_DEPLOY_REQUESTED = "Deployment requested successfully"
MSG_DEPLOY_FAILED = "Error requesting deployment"
MSG_CANCELLED = "Deployment cancelled successfully"
MSG_CANCEL_FAILED = "Error cancelling deployment"
MSG_SAVED = "Workflow saved successfully"
MSG_SAVE_FAILED = "Error saving workflow"
MSG_LOAD_WORKFLOW_FAILED = "Error loading workflow"


def parse_workflow_documents(documents: List[Mapping[str, Any]]) -> List[WorkflowDocument]:
    workflows: List[WorkflowDocument] = []
    for document in documents:
        try:
            workflows.append(WorkflowDocument.model_validate(document))
        except ValidationError as exc:
            logger.warning(f"Skipping malformed workflow {document.get('id')!r}: {exc}")
    return workflows


class WorkflowListService:
    """State of the workflow list: saved workflows plus their deployments."""

    def __init__(
        self,
        store: WorkflowDocumentStore,
        deployments: DeploymentLifecycleManager,
        notifications: NotificationChannel,
    ) -> None:
        self.store = store
        self.deployments = deployments
        self.notifications = notifications
        self._workflows: List[WorkflowDocument] = []
        self._deployments: Optional[List[Deployment]] = None
        self._error: Optional[str] = None

    @property
    def workflows(self) -> List[WorkflowDocument]:
        return list(self._workflows)

    @property
    def listing(self) -> WorkflowListing:
        return WorkflowListing(
            items=build_listing(self._workflows, self._deployments),
            deployments_loaded=self._deployments is not None,
            error=self._error,
        )

    async def refresh(self) -> WorkflowListing:
        try:
            documents = await call_port("load workflows", self.store.list_workflows_for_current_user())
        except TransportError as exc:
            self._error = str(exc)
            self.notifications.notify(MSG_LOAD_WORKFLOWS_FAILED, Severity.ERROR)
            return self.listing

        self._workflows = sort_by_recency(parse_workflow_documents(documents))
        self._error = None

        try:
            self._deployments = await self.deployments.list_deployments_for_user()
        except TransportError:
            self._deployments = None
            self.notifications.notify(MSG_LOAD_DEPLOYMENTS_FAILED, Severity.ERROR)
        return self.listing

    async def delete_workflow(self, workflow_id: Optional[str]) -> WorkflowListing:
        if not workflow_id:
            return self.listing
        try:
            await call_port("delete workflow", self.store.delete_workflow(workflow_id))
        except TransportError:
            self.notifications.notify(MSG_DELETE_FAILED, Severity.ERROR)
            return self.listing
        logger.info(f"Deleted workflow {workflow_id}")
        self.notifications.notify(MSG_DELETED, Severity.SUCCESS)
        return await self.refresh()

    async def deploy(self, workflow_id: Optional[str], workflow_name: str = "") -> WorkflowListing:
        if not workflow_id:
            return self.listing
        try:
            await self.deployments.request_deployment(workflow_id, workflow_name)
        except TransportError:
            self.notifications.notify(MSG_DEPLOY_FAILED, Severity.ERROR)
            return self.listing
        self.notifications.notify(MSG_DEPLOY_REQUESTED, Severity.SUCCESS)
        return await self.refresh()

    async def cancel(self, deployment_id: Optional[str]) -> WorkflowListing:
        if not deployment_id:
            return self.listing
        try:
            await self.deployments.cancel_deployment(deployment_id)
        except (TransportError, DomainError) as exc:
            logger.warning(f"Cancel of {deployment_id} failed: {exc}")
            self.notifications.notify(MSG_CANCEL_FAILED, Severity.ERROR)
            return self.listing
        self.notifications.notify(MSG_CANCELLED, Severity.SUCCESS)
        return await self.refresh()


class WorkflowEditorSession:
    """
    One open workflow in the editor.

    The session owns a ``WorkflowGraph``, applies canvas intents to it and
    saves it through the document store. Once the workflow is deleted the
    session is closed and every further mutation raises ``DomainError``.
    """

    def __init__(
        self,
        store: WorkflowDocumentStore,
        notifications: NotificationChannel,
        registry: Optional[NodeConfigRegistry] = None,
    ) -> None:
        self.store = store
        self.notifications = notifications
        self.registry = registry
        self._graph: Optional[WorkflowGraph] = None
        self._closed = False

    @property
    def graph(self) -> WorkflowGraph:
        if self._graph is None:
            raise DomainError("No workflow is open")
        return self._graph

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def workflow_id(self) -> Optional[str]:
        return self._graph.workflow_id if self._graph else None

    def snapshot(self) -> WorkflowDocument:
        return self.graph.serialize()

    def new(self, name: Optional[str] = None, template: str = "blank") -> WorkflowDocument:
        self._ensure_open()
        self._graph = create_from_template(template, name)
        return self._graph.serialize()

    async def load(self, workflow_id: str) -> Optional[WorkflowDocument]:
        self._ensure_open()
        try:
            document = await call_port("load workflow", self.store.get_workflow(workflow_id))
        except TransportError:
            self.notifications.notify(MSG_LOAD_WORKFLOW_FAILED, Severity.ERROR)
            return None
        if document is None:
            raise NotFoundError(f"Workflow '{workflow_id}' not found")
        document = {**document, "id": document.get("id") or workflow_id}
        self._graph = WorkflowGraph.deserialize(document, registry=self.registry)
        return self._graph.serialize()

    def apply(self, intent: GraphIntent) -> WorkflowDocument:
        self._ensure_open()
        return apply_intent(self.graph, intent)

    async def save(self) -> bool:
        """Create the workflow on first save, update it afterwards (last writer wins)."""
        self._ensure_open()
        graph = self.graph
        payload = graph.serialize().to_payload(include_meta=False)
        try:
            if graph.workflow_id is None:
                workflow_id = await call_port("create workflow", self.store.create_workflow(payload))
                graph.workflow_id = workflow_id
                stored = await call_port("load workflow", self.store.get_workflow(workflow_id))
            else:
                stored = await call_port(
                    "update workflow", self.store.update_workflow(graph.workflow_id, payload)
                )
        except TransportError:
            self.notifications.notify(MSG_SAVE_FAILED, Severity.ERROR)
            return False

        if stored is not None:
            graph.updated_at = stored.get("updatedAt")
        logger.info(f"Saved workflow {graph.workflow_id}")
        self.notifications.notify(MSG_SAVED, Severity.SUCCESS)
        return True

    async def delete(self) -> bool:
        self._ensure_open()
        workflow_id = self.graph.workflow_id
        if workflow_id is None:
            raise DomainError("Workflow has not been saved")
        try:
            await call_port("delete workflow", self.store.delete_workflow(workflow_id))
        except TransportError:
            self.notifications.notify(MSG_DELETE_FAILED, Severity.ERROR)
            return False
        self._closed = True
        logger.info(f"Deleted workflow {workflow_id}; editor session closed")
        self.notifications.notify(MSG_DELETED, Severity.SUCCESS)
        return True

    def _ensure_open(self) -> None:
        if self._closed:
            raise DomainError("Workflow was deleted; this editor session is closed")


__all__ = [
    "WorkflowListService",
    "WorkflowEditorSession",
    "parse_workflow_documents",
]
