from copy import deepcopy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set

import pytest
import pytest_asyncio

from api.deployments.lifecycle import DeploymentLifecycleManager
from shared.database import close_db, init_db
from shared.notifications import LoggingNotificationChannel

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
TEST_USER_ID = "user-123"


class _FailureInjection:
    def __init__(self) -> None:
        self.calls: List[str] = []
        self.fail_on: Set[str] = set()

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise ConnectionError(f"{operation} unavailable")


class InMemoryWorkflowStore(_FailureInjection):
    """Document store keeping workflows in a dict; every write bumps a fake clock."""

    def __init__(self) -> None:
        super().__init__()
        self.documents: Dict[str, Dict[str, Any]] = {}
        self._next_id = 0
        self._ticks = 0

    def _now(self) -> datetime:
        self._ticks += 1
        return BASE_TIME + timedelta(minutes=self._ticks)

    def seed(self, document: Dict[str, Any]) -> None:
        self.documents[document["id"]] = deepcopy(document)

    async def create_workflow(self, document: Dict[str, Any]) -> str:
        self._record("create_workflow")
        self._next_id += 1
        workflow_id = f"wf-{self._next_id}"
        self.documents[workflow_id] = {**deepcopy(document), "id": workflow_id, "updatedAt": self._now()}
        return workflow_id

    async def get_workflow(self, workflow_id: str) -> Optional[Dict[str, Any]]:
        self._record("get_workflow")
        document = self.documents.get(workflow_id)
        return deepcopy(document) if document else None

    async def list_workflows_for_current_user(self) -> List[Dict[str, Any]]:
        self._record("list_workflows_for_current_user")
        return [deepcopy(document) for document in self.documents.values()]

    async def update_workflow(self, workflow_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        self._record("update_workflow")
        if workflow_id not in self.documents:
            raise KeyError(workflow_id)
        self.documents[workflow_id] = {**deepcopy(document), "id": workflow_id, "updatedAt": self._now()}
        return deepcopy(self.documents[workflow_id])

    async def delete_workflow(self, workflow_id: str) -> None:
        self._record("delete_workflow")
        self.documents.pop(workflow_id, None)


class InMemoryDeploymentBackend(_FailureInjection):
    """Deployment backend storing plain dicts; timestamps use the seconds/nanoseconds form."""

    def __init__(self) -> None:
        super().__init__()
        self.deployments: List[Dict[str, Any]] = []
        self._next_id = 0

    def _stamp(self) -> Dict[str, int]:
        return {"seconds": int(BASE_TIME.timestamp()) + self._next_id, "nanoseconds": 0}

    def seed(self, **document: Any) -> Dict[str, Any]:
        self.deployments.append(document)
        return document

    def _find(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        return next((item for item in self.deployments if item["id"] == deployment_id), None)

    async def create_deployment_request(self, workflow_id: str, workflow_name: str) -> Dict[str, Any]:
        self._record("create_deployment_request")
        self._next_id += 1
        document = {
            "id": f"dep-{self._next_id}",
            "workflow_id": workflow_id,
            "workflow_name": workflow_name,
            "status": "requested",
            "requested_at": self._stamp(),
            "updated_at": self._stamp(),
            "error": None,
        }
        self.deployments.append(document)
        return deepcopy(document)

    async def list_deployments_for_current_user(self) -> List[Dict[str, Any]]:
        self._record("list_deployments_for_current_user")
        return deepcopy(self.deployments)

    async def get_deployment(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        self._record("get_deployment")
        document = self._find(deployment_id)
        return deepcopy(document) if document else None

    async def cancel_deployment_request(self, deployment_id: str) -> Dict[str, Any]:
        self._record("cancel_deployment_request")
        document = self._find(deployment_id)
        if document is None:
            raise KeyError(deployment_id)
        if document["status"] in ("requested", "running"):
            document["status"] = "failed"
            document["error"] = "cancelled"
        return deepcopy(document)

    async def update_deployment_status(
        self,
        deployment_id: str,
        status: str,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._record("update_deployment_status")
        document = self._find(deployment_id)
        if document is None:
            raise KeyError(deployment_id)
        document["status"] = status
        document["error"] = error
        return deepcopy(document)


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def backend() -> InMemoryDeploymentBackend:
    return InMemoryDeploymentBackend()


@pytest.fixture
def notifications() -> LoggingNotificationChannel:
    return LoggingNotificationChannel(default_duration_ms=3000)


@pytest.fixture
def lifecycle(backend) -> DeploymentLifecycleManager:
    return DeploymentLifecycleManager(backend)


@pytest_asyncio.fixture
async def tortoise_db():
    await init_db("sqlite://:memory:", generate_schemas=True)
    try:
        yield
    finally:
        await close_db()
