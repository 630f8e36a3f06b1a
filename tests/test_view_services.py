from datetime import datetime, timezone

import pytest

from api.workflows.services import WorkflowEditorSession, WorkflowListService
from workflow_core.errors import DomainError, NotFoundError, SchemaError
from workflow_core.intents import AddEdge, AddNode, UpdateNodeConfig
from workflow_core.templates import create_from_template


def _seed_workflow(store, workflow_id, updated_at, name=None):
    document = create_from_template("scheduled_summary", name or workflow_id).serialize().to_payload()
    store.seed({**document, "id": workflow_id, "updatedAt": updated_at})


@pytest.fixture
def list_service(store, lifecycle, notifications):
    return WorkflowListService(store, lifecycle, notifications)


@pytest.fixture
def session(store, notifications):
    return WorkflowEditorSession(store, notifications)


@pytest.mark.asyncio
async def test_refresh_sorts_and_joins_deployments(list_service, store, backend):
    _seed_workflow(store, "wf-old", "2024-01-01T00:00:00Z")
    _seed_workflow(store, "wf-new", datetime(2024, 6, 1, tzinfo=timezone.utc))
    backend.seed(id="dep-1", workflow_id="wf-old", status="running", requested_at=1714564800)

    listing = await list_service.refresh()

    assert [item.id for item in listing.items] == ["wf-new", "wf-old"]
    assert listing.deployments_loaded
    assert listing.items[1].status_badge == "running"
    assert listing.items[0].node_count == 4


@pytest.mark.asyncio
async def test_workflow_fetch_failure_keeps_previous_state(list_service, store, notifications):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z")
    await list_service.refresh()
    store.fail_on.add("list_workflows_for_current_user")

    listing = await list_service.refresh()

    assert [item.id for item in listing.items] == ["wf-1"]
    assert listing.error
    assert notifications.messages == ["Error loading workflows"]


@pytest.mark.asyncio
async def test_deployment_fetch_failure_keeps_workflows(list_service, store, backend, notifications):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z")
    backend.seed(id="dep-1", workflow_id="wf-1", status="running")
    backend.fail_on.add("list_deployments_for_current_user")

    listing = await list_service.refresh()

    assert [item.id for item in listing.items] == ["wf-1"]
    assert not listing.deployments_loaded
    assert listing.items[0].status_badge is None
    assert listing.error is None
    assert notifications.messages == ["Error loading deployment information"]


@pytest.mark.asyncio
async def test_malformed_workflows_are_skipped(list_service, store):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z")
    store.seed({"id": "wf-bad", "nodes": []})

    listing = await list_service.refresh()

    assert [item.id for item in listing.items] == ["wf-1"]


@pytest.mark.asyncio
async def test_delete_workflow_notifies_and_refreshes(list_service, store, notifications):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z")
    _seed_workflow(store, "wf-2", "2024-02-01T00:00:00Z")

    listing = await list_service.delete_workflow("wf-1")

    assert [item.id for item in listing.items] == ["wf-2"]
    assert notifications.messages == ["Workflow deleted successfully"]


@pytest.mark.asyncio
async def test_delete_workflow_failure(list_service, store, notifications):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z")
    store.fail_on.add("delete_workflow")

    await list_service.delete_workflow("wf-1")

    assert "wf-1" in store.documents
    assert notifications.messages == ["Error deleting workflow"]


@pytest.mark.asyncio
async def test_empty_ids_are_ignored(list_service, store, backend, notifications):
    await list_service.delete_workflow("")
    await list_service.deploy(None, "Nameless")
    await list_service.cancel("")

    assert store.calls == []
    assert backend.calls == []
    assert notifications.messages == []


@pytest.mark.asyncio
async def test_deploy_and_cancel(list_service, store, backend, notifications):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z")

    listing = await list_service.deploy("wf-1", "wf-1")
    assert listing.items[0].status_badge == "requested"

    deployment_id = listing.items[0].active_deployment.id
    listing = await list_service.cancel(deployment_id)

    assert listing.items[0].status_badge is None
    assert backend.deployments[0]["error"] == "cancelled"
    assert notifications.messages == ["Deployment requested successfully", "Deployment cancelled successfully"]


@pytest.mark.asyncio
async def test_deploy_and_cancel_failures(list_service, backend, notifications):
    backend.fail_on.update({"create_deployment_request", "get_deployment"})

    await list_service.deploy("wf-1", "Anything")
    await list_service.cancel("dep-1")

    assert notifications.messages == ["Error requesting deployment", "Error cancelling deployment"]


def test_session_applies_intents(session):
    session.new("Support", template="blank")

    session.apply(AddNode(kind="Communication"))
    session.apply(AddNode(kind="AskAI"))
    snapshot = session.apply(AddEdge(source="communication-1", target="askai-2"))

    assert snapshot.name == "Support"
    assert len(snapshot.edges) == 1


def test_session_requires_open_workflow(session):
    with pytest.raises(DomainError):
        session.apply(AddNode(kind="AskAI"))


@pytest.mark.asyncio
async def test_save_creates_then_updates(session, store, notifications):
    session.new("Digest", template="scheduled_summary")

    assert await session.save()
    workflow_id = session.workflow_id
    first_saved_at = session.graph.updated_at
    assert workflow_id in store.documents
    assert first_saved_at is not None

    session.apply(UpdateNodeConfig(node_id="summarizer-3", changes={"style": "bullet_points"}))
    assert await session.save()

    assert store.calls.count("create_workflow") == 1
    assert store.calls.count("update_workflow") == 1
    assert session.graph.updated_at > first_saved_at
    stored = store.documents[workflow_id]
    assert stored["nodes"][2]["config"]["style"] == "bullet_points"
    assert notifications.messages == ["Workflow saved successfully", "Workflow saved successfully"]


@pytest.mark.asyncio
async def test_save_failure_notifies(session, store, notifications):
    session.new("Digest")
    store.fail_on.add("create_workflow")

    assert await session.save() is False
    assert session.workflow_id is None
    assert notifications.messages == ["Error saving workflow"]


@pytest.mark.asyncio
async def test_load_round_trips_stored_workflow(session, store):
    _seed_workflow(store, "wf-1", "2024-01-01T00:00:00Z", name="Stored")

    snapshot = await session.load("wf-1")

    assert snapshot.id == "wf-1"
    assert snapshot.name == "Stored"
    assert [node.kind for node in snapshot.nodes] == ["ScheduleTrigger", "FileReader", "Summarizer", "EmailSend"]


@pytest.mark.asyncio
async def test_load_errors(session, store, notifications):
    with pytest.raises(NotFoundError):
        await session.load("wf-missing")

    store.seed({"id": "wf-bad", "name": "Bad", "nodes": [{"id": "x-1", "kind": "Teleport", "config": {}}]})
    with pytest.raises(SchemaError):
        await session.load("wf-bad")

    store.fail_on.add("get_workflow")
    assert await session.load("wf-bad") is None
    assert notifications.messages == ["Error loading workflow"]


@pytest.mark.asyncio
async def test_delete_closes_session(session, store, notifications):
    session.new("Short lived")
    await session.save()
    workflow_id = session.workflow_id

    assert await session.delete()

    assert workflow_id not in store.documents
    assert session.closed
    with pytest.raises(DomainError):
        session.apply(AddNode(kind="AskAI"))
    with pytest.raises(DomainError):
        await session.save()
    with pytest.raises(DomainError):
        session.new("Again")


@pytest.mark.asyncio
async def test_delete_requires_saved_workflow(session):
    session.new("Unsaved")

    with pytest.raises(DomainError):
        await session.delete()
