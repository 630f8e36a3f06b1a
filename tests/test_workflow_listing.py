from datetime import datetime, timezone

from api.workflows.listing import active_deployment_for, build_listing, sort_by_recency
from shared.timestamps import UNKNOWN_DATE
from workflow_core.deployment import Deployment
from workflow_core.schema import WorkflowDocument

MAY_1 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _workflow(workflow_id, updated_at, **extra):
    return WorkflowDocument(id=workflow_id, name=f"Workflow {workflow_id}", updated_at=updated_at, **extra)


def _deployment(deployment_id, workflow_id, status):
    return Deployment(id=deployment_id, workflow_id=workflow_id, status=status, requested_at=MAY_1)


def test_sort_by_recency_descending_across_encodings():
    workflows = [
        _workflow("old", "2024-01-01T00:00:00Z"),
        _workflow("newest", {"seconds": int(MAY_1.timestamp()) + 60, "nanoseconds": 0}),
        _workflow("middle", int(MAY_1.timestamp() * 1000)),
    ]

    assert [w.id for w in sort_by_recency(workflows)] == ["newest", "middle", "old"]


def test_sort_by_recency_is_stable_for_equal_instants():
    workflows = [
        _workflow("a", MAY_1),
        _workflow("b", "2024-05-01T12:00:00Z"),
        _workflow("c", int(MAY_1.timestamp())),
        _workflow("d", {"seconds": int(MAY_1.timestamp()), "nanoseconds": 0}),
    ]

    assert [w.id for w in sort_by_recency(workflows)] == ["a", "b", "c", "d"]


def test_unusable_timestamps_sort_last():
    workflows = [
        _workflow("missing", None),
        _workflow("garbage", "yesterday-ish"),
        _workflow("dated", MAY_1),
    ]

    assert [w.id for w in sort_by_recency(workflows)] == ["dated", "missing", "garbage"]


def test_sort_accepts_raw_documents():
    documents = [
        {"id": "x", "name": "X", "updatedAt": 1},
        {"id": "y", "name": "Y", "updatedAt": 2},
    ]

    assert [d["id"] for d in sort_by_recency(documents)] == ["y", "x"]


def test_active_deployment_is_first_active_match():
    deployments = [
        _deployment("dep-1", "wf-2", "running"),
        _deployment("dep-2", "wf-1", "success"),
        _deployment("dep-3", "wf-1", "requested"),
        _deployment("dep-4", "wf-1", "running"),
    ]

    assert active_deployment_for("wf-1", deployments).id == "dep-3"
    assert active_deployment_for("wf-3", deployments) is None
    assert active_deployment_for("", deployments) is None


def test_terminal_deployments_are_never_active():
    deployments = [_deployment("dep-1", "wf-1", "success"), _deployment("dep-2", "wf-1", "failed")]

    assert active_deployment_for("wf-1", deployments) is None


def test_build_listing_joins_active_deployments():
    workflows = [
        _workflow("wf-1", MAY_1, nodes=[{"id": "askai-1", "kind": "AskAI", "config": {}}]),
        _workflow("wf-2", None),
    ]
    deployments = [_deployment("dep-1", "wf-1", "running")]

    items = build_listing(workflows, deployments)

    assert [item.id for item in items] == ["wf-1", "wf-2"]
    assert items[0].node_count == 1
    assert items[0].edge_count == 0
    assert items[0].status_badge == "running"
    assert items[0].active_deployment.id == "dep-1"
    assert items[1].active_deployment is None
    assert items[1].updated_at_display == UNKNOWN_DATE


def test_build_listing_without_deployments_has_no_badges():
    items = build_listing([_workflow("wf-1", MAY_1)], None)

    assert items[0].status_badge is None
    assert items[0].active_deployment is None
