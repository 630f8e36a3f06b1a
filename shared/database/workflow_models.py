from tortoise import fields, models

from workflow_core.deployment import DeploymentStatus


WORKFLOW_ID_PREFIX = "wf_"
DEPLOYMENT_ID_PREFIX = "dep_"


def make_workflow_public_id(pk: int) -> str:
    return f"{WORKFLOW_ID_PREFIX}{pk}"


def parse_workflow_public_id(value: str) -> int:
    if not value.startswith(WORKFLOW_ID_PREFIX):
        raise ValueError("Invalid workflow_id format")
    return int(value.removeprefix(WORKFLOW_ID_PREFIX))


def make_deployment_public_id(pk: int) -> str:
    return f"{DEPLOYMENT_ID_PREFIX}{pk}"


def parse_deployment_public_id(value: str) -> int:
    if not value.startswith(DEPLOYMENT_ID_PREFIX):
        raise ValueError("Invalid deployment_id format")
    return int(value.removeprefix(DEPLOYMENT_ID_PREFIX))


class WorkflowRecord(models.Model):
    """Saved workflow; ``graph`` holds the serialized nodes and edges."""

    id = fields.IntField(primary_key=True)
    owner_id = fields.CharField(max_length=255, db_index=True)
    name = fields.CharField(max_length=255)
    graph = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    deployments: fields.ReverseRelation["DeploymentRecord"]

    class Meta:
        table = "workflow_records"
        ordering = ("-updated_at", "id")

    def __str__(self) -> str:
        return f"WorkflowRecord<{self.name}>"

    @property
    def public_id(self) -> str:
        return make_workflow_public_id(self.id)


class DeploymentRecord(models.Model):
    """A request to run a saved workflow and its current status."""

    id = fields.IntField(primary_key=True)
    owner_id = fields.CharField(max_length=255, db_index=True)
    workflow = fields.ForeignKeyField(
        "models.WorkflowRecord",
        related_name="deployments",
        on_delete=fields.CASCADE,
    )
    workflow_name = fields.CharField(max_length=255)
    status = fields.CharEnumField(DeploymentStatus, default=DeploymentStatus.REQUESTED)
    error = fields.TextField(null=True)
    requested_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "deployment_records"
        ordering = ("-requested_at", "-id")

    def __str__(self) -> str:
        return f"DeploymentRecord<{self.id} {self.status}>"

    @property
    def public_id(self) -> str:
        return make_deployment_public_id(self.id)


__all__ = [
    "WorkflowRecord",
    "DeploymentRecord",
    "make_workflow_public_id",
    "parse_workflow_public_id",
    "make_deployment_public_id",
    "parse_deployment_public_id",
]
