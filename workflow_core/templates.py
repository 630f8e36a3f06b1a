"""
Starter workflows offered when creating a new workflow.

Templates are assembled through the regular graph operations, so every
template produces a graph that passes validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from workflow_core.errors import GraphError
from workflow_core.graph import WorkflowGraph
from workflow_core.schema import NodeKind

_COLUMN_GAP = 250.0


@dataclass(frozen=True)
class WorkflowTemplate:
    key: str
    name: str
    description: str
    build: Callable[[WorkflowGraph], None]


def _chain(graph: WorkflowGraph, node_ids: List[str]) -> None:
    for source, target in zip(node_ids, node_ids[1:]):
        graph.add_edge(source, target)


def _build_blank(graph: WorkflowGraph) -> None:
    return None


def _build_scheduled_summary(graph: WorkflowGraph) -> None:
    trigger = graph.add_node(NodeKind.SCHEDULE_TRIGGER, (0.0, 0.0))
    reader = graph.add_node(NodeKind.FILE_READER, (_COLUMN_GAP, 0.0))
    summarizer = graph.add_node(NodeKind.SUMMARIZER, (_COLUMN_GAP * 2, 0.0))
    email = graph.add_node(NodeKind.EMAIL_SEND, (_COLUMN_GAP * 3, 0.0))
    graph.update_node_config(trigger, {"description": "Every day at noon"})
    graph.update_node_config(email, {"subject": "Daily summary"})
    _chain(graph, [trigger, reader, summarizer, email])


def _build_feedback_loop(graph: WorkflowGraph) -> None:
    inbound = graph.add_node(NodeKind.COMMUNICATION, (0.0, 0.0), label="Incoming message")
    agent = graph.add_node(NodeKind.ASK_AI, (_COLUMN_GAP, 0.0))
    review = graph.add_node(NodeKind.HUMAN_FEEDBACK, (_COLUMN_GAP * 2, 0.0))
    outbound = graph.add_node(NodeKind.COMMUNICATION, (_COLUMN_GAP * 3, 0.0), label="Reply")
    graph.update_node_config(inbound, {"triggerType": "onMessage"})
    graph.update_node_config(agent, {"prompt": "Draft a reply to: {input}"})
    graph.update_node_config(outbound, {"direction": "output", "messageTemplate": "{input}"})
    _chain(graph, [inbound, agent, review, outbound])


TEMPLATES: Dict[str, WorkflowTemplate] = {
    template.key: template
    for template in (
        WorkflowTemplate("blank", "Untitled Workflow", "Empty canvas", _build_blank),
        WorkflowTemplate(
            "scheduled_summary",
            "Scheduled Summary",
            "Read a file on a schedule, summarize it and email the result",
            _build_scheduled_summary,
        ),
        WorkflowTemplate(
            "feedback_loop",
            "Feedback Loop",
            "Answer chat messages with AI after a human approves the draft",
            _build_feedback_loop,
        ),
    )
}


def list_templates() -> List[WorkflowTemplate]:
    return list(TEMPLATES.values())


def create_from_template(key: str, name: str | None = None) -> WorkflowGraph:
    template = TEMPLATES.get(key)
    if template is None:
        raise GraphError(f"Unknown template '{key}'")
    graph = WorkflowGraph(name or template.name)
    template.build(graph)
    return graph


__all__ = ["WorkflowTemplate", "TEMPLATES", "list_templates", "create_from_template"]
