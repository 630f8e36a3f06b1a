"""
Registry of node kinds. Each entry pairs a kind with its configuration model
and the defaults a freshly added node starts with.

Adding a kind means registering one ``NodeKindDefinition``; the graph model
looks kinds up here and never special-cases them.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, Union

from pydantic import ValidationError

from shared.logger import get_logger
from workflow_core.errors import ConfigValidationError, FieldProblem
from workflow_core.schema import (
    APIIntegrationConfig,
    AskAIConfig,
    CommunicationConfig,
    EmailSendConfig,
    FileReaderConfig,
    HumanFeedbackConfig,
    NodeKind,
    ScheduleTriggerConfig,
    SpeechAgentConfig,
    SQLDatabaseConfig,
    StrictConfig,
    SummarizerConfig,
)

logger = get_logger(__name__)

KindKey = Union[NodeKind, str]


def kind_key(kind: KindKey) -> str:
    return kind.value if isinstance(kind, Enum) else str(kind)


@dataclass
class NodeKindDefinition:
    kind: str
    config_model: Type[StrictConfig]
    defaults: Dict[str, Any]
    title: str = ""
    category: str = ""
    description: str = ""

    @property
    def slug(self) -> str:
        return self.kind.lower()


@dataclass
class NodeKindDescriptor:
    """Everything a form builder needs to render one kind."""

    kind: str
    title: str
    category: str
    description: str
    defaults: Dict[str, Any]
    json_schema: Dict[str, Any] = field(default_factory=dict)


class UnknownNodeKindError(KeyError):
    """Raised when a node kind cannot be resolved."""


def problems_from_validation_error(exc: ValidationError) -> List[FieldProblem]:
    """Flatten pydantic errors into field-level problems."""
    problems = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        problems.append(FieldProblem(loc=loc, message=message))
    return problems


class NodeConfigRegistry:
    def __init__(self, definitions: Iterable[NodeKindDefinition] = ()) -> None:
        self._definitions: Dict[str, NodeKindDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: NodeKindDefinition) -> None:
        key = kind_key(definition.kind)
        definition.kind = key
        # Defaults must satisfy their own schema
        try:
            definition.config_model.model_validate(copy.deepcopy(definition.defaults))
        except ValidationError as exc:
            raise ConfigValidationError(key, problems_from_validation_error(exc)) from exc
        self._definitions[key] = definition
        logger.debug(f"Registered node kind {key}")

    def get(self, kind: KindKey) -> NodeKindDefinition:
        try:
            return self._definitions[kind_key(kind)]
        except KeyError as exc:
            raise UnknownNodeKindError(f"Node kind '{kind_key(kind)}' is not registered") from exc

    def maybe_get(self, kind: KindKey) -> Optional[NodeKindDefinition]:
        return self._definitions.get(kind_key(kind))

    def all(self) -> Dict[str, NodeKindDefinition]:
        return dict(self._definitions)

    def kinds(self) -> List[str]:
        return list(self._definitions)

    def defaults_for(self, kind: KindKey) -> StrictConfig:
        """Fresh, valid config for a newly added node of ``kind``."""
        definition = self.get(kind)
        return definition.config_model.model_validate(copy.deepcopy(definition.defaults))

    def validate(
        self,
        kind: KindKey,
        config: Union[Mapping[str, Any], StrictConfig],
        *,
        node_id: Optional[str] = None,
    ) -> StrictConfig:
        """
        Validate a raw or typed config against the schema of ``kind``.

        Raises:
            ConfigValidationError: listing every field-level problem
        """
        definition = self.get(kind)
        model = definition.config_model
        if isinstance(config, StrictConfig):
            if type(config) is not model:
                raise ConfigValidationError(
                    definition.kind,
                    [FieldProblem(loc="", message=f"expected {model.__name__}, got {type(config).__name__}")],
                    node_id=node_id,
                )
            config = config.to_payload()
        if not isinstance(config, Mapping):
            raise ConfigValidationError(
                definition.kind,
                [FieldProblem(loc="", message="config must be an object")],
                node_id=node_id,
            )
        try:
            return model.model_validate(dict(config))
        except ValidationError as exc:
            raise ConfigValidationError(
                definition.kind, problems_from_validation_error(exc), node_id=node_id
            ) from exc

    def merge(
        self,
        kind: KindKey,
        current: StrictConfig,
        partial: Mapping[str, Any],
        *,
        node_id: Optional[str] = None,
    ) -> StrictConfig:
        """
        Overlay ``partial`` on ``current`` and re-validate.

        ``partial`` may use wire names (``llmModel``) or attribute names
        (``llm_model``). The original config object is never modified.
        """
        model = self.get(kind).config_model
        merged = current.to_payload()
        for name, value in partial.items():
            field_info = model.model_fields.get(name)
            wire_name = field_info.alias if field_info and field_info.alias else name
            merged[wire_name] = value
        return self.validate(kind, merged, node_id=node_id)

    def describe(self) -> List[NodeKindDescriptor]:
        return [
            NodeKindDescriptor(
                kind=definition.kind,
                title=definition.title or definition.kind,
                category=definition.category,
                description=definition.description,
                defaults=copy.deepcopy(definition.defaults),
                json_schema=definition.config_model.model_json_schema(by_alias=True),
            )
            for definition in self._definitions.values()
        ]


# Default model for AI-backed steps
_DEFAULT_MODEL = "gpt-4o-mini"

BUILTIN_KINDS: List[NodeKindDefinition] = [
    NodeKindDefinition(
        kind=NodeKind.ASK_AI,
        config_model=AskAIConfig,
        title="Ask AI",
        category="Using AI",
        description="Prompt a language model, optionally with tools",
        defaults={
            "prompt": "",
            "llmModel": _DEFAULT_MODEL,
            "selectedTools": [],
            "temperature": 0.7,
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.SUMMARIZER,
        config_model=SummarizerConfig,
        title="Summarizer",
        category="Using AI",
        description="Condense incoming content",
        defaults={
            "prompt": "",
            "style": "concise",
            "temperature": 0.7,
            "llmModel": _DEFAULT_MODEL,
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.FILE_READER,
        config_model=FileReaderConfig,
        title="File Reader",
        category="Data",
        description="Read a local file or Google Doc",
        defaults={
            "fileType": "Text",
            "filePath": "",
            "extractStrategy": "full",
            "chunkSize": 1000,
            "sourceType": "local",
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.API_INTEGRATION,
        config_model=APIIntegrationConfig,
        title="API Integration",
        category="Data",
        description="Call an HTTP endpoint",
        defaults={
            "description": "",
            "endpoint": "",
            "method": "GET",
            "authType": "None",
            "headers": [],
            "arguments": [],
            "responseFormat": "JSON",
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.COMMUNICATION,
        config_model=CommunicationConfig,
        title="Communication",
        category="Communication",
        description="Receive from or post to a chat platform",
        defaults={
            "platform": "discord",
            "direction": "input",
            "botInvokeCommand": "",
            "channel": "",
            "commandPrefix": "",
            "triggerType": "",
            "messageTemplate": "",
            "messageType": "text",
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.SQL_DATABASE,
        config_model=SQLDatabaseConfig,
        title="SQL Database",
        category="Data",
        description="Query a database, optionally from a natural language prompt",
        defaults={
            "databaseName": "",
            "databaseType": "mysql",
            "query": "",
            "prompt": "",
            "resultLimit": 100,
            "llmModel": _DEFAULT_MODEL,
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.SCHEDULE_TRIGGER,
        config_model=ScheduleTriggerConfig,
        title="Schedule Trigger",
        category="Triggers",
        description="Start the workflow on a schedule",
        defaults={
            "frequency": "daily",
            "time": "12:00",
            "date": None,
            "dayOfWeek": 1,
            "monthDay": 1,
            "month": 0,
            "timezone": "UTC",
            "description": "",
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.HUMAN_FEEDBACK,
        config_model=HumanFeedbackConfig,
        title="Human Feedback",
        category="Communication",
        description="Pause until a person responds",
        defaults={
            "platform": "slack",
            "channel": "",
            "timeout": 30,
            "timeoutAction": "skip",
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.EMAIL_SEND,
        config_model=EmailSendConfig,
        title="Send Email",
        category="Communication",
        description="Send an email built from incoming data",
        defaults={
            "recipients": "",
            "subject": "",
            "emailBody": "Your email content here. Use {input} to include incoming data.",
        },
    ),
    NodeKindDefinition(
        kind=NodeKind.SPEECH_AGENT,
        config_model=SpeechAgentConfig,
        title="Speech Agent",
        category="Using AI",
        description="Synthesize speech from text",
        defaults={
            "voiceId": "adam",
            "modelId": "eleven_multilingual_v2",
            "stability": 0.5,
            "clarity": 0.75,
            "similarityBoost": 0.75,
            "style": 0.0,
            "speakerBoost": True,
            "useOriginalMedia": False,
            "textInput": "",
        },
    ),
]

node_registry = NodeConfigRegistry(BUILTIN_KINDS)


def defaults_for(kind: KindKey) -> StrictConfig:
    return node_registry.defaults_for(kind)


def validate_config(kind: KindKey, config: Union[Mapping[str, Any], StrictConfig]) -> StrictConfig:
    return node_registry.validate(kind, config)


__all__ = [
    "NodeKindDefinition",
    "NodeKindDescriptor",
    "NodeConfigRegistry",
    "UnknownNodeKindError",
    "BUILTIN_KINDS",
    "node_registry",
    "defaults_for",
    "validate_config",
    "kind_key",
    "problems_from_validation_error",
]
