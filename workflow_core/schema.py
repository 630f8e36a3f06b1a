"""
Workflow schema definitions: node kinds, per-kind configuration payloads,
and the persisted workflow document.

Each node kind fixes its own configuration model. The models carry no
defaults: a persisted record must spell out every required field, and editing
defaults live in the node registry (``workflow_core.registry``).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as calendar_date
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Supported step kinds."""

    ASK_AI = "AskAI"
    SUMMARIZER = "Summarizer"
    FILE_READER = "FileReader"
    API_INTEGRATION = "APIIntegration"
    COMMUNICATION = "Communication"
    SQL_DATABASE = "SQLDatabase"
    SCHEDULE_TRIGGER = "ScheduleTrigger"
    HUMAN_FEEDBACK = "HumanFeedback"
    EMAIL_SEND = "EmailSend"
    SPEECH_AGENT = "SpeechAgent"


AI_MODELS = (
    "gpt-4o-mini",
    "gpt-4o",
    "gpt-4",
    "gpt-3.5-turbo",
    "claude-3-sonnet",
    "claude-3-opus",
    "gemini-pro",
)

AGENT_TOOLS = (
    "weather",
    "gmail",
    "google-calendar",
    "github",
    "notion",
    "brave-search",
    "google-docs",
    "meta",
    "hubspot",
)

Platform = Literal["discord", "slack", "whatsapp", "telegram"]

TRIGGER_TYPES: Dict[str, tuple] = {
    "discord": ("onMessage", "onCommand", "onReaction", "onJoin", "onLeave"),
    "slack": ("onMessage", "onCommand", "onMention", "onReaction", "onChannelJoin"),
    "whatsapp": ("onMessage", "onMedia", "onLocation", "onContact"),
    "telegram": ("onMessage", "onCommand", "onReaction", "onJoin", "onLeave"),
}

MESSAGE_TYPES: Dict[str, tuple] = {
    "discord": ("text", "embed", "image", "file"),
    "slack": ("text", "blocks", "attachment", "file"),
    "whatsapp": ("text", "image", "video", "document", "location"),
    "telegram": ("text", "image", "document", "location"),
}

VOICE_IDS = ("adam", "bella", "charlie", "diana", "ethan", "fiona", "george", "hannah")
VOICE_MODELS = ("eleven_multilingual_v2", "eleven_monolingual_v1", "eleven_turbo_v2")

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class StrictConfig(BaseModel):
    """Base for node configs: immutable, closed field set, camelCase on the wire."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        protected_namespaces=(),
    )

    kind: ClassVar[NodeKind]

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation used in persisted documents."""
        return self.model_dump(mode="json", by_alias=True)


def _check_ai_model(value: str) -> str:
    if value not in AI_MODELS:
        raise ValueError(f"unsupported model '{value}'")
    return value


AIModel = Annotated[str, AfterValidator(_check_ai_model)]


# -----------------------------
# Using AI
# -----------------------------
class AskAIConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.ASK_AI

    prompt: str
    llm_model: AIModel
    selected_tools: List[str]
    temperature: float = Field(ge=0.0, le=2.0)

    @field_validator("selected_tools")
    @classmethod
    def _check_tools(cls, value: List[str]) -> List[str]:
        unknown = [tool for tool in value if tool not in AGENT_TOOLS]
        if unknown:
            raise ValueError(f"unknown tools: {', '.join(unknown)}")
        if len(set(value)) != len(value):
            raise ValueError("tools must not repeat")
        return value


class SummarizerConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.SUMMARIZER

    prompt: str
    style: Literal["concise", "detailed", "bullet_points"]
    temperature: float = Field(ge=0.0, le=2.0)
    llm_model: AIModel


# -----------------------------
# Data sources
# -----------------------------
class FileReaderConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.FILE_READER

    file_type: Literal["Text", "PDF", "Word", "Excel", "CSV", "JSON", "HTML", "Markdown"]
    file_path: str
    extract_strategy: Literal["full", "chunks", "summary"]
    chunk_size: int = Field(gt=0)
    source_type: Literal["local", "google_doc"]


class HeaderEntry(StrictConfig):
    key: str
    value: str


class ApiArgument(StrictConfig):
    name: str = Field(min_length=1)
    type: Literal["string", "number", "boolean", "object", "array"]
    required: bool
    description: Optional[str] = None


class APIIntegrationConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.API_INTEGRATION

    description: str
    endpoint: str
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
    auth_type: Literal["None", "API Key", "Bearer Token", "Basic Auth", "OAuth2"]
    headers: List[HeaderEntry]
    arguments: List[ApiArgument]
    response_format: Literal["JSON", "XML", "Text"]

    @field_validator("arguments")
    @classmethod
    def _unique_argument_names(cls, value: List[ApiArgument]) -> List[ApiArgument]:
        names = [argument.name for argument in value]
        if len(names) != len(set(names)):
            raise ValueError("argument names must be unique")
        return value


class SQLDatabaseConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.SQL_DATABASE

    database_name: str
    database_type: Literal["mysql", "postgresql", "sqlite", "sqlserver", "oracle"]
    query: str
    prompt: str
    result_limit: int = Field(gt=0)
    llm_model: AIModel


# -----------------------------
# Communication
# -----------------------------
class CommunicationConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.COMMUNICATION

    platform: Platform
    direction: Literal["input", "output"]
    channel: str
    bot_invoke_command: str
    command_prefix: str
    trigger_type: str
    message_template: str
    message_type: str

    @model_validator(mode="after")
    def _check_platform_options(self) -> "CommunicationConfig":
        if self.trigger_type and self.trigger_type not in TRIGGER_TYPES[self.platform]:
            raise ValueError(f"trigger type '{self.trigger_type}' is not available on {self.platform}")
        if self.message_type not in MESSAGE_TYPES[self.platform]:
            raise ValueError(f"message type '{self.message_type}' is not available on {self.platform}")
        return self


class HumanFeedbackConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.HUMAN_FEEDBACK

    platform: Platform
    channel: str
    timeout: int = Field(gt=0, description="Minutes to wait for a response")
    timeout_action: Literal["skip", "retry", "abort"]


class EmailSendConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.EMAIL_SEND

    recipients: str
    subject: str
    email_body: str

    @field_validator("recipients")
    @classmethod
    def _check_recipients(cls, value: str) -> str:
        if not value.strip():
            return value
        invalid = [
            address.strip()
            for address in value.split(",")
            if not _EMAIL_PATTERN.match(address.strip())
        ]
        if invalid:
            raise ValueError(f"invalid recipient addresses: {', '.join(invalid)}")
        return value


# -----------------------------
# Triggers
# -----------------------------
class ScheduleTriggerConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.SCHEDULE_TRIGGER

    frequency: Literal["once", "daily", "weekly", "monthly", "yearly"]
    time: str
    timezone: str = Field(min_length=1)
    description: str
    date: Optional[str] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    month_day: Optional[int] = Field(default=None, ge=1, le=31)
    month: Optional[int] = Field(default=None, ge=0, le=11)

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if not _TIME_PATTERN.match(value):
            raise ValueError("time must be HH:MM in 24h format")
        return value

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        if not _DATE_PATTERN.match(value):
            raise ValueError("date must be YYYY-MM-DD")
        try:
            calendar_date.fromisoformat(value)
        except ValueError as exc:
            raise ValueError(f"date {value!r} is not a calendar date") from exc
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @model_validator(mode="after")
    def _check_frequency_fields(self) -> "ScheduleTriggerConfig":
        if self.frequency == "once" and not self.date:
            raise ValueError('frequency "once" requires "date"')
        if self.frequency == "weekly" and self.day_of_week is None:
            raise ValueError('frequency "weekly" requires "dayOfWeek"')
        if self.frequency in ("monthly", "yearly") and self.month_day is None:
            raise ValueError(f'frequency "{self.frequency}" requires "monthDay"')
        if self.frequency == "yearly" and self.month is None:
            raise ValueError('frequency "yearly" requires "month"')
        return self


# -----------------------------
# Speech
# -----------------------------
class SpeechAgentConfig(StrictConfig):
    kind: ClassVar[NodeKind] = NodeKind.SPEECH_AGENT

    voice_id: str
    model_id: str
    stability: float = Field(ge=0.0, le=1.0)
    clarity: float = Field(ge=0.0, le=1.0)
    similarity_boost: float = Field(ge=0.0, le=1.0)
    style: float = Field(ge=0.0, le=1.0)
    speaker_boost: bool
    use_original_media: bool
    text_input: str

    @field_validator("voice_id")
    @classmethod
    def _check_voice(cls, value: str) -> str:
        if value not in VOICE_IDS:
            raise ValueError(f"unknown voice '{value}'")
        return value

    @field_validator("model_id")
    @classmethod
    def _check_voice_model(cls, value: str) -> str:
        if value not in VOICE_MODELS:
            raise ValueError(f"unknown voice model '{value}'")
        return value


NodeConfig = Union[
    AskAIConfig,
    SummarizerConfig,
    FileReaderConfig,
    APIIntegrationConfig,
    CommunicationConfig,
    SQLDatabaseConfig,
    ScheduleTriggerConfig,
    HumanFeedbackConfig,
    EmailSendConfig,
    SpeechAgentConfig,
]


# -----------------------------
# In-memory graph elements
# -----------------------------
class Position(BaseModel):
    """Canvas coordinate. Presentation only."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class WorkflowNode:
    """A configured step placed on the canvas."""

    id: str
    kind: str
    config: StrictConfig
    position: Position
    label: Optional[str] = None


@dataclass(frozen=True)
class WorkflowEdge:
    """A directed connection between two nodes of the same workflow."""

    source: str
    target: str

    @property
    def id(self) -> str:
        return edge_id(self.source, self.target)


def edge_id(source: str, target: str) -> str:
    return f"e-{source}-{target}"


# -----------------------------
# Persisted document
# -----------------------------
class NodeDocument(BaseModel):
    """Persisted shape of a node."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., min_length=1, description="Unique node ID (canvas node ID)")
    kind: str = Field(..., description="Node kind")
    label: Optional[str] = None
    position: Position = Field(default_factory=Position)
    config: Dict[str, Any] = Field(..., description="Kind-specific configuration")


class EdgeDocument(BaseModel):
    """Persisted shape of an edge."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")


class WorkflowDocument(BaseModel):
    """Complete persisted workflow: the graph plus store-assigned metadata."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    nodes: List[NodeDocument] = Field(default_factory=list)
    edges: List[EdgeDocument] = Field(default_factory=list)
    updated_at: Any = Field(default=None, alias="updatedAt")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    def to_payload(self, *, include_meta: bool = True) -> Dict[str, Any]:
        """Dict ready for the document store."""
        payload: Dict[str, Any] = {
            "name": self.name,
            "nodes": [node.model_dump(mode="json") for node in self.nodes],
            "edges": [edge.model_dump(mode="json") for edge in self.edges],
        }
        if include_meta:
            if self.id is not None:
                payload["id"] = self.id
            if self.updated_at is not None:
                payload["updatedAt"] = self.updated_at
        return payload


__all__ = [
    "NodeKind",
    "AI_MODELS",
    "AGENT_TOOLS",
    "TRIGGER_TYPES",
    "MESSAGE_TYPES",
    "VOICE_IDS",
    "VOICE_MODELS",
    "StrictConfig",
    "AskAIConfig",
    "SummarizerConfig",
    "FileReaderConfig",
    "HeaderEntry",
    "ApiArgument",
    "APIIntegrationConfig",
    "SQLDatabaseConfig",
    "CommunicationConfig",
    "HumanFeedbackConfig",
    "EmailSendConfig",
    "ScheduleTriggerConfig",
    "SpeechAgentConfig",
    "NodeConfig",
    "Position",
    "WorkflowNode",
    "WorkflowEdge",
    "edge_id",
    "NodeDocument",
    "EdgeDocument",
    "WorkflowDocument",
]
