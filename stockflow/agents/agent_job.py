"""
Remote agent job models.

Defines the AgentJob ("Response") returned by the agent platform and the
agent descriptors used by session provisioning. The platform's result payload
comes in several shapes, so every payload field is optional and unknown keys
are preserved.

The job tracks:
- Identity (id, target agent)
- Lifecycle status (pending → processing → completed / failed / cancelled)
- Submitted input and heterogeneous output payload
- Server timestamps
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def rank(self) -> int:
        """Lifecycle position; terminal states share the highest rank."""
        if self.is_terminal:
            return 2
        return 1 if self is JobStatus.PROCESSING else 0


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


class ContentItem(BaseModel):
    """Typed entry of output_content; content may be plain text, JSON text or an object."""

    model_config = ConfigDict(extra="allow")

    type: str = "text"
    content: Any = None


class OutputItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "commentary"   # commentary | tool_call | tool_result | final
    channel: Optional[str] = None
    text: Optional[str] = None
    tool: Optional[str] = None
    args: Any = None
    output: Any = None


class JobOutput(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: Optional[str] = None
    items: List[OutputItem] = Field(default_factory=list)


class Segment(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "text"
    text: Optional[str] = None


class AgentJob(BaseModel):
    """
    One unit of work submitted to a named agent.

    Attributes:
        id: Opaque identifier assigned by the platform
        agent_name: Target agent instance
        status: Lifecycle status; output is only trusted once completed
        input: Raw submitted input ({"text": ...} or {"content": [...]})
        output: Legacy {text, items} payload
        output_content: Typed content items
        segments: Typed segment entries (may include tool traffic)
        created_at / updated_at: Server timestamps
    """

    model_config = ConfigDict(extra="allow")

    id: str
    agent_name: str = ""
    status: JobStatus = JobStatus.PENDING

    # Submitted work
    input: Dict[str, Any] = Field(default_factory=dict)

    # Result payload (shape varies)
    output: Optional[JobOutput] = None
    output_content: List[ContentItem] = Field(default_factory=list)
    segments: List[Segment] = Field(default_factory=list)

    # Server timestamps
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if value is None:
            return JobStatus.PENDING
        normalized = str(value).lower()
        if normalized not in {status.value for status in JobStatus}:
            logger.warning(f"Unknown job status '{value}', treating as processing")
            return JobStatus.PROCESSING
        return normalized

    @field_validator("output_content", "segments", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []

    @field_validator("input", mode="before")
    @classmethod
    def _none_to_dict(cls, value: Any) -> Any:
        return value or {}

    @field_validator("agent_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or ""

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def input_content(self) -> str:
        """The submitted prompt, verbatim."""
        if isinstance(self.input.get("text"), str):
            return self.input["text"]
        for item in self.input.get("content") or []:
            if isinstance(item, dict) and isinstance(item.get("content"), str):
                return item["content"]
        return ""


class SessionAgent(BaseModel):
    """A clone of the session template agent."""

    model_config = ConfigDict(extra="allow")

    name: str
    parent_agent_name: Optional[str] = None
    state: Optional[str] = None
    created_at: Optional[str] = None
    last_activity_at: Optional[str] = None


class PublishedAgent(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    description: Optional[str] = None
    state: Optional[str] = None
    created_by: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []
