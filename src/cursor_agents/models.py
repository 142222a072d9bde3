"""Payload models for the Cursor background agents API.

Wire names are camelCase; models accept both the wire alias and the Python
field name, and dump by alias for requests.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump as a JSON-ready dict using wire names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AgentStatus(str, Enum):
    CREATING = "CREATING"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"
    EXPIRED = "EXPIRED"


# Terminal states, including legacy names some API versions still report.
TERMINAL_STATUSES: frozenset[str] = frozenset(
    {"FINISHED", "ERROR", "EXPIRED", "COMPLETED", "FAILED", "CANCELLED"}
)


def is_terminal_status(status: AgentStatus | str | None) -> bool:
    """True when *status* means the agent will not make further progress."""
    if status is None:
        return False
    raw = status.value if isinstance(status, AgentStatus) else str(status)
    return raw.strip().upper() in TERMINAL_STATUSES


class ImageDimension(_ApiModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class Image(_ApiModel):
    #: Base64-encoded image bytes.
    data: str = Field(min_length=1)
    dimension: ImageDimension | None = None


class Prompt(_ApiModel):
    text: str = Field(min_length=1)
    images: list[Image] = Field(default_factory=list)


class Source(_ApiModel):
    repository: str = Field(min_length=1)
    ref: str | None = None


class Target(_ApiModel):
    branch_name: str | None = None
    url: str | None = None
    auto_create_pr: bool | None = None
    open_as_cursor_github_app: bool | None = None
    skip_reviewer_request: bool | None = None


class Agent(_ApiModel):
    """A background agent as reported by the API.

    ``status`` keeps unrecognised values as plain strings instead of failing
    validation, so a new server-side state never breaks status polling.
    """

    id: str
    name: str | None = None
    status: AgentStatus | str
    source: Source | None = None
    target: Target | None = None
    summary: str | None = None
    created_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            try:
                return AgentStatus(v.upper())
            except ValueError:
                return v
        return v

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)


class AgentList(_ApiModel):
    agents: list[Agent] = Field(default_factory=list)
    next_cursor: str | None = None


class ConversationMessage(_ApiModel):
    id: str
    #: ``user_message`` or ``assistant_message``.
    type: str
    text: str = ""


class Conversation(_ApiModel):
    id: str
    messages: list[ConversationMessage] = Field(default_factory=list)


class LaunchAgentRequest(_ApiModel):
    prompt: Prompt
    source: Source
    model: str | None = None
    target: Target | None = None


class FollowUpRequest(_ApiModel):
    prompt: Prompt


class IdResponse(_ApiModel):
    """Body of follow-up and delete responses."""

    id: str


class LaunchResponse(_ApiModel):
    """The part of a launched agent that callers act on."""

    id: str
    status: AgentStatus | str

    @classmethod
    def from_agent(cls, agent: Agent) -> LaunchResponse:
        return cls(id=agent.id, status=agent.status)


class ErrorBody(_ApiModel):
    code: str | None = None
    message: str | None = None
    details: str | None = None


class ErrorResponse(_ApiModel):
    error: ErrorBody
