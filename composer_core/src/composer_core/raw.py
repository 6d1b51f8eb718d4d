"""Raw agent messages as an explicit tagged union.

Adapters normalize framework-specific messages (LangChain, ...) into these
types. Each variant carries a ``kind`` discriminant so the transformer can
dispatch with ``match`` instead of checking framework classes.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextSegment(BaseModel):
    """A text block within complex message content."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageSegment(BaseModel):
    """An image block; ``url`` is a base64 data URL."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image_url"] = "image_url"
    url: str


class OpaqueSegment(BaseModel):
    """Any other content block (tool_use, thinking, ...). Kept but never rendered."""

    model_config = ConfigDict(frozen=True)

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


Segment = TextSegment | ImageSegment | OpaqueSegment


class RawToolCall(BaseModel):
    """A pending tool invocation requested by the agent."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class HumanInput(BaseModel):
    """User-origin message.

    Attributes:
        id: Message id.
        content: Ordered content segments.
        transient: System-injected placeholder that must never reach a
            transcript.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["human"] = "human"
    id: str
    content: list[Segment] = Field(default_factory=list)
    transient: bool = False


class AgentOutput(BaseModel):
    """Assistant-origin message, possibly carrying tool invocations."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ai"] = "ai"
    id: str
    content: str | list[Segment] = ""
    tool_calls: list[RawToolCall] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Result of a tool invocation, linked to its call by ``tool_call_id``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tool"] = "tool"
    id: str
    name: str
    tool_call_id: str
    result: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ControlMessage(BaseModel):
    """Framework-internal message (system prompt, removal marker, ...)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["control"] = "control"
    id: str | None = None
    type: str = "unknown"


RawMessage = Annotated[
    HumanInput | AgentOutput | ToolResult | ControlMessage,
    Field(discriminator="kind"),
]
