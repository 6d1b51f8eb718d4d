"""Canonical transcript messages for composer-core.

These are the framework-agnostic messages a UI renders, persists and
branches. Raw agent messages are converted to these types by
``composer_core.transformer``.
"""

import base64
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


class ImageAttachment(BaseModel):
    """Binary image attached to a user message.

    Attributes:
        data: Raw image bytes.
        mime_type: Declared MIME type, e.g. ``image/png``.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str

    # Serialized as base64 text; strings are always read back as base64.
    @field_validator("data", mode="before")
    @classmethod
    def _decode_base64(cls, value: Any) -> Any:
        if isinstance(value, str):
            return base64.b64decode(value)
        return value

    @field_serializer("data", when_used="json")
    def _encode_base64(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    def to_data_url(self) -> str:
        """Encode the image back into a ``data:`` URL."""
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


class UserMessage(BaseModel):
    """A turn submitted by the user."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user"] = "user"
    id: str
    text: str = ""
    image: ImageAttachment | None = None

    @model_validator(mode="after")
    def _require_text_or_image(self) -> "UserMessage":
        if not self.text and self.image is None:
            raise ValueError("UserMessage needs text or an image")
        return self


class AssistantMessage(BaseModel):
    """A text fragment produced by the agent.

    Several fragments emitted from one raw message share its id.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["assistant"] = "assistant"
    id: str
    text: str


class ToolMessage(BaseModel):
    """One phase of a tool invocation.

    ``start`` is emitted when the agent requests the tool and carries its
    arguments. ``end`` is emitted when the result is available and carries the
    result instead. Both phases share ``tool_call_id``, which is the join key;
    ``id`` identifies the raw message that produced the event.

    Attributes:
        id: Id of the source raw message.
        tool_name: Name of the invoked tool.
        tool_call_id: Correlation id shared by the start and end phases.
        phase: ``start`` or ``end``.
        arguments: Arguments the tool was invoked with (start phase).
        result: Tool output (end phase).
        metadata: Opaque metadata copied from the raw message.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["tool"] = "tool"
    id: str
    tool_name: str
    tool_call_id: str
    phase: Literal["start", "end"]
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _start_has_no_result(self) -> "ToolMessage":
        if self.phase == "start" and self.result is not None:
            raise ValueError("A start-phase ToolMessage cannot carry a result")
        return self


ComposerMessage = Annotated[
    UserMessage | AssistantMessage | ToolMessage,
    Field(discriminator="role"),
]
