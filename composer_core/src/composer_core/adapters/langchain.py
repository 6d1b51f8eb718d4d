"""LangChain message adapter.

Converts LangChain messages (HumanMessage, AIMessage, AIMessageChunk,
ToolMessage, etc.) to composer-core's raw message union.
"""

import json
from typing import TYPE_CHECKING, Any

from composer_core.errors import InvalidMessageShape
from composer_core.raw import (
    AgentOutput,
    ControlMessage,
    HumanInput,
    ImageSegment,
    OpaqueSegment,
    RawMessage,
    RawToolCall,
    Segment,
    TextSegment,
    ToolResult,
)

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage


class LangChainAdapter:
    """Converts LangChain messages to raw agent messages.

    Dispatches on each message's ``type`` field rather than its class, so
    chunk and non-chunk variants are handled alike.

    Usage:
        ```python
        from langchain_core.messages import HumanMessage, AIMessage
        from composer_core.adapters.langchain import LangChainAdapter

        adapter = LangChainAdapter()
        raw = adapter.convert([
            HumanMessage(content="Read auth.py", id="h1"),
            AIMessage(content="Here's the file...", id="a1", tool_calls=[...]),
        ])
        ```

    Args:
        transient_key: ``additional_kwargs`` key that marks a human message
            as a transient placeholder.
    """

    def __init__(self, transient_key: str = "temp") -> None:
        self._transient_key = transient_key

    def convert(self, messages: list["BaseMessage"]) -> list[RawMessage]:
        """Convert a list of LangChain messages.

        Args:
            messages: List of LangChain BaseMessage objects.

        Returns:
            List of raw messages.
        """
        return [self.convert_single(msg) for msg in messages]

    def convert_single(self, message: "BaseMessage") -> RawMessage:
        """Convert a single LangChain message.

        Args:
            message: A LangChain BaseMessage object.

        Returns:
            Raw message. Unknown message types become ControlMessage.

        Raises:
            InvalidMessageShape: If a human, AI or tool message has no id, or
                a tool call has no id.
        """
        match message.type:
            case "human" | "HumanMessageChunk":
                return HumanInput(
                    id=self._require_id(message),
                    content=self._extract_segments(message.content),
                    transient=bool(message.additional_kwargs.get(self._transient_key)),
                )

            case "ai" | "AIMessageChunk":
                content = message.content
                return AgentOutput(
                    id=self._require_id(message),
                    content=content if isinstance(content, str) else self._extract_segments(content),
                    tool_calls=[
                        self._convert_tool_call(message, tc) for tc in (message.tool_calls or [])
                    ],
                    metadata=dict(message.additional_kwargs),
                )

            case "tool" | "ToolMessageChunk":
                metadata = dict(message.additional_kwargs)
                if getattr(message, "artifact", None) is not None:
                    metadata["artifact"] = message.artifact
                return ToolResult(
                    id=self._require_id(message),
                    name=message.name or "",
                    tool_call_id=message.tool_call_id,
                    result=self._extract_result(message.content),
                    metadata=metadata,
                )

            case other:
                return ControlMessage(id=message.id, type=other)

    def _require_id(self, message: "BaseMessage") -> str:
        if not message.id:
            raise InvalidMessageShape(f"LangChain {message.type} message has no id")
        return message.id

    def _convert_tool_call(self, message: "BaseMessage", tool_call: dict[str, Any]) -> RawToolCall:
        if not tool_call.get("id"):
            raise InvalidMessageShape(
                f"Tool call {tool_call.get('name')!r} in message {message.id!r} has no id"
            )
        return RawToolCall(
            id=tool_call["id"],
            name=tool_call.get("name", ""),
            args=tool_call.get("args", {}),
        )

    def _extract_segments(self, content: str | list[Any]) -> list[Segment]:
        """Normalize LangChain content into ordered segments.

        Handles plain strings, raw string blocks, ``text`` blocks,
        ``image_url`` blocks (string or ``{"url": ...}``) and base64 ``image``
        blocks in the standard content format.

        Args:
            content: LangChain message content.

        Returns:
            Ordered list of segments.
        """
        if isinstance(content, str):
            return [TextSegment(text=content)]

        segments: list[Segment] = []
        for block in content:
            if isinstance(block, str):
                segments.append(TextSegment(text=block))
                continue

            block_type = block.get("type", "unknown")
            if block_type == "text":
                segments.append(TextSegment(text=block.get("text", "")))
            elif block_type == "image_url":
                image_url = block.get("image_url")
                url = image_url.get("url", "") if isinstance(image_url, dict) else image_url
                segments.append(ImageSegment(url=url or ""))
            elif block_type == "image" and (data := block.get("base64") or block.get("data")):
                mime_type = block.get("mime_type", "image/jpeg")
                segments.append(ImageSegment(url=f"data:{mime_type};base64,{data}"))
            else:
                segments.append(OpaqueSegment(type=block_type, data=dict(block)))
        return segments

    def _extract_result(self, content: str | list[Any]) -> Any:
        """Decode tool output. JSON objects and arrays become structured values."""
        if isinstance(content, str) and content.lstrip().startswith(("{", "[")):
            try:
                return json.loads(content)
            except json.JSONDecodeError:
                return content
        return content
