"""Conversion of raw agent messages into transcript messages and snapshots.

``map_message`` classifies one raw message into zero or more canonical
messages. ``transform_state`` folds a full history plus session metadata into
a ``ConversationState``. Both are pure: they never mutate their inputs and the
same history always yields the same snapshot.

Tool calls are emitted as independent ``start`` and ``end`` events. Pairing
them by ``tool_call_id`` is left to consumers.
"""

import logging
from collections.abc import Iterable

from composer_core.errors import InvalidMessageShape, MissingSessionContext
from composer_core.images import decode_data_url
from composer_core.messages import (
    AssistantMessage,
    ComposerMessage,
    ToolMessage,
    UserMessage,
)
from composer_core.raw import (
    AgentOutput,
    HumanInput,
    RawMessage,
    ToolResult,
)
from composer_core.state import ConversationState, SessionRecord

logger = logging.getLogger(__name__)


def map_message(message: RawMessage) -> list[ComposerMessage]:
    """Classify one raw message into canonical messages.

    Args:
        message: A raw agent message.

    Returns:
        Canonical messages in emission order. Transient user messages and
        control messages yield an empty list.

    Raises:
        InvalidMessageShape: If a user message has neither text nor an image.
    """
    match message:
        case HumanInput(transient=True):
            return []
        case HumanInput():
            return [_map_human(message)]
        case AgentOutput():
            return _map_agent(message)
        case ToolResult():
            return [
                ToolMessage(
                    id=message.id,
                    tool_name=message.name,
                    tool_call_id=message.tool_call_id,
                    phase="end",
                    result=message.result,
                    metadata=message.metadata,
                )
            ]
        case _:
            logger.debug("dropping raw message kind=%s", getattr(message, "kind", None))
            return []


def map_messages(messages: Iterable[RawMessage]) -> list[ComposerMessage]:
    """Map a raw history, flattening per-message output in order."""
    return [mapped for message in messages for mapped in map_message(message)]


def transform_state(
    messages: Iterable[RawMessage],
    thread_id: str | None,
    workspace: str | None,
    session: SessionRecord | None,
    can_resume: bool | None = None,
) -> ConversationState:
    """Assemble a conversation snapshot.

    Args:
        messages: Full ordered raw history of the thread.
        thread_id: Thread being assembled.
        workspace: Workspace identifier.
        session: Session metadata from the session store.
        can_resume: Whether the agent holds durable state to continue from.

    Returns:
        A new immutable ConversationState.

    Raises:
        MissingSessionContext: If the thread id or session record is missing,
            or the record belongs to another thread.
    """
    if not thread_id:
        raise MissingSessionContext("transform_state requires a thread id")
    if session is None:
        raise MissingSessionContext(f"No session record for thread {thread_id!r}")
    if session.thread_id != thread_id:
        raise MissingSessionContext(
            f"Session record {session.thread_id!r} does not belong to thread {thread_id!r}"
        )

    mapped = map_messages(messages)
    logger.debug("transform_state thread_id=%s messages=%d", thread_id, len(mapped))

    return ConversationState(
        thread_id=thread_id,
        messages=tuple(mapped),
        title=session.title,
        created_at=session.created_at,
        parent_thread_id=session.parent_thread_id,
        can_resume=can_resume,
        workspace=workspace,
        files=tuple(session.files),
        command=session.command,
    )


def _map_human(message: HumanInput) -> UserMessage:
    texts = [segment.text for segment in message.content if segment.type == "text"]
    images = [segment.url for segment in message.content if segment.type == "image_url"]

    text = texts[-1] if texts else ""
    if not text and not images:
        raise InvalidMessageShape(f"User message {message.id!r} has no text and no image")

    # First image wins; the UI only attaches one per turn.
    if len(images) > 1:
        logger.debug(
            "user message id=%s has %d images, keeping the first", message.id, len(images)
        )

    return UserMessage(
        id=message.id,
        text=text,
        image=decode_data_url(images[0]) if images else None,
    )


def _map_agent(message: AgentOutput) -> list[ComposerMessage]:
    results: list[ComposerMessage] = []

    if isinstance(message.content, str):
        results.append(AssistantMessage(id=message.id, text=message.content))
    else:
        results.extend(
            AssistantMessage(id=message.id, text=segment.text)
            for segment in message.content
            if segment.type == "text"
        )

    results.extend(
        ToolMessage(
            id=message.id,
            tool_name=call.name,
            tool_call_id=call.id,
            phase="start",
            arguments=call.args,
            metadata=message.metadata,
        )
        for call in message.tool_calls
    )
    return results
