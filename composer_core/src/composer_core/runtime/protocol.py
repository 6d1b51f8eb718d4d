from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pydantic import BaseModel, Field, model_validator

from composer_core.messages import ImageAttachment

PhaseCallback = Callable[[str], Awaitable[None]]


class TurnInput(BaseModel):
    """What the user submitted for one turn.

    Attributes:
        input: Turn text.
        context_files: Workspace paths the user attached as context.
        image: Optional image attachment.
    """

    input: str = ""
    context_files: list[str] = Field(default_factory=list)
    image: ImageAttachment | None = None

    @model_validator(mode="after")
    def _require_text_or_image(self) -> "TurnInput":
        if not self.input and self.image is None:
            raise ValueError("A turn needs text or an image")
        return self


class AgentRuntime(Protocol):
    """Protocol for the process-local agent runtime.

    The runtime owns the raw message history of every thread. Callers only
    read it; ``get_messages`` returns framework-native messages in emission
    order, to be normalized by a ``RawMessageAdapter``.
    """

    async def get_messages(self, thread_id: str) -> list[Any]:
        """Get the raw message history of a thread (empty if unknown)."""
        ...

    async def can_resume(self, thread_id: str) -> bool:
        """Whether the thread has durable state the agent can continue from."""
        ...

    async def run_turn(self, thread_id: str, turn: TurnInput, on_phase: PhaseCallback) -> None:
        """Run one turn to completion, reporting progress through ``on_phase``.

        Cancellation is cooperative: cancelling the awaiting task stops the
        turn, and whatever was produced so far stays in the history.
        """
        ...

    async def branch(self, source_thread_id: str, thread_id: str) -> None:
        """Clone the history of ``source_thread_id`` into ``thread_id``."""
        ...

    async def delete(self, thread_id: str) -> None:
        """Remove all persisted state of a thread."""
        ...

    async def clear(self, thread_id: str) -> None:
        """Drop the history of a thread so its next turn starts fresh."""
        ...

    async def delete_index(self) -> bool:
        """Remove the workspace retrieval index. Returns True if one existed."""
        ...
