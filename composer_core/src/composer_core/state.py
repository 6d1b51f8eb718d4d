"""Session metadata and conversation snapshots."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from composer_core.messages import ComposerMessage


class SessionRecord(BaseModel):
    """Persisted metadata for one thread.

    Owned by a ``SessionStore``; the transformer only reads it.

    Attributes:
        thread_id: Stable thread identifier.
        title: Display title, usually derived from the first turn.
        created_at: When the thread was created.
        parent_thread_id: Thread this one was branched from, if any.
        workspace: Workspace the thread belongs to.
        files: Context files attached to the composer for this thread.
        command: Pending shell command proposed for this thread.
    """

    thread_id: str
    title: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    parent_thread_id: str | None = None
    workspace: str | None = None
    files: list[str] = Field(default_factory=list)
    command: str | None = None


class ConversationState(BaseModel):
    """Immutable snapshot of a thread, ready to send to a client.

    ``messages`` keeps the agent's emission order. An empty sequence is a
    valid thread (e.g. freshly branched).
    """

    model_config = ConfigDict(frozen=True)

    thread_id: str
    messages: tuple[ComposerMessage, ...] = ()
    title: str | None = None
    created_at: datetime | None = None
    parent_thread_id: str | None = None
    can_resume: bool | None = None
    workspace: str | None = None
    files: tuple[str, ...] = ()
    command: str | None = None
