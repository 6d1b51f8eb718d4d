from typing import Protocol

from composer_core.state import SessionRecord


class SessionStore(Protocol):
    """Protocol for session metadata persistence.

    Records are keyed by thread id. Stores hand out copies, so callers can
    modify a returned record and ``save`` it back.
    """

    async def get(self, thread_id: str) -> SessionRecord | None:
        """Get the record for a thread, or None if it does not exist."""
        ...

    async def save(self, record: SessionRecord) -> None:
        """Create or replace the record for ``record.thread_id``."""
        ...

    async def delete(self, thread_id: str) -> bool:
        """Delete a record. Returns True if one existed."""
        ...

    async def branch(self, source_thread_id: str, thread_id: str) -> SessionRecord:
        """Clone a record into a new thread.

        The clone keeps the source title and auxiliary state, gets a fresh
        ``created_at`` and records ``source_thread_id`` as its parent. A
        missing source yields a bare record that still names its parent.
        """
        ...

    async def list_threads(self, workspace: str | None = None) -> list[SessionRecord]:
        """List records, newest first, optionally filtered by workspace."""
        ...
