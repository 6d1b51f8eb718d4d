"""In-process session store."""

from datetime import UTC, datetime

from composer_core.state import SessionRecord


def clone_for_branch(
    source: SessionRecord | None, source_thread_id: str, thread_id: str
) -> SessionRecord:
    """Build the record of a thread branched from ``source``."""
    if source is None:
        return SessionRecord(thread_id=thread_id, parent_thread_id=source_thread_id)
    return source.model_copy(
        update={
            "thread_id": thread_id,
            "parent_thread_id": source_thread_id,
            "created_at": datetime.now(UTC),
            "files": list(source.files),
        }
    )


class InMemorySessionStore:
    """Session store backed by a dict. Contents are lost on exit."""

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    async def get(self, thread_id: str) -> SessionRecord | None:
        record = self._records.get(thread_id)
        return record.model_copy(deep=True) if record else None

    async def save(self, record: SessionRecord) -> None:
        self._records[record.thread_id] = record.model_copy(deep=True)

    async def delete(self, thread_id: str) -> bool:
        return self._records.pop(thread_id, None) is not None

    async def branch(self, source_thread_id: str, thread_id: str) -> SessionRecord:
        record = clone_for_branch(
            self._records.get(source_thread_id), source_thread_id, thread_id
        )
        await self.save(record)
        return record

    async def list_threads(self, workspace: str | None = None) -> list[SessionRecord]:
        records = [
            r.model_copy(deep=True)
            for r in self._records.values()
            if workspace is None or r.workspace == workspace
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)
