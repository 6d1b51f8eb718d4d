"""Session records persisted as JSON files.

Records live at ``{sessions_dir}/{thread_id}.json`` so the agent host and
other tools can share them across process restarts.
"""

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from composer_core.state import SessionRecord
from composer_core.storage.memory import clone_for_branch

logger = logging.getLogger(__name__)


class JsonSessionStore:
    """Session store with one JSON file per thread.

    File access is synchronous and wrapped with asyncio.to_thread(). A file
    that cannot be parsed is logged and treated as missing.

    Args:
        sessions_dir: Directory holding the session files. Created if missing.
    """

    def __init__(self, sessions_dir: Path) -> None:
        self._sessions_dir = sessions_dir
        self._sessions_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, thread_id: str) -> Path:
        if not thread_id or "/" in thread_id or "\\" in thread_id or thread_id.startswith("."):
            raise ValueError(f"Invalid thread id for a session file: {thread_id!r}")
        return self._sessions_dir / f"{thread_id}.json"

    def _load(self, path: Path) -> SessionRecord | None:
        try:
            return SessionRecord.model_validate_json(path.read_bytes())
        except FileNotFoundError:
            return None
        except ValidationError as e:
            logger.warning("skipping unreadable session file %s: %s", path, e.errors()[0]["msg"])
            return None

    async def get(self, thread_id: str) -> SessionRecord | None:
        return await asyncio.to_thread(self._load, self._path(thread_id))

    async def save(self, record: SessionRecord) -> None:
        path = self._path(record.thread_id)
        await asyncio.to_thread(path.write_text, record.model_dump_json(indent=2))

    async def delete(self, thread_id: str) -> bool:
        path = self._path(thread_id)

        def _delete() -> bool:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            return True

        return await asyncio.to_thread(_delete)

    async def branch(self, source_thread_id: str, thread_id: str) -> SessionRecord:
        record = clone_for_branch(await self.get(source_thread_id), source_thread_id, thread_id)
        await self.save(record)
        return record

    async def list_threads(self, workspace: str | None = None) -> list[SessionRecord]:
        def _load_all() -> list[SessionRecord]:
            loaded = (self._load(path) for path in self._sessions_dir.glob("*.json"))
            return [record for record in loaded if record is not None]

        records = [
            record
            for record in await asyncio.to_thread(_load_all)
            if workspace is None or record.workspace == workspace
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)
