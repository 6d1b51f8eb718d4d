"""Tests for session stores."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from composer_core.state import SessionRecord
from composer_core.storage.json_store import JsonSessionStore
from composer_core.storage.memory import InMemorySessionStore


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path: Path):
    """Run each test against both store implementations."""
    if request.param == "memory":
        return InMemorySessionStore()
    return JsonSessionStore(tmp_path / "sessions")


class TestSessionStores:
    """Behavior shared by every SessionStore."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store) -> None:
        """Unknown threads have no record."""
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_save_and_get(self, store) -> None:
        """Saved records come back equal."""
        record = SessionRecord(thread_id="t1", title="Fix auth", workspace="ws", files=["a.py"])

        await store.save(record)

        assert await store.get("t1") == record

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, store) -> None:
        """Mutating a fetched record does not change the store until saved."""
        await store.save(SessionRecord(thread_id="t1", files=["a.py"]))

        fetched = await store.get("t1")
        fetched.files.append("b.py")

        assert (await store.get("t1")).files == ["a.py"]

    @pytest.mark.asyncio
    async def test_delete(self, store) -> None:
        """Delete reports whether a record existed."""
        await store.save(SessionRecord(thread_id="t1"))

        assert await store.delete("t1") is True
        assert await store.delete("t1") is False
        assert await store.get("t1") is None

    @pytest.mark.asyncio
    async def test_branch_clones_metadata(self, store) -> None:
        """Branching copies title and auxiliary state and records the parent."""
        created = datetime(2026, 1, 1, tzinfo=UTC)
        await store.save(
            SessionRecord(
                thread_id="t1",
                title="Fix auth",
                created_at=created,
                workspace="ws",
                files=["a.py"],
                command="pytest",
            )
        )

        branched = await store.branch("t1", "t2")

        assert branched.thread_id == "t2"
        assert branched.parent_thread_id == "t1"
        assert branched.title == "Fix auth"
        assert branched.files == ["a.py"]
        assert branched.command == "pytest"
        assert branched.created_at > created
        assert await store.get("t2") == branched
        assert (await store.get("t1")).parent_thread_id is None

    @pytest.mark.asyncio
    async def test_branch_missing_source(self, store) -> None:
        """Branching an unknown thread still yields a record naming its parent."""
        branched = await store.branch("ghost", "t2")

        assert branched.thread_id == "t2"
        assert branched.parent_thread_id == "ghost"
        assert branched.title is None

    @pytest.mark.asyncio
    async def test_list_threads(self, store) -> None:
        """Threads are listed newest first, optionally by workspace."""
        now = datetime.now(UTC)
        await store.save(SessionRecord(thread_id="old", workspace="ws", created_at=now - timedelta(days=1)))
        await store.save(SessionRecord(thread_id="new", workspace="ws", created_at=now))
        await store.save(SessionRecord(thread_id="other", workspace="elsewhere", created_at=now))

        assert [r.thread_id for r in await store.list_threads("ws")] == ["new", "old"]
        assert len(await store.list_threads()) == 3


class TestJsonSessionStore:
    """JSON-file specific behavior."""

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path: Path) -> None:
        """A new store over the same directory sees earlier records."""
        await JsonSessionStore(tmp_path).save(SessionRecord(thread_id="t1", title="kept"))

        record = await JsonSessionStore(tmp_path).get("t1")

        assert record.title == "kept"
        assert (tmp_path / "t1.json").exists()

    @pytest.mark.asyncio
    async def test_rejects_path_like_ids(self, tmp_path: Path) -> None:
        """Thread ids cannot escape the sessions directory."""
        store = JsonSessionStore(tmp_path)

        with pytest.raises(ValueError):
            await store.get("../etc/passwd")

    @pytest.mark.asyncio
    async def test_list_skips_unreadable_files(self, tmp_path: Path) -> None:
        """Corrupt session files are skipped when listing."""
        store = JsonSessionStore(tmp_path)
        await store.save(SessionRecord(thread_id="t1"))
        (tmp_path / "broken.json").write_text("{not json")

        assert [r.thread_id for r in await store.list_threads()] == ["t1"]

    @pytest.mark.asyncio
    async def test_get_treats_unreadable_file_as_missing(self, tmp_path: Path) -> None:
        """A corrupt session file reads as no record, like it does when listing."""
        store = JsonSessionStore(tmp_path)
        (tmp_path / "t1.json").write_text('{"thread_id": ')

        assert await store.get("t1") is None

        await store.save(SessionRecord(thread_id="t1", title="rewritten"))
        assert (await store.get("t1")).title == "rewritten"
