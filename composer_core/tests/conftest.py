import asyncio
from pathlib import Path
from uuid import uuid4

import pytest
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from composer_core.bridge.client import BridgeClient
from composer_core.bridge.host import ComposerHost
from composer_core.bridge.protocol import ComposePhase
from composer_core.bridge.transport import MemoryTransport
from composer_core.config import ComposerConfig
from composer_core.runtime.protocol import PhaseCallback, TurnInput
from composer_core.storage.memory import InMemorySessionStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


class MockRuntime:
    """Scripted agent runtime for testing.

    Each turn appends the user's HumanMessage, reports ``phases`` and then
    appends an echo AIMessage. When ``gate`` is set to an unset Event, the
    turn parks after each phase until the event is set (or it is cancelled).
    """

    def __init__(self) -> None:
        self.histories: dict[str, list[BaseMessage]] = {}
        self.phases = ["planning", "code-writing"]
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.index_present = True

    async def get_messages(self, thread_id: str) -> list[BaseMessage]:
        return list(self.histories.get(thread_id, []))

    async def can_resume(self, thread_id: str) -> bool:
        return bool(self.histories.get(thread_id))

    async def run_turn(self, thread_id: str, turn: TurnInput, on_phase: PhaseCallback) -> None:
        history = self.histories.setdefault(thread_id, [])
        n = len(history)
        content: list = [{"type": "text", "text": turn.input}]
        if turn.image is not None:
            content.append({"type": "image_url", "image_url": {"url": turn.image.to_data_url()}})
        history.append(HumanMessage(content=content, id=f"{thread_id}-h{n}"))
        self.started.set()

        for phase in self.phases:
            await on_phase(phase)
            if self.gate is not None:
                await self.gate.wait()

        history.append(AIMessage(content=f"echo: {turn.input}", id=f"{thread_id}-a{n}"))

    async def branch(self, source_thread_id: str, thread_id: str) -> None:
        self.histories[thread_id] = list(self.histories.get(source_thread_id, []))

    async def delete(self, thread_id: str) -> None:
        self.histories.pop(thread_id, None)

    async def clear(self, thread_id: str) -> None:
        self.histories[thread_id] = []

    async def delete_index(self) -> bool:
        existed = self.index_present
        self.index_present = False
        return existed


@pytest.fixture
def png_bytes() -> bytes:
    """Provide a small binary image payload."""
    return PNG_BYTES


@pytest.fixture
def sample_thread_id() -> str:
    """Provide a sample thread ID."""
    return f"thread-{uuid4()}"


@pytest.fixture
def composer_config(tmp_path: Path) -> ComposerConfig:
    """Config with storage under tmp_path and a short request timeout."""
    return ComposerConfig(home=tmp_path / ".composer", request_timeout_seconds=5.0)


@pytest.fixture
def mock_runtime() -> MockRuntime:
    """Provide a scripted agent runtime."""
    return MockRuntime()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    """Provide an empty in-memory session store."""
    return InMemorySessionStore()


@pytest.fixture
def phases() -> list[ComposePhase]:
    """Collects compose phase notifications seen by the client."""
    return []


@pytest.fixture
async def bridge(
    mock_runtime: MockRuntime,
    session_store: InMemorySessionStore,
    composer_config: ComposerConfig,
    phases: list[ComposePhase],
):
    """BridgeClient connected to a ComposerHost over an in-memory transport."""
    ui_end, agent_end = MemoryTransport.pair()
    host = ComposerHost(
        agent_end,
        mock_runtime,
        session_store,
        workspace="demo-workspace",
        config=composer_config,
    )
    serve_task = asyncio.create_task(host.serve())

    async def on_phase(phase: ComposePhase) -> None:
        phases.append(phase)

    async with BridgeClient(ui_end, config=composer_config, on_phase=on_phase) as client:
        yield client

    serve_task.cancel()
    await asyncio.gather(serve_task, return_exceptions=True)
