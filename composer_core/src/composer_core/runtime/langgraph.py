"""Agent runtime backed by a compiled LangGraph graph.

The graph must be compiled with a checkpointer; thread state (and therefore
the raw message history) lives in that checkpointer.

Usage:
    ```python
    from langgraph.checkpoint.memory import MemorySaver

    graph = builder.compile(checkpointer=MemorySaver())
    runtime = LangGraphRuntime(graph)
    await runtime.run_turn("thread-1", TurnInput(input="Refactor auth.py"), on_phase)
    history = await runtime.get_messages("thread-1")
    ```
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from langchain_core.messages import HumanMessage
from langchain_core.runnables import RunnableConfig

from composer_core.runtime.protocol import PhaseCallback, TurnInput

if TYPE_CHECKING:
    from langgraph.graph.state import CompiledStateGraph

logger = logging.getLogger(__name__)


class LangGraphRuntime:
    """AgentRuntime over a checkpointed LangGraph graph.

    Args:
        graph: Compiled graph with a checkpointer.
        messages_key: State key holding the message list.
        files_key: State key receiving the turn's context files. Not sent
            when None.
        index_deleter: Coroutine function that removes the workspace
            retrieval index. ``delete_index`` is a no-op without it.
    """

    def __init__(
        self,
        graph: "CompiledStateGraph",
        *,
        messages_key: str = "messages",
        files_key: str | None = None,
        index_deleter: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        if graph.checkpointer is None:
            raise ValueError("LangGraphRuntime needs a graph compiled with a checkpointer")
        self._graph = graph
        self._messages_key = messages_key
        self._files_key = files_key
        self._index_deleter = index_deleter

    def _config(self, thread_id: str) -> RunnableConfig:
        return {"configurable": {"thread_id": thread_id}}

    async def get_messages(self, thread_id: str) -> list[Any]:
        snapshot = await self._graph.aget_state(self._config(thread_id))
        return list(snapshot.values.get(self._messages_key, []))

    async def can_resume(self, thread_id: str) -> bool:
        snapshot = await self._graph.aget_state(self._config(thread_id))
        return bool(snapshot.next)

    async def run_turn(self, thread_id: str, turn: TurnInput, on_phase: PhaseCallback) -> None:
        payload: dict[str, Any] = {self._messages_key: [self.build_human_message(turn)]}
        if self._files_key:
            payload[self._files_key] = list(turn.context_files)

        logger.info("run_turn thread_id=%s files=%d", thread_id, len(turn.context_files))
        async for update in self._graph.astream(
            payload, self._config(thread_id), stream_mode="updates"
        ):
            for node in update:
                await on_phase("interrupt" if node == "__interrupt__" else node)

    def build_human_message(self, turn: TurnInput) -> HumanMessage:
        """Build the HumanMessage that starts a turn."""
        content: list[str | dict[str, Any]] = [{"type": "text", "text": turn.input}]
        if turn.image is not None:
            content.append({"type": "image_url", "image_url": {"url": turn.image.to_data_url()}})
        return HumanMessage(content=content, id=str(uuid4()))

    async def branch(self, source_thread_id: str, thread_id: str) -> None:
        checkpointer = self._graph.checkpointer
        source = await checkpointer.aget_tuple(self._config(source_thread_id))
        if source is None:
            logger.debug("branch source_thread_id=%s has no checkpoint", source_thread_id)
            return

        target: RunnableConfig = {"configurable": {"thread_id": thread_id, "checkpoint_ns": ""}}
        await checkpointer.aput(
            target,
            source.checkpoint,
            source.metadata,
            source.checkpoint["channel_versions"],
        )
        logger.info("branched thread %s -> %s", source_thread_id, thread_id)

    async def delete(self, thread_id: str) -> None:
        await self._graph.checkpointer.adelete_thread(thread_id)

    async def clear(self, thread_id: str) -> None:
        # Thread history is its checkpoint chain.
        await self._graph.checkpointer.adelete_thread(thread_id)
        logger.info("cleared thread %s", thread_id)

    async def delete_index(self) -> bool:
        if self._index_deleter is None:
            return False
        return await self._index_deleter()
