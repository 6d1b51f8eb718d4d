"""UI-side end of the bridge.

Usage:
    ```python
    ui_end, agent_end = MemoryTransport.pair()

    async def show_phase(phase: ComposePhase) -> None:
        print(phase.phase)

    async with BridgeClient(ui_end, on_phase=show_phase) as client:
        result = await client.compose("thread-1", "Add a health endpoint")
        render(result.state)
    ```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from composer_core.bridge.protocol import (
    BRANCH_THREAD,
    CANCEL,
    CLEAR_THREAD,
    COMPOSE,
    COMPOSE_PHASE,
    DELETE_INDEX,
    DELETE_THREAD,
    LOAD_THREAD,
    UPDATE_COMMAND,
    UPDATE_FILE,
    BranchThreadRequest,
    CancelRequest,
    ComposePhase,
    ComposeRequest,
    ComposeResult,
    Notification,
    Request,
    Response,
    ThreadRequest,
    UpdateCommandRequest,
    UpdateFilesRequest,
)
from composer_core.bridge.transport import Transport
from composer_core.config import ComposerConfig
from composer_core.errors import BridgeRequestError, RequestTimeout, TransportError
from composer_core.messages import ImageAttachment
from composer_core.state import ConversationState

logger = logging.getLogger(__name__)

PhaseHandler = Callable[[ComposePhase], Awaitable[None]]


class BridgeClient:
    """Sends requests to the agent host and routes what comes back.

    Each request resolves exactly once: the first response for a request id
    wins, later or unknown responses are logged and dropped. Phase
    notifications go to ``on_phase`` in arrival order, including ones that
    arrive after their compose response.

    Args:
        transport: UI end of the channel.
        config: Settings; ``request_timeout_seconds`` bounds every request.
        on_phase: Coroutine called for each compose phase notification.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        config: ComposerConfig | None = None,
        on_phase: PhaseHandler | None = None,
    ) -> None:
        self._transport = transport
        self._config = config or ComposerConfig()
        self._on_phase = on_phase
        self._pending: dict[str, asyncio.Future[Response]] = {}
        self._reader: asyncio.Task | None = None

    async def __aenter__(self) -> "BridgeClient":
        self.start()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.close()

    def start(self) -> None:
        """Start routing incoming frames."""
        if self._reader is None:
            self._reader = asyncio.create_task(self._read_loop())

    async def close(self) -> None:
        """Stop routing and close the transport. Pending requests fail."""
        if self._reader is not None:
            self._reader.cancel()
            await asyncio.gather(self._reader, return_exceptions=True)
            self._reader = None
        await self._transport.close()
        self._fail_pending(TransportError("Bridge client closed"))

    async def request(self, command: str, params: BaseModel | None = None) -> Any:
        """Send a request and wait for its result.

        Args:
            command: Command name.
            params: Command params.

        Returns:
            The JSON-compatible result.

        Raises:
            BridgeRequestError: If the host reported an error.
            RequestTimeout: If no response arrived in time.
            TransportError: If the channel failed.
        """
        request_id = str(uuid4())
        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._transport.send(
                Request(
                    request_id=request_id,
                    command=command,
                    params=params.model_dump(mode="json") if params else {},
                )
            )
            response = await asyncio.wait_for(future, self._config.request_timeout_seconds)
        except TimeoutError:
            raise RequestTimeout(
                f"{command} got no response within {self._config.request_timeout_seconds}s"
            ) from None
        finally:
            self._pending.pop(request_id, None)

        if response.error is not None:
            raise BridgeRequestError(response.error.code, response.error.message)
        return response.result

    async def compose(
        self,
        thread_id: str,
        text: str,
        context_files: list[str] | None = None,
        image: ImageAttachment | None = None,
    ) -> ComposeResult:
        """Run a turn and wait for the final snapshot."""
        params = ComposeRequest(
            thread_id=thread_id,
            input=text,
            context_files=context_files or [],
            image=image,
        )
        return ComposeResult.model_validate(await self.request(COMPOSE, params))

    async def cancel(self, thread_id: str | None = None) -> list[str]:
        """Cancel the in-flight turn of a thread, or of all threads."""
        result = await self.request(CANCEL, CancelRequest(thread_id=thread_id))
        return result["cancelled"]

    async def branch_thread(
        self, thread_id: str, source_thread_id: str | None = None
    ) -> ConversationState:
        """Start a thread from a copy of another, or an empty one without a source."""
        params = BranchThreadRequest(thread_id=thread_id, source_thread_id=source_thread_id)
        return ConversationState.model_validate(await self.request(BRANCH_THREAD, params))

    async def delete_thread(self, thread_id: str) -> bool:
        result = await self.request(DELETE_THREAD, ThreadRequest(thread_id=thread_id))
        return result["deleted"]

    async def clear_thread(self, thread_id: str) -> ConversationState:
        """Drop a thread's transcript but keep the thread."""
        return ConversationState.model_validate(
            await self.request(CLEAR_THREAD, ThreadRequest(thread_id=thread_id))
        )

    async def delete_index(self) -> bool:
        result = await self.request(DELETE_INDEX)
        return result["deleted"]

    async def update_files(self, thread_id: str, files: list[str]) -> ConversationState:
        params = UpdateFilesRequest(thread_id=thread_id, files=files)
        return ConversationState.model_validate(await self.request(UPDATE_FILE, params))

    async def update_command(self, thread_id: str, command: str | None) -> ConversationState:
        params = UpdateCommandRequest(thread_id=thread_id, command=command)
        return ConversationState.model_validate(await self.request(UPDATE_COMMAND, params))

    async def load_thread(self, thread_id: str) -> ConversationState:
        result = await self.request(LOAD_THREAD, ThreadRequest(thread_id=thread_id))
        return ConversationState.model_validate(result)

    async def _read_loop(self) -> None:
        while True:
            try:
                frame = await self._transport.receive()
            except TransportError as e:
                logger.info("bridge channel closed: %s", e)
                self._fail_pending(e)
                return

            match frame:
                case Response():
                    future = self._pending.get(frame.request_id)
                    if future is None or future.done():
                        logger.warning(
                            "dropping response for unknown or settled request %s",
                            frame.request_id,
                        )
                        continue
                    future.set_result(frame)
                case Notification(command=command) if command == COMPOSE_PHASE:
                    try:
                        phase = ComposePhase.model_validate(frame.params)
                    except ValidationError as e:
                        logger.warning(
                            "skipping malformed compose phase: %s", e.errors()[0]["msg"]
                        )
                        continue
                    await self._dispatch_phase(phase)
                case Notification():
                    logger.debug("ignoring notification %s", frame.command)
                case Request():
                    logger.warning("ignoring unexpected request %s from host", frame.command)

    async def _dispatch_phase(self, phase: ComposePhase) -> None:
        if self._on_phase is None:
            return
        try:
            await self._on_phase(phase)
        except Exception:
            logger.exception("phase handler failed for %s", phase.phase)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
