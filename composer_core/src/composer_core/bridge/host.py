"""Agent-side end of the bridge.

``ComposerHost`` serves UI requests against an ``AgentRuntime`` and a
``SessionStore``. Every request runs in its own task so a long compose never
blocks cancel requests or phase notifications on the same channel.
"""

import asyncio
import itertools
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from composer_core.adapters.langchain import LangChainAdapter
from composer_core.adapters.protocol import RawMessageAdapter
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
    ErrorInfo,
    Notification,
    Request,
    Response,
    ThreadRequest,
    UpdateCommandRequest,
    UpdateFilesRequest,
)
from composer_core.bridge.tasks import ActiveTurnRegistry
from composer_core.bridge.transport import Transport
from composer_core.config import ComposerConfig
from composer_core.errors import (
    ComposerError,
    MissingSessionContext,
    ThreadBusy,
    TransportError,
    UnknownCommand,
)
from composer_core.runtime.protocol import AgentRuntime
from composer_core.state import ConversationState, SessionRecord
from composer_core.storage.protocols import SessionStore
from composer_core.transformer import transform_state

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 80


def derive_title(text: str) -> str:
    """Title for a new thread: the first line of its first turn."""
    first_line = text.strip().splitlines()[0] if text.strip() else ""
    if not first_line:
        return "Image"
    if len(first_line) > TITLE_MAX_LENGTH:
        return first_line[: TITLE_MAX_LENGTH - 3].rstrip() + "..."
    return first_line


class ComposerHost:
    """Serves bridge requests for one workspace.

    Args:
        transport: Agent end of the channel.
        runtime: Agent runtime owning the raw histories.
        sessions: Session metadata store.
        workspace: Workspace identifier stamped on sessions and snapshots.
        adapter: Converts runtime messages to raw messages. Defaults to
            LangChainAdapter.
        config: Settings (busy policy, cancel timeout, transient key).
    """

    def __init__(
        self,
        transport: Transport,
        runtime: AgentRuntime,
        sessions: SessionStore,
        *,
        workspace: str,
        adapter: RawMessageAdapter | None = None,
        config: ComposerConfig | None = None,
    ) -> None:
        self._transport = transport
        self._runtime = runtime
        self._sessions = sessions
        self._workspace = workspace
        self._config = config or ComposerConfig()
        self._adapter = adapter or LangChainAdapter(transient_key=self._config.transient_key)

        self._turns = ActiveTurnRegistry()
        self._thread_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()
        self._request_tasks: set[asyncio.Task] = set()
        self._handlers: dict[str, Callable[[Request], Awaitable[Any]]] = {
            COMPOSE: self._compose,
            CANCEL: self._cancel,
            BRANCH_THREAD: self._branch_thread,
            DELETE_THREAD: self._delete_thread,
            CLEAR_THREAD: self._clear_thread,
            DELETE_INDEX: self._delete_index,
            UPDATE_FILE: self._update_file,
            UPDATE_COMMAND: self._update_command,
            LOAD_THREAD: self._load_thread,
        }

    async def serve(self) -> None:
        """Serve requests until the channel closes.

        In-flight requests are cancelled when serving stops.
        """
        logger.info("serving composer bridge for workspace %s", self._workspace)
        try:
            while True:
                try:
                    frame = await self._transport.receive()
                except TransportError as e:
                    logger.info("bridge channel closed: %s", e)
                    return

                match frame:
                    case Request():
                        task = asyncio.create_task(self._handle(frame))
                        self._request_tasks.add(task)
                        task.add_done_callback(self._request_tasks.discard)
                    case _:
                        logger.warning("ignoring %s frame from UI", frame.kind)
        finally:
            for task in list(self._request_tasks):
                task.cancel()
            await asyncio.gather(*self._request_tasks, return_exceptions=True)

    async def snapshot(self, thread_id: str) -> ConversationState:
        """Assemble the current snapshot of a thread.

        Raises:
            MissingSessionContext: If the thread has no session record.
        """
        session = await self._sessions.get(thread_id)
        raw = self._adapter.convert(await self._runtime.get_messages(thread_id))
        can_resume = await self._runtime.can_resume(thread_id)
        return transform_state(raw, thread_id, self._workspace, session, can_resume)

    async def _handle(self, request: Request) -> None:
        handler = self._handlers.get(request.command)
        try:
            if handler is None:
                raise UnknownCommand(f"Unknown command {request.command!r}")
            result = await handler(request)
            if isinstance(result, BaseModel):
                result = result.model_dump(mode="json")
            response = Response(request_id=request.request_id, result=result)
        except ValidationError as e:
            response = self._error(request, "invalid-params", str(e))
        except ComposerError as e:
            logger.info("%s failed: %s", request.command, e)
            response = self._error(request, e.code, str(e))
        except Exception as e:
            logger.exception("%s failed unexpectedly", request.command)
            response = self._error(request, "internal-error", str(e))

        try:
            await self._transport.send(response)
        except TransportError as e:
            logger.warning("could not deliver response to %s: %s", request.request_id, e)

    def _error(self, request: Request, code: str, message: str) -> Response:
        return Response(request_id=request.request_id, error=ErrorInfo(code=code, message=message))

    async def _notify(self, phase: ComposePhase) -> None:
        try:
            await self._transport.send(
                Notification(command=COMPOSE_PHASE, params=phase.model_dump(mode="json"))
            )
        except TransportError as e:
            logger.warning("dropping phase %s for %s: %s", phase.phase, phase.request_id, e)

    async def _compose(self, request: Request) -> ComposeResult:
        params = ComposeRequest.model_validate(request.params)
        thread_id = params.thread_id

        lock = self._thread_locks.setdefault(thread_id, asyncio.Lock())
        if lock.locked() and self._config.busy_policy == "reject":
            raise ThreadBusy(thread_id)

        # Locks live only while a compose holds or waits on them.
        self._lock_users[thread_id] += 1
        try:
            async with lock:
                return await self._run_turn(request, params)
        finally:
            self._lock_users[thread_id] -= 1
            if not self._lock_users[thread_id]:
                del self._lock_users[thread_id]
                del self._thread_locks[thread_id]

    async def _run_turn(self, request: Request, params: ComposeRequest) -> ComposeResult:
        thread_id = params.thread_id
        await self._ensure_session(params)

        seq = itertools.count()

        async def on_phase(phase: str) -> None:
            await self._notify(
                ComposePhase(
                    thread_id=thread_id,
                    request_id=request.request_id,
                    phase=phase,
                    seq=next(seq),
                )
            )

        turn = asyncio.create_task(self._runtime.run_turn(thread_id, params, on_phase))
        await self._turns.register(thread_id, turn)
        try:
            await asyncio.wait({turn})
        finally:
            await self._turns.unregister(thread_id)
            await self._stop(thread_id, turn)

        cancelled = turn.cancelled()
        if cancelled:
            logger.info("[thread:%s] turn cancelled, returning partial state", thread_id)
        elif (error := turn.exception()) is not None:
            raise error
        else:
            logger.info("[thread:%s] turn completed", thread_id)

        return ComposeResult(state=await self.snapshot(thread_id), cancelled=cancelled)

    async def _stop(self, thread_id: str, turn: asyncio.Task) -> None:
        if turn.done():
            return
        turn.cancel()
        try:
            await asyncio.wait_for(turn, timeout=self._config.cancel_timeout_seconds)
        except TimeoutError:
            logger.warning(
                "[thread:%s] turn didn't respond to cancel within %ss",
                thread_id,
                self._config.cancel_timeout_seconds,
            )
        except asyncio.CancelledError:
            pass

    async def _ensure_session(self, params: ComposeRequest) -> None:
        session = await self._sessions.get(params.thread_id)
        if session is None:
            session = SessionRecord(
                thread_id=params.thread_id,
                title=derive_title(params.input),
                workspace=self._workspace,
                files=list(params.context_files),
            )
            await self._sessions.save(session)
            logger.info("[thread:%s] created session %r", params.thread_id, session.title)
        elif not session.title:
            session.title = derive_title(params.input)
            await self._sessions.save(session)

    async def _require_session(self, thread_id: str) -> SessionRecord:
        session = await self._sessions.get(thread_id)
        if session is None:
            raise MissingSessionContext(f"No session record for thread {thread_id!r}")
        return session

    async def _cancel(self, request: Request) -> dict[str, list[str]]:
        params = CancelRequest.model_validate(request.params)
        if params.thread_id is None:
            return {"cancelled": await self._turns.cancel_all()}
        cancelled = await self._turns.cancel(params.thread_id)
        return {"cancelled": [params.thread_id] if cancelled else []}

    async def _branch_thread(self, request: Request) -> ConversationState:
        params = BranchThreadRequest.model_validate(request.params)
        if params.source_thread_id is None:
            await self._sessions.save(
                SessionRecord(thread_id=params.thread_id, workspace=self._workspace)
            )
            return await self.snapshot(params.thread_id)

        await self._runtime.branch(params.source_thread_id, params.thread_id)
        session = await self._sessions.branch(params.source_thread_id, params.thread_id)
        if session.workspace is None:
            session.workspace = self._workspace
            await self._sessions.save(session)
        return await self.snapshot(params.thread_id)

    async def _delete_thread(self, request: Request) -> dict[str, bool]:
        params = ThreadRequest.model_validate(request.params)
        await self._turns.cancel(params.thread_id)
        await self._runtime.delete(params.thread_id)
        return {"deleted": await self._sessions.delete(params.thread_id)}

    async def _clear_thread(self, request: Request) -> ConversationState:
        params = ThreadRequest.model_validate(request.params)
        await self._require_session(params.thread_id)
        await self._turns.cancel(params.thread_id)
        await self._runtime.clear(params.thread_id)
        logger.info("[thread:%s] history cleared", params.thread_id)
        return await self.snapshot(params.thread_id)

    async def _delete_index(self, request: Request) -> dict[str, bool]:
        return {"deleted": await self._runtime.delete_index()}

    async def _update_file(self, request: Request) -> ConversationState:
        params = UpdateFilesRequest.model_validate(request.params)
        session = await self._require_session(params.thread_id)
        session.files = list(params.files)
        await self._sessions.save(session)
        return await self.snapshot(params.thread_id)

    async def _update_command(self, request: Request) -> ConversationState:
        params = UpdateCommandRequest.model_validate(request.params)
        session = await self._require_session(params.thread_id)
        session.command = params.command
        await self._sessions.save(session)
        return await self.snapshot(params.thread_id)

    async def _load_thread(self, request: Request) -> ConversationState:
        params = ThreadRequest.model_validate(request.params)
        return await self.snapshot(params.thread_id)
