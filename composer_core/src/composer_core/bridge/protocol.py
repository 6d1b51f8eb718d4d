"""Wire protocol between the UI process and the agent-hosting process.

Three frame kinds travel over a transport:

- ``Request``: UI -> agent, answered by exactly one ``Response`` with the
  same ``request_id``.
- ``Response``: carries either a result or an error.
- ``Notification``: fire-and-forget, e.g. compose progress phases.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from composer_core.runtime.protocol import TurnInput
from composer_core.state import ConversationState

COMPOSE = "compose"
COMPOSE_PHASE = "compose-phase"
CANCEL = "cancel"
BRANCH_THREAD = "branch-thread"
DELETE_THREAD = "delete-thread"
CLEAR_THREAD = "clear-thread"
DELETE_INDEX = "delete-index"
UPDATE_FILE = "update-file"
UPDATE_COMMAND = "update-command"
LOAD_THREAD = "load-thread"


class ErrorInfo(BaseModel):
    """Error carried by a failed response."""

    code: str
    message: str


class Request(BaseModel):
    kind: Literal["request"] = "request"
    request_id: str
    command: str
    params: dict[str, Any] = Field(default_factory=dict)


class Response(BaseModel):
    kind: Literal["response"] = "response"
    request_id: str
    result: Any = None
    error: ErrorInfo | None = None


class Notification(BaseModel):
    kind: Literal["notification"] = "notification"
    command: str
    params: dict[str, Any] = Field(default_factory=dict)


Frame = Annotated[Request | Response | Notification, Field(discriminator="kind")]

frame_adapter: TypeAdapter[Frame] = TypeAdapter(Frame)


# Command params


class ComposeRequest(TurnInput):
    """Start or continue a turn on ``thread_id``."""

    thread_id: str


class ComposeResult(BaseModel):
    """Final answer to a compose request.

    ``cancelled`` is set when the turn was stopped; ``state`` then holds
    whatever the agent produced before stopping.
    """

    state: ConversationState
    cancelled: bool = False


class ComposePhase(BaseModel):
    """Progress notification for an outstanding compose request.

    ``seq`` increases by one per notification of the same request, so a
    client can order phases regardless of when the final response lands.
    """

    thread_id: str
    request_id: str
    phase: str
    seq: int


class CancelRequest(BaseModel):
    """Cancel the in-flight turn of ``thread_id``, or of every thread."""

    thread_id: str | None = None


class BranchThreadRequest(BaseModel):
    """Start ``thread_id`` from ``source_thread_id``, or empty without one."""

    thread_id: str
    source_thread_id: str | None = None


class ThreadRequest(BaseModel):
    """Params naming a single thread (delete-thread, clear-thread, load-thread)."""

    thread_id: str


class UpdateFilesRequest(BaseModel):
    thread_id: str
    files: list[str]


class UpdateCommandRequest(BaseModel):
    thread_id: str
    command: str | None
