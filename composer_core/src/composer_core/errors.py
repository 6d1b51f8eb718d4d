"""Error taxonomy for composer-core.

Every error carries a stable ``code`` that is used when the error crosses the
bridge as a failed response.
"""


class ComposerError(Exception):
    """Base class for all composer-core errors."""

    code = "composer-error"


class InvalidMessageShape(ComposerError):
    """A raw message has a shape that should never exist upstream."""

    code = "invalid-message-shape"


class MissingSessionContext(ComposerError):
    """The assembler was called without a thread id or session record."""

    code = "missing-session-context"


class ThreadBusy(ComposerError):
    """A compose request arrived while the thread already has a turn in flight."""

    code = "thread-busy"

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread {thread_id!r} already has a turn in flight")
        self.thread_id = thread_id


class UnknownCommand(ComposerError):
    """A request named a command the host does not serve."""

    code = "unknown-command"


class TransportError(ComposerError):
    """The channel to the other process failed or closed."""

    code = "transport-error"


class RequestTimeout(TransportError):
    """No response arrived within the configured timeout."""

    code = "request-timeout"


class BridgeRequestError(ComposerError):
    """A request failed on the remote side.

    Attributes:
        code: Wire error code reported by the remote side.
        message: Human-readable error message.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
