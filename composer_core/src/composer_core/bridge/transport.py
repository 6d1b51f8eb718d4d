"""Frame transports for the bridge.

``MemoryTransport`` links two endpoints in the same event loop.
``StreamTransport`` exchanges newline-delimited JSON frames over asyncio
streams (pipes, sockets, a child process's stdio).
"""

import asyncio
import logging
from typing import Protocol

from pydantic import ValidationError

from composer_core.bridge.protocol import Frame, frame_adapter
from composer_core.errors import TransportError

logger = logging.getLogger(__name__)

_CLOSED = object()


class Transport(Protocol):
    """Protocol for a bidirectional, ordered frame channel.

    Frames sent from one end arrive at the other in send order.
    """

    async def send(self, frame: Frame) -> None:
        """Send a frame. Raises TransportError if the channel is closed."""
        ...

    async def receive(self) -> Frame:
        """Wait for the next frame. Raises TransportError once closed."""
        ...

    async def close(self) -> None:
        """Close the channel. Both ends see TransportError afterwards."""
        ...


class MemoryTransport:
    """One end of an in-process channel. Create linked ends with ``pair``."""

    def __init__(self, inbox: asyncio.Queue, outbox: asyncio.Queue) -> None:
        self._inbox = inbox
        self._outbox = outbox
        self._closed = False

    @classmethod
    def pair(cls) -> tuple["MemoryTransport", "MemoryTransport"]:
        """Create two linked ends, e.g. (ui_end, agent_end)."""
        left: asyncio.Queue = asyncio.Queue()
        right: asyncio.Queue = asyncio.Queue()
        return cls(inbox=left, outbox=right), cls(inbox=right, outbox=left)

    async def send(self, frame: Frame) -> None:
        if self._closed:
            raise TransportError("Transport is closed")
        await self._outbox.put(frame)

    async def receive(self) -> Frame:
        if self._closed:
            raise TransportError("Transport is closed")
        frame = await self._inbox.get()
        if frame is _CLOSED:
            self._closed = True
            raise TransportError("Transport closed by peer")
        return frame

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._outbox.put(_CLOSED)
        await self._inbox.put(_CLOSED)


class StreamTransport:
    """Newline-delimited JSON frames over an asyncio reader/writer pair.

    The reader's ``limit`` bounds the size of a single frame, so create it
    with room for image payloads (see ``ComposerConfig.max_frame_bytes``).
    Lines that do not parse as a frame, or that exceed the limit, are logged
    and skipped.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self._reader = reader
        self._writer = writer
        self._write_lock = asyncio.Lock()

    async def send(self, frame: Frame) -> None:
        line = frame.model_dump_json().encode("utf-8") + b"\n"
        async with self._write_lock:
            try:
                self._writer.write(line)
                await self._writer.drain()
            except (ConnectionError, RuntimeError) as e:
                raise TransportError(f"Failed to send frame: {e}") from e

    async def receive(self) -> Frame:
        while True:
            line = await self._read_line()
            if line is None or not line.strip():
                continue
            try:
                return frame_adapter.validate_json(line)
            except ValidationError as e:
                logger.warning("skipping malformed frame: %s", e.errors()[0]["msg"])

    async def close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, RuntimeError):
            logger.debug("writer already closed")

    async def _read_line(self) -> bytes | None:
        """Read one line. Returns None when an oversized line was dropped."""
        try:
            return await self._reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            if e.partial.strip():
                logger.debug("dropping %d bytes of unterminated frame at EOF", len(e.partial))
            raise TransportError("Transport closed by peer") from None
        except asyncio.LimitOverrunError as e:
            dropped = await self._discard_line(e.consumed)
            logger.warning("skipping frame of %d bytes, over the reader limit", dropped)
            return None
        except ConnectionError as e:
            raise TransportError(f"Failed to read frame: {e}") from e

    async def _discard_line(self, consumed: int) -> int:
        dropped = 0
        while True:
            try:
                await self._reader.readexactly(consumed)
                dropped += consumed
                dropped += len(await self._reader.readuntil(b"\n"))
                return dropped
            except asyncio.LimitOverrunError as e:
                consumed = e.consumed
            except asyncio.IncompleteReadError:
                raise TransportError("Transport closed by peer") from None
            except ConnectionError as e:
                raise TransportError(f"Failed to read frame: {e}") from e
