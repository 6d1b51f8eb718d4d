"""Session transport bridge between the UI process and the agent host.

Usage:
    ```python
    from composer_core.bridge import BridgeClient, ComposerHost, MemoryTransport
    from composer_core.storage import InMemorySessionStore

    ui_end, agent_end = MemoryTransport.pair()
    host = ComposerHost(agent_end, runtime, InMemorySessionStore(), workspace="demo")
    serve_task = asyncio.create_task(host.serve())

    async with BridgeClient(ui_end) as client:
        result = await client.compose("thread-1", "Hello")
    ```
"""

from composer_core.bridge.client import BridgeClient
from composer_core.bridge.host import ComposerHost
from composer_core.bridge.protocol import (
    ComposePhase,
    ComposeRequest,
    ComposeResult,
    ErrorInfo,
    Frame,
    Notification,
    Request,
    Response,
)
from composer_core.bridge.tasks import ActiveTurnRegistry
from composer_core.bridge.transport import MemoryTransport, StreamTransport, Transport

__all__ = [
    "ActiveTurnRegistry",
    "BridgeClient",
    "ComposePhase",
    "ComposeRequest",
    "ComposeResult",
    "ComposerHost",
    "ErrorInfo",
    "Frame",
    "MemoryTransport",
    "Notification",
    "Request",
    "Response",
    "StreamTransport",
    "Transport",
]
