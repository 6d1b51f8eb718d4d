"""composer-host CLI entry point.

Serves the composer bridge over stdin/stdout for a UI process that spawned
this one. Frames are newline-delimited JSON; logs go to stderr.

Usage:
    composer-host --graph my_agent.graph:graph --workspace my-project
"""

import argparse
import asyncio
import importlib
import logging
import sys
from pathlib import Path
from typing import Any

from composer_core.bridge.host import ComposerHost
from composer_core.bridge.transport import StreamTransport
from composer_core.config import ComposerConfig
from composer_core.runtime.langgraph import LangGraphRuntime
from composer_core.storage.json_store import JsonSessionStore

logger = logging.getLogger(__name__)


def load_graph(ref: str) -> Any:
    """Import a compiled graph from ``module:attribute``.

    A callable attribute is called with no arguments and must return the
    compiled graph.
    """
    module_name, _, attr = ref.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Expected 'module:attribute', got {ref!r}")
    target = getattr(importlib.import_module(module_name), attr)
    return target() if callable(target) and not hasattr(target, "astream") else target


async def open_stdio_transport(limit: int) -> StreamTransport:
    """Wrap this process's stdin/stdout in a StreamTransport.

    ``limit`` is the largest frame, in bytes, the reader accepts.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    write_transport, write_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(write_transport, write_protocol, reader, loop)
    return StreamTransport(reader, writer)


async def serve(graph_spec: str, workspace: str, config: ComposerConfig) -> None:
    runtime = LangGraphRuntime(load_graph(graph_spec))
    sessions = JsonSessionStore(config.get_sessions_path())
    transport = await open_stdio_transport(config.max_frame_bytes)
    host = ComposerHost(transport, runtime, sessions, workspace=workspace, config=config)
    try:
        await host.serve()
    finally:
        await transport.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="composer-host",
        description="Serve the composer bridge over stdio",
    )
    parser.add_argument(
        "--graph",
        required=True,
        help="Compiled LangGraph graph (or factory) as module:attribute",
    )
    parser.add_argument("--workspace", required=True, help="Workspace identifier")
    parser.add_argument(
        "--home",
        type=Path,
        default=None,
        help="Storage home (default: $COMPOSER_HOME or ~/.composer)",
    )
    parser.add_argument(
        "--busy-policy",
        choices=["reject", "queue"],
        default=None,
        help="What to do with a compose request for a busy thread",
    )
    args = parser.parse_args()

    overrides: dict[str, Any] = {}
    if args.home is not None:
        overrides["home"] = args.home
    if args.busy_policy is not None:
        overrides["busy_policy"] = args.busy_policy
    config = ComposerConfig(**overrides)

    logging.basicConfig(
        level=config.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        asyncio.run(serve(args.graph, args.workspace, config))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
