"""Tracking of in-flight turns so cancel requests can find them."""

import asyncio
import logging

logger = logging.getLogger(__name__)


class ActiveTurnRegistry:
    """Registry of running turn tasks, keyed by thread id."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    async def register(self, thread_id: str, task: asyncio.Task) -> None:
        """Register the running turn of a thread."""
        async with self._lock:
            self._tasks[thread_id] = task
        logger.debug("[thread:%s] turn registered", thread_id)

    async def unregister(self, thread_id: str) -> None:
        """Remove a thread's turn (when complete or cancelled)."""
        async with self._lock:
            self._tasks.pop(thread_id, None)

    async def cancel(self, thread_id: str) -> bool:
        """Cancel a thread's turn. Returns True if one was running."""
        async with self._lock:
            task = self._tasks.get(thread_id)
            if task and not task.done():
                task.cancel()
                logger.info("[thread:%s] turn cancellation requested", thread_id)
                return True
            return False

    async def cancel_all(self) -> list[str]:
        """Cancel every running turn. Returns the affected thread ids."""
        async with self._lock:
            cancelled = []
            for thread_id, task in self._tasks.items():
                if not task.done():
                    task.cancel()
                    cancelled.append(thread_id)
        if cancelled:
            logger.info("cancellation requested for %d turns", len(cancelled))
        return cancelled

    def is_running(self, thread_id: str) -> bool:
        task = self._tasks.get(thread_id)
        return task is not None and not task.done()
