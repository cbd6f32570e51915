"""Background task manager.

Tracks fire-and-forget coroutines (refreshes triggered by timers and by write
endpoints) so they can be awaited or cancelled on shutdown:
- Track all running background tasks
- Graceful shutdown with timeout
- Automatic cleanup of completed tasks
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from diffgate.utils.logger import get_logger

logger = get_logger("core.background")


class BackgroundTaskManager:
    """Manages background tasks with proper lifecycle and cleanup."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def create_task(
        self, coro: Coroutine[Any, Any, None], name: str | None = None
    ) -> asyncio.Task[None]:
        """Schedule ``coro`` on the running loop and track it until it finishes.

        Failures are logged rather than left as "exception never retrieved".
        """

        async def _wrapped_task() -> None:
            try:
                await coro
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Background task failed",
                    task_name=name or "unnamed",
                    error=str(e),
                    exc_info=True,
                )

        task: asyncio.Task[None] = asyncio.ensure_future(_wrapped_task())
        if name:
            task.set_name(name)

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug(
            "Scheduled background task",
            task_name=name or "unnamed",
            active_tasks=len(self._tasks),
        )
        return task

    async def drain(self) -> None:
        """Wait until every tracked task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Gracefully shutdown all background tasks.

        Args:
            timeout: Maximum time to wait for tasks to complete (seconds)
        """
        if not self._tasks:
            logger.debug("No background tasks to shutdown")
            return

        logger.info("Shutting down background tasks", count=len(self._tasks))

        try:
            await asyncio.wait_for(
                asyncio.gather(*self._tasks, return_exceptions=True),
                timeout=timeout,
            )
            logger.info("All background tasks completed gracefully")
        except TimeoutError:
            logger.warning(
                "Background tasks timeout, cancelling remaining tasks",
                remaining=len([t for t in self._tasks if not t.done()]),
            )
            for task in self._tasks:
                if not task.done():
                    task.cancel()
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self._tasks, return_exceptions=True),
                    timeout=1.0,
                )
            except TimeoutError:
                logger.error("Some tasks did not respond to cancellation")

        self._tasks.clear()
        logger.info("Background task shutdown complete")

    @property
    def active_count(self) -> int:
        return len([t for t in self._tasks if not t.done()])

    @property
    def has_tasks(self) -> bool:
        return len(self._tasks) > 0

    def cancel_all(self) -> None:
        """Cancel all pending tasks immediately without waiting."""
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        self._tasks.clear()
