"""
Background dispatcher for fire-and-forget side effects.
Runs notification and email work off the request path; failures are logged
and never reach the caller.
"""

import asyncio
import logging
from typing import Awaitable, Set

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """
    Schedules coroutines as tracked asyncio tasks.
    References are kept until completion so tasks are not garbage collected.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, coro: Awaitable, description: str) -> asyncio.Task:
        """
        Schedule a side effect without awaiting it.

        Args:
            coro: Coroutine performing the side effect
            description: Human readable label used in failure logs

        Returns:
            The scheduled task
        """
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_done(t, description))
        return task

    def _on_done(self, task: asyncio.Task, description: str):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Background task cancelled: {description}")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task failed: {description}: {exc}", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = 10.0):
        """Wait for in-flight side effects, e.g. at shutdown."""
        if not self._tasks:
            return
        done, not_done = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Cancelled {len(not_done)} background tasks still running at shutdown")
