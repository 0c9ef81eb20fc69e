"""
Delayed callbacks tied to the state version they were scheduled under.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class TurnScheduler:
    """
    One pending task per key; scheduling a key again replaces its task.

    The callback receives the version it was scheduled for, and the receiver
    is expected to ignore it if the state has moved on.
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(
        self,
        key: str,
        version: int,
        delay: float,
        callback: Callable[[int], Awaitable[None]]
    ) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(self._run(key, version, delay, callback))
        self._tasks[key] = task
        return task

    async def _run(self, key: str, version: int, delay: float, callback):
        try:
            await asyncio.sleep(delay)
            await callback(version)
        except asyncio.CancelledError:
            logger.debug(f"Timer {key}@{version} cancelled")
            raise
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]

    def cancel(self, key: str):
        task = self._tasks.pop(key, None)
        if task and not task.done():
            task.cancel()

    def cancel_all(self):
        for key in list(self._tasks):
            self.cancel(key)

    def pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()
