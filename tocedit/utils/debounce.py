from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from tocedit.utils.logger import logger


class Debouncer:
    """
    Trailing-edge debounce on the running event loop: only the last call made
    within `delay` seconds is executed. Coroutines returned by `func` are
    scheduled as tasks; a task that fails is logged, never left unretrieved.
    """

    def __init__(self, func: Callable[..., Any], delay: float) -> None:
        self._func = func
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def __call__(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple) -> None:
        self._handle = None
        result = self._func(*args)
        if asyncio.iscoroutine(result):
            self._task = asyncio.get_running_loop().create_task(result)
            self._task.add_done_callback(_log_task_failure)

    async def drain(self) -> None:
        """Wait for the last fired call to finish."""
        if self._task is not None:
            await self._task


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Debounced call failed: %s", exc, exc_info=exc)
