"""Cancellable one-shot timers on the running asyncio loop."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class OneShotTimer:
    """
    Run ``callback`` once after ``delay`` seconds unless cancelled first.

    Starting an already-running timer restarts it.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None] | None]):
        self.delay = delay
        self.callback = callback
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach first so the callback may restart or cancel this timer.
        self._task = None
        logger.debug(f"Timer fired after {self.delay}s")
        result = self.callback()
        if inspect.isawaitable(result):
            await result
