from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Set

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[object]]


class ScheduledTask:
    """Invoke ``task`` every ``interval`` seconds until cancelled.

    Each invocation runs as its own asyncio task, so a slow run does not delay
    the next tick and runs may overlap.
    """

    def __init__(
        self,
        interval: float,
        task: TaskFactory,
        *,
        immediate: bool = True,
        name: str = "scheduled-task",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Interval must be positive: {interval}")
        self._interval = interval
        self._task = task
        self._immediate = immediate
        self._name = name
        self._cancelled = False
        self._invocations = 0
        self._runs: Set[asyncio.Task] = set()
        self._loop_task = asyncio.create_task(self._loop(), name=name)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def invocations(self) -> int:
        return self._invocations

    @property
    def in_flight(self) -> int:
        return len(self._runs)

    def cancel(self) -> None:
        """Stop ticking. Runs already started are left to finish."""
        self._cancelled = True
        self._loop_task.cancel()

    async def wait_in_flight(self) -> None:
        if self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)

    async def _loop(self) -> None:
        if not self._immediate:
            await asyncio.sleep(self._interval)
        while not self._cancelled:
            self._spawn()
            await asyncio.sleep(self._interval)

    def _spawn(self) -> None:
        self._invocations += 1
        run = asyncio.create_task(self._invoke(), name=f"{self._name}-{self._invocations}")
        self._runs.add(run)
        run.add_done_callback(self._runs.discard)

    async def _invoke(self) -> None:
        try:
            await self._task()
        except Exception as exc:
            logger.exception("Scheduled task %s failed: %s", self._name, exc)


def schedule(
    interval: float,
    task: TaskFactory,
    *,
    immediate: bool = True,
    name: str = "scheduled-task",
) -> ScheduledTask:
    """Start a recurring task on the running event loop and return its handle."""
    return ScheduledTask(interval, task, immediate=immediate, name=name)
