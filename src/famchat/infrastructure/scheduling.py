"""Periodic background tasks."""

import asyncio
from collections.abc import Awaitable, Callable

from structlog.stdlib import BoundLogger


class PeriodicTask:
    """Runs an async callback every ``interval`` seconds until stopped.

    A failing run is logged and the schedule continues.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        logger: BoundLogger,
        run_immediately: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self._interval = interval
        self._callback = callback
        self._logger = logger
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the schedule; a second call is a no-op."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        """Cancel the schedule and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        if self._run_immediately:
            await self._tick()
        while True:
            await asyncio.sleep(self._interval)
            await self._tick()

    async def _tick(self) -> None:
        try:
            await self._callback()
        except Exception as e:
            self._logger.warning(
                "Periodic task failed", task=self.name, error=str(e), exc_info=True
            )
