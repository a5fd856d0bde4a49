"""Named repeating timers on the running event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable


logger = logging.getLogger(__name__)


class Cadence:
    """Call ``action`` every ``interval`` seconds until cancelled.

    The first call happens one full interval after ``start``. ``action`` is
    synchronous; actions that do network work schedule their own tasks.
    """

    def __init__(self, name: str, interval: float, action: Callable[[], object]) -> None:
        self.name = name
        self.interval = interval
        self._action = action
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"cadence-{self.name}")

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            try:
                self._action()
            except Exception:
                logger.exception("Cadence %s action failed", self.name)
