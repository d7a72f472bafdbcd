"""Periodic background jobs driven by asyncio tasks"""

# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

import asyncio
import logging
import time
from typing import Protocol

logger = logging.getLogger(__name__)


class Condition(Protocol):
    """Check whether the job should run on this tick."""

    def __call__(self) -> bool:  # pragma: no cover # noqa: D102
        ...


class Task(Protocol):
    """Work done by the job."""

    async def __call__(self) -> None:  # pragma: no cover # noqa: D102
        ...


class Job:
    """Run a task every `interval` seconds while a condition holds.

    The job is owned by whoever calls `start`; `stop` cancels the underlying asyncio
    task and waits for it, so no timer outlives its owner.
    """

    name: str
    interval: float
    condition: Condition
    task: Task
    _runner: asyncio.Task | None

    def __init__(self, *, name: str, interval: float, condition: Condition, task: Task) -> None:
        """Create a job.

        Args:
            name: The name used to identify the job in logs.
            interval: Seconds between two ticks.
            condition: A synchronous callable deciding whether a tick runs the task.
            task: An asynchronous callable run on each qualifying tick.
        """
        self.name = name
        self.interval = interval
        self.condition = condition
        self.task = task
        self._runner = None

    @property
    def running(self) -> bool:
        """Whether the job has been started and not stopped."""
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        """Start ticking in the background. Idempotent."""
        if not self.running:
            self._runner = asyncio.create_task(self(), name=f"cron:{self.name}")

    async def stop(self) -> None:
        """Stop ticking and wait for the current tick to unwind."""
        runner, self._runner = self._runner, None
        if runner is None or runner.done():
            return
        runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass

    async def tick(self) -> None:
        """Run the task once if the condition holds. Task failures are logged, not raised."""
        if not self.condition():
            return
        begin = time.perf_counter()
        try:
            await self.task()
        except Exception as e:
            logger.warning(
                f"Cron: failed to run task {self.name}",
                extra={"error message": f"{e}"},
            )
        else:
            logger.debug(
                f"Cron: ran task {self.name}",
                extra={"duration": time.perf_counter() - begin},
            )

    async def __call__(self) -> None:  # noqa: D102
        last_tick: float = time.monotonic()

        while True:
            await self.tick()
            sleep_duration = max(0, self.interval + last_tick - time.monotonic())
            await asyncio.sleep(sleep_duration)
            last_tick = time.monotonic()
