# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""A self-replenishing scheduler that probes domains with bounded concurrency."""

import asyncio
import base64
import logging
import time
from collections import deque
from enum import Enum, unique
from typing import Any, Callable, Iterable, Sequence

import aiodogstatsd

from sitefinder.configs import settings
from sitefinder.exceptions import ProbeCancelledError, ScreenshotTooLargeError
from sitefinder.probe import constants
from sitefinder.probe.cancellation import CancellationToken
from sitefinder.probe.errors import INTERNAL_ERROR, SCREENSHOT_FAILED, classify
from sitefinder.probe.models import (
    DomainStatus,
    DomainTask,
    DomainUpdate,
    LogEntry,
    LogType,
    SearchRequest,
)
from sitefinder.probe.pool import SessionPool
from sitefinder.probe.protocol import Session
from sitefinder.probe.tlds import is_high_priority_tld, tld_of
from sitefinder.probe.writer import UpdateStreamWriter
from sitefinder.utils.metrics import record_probe_outcome

logger = logging.getLogger(__name__)


@unique
class TaskState(str, Enum):
    """Lifecycle of a single probe task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def build_work(request: SearchRequest, tlds: Sequence[str]) -> list[DomainTask]:
    """Return the ordered work for a request: the literal domain for a single-domain
    request, otherwise the keyword combined with every TLD.
    """
    if request.single_domain:
        domain = request.single_domain
        return [DomainTask(domain=domain, is_high_priority=is_high_priority_tld(tld_of(domain)))]

    return [
        DomainTask(domain=f"{request.keyword}.{tld}", is_high_priority=is_high_priority_tld(tld))
        for tld in tlds
    ]


class ProbeScheduler:
    """Keep up to `max_concurrent_tasks` probes in flight until the work runs out.

    Each finished task starts the next pending one, so the pipeline stays saturated
    instead of advancing in waves. The active counter and the work cursor are only
    touched on the event loop between awaits, at task start and in the task's done
    callback.
    """

    active: int
    peak_active: int
    states: dict[str, TaskState]
    _work: deque[DomainTask]
    _tasks: set[asyncio.Task]
    _finished: asyncio.Event
    _replenish: bool

    def __init__(
        self,
        pool: SessionPool,
        writer: UpdateStreamWriter,
        token: CancellationToken,
        max_concurrent_tasks: int = settings.probe.max_concurrent_tasks,
        navigation_timeout_sec: float = settings.probe.navigation_timeout_sec,
        screenshot_max_bytes: int = settings.probe.screenshot_max_bytes,
        metrics_client: aiodogstatsd.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrent_tasks < 1:
            raise ValueError("max_concurrent_tasks must be at least 1")
        self.pool = pool
        self.writer = writer
        self.token = token
        self.max_concurrent_tasks = max_concurrent_tasks
        self.navigation_timeout_sec = navigation_timeout_sec
        self.screenshot_max_bytes = screenshot_max_bytes
        self.metrics_client = metrics_client
        self.clock = clock

        self.active = 0
        self.peak_active = 0
        self.states = {}
        self._work = deque()
        self._tasks = set()
        self._finished = asyncio.Event()
        self._replenish = True

    @property
    def remaining(self) -> int:
        """Return the number of tasks not started yet."""
        return len(self._work)

    async def run(self, work: Iterable[DomainTask], replenish: bool = True) -> None:
        """Probe every unit of `work` and return once no task is left in flight.

        With `replenish` off, only the initial batch is run.
        """
        self._work = deque(work)
        self._replenish = replenish
        self._finished.clear()
        for domain_task in self._work:
            self.states[domain_task.domain] = TaskState.PENDING

        for _ in range(min(self.max_concurrent_tasks, len(self._work))):
            if not self._start_next():
                break

        if self.active == 0:
            return

        try:
            await self._finished.wait()
        except asyncio.CancelledError:
            self.token.cancel("scheduler cancelled")
            await asyncio.gather(*self._tasks, return_exceptions=True)
            raise

    def _start_next(self) -> bool:
        if self.token.cancelled or not self._work:
            return False

        domain_task = self._work.popleft()
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        self.states[domain_task.domain] = TaskState.RUNNING

        task = asyncio.create_task(self._probe(domain_task), name=f"probe:{domain_task.domain}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return True

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self.active -= 1
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Probe task {task.get_name()} crashed: {task.exception()}")

        if self._replenish:
            self._start_next()

        if self.active == 0:
            self._finished.set()

    async def _probe(self, domain_task: DomainTask) -> None:
        """Run one probe end-to-end. Never raises except on asyncio cancellation."""
        started = self.clock()
        session: Session | None = None
        status: DomainStatus | None = None
        try:
            session = await self.token.guard(self.pool.acquire())
            self._checkpoint()
            await self._emit(
                domain_task,
                status=DomainStatus.LOADING,
                title="",
                screenshot="",
                is_high_priority=domain_task.is_high_priority,
                logs=[LogEntry.create(constants.STARTING)],
            )
            status = await self._visit(session, domain_task, started)
        except ProbeCancelledError:
            logger.debug(f"Probe of {domain_task.domain} cancelled")
        except Exception as e:
            logger.warning(
                f"Internal error while probing {domain_task.domain}",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            status = INTERNAL_ERROR.status
            await self._emit(
                domain_task,
                status=INTERNAL_ERROR.status,
                title="",
                screenshot="",
                response_time=self._elapsed_ms(started),
                is_high_priority=domain_task.is_high_priority,
                error=INTERNAL_ERROR.message,
                error_code=INTERNAL_ERROR.code,
                logs=[LogEntry.create(constants.INTERNAL_ERROR_OCCURRED, LogType.ERROR)],
            )
        finally:
            if session is not None:
                await asyncio.shield(self.pool.release(session))
                await self._emit(domain_task, logs=[LogEntry.create(constants.CLOSED_PAGE)])
            self._finish(domain_task, status, started)

    async def _visit(
        self, session: Session, domain_task: DomainTask, started: float
    ) -> DomainStatus:
        await self._emit(domain_task, logs=[LogEntry.create(constants.CONNECTING)])
        try:
            await self.token.guard(
                session.navigate(domain_task.url), timeout=self.navigation_timeout_sec
            )
            self._checkpoint()
            await self._emit(domain_task, logs=[LogEntry.create(constants.CONNECTED)])
            title = await self.token.guard(session.title(), timeout=self.navigation_timeout_sec)
        except ProbeCancelledError:
            raise
        except Exception as e:
            self._checkpoint()
            details = classify(e, self.navigation_timeout_sec)
            logger.debug(
                f"Probe of {domain_task.domain} failed",
                extra={"status": details.status.value, "error": str(e)},
            )
            await self._emit(
                domain_task,
                status=details.status,
                title="",
                screenshot="",
                response_time=self._elapsed_ms(started),
                is_high_priority=domain_task.is_high_priority,
                error=details.message,
                error_code=details.code,
                logs=[LogEntry.create(details.message, LogType.ERROR)],
            )
            return details.status

        self._checkpoint()
        await self._emit(domain_task, logs=[LogEntry.create(constants.retrieved_title(title))])
        favicon = await self._favicon(session, domain_task)

        self._checkpoint()
        await self._emit(domain_task, logs=[LogEntry.create(constants.TAKING_SCREENSHOT)])
        try:
            screenshot = await self._capture(session)
        except ProbeCancelledError:
            raise
        except Exception as e:
            self._checkpoint()
            message = (
                constants.SCREENSHOT_TOO_LARGE
                if isinstance(e, ScreenshotTooLargeError)
                else constants.SCREENSHOT_CAPTURE_FAILED
            )
            logger.debug(
                f"Screenshot of {domain_task.domain} failed", extra={"error": str(e)}
            )
            await self._emit(
                domain_task,
                status=SCREENSHOT_FAILED.status,
                title=title,
                screenshot="",
                response_time=self._elapsed_ms(started),
                is_high_priority=domain_task.is_high_priority,
                error=SCREENSHOT_FAILED.message,
                error_code=SCREENSHOT_FAILED.code,
                logs=[LogEntry.create(message, LogType.ERROR)],
            )
            return SCREENSHOT_FAILED.status

        self._checkpoint()
        fields: dict[str, Any] = {"favicon": favicon} if favicon else {}
        await self._emit(
            domain_task,
            status=DomainStatus.SUCCESS,
            title=title,
            screenshot=screenshot,
            response_time=self._elapsed_ms(started),
            is_high_priority=domain_task.is_high_priority,
            logs=[LogEntry.create(constants.COMPLETED, LogType.SUCCESS)],
            **fields,
        )
        return DomainStatus.SUCCESS

    async def _favicon(self, session: Session, domain_task: DomainTask) -> str | None:
        """Look up the favicon. Failures only cost the icon."""
        try:
            return await self.token.guard(
                session.favicon_url(), timeout=self.navigation_timeout_sec
            )
        except ProbeCancelledError:
            raise
        except Exception as e:
            logger.debug(f"No favicon for {domain_task.domain}", extra={"error": str(e)})
            return None

    async def _capture(self, session: Session) -> str:
        """Capture a screenshot and return it as a base64 data URL.

        Raises:
            - `ScreenshotTooLargeError` if the encoded image is over the size cap.
        """
        image = await self.token.guard(session.screenshot(), timeout=self.navigation_timeout_sec)
        encoded = base64.b64encode(image).decode("ascii")
        if len(encoded) > self.screenshot_max_bytes:
            raise ScreenshotTooLargeError(len(encoded), self.screenshot_max_bytes)
        return constants.SCREENSHOT_DATA_URL_PREFIX + encoded

    def _finish(
        self, domain_task: DomainTask, status: DomainStatus | None, started: float
    ) -> None:
        if status is None:
            self.states[domain_task.domain] = TaskState.CANCELLED
            return

        self.states[domain_task.domain] = (
            TaskState.COMPLETED if status is DomainStatus.SUCCESS else TaskState.FAILED
        )
        if self.metrics_client:
            record_probe_outcome(
                self.metrics_client,
                status.value,
                self._elapsed_ms(started),
                domain_task.is_high_priority,
            )

    def _checkpoint(self) -> None:
        self.token.raise_if_cancelled()

    async def _emit(self, domain_task: DomainTask, **fields: Any) -> None:
        await self.writer.emit(DomainUpdate(domain=domain_task.domain, **fields))

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self.clock() - started) * 1000))
