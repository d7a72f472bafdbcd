"""Lifecycle of one search request: from the first record to pool teardown."""

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, Sequence

import aiodogstatsd

from sitefinder.configs import settings
from sitefinder.probe.cancellation import CancellationToken
from sitefinder.probe.models import SearchRequest
from sitefinder.probe.pool import SessionPool
from sitefinder.probe.protocol import SessionFactory
from sitefinder.probe.scheduler import ProbeScheduler, build_work
from sitefinder.probe.writer import UpdateStreamWriter

logger = logging.getLogger(__name__)


class SearchRun:
    """Own the token, writer, pool and scheduler of a single request.

    A consumer that stops reading cancels the run. A run whose work is done closes its
    stream. In both cases the pool is torn down once every task has released its session.
    """

    request: SearchRequest
    token: CancellationToken
    writer: UpdateStreamWriter
    pool: SessionPool
    scheduler: ProbeScheduler
    task: asyncio.Task | None
    on_start: Callable[["SearchRun"], None] | None

    def __init__(
        self,
        request: SearchRequest,
        factory: SessionFactory,
        tlds: Sequence[str],
        max_concurrent_tasks: int = settings.probe.max_concurrent_tasks,
        max_pool_size: int = settings.probe.max_pool_size,
        navigation_timeout_sec: float = settings.probe.navigation_timeout_sec,
        screenshot_max_bytes: int = settings.probe.screenshot_max_bytes,
        backoff_initial: float = settings.probe.acquire_backoff_initial_sec,
        backoff_max: float = settings.probe.acquire_backoff_max_sec,
        metrics_client: aiodogstatsd.Client | None = None,
        on_start: Callable[["SearchRun"], None] | None = None,
    ) -> None:
        self.request = request
        self.work = build_work(request, tlds)
        self.token = CancellationToken()
        self.writer = UpdateStreamWriter(self.token)
        self.pool = SessionPool(
            factory,
            max_size=max_pool_size,
            backoff_initial=backoff_initial,
            backoff_max=backoff_max,
            metrics_client=metrics_client,
        )
        self.scheduler = ProbeScheduler(
            self.pool,
            self.writer,
            self.token,
            max_concurrent_tasks=max_concurrent_tasks,
            navigation_timeout_sec=navigation_timeout_sec,
            screenshot_max_bytes=screenshot_max_bytes,
            metrics_client=metrics_client,
        )
        self.task = None
        self.on_start = on_start

    @property
    def is_recheck(self) -> bool:
        """Whether this run probes a single literal domain."""
        return self.request.single_domain is not None

    def start(self) -> asyncio.Task:
        """Start probing in the background. Idempotent."""
        if self.task is None:
            self.task = asyncio.create_task(self._run(), name=f"search:{self.request.keyword}")
            if self.on_start is not None:
                self.on_start(self)
        return self.task

    def cancel(self, reason: str) -> None:
        """Stop the run: no new tasks start and no further records are emitted."""
        self.token.cancel(reason)

    async def stream(self) -> AsyncIterator[bytes]:
        """Yield the encoded records of this run, starting it on the first read.

        A stream that is never read never probes anything.
        """
        self.start()
        try:
            async for line in self.writer.lines():
                yield line
        finally:
            if not self.writer.completed:
                self.token.cancel("client disconnected")

    async def _run(self) -> None:
        began = time.perf_counter()
        try:
            await self.scheduler.run(self.work, replenish=not self.is_recheck)
        finally:
            self.writer.close()
            await self.pool.close()
            logger.info(
                "Search run finished",
                extra={
                    "domains": len(self.work),
                    "records": self.writer.records_emitted,
                    "peak_active": self.scheduler.peak_active,
                    "cancelled": self.token.cancelled,
                    "duration": time.perf_counter() - began,
                },
            )
