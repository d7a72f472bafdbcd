"""The application-lifetime owner of the browser engine and of active search runs."""

import asyncio
import logging
from typing import Sequence

import aiodogstatsd
from fastapi import Request

from sitefinder.configs import settings
from sitefinder.probe.browser import PlaywrightEngine
from sitefinder.probe.lifecycle import SearchRun
from sitefinder.probe.models import SearchRequest
from sitefinder.probe.protocol import SessionFactory
from sitefinder.probe.tlds import get_tlds

logger = logging.getLogger(__name__)


class ProbeService:
    """Create search runs and keep the started ones referenced until they finish."""

    factory: SessionFactory
    metrics_client: aiodogstatsd.Client | None
    _tlds: Sequence[str] | None
    _runs: set[SearchRun]

    def __init__(
        self,
        factory: SessionFactory | None = None,
        tlds: Sequence[str] | None = None,
        metrics_client: aiodogstatsd.Client | None = None,
    ) -> None:
        self.factory = factory if factory is not None else PlaywrightEngine()
        self.metrics_client = metrics_client
        self._tlds = tlds
        self._runs = set()

    @property
    def tlds(self) -> Sequence[str]:
        """Return the ordered TLD list, loading the configured one on first use."""
        if self._tlds is None:
            self._tlds = get_tlds()
        return self._tlds

    @property
    def active_runs(self) -> int:
        """Return the number of runs that have not finished yet."""
        return len(self._runs)

    def create_run(self, request: SearchRequest) -> SearchRun:
        """Create a run for the request. Probing begins when its stream is first read."""
        run = SearchRun(
            request,
            self.factory,
            self.tlds,
            max_concurrent_tasks=settings.probe.max_concurrent_tasks,
            max_pool_size=settings.probe.max_pool_size,
            navigation_timeout_sec=settings.probe.navigation_timeout_sec,
            screenshot_max_bytes=settings.probe.screenshot_max_bytes,
            backoff_initial=settings.probe.acquire_backoff_initial_sec,
            backoff_max=settings.probe.acquire_backoff_max_sec,
            metrics_client=self.metrics_client,
            on_start=self._track,
        )
        return run

    def _track(self, run: SearchRun) -> None:
        self._runs.add(run)
        if run.task is not None:
            run.task.add_done_callback(lambda _: self._runs.discard(run))
        logger.info(
            "Search run started",
            extra={"domains": len(run.work), "recheck": run.is_recheck},
        )

    async def shutdown(self) -> None:
        """Cancel every active run, wait for them to tear down and stop the engine."""
        runs = list(self._runs)
        for run in runs:
            run.cancel("service shutting down")
        await asyncio.gather(*(run.task for run in runs if run.task), return_exceptions=True)
        await self.factory.aclose()


def get_probe_service(request: Request) -> ProbeService:
    """FastAPI dependency returning the service stored on the application state."""
    return request.app.state.probe_service
