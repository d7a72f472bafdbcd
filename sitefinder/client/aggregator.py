"""Reconstruct per-domain state from one or more update streams."""

import logging
from typing import AsyncIterable, Callable, Iterator

from sitefinder.client.merge import DomainResult, merge
from sitefinder.client.stream_client import SearchStreamClient
from sitefinder.client.view import ViewFilters, build_view
from sitefinder.configs import settings
from sitefinder.cron import Job
from sitefinder.exceptions import StreamRequestError
from sitefinder.probe import constants
from sitefinder.probe.errors import timeout_details
from sitefinder.probe.models import DomainStatus, DomainUpdate, LogEntry, LogType, now_ms

logger = logging.getLogger(__name__)

RECHECK_FAILED_CODE = "RECHECK_FAILED"


class ResultAggregator:
    """Canonical per-domain results, fed by update streams and guarded by a watchdog.

    The watchdog is a client-side safety net: a record left in `loading` without any
    update for `watchdog_timeout_sec` is forced to `timeout`, whether or not the server
    ever sends a terminal update for it.
    """

    client: SearchStreamClient | None
    clock: Callable[[], int]
    watchdog_timeout_sec: float
    results: dict[str, DomainResult]
    job: Job

    def __init__(
        self,
        client: SearchStreamClient | None = None,
        clock: Callable[[], int] = now_ms,
        watchdog_timeout_sec: float = settings.aggregator.watchdog_timeout_sec,
        sweep_interval_sec: float = settings.aggregator.sweep_interval_sec,
    ) -> None:
        self.client = client
        self.clock = clock
        self.watchdog_timeout_sec = watchdog_timeout_sec
        self.results = {}
        self.job = Job(
            name="watchdog_sweep",
            interval=sweep_interval_sec,
            condition=self.has_loading,
            task=self._sweep_task,
        )

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[DomainResult]:
        return iter(self.results.values())

    def get(self, domain: str) -> DomainResult | None:
        """Return the record of a domain, if any update was seen for it."""
        return self.results.get(domain)

    def apply_update(self, update: DomainUpdate) -> DomainResult:
        """Merge an update into the record of its domain, creating the record if needed."""
        now = self.clock()
        current = self.results.get(update.domain) or DomainResult.start(update.domain, now)
        merged = merge(current, update, now)
        self.results[update.domain] = merged
        return merged

    async def consume(self, updates: AsyncIterable[DomainUpdate]) -> int:
        """Apply every update of a stream in arrival order and return how many were seen."""
        count = 0
        async for update in updates:
            self.apply_update(update)
            count += 1
        return count

    def clear(self) -> None:
        """Clear all results."""
        self.results.clear()

    def reset(self, domain: str) -> DomainResult:
        """Put a domain back to a fresh `loading` record with a single restart entry.

        Only the domain identity and its common-TLD flag survive.
        """
        previous = self.results.get(domain)
        record = DomainResult.start(domain, self.clock(), message=constants.RESTARTING)
        if previous is not None:
            record.is_high_priority = previous.is_high_priority
        self.results[domain] = record
        return record

    async def search(self, keyword: str) -> int:
        """Clear all results and consume the stream of a new keyword search.

        Raises:
            - `StreamRequestError` if the stream can't be read.
        """
        self.clear()
        return await self.consume(self._require_client().search(keyword))

    async def recheck(self, domain: str) -> DomainResult:
        """Reset a domain and consume a single-domain stream for it.

        A failed stream doesn't raise: the domain ends in `internal_error` instead.
        """
        self.reset(domain)
        try:
            await self.consume(self._require_client().recheck(domain))
        except StreamRequestError as e:
            logger.warning(f"Recheck of {domain} failed", extra={"error": str(e)})
            self.apply_update(
                DomainUpdate(
                    domain=domain,
                    status=DomainStatus.INTERNAL_ERROR,
                    error=constants.RECHECK_FAILED,
                    error_code=RECHECK_FAILED_CODE,
                    logs=[
                        LogEntry(
                            timestamp=self.clock(),
                            message=constants.RECHECK_FAILED,
                            type=LogType.ERROR,
                        )
                    ],
                )
            )
        return self.results[domain]

    def has_loading(self) -> bool:
        """Whether any record is still waiting for a terminal status."""
        return any(result.status is DomainStatus.LOADING for result in self.results.values())

    def sweep(self) -> list[str]:
        """Force stale `loading` records to `timeout` and return their domains."""
        now = self.clock()
        threshold_ms = self.watchdog_timeout_sec * 1000
        expired = [
            domain
            for domain, result in self.results.items()
            if result.status is DomainStatus.LOADING and now - result.timestamp >= threshold_ms
        ]

        details = timeout_details(self.watchdog_timeout_sec)
        for domain in expired:
            self.apply_update(
                DomainUpdate(
                    domain=domain,
                    status=details.status,
                    error=details.message,
                    error_code=details.code,
                    logs=[LogEntry(timestamp=now, message=details.message, type=LogType.ERROR)],
                )
            )
        if expired:
            logger.info(f"Watchdog timed out {len(expired)} domains")
        return expired

    def view(self, filters: ViewFilters | None = None) -> list[DomainResult]:
        """Return the filtered results in display order."""
        return build_view(self.results.values(), filters)

    def start(self) -> None:
        """Start the background watchdog sweep."""
        self.job.start()

    async def stop(self) -> None:
        """Stop the background watchdog sweep."""
        await self.job.stop()

    async def __aenter__(self) -> "ResultAggregator":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def _sweep_task(self) -> None:
        self.sweep()

    def _require_client(self) -> SearchStreamClient:
        if self.client is None:
            raise RuntimeError("ResultAggregator has no stream client")
        return self.client
