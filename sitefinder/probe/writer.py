"""Serialize domain updates into an ordered stream of newline-delimited JSON records."""

import asyncio
import logging
from typing import AsyncIterator

import orjson

from sitefinder.configs import settings
from sitefinder.exceptions import ProbeCancelledError
from sitefinder.probe.cancellation import CancellationToken
from sitefinder.probe.constants import PROCESSING_SCREENSHOT
from sitefinder.probe.models import DomainUpdate, LogEntry, ScreenshotRecord

logger = logging.getLogger(__name__)


def encode_line(record: dict) -> bytes:
    """Encode one record as a JSON line."""
    return orjson.dumps(record) + b"\n"


class UpdateStreamWriter:
    """An ordered, chunked NDJSON stream fed by `emit`.

    An update carrying a screenshot is split into a status record and a trailing
    screenshot-only record, so status progress never waits behind a large image.
    Emitting after the writer is closed, aborted or cancelled is a no-op.

    At most `max_pending` records wait for the consumer. Emitters beyond that wait for
    a record to be read, so a slow consumer slows the probes down.
    """

    _queue: asyncio.Queue[bytes | None]
    _slots: asyncio.Semaphore
    _token: CancellationToken
    _closed: bool
    _completed: bool
    records_emitted: int

    def __init__(
        self,
        token: CancellationToken,
        max_pending: int = settings.probe.stream_max_pending_records,
    ) -> None:
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self._queue = asyncio.Queue()
        self._slots = asyncio.Semaphore(max_pending)
        self._token = token
        self._closed = False
        self._completed = False
        self.records_emitted = 0
        token.add_callback(lambda _: self.abort())

    @property
    def closed(self) -> bool:
        """Whether the writer accepts no more records."""
        return self._closed

    @property
    def completed(self) -> bool:
        """Whether a consumer read the stream through to its end."""
        return self._completed

    async def emit(self, update: DomainUpdate) -> None:
        """Queue the records for one update, waiting while too many are unread."""
        if self._closed or self._token.cancelled:
            return

        if update.screenshot:
            logs = [*(update.logs or []), LogEntry.create(PROCESSING_SCREENSHOT)]
            status_update = update.model_copy(update={"logs": logs})
            await self._put(status_update.to_wire(exclude={"screenshot"}))
            screenshot = ScreenshotRecord(domain=update.domain, screenshot=update.screenshot)
            await self._put(screenshot.to_wire())
        else:
            await self._put(update.to_wire())

    def close(self) -> None:
        """Terminate the stream after the records already queued."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    def abort(self) -> None:
        """Drop queued records and terminate the stream immediately."""
        if self._closed and self._queue.empty():
            return
        self._closed = True
        dropped = 0
        while not self._queue.empty():
            if self._queue.get_nowait() is not None:
                self._slots.release()
                dropped += 1
        self._queue.put_nowait(None)
        if dropped:
            logger.debug(f"Dropped {dropped} queued records on abort")

    async def lines(self) -> AsyncIterator[bytes]:
        """Yield encoded lines until the stream terminates.

        If the consumer stops iterating before the stream completes, the cancellation
        token is triggered so the producers stop too.
        """
        try:
            while True:
                line = await self._queue.get()
                if line is None:
                    self._completed = True
                    return
                self._slots.release()
                yield line
        finally:
            if not self._completed:
                self._token.cancel("stream consumer went away")

    async def _put(self, record: dict) -> None:
        if self._slots.locked():
            try:
                await self._token.guard(self._slots.acquire())
            except ProbeCancelledError:
                return
        else:
            await self._slots.acquire()
        if self._closed:
            self._slots.release()
            return
        self.records_emitted += 1
        self._queue.put_nowait(encode_line(record))
