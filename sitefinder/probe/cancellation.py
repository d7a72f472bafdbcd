"""Cooperative cancellation shared by every suspend point of a search run."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sitefinder.exceptions import DeadlineExceededError, ProbeCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """A single cancellation signal for one run.

    Cancelling is idempotent: only the first reason is kept and callbacks run once.
    """

    _event: asyncio.Event
    _reason: str | None
    _callbacks: list[Callable[[str], None]]

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = None
        self._callbacks = []

    @property
    def cancelled(self) -> bool:
        """Whether the token has been cancelled."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Return the reason given to the first `cancel` call."""
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the token and run the registered callbacks."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.debug("Cancellation requested", extra={"reason": reason})
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(reason)
            except Exception as e:
                logger.error(f"Cancellation callback failed: {e}")

    def add_callback(self, callback: Callable[[str], None]) -> None:
        """Register a callback for cancellation. It runs immediately if already cancelled."""
        if self._event.is_set():
            callback(self._reason or "cancelled")
        else:
            self._callbacks.append(callback)

    async def wait(self) -> None:
        """Wait until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise `ProbeCancelledError` if the token has been cancelled."""
        if self._event.is_set():
            raise ProbeCancelledError(self._reason)

    async def guard(self, awaitable: Awaitable[T], timeout: float | None = None) -> T:
        """Await `awaitable`, racing it against cancellation and an optional deadline.

        The losing side is cancelled.

        Raises:
            - `ProbeCancelledError` if the token is cancelled first.
            - `DeadlineExceededError` if `timeout` seconds pass first.
            - Whatever the awaitable raises, if it finishes first.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ProbeCancelledError(self._reason)

        work: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        cancelled = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, cancelled}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            cancelled.cancel()

        if work in done:
            return work.result()

        work.cancel()
        await asyncio.wait({work})
        if not work.cancelled() and work.exception() is not None:
            logger.debug(f"Abandoned work failed after losing its race: {work.exception()}")

        if cancelled in done:
            raise ProbeCancelledError(self._reason)
        raise DeadlineExceededError(f"Deadline of {timeout:g} seconds exceeded")
