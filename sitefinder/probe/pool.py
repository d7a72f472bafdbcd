# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""A bounded pool of reusable browser sessions."""

import asyncio
import logging
from collections import deque

import aiodogstatsd

from sitefinder.exceptions import PoolClosedError, SessionCreationError
from sitefinder.probe.protocol import Session, SessionFactory

logger = logging.getLogger(__name__)


class SessionPool:
    """Hand out sessions from a bounded set, creating them lazily.

    The pool size counts idle sessions, checked out sessions and sessions that are being
    created, and never exceeds `max_size`. A session is checked out by at most one caller
    at a time.
    """

    _factory: SessionFactory
    _max_size: int
    _backoff_initial: float
    _backoff_max: float
    _idle: deque[Session]
    _checked_out: set[Session]
    _creating: int
    _closed: bool
    _released: asyncio.Event
    _metrics_client: aiodogstatsd.Client | None

    def __init__(
        self,
        factory: SessionFactory,
        max_size: int,
        backoff_initial: float = 0.05,
        backoff_max: float = 1.0,
        metrics_client: aiodogstatsd.Client | None = None,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._factory = factory
        self._max_size = max_size
        self._backoff_initial = backoff_initial
        self._backoff_max = max(backoff_initial, backoff_max)
        self._idle = deque()
        self._checked_out = set()
        self._creating = 0
        self._closed = False
        self._released = asyncio.Event()
        self._metrics_client = metrics_client

    @property
    def max_size(self) -> int:
        """Return the capacity of the pool."""
        return self._max_size

    @property
    def size(self) -> int:
        """Return the number of sessions owned by the pool, including checked out ones."""
        return len(self._idle) + len(self._checked_out) + self._creating

    @property
    def idle_count(self) -> int:
        """Return the number of sessions waiting to be reused."""
        return len(self._idle)

    @property
    def checked_out_count(self) -> int:
        """Return the number of sessions currently in use."""
        return len(self._checked_out)

    @property
    def closed(self) -> bool:
        """Whether the pool has been closed."""
        return self._closed

    async def acquire(self) -> Session:
        """Return an idle session, create one if under capacity, or wait for a release.

        Waiting backs off exponentially, but wakes up as soon as a session is released.

        Raises:
            - `PoolClosedError` if the pool is closed before a session is available.
            - `SessionCreationError` if a new session cannot be created. The reserved
              slot is freed, the pool itself stays usable.
        """
        delay = self._backoff_initial
        while True:
            if self._closed:
                raise PoolClosedError("Session pool is closed")

            if self._idle:
                session = self._idle.popleft()
                self._checked_out.add(session)
                return session

            if self.size < self._max_size:
                return await self._create()

            # Nothing can be released between the checks above and here.
            self._released.clear()
            try:
                await asyncio.wait_for(self._released.wait(), timeout=delay)
            except TimeoutError:
                pass
            delay = min(delay * 2, self._backoff_max)

    async def release(self, session: Session) -> None:
        """Return a session to the pool.

        The session is destroyed instead of pooled if the pool is closed, the session is
        no longer usable or cannot be reset, or the pool is over capacity.
        """
        if session not in self._checked_out:
            raise ValueError("Session is not checked out from this pool")

        retire = self._closed or not session.usable or self.size > self._max_size
        if not retire:
            try:
                await session.reset()
            except Exception as e:
                logger.warning("Failed to reset session, retiring it", extra={"error": str(e)})
                retire = True

        self._checked_out.discard(session)
        if retire or self._closed or self.size >= self._max_size:
            await self._destroy(session)
        else:
            self._idle.append(session)
        self._released.set()

    def resize(self, max_size: int) -> None:
        """Change the capacity. Sessions over the new capacity are retired on release."""
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._released.set()

    async def close(self) -> None:
        """Close the pool and destroy idle sessions. Waiting callers are woken up and get
        `PoolClosedError`; sessions still checked out are destroyed when released.
        """
        self._closed = True
        while self._idle:
            await self._destroy(self._idle.popleft())
        self._released.set()
        logger.debug(
            "Closed session pool", extra={"checked_out": len(self._checked_out)}
        )

    async def _create(self) -> Session:
        self._creating += 1
        try:
            session = await self._factory.create()
        except SessionCreationError:
            raise
        except Exception as e:
            raise SessionCreationError(f"Failed to create a session: {e}") from e
        finally:
            self._creating -= 1
            # Wake up waiters, a failed creation frees its slot.
            self._released.set()

        if self._metrics_client:
            self._metrics_client.increment("pool.sessions.created")

        if self._closed:
            await self._destroy(session)
            raise PoolClosedError("Session pool is closed")

        self._checked_out.add(session)
        return session

    async def _destroy(self, session: Session) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.warning("Failed to close session", extra={"error": str(e)})
        if self._metrics_client:
            self._metrics_client.increment("pool.sessions.destroyed")
