"""Unit tests for the cancellation token."""

import asyncio

import pytest

from sitefinder.exceptions import DeadlineExceededError, ProbeCancelledError
from sitefinder.probe.cancellation import CancellationToken


async def _sleep_then(value: str, delay: float) -> str:
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_guard_returns_result() -> None:
    """Work that finishes first wins the race."""
    token = CancellationToken()

    assert await token.guard(_sleep_then("done", 0), timeout=1) == "done"


@pytest.mark.asyncio
async def test_guard_propagates_work_errors() -> None:
    """Errors of the work itself are raised as-is."""
    token = CancellationToken()

    async def fail() -> None:
        raise RuntimeError("net::ERR_NAME_NOT_RESOLVED")

    with pytest.raises(RuntimeError, match="ERR_NAME_NOT_RESOLVED"):
        await token.guard(fail())


@pytest.mark.asyncio
async def test_guard_deadline() -> None:
    """The deadline cancels the work and raises `DeadlineExceededError`."""
    token = CancellationToken()
    work = asyncio.ensure_future(_sleep_then("late", 10))

    with pytest.raises(DeadlineExceededError):
        await token.guard(work, timeout=0.01)

    assert work.cancelled()


@pytest.mark.asyncio
async def test_guard_cancellation() -> None:
    """Cancelling the token interrupts guarded work."""
    token = CancellationToken()
    work = asyncio.ensure_future(_sleep_then("late", 10))
    asyncio.get_running_loop().call_later(0.01, token.cancel, "client disconnected")

    with pytest.raises(ProbeCancelledError, match="client disconnected"):
        await token.guard(work, timeout=5)

    assert work.cancelled()


@pytest.mark.asyncio
async def test_guard_already_cancelled() -> None:
    """A cancelled token refuses new work without starting it."""
    token = CancellationToken()
    token.cancel()
    coroutine = _sleep_then("never", 0)

    with pytest.raises(ProbeCancelledError):
        await token.guard(coroutine)

    assert coroutine.cr_frame is None


def test_cancel_is_idempotent() -> None:
    """Callbacks run once and the first reason is kept."""
    token = CancellationToken()
    reasons: list[str] = []
    token.add_callback(reasons.append)

    token.cancel("first")
    token.cancel("second")

    assert token.cancelled
    assert token.reason == "first"
    assert reasons == ["first"]


def test_add_callback_after_cancel_runs_immediately() -> None:
    """Late callbacks still observe the cancellation."""
    token = CancellationToken()
    token.cancel("done")
    reasons: list[str] = []

    token.add_callback(reasons.append)

    assert reasons == ["done"]


def test_raise_if_cancelled() -> None:
    """Checkpoints raise only once cancelled."""
    token = CancellationToken()
    token.raise_if_cancelled()

    token.cancel()

    with pytest.raises(ProbeCancelledError):
        token.raise_if_cancelled()
