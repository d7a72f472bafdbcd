"""Unit tests for search runs and the probe service."""

import asyncio
import logging

import orjson
import pytest

from sitefinder.probe.lifecycle import SearchRun
from sitefinder.probe.models import SearchRequest
from sitefinder.probe.service import ProbeService
from tests.fake_sessions import FakeSessionFactory, Outcome

TLDS = ["com", "net", "org", "zone"]


def make_run(
    factory: FakeSessionFactory, request: SearchRequest, **kwargs
) -> SearchRun:
    """Return a run with a small pool and a short backoff."""
    kwargs.setdefault("max_concurrent_tasks", 2)
    kwargs.setdefault("max_pool_size", 2)
    return SearchRun(
        request,
        factory,
        TLDS,
        backoff_initial=0.001,
        backoff_max=0.01,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_stream_runs_to_completion(session_factory: FakeSessionFactory, caplog) -> None:
    """Reading the whole stream probes every domain and tears the pool down."""
    caplog.set_level(logging.INFO)
    run = make_run(session_factory, SearchRequest(keyword="kw"))

    records = [orjson.loads(line) async for line in run.stream()]
    await run.task

    assert {r["domain"] for r in records if r.get("status") == "success"} == {
        "kw.com",
        "kw.net",
        "kw.org",
        "kw.zone",
    }
    assert run.writer.completed
    assert not run.token.cancelled
    assert run.pool.closed
    assert session_factory.closed_sessions == len(session_factory.created)
    assert not session_factory.engine_closed

    (finished,) = [r for r in caplog.records if r.message == "Search run finished"]
    assert finished.domains == 4
    assert finished.cancelled is False


@pytest.mark.asyncio
async def test_recheck_probes_one_domain(session_factory: FakeSessionFactory) -> None:
    """A single-domain request probes only that domain."""
    run = make_run(session_factory, SearchRequest.for_recheck("foo.zone"))

    records = [orjson.loads(line) async for line in run.stream()]

    assert run.is_recheck
    assert {r["domain"] for r in records} == {"foo.zone"}
    assert [s.visited for s in session_factory.created] == [["foo.zone"]]


@pytest.mark.asyncio
async def test_consumer_leaving_cancels_run(session_factory: FakeSessionFactory) -> None:
    """Closing the stream early cancels the run and still returns every session."""
    session_factory.default = Outcome(delay=10)
    run = make_run(session_factory, SearchRequest(keyword="kw"), navigation_timeout_sec=30)

    stream = run.stream()
    first = orjson.loads(await stream.__anext__())
    await stream.aclose()
    await asyncio.wait_for(run.task, timeout=1)

    assert first["status"] == "loading"
    assert run.token.cancelled
    assert run.token.reason == "client disconnected"
    assert run.pool.closed
    assert session_factory.closed_sessions == len(session_factory.created)


@pytest.mark.asyncio
async def test_start_is_idempotent(session_factory: FakeSessionFactory) -> None:
    """Starting twice returns the same task."""
    run = make_run(session_factory, SearchRequest(keyword="kw"))

    task = run.start()

    assert run.start() is task
    await task


@pytest.mark.asyncio
async def test_service_tracks_runs(session_factory: FakeSessionFactory) -> None:
    """Runs are referenced while active and dropped once finished."""
    service = ProbeService(factory=session_factory, tlds=TLDS)

    run = service.create_run(SearchRequest(keyword="kw"))
    assert service.active_runs == 0

    stream = run.stream()
    await anext(stream)
    assert service.active_runs == 1

    [line async for line in stream]
    await run.task
    await asyncio.sleep(0)

    assert service.active_runs == 0
    assert len(run.work) == len(TLDS)


@pytest.mark.asyncio
async def test_unread_stream_starts_nothing(session_factory: FakeSessionFactory) -> None:
    """A stream dropped before its first read starts no work and holds no sessions."""
    service = ProbeService(factory=session_factory, tlds=TLDS)
    run = service.create_run(SearchRequest(keyword="kw"))

    stream = run.stream()
    del stream
    await asyncio.sleep(0.01)

    assert run.task is None
    assert service.active_runs == 0
    assert session_factory.created == []
    assert run.writer.records_emitted == 0


@pytest.mark.asyncio
async def test_service_shutdown(session_factory: FakeSessionFactory) -> None:
    """Shutdown cancels active runs and stops the engine."""
    session_factory.default = Outcome(delay=10)
    service = ProbeService(factory=session_factory, tlds=TLDS)
    run = service.create_run(SearchRequest(keyword="kw"))
    run.start()
    while session_factory.navigating == 0:
        await asyncio.sleep(0.001)

    await asyncio.wait_for(service.shutdown(), timeout=1)

    assert run.token.reason == "service shutting down"
    assert run.task.done()
    assert session_factory.engine_closed
    assert session_factory.closed_sessions == len(session_factory.created)


def test_service_loads_tlds_lazily(mocker, session_factory: FakeSessionFactory) -> None:
    """The TLD list is loaded on first use only."""
    get_tlds = mocker.patch("sitefinder.probe.service.get_tlds", return_value=("com",))
    service = ProbeService(factory=session_factory)

    assert service.tlds == ("com",)
    assert service.tlds == ("com",)
    get_tlds.assert_called_once()
