"""Unit tests for the metrics.py utility module."""

from typing import Any

import aiodogstatsd
import pytest
from pytest import LogCaptureFixture
from pytest_mock import MockerFixture

from sitefinder.configs import settings
from sitefinder.utils import metrics
from sitefinder.utils.metrics import _LocalDatagramLogger, record_probe_outcome


def test_get_metrics_client_is_memoized() -> None:
    """Test that the StatsD client is created once, in the sitefinder namespace."""
    client = metrics.get_metrics_client()

    assert isinstance(client, aiodogstatsd.Client)
    assert metrics.get_metrics_client() is client


def test_record_probe_outcome(statsd_mock: Any) -> None:
    """Test that an outcome is counted by status and timed."""
    record_probe_outcome(statsd_mock, "dns_error", 120.0, False)

    statsd_mock.increment.assert_called_once_with(
        "probe.status.dns_error", tags={"high_priority": 0}
    )
    statsd_mock.timing.assert_called_once_with(
        "probe.duration", value=120.0, tags={"high_priority": 0}
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("dev_logger", [True, False])
async def test_configure_metrics(mocker: MockerFixture, dev_logger: bool) -> None:
    """Test that the client connects, logging datagrams with the dev logger."""
    statsd_mock = mocker.MagicMock(connect=mocker.AsyncMock())
    mocker.patch("sitefinder.utils.metrics.get_metrics_client", return_value=statsd_mock)
    old_dev_logger = settings.metrics.dev_logger
    settings.metrics.dev_logger = dev_logger

    try:
        await metrics.configure_metrics()
    finally:
        settings.metrics.dev_logger = old_dev_logger

    statsd_mock.connect.assert_awaited_once()
    assert isinstance(statsd_mock._protocol, _LocalDatagramLogger) is dev_logger


def test_local_datagram_logger(caplog: LogCaptureFixture) -> None:
    """Test that datagrams are logged instead of sent."""
    caplog.set_level("DEBUG")

    _LocalDatagramLogger().send(b"sitefinder.probe.status.success:1|c")

    (record,) = [r for r in caplog.records if r.name == "sitefinder.utils.metrics"]
    assert record.message == "sending metrics"
    assert record.__dict__["data"] == "sitefinder.probe.status.success:1|c"
