# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""StatsD client for recording sitefinder metrics."""

import logging
from functools import cache
from typing import Mapping

import aiodogstatsd

from sitefinder.configs import settings

logger = logging.getLogger(__name__)

MetricTags = Mapping[str, float | int | str]


@cache
def get_metrics_client() -> aiodogstatsd.Client:
    """Instantiate and memoize the StatsD client."""
    constant_tags: MetricTags = {
        "application": "sitefinder",
        "deployment.canary": int(settings.deployment.canary),
    }

    return aiodogstatsd.Client(
        host=settings.metrics.host,
        port=settings.metrics.port,
        namespace="sitefinder",
        constant_tags=constant_tags,
    )


async def configure_metrics() -> None:
    """Connect the StatsD client. Used in application startup."""
    client = get_metrics_client()
    if settings.metrics.dev_logger:
        client._protocol = _LocalDatagramLogger()
    await client.connect()


def record_probe_outcome(
    client: aiodogstatsd.Client, status: str, duration_ms: float, is_high_priority: bool
) -> None:
    """Count a terminal probe status and time the probe that produced it."""
    tags: MetricTags = {"high_priority": int(is_high_priority)}
    client.increment(f"probe.status.{status}", tags=tags)
    client.timing("probe.duration", value=duration_ms, tags=tags)


class _LocalDatagramLogger(aiodogstatsd.client.DatagramProtocol):
    """Log StatsD datagrams instead of writing them to a socket.

    Replaces the default protocol in development, so metrics show up in the console.
    """

    def send(self, data: bytes) -> None:
        logger.debug("sending metrics", extra={"data": data.decode("utf8")})

    def error_received(self, exc: Exception) -> None:
        logger.exception(exc)
