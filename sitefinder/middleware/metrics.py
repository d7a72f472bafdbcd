"""Middleware for request metrics."""

import logging
from functools import cache
from http import HTTPStatus
from time import monotonic

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from sitefinder.middleware import ScopeKey
from sitefinder.utils.metrics import get_metrics_client

logger = logging.getLogger(__name__)


@cache
def build_metric_name(method: str, path: str) -> str:
    """Return a metric friendly name for a route, e.g. `post.api.v1.search`."""
    return "{}.{}".format(method, path.lower().lstrip("/").replace("/", ".")).lower()


class MetricsMiddleware:
    """An ASGI middleware for instrumenting request level metrics. We collect timing and
    status codes for all known paths as well as status codes for all paths (known and
    unknown).

    Timing covers the whole response, so a search stream is timed until its last record.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Capture request metrics including timing and status codes."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        metrics_client = get_metrics_client()
        # Store the client in the request scope, so that it can be used by other
        # middleware and endpoints.
        scope[ScopeKey.METRICS_CLIENT] = metrics_client
        status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR.value
        started_at = monotonic()

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = (monotonic() - started_at) * 1000
            # Don't track NOT_FOUND statuses by path, only in `response.status_codes`.
            if status_code != HTTPStatus.NOT_FOUND:
                metric_name = build_metric_name(scope["method"], scope["path"])
                metrics_client.timing(f"{metric_name}.timing", value=duration)
                metrics_client.increment(f"{metric_name}.status_codes.{status_code}")
            metrics_client.increment(f"response.status_codes.{status_code}")
