"""The middleware that records access logs for sitefinder."""

import logging
import time
from datetime import datetime

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from sitefinder.utils.log_data_creators import (
    RequestSummaryLogDataModel,
    create_request_summary_log_data,
    is_ndjson_stream,
)

logger = logging.getLogger("request.summary")


class LoggingMiddleware:
    """An ASGI middleware writing one `request.summary` record per response.

    The record is written once the response is over, so a search stream is summarized
    with its duration and the number of records it carried, including streams the client
    abandoned midway.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Log requests."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started_at = time.monotonic()
        start_message: Message | None = None
        records: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal start_message, records
            if message["type"] == "http.response.start":
                start_message = message
                if is_ndjson_stream(message):
                    records = 0
            elif message["type"] == "http.response.body" and records is not None:
                records += message.get("body", b"").count(b"\n")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            # Nothing to summarize if the app failed before responding.
            if start_message is not None:
                log_data: RequestSummaryLogDataModel = create_request_summary_log_data(
                    Request(scope=scope),
                    start_message,
                    datetime.fromtimestamp(time.time()),
                    (time.monotonic() - started_at) * 1000,
                    records,
                )
                logger.info("", extra=log_data.model_dump(mode="json"))
