"""A utility module for log data creation"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from starlette.requests import Request
from starlette.types import Message

NDJSON_CONTENT_TYPE = b"application/x-ndjson"


class RequestSummaryLogDataModel(BaseModel):
    """Log metadata for a request summary."""

    errno: int
    time: datetime
    path: str
    method: str
    agent: str | None = None
    lang: str | None = None
    querystring: dict[str, Any]
    code: int
    # Wall time until the last body chunk was sent, in milliseconds.
    duration: int
    # Number of NDJSON records sent, only set for streamed responses.
    records: int | None = None


def response_content_type(message: Message) -> bytes:
    """Return the content type of an `http.response.start` message."""
    return next(
        (value for key, value in message.get("headers", []) if key.lower() == b"content-type"),
        b"",
    )


def is_ndjson_stream(message: Message) -> bool:
    """Whether the response started by `message` is a stream of NDJSON records."""
    return response_content_type(message).startswith(NDJSON_CONTENT_TYPE)


def create_request_summary_log_data(
    request: Request,
    message: Message,
    dt: datetime,
    duration_ms: float,
    records: int | None = None,
) -> RequestSummaryLogDataModel:
    """Create log data for API endpoints from the request and its response start
    message. Search bodies are never logged.
    """
    return RequestSummaryLogDataModel(
        errno=0,
        time=dt,
        agent=request.headers.get("User-Agent"),
        path=request.url.path,
        method=request.method,
        lang=request.headers.get("Accept-Language"),
        querystring=dict(request.query_params),
        code=message["status"],
        duration=int(round(duration_ms)),
        records=records,
    )
