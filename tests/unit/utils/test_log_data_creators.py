"""Unit tests for the log_data_creators.py utility module."""

from datetime import datetime

import pytest
from starlette.requests import Request
from starlette.types import Message

from sitefinder.utils.log_data_creators import (
    RequestSummaryLogDataModel,
    create_request_summary_log_data,
    is_ndjson_stream,
)


@pytest.mark.parametrize(
    ["headers", "expected_agent", "expected_lang", "records"],
    [
        (
            [(b"user-agent", b"curl/8.4.0"), (b"accept-language", b"en-US")],
            "curl/8.4.0",
            "en-US",
            12,
        ),
        ([], None, None, None),
    ],
    ids=["search-stream", "no-headers"],
)
def test_create_request_summary_log_data(
    headers: list[tuple[bytes, bytes]],
    expected_agent: str | None,
    expected_lang: str | None,
    records: int | None,
) -> None:
    """Test that the request summary is built from the request and response start."""
    dt = datetime(2024, 1, 1, 12, 0, 0)
    request = Request(
        scope={
            "type": "http",
            "method": "POST",
            "path": "/api/v1/search",
            "query_string": b"debug=1",
            "headers": headers,
        }
    )
    message: Message = {"type": "http.response.start", "status": 200, "headers": []}

    log_data = create_request_summary_log_data(request, message, dt, 1234.6, records)

    assert log_data == RequestSummaryLogDataModel(
        errno=0,
        time=dt,
        path="/api/v1/search",
        method="POST",
        agent=expected_agent,
        lang=expected_lang,
        querystring={"debug": "1"},
        code=200,
        duration=1235,
        records=records,
    )


@pytest.mark.parametrize(
    ["headers", "expected"],
    [
        ([(b"content-type", b"application/x-ndjson")], True),
        ([(b"Content-Type", b"application/x-ndjson; charset=utf-8")], True),
        ([(b"content-type", b"application/json")], False),
        ([], False),
    ],
)
def test_is_ndjson_stream(headers: list[tuple[bytes, bytes]], expected: bool) -> None:
    """Test that only NDJSON responses are treated as record streams."""
    message: Message = {"type": "http.response.start", "status": 200, "headers": headers}

    assert is_ndjson_stream(message) is expected
