"""Unit tests for the http_client.py utility module."""

import pytest

from sitefinder.utils.http_client import USER_AGENT, create_http_client


@pytest.mark.asyncio
async def test_create_http_client() -> None:
    """Test that timeouts, headers and the base URL are applied."""
    client = create_http_client(
        base_url="http://sitefinder.test", connect_timeout=2.0, read_timeout=30.0
    )

    assert client.base_url.host == "sitefinder.test"
    assert client.headers["User-Agent"] == USER_AGENT
    assert client.timeout.connect == 2.0
    assert client.timeout.pool == 2.0
    assert client.timeout.read == 30.0
    assert client.timeout.write == 5.0
    await client.aclose()
