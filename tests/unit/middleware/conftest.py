"""Module for test fixtures for the middleware unit test directory."""

from typing import Any

import pytest
from pytest_mock import MockerFixture
from starlette.types import Receive, Scope, Send


@pytest.fixture(name="scope")
def fixture_scope() -> Scope:
    """Create an HTTP Scope for a search request."""
    return {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/search",
        "query_string": b"",
        "headers": [
            (b"user-agent", b"sitefinder-tests"),
            (b"accept-language", b"en-US"),
        ],
    }


@pytest.fixture(name="receive_mock")
def fixture_receive_mock(mocker: MockerFixture) -> Any:
    """Create a Receive mock object for test"""
    return mocker.AsyncMock(spec=Receive)


@pytest.fixture(name="send_mock")
def fixture_send_mock(mocker: MockerFixture) -> Any:
    """Create a Send mock object for test"""
    return mocker.AsyncMock(spec=Send)
