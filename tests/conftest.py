# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Module for test configurations shared by all test directories."""

import os

# Must be set before `sitefinder.configs` is first imported.
os.environ.setdefault("SITEFINDER_ENV", "testing")

from logging import LogRecord  # noqa: E402
from typing import Any  # noqa: E402

import aiodogstatsd  # noqa: E402
import pytest  # noqa: E402
from pytest_mock import MockerFixture  # noqa: E402

from tests.fake_sessions import FakeSessionFactory  # noqa: E402
from tests.types import FilterCaplogFixture  # noqa: E402


@pytest.fixture(scope="session", name="filter_caplog")
def fixture_filter_caplog() -> FilterCaplogFixture:
    """
    Return a function that will filter pytest captured log records for a given logger
    name
    """

    def filter_caplog(records: list[LogRecord], logger_name: str) -> list[LogRecord]:
        """
        Filter pytest captured log records for a given logger name
        """
        return [record for record in records if record.name == logger_name]

    return filter_caplog


@pytest.fixture(name="statsd_mock")
def fixture_statsd_mock(mocker: MockerFixture) -> Any:
    """Return a mock for the StatsD client."""
    return mocker.MagicMock(spec_set=aiodogstatsd.Client)


@pytest.fixture(name="session_factory")
def fixture_session_factory() -> FakeSessionFactory:
    """Return a session factory whose sessions reach every domain."""
    return FakeSessionFactory()
