"""Module for test configurations for the integration test directory."""

from typing import Iterator

import pytest
from starlette.testclient import TestClient

from sitefinder.main import app
from sitefinder.probe.service import ProbeService, get_probe_service
from tests.fake_sessions import FakeSessionFactory

TLDS = ("com", "net", "org", "zone")


@pytest.fixture(name="probe_service")
def fixture_probe_service(session_factory: FakeSessionFactory) -> ProbeService:
    """Return a probe service on browser-free sessions and a short TLD list."""
    return ProbeService(factory=session_factory, tlds=TLDS)


@pytest.fixture(name="client")
def fixture_test_client(probe_service: ProbeService) -> Iterator[TestClient]:
    """Return a FastAPI TestClient instance using the fake probe service.

    Note that this will NOT trigger event handlers (i.e. `startup` and `shutdown`) for
    the app, see: https://fastapi.tiangolo.com/advanced/testing-events/
    """
    app.dependency_overrides[get_probe_service] = lambda: probe_service
    yield TestClient(app)
    del app.dependency_overrides[get_probe_service]
