"""Integration tests for the __version__ API endpoint."""

from fastapi.testclient import TestClient
from pytest_mock import MockerFixture


def test_version(client: TestClient) -> None:
    """Test that the version endpoint conforms to dockerflow specifications."""
    response = client.get("/__version__")

    assert response.status_code == 200
    assert set(response.json()) == {"source", "version", "commit", "build"}


def test_version_error(mocker: MockerFixture, client: TestClient) -> None:
    """Test that a missing version file is a 500."""
    mocker.patch(
        "sitefinder.web.dockerflow.fetch_app_version_from_file", side_effect=FileNotFoundError
    )

    response = client.get("/__version__")

    assert response.status_code == 500
    assert response.json() == {"detail": "Version file does not exist"}
