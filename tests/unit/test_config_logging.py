"""Unit tests for the config_logging.py module."""

import json
import logging
from typing import Any, Iterator

import pytest

from sitefinder.configs import settings
from sitefinder.configs.app_configs.config_logging import (
    GCPCompatibleJSONFormatter,
    configure_logging,
)


@pytest.fixture(autouse=True)
def fixture_restore_log_format() -> Iterator[None]:
    """Restore the log format and handlers touched by a test."""
    old_format = settings.logging.format
    yield
    settings.logging.format = old_format
    configure_logging()


def test_configure_logging_invalid_format() -> None:
    """Test that configure_logging will raise a ValueError when encountering unknown log
    formats.
    """
    settings.logging.format = "invalid"

    with pytest.raises(ValueError) as excinfo:
        configure_logging()

    assert "Invalid log format:" in str(excinfo)


def test_configure_logging_mozlog_production() -> None:
    """Test that configure_logging will raise a ValueError when using a format other
    than 'mozlog' in production.
    """
    with settings.using_env("production"):
        old_format = settings.logging.format
        settings.logging.format = "pretty"

        with pytest.raises(ValueError) as excinfo:
            configure_logging()

        assert "Log format must be 'mozlog' in production" in str(excinfo)

        settings.logging.format = old_format


@pytest.mark.parametrize(
    ["log_format", "handler_name"],
    [("mozlog", "console-mozlog"), ("pretty", "console-pretty")],
)
def test_configure_log_handler_assigned(log_format: str, handler_name: str) -> None:
    """Test that the log handler is assigned as expected for the configured format."""
    settings.logging.format = log_format
    configure_logging()

    log_manager: Any = logging.root.manager
    assert log_manager.loggerDict["sitefinder"].handlers[0].name == handler_name
    assert log_manager.loggerDict["request.summary"].handlers[0].name == handler_name


def test_gcp_severity_added() -> None:
    """Test that the formatted MozLog record carries the numeric GCP severity."""
    formatter = GCPCompatibleJSONFormatter(logger_name="sitefinder")
    record = logging.LogRecord(
        "sitefinder.probe", logging.WARNING, __file__, 1, "Probe failed", None, None
    )

    payload = json.loads(formatter.format(record))

    assert payload["severity"] == 400
    assert payload["Logger"] == "sitefinder"
    assert payload["Fields"]["msg"] == "Probe failed"
