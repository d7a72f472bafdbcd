# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Logging configuration"""

import logging
import sys
from logging.config import dictConfig
from typing import Any

from dockerflow import logging as dockerflow_logging

from sitefinder.configs import settings

LOG_HANDLERS = {
    "mozlog": "console-mozlog",
    "pretty": "console-pretty",
}

# Loggers that share the application handler.
APP_LOGGERS = ("sitefinder", "request.summary")


class GCPCompatibleJSONFormatter(dockerflow_logging.JsonLogFormatter):
    """MozLog JSON formatter that also emits the numeric severity read by GCP."""

    STACKDRIVER_LEVEL_MAP = {
        logging.CRITICAL: 600,
        logging.ERROR: 500,
        logging.WARNING: 400,
        logging.INFO: 200,
        logging.DEBUG: 100,
        logging.NOTSET: 0,
    }

    def convert_record(self, record: logging.LogRecord) -> dict[str, Any]:
        """Add a lower case `severity` next to the MozLog `Severity`."""
        out = super().convert_record(record)
        out["severity"] = self.STACKDRIVER_LEVEL_MAP.get(record.levelno, 0)
        return out


def configure_logging() -> None:
    """Configure logging with MozLog JSON lines or rich console output."""
    log_format = settings.logging.format
    handler = LOG_HANDLERS.get(log_format)
    if handler is None:
        raise ValueError(
            f"Invalid log format: {log_format}. Should either be 'mozlog' or 'pretty'."
        )

    if settings.current_env.lower() == "production" and log_format != "mozlog":
        raise ValueError("Log format must be 'mozlog' in production")

    level = settings.logging.level
    loggers: dict[str, Any] = {
        name: {
            "handlers": [handler],
            "level": level,
            "propagate": settings.logging.can_propagate,
        }
        for name in APP_LOGGERS
    }
    loggers["uvicorn.error"] = {
        "handlers": ["uvicorn-error-handler"],
        "level": "ERROR",
        "propagate": False,
    }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {
                    "format": "%(message)s",
                },
                "json": {
                    "()": GCPCompatibleJSONFormatter,
                    "logger_name": "sitefinder",
                },
            },
            "handlers": {
                "console-mozlog": {
                    "level": level,
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": sys.stdout,
                },
                "console-pretty": {
                    "level": level,
                    "class": "rich.logging.RichHandler",
                    "formatter": "text",
                },
                "uvicorn-error-handler": {
                    "level": "ERROR",
                    "class": "logging.StreamHandler",
                    "formatter": "text",
                    "stream": sys.stderr,
                },
            },
            "loggers": loggers,
        }
    )
