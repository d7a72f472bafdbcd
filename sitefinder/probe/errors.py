# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Map low-level navigation failures to the fixed status taxonomy."""

from typing import NamedTuple

from sitefinder.exceptions import DeadlineExceededError
from sitefinder.probe.models import DomainStatus


class ErrorDetails(NamedTuple):
    """Outcome of classifying a failure."""

    status: DomainStatus
    message: str
    code: str


class _Rule(NamedTuple):
    markers: tuple[str, ...]
    details: ErrorDetails


# Chromium network error markers, checked in order against the lower-cased message.
_RULES: tuple[_Rule, ...] = (
    _Rule(
        ("net::err_connection_refused",),
        ErrorDetails(
            DomainStatus.CONNECTION_REFUSED,
            "Connection refused by the server",
            "CONNECTION_REFUSED",
        ),
    ),
    _Rule(
        ("net::err_name_not_resolved", "net::err_name_resolution_failed"),
        ErrorDetails(
            DomainStatus.DNS_ERROR,
            "Domain name could not be resolved",
            "DNS_ERROR",
        ),
    ),
    _Rule(
        ("net::err_cert_", "ssl"),
        ErrorDetails(DomainStatus.SSL_ERROR, "SSL/TLS certificate error", "SSL_ERROR"),
    ),
    _Rule(
        ("net::err_invalid_response",),
        ErrorDetails(
            DomainStatus.INVALID_RESPONSE,
            "Server returned an invalid response",
            "INVALID_RESPONSE",
        ),
    ),
)

UNKNOWN_ERROR = ErrorDetails(
    DomainStatus.INTERNAL_ERROR, "Failed to connect to domain", "UNKNOWN_ERROR"
)

# Fixed outcomes that don't come out of `classify`.
SCREENSHOT_FAILED = ErrorDetails(
    DomainStatus.INVALID_RESPONSE, "Site is live but screenshot failed", "SCREENSHOT_FAILED"
)
INTERNAL_ERROR = ErrorDetails(
    DomainStatus.INTERNAL_ERROR, "Internal processing error", "INTERNAL_ERROR"
)


def timeout_details(deadline_sec: float = 35.0) -> ErrorDetails:
    """Return the timeout outcome for a given deadline."""
    return ErrorDetails(
        DomainStatus.TIMEOUT, f"Request timed out after {deadline_sec:g} seconds", "TIMEOUT"
    )


def classify(failure: BaseException, deadline_sec: float = 35.0) -> ErrorDetails:
    """Classify a navigation failure. Total: unknown failures become `UNKNOWN_ERROR`.

    Deadline expiry wins over any message content. `dns_error` is only ever returned for
    name resolution failures, downstream consumers treat it as "possibly unregistered".
    """
    if isinstance(failure, (DeadlineExceededError, TimeoutError)):
        return timeout_details(deadline_sec)

    message = str(failure).lower()
    for rule in _RULES:
        if any(marker in message for marker in rule.markers):
            return rule.details

    return UNKNOWN_ERROR
