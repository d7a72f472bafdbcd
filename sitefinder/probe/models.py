# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Data models shared by the probing engine and its consumers.

Everything that crosses the wire is a pydantic model with camelCase aliases. A
`DomainUpdate` is a partial patch: only the fields that were explicitly set (see
`model_fields_set`) are meaningful, everything else means "unchanged".
"""

import time
from enum import Enum, unique
from typing import Any, Literal

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Return the current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@unique
class DomainStatus(str, Enum):
    """Probe outcome for a domain. `loading` is the only non-terminal value."""

    LOADING = "loading"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    DNS_ERROR = "dns_error"
    SSL_ERROR = "ssl_error"
    INVALID_RESPONSE = "invalid_response"
    INTERNAL_ERROR = "internal_error"


@unique
class LogType(str, Enum):
    """Severity of a log entry attached to a domain."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


class WireModel(BaseModel):
    """Base model for records serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LogEntry(WireModel):
    """A single line of a domain's progress history."""

    timestamp: int
    message: str
    type: LogType = LogType.INFO

    @classmethod
    def create(cls, message: str, type: LogType = LogType.INFO) -> "LogEntry":
        """Create a log entry stamped with the current time."""
        return cls(timestamp=now_ms(), message=message, type=type)


class DomainTask(BaseModel):
    """One unit of work: a single domain to probe."""

    model_config = ConfigDict(frozen=True)

    domain: str
    is_high_priority: bool = False

    @property
    def url(self) -> str:
        """Return the URL a probe navigates to."""
        return f"https://{self.domain}"


class DomainUpdate(WireModel):
    """A partial, mergeable description of state change for one domain."""

    domain: str
    status: DomainStatus | None = None
    title: str | None = None
    screenshot: str | None = None
    favicon: str | None = None
    response_time: int | None = None
    error: str | None = None
    error_code: str | None = None
    logs: list[LogEntry] | None = None
    is_high_priority: bool | None = None

    def present_fields(self) -> set[str]:
        """Return the names of the patch fields that were explicitly supplied."""
        return self.model_fields_set - {"domain"}

    def to_wire(self, exclude: set[str] | None = None) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude=exclude)


class ScreenshotRecord(WireModel):
    """The screenshot-only record that follows a status record on the wire."""

    domain: str
    screenshot: str
    kind: Literal["screenshot"] = "screenshot"

    def to_update(self) -> DomainUpdate:
        """Convert to a patch that only carries the screenshot."""
        return DomainUpdate(domain=self.domain, screenshot=self.screenshot)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True)


class SearchRequest(WireModel):
    """Inbound request: probe `keyword` across all TLDs, or only `single_domain`."""

    keyword: str = Field(default="", max_length=63)
    single_domain: str | None = Field(default=None, max_length=253)

    @field_validator("keyword", "single_domain", mode="before")
    @classmethod
    def normalize(cls, value: Any) -> Any:
        """Strip surrounding whitespace and lower-case the value."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def check_target(self) -> "SearchRequest":
        """Require a keyword unless a single domain is given."""
        if not self.single_domain:
            self.single_domain = None
            if not self.keyword:
                raise ValueError("keyword must not be empty")
        return self

    @classmethod
    def for_recheck(cls, domain: str) -> "SearchRequest":
        """Build the request used to recheck one domain."""
        return cls(keyword=domain.split(".")[0], single_domain=domain)


def parse_record(line: str | bytes) -> DomainUpdate:
    """Parse one line of the update stream into a `DomainUpdate`.

    Screenshot-only records are turned into a patch carrying only the screenshot.

    Raises:
        orjson.JSONDecodeError if the line is not valid JSON.
        pydantic.ValidationError if the record doesn't match either shape.
    """
    data = orjson.loads(line)
    if isinstance(data, dict) and data.get("kind") == "screenshot":
        return ScreenshotRecord.model_validate(data).to_update()
    return DomainUpdate.model_validate(data)
