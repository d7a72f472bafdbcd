"""The canonical per-domain record and the pure patch merge."""

from typing import Any

from sitefinder.probe import constants
from sitefinder.probe.models import DomainStatus, DomainUpdate, LogEntry, WireModel

# Fields that keep their last non-empty value: an empty string never erases them.
RETAINED_FIELDS: frozenset[str] = frozenset({"title", "screenshot", "favicon"})

# Fields that can't be unset once the record exists.
REQUIRED_FIELDS: frozenset[str] = frozenset({"status", "is_high_priority"})


class DomainResult(WireModel):
    """Everything known about one domain, reconstructed from its update stream."""

    domain: str
    title: str = ""
    screenshot: str = ""
    favicon: str | None = None
    status: DomainStatus = DomainStatus.LOADING
    timestamp: int
    logs: list[LogEntry] = []
    response_time: int | None = None
    error: str | None = None
    error_code: str | None = None
    is_high_priority: bool = False

    @classmethod
    def start(cls, domain: str, now: int, message: str = constants.STARTING) -> "DomainResult":
        """Create a fresh `loading` record whose history holds a single entry."""
        return cls(
            domain=domain,
            timestamp=now,
            logs=[LogEntry(timestamp=now, message=message)],
        )


def merge(old: DomainResult, patch: DomainUpdate, now: int) -> DomainResult:
    """Apply a patch to a record and return the new record. `old` is left untouched.

    * `logs` are appended in order.
    * `title`, `screenshot` and `favicon` only change to a non-empty value.
    * `status` and `is_high_priority` ignore explicit nulls.
    * Every other field present in the patch overwrites the record, absent ones don't.
    * `timestamp` is always refreshed to `now`.
    """
    changes: dict[str, Any] = {"timestamp": now}
    for field in patch.present_fields():
        value = getattr(patch, field)
        if field == "logs":
            if value:
                changes["logs"] = [*old.logs, *value]
        elif field in RETAINED_FIELDS:
            if value:
                changes[field] = value
        elif field in REQUIRED_FIELDS:
            if value is not None:
                changes[field] = value
        else:
            changes[field] = value
    return old.model_copy(update=changes)
