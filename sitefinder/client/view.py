"""Filtering and ranking of aggregated results for display."""

from typing import Iterable

from pydantic import BaseModel

from sitefinder.client.merge import DomainResult
from sitefinder.probe.models import DomainStatus

STATUS_PRIORITY: dict[DomainStatus, int] = {
    DomainStatus.SUCCESS: 0,
    DomainStatus.LOADING: 1,
    DomainStatus.TIMEOUT: 2,
    DomainStatus.CONNECTION_REFUSED: 3,
    DomainStatus.DNS_ERROR: 4,
    DomainStatus.SSL_ERROR: 5,
    DomainStatus.INVALID_RESPONSE: 6,
    DomainStatus.INTERNAL_ERROR: 7,
}
UNKNOWN_PRIORITY = 999


class ViewFilters(BaseModel):
    """Which results to show. `only_purchasable` overrides the other two."""

    only_live: bool = False
    only_errors: bool = False
    only_purchasable: bool = False


def matches(result: DomainResult, filters: ViewFilters) -> bool:
    """Return True if the result passes the filters."""
    if filters.only_purchasable:
        # Unresolvable names are the only "possibly available" signal.
        return result.status is DomainStatus.DNS_ERROR
    if filters.only_live and result.status is not DomainStatus.SUCCESS:
        return False
    if filters.only_errors and result.status is DomainStatus.SUCCESS:
        return False
    return True


def sort_key(result: DomainResult) -> tuple[int, int, int, int, str]:
    """Rank by status priority, then for live sites common TLDs first and faster first,
    then by domain name.
    """
    priority = STATUS_PRIORITY.get(result.status, UNKNOWN_PRIORITY)
    if result.status is not DomainStatus.SUCCESS:
        return priority, 0, 0, 0, result.domain

    response_time = result.response_time
    return (
        priority,
        0 if result.is_high_priority else 1,
        0 if response_time is not None else 1,
        response_time or 0,
        result.domain,
    )


def build_view(
    results: Iterable[DomainResult], filters: ViewFilters | None = None
) -> list[DomainResult]:
    """Return the filtered results in display order."""
    filters = filters or ViewFilters()
    return sorted((result for result in results if matches(result, filters)), key=sort_key)
