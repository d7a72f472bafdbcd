# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""The ordered TLD source consumed by the scheduler."""

import logging
from functools import cache
from typing import Iterable

from sitefinder.configs import settings
from sitefinder.utils.data_files import read_lines

logger = logging.getLogger(__name__)

# Common TLDs. They are probed first and ranked first among live results.
HIGH_PRIORITY_TLDS: tuple[str, ...] = (
    "com",
    "net",
    "org",
    "io",
    "co",
    "app",
    "dev",
    "ai",
    "me",
    "info",
    "biz",
    "edu",
    "gov",
    "mil",
    "int",
    "eu",
    "us",
    "uk",
    "ca",
    "au",
    "de",
    "fr",
    "es",
    "it",
    "nl",
    "ru",
    "cn",
    "jp",
    "kr",
    "in",
    "tech",
    "online",
    "store",
    "blog",
    "site",
    "web",
    "xyz",
    "cloud",
)

_HIGH_PRIORITY_SET: frozenset[str] = frozenset(HIGH_PRIORITY_TLDS)


def is_high_priority_tld(tld: str) -> bool:
    """Return True if the TLD is in the common TLD set. Case-insensitive."""
    return tld.lower() in _HIGH_PRIORITY_SET


def tld_of(domain: str) -> str:
    """Return the last label of a domain name."""
    return domain.rstrip(".").rsplit(".", 1)[-1]


def order_tlds(tlds: Iterable[str]) -> list[str]:
    """Order TLDs with the high-priority set first, followed by the remaining ones in
    their original order. Comment lines (`#`) and duplicates are dropped.
    """
    ordered: list[str] = list(HIGH_PRIORITY_TLDS)
    seen: set[str] = set(_HIGH_PRIORITY_SET)
    for line in tlds:
        tld = line.strip().lower()
        if not tld or tld.startswith("#") or tld in seen:
            continue
        seen.add(tld)
        ordered.append(tld)
    return ordered


@cache
def get_tlds() -> tuple[str, ...]:
    """Load and memoize the configured IANA TLD list."""
    tlds = tuple(order_tlds(read_lines(settings.probe.tld_list_path)))
    logger.info(f"Loaded {len(tlds)} TLDs", extra={"path": settings.probe.tld_list_path})
    return tlds
