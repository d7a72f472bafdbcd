"""Random keywords used to prefill a search."""

import logging
import random
from functools import cache

from sitefinder.configs import settings
from sitefinder.exceptions import WordListError
from sitefinder.utils.data_files import read_lines

logger = logging.getLogger(__name__)


def filter_words(
    lines: list[str],
    min_length: int = settings.words.min_length,
    max_length: int = settings.words.max_length,
) -> tuple[str, ...]:
    """Keep lower-cased alphabetic words whose length fits a DNS label comfortably."""
    words = (line.strip().lower() for line in lines)
    return tuple(
        word for word in words if word.isascii() and word.isalpha() and min_length <= len(word) <= max_length
    )


@cache
def get_words() -> tuple[str, ...]:
    """Load and memoize the configured word list.

    Raises:
        WordListError if the list can't be read or has no usable word.
    """
    words = filter_words(read_lines(settings.words.path))
    if not words:
        raise WordListError(f"No usable words in {settings.words.path}")
    logger.info(f"Loaded {len(words)} words", extra={"path": settings.words.path})
    return words


def random_word(rng: random.Random | None = None) -> str:
    """Return a random keyword.

    Raises:
        WordListError if the word list is unavailable.
    """
    return (rng or random).choice(get_words())
